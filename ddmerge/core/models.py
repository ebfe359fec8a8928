"""
Core data models for directory comparison and merging.

This module defines all data structures shared across the application:
- Scan models (PathEntry)
- Text diff models (DiffLine, Hunk)
- Diff entry variants (LeftOnly, RightOnly, Modified, TypeMismatch)
- Decision and run outcome models

Scan and diff models are immutable. Decisions are never stored on
hunks or entries; the merge controller keeps them externally.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Optional, Union


# =============================================================================
# Enumerations
# =============================================================================

class FileType(Enum):
    """Kind of filesystem entry."""
    FILE = auto()
    DIRECTORY = auto()

    @property
    def label(self) -> str:
        return "directory" if self is FileType.DIRECTORY else "file"


class ContentClass(Enum):
    """Content classification of a scanned entry."""
    TEXT = auto()
    BINARY = auto()
    UNKNOWN = auto()    # Directories, or files that were never sniffed


class DiffLineType(Enum):
    """Type of line inside a hunk."""
    CONTEXT = auto()    # Unchanged, present on both sides
    REMOVED = auto()    # Present only on the left
    ADDED = auto()      # Present only on the right


class Decision(Enum):
    """An operator decision at one decision point."""
    USE_LEFT = auto()   # Left content wins, right side is updated
    USE_RIGHT = auto()  # Right content wins, left side is updated
    COPY = auto()       # Copy a single-side entry to the other tree
    DELETE = auto()     # Delete a single-side entry from its tree
    SKIP = auto()       # Leave both sides as they are
    SKIP_FILE = auto()  # Skip all remaining hunks of the current file
    QUIT = auto()       # Stop the run

    @property
    def mutates(self) -> bool:
        """Whether applying this decision touches the filesystem."""
        return self in (Decision.USE_LEFT, Decision.USE_RIGHT, Decision.COPY, Decision.DELETE)


class RunState(Enum):
    """States of the merge controller."""
    IDLE = auto()
    ITERATING = auto()
    DONE = auto()
    QUIT_EARLY = auto()


# =============================================================================
# Scan Models
# =============================================================================

@dataclass(frozen=True)
class PathEntry:
    """
    A single scanned path, relative to its tree root.

    Entries sort by their path segments, which keeps parents ahead of
    their children and makes left/right listings pairable in one pass.
    """
    relative_path: tuple[str, ...]
    kind: FileType
    content: ContentClass = ContentClass.UNKNOWN
    size: int = 0

    @property
    def path_str(self) -> str:
        return "/".join(self.relative_path)

    @property
    def name(self) -> str:
        return self.relative_path[-1] if self.relative_path else ""

    @property
    def is_directory(self) -> bool:
        return self.kind == FileType.DIRECTORY

    @property
    def is_binary(self) -> bool:
        return self.content == ContentClass.BINARY


# =============================================================================
# Text Diff Models
# =============================================================================

@dataclass(frozen=True)
class DiffLine:
    """
    A single line in a hunk.

    Content keeps its original line terminator so that hunks can be
    spliced back into files byte-for-byte.
    """
    line_type: DiffLineType
    content: str
    left_line_num: Optional[int] = None
    right_line_num: Optional[int] = None

    @property
    def has_newline(self) -> bool:
        return self.content.endswith(('\n', '\r'))

    @property
    def prefix(self) -> str:
        """Get the diff prefix character."""
        prefixes = {
            DiffLineType.CONTEXT: ' ',
            DiffLineType.REMOVED: '-',
            DiffLineType.ADDED: '+',
        }
        return prefixes[self.line_type]


@dataclass(frozen=True)
class Hunk:
    """
    A group of related changes (a "hunk" in unified diff terminology).

    Start/count pairs follow the ``@@ -l,c +l,c @@`` convention: starts
    are 1-based, and a side with a zero count reports the line just
    before the insertion point.
    """
    left_start: int
    left_count: int
    right_start: int
    right_count: int
    lines: tuple[DiffLine, ...] = ()

    @property
    def header(self) -> str:
        """Generate unified diff hunk header."""
        return f"@@ -{self.left_start},{self.left_count} +{self.right_start},{self.right_count} @@"

    @property
    def left_offset(self) -> int:
        """0-based index of the first left-side line."""
        return self.left_start - 1 if self.left_count else self.left_start

    @property
    def right_offset(self) -> int:
        """0-based index of the first right-side line."""
        return self.right_start - 1 if self.right_count else self.right_start

    @property
    def change_count(self) -> int:
        """Count of actual changes (non-context lines)."""
        return sum(1 for line in self.lines if line.line_type != DiffLineType.CONTEXT)

    @property
    def line_delta(self) -> int:
        """Lines gained by the right side relative to the left side."""
        return self.right_count - self.left_count

    def left_lines(self) -> list[str]:
        """Context and removed lines, i.e. this hunk as seen in the left file."""
        return [l.content for l in self.lines if l.line_type != DiffLineType.ADDED]

    def right_lines(self) -> list[str]:
        """Context and added lines, i.e. this hunk as seen in the right file."""
        return [l.content for l in self.lines if l.line_type != DiffLineType.REMOVED]

    @property
    def is_whitespace_only(self) -> bool:
        """True when removed and added text differ only in whitespace."""
        removed = ''.join(
            l.content for l in self.lines if l.line_type == DiffLineType.REMOVED
        )
        added = ''.join(
            l.content for l in self.lines if l.line_type == DiffLineType.ADDED
        )
        return ''.join(removed.split()) == ''.join(added.split())


# =============================================================================
# Diff Entry Variants
# =============================================================================

def _join(relative_path: tuple[str, ...]) -> str:
    return "/".join(relative_path)


@dataclass(frozen=True)
class LeftOnly:
    """Path present only in the left tree."""
    entry: PathEntry

    @property
    def relative_path(self) -> tuple[str, ...]:
        return self.entry.relative_path

    @property
    def path_str(self) -> str:
        return self.entry.path_str


@dataclass(frozen=True)
class RightOnly:
    """Path present only in the right tree."""
    entry: PathEntry

    @property
    def relative_path(self) -> tuple[str, ...]:
        return self.entry.relative_path

    @property
    def path_str(self) -> str:
        return self.entry.path_str


@dataclass(frozen=True)
class Modified:
    """
    File present on both sides with different content.

    Binary pairs carry no hunks and are resolved as whole files.
    The encodings are only used to display hunk lines.
    """
    relative_path: tuple[str, ...]
    hunks: tuple[Hunk, ...] = ()
    binary: bool = False
    left_encoding: str = "utf-8"
    right_encoding: str = "utf-8"

    @property
    def path_str(self) -> str:
        return _join(self.relative_path)


@dataclass(frozen=True)
class TypeMismatch:
    """
    Same path is a file on one side and a directory on the other.

    ``binary`` is set when the file side is binary.
    """
    relative_path: tuple[str, ...]
    left_kind: FileType
    right_kind: FileType
    binary: bool = False

    @property
    def path_str(self) -> str:
        return _join(self.relative_path)


DiffEntry = Union[LeftOnly, RightOnly, Modified, TypeMismatch]


# =============================================================================
# Run Models
# =============================================================================

@dataclass(frozen=True)
class PlannedAction:
    """One recorded decision, with whether it reached the filesystem."""
    path: str
    decision: Decision
    hunk_index: Optional[int] = None
    applied: bool = False


@dataclass
class RunOutcome:
    """Counters and records accumulated over one merge run."""
    entries_total: int = 0
    entries_processed: int = 0
    applied: int = 0
    skipped: int = 0
    failed: int = 0
    auto_resolved: int = 0
    hunks_processed: int = 0
    left_choices: int = 0
    right_choices: int = 0
    quit_early: bool = False
    dry_run: bool = False
    errors: list[tuple[str, str]] = field(default_factory=list)
    plan: list[PlannedAction] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.failed == 0

    @property
    def decisions(self) -> int:
        return self.applied + self.skipped

"""
Applies merge decisions to the two trees.

Whole-path operations:
- Copy a single-side file or directory to the other tree
- Delete a single-side file or directory
- Replace one side with the other (type mismatches, binary files)

Hunk operations splice one hunk into the current content of a text
file. Every write goes through a temporary sibling and a rename.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional, Sequence

from ddmerge.core.errors import ApplyError
from ddmerge.core.models import (
    Decision,
    DiffEntry,
    Hunk,
    LeftOnly,
    Modified,
    RightOnly,
    TypeMismatch,
)
from ddmerge.services.file_io import FileIOService


logger = logging.getLogger(__name__)


class Applier:
    """
    Executes decisions against the left and right roots.

    All failures are raised as ApplyError carrying the relative path.
    """

    def __init__(
        self,
        left_root: Path | str,
        right_root: Path | str,
        file_io: Optional[FileIOService] = None
    ):
        self.left_root = Path(left_root)
        self.right_root = Path(right_root)
        self.file_io = file_io or FileIOService()

    # =========================================================================
    # Whole-path operations
    # =========================================================================

    def copy_path(self, source: Path, dest: Path, rel_path: Optional[str] = None) -> None:
        """Copy a file or directory tree to a destination that does not exist."""
        rel_path = rel_path or str(dest)

        if os.path.lexists(dest):
            raise ApplyError(rel_path, "destination already exists")

        result = self.file_io.copy_atomic(source, dest)
        if not result.success:
            raise ApplyError(rel_path, result.error or "copy failed")

        logger.info(f"Applier - Copied {source} to {dest} ({result.bytes_written} bytes)")

    def delete_path(self, path: Path, rel_path: Optional[str] = None) -> None:
        """Delete a file or directory tree."""
        rel_path = rel_path or str(path)

        result = self.file_io.delete_atomic(path)
        if not result.success:
            raise ApplyError(rel_path, result.error or "delete failed")

        logger.info(f"Applier - Deleted {path}")

    def replace_path(self, source: Path, dest: Path, rel_path: Optional[str] = None) -> None:
        """Replace dest, whatever its kind, with a copy of source."""
        rel_path = rel_path or str(dest)

        result = self.file_io.replace_atomic(source, dest)
        if not result.success:
            raise ApplyError(rel_path, result.error or "replace failed")

        logger.info(f"Applier - Replaced {dest} with {source}")

    def apply_entry(self, entry: DiffEntry, decision: Decision) -> None:
        """
        Apply a whole-entry decision.

        Raises:
            ApplyError: If the filesystem operation fails
            ValueError: If the decision does not apply to the entry
        """
        if decision == Decision.SKIP:
            return

        rel = entry.relative_path
        rel_path = entry.path_str
        left = self.left_root.joinpath(*rel)
        right = self.right_root.joinpath(*rel)

        if isinstance(entry, LeftOnly):
            if decision == Decision.COPY:
                self.copy_path(left, right, rel_path)
                return
            if decision == Decision.DELETE:
                self.delete_path(left, rel_path)
                return
        elif isinstance(entry, RightOnly):
            if decision == Decision.COPY:
                self.copy_path(right, left, rel_path)
                return
            if decision == Decision.DELETE:
                self.delete_path(right, rel_path)
                return
        elif isinstance(entry, (TypeMismatch, Modified)):
            if decision == Decision.USE_LEFT:
                self.replace_path(left, right, rel_path)
                return
            if decision == Decision.USE_RIGHT:
                self.replace_path(right, left, rel_path)
                return
        else:
            raise TypeError(f"Unknown diff entry type: {type(entry).__name__}")

        raise ValueError(f"Decision {decision.name} does not apply to {type(entry).__name__}")

    # =========================================================================
    # Hunk operations
    # =========================================================================

    def apply_hunk(
        self,
        relative_path: Sequence[str],
        hunk: Hunk,
        decision: Decision,
        offset_hint: int = 0
    ) -> None:
        """
        Apply one hunk to the losing side of a text file.

        USE_LEFT rewrites the right file's copy of the hunk with the left
        lines; USE_RIGHT is the mirror. The block is located by content in
        the file as it is now, starting at the hunk's nominal position
        moved by ``offset_hint``.

        Raises:
            ApplyError: If the block is gone or the file cannot be rewritten
        """
        rel_path = "/".join(relative_path)

        if decision == Decision.USE_LEFT:
            target = self.right_root.joinpath(*relative_path)
            expected, replacement = hunk.right_lines(), hunk.left_lines()
            nominal = hunk.right_offset
        elif decision == Decision.USE_RIGHT:
            target = self.left_root.joinpath(*relative_path)
            expected, replacement = hunk.left_lines(), hunk.right_lines()
            nominal = hunk.left_offset
        else:
            raise ValueError(f"Decision {decision.name} does not apply to a hunk")

        read = self.file_io.read_file(target)
        if not read.success:
            raise ApplyError(rel_path, read.error or "cannot read target")

        lines = read.content.lines
        position = self._locate(lines, expected, nominal + offset_hint)
        if position is None:
            raise ApplyError(rel_path, f"hunk {hunk.header} no longer matches the file")

        new_lines = lines[:position] + replacement + lines[position + len(expected):]

        try:
            data = self.file_io.encode_lines(new_lines)
        except UnicodeEncodeError as e:
            raise ApplyError(rel_path, f"cannot encode the merged lines: {e}", e) from e

        result = self.file_io.write_bytes(target, data)
        if not result.success:
            raise ApplyError(rel_path, result.error or "write failed")

        logger.info(f"Applier - Applied hunk {hunk.header} to {target} at line {position + 1}")

    def _locate(self, lines: list[str], expected: list[str], start: int) -> Optional[int]:
        """Find ``expected`` in ``lines``, searching outward from ``start``."""
        size = len(expected)
        limit = len(lines) - size
        if limit < 0:
            return None

        start = min(max(start, 0), limit)

        # An empty block has no content to match; the position is all we know
        if size == 0:
            return start

        for distance in range(max(start, limit - start) + 1):
            for position in (start - distance, start + distance):
                if 0 <= position <= limit and lines[position:position + size] == expected:
                    return position
                if distance == 0:
                    break

        return None

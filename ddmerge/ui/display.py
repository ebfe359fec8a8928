"""
Terminal rendering for the interactive merge.

Handles:
- Entry headers for each kind of difference
- Hunk rendering with line numbers and whitespace visualization
- Decision acknowledgements
- The end-of-run summary
"""

from __future__ import annotations

import sys
from typing import Optional, TextIO

from ddmerge.core.models import (
    Decision,
    DiffEntry,
    DiffLineType,
    Hunk,
    LeftOnly,
    Modified,
    RightOnly,
    RunOutcome,
    TypeMismatch,
)
from ddmerge.services.file_io import decode_for_display


WHITESPACE_MARKERS = {
    ' ': '·',
    '\t': '→',
    '\n': '↵',
    '\r': '␍',
}

# Shown in place of a byte order mark, which is otherwise invisible
BOM_MARKER = '<BOM>'


def visualize_whitespace(line: str) -> str:
    """Replace whitespace characters with visible markers."""
    return ''.join(WHITESPACE_MARKERS.get(char, char) for char in line)


def format_size(size: int) -> str:
    """Format a byte count for humans."""
    if size < 1024:
        return f"{size}B"
    elif size < 1024 * 1024:
        return f"{size / 1024:.1f}KB"
    elif size < 1024 * 1024 * 1024:
        return f"{size / (1024 * 1024):.1f}MB"
    return f"{size / (1024 * 1024 * 1024):.1f}GB"


class ConsoleDisplay:
    """Writes merge progress to a text stream, optionally in colour."""

    STYLES = {
        'bold': '\033[1m',
        'dim': '\033[2m',
        'red': '\033[31m',
        'green': '\033[32m',
        'yellow': '\033[33m',
        'magenta': '\033[35m',
        'cyan': '\033[36m',
        'white': '\033[37m',
    }
    RESET = '\033[0m'

    def __init__(self, stream: Optional[TextIO] = None, use_color: bool = True):
        self.stream = stream or sys.stdout
        self.use_color = use_color

    def style(self, text: str, *styles: str) -> str:
        """Wrap text in ANSI styles when colour is enabled."""
        if not self.use_color or not styles:
            return text
        codes = ''.join(self.STYLES[s] for s in styles)
        return f"{codes}{text}{self.RESET}"

    def write(self, text: str = "") -> None:
        self.stream.write(text + "\n")
        self.stream.flush()

    # -------------------------------------------------------------------------
    # Run progress
    # -------------------------------------------------------------------------

    def comparing(self) -> None:
        self.write(self.style("Comparing directories...", 'cyan'))

    def identical(self) -> None:
        self.write(self.style("Directories are identical!", 'green'))

    def found(self, count: int) -> None:
        self.write(self.style(f"Found {count} file(s) with differences.", 'yellow'))

    def notice(self, message: str) -> None:
        self.write(self.style(f"  {message}", 'dim'))

    def error(self, message: str) -> None:
        self.write(self.style(f"  Error: {message}", 'red', 'bold'))

    # -------------------------------------------------------------------------
    # Entries
    # -------------------------------------------------------------------------

    def entry_header(self, entry: DiffEntry, index: int, total: int) -> None:
        """Show which entry is being decided and what kind of difference it is."""
        if isinstance(entry, (LeftOnly, RightOnly)):
            label = entry.entry.kind.label.capitalize()
        elif isinstance(entry, TypeMismatch):
            label = "Path"
        else:
            label = "File"

        self.write()
        self.write(
            f"{self.style(f'[{index + 1}/{total}]', 'cyan', 'bold')} "
            f"{self.style(f'{label}: {entry.path_str}', 'white', 'bold')}"
        )

        if isinstance(entry, LeftOnly):
            self.write(f"  {self.style(entry.entry.kind.label, 'yellow')} (only in left)"
                       f"{self._size_suffix(entry)}")
        elif isinstance(entry, RightOnly):
            self.write(f"  {self.style(entry.entry.kind.label, 'yellow')} (only in right)"
                       f"{self._size_suffix(entry)}")
        elif isinstance(entry, TypeMismatch):
            self.write(
                f"  {self.style('Type mismatch:', 'red', 'bold')} "
                f"Left is {self.style(entry.left_kind.label, 'yellow')}, "
                f"Right is {self.style(entry.right_kind.label, 'yellow')}"
                f"{', binary' if entry.binary else ''}"
            )
        elif isinstance(entry, Modified):
            if entry.binary:
                self.write(f"  {self.style('(binary file)', 'dim')}")
            else:
                self.write(f"  {len(entry.hunks)} hunk(s)")
        else:
            raise TypeError(f"Unknown diff entry type: {type(entry).__name__}")

    def _size_suffix(self, entry: LeftOnly | RightOnly) -> str:
        if entry.entry.is_directory:
            return ""
        suffix = f", {format_size(entry.entry.size)}"
        if entry.entry.is_binary:
            suffix += ", binary"
        return suffix

    # -------------------------------------------------------------------------
    # Hunks
    # -------------------------------------------------------------------------

    def hunk(
        self,
        hunk: Hunk,
        index: int,
        total: int,
        entry: Modified,
        left_shift: int = 0,
        right_shift: int = 0
    ) -> None:
        """
        Render one hunk of a modified file.

        Lines are shown in the encoding detected for their side. Shifts
        move the displayed line numbers to account for hunks of the same
        file that were already applied.
        """
        whitespace_only = hunk.is_whitespace_only

        title = (f"{self.style(f'[{index + 1}/{total}]', 'cyan', 'bold')} "
                 f"{self.style('Hunk', 'white', 'bold')} in {entry.path_str}")
        if whitespace_only:
            title += f" {self.style('(whitespace only)', 'yellow')}"

        self.write()
        self.write(title)

        header = (f"@@ -{hunk.left_start + left_shift},{hunk.left_count} "
                  f"+{hunk.right_start + right_shift},{hunk.right_count} @@")
        self.write(f"  {self.style(header, 'cyan')}")

        colours = {
            DiffLineType.CONTEXT: ('dim',),
            DiffLineType.REMOVED: ('red',),
            DiffLineType.ADDED: ('green',),
        }
        for line in hunk.lines:
            encoding = (entry.right_encoding if line.line_type == DiffLineType.ADDED
                        else entry.left_encoding)
            text = decode_for_display(line.content, encoding).replace('\ufeff', BOM_MARKER)
            if whitespace_only:
                text = visualize_whitespace(text)
            else:
                text = text.rstrip('\r\n')
                if not line.has_newline:
                    text += " \\ No newline at end of file"
            self.write(f"  {self.style(line.prefix + text, *colours[line.line_type])}")

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def acknowledge(self, entry: Optional[DiffEntry], decision: Decision) -> None:
        """Echo the operator's decision in words."""
        message, colour = self._describe(entry, decision)
        self.write(self.style(f"  {message}", colour))

    def _describe(self, entry: Optional[DiffEntry], decision: Decision) -> tuple[str, str]:
        if decision == Decision.SKIP:
            return "Skipped", 'yellow'
        if decision == Decision.SKIP_FILE:
            return "Skipping file...", 'yellow'
        if decision == Decision.QUIT:
            return "Quitting...", 'red'

        if isinstance(entry, LeftOnly):
            if decision == Decision.COPY:
                return "Copying to right...", 'green'
            return "Deleting from left...", 'red'
        if isinstance(entry, RightOnly):
            if decision == Decision.COPY:
                return "Copying to left...", 'green'
            return "Deleting from right...", 'red'

        if decision == Decision.USE_LEFT:
            return "Using left (updating right)...", 'green'
        return "Using right (updating left)...", 'green'

    def applied(self, dry_run: bool = False) -> None:
        if dry_run:
            self.write(self.style("  (dry run, nothing written)", 'dim'))
        else:
            self.write(self.style("  ✓ Applied.", 'green'))

    # -------------------------------------------------------------------------
    # Summary
    # -------------------------------------------------------------------------

    def summary(self, outcome: RunOutcome) -> None:
        """Show the final status line and the counters that are non-zero."""
        self.write()
        if outcome.quit_early:
            self.write(self.style("Merge cancelled.", 'yellow'))
        elif outcome.dry_run:
            self.write(self.style("Dry run complete. No files were modified.", 'yellow'))
        elif outcome.failed:
            self.write(self.style(f"Merge complete with {outcome.failed} error(s).", 'red', 'bold'))
        else:
            self.write(self.style("Merge complete!", 'green', 'bold'))

        self.write()
        self.write(self.style("Summary:", 'cyan', 'bold'))

        rows = [
            ("Entries processed", outcome.entries_processed),
            ("Total hunks processed", outcome.hunks_processed),
            ("Left choices (updated right)", outcome.left_choices),
            ("Right choices (updated left)", outcome.right_choices),
            ("Applied" if not outcome.dry_run else "Planned", outcome.applied),
            ("Skipped", outcome.skipped),
            ("Already resolved", outcome.auto_resolved),
            ("Failed", outcome.failed),
        ]
        for label, value in rows:
            if value:
                self.write(f"  {label}: {value}")

        for path, message in outcome.errors:
            self.write(self.style(f"  ! {path}: {message}", 'red'))

        if outcome.dry_run and outcome.plan:
            self.write()
            self.write(self.style("Planned actions:", 'cyan', 'bold'))
            for action in outcome.plan:
                if not action.decision.mutates:
                    continue
                where = f" (hunk {action.hunk_index + 1})" if action.hunk_index is not None else ""
                self.write(f"  {action.decision.name.lower()} {action.path}{where}")

"""
Interactive merge controller.

Walks the diff entries in order and, for each one:
- Skips it if earlier decisions already resolved it
- Shows it and asks the operator for a decision
- Applies the decision immediately (or records it in a dry run)

Text files are decided hunk by hunk. The controller is the only place
that remembers earlier decisions within a run.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from ddmerge.core.errors import ApplyError
from ddmerge.core.merge.applier import Applier
from ddmerge.core.models import (
    Decision,
    DiffEntry,
    FileType,
    LeftOnly,
    Modified,
    PlannedAction,
    RightOnly,
    RunOutcome,
    RunState,
    TypeMismatch,
)
from ddmerge.ui.display import ConsoleDisplay
from ddmerge.ui.prompt import Prompter


logger = logging.getLogger(__name__)


@dataclass
class MergeOptions:
    """Options for the interactive merge."""
    dry_run: bool = False
    skip_binary: bool = False
    confirm_destructive: bool = False


class MergeController:
    """
    Drives one interactive merge run.

    State machine: IDLE -> ITERATING -> DONE or QUIT_EARLY.
    """

    def __init__(
        self,
        applier: Applier,
        prompter: Optional[Prompter] = None,
        display: Optional[ConsoleDisplay] = None,
        options: Optional[MergeOptions] = None
    ):
        self.applier = applier
        self.display = display or ConsoleDisplay()
        self.prompter = prompter or Prompter(stream=self.display.stream, style=self.display.style)
        self.options = options or MergeOptions()
        self.state = RunState.IDLE
        self._resolved_prefixes: list[tuple[str, ...]] = []

    def run(self, entries: list[DiffEntry]) -> RunOutcome:
        """
        Run the merge over comparator-ordered entries.

        Returns:
            RunOutcome with counters, errors and the decision plan
        """
        outcome = RunOutcome(entries_total=len(entries), dry_run=self.options.dry_run)
        self._resolved_prefixes = []
        self.state = RunState.ITERATING

        for index, entry in enumerate(entries):
            if self._is_resolved(entry):
                outcome.auto_resolved += 1
                logger.info(f"MergeController - {entry.path_str} already resolved, not asking")
                continue

            outcome.entries_processed += 1
            if self._process(entry, index, len(entries), outcome):
                outcome.quit_early = True
                self.state = RunState.QUIT_EARLY
                logger.info(f"MergeController - Quit at {entry.path_str}")
                break
        else:
            self.state = RunState.DONE

        logger.info(
            f"MergeController - Run finished: {outcome.applied} applied, "
            f"{outcome.skipped} skipped, {outcome.failed} failed"
        )
        return outcome

    # =========================================================================
    # Dispatch
    # =========================================================================

    def _process(self, entry: DiffEntry, index: int, total: int, outcome: RunOutcome) -> bool:
        """Handle one entry. Returns True when the operator quit."""
        if isinstance(entry, (LeftOnly, RightOnly)):
            return self._process_single_side(entry, index, total, outcome)
        elif isinstance(entry, TypeMismatch):
            return self._process_whole(entry, index, total, outcome)
        elif isinstance(entry, Modified):
            if entry.binary:
                return self._process_whole(entry, index, total, outcome)
            return self._process_hunks(entry, index, total, outcome)
        raise TypeError(f"Unknown diff entry type: {type(entry).__name__}")

    def _process_single_side(
        self,
        entry: LeftOnly | RightOnly,
        index: int,
        total: int,
        outcome: RunOutcome
    ) -> bool:
        if self.options.skip_binary and entry.entry.is_binary:
            self._auto_skip(entry, outcome)
            return False

        self.display.entry_header(entry, index, total)
        decision = self.prompter.choose_single_side(isinstance(entry, LeftOnly))
        self.display.acknowledge(entry, decision)

        if decision == Decision.QUIT:
            return True

        self._apply_entry(entry, decision, outcome)
        return False

    def _process_whole(
        self,
        entry: TypeMismatch | Modified,
        index: int,
        total: int,
        outcome: RunOutcome
    ) -> bool:
        if self.options.skip_binary and entry.binary:
            self._auto_skip(entry, outcome)
            return False

        self.display.entry_header(entry, index, total)
        decision = self.prompter.choose_whole_file()
        self.display.acknowledge(entry, decision)

        if decision == Decision.QUIT:
            return True

        if not self._confirm_replace(entry, decision):
            decision = Decision.SKIP
            self.display.acknowledge(entry, decision)

        self._apply_entry(entry, decision, outcome)
        return False

    def _process_hunks(self, entry: Modified, index: int, total: int, outcome: RunOutcome) -> bool:
        path = entry.path_str
        hunk_total = len(entry.hunks)
        left_shift = right_shift = 0

        self.display.entry_header(entry, index, total)

        for hunk_index, hunk in enumerate(entry.hunks):
            self.display.hunk(hunk, hunk_index, hunk_total, entry, left_shift, right_shift)
            decision = self.prompter.choose_hunk()
            self.display.acknowledge(entry, decision)

            if decision == Decision.QUIT:
                return True

            if decision == Decision.SKIP_FILE:
                outcome.skipped += hunk_total - hunk_index
                outcome.plan.append(PlannedAction(path, decision, hunk_index))
                return False

            outcome.hunks_processed += 1

            if decision == Decision.SKIP:
                outcome.skipped += 1
                outcome.plan.append(PlannedAction(path, decision, hunk_index))
                continue

            if not self.options.dry_run:
                hint = right_shift if decision == Decision.USE_LEFT else left_shift
                try:
                    self.applier.apply_hunk(entry.relative_path, hunk, decision, offset_hint=hint)
                except ApplyError as e:
                    self._record_failure(path, decision, e, outcome, hunk_index)
                    return False

                # Later hunks of this file sit at shifted positions now
                if decision == Decision.USE_LEFT:
                    right_shift -= hunk.line_delta
                else:
                    left_shift += hunk.line_delta

            self._record_success(path, decision, outcome, hunk_index)

        return False

    # =========================================================================
    # Decisions
    # =========================================================================

    def _apply_entry(self, entry: DiffEntry, decision: Decision, outcome: RunOutcome) -> None:
        path = entry.path_str

        if decision == Decision.SKIP:
            outcome.skipped += 1
            outcome.plan.append(PlannedAction(path, decision))
            return

        if not self.options.dry_run:
            try:
                self.applier.apply_entry(entry, decision)
            except ApplyError as e:
                self._record_failure(path, decision, e, outcome)
                return

        self._record_success(path, decision, outcome)
        self._mark_resolved(entry, decision)

    def _record_success(
        self,
        path: str,
        decision: Decision,
        outcome: RunOutcome,
        hunk_index: Optional[int] = None
    ) -> None:
        outcome.applied += 1
        if decision == Decision.USE_LEFT:
            outcome.left_choices += 1
        elif decision == Decision.USE_RIGHT:
            outcome.right_choices += 1

        outcome.plan.append(PlannedAction(path, decision, hunk_index, applied=not self.options.dry_run))
        self.display.applied(dry_run=self.options.dry_run)

    def _record_failure(
        self,
        path: str,
        decision: Decision,
        error: ApplyError,
        outcome: RunOutcome,
        hunk_index: Optional[int] = None
    ) -> None:
        outcome.failed += 1
        outcome.errors.append((path, str(error)))
        outcome.plan.append(PlannedAction(path, decision, hunk_index, applied=False))
        logger.error(f"MergeController - {error}")
        self.display.error(str(error))

    def _auto_skip(self, entry: DiffEntry, outcome: RunOutcome) -> None:
        outcome.skipped += 1
        outcome.plan.append(PlannedAction(entry.path_str, Decision.SKIP))
        logger.info(f"MergeController - Skipping binary file {entry.path_str}")

    def _confirm_replace(self, entry: DiffEntry, decision: Decision) -> bool:
        """Ask before a directory is replaced, when configured to."""
        if not self.options.confirm_destructive or not isinstance(entry, TypeMismatch):
            return True

        if decision == Decision.USE_LEFT:
            side, kind = "right", entry.right_kind
        elif decision == Decision.USE_RIGHT:
            side, kind = "left", entry.left_kind
        else:
            return True

        if kind != FileType.DIRECTORY:
            return True

        return self.prompter.confirm(
            f"This deletes the {side} directory {entry.path_str} recursively. Continue?"
        )

    # =========================================================================
    # Staleness
    # =========================================================================

    def _mark_resolved(self, entry: DiffEntry, decision: Decision) -> None:
        """Remember whole-path decisions that also settle everything below the path."""
        if decision.mutates:
            self._resolved_prefixes.append(entry.relative_path)

    def _is_resolved(self, entry: DiffEntry) -> bool:
        """
        Check whether an entry no longer needs a decision.

        An entry below a path that was copied, deleted or replaced is
        settled by that decision, even in a dry run. The live filesystem
        is checked too, so an entry whose paths no longer differ in the
        scanned way is not offered again.
        """
        rel = entry.relative_path
        for prefix in self._resolved_prefixes:
            if len(rel) > len(prefix) and rel[:len(prefix)] == prefix:
                return True

        return not self._still_differs(entry)

    def _still_differs(self, entry: DiffEntry) -> bool:
        left = self.applier.left_root.joinpath(*entry.relative_path)
        right = self.applier.right_root.joinpath(*entry.relative_path)

        if isinstance(entry, LeftOnly):
            return os.path.lexists(left) and not os.path.lexists(right)
        elif isinstance(entry, RightOnly):
            return os.path.lexists(right) and not os.path.lexists(left)
        elif isinstance(entry, TypeMismatch):
            return left.exists() and right.exists() and left.is_dir() != right.is_dir()
        elif isinstance(entry, Modified):
            return left.is_file() and right.is_file()
        raise TypeError(f"Unknown diff entry type: {type(entry).__name__}")

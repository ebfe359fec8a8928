"""
Text file diff engine.

Turns two line sequences into independently decidable hunks:
- Multiple alignment algorithms (minimal, Myers, patience)
- Hunk grouping with a configurable context window
- Line terminators kept verbatim for byte-exact round trips
- Reconstruction of either side from the other plus its hunks
"""

from __future__ import annotations

import difflib
from dataclasses import dataclass
from enum import Enum, auto
from typing import Optional, Sequence

from ddmerge.core.models import DiffLine, DiffLineType, Hunk


Opcode = tuple[str, int, int, int, int]


class DiffAlgorithm(Enum):
    """Available diff algorithms."""
    MINIMAL = auto()        # SequenceMatcher without autojunk heuristics
    MYERS = auto()          # difflib default, with autojunk
    PATIENCE = auto()       # Patience diff - anchors on unique lines

    @classmethod
    def from_string(cls, value: str) -> 'DiffAlgorithm':
        """Create from a case-insensitive name."""
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown diff algorithm: {value}") from None


@dataclass
class TextCompareOptions:
    """Options for text comparison."""
    algorithm: DiffAlgorithm = DiffAlgorithm.MINIMAL
    context_lines: int = 3


class TextDiffEngine:
    """
    Line-level diff engine.

    Lines are compared exactly, terminators included, so a change of
    line ending is a change like any other.
    """

    def __init__(self, options: Optional[TextCompareOptions] = None):
        self.options = options or TextCompareOptions()

    # -------------------------------------------------------------------------
    # Hunks
    # -------------------------------------------------------------------------

    def build_hunks(self, left: Sequence[str], right: Sequence[str]) -> list[Hunk]:
        """
        Build hunks describing how ``left`` becomes ``right``.

        Change runs separated by more unchanged lines than the context
        window become separate hunks, and the lines between them are split
        so hunks never overlap. Identical inputs give no hunks.
        """
        left = list(left)
        right = list(right)

        opcodes = self._get_opcodes(left, right)
        groups = self._group_opcodes(opcodes, self.options.context_lines)

        return [self._create_hunk(group, left, right) for group in groups]

    def _create_hunk(self, group: list[Opcode], left: list[str], right: list[str]) -> Hunk:
        """Create a Hunk from a group of opcodes."""
        lines: list[DiffLine] = []

        for tag, i1, i2, j1, j2 in group:
            if tag == 'equal':
                for offset in range(i2 - i1):
                    lines.append(DiffLine(
                        line_type=DiffLineType.CONTEXT,
                        content=left[i1 + offset],
                        left_line_num=i1 + offset + 1,
                        right_line_num=j1 + offset + 1,
                    ))
                continue

            # Replacements show the removed block before the added block
            for idx in range(i1, i2):
                lines.append(DiffLine(
                    line_type=DiffLineType.REMOVED,
                    content=left[idx],
                    left_line_num=idx + 1,
                ))
            for idx in range(j1, j2):
                lines.append(DiffLine(
                    line_type=DiffLineType.ADDED,
                    content=right[idx],
                    right_line_num=idx + 1,
                ))

        left_begin, left_end = group[0][1], group[-1][2]
        right_begin, right_end = group[0][3], group[-1][4]
        left_count = left_end - left_begin
        right_count = right_end - right_begin

        return Hunk(
            left_start=left_begin + 1 if left_count else left_begin,
            left_count=left_count,
            right_start=right_begin + 1 if right_count else right_begin,
            right_count=right_count,
            lines=tuple(lines),
        )

    def _group_opcodes(self, opcodes: list[Opcode], context: int) -> list[list[Opcode]]:
        """
        Split opcodes into hunk-sized groups.

        Leading and trailing equal runs are cut down to ``context`` lines.
        An equal run longer than ``context`` ends one group and starts the
        next; the two groups share none of its lines.
        """
        codes = self._merge_equal_runs(opcodes)
        if not any(tag != 'equal' for tag, *_ in codes):
            return []

        if codes[0][0] == 'equal':
            tag, i1, i2, j1, j2 = codes[0]
            codes[0] = (tag, max(i1, i2 - context), i2, max(j1, j2 - context), j2)
        if codes[-1][0] == 'equal':
            tag, i1, i2, j1, j2 = codes[-1]
            codes[-1] = (tag, i1, min(i2, i1 + context), j1, min(j2, j1 + context))

        groups = []
        group: list[Opcode] = []
        last = len(codes) - 1
        for index, (tag, i1, i2, j1, j2) in enumerate(codes):
            size = i2 - i1
            if tag == 'equal' and 0 < index < last and size > context:
                leading = min(context, size - context)
                group.append((tag, i1, i1 + context, j1, j1 + context))
                groups.append(group)
                group = [(tag, i2 - leading, i2, j2 - leading, j2)]
                continue
            group.append((tag, i1, i2, j1, j2))

        if group and not (len(group) == 1 and group[0][0] == 'equal'):
            groups.append(group)

        return groups

    def _merge_equal_runs(self, opcodes: list[Opcode]) -> list[Opcode]:
        """Join adjacent equal opcodes, as patience anchors come one line at a time."""
        merged: list[Opcode] = []
        for code in opcodes:
            if merged and code[0] == 'equal' and merged[-1][0] == 'equal':
                _, i1, _, j1, _ = merged[-1]
                merged[-1] = ('equal', i1, code[2], j1, code[4])
            else:
                merged.append(code)
        return merged

    # -------------------------------------------------------------------------
    # Reconstruction
    # -------------------------------------------------------------------------

    @staticmethod
    def reconstruct_right(left: Sequence[str], hunks: Sequence[Hunk]) -> list[str]:
        """Rebuild the right side from the left side plus its hunks."""
        result: list[str] = []
        pos = 0
        for hunk in hunks:
            result.extend(left[pos:hunk.left_offset])
            result.extend(hunk.right_lines())
            pos = hunk.left_offset + hunk.left_count
        result.extend(left[pos:])
        return result

    @staticmethod
    def reconstruct_left(right: Sequence[str], hunks: Sequence[Hunk]) -> list[str]:
        """Rebuild the left side from the right side plus its hunks."""
        result: list[str] = []
        pos = 0
        for hunk in hunks:
            result.extend(right[pos:hunk.right_offset])
            result.extend(hunk.left_lines())
            pos = hunk.right_offset + hunk.right_count
        result.extend(right[pos:])
        return result

    # -------------------------------------------------------------------------
    # Alignment
    # -------------------------------------------------------------------------

    def _get_opcodes(self, left: list[str], right: list[str]) -> list[Opcode]:
        """Get diff opcodes using the configured algorithm."""
        if self.options.algorithm == DiffAlgorithm.PATIENCE:
            return self._patience_diff(left, right)
        elif self.options.algorithm == DiffAlgorithm.MYERS:
            matcher = difflib.SequenceMatcher(None, left, right)
            return matcher.get_opcodes()
        else:  # MINIMAL (default)
            matcher = difflib.SequenceMatcher(None, left, right, autojunk=False)
            return matcher.get_opcodes()

    def _patience_diff(self, left: list[str], right: list[str]) -> list[Opcode]:
        """
        Patience diff algorithm.

        Better for code because it anchors on unique lines.
        """
        # Find unique lines in both sequences
        left_unique: dict[str, Optional[int]] = {}
        right_unique: dict[str, Optional[int]] = {}

        for i, line in enumerate(left):
            if line in left_unique:
                left_unique[line] = None  # Mark as non-unique
            else:
                left_unique[line] = i

        for i, line in enumerate(right):
            if line in right_unique:
                right_unique[line] = None
            else:
                right_unique[line] = i

        # Lines unique on both sides
        common = []
        for line, left_idx in left_unique.items():
            if left_idx is not None and right_unique.get(line) is not None:
                common.append((left_idx, right_unique[line]))

        common.sort()

        # Longest increasing run of right indices keeps anchors in order
        if common:
            lis = self._find_lis([c[1] for c in common])
            anchors = [common[i] for i in lis]
        else:
            anchors = []

        return self._build_opcodes_from_anchors(left, right, anchors)

    def _find_lis(self, sequence: list[int]) -> list[int]:
        """Find indices of Longest Increasing Subsequence."""
        if not sequence:
            return []

        # tails[k] = smallest ending value of an increasing run of length k+1
        tails: list[int] = []
        tail_indices: list[int] = []
        parent = [-1] * len(sequence)

        for i, val in enumerate(sequence):
            lo, hi = 0, len(tails)
            while lo < hi:
                mid = (lo + hi) // 2
                if tails[mid] < val:
                    lo = mid + 1
                else:
                    hi = mid

            if lo == len(tails):
                tails.append(val)
                tail_indices.append(i)
            else:
                tails[lo] = val
                tail_indices[lo] = i

            parent[i] = tail_indices[lo - 1] if lo > 0 else -1

        result = []
        idx = tail_indices[-1]
        while idx >= 0:
            result.append(idx)
            idx = parent[idx]

        return list(reversed(result))

    def _build_opcodes_from_anchors(
        self,
        left: list[str],
        right: list[str],
        anchors: list[tuple[int, int]]
    ) -> list[Opcode]:
        """Build opcodes using anchor points, diffing the gaps between them."""
        opcodes: list[Opcode] = []

        left_pos = 0
        right_pos = 0

        for left_idx, right_idx in anchors + [(len(left), len(right))]:
            opcodes.extend(self._diff_gap(left, right, left_pos, left_idx, right_pos, right_idx))

            if left_idx < len(left):
                opcodes.append(('equal', left_idx, left_idx + 1, right_idx, right_idx + 1))

            left_pos = left_idx + 1
            right_pos = right_idx + 1

        return opcodes

    def _diff_gap(
        self,
        left: list[str],
        right: list[str],
        i1: int,
        i2: int,
        j1: int,
        j2: int
    ) -> list[Opcode]:
        """Opcodes for the region between two anchors."""
        gap_left = left[i1:i2]
        gap_right = right[j1:j2]

        if gap_left and gap_right:
            matcher = difflib.SequenceMatcher(None, gap_left, gap_right, autojunk=False)
            return [
                (tag, i1 + a1, i1 + a2, j1 + b1, j1 + b2)
                for tag, a1, a2, b1, b2 in matcher.get_opcodes()
            ]
        elif gap_left:
            return [('delete', i1, i2, j1, j1)]
        elif gap_right:
            return [('insert', i1, i1, j1, j2)]
        return []


def build_hunks(
    left: Sequence[str],
    right: Sequence[str],
    context_lines: int = 3,
    algorithm: DiffAlgorithm = DiffAlgorithm.MINIMAL
) -> list[Hunk]:
    """Convenience wrapper around TextDiffEngine.build_hunks."""
    engine = TextDiffEngine(TextCompareOptions(algorithm=algorithm, context_lines=context_lines))
    return engine.build_hunks(left, right)

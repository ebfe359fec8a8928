"""
Diff module for text file comparison.

Provides line alignment and hunk building for the interactive merge.
"""

from ddmerge.core.diff.text_diff import (
    TextDiffEngine,
    DiffAlgorithm,
    TextCompareOptions,
    build_hunks,
)

__all__ = [
    'TextDiffEngine',
    'DiffAlgorithm',
    'TextCompareOptions',
    'build_hunks',
]

"""
Merge module.

Provides the interactive decision loop and the filesystem applier.
"""

from ddmerge.core.merge.applier import Applier
from ddmerge.core.merge.controller import (
    MergeController,
    MergeOptions,
)

__all__ = [
    'Applier',
    'MergeController',
    'MergeOptions',
]

"""
Folder comparison module.

Provides functionality for:
- Recursive directory scanning
- Regex-based exclusion
- Tree-to-tree classification of differences
"""

from ddmerge.core.folder.scanner import (
    FolderScanner,
    ScanOptions,
    compile_exclude_pattern,
)
from ddmerge.core.folder.comparer import (
    FolderComparer,
    CompareOptions,
)

__all__ = [
    # Scanner
    'FolderScanner',
    'ScanOptions',
    'compile_exclude_pattern',
    # Comparer
    'FolderComparer',
    'CompareOptions',
]

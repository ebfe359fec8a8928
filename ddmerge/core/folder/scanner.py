"""
Directory scanner for tree comparison.

Provides deterministic directory traversal with:
- Regex-based exclusion (directories are pruned, not just hidden)
- Binary/text classification from a bounded initial read
- Symlink and special file skipping
- Fail-fast or error-tolerant modes
"""

from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional

from ddmerge.core.errors import PatternError, ScanError
from ddmerge.core.models import ContentClass, FileType, PathEntry
from ddmerge.services.file_io import looks_binary


logger = logging.getLogger(__name__)

ExcludePredicate = Callable[[str], bool]
BinaryPredicate = Callable[[bytes], bool]


def compile_exclude_pattern(side: str, pattern: Optional[str]) -> Optional[ExcludePredicate]:
    """
    Compile an exclusion regex into a path predicate.

    The predicate receives a POSIX relative path and matches anywhere in
    it (``re.search`` semantics).

    Raises:
        PatternError: If the pattern does not compile
    """
    if pattern is None:
        return None

    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise PatternError(side, pattern, str(e)) from e

    def matches(path: str) -> bool:
        return regex.search(path) is not None

    return matches


@dataclass
class ScanOptions:
    """Options for directory scanning."""
    binary_check_size: int = 8192
    ignore_errors: bool = False
    is_binary: BinaryPredicate = looks_binary


class FolderScanner:
    """
    Scans a directory tree into a sorted list of PathEntry.

    Problems that did not stop the scan are kept on the instance:
    ``errors`` for unreadable paths (only when errors are ignored) and
    ``warnings`` for skipped symlinks and special files.
    """

    def __init__(self, options: Optional[ScanOptions] = None):
        self.options = options or ScanOptions()
        self.errors: list[tuple[str, str]] = []
        self.warnings: list[tuple[str, str]] = []

    def scan(
        self,
        root_path: Path | str,
        exclude: Optional[ExcludePredicate] = None
    ) -> list[PathEntry]:
        """
        Scan a directory tree.

        Args:
            root_path: Root directory to scan
            exclude: Predicate over POSIX relative paths; matching
                directories are not descended into

        Returns:
            Entries sorted by relative path segments

        Raises:
            FileNotFoundError: If the root does not exist
            NotADirectoryError: If the root is not a directory
            ScanError: If a path cannot be read and errors are not ignored
        """
        root_path = Path(root_path).resolve()

        if not root_path.exists():
            logger.error(f"FolderScanner - Root path not found: {root_path}")
            raise FileNotFoundError(f"Directory not found: {root_path}")

        if not root_path.is_dir():
            logger.error(f"FolderScanner - Root path is not a directory: {root_path}")
            raise NotADirectoryError(f"Not a directory: {root_path}")

        self.errors = []
        self.warnings = []
        entries: dict[tuple[str, ...], PathEntry] = {}

        def on_walk_error(error: OSError):
            failed = Path(error.filename) if error.filename else root_path
            try:
                rel = failed.relative_to(root_path).parts
            except ValueError:
                rel = ()
            reason = error.strerror or str(error)

            # Nothing sensible can be compared without the root listing
            if not rel:
                raise ScanError(str(root_path), reason) from error

            self._fail("/".join(rel), reason, error)
            entries.pop(rel, None)

        for dirpath, dirnames, filenames in os.walk(root_path, topdown=True, onerror=on_walk_error):
            current_path = Path(dirpath)
            rel_dir = current_path.relative_to(root_path).parts

            # Filter directories in-place to control recursion
            kept_dirs = []
            for dirname in sorted(dirnames):
                rel = rel_dir + (dirname,)
                rel_str = "/".join(rel)

                if exclude and exclude(rel_str):
                    logger.debug(f"FolderScanner - Excluded directory {rel_str}")
                    continue

                entry = self._make_entry(current_path / dirname, rel)
                if entry is None:
                    continue

                entries[rel] = entry
                if entry.is_directory:
                    kept_dirs.append(dirname)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                rel = rel_dir + (filename,)
                rel_str = "/".join(rel)

                if exclude and exclude(rel_str):
                    logger.debug(f"FolderScanner - Excluded file {rel_str}")
                    continue

                entry = self._make_entry(current_path / filename, rel)
                if entry is not None:
                    entries[rel] = entry

        return sorted(entries.values(), key=lambda e: e.relative_path)

    def _make_entry(self, path: Path, rel: tuple[str, ...]) -> Optional[PathEntry]:
        """Stat a path and classify it, or return None if it is skipped."""
        rel_str = "/".join(rel)

        try:
            # Use lstat so symlinks are seen as links
            stat_result = path.lstat()
        except OSError as e:
            self._fail(rel_str, e.strerror or str(e), e)
            return None

        mode = stat_result.st_mode

        if stat.S_ISLNK(mode):
            self._skip(rel_str, "symbolic links are not supported")
            return None

        if stat.S_ISDIR(mode):
            return PathEntry(relative_path=rel, kind=FileType.DIRECTORY)

        if not stat.S_ISREG(mode):
            self._skip(rel_str, "special files are not supported")
            return None

        try:
            with open(path, 'rb') as f:
                head = f.read(self.options.binary_check_size)
        except OSError as e:
            self._fail(rel_str, e.strerror or str(e), e)
            return None

        content = ContentClass.BINARY if self.options.is_binary(head) else ContentClass.TEXT
        return PathEntry(
            relative_path=rel,
            kind=FileType.FILE,
            content=content,
            size=stat_result.st_size,
        )

    def _fail(self, rel_path: str, reason: str, cause: Optional[BaseException] = None) -> None:
        if not self.options.ignore_errors:
            logger.error(f"FolderScanner - Cannot read {rel_path}: {reason}")
            raise ScanError(rel_path, reason) from cause

        self.errors.append((rel_path, reason))
        logger.warning(f"FolderScanner - Ignoring unreadable path {rel_path}: {reason}")

    def _skip(self, rel_path: str, reason: str) -> None:
        self.warnings.append((rel_path, reason))
        logger.warning(f"FolderScanner - Skipping {rel_path}: {reason}")

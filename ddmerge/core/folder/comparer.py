"""
Folder comparison engine.

Pairs two sorted scans into diff entries:
- Presence classification (left only, right only, both)
- Kind mismatch detection
- Size, hash or byte-wise content equality
- Hunk computation for differing text files
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ddmerge.core.diff.text_diff import DiffAlgorithm, TextCompareOptions, TextDiffEngine
from ddmerge.core.errors import ScanError
from ddmerge.core.folder.scanner import ExcludePredicate, FolderScanner, ScanOptions
from ddmerge.core.models import (
    DiffEntry,
    LeftOnly,
    Modified,
    PathEntry,
    RightOnly,
    TypeMismatch,
)
from ddmerge.services.file_io import FileIOService
from ddmerge.services.hashing import HashAlgorithm, HashingService


logger = logging.getLogger(__name__)


@dataclass
class CompareOptions:
    """Options for folder comparison."""
    # Hunk building
    context_lines: int = 3
    algorithm: DiffAlgorithm = DiffAlgorithm.MINIMAL

    # Content equality
    use_hash: bool = True
    hash_algorithm: HashAlgorithm = HashAlgorithm.XXH64
    binary_check_size: int = 8192
    chunk_size: int = 65536

    # Error handling
    ignore_errors: bool = False


class FolderComparer:
    """
    Compares two folder trees.

    Output is ordered by relative path, one entry per differing path.
    Identical files and directories present on both sides are dropped.
    """

    def __init__(
        self,
        options: Optional[CompareOptions] = None,
        file_io: Optional[FileIOService] = None,
        hashing: Optional[HashingService] = None
    ):
        self.options = options or CompareOptions()
        self.file_io = file_io or FileIOService(
            binary_check_size=self.options.binary_check_size,
            chunk_size=self.options.chunk_size,
        )
        self.hashing = hashing or HashingService(
            default_algorithm=self.options.hash_algorithm,
            chunk_size=self.options.chunk_size,
        )
        self.engine = TextDiffEngine(TextCompareOptions(
            algorithm=self.options.algorithm,
            context_lines=self.options.context_lines,
        ))
        self.errors: list[tuple[str, str]] = []
        self.warnings: list[tuple[str, str]] = []

    def compare_trees(
        self,
        left_root: Path | str,
        right_root: Path | str,
        left_exclude: Optional[ExcludePredicate] = None,
        right_exclude: Optional[ExcludePredicate] = None
    ) -> list[DiffEntry]:
        """Scan both roots and compare the results."""
        scan_options = ScanOptions(
            binary_check_size=self.options.binary_check_size,
            ignore_errors=self.options.ignore_errors,
        )

        self.errors = []
        self.warnings = []

        left_scanner = FolderScanner(scan_options)
        left_entries = left_scanner.scan(left_root, left_exclude)
        right_scanner = FolderScanner(scan_options)
        right_entries = right_scanner.scan(right_root, right_exclude)

        logger.info(
            f"FolderComparer - Scanned {len(left_entries)} left and "
            f"{len(right_entries)} right entries"
        )

        for side, scanner in (("left", left_scanner), ("right", right_scanner)):
            self.errors.extend((f"{side}:{path}", reason) for path, reason in scanner.errors)
            self.warnings.extend((f"{side}:{path}", reason) for path, reason in scanner.warnings)

        return self._compare(Path(left_root).resolve(), Path(right_root).resolve(),
                             left_entries, right_entries)

    def compare(
        self,
        left_root: Path | str,
        right_root: Path | str,
        left_entries: list[PathEntry],
        right_entries: list[PathEntry]
    ) -> list[DiffEntry]:
        """
        Compare two scans of the given roots.

        Args:
            left_root: Root the left entries are relative to
            right_root: Root the right entries are relative to
            left_entries: Sorted left scan
            right_entries: Sorted right scan

        Returns:
            Diff entries ordered by relative path

        Raises:
            ScanError: If a file cannot be read and errors are not ignored
        """
        self.errors = []
        self.warnings = []
        return self._compare(Path(left_root), Path(right_root), left_entries, right_entries)

    def _compare(
        self,
        left_root: Path,
        right_root: Path,
        left_entries: list[PathEntry],
        right_entries: list[PathEntry]
    ) -> list[DiffEntry]:
        results: list[DiffEntry] = []
        i = j = 0

        # Merge-walk over the two sorted listings
        while i < len(left_entries) or j < len(right_entries):
            left = left_entries[i] if i < len(left_entries) else None
            right = right_entries[j] if j < len(right_entries) else None

            if right is None or (left is not None and left.relative_path < right.relative_path):
                results.append(LeftOnly(left))
                i += 1
            elif left is None or right.relative_path < left.relative_path:
                results.append(RightOnly(right))
                j += 1
            else:
                entry = self._compare_pair(left_root, right_root, left, right)
                if entry is not None:
                    results.append(entry)
                i += 1
                j += 1

        logger.info(f"FolderComparer - Found {len(results)} differing paths")
        return results

    def _compare_pair(
        self,
        left_root: Path,
        right_root: Path,
        left: PathEntry,
        right: PathEntry
    ) -> Optional[DiffEntry]:
        """Classify a path present on both sides, or return None if identical."""
        if left.kind != right.kind:
            return TypeMismatch(left.relative_path, left.kind, right.kind,
                                binary=left.is_binary or right.is_binary)

        if left.is_directory:
            return None

        left_path = left_root.joinpath(*left.relative_path)
        right_path = right_root.joinpath(*right.relative_path)

        try:
            if self._files_equal(left, right, left_path, right_path):
                return None
        except OSError as e:
            self._fail(left.path_str, e.strerror or str(e), e)
            return None

        if left.is_binary or right.is_binary:
            return Modified(left.relative_path, binary=True)

        left_read = self.file_io.read_file(left_path)
        right_read = self.file_io.read_file(right_path)

        if left_read.is_binary or right_read.is_binary:
            return Modified(left.relative_path, binary=True)

        for read in (left_read, right_read):
            if not read.success:
                self._fail(left.path_str, read.error or "unreadable")
                return None

        hunks = self.engine.build_hunks(left_read.content.lines, right_read.content.lines)
        if not hunks:
            # Bytes differ but no line does; offer the pair as whole files
            reason = "content differs but no line-level difference was found"
            self.warnings.append((left.path_str, reason))
            logger.warning(f"FolderComparer - Treating {left.path_str} as binary: {reason}")
            return Modified(left.relative_path, binary=True)

        return Modified(
            left.relative_path,
            hunks=tuple(hunks),
            left_encoding=left_read.content.encoding,
            right_encoding=right_read.content.encoding,
        )

    def _files_equal(
        self,
        left: PathEntry,
        right: PathEntry,
        left_path: Path,
        right_path: Path
    ) -> bool:
        """Check whether two files have identical bytes."""
        if left.size != right.size:
            return False

        if self.options.use_hash:
            return self.hashing.compare_files_by_hash(left_path, right_path)
        return self.file_io.compare_files_binary(left_path, right_path)

    def _fail(self, rel_path: str, reason: str, cause: Optional[BaseException] = None) -> None:
        if not self.options.ignore_errors:
            logger.error(f"FolderComparer - Cannot read {rel_path}: {reason}")
            raise ScanError(rel_path, reason) from cause

        self.errors.append((rel_path, reason))
        logger.warning(f"FolderComparer - Ignoring unreadable file {rel_path}: {reason}")

"""Tree comparison tests.

Checks the four-way classification, the identical-content filter, and
hunk computation for modified text files.
"""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path
from unittest import mock

from ddmerge.core.diff.text_diff import TextDiffEngine
from ddmerge.core.errors import ScanError
from ddmerge.core.folder.comparer import CompareOptions, FolderComparer
from ddmerge.core.folder.scanner import FolderScanner, compile_exclude_pattern
from ddmerge.core.models import (
    DiffLineType,
    FileType,
    LeftOnly,
    Modified,
    RightOnly,
    TypeMismatch,
)
from ddmerge.services.file_io import ReadResult


class FolderComparerTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.left = base / "left"
        self.right = base / "right"
        self.left.mkdir()
        self.right.mkdir()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _write(self, root: Path, rel: str, data: bytes | str) -> Path:
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            data = data.encode("utf-8")
        path.write_bytes(data)
        return path

    def test_disjoint_trees_give_only_single_side_entries(self) -> None:
        self._write(self.left, "l1.txt", "a")
        self._write(self.left, "ldir/l2.txt", "b")
        self._write(self.right, "r1.txt", "c")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(
            [(type(e).__name__, e.path_str) for e in entries],
            [
                ("LeftOnly", "l1.txt"),
                ("LeftOnly", "ldir"),
                ("LeftOnly", "ldir/l2.txt"),
                ("RightOnly", "r1.txt"),
            ],
        )
        left_only = [e for e in entries if isinstance(e, LeftOnly)]
        self.assertEqual(len(left_only), 3)
        self.assertTrue(left_only[1].entry.is_directory)

    def test_identical_text_and_binary_files_are_dropped(self) -> None:
        for root in (self.left, self.right):
            self._write(root, "same.txt", "one\ntwo\n")
            self._write(root, "same.bin", b"\x00\x01\x02" * 100)
            (root / "emptydir").mkdir()

        self.assertEqual(FolderComparer().compare_trees(self.left, self.right), [])

    def test_identical_without_hash_uses_byte_comparison(self) -> None:
        for root in (self.left, self.right):
            self._write(root, "same.txt", "x" * 1000)
        self._write(self.left, "diff.txt", "abc\n")
        self._write(self.right, "diff.txt", "abd\n")

        comparer = FolderComparer(CompareOptions(use_hash=False, chunk_size=64))
        entries = comparer.compare_trees(self.left, self.right)

        self.assertEqual([e.path_str for e in entries], ["diff.txt"])

    def test_modified_text_file_carries_hunks(self) -> None:
        self._write(self.left, "f.txt", "a\nb\nc\n")
        self._write(self.right, "f.txt", "a\nx\nc\n")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(len(entries), 1)
        entry = entries[0]
        self.assertIsInstance(entry, Modified)
        self.assertFalse(entry.binary)
        self.assertEqual(len(entry.hunks), 1)
        hunk = entry.hunks[0]
        self.assertEqual(
            [(line.line_type, line.content) for line in hunk.lines],
            [
                (DiffLineType.CONTEXT, "a\n"),
                (DiffLineType.REMOVED, "b\n"),
                (DiffLineType.ADDED, "x\n"),
                (DiffLineType.CONTEXT, "c\n"),
            ],
        )

    def test_binary_difference_has_no_hunks(self) -> None:
        self._write(self.left, "img.bin", b"\x00left")
        self._write(self.right, "img.bin", b"\x00right")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(entries, [Modified(("img.bin",), binary=True)])

    def test_text_against_binary_is_a_binary_difference(self) -> None:
        self._write(self.left, "mixed", "plain text\n")
        self._write(self.right, "mixed", b"\x00\x00\x00")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(len(entries), 1)
        self.assertTrue(entries[0].binary)

    def test_file_against_directory_is_type_mismatch(self) -> None:
        self._write(self.left, "p", "file\n")
        self._write(self.right, "p/inner.txt", "inner\n")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(entries[0], TypeMismatch(("p",), FileType.FILE, FileType.DIRECTORY))
        self.assertIsInstance(entries[1], RightOnly)
        self.assertEqual(entries[1].path_str, "p/inner.txt")

    def test_byte_order_mark_is_a_line_difference(self) -> None:
        self._write(self.left, "f.txt", b"\xef\xbb\xbfhello\n")
        self._write(self.right, "f.txt", b"hello\n")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(len(entries), 1)
        self.assertFalse(entries[0].binary)
        self.assertEqual(
            [(line.line_type, line.content) for line in entries[0].hunks[0].lines],
            [
                (DiffLineType.REMOVED, "\ufeffhello\n"),
                (DiffLineType.ADDED, "hello\n"),
            ],
        )

    def test_same_text_in_different_encodings_is_reported(self) -> None:
        self._write(self.left, "f.txt", "café\n".encode("latin-1"))
        self._write(self.right, "f.txt", "café\n".encode("utf-8"))

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual([e.path_str for e in entries], ["f.txt"])
        self.assertEqual(len(entries[0].hunks), 1)
        self.assertEqual(entries[0].right_encoding, "utf-8")

    def test_bytes_without_line_differences_fall_back_to_whole_files(self) -> None:
        self._write(self.left, "f.txt", "a\n")
        self._write(self.right, "f.txt", "b\n")
        comparer = FolderComparer()

        with mock.patch.object(comparer.engine, "build_hunks", return_value=[]):
            entries = comparer.compare_trees(self.left, self.right)

        self.assertEqual(entries, [Modified(("f.txt",), binary=True)])
        self.assertEqual([path for path, _ in comparer.warnings], ["f.txt"])

    def test_binary_file_against_directory_is_marked_binary(self) -> None:
        self._write(self.left, "p", b"\x00\x01\x02")
        (self.right / "p").mkdir()
        self._write(self.left, "q", "text\n")
        (self.right / "q").mkdir()

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual(
            [(e.path_str, e.binary) for e in entries],
            [("p", True), ("q", False)],
        )

    def test_output_is_ordered_by_relative_path(self) -> None:
        for name in ("c.txt", "a.txt", "b/x.txt"):
            self._write(self.left, name, "l\n")
            self._write(self.right, name, "r\n")

        entries = FolderComparer().compare_trees(self.left, self.right)

        self.assertEqual([e.path_str for e in entries], ["a.txt", "b/x.txt", "c.txt"])

    def test_hunks_reconstruct_both_sides(self) -> None:
        left_text = "".join(f"line {i}\n" for i in range(40))
        right_text = left_text.replace("line 5\n", "five\n").replace("line 30\n", "")
        self._write(self.left, "f.txt", left_text)
        self._write(self.right, "f.txt", right_text)

        entry = FolderComparer().compare_trees(self.left, self.right)[0]
        left_lines = left_text.splitlines(keepends=True)
        right_lines = right_text.splitlines(keepends=True)

        self.assertEqual(len(entry.hunks), 2)
        self.assertEqual(TextDiffEngine.reconstruct_right(left_lines, entry.hunks), right_lines)
        self.assertEqual(TextDiffEngine.reconstruct_left(right_lines, entry.hunks), left_lines)

    def test_excluded_paths_are_not_compared(self) -> None:
        self._write(self.left, "build/out.o", b"\x00obj")
        self._write(self.left, "keep.txt", "k\n")
        self._write(self.right, "keep.txt", "k\n")

        entries = FolderComparer().compare_trees(
            self.left,
            self.right,
            left_exclude=compile_exclude_pattern("left", r"^build$"),
        )

        self.assertEqual(entries, [])

    def test_compare_accepts_prescanned_entries(self) -> None:
        self._write(self.left, "f.txt", "a\n")
        self._write(self.right, "f.txt", "b\n")
        scanner = FolderScanner()

        entries = FolderComparer().compare(
            self.left, self.right, scanner.scan(self.left), scanner.scan(self.right)
        )

        self.assertEqual([e.path_str for e in entries], ["f.txt"])

    def test_unreadable_text_raises_scan_error_unless_ignored(self) -> None:
        self._write(self.left, "f.txt", "a\n")
        self._write(self.right, "f.txt", "b\n")
        comparer = FolderComparer()
        comparer.file_io.read_file = lambda path: _failed_read()

        with self.assertRaises(ScanError):
            comparer.compare_trees(self.left, self.right)

        tolerant = FolderComparer(CompareOptions(ignore_errors=True))
        tolerant.file_io.read_file = lambda path: _failed_read()

        self.assertEqual(tolerant.compare_trees(self.left, self.right), [])
        self.assertEqual([path for path, _ in tolerant.errors], ["f.txt"])


def _failed_read() -> ReadResult:
    return ReadResult(success=False, error="Permission denied")


if __name__ == "__main__":
    unittest.main()

"""File I/O service behavior tests.

Covers binary sniffing, lossless reads, and the atomic
write/copy/replace/delete helpers the applier relies on.
"""

from __future__ import annotations

import os
import stat
import tempfile
import unittest
from pathlib import Path

from ddmerge.services.file_io import (
    FileIOService,
    decode_for_display,
    looks_binary,
    split_lines_preserve_endings,
)


class LooksBinaryTests(unittest.TestCase):
    def test_empty_chunk_is_text(self) -> None:
        self.assertFalse(looks_binary(b""))

    def test_nul_byte_marks_binary(self) -> None:
        self.assertTrue(looks_binary(b"hello\x00world"))

    def test_known_signature_marks_binary(self) -> None:
        self.assertTrue(looks_binary(b"\x89PNG\r\n\x1a\n rest"))

    def test_plain_text_is_not_binary(self) -> None:
        self.assertFalse(looks_binary(b"def main():\n    return 0\n"))

    def test_mostly_control_bytes_mark_binary(self) -> None:
        self.assertTrue(looks_binary(bytes(range(1, 8)) * 10))


class LineSplittingTests(unittest.TestCase):
    def test_keeps_each_terminator_style(self) -> None:
        self.assertEqual(
            split_lines_preserve_endings("a\nb\r\nc\rd"),
            ["a\n", "b\r\n", "c\r", "d"],
        )

    def test_empty_content_has_no_lines(self) -> None:
        self.assertEqual(split_lines_preserve_endings(""), [])


class ReadFileTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.service = FileIOService()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _read(self, data: bytes):
        path = self.root / "f.txt"
        path.write_bytes(data)
        result = self.service.read_file(path)
        self.assertTrue(result.success, result.error)
        return result.content

    def _roundtrip(self, data: bytes) -> bytes:
        return self.service.encode_lines(self._read(data).lines)

    def test_reads_utf8_lines_with_endings(self) -> None:
        content = self._read("héllo\nwörld".encode("utf-8"))

        self.assertEqual(content.encoding, "utf-8")
        self.assertEqual(content.lines, ["héllo\n", "wörld"])

    def test_utf8_bom_stays_in_the_first_line(self) -> None:
        data = b"\xef\xbb\xbfa\nb\n"

        content = self._read(data)

        self.assertEqual(content.encoding, "utf-8")
        self.assertEqual(content.lines, ["\ufeffa\n", "b\n"])
        self.assertEqual(self._roundtrip(data), data)

    def test_files_with_and_without_bom_read_differently(self) -> None:
        with_bom = self._read(b"\xef\xbb\xbfhello\n").lines
        without_bom = self._read(b"hello\n").lines

        self.assertNotEqual(with_bom, without_bom)

    def test_same_text_in_different_encodings_reads_differently(self) -> None:
        latin = self._read("café\n".encode("latin-1")).lines
        utf8 = self._read("café\n".encode("utf-8")).lines

        self.assertNotEqual(latin, utf8)

    def test_non_utf8_bytes_roundtrip_exactly(self) -> None:
        data = "crème brûlée, café au lait\n".encode("latin-1") * 20
        self.assertEqual(self._roundtrip(data), data)

    def test_lines_are_displayed_with_a_given_encoding(self) -> None:
        line = self._read("crème brûlée\n".encode("latin-1")).lines[0]

        self.assertEqual(decode_for_display(line, "latin-1"), "crème brûlée\n")
        self.assertEqual(decode_for_display(line), "cr\ufffdme br\ufffdl\ufffde\n")

    def test_crlf_and_missing_final_newline_roundtrip_exactly(self) -> None:
        data = b"one\r\ntwo\r\nthree"
        self.assertEqual(self._roundtrip(data), data)

    def test_binary_file_is_reported_not_decoded(self) -> None:
        path = self.root / "f.bin"
        path.write_bytes(b"\x00\x01\x02")

        result = self.service.read_file(path)

        self.assertFalse(result.success)
        self.assertTrue(result.is_binary)

    def test_missing_file_is_an_error_result(self) -> None:
        result = self.service.read_file(self.root / "missing.txt")

        self.assertFalse(result.success)
        self.assertIn("Not a file", result.error)

    def test_chunked_comparison(self) -> None:
        service = FileIOService(chunk_size=4)
        a = self.root / "a"
        b = self.root / "b"
        c = self.root / "c"
        a.write_bytes(b"0123456789")
        b.write_bytes(b"0123456789")
        c.write_bytes(b"0123456780")

        self.assertTrue(service.compare_files_binary(a, b))
        self.assertFalse(service.compare_files_binary(a, c))


class AtomicWriteTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()
        self.service = FileIOService()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _leftovers(self, directory: Path) -> list[str]:
        return sorted(p.name for p in directory.iterdir() if p.name.startswith("."))

    def test_write_bytes_replaces_content_and_keeps_mode(self) -> None:
        path = self.root / "script.sh"
        path.write_bytes(b"old\n")
        os.chmod(path, 0o755)

        result = self.service.write_bytes(path, b"new\n")

        self.assertTrue(result.success)
        self.assertEqual(result.bytes_written, 4)
        self.assertEqual(path.read_bytes(), b"new\n")
        self.assertEqual(stat.S_IMODE(path.stat().st_mode), 0o755)
        self.assertEqual(self._leftovers(self.root), [])

    def test_copy_atomic_copies_file_and_creates_parents(self) -> None:
        source = self.root / "src.txt"
        source.write_bytes(b"payload")
        dest = self.root / "deep" / "er" / "dst.txt"

        result = self.service.copy_atomic(source, dest)

        self.assertTrue(result.success)
        self.assertEqual(dest.read_bytes(), b"payload")
        self.assertEqual(self._leftovers(dest.parent), [])

    def test_copy_atomic_copies_directory_tree(self) -> None:
        source = self.root / "tree"
        (source / "sub").mkdir(parents=True)
        (source / "a.txt").write_text("a", encoding="utf-8")
        (source / "sub" / "b.txt").write_text("b", encoding="utf-8")
        dest = self.root / "copy"

        result = self.service.copy_atomic(source, dest)

        self.assertTrue(result.success)
        self.assertEqual((dest / "a.txt").read_text(encoding="utf-8"), "a")
        self.assertEqual((dest / "sub" / "b.txt").read_text(encoding="utf-8"), "b")
        self.assertEqual(result.bytes_written, 2)

    def test_replace_atomic_swaps_directory_for_file(self) -> None:
        source = self.root / "file"
        source.write_bytes(b"winner")
        dest = self.root / "target"
        (dest / "nested").mkdir(parents=True)
        (dest / "nested" / "x.txt").write_text("x", encoding="utf-8")

        result = self.service.replace_atomic(source, dest)

        self.assertTrue(result.success)
        self.assertTrue(dest.is_file())
        self.assertEqual(dest.read_bytes(), b"winner")
        self.assertEqual(self._leftovers(self.root), [])

    def test_replace_atomic_keeps_old_content_when_source_is_missing(self) -> None:
        dest = self.root / "target.txt"
        dest.write_bytes(b"keep me")

        result = self.service.replace_atomic(self.root / "missing", dest)

        self.assertFalse(result.success)
        self.assertEqual(dest.read_bytes(), b"keep me")

    def test_delete_atomic_removes_tree(self) -> None:
        victim = self.root / "victim"
        (victim / "sub").mkdir(parents=True)
        (victim / "sub" / "f.txt").write_text("f", encoding="utf-8")

        result = self.service.delete_atomic(victim)

        self.assertTrue(result.success)
        self.assertFalse(victim.exists())
        self.assertEqual(self._leftovers(self.root), [])

    def test_delete_atomic_reports_missing_path(self) -> None:
        result = self.service.delete_atomic(self.root / "missing")

        self.assertFalse(result.success)
        self.assertIsNotNone(result.error)


if __name__ == "__main__":
    unittest.main()

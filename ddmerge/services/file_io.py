"""
File I/O service for reading and writing files safely.

Handles:
- Binary sniffing
- Lossless text reads, with encoding detection for display
- Line splitting with preserved line endings
- Atomic writes, copies, replacements and deletions
"""

from __future__ import annotations

import codecs
import os
import shutil
import tempfile
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import chardet


logger = logging.getLogger(__name__)

# Every text file is decoded with this codec; undecodable bytes become
# surrogate escapes and a BOM stays in the first line as U+FEFF.
TEXT_CODEC = 'utf-8'
TEXT_ERRORS = 'surrogateescape'


@dataclass
class FileContent:
    """
    Decoded file content.

    ``lines`` always come from the lossless decoding above. ``encoding``
    is the detected encoding of the file, used only to show its lines.
    """
    lines: list[str]
    encoding: str
    size: int


@dataclass
class ReadResult:
    """Result of a file read operation."""
    success: bool
    content: Optional[FileContent] = None
    error: Optional[str] = None
    is_binary: bool = False


@dataclass
class WriteResult:
    """Result of a file write operation."""
    success: bool
    bytes_written: int = 0
    error: Optional[str] = None


# Binary file signatures (magic bytes)
BINARY_SIGNATURES = [
    b'\x89PNG',        # PNG
    b'\xff\xd8\xff',   # JPEG
    b'GIF8',           # GIF
    b'PK\x03\x04',     # ZIP
    b'\x1f\x8b',       # GZIP
    b'%PDF',           # PDF
    b'\x7fELF',        # ELF
]


def looks_binary(chunk: bytes) -> bool:
    """
    Decide whether an initial chunk of a file looks binary.

    Default ``is_binary`` predicate for the scanner.
    """
    if not chunk:
        return False

    # Null bytes are a strong indicator
    if b'\x00' in chunk:
        return True

    for sig in BINARY_SIGNATURES:
        if chunk.startswith(sig):
            return True

    # Ratio of control bytes
    non_text = sum(1 for b in chunk if b < 9 or (13 < b < 32))
    return non_text / len(chunk) > 0.3


def split_lines_preserve_endings(content: str) -> list[str]:
    """Split content into lines, preserving \\n, \\r\\n and \\r endings."""
    lines = []
    current = []

    i = 0
    while i < len(content):
        char = content[i]
        current.append(char)

        if char == '\n':
            lines.append(''.join(current))
            current = []
        elif char == '\r':
            if i + 1 < len(content) and content[i + 1] == '\n':
                current.append('\n')
                i += 1
            lines.append(''.join(current))
            current = []

        i += 1

    if current:
        lines.append(''.join(current))

    return lines


def decode_for_display(text: str, encoding: str = TEXT_CODEC) -> str:
    """
    Turn losslessly decoded text into readable text.

    The original bytes are recovered and decoded with the file's detected
    encoding; bytes that still do not decode show as U+FFFD.
    """
    raw = text.encode(TEXT_CODEC, errors=TEXT_ERRORS)
    return raw.decode(encoding, errors='replace')


class FileIOService:
    """Service for safe file I/O operations."""

    def __init__(
        self,
        default_encoding: str = 'utf-8',
        binary_check_size: int = 8192,
        chunk_size: int = 65536
    ):
        self.default_encoding = default_encoding
        self.binary_check_size = binary_check_size
        self.chunk_size = chunk_size

    # -------------------------------------------------------------------------
    # Reading
    # -------------------------------------------------------------------------

    def read_file(self, path: Path | str) -> ReadResult:
        """
        Read a text file as lines.

        Two files have equal lines exactly when they have equal bytes, and
        encoding the lines again reproduces the original bytes.

        Args:
            path: Path to the file

        Returns:
            ReadResult with content or error information
        """
        path = Path(path)

        if not path.is_file():
            return ReadResult(success=False, error=f"Not a file: {path}")

        try:
            raw_content = path.read_bytes()
        except PermissionError:
            return ReadResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return ReadResult(success=False, error=f"OS error: {e}")

        if looks_binary(raw_content[:self.binary_check_size]):
            return ReadResult(success=False, is_binary=True,
                              error="File appears to be binary")

        content = raw_content.decode(TEXT_CODEC, errors=TEXT_ERRORS)

        return ReadResult(
            success=True,
            content=FileContent(
                lines=split_lines_preserve_endings(content),
                encoding=self._detect_encoding(raw_content),
                size=len(raw_content),
            )
        )

    def encode_lines(self, lines: list[str]) -> bytes:
        """Encode lines from ``read_file`` back into their original bytes."""
        return ''.join(lines).encode(TEXT_CODEC, errors=TEXT_ERRORS)

    def compare_files_binary(self, path1: Path | str, path2: Path | str) -> bool:
        """Compare two files chunk by chunk."""
        path1, path2 = Path(path1), Path(path2)

        if path1.stat().st_size != path2.stat().st_size:
            return False

        with open(path1, 'rb') as f1, open(path2, 'rb') as f2:
            while True:
                chunk1 = f1.read(self.chunk_size)
                chunk2 = f2.read(self.chunk_size)

                if chunk1 != chunk2:
                    return False

                if not chunk1:  # EOF
                    return True

    # -------------------------------------------------------------------------
    # Writing
    # -------------------------------------------------------------------------

    def write_bytes(self, path: Path | str, data: bytes) -> WriteResult:
        """
        Atomically replace a file's content.

        Writes to a temporary file in the same directory, then renames it
        over the destination. An existing destination keeps its mode.
        """
        path = Path(path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)

            fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
            try:
                with os.fdopen(fd, 'wb') as f:
                    f.write(data)
                if path.exists():
                    shutil.copymode(path, temp_path)
                os.replace(temp_path, path)
            except BaseException:
                if os.path.exists(temp_path):
                    os.unlink(temp_path)
                raise

            return WriteResult(success=True, bytes_written=len(data))

        except PermissionError:
            return WriteResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return WriteResult(success=False, error=f"OS error: {e}")

    def copy_atomic(self, source: Path | str, dest: Path | str) -> WriteResult:
        """
        Copy a file or directory tree to a destination that does not exist yet.

        The copy is staged beside the destination and renamed into place,
        so a partial copy is never visible under the destination name.
        """
        source, dest = Path(source), Path(dest)

        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            staged = self._stage_copy(source, dest)
            try:
                os.rename(staged, dest)
            except BaseException:
                self._remove_tree(staged)
                raise
            return WriteResult(success=True, bytes_written=self._tree_size(dest))

        except PermissionError:
            return WriteResult(success=False, error=f"Permission denied: {dest}")
        except (OSError, shutil.Error) as e:
            return WriteResult(success=False, error=f"OS error: {e}")

    def replace_atomic(self, source: Path | str, dest: Path | str) -> WriteResult:
        """
        Replace ``dest`` (file or directory) with a copy of ``source``.

        The old destination is moved aside before the staged copy is
        renamed in, and restored if that rename fails.
        """
        source, dest = Path(source), Path(dest)

        try:
            staged = self._stage_copy(source, dest)
        except PermissionError:
            return WriteResult(success=False, error=f"Permission denied: {dest}")
        except (OSError, shutil.Error) as e:
            return WriteResult(success=False, error=f"OS error: {e}")

        aside = self._sibling(dest, "old")
        try:
            os.rename(dest, aside)
        except OSError as e:
            self._remove_tree(staged)
            return WriteResult(success=False, error=f"OS error: {e}")

        try:
            os.rename(staged, dest)
        except OSError as e:
            os.rename(aside, dest)
            self._remove_tree(staged)
            return WriteResult(success=False, error=f"OS error: {e}")

        self._remove_tree(aside)
        return WriteResult(success=True, bytes_written=self._tree_size(dest))

    def delete_atomic(self, path: Path | str) -> WriteResult:
        """
        Delete a file or directory tree.

        The path is renamed out of the way first, so it disappears in one
        step even when the recursive removal that follows is slow.
        """
        path = Path(path)
        aside = self._sibling(path, "del")

        try:
            os.rename(path, aside)
        except PermissionError:
            return WriteResult(success=False, error=f"Permission denied: {path}")
        except OSError as e:
            return WriteResult(success=False, error=f"OS error: {e}")

        self._remove_tree(aside)
        return WriteResult(success=True)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _detect_encoding(self, raw_content: bytes) -> str:
        """Detect the encoding used to display raw content."""
        if not raw_content:
            return self.default_encoding

        # Valid UTF-8 (with or without BOM) wins over statistical detection
        try:
            raw_content.decode('utf-8')
            return 'utf-8'
        except UnicodeDecodeError:
            pass

        result = chardet.detect(raw_content)
        if result['confidence'] > 0.7 and result['encoding']:
            encoding = result['encoding'].lower()
            if encoding == 'ascii':
                return 'utf-8'  # ASCII is subset of UTF-8
            try:
                return codecs.lookup(encoding).name
            except LookupError:
                logger.debug(f"FileIOService - Unknown detected encoding {encoding}")

        return self.default_encoding

    def _stage_copy(self, source: Path, dest: Path) -> Path:
        """Copy source next to dest under a temporary name."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        staged = self._sibling(dest, "new")
        try:
            if source.is_dir():
                shutil.copytree(source, staged, symlinks=True)
            else:
                shutil.copy2(source, staged)
        except BaseException:
            self._remove_tree(staged)
            raise
        return staged

    def _sibling(self, path: Path, tag: str) -> Path:
        return path.parent / f".{path.name}.ddmerge-{tag}-{uuid.uuid4().hex[:8]}"

    def _remove_tree(self, path: Path) -> None:
        """Remove a temporary file or directory, logging leftovers."""
        try:
            if path.is_dir() and not path.is_symlink():
                shutil.rmtree(path)
            elif os.path.lexists(path):
                path.unlink()
        except OSError as e:
            logger.warning(f"FileIOService - Could not remove temporary path {path}: {e}")

    def _tree_size(self, path: Path) -> int:
        if path.is_file():
            return path.stat().st_size
        total = 0
        for root, _dirs, files in os.walk(path):
            for name in files:
                try:
                    total += (Path(root) / name).stat().st_size
                except OSError:
                    continue
        return total

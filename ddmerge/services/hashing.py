"""
Hashing service for file content equality checks.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Optional

import xxhash


class HashAlgorithm(Enum):
    """Supported hash algorithms."""
    SHA256 = auto()
    XXH64 = auto()  # Fast non-cryptographic hash

    @classmethod
    def from_string(cls, value: str) -> 'HashAlgorithm':
        """Create from a case-insensitive name."""
        try:
            return cls[value.upper()]
        except KeyError:
            raise ValueError(f"Unknown hash algorithm: {value}") from None


@dataclass
class HashResult:
    """Result of a hash operation."""
    algorithm: HashAlgorithm
    hash_hex: str
    file_size: int

    def matches(self, other: 'HashResult') -> bool:
        """Check if this hash matches another."""
        return (self.algorithm == other.algorithm and
                self.file_size == other.file_size and
                self.hash_hex == other.hash_hex)


class HashingService:
    """Service for computing file hashes."""

    def __init__(
        self,
        default_algorithm: HashAlgorithm = HashAlgorithm.XXH64,
        chunk_size: int = 65536
    ):
        self.default_algorithm = default_algorithm
        self.chunk_size = chunk_size

    def hash_file(
        self,
        path: Path | str,
        algorithm: Optional[HashAlgorithm] = None
    ) -> HashResult:
        """
        Compute hash of a file.

        Raises:
            OSError: If the file cannot be read
        """
        path = Path(path)
        algorithm = algorithm or self.default_algorithm
        hasher = self._create_hasher(algorithm)

        file_size = 0
        with open(path, 'rb') as f:
            while chunk := f.read(self.chunk_size):
                hasher.update(chunk)
                file_size += len(chunk)

        return HashResult(
            algorithm=algorithm,
            hash_hex=hasher.hexdigest(),
            file_size=file_size,
        )

    def compare_files_by_hash(
        self,
        path1: Path | str,
        path2: Path | str,
        algorithm: Optional[HashAlgorithm] = None
    ) -> bool:
        """Compare two files by their hash values."""
        hash1 = self.hash_file(path1, algorithm)
        hash2 = self.hash_file(path2, algorithm)
        return hash1.matches(hash2)

    def _create_hasher(self, algorithm: HashAlgorithm):
        if algorithm == HashAlgorithm.XXH64:
            return xxhash.xxh64()
        return hashlib.sha256()

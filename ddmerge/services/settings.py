"""
Run settings.

Settings are built once from the command line and are never persisted.
"""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Optional

from ddmerge.services.hashing import HashAlgorithm


DIFF_ALGORITHMS = ('minimal', 'myers', 'patience')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR')

# Equality checks for same-size files; 'bytes' compares them chunk by chunk
CONTENT_CHECKS = ('xxh64', 'sha256', 'bytes')


@dataclass
class ComparisonSettings:
    """Settings for tree comparison and hunk building."""
    context_lines: int = 3
    algorithm: str = 'minimal'
    binary_check_size: int = 8192

    # Content equality for same-size files
    use_hash: bool = True
    hash_algorithm: HashAlgorithm = HashAlgorithm.XXH64


@dataclass
class MergeSettings:
    """Settings for the interactive merge."""
    dry_run: bool = False
    skip_binary: bool = False
    ignore_errors: bool = False
    confirm_destructive: bool = False


@dataclass
class ApplicationSettings:
    """Main settings container."""
    comparison: ComparisonSettings = field(default_factory=ComparisonSettings)
    merge: MergeSettings = field(default_factory=MergeSettings)

    exclude_left: Optional[str] = None
    exclude_right: Optional[str] = None

    use_color: bool = True
    log_level: str = 'WARNING'
    log_file: Optional[str] = None

    @classmethod
    def from_namespace(cls, args: argparse.Namespace) -> 'ApplicationSettings':
        """Build settings from parsed command-line arguments."""
        comparison = ComparisonSettings(
            context_lines=args.context,
            algorithm=args.diff_algorithm,
        )
        content_check = args.content_check
        if content_check == 'bytes':
            comparison.use_hash = False
        else:
            comparison.hash_algorithm = HashAlgorithm.from_string(content_check)

        # Skipping binary files means their read errors are not fatal either
        merge = MergeSettings(
            dry_run=args.dry_run,
            skip_binary=args.skip_binary,
            ignore_errors=args.ignore_errors or args.skip_binary,
            confirm_destructive=args.confirm_destructive,
        )

        return cls(
            comparison=comparison,
            merge=merge,
            exclude_left=args.exclude_regex_left,
            exclude_right=args.exclude_regex_right,
            use_color=not args.no_color,
            log_level=args.log_level,
            log_file=args.log_file,
        )

    def validate(self) -> None:
        """
        Check values that argparse cannot check on its own.

        Raises:
            ValueError: If a setting is out of range
        """
        if self.comparison.context_lines < 0:
            raise ValueError(
                f"Context lines must not be negative: {self.comparison.context_lines}"
            )
        if self.comparison.algorithm not in DIFF_ALGORITHMS:
            raise ValueError(f"Unknown diff algorithm: {self.comparison.algorithm}")
        if self.comparison.binary_check_size <= 0:
            raise ValueError(
                f"Binary check size must be positive: {self.comparison.binary_check_size}"
            )
        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")

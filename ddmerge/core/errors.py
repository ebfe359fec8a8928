"""
Error taxonomy for comparison and merge operations.

- ScanError and PatternError are fatal to the whole run
- ApplyError aborts the current entry only
- DecisionInputError is recovered locally by re-prompting
"""

from __future__ import annotations

from typing import Optional, Sequence


class DDMergeError(Exception):
    """Base class for all ddmerge errors."""


class ScanError(DDMergeError):
    """A path in one of the trees could not be read."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot read {path}: {reason}")


class PatternError(DDMergeError):
    """An exclusion pattern failed to compile."""

    def __init__(self, side: str, pattern: str, reason: str):
        self.side = side
        self.pattern = pattern
        self.reason = reason
        super().__init__(
            f"Invalid regex pattern for --exclude-regex-{side} {pattern!r}: {reason}"
        )


class ApplyError(DDMergeError):
    """A decision could not be applied to the filesystem."""

    def __init__(self, path: str, reason: str, cause: Optional[BaseException] = None):
        self.path = path
        self.reason = reason
        self.cause = cause
        super().__init__(f"Failed to apply change to {path}: {reason}")


class DecisionInputError(DDMergeError):
    """The operator typed something that is not a legal command."""

    def __init__(self, text: str, allowed: Sequence[str]):
        self.text = text
        self.allowed = tuple(allowed)
        super().__init__(
            f"Unrecognized command {text!r} (expected one of: {', '.join(self.allowed)})"
        )

"""Run settings tests.

Checks how parsed CLI arguments map onto the settings tree and which
values validation rejects.
"""

from __future__ import annotations

import argparse
import unittest

from ddmerge.services.hashing import HashAlgorithm
from ddmerge.services.settings import ApplicationSettings


def _namespace(**overrides) -> argparse.Namespace:
    values = dict(
        context=3,
        diff_algorithm="minimal",
        content_check="xxh64",
        dry_run=False,
        skip_binary=False,
        ignore_errors=False,
        confirm_destructive=False,
        exclude_regex_left=None,
        exclude_regex_right=None,
        no_color=False,
        log_level="WARNING",
        log_file=None,
    )
    values.update(overrides)
    return argparse.Namespace(**values)


class ApplicationSettingsTests(unittest.TestCase):
    def test_defaults_from_namespace(self) -> None:
        settings = ApplicationSettings.from_namespace(_namespace())

        self.assertEqual(settings.comparison.context_lines, 3)
        self.assertEqual(settings.comparison.algorithm, "minimal")
        self.assertTrue(settings.comparison.use_hash)
        self.assertEqual(settings.comparison.hash_algorithm, HashAlgorithm.XXH64)
        self.assertFalse(settings.merge.dry_run)
        self.assertFalse(settings.merge.ignore_errors)
        self.assertTrue(settings.use_color)
        settings.validate()

    def test_skip_binary_implies_ignore_errors(self) -> None:
        settings = ApplicationSettings.from_namespace(_namespace(skip_binary=True))

        self.assertTrue(settings.merge.skip_binary)
        self.assertTrue(settings.merge.ignore_errors)

    def test_flags_are_carried_over(self) -> None:
        settings = ApplicationSettings.from_namespace(_namespace(
            dry_run=True,
            confirm_destructive=True,
            exclude_regex_left=r"\.git/",
            no_color=True,
            context=0,
            diff_algorithm="patience",
        ))

        self.assertTrue(settings.merge.dry_run)
        self.assertTrue(settings.merge.confirm_destructive)
        self.assertEqual(settings.exclude_left, r"\.git/")
        self.assertIsNone(settings.exclude_right)
        self.assertFalse(settings.use_color)
        self.assertEqual(settings.comparison.context_lines, 0)
        self.assertEqual(settings.comparison.algorithm, "patience")

    def test_content_check_selects_hash_or_bytewise_comparison(self) -> None:
        sha = ApplicationSettings.from_namespace(_namespace(content_check="sha256"))
        bytewise = ApplicationSettings.from_namespace(_namespace(content_check="bytes"))

        self.assertTrue(sha.comparison.use_hash)
        self.assertEqual(sha.comparison.hash_algorithm, HashAlgorithm.SHA256)
        self.assertFalse(bytewise.comparison.use_hash)

    def test_validate_rejects_negative_context(self) -> None:
        settings = ApplicationSettings.from_namespace(_namespace(context=-1))

        with self.assertRaises(ValueError):
            settings.validate()

    def test_validate_rejects_unknown_algorithm(self) -> None:
        settings = ApplicationSettings.from_namespace(_namespace(diff_algorithm="histogram"))

        with self.assertRaises(ValueError):
            settings.validate()


if __name__ == "__main__":
    unittest.main()

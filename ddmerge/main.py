"""
Main entry point for ddmerge.

This module handles:
- Command line argument parsing
- Logging configuration
- Root validation and exclusion pattern compilation
- Wiring the comparer, controller and terminal UI together
- Exception handling and exit codes
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, TextIO

from ddmerge import APP_NAME, APP_VERSION
from ddmerge.core.diff.text_diff import DiffAlgorithm
from ddmerge.core.errors import DDMergeError, ScanError
from ddmerge.core.folder.comparer import CompareOptions, FolderComparer
from ddmerge.core.folder.scanner import compile_exclude_pattern
from ddmerge.core.merge.applier import Applier
from ddmerge.core.merge.controller import MergeController, MergeOptions
from ddmerge.services.settings import (
    CONTENT_CHECKS,
    DIFF_ALGORITHMS,
    LOG_LEVELS,
    ApplicationSettings,
)
from ddmerge.ui.display import ConsoleDisplay
from ddmerge.ui.prompt import InputFunc, Prompter


# =============================================================================
# Constants
# =============================================================================

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class CommandLineArgs:
    """Parsed command line arguments."""
    left_path: str
    right_path: str
    settings: ApplicationSettings = field(default_factory=ApplicationSettings)


# =============================================================================
# Logging Setup
# =============================================================================

class LogFormatter(logging.Formatter):
    """Custom log formatter with colors for console."""

    COLORS = {
        logging.DEBUG: '\033[2m',      # Dim
        logging.INFO: '\033[32m',      # Green
        logging.WARNING: '\033[33m',   # Yellow
        logging.ERROR: '\033[31m',     # Red
        logging.CRITICAL: '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, use_colors: bool = True):
        super().__init__(
            fmt='%(asctime)s | %(levelname)-8s | %(name)s | %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        formatted = super().format(record)

        if self.use_colors:
            color = self.COLORS.get(record.levelno, '')
            return f"{color}{formatted}{self.RESET}"

        return formatted


def setup_logging(
    level: str = "WARNING",
    log_file: Optional[Path] = None,
    use_colors: bool = True
) -> logging.Logger:
    """
    Configure application logging.

    The console handler writes to stderr at the requested level. A log
    file, when given, receives everything down to DEBUG.

    Args:
        level: Log level string
        log_file: Optional file path for logging
        use_colors: Colour console records when stderr is a terminal

    Returns:
        Root logger instance
    """
    numeric_level = getattr(logging, level.upper(), logging.WARNING)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG if log_file else numeric_level)

    # Remove existing handlers
    root_logger.handlers.clear()

    # Console handler, kept off stdout so prompts stay clean
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(LogFormatter(use_colors=use_colors))
    root_logger.addHandler(console_handler)

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(LogFormatter(use_colors=False))
        root_logger.addHandler(file_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('chardet').setLevel(logging.WARNING)

    return root_logger


# =============================================================================
# Argument Parsing
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Interactive directory diff and merge tool. Compares two "
                    "directories and applies your hunk-by-hunk choices in place "
                    "to both of them.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s old/ new/                          Merge two trees interactively
  %(prog)s --dry-run old/ new/                Show the plan without writing
  %(prog)s --exclude-regex-left '\\.git/' a b  Ignore paths in the left tree
        """
    )

    # Positional arguments
    parser.add_argument('left', help='Left directory to compare')
    parser.add_argument('right', help='Right directory to compare')

    # Merge options
    parser.add_argument(
        '--dry-run',
        action='store_true',
        help='Show what would be done without making changes'
    )
    parser.add_argument(
        '--skip-binary',
        action='store_true',
        help='Skip binary files silently (implies --ignore-errors)'
    )
    parser.add_argument(
        '--ignore-errors',
        action='store_true',
        help='Warn about unreadable paths instead of stopping'
    )
    parser.add_argument(
        '--confirm-destructive',
        action='store_true',
        help='Ask before a directory is replaced by a file'
    )

    # Filtering
    parser.add_argument(
        '--exclude-regex-left',
        metavar='PATTERN',
        help='Skip paths in the left directory matching this regex'
    )
    parser.add_argument(
        '--exclude-regex-right',
        metavar='PATTERN',
        help='Skip paths in the right directory matching this regex'
    )

    # Diff options
    parser.add_argument(
        '--context',
        type=int,
        default=3,
        metavar='N',
        help='Unchanged lines shown around each hunk (default: 3)'
    )
    parser.add_argument(
        '--diff-algorithm',
        choices=DIFF_ALGORITHMS,
        default='minimal',
        help='Line alignment algorithm (default: minimal)'
    )
    parser.add_argument(
        '--content-check',
        choices=CONTENT_CHECKS,
        default='xxh64',
        help='How same-size files are compared (default: xxh64)'
    )

    # Display and logging
    parser.add_argument(
        '--no-color',
        action='store_true',
        help='Disable coloured output'
    )
    parser.add_argument(
        '--log-level',
        choices=LOG_LEVELS,
        default='WARNING',
        help='Log level (default: WARNING)'
    )
    parser.add_argument(
        '--log-file',
        metavar='PATH',
        help='Also write the log, with tracebacks, to this file'
    )

    # Version
    parser.add_argument(
        '--version',
        action='version',
        version=f'{APP_NAME} {APP_VERSION}'
    )

    return parser


def parse_arguments(args: Optional[List[str]] = None) -> CommandLineArgs:
    """
    Parse command line arguments.

    Exits with status 2 on a usage error, like argparse itself.

    Args:
        args: Arguments to parse (defaults to sys.argv)

    Returns:
        Parsed arguments
    """
    parser = build_parser()
    parsed = parser.parse_args(args)

    settings = ApplicationSettings.from_namespace(parsed)
    try:
        settings.validate()
    except ValueError as e:
        parser.error(str(e))

    return CommandLineArgs(
        left_path=parsed.left,
        right_path=parsed.right,
        settings=settings,
    )


# =============================================================================
# Run
# =============================================================================

def validate_root(side: str, path: Path) -> Path:
    """
    Check that a root is an existing, readable directory.

    Raises:
        FileNotFoundError: If the path does not exist
        NotADirectoryError: If the path is not a directory
        ScanError: If the directory cannot be listed
    """
    if not path.exists():
        raise FileNotFoundError(f"{side.capitalize()} path does not exist: {path}")
    if not path.is_dir():
        raise NotADirectoryError(f"{side.capitalize()} path is not a directory: {path}")
    if not os.access(path, os.R_OK | os.X_OK):
        raise ScanError(str(path), "permission denied")
    return path.resolve()


def run(args: CommandLineArgs, display: ConsoleDisplay, prompter: Prompter) -> int:
    """Compare the two roots and drive the interactive merge."""
    settings = args.settings
    logger = logging.getLogger(__name__)

    left_root = validate_root('left', Path(args.left_path))
    right_root = validate_root('right', Path(args.right_path))

    left_exclude = compile_exclude_pattern('left', settings.exclude_left)
    right_exclude = compile_exclude_pattern('right', settings.exclude_right)

    display.comparing()

    comparer = FolderComparer(CompareOptions(
        context_lines=settings.comparison.context_lines,
        algorithm=DiffAlgorithm.from_string(settings.comparison.algorithm),
        use_hash=settings.comparison.use_hash,
        hash_algorithm=settings.comparison.hash_algorithm,
        binary_check_size=settings.comparison.binary_check_size,
        ignore_errors=settings.merge.ignore_errors,
    ))
    entries = comparer.compare_trees(left_root, right_root, left_exclude, right_exclude)

    for path, reason in comparer.warnings:
        display.notice(f"Warning for {path}: {reason}")
    for path, reason in comparer.errors:
        display.notice(f"Ignored unreadable path {path}: {reason}")

    if not entries:
        display.identical()
        return EXIT_OK

    display.found(len(entries))
    logger.info(f"Comparing {left_root} with {right_root}: {len(entries)} difference(s)")

    controller = MergeController(
        Applier(left_root, right_root, file_io=comparer.file_io),
        prompter=prompter,
        display=display,
        options=MergeOptions(
            dry_run=settings.merge.dry_run,
            skip_binary=settings.merge.skip_binary,
            confirm_destructive=settings.merge.confirm_destructive,
        ),
    )
    outcome = controller.run(entries)
    display.summary(outcome)

    return EXIT_OK


# =============================================================================
# Main Function
# =============================================================================

def main(
    argv: Optional[List[str]] = None,
    input_func: Optional[InputFunc] = None,
    stdout: Optional[TextIO] = None
) -> int:
    """
    Application main entry point.

    Args:
        argv: Command line arguments (defaults to sys.argv)
        input_func: Reads one answer line (defaults to ``input``)
        stdout: Stream for the interactive output (defaults to sys.stdout)

    Returns:
        Exit code
    """
    try:
        args = parse_arguments(argv)
    except SystemExit as e:
        # --help and --version exit 0, usage errors exit 2
        return e.code if isinstance(e.code, int) else EXIT_OK

    settings = args.settings
    log_file = Path(settings.log_file) if settings.log_file else None
    logger = setup_logging(settings.log_level, log_file, use_colors=settings.use_color)
    logger.info(f"Starting {APP_NAME} v{APP_VERSION}")

    stream = stdout or sys.stdout
    display = ConsoleDisplay(stream, use_color=settings.use_color and stream.isatty())
    prompter = Prompter(input_func=input_func, stream=stream, style=display.style)

    try:
        exit_code = run(args, display, prompter)
        logger.info(f"Exiting with code {exit_code}")
        return exit_code

    except KeyboardInterrupt:
        display.write()
        print(f"{APP_NAME}: interrupted", file=sys.stderr)
        logger.warning("Interrupted by user")
        return EXIT_INTERRUPTED

    except (DDMergeError, OSError) as e:
        print(f"{APP_NAME}: error: {e}", file=sys.stderr)
        logger.error(f"Fatal error: {e}")
        logger.debug("Traceback of fatal error", exc_info=True)
        return EXIT_FATAL

    except Exception as e:
        print(f"{APP_NAME}: unexpected error: {e}", file=sys.stderr)
        logger.critical(f"Unexpected error: {type(e).__name__}: {e}")
        logger.debug("Traceback of unexpected error", exc_info=True)
        return EXIT_FATAL


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == '__main__':
    sys.exit(main())

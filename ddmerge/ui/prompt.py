"""
Line-oriented prompt protocol.

One prompt line lists the legal single-character commands, one input
line is read back. Commands are case-sensitive and surrounding
whitespace is ignored. Unrecognised input re-prompts; end of input
counts as quit.
"""

from __future__ import annotations

import logging
import sys
from typing import Callable, Mapping, Optional, TextIO, TypeVar

from ddmerge.core.errors import DecisionInputError
from ddmerge.core.models import Decision


logger = logging.getLogger(__name__)

T = TypeVar('T')

InputFunc = Callable[[str], str]


# (key, label, decision) in display order
SINGLE_SIDE_LEFT = (
    ('c', 'opy to right', Decision.COPY),
    ('d', 'elete from left', Decision.DELETE),
    ('s', 'kip', Decision.SKIP),
    ('q', 'uit', Decision.QUIT),
)
SINGLE_SIDE_RIGHT = (
    ('c', 'opy to left', Decision.COPY),
    ('d', 'elete from right', Decision.DELETE),
    ('s', 'kip', Decision.SKIP),
    ('q', 'uit', Decision.QUIT),
)
WHOLE_FILE = (
    ('l', 'eft (overwrite right)', Decision.USE_LEFT),
    ('r', 'ight (overwrite left)', Decision.USE_RIGHT),
    ('s', 'kip', Decision.SKIP),
    ('q', 'uit', Decision.QUIT),
)
HUNK = (
    ('l', 'eft (update right)', Decision.USE_LEFT),
    ('r', 'ight (update left)', Decision.USE_RIGHT),
    ('s', 'kip', Decision.SKIP),
    ('f', ' skip rest of file', Decision.SKIP_FILE),
    ('q', 'uit', Decision.QUIT),
)
CONFIRM = (
    ('y', 'es', True),
    ('n', 'o', False),
)


def parse_command(text: str, commands: Mapping[str, T]) -> T:
    """
    Map one line of input to its command value.

    Raises:
        DecisionInputError: If the stripped text is not a legal command
    """
    key = text.strip()
    if key in commands:
        return commands[key]
    raise DecisionInputError(key, list(commands))


class Prompter:
    """
    Asks the operator for single-character commands.

    ``input_func`` has the signature of ``input``: it shows the prompt
    text and returns one line, raising EOFError at end of input.
    """

    def __init__(
        self,
        input_func: Optional[InputFunc] = None,
        stream: Optional[TextIO] = None,
        style: Optional[Callable[..., str]] = None
    ):
        self.input_func = input_func or input
        self.stream = stream or sys.stdout
        self.style = style or (lambda text, *styles: text)

    def ask(self, options: tuple[tuple[str, str, T], ...], eof_key: str = 'q') -> T:
        """Prompt until a legal command is entered."""
        commands = {key: value for key, _, value in options}
        prompt_line = self.format_prompt(options)

        while True:
            try:
                text = self.input_func(prompt_line)
            except EOFError:
                logger.debug(f"Prompter - End of input, answering {eof_key!r}")
                self.stream.write("\n")
                return commands[eof_key]

            try:
                return parse_command(text, commands)
            except DecisionInputError as e:
                logger.debug(f"Prompter - {e}")
                self.stream.write(f"  Please enter one of: {', '.join(e.allowed)}\n")
                self.stream.flush()

    def format_prompt(self, options: tuple[tuple[str, str, object], ...]) -> str:
        colours = {'l': 'red', 'r': 'green', 'c': 'cyan', 'd': 'red', 'q': 'magenta'}
        parts = [
            f"{self.style(f'({key})', colours.get(key, 'yellow'), 'bold')}{label}"
            for key, label, _ in options
        ]
        return f"  Choose: {' / '.join(parts)} > "

    def choose_single_side(self, left_side: bool) -> Decision:
        return self.ask(SINGLE_SIDE_LEFT if left_side else SINGLE_SIDE_RIGHT)

    def choose_whole_file(self) -> Decision:
        return self.ask(WHOLE_FILE)

    def choose_hunk(self) -> Decision:
        return self.ask(HUNK)

    def confirm(self, question: str) -> bool:
        """Ask a yes/no question; end of input answers no."""
        self.stream.write(f"  {question}\n")
        self.stream.flush()
        return self.ask(CONFIRM, eof_key='n')

"""
Terminal user interface: rendering and prompts.
"""

from ddmerge.ui.display import ConsoleDisplay, visualize_whitespace
from ddmerge.ui.prompt import Prompter, parse_command

__all__ = [
    'ConsoleDisplay',
    'visualize_whitespace',
    'Prompter',
    'parse_command',
]

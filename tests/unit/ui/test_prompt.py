"""Prompt protocol tests: command parsing, re-prompting and end of input."""

from __future__ import annotations

import io
import unittest

from ddmerge.core.errors import DecisionInputError
from ddmerge.core.models import Decision
from ddmerge.ui.prompt import HUNK, Prompter, parse_command


def replay(*answers: str):
    queue = list(answers)

    def input_func(prompt: str) -> str:
        if not queue:
            raise EOFError
        return queue.pop(0)

    return input_func


class ParseCommandTests(unittest.TestCase):
    COMMANDS = {key: value for key, _, value in HUNK}

    def test_known_keys_map_to_decisions(self) -> None:
        self.assertEqual(parse_command("l", self.COMMANDS), Decision.USE_LEFT)
        self.assertEqual(parse_command("f", self.COMMANDS), Decision.SKIP_FILE)

    def test_surrounding_whitespace_is_ignored(self) -> None:
        self.assertEqual(parse_command("  r \n", self.COMMANDS), Decision.USE_RIGHT)

    def test_commands_are_case_sensitive(self) -> None:
        with self.assertRaises(DecisionInputError) as ctx:
            parse_command("L", self.COMMANDS)

        self.assertEqual(ctx.exception.allowed, ("l", "r", "s", "f", "q"))

    def test_empty_line_is_rejected(self) -> None:
        with self.assertRaises(DecisionInputError):
            parse_command("", self.COMMANDS)


class PrompterTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stream = io.StringIO()

    def test_prompt_line_lists_commands(self) -> None:
        prompts = []

        def input_func(prompt: str) -> str:
            prompts.append(prompt)
            return "s"

        Prompter(input_func, stream=self.stream).choose_single_side(left_side=True)

        self.assertEqual(
            prompts,
            ["  Choose: (c)opy to right / (d)elete from left / (s)kip / (q)uit > "],
        )

    def test_right_side_prompt_names_the_left_tree(self) -> None:
        prompter = Prompter(replay("c"), stream=self.stream)

        self.assertIn("(c)opy to left", prompter.format_prompt(
            (("c", "opy to left", Decision.COPY),)
        ))
        self.assertEqual(prompter.choose_single_side(left_side=False), Decision.COPY)

    def test_invalid_answers_reprompt_until_valid(self) -> None:
        prompter = Prompter(replay("x", "", "r"), stream=self.stream)

        self.assertEqual(prompter.choose_whole_file(), Decision.USE_RIGHT)
        self.assertEqual(self.stream.getvalue().count("Please enter one of: l, r, s, q"), 2)

    def test_end_of_input_is_quit(self) -> None:
        prompter = Prompter(replay(), stream=self.stream)

        self.assertEqual(prompter.choose_hunk(), Decision.QUIT)

    def test_confirm(self) -> None:
        self.assertTrue(Prompter(replay("y"), stream=self.stream).confirm("Sure?"))
        self.assertFalse(Prompter(replay("n"), stream=self.stream).confirm("Sure?"))
        self.assertIn("  Sure?\n", self.stream.getvalue())

    def test_confirm_at_end_of_input_answers_no(self) -> None:
        self.assertFalse(Prompter(replay(), stream=self.stream).confirm("Sure?"))


if __name__ == "__main__":
    unittest.main()

from __future__ import annotations
from typing import Callable

from .errors import RunAborted

RULE = "#" * 64
CONTINUE_HINT = "Press Enter to continue, or close this window to abort."


class Console:
    """Operator-facing text output and blocking prompts."""

    def __init__(self, input_fn: Callable[[str], str] | None = None, print_fn: Callable[..., None] | None = None):
        self._input = input_fn or input
        self._print = print_fn or print

    def say(self, msg: str = ""):
        self._print(msg)

    def banner(self, title: str):
        self._print(RULE)
        self._print(title.center(len(RULE)).rstrip())
        self._print(RULE)
        self._print()

    def ask(self, prompt: str) -> str:
        try:
            return self._input(prompt)
        except (KeyboardInterrupt, EOFError) as e:
            raise RunAborted("prompt interrupted") from e

    def failure_pause(self, msg: str):
        """Print a failure and block until the operator continues."""
        self._print()
        self._print(msg)
        self.ask(CONTINUE_HINT)

    def pause(self, msg: str = "Press Enter to exit."):
        self.ask(msg)

"""Interactive confirmation before destructive operations."""

import logging
from typing import Callable, Optional

import click

logger = logging.getLogger(__name__)

AFFIRMATIVE = ("y", "yes")


def _prompt(question: str) -> str:
    return click.prompt(question, default="", show_default=False)


class ConfirmationGate:
    """Asks the operator before gated operations unless auto-confirm is set."""

    def __init__(self, auto_confirm: bool = False, input_func: Optional[Callable[[str], str]] = None) -> None:
        self.auto_confirm = auto_confirm
        self.input_func = input_func or _prompt

    def confirm(self, question: str) -> bool:
        """Return True when the operation may proceed."""
        if self.auto_confirm:
            logger.debug("Auto-confirmed: %s", question)
            return True
        answer = self.input_func(f"{question} [y/N]")
        return answer.strip().lower() in AFFIRMATIVE

    def ask(self, question: str) -> str:
        """Read a free-text answer."""
        return self.input_func(question).strip()

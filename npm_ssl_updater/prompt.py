"""Interactive operator prompt backed by rich."""

from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.prompt import Prompt

from npm_ssl_updater.reconcile.approval import VALID_TOKENS


class RichResponder:
    """Asks the operator for a reply; validation is left to the caller."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def __call__(self, message: str, tokens: tuple[str, ...]) -> str:
        return Prompt.ask(f"   {escape(message)}", console=self.console)

    def invalid(self, reply: str) -> None:
        self.console.print(f"   [yellow]'{escape(reply)}' is not a valid answer. Please answer {' / '.join(VALID_TOKENS)}.[/]")

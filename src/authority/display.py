"""Display surfaces that connectors render previews into."""

from typing import Protocol

from rich.console import Console


class Container(Protocol):
    """Anything that can receive preview markup. Connectors never read it back."""

    def render(self, markup: str) -> None: ...


class BufferContainer:
    """Keeps the most recently rendered markup in memory."""

    def __init__(self) -> None:
        self.content = ""

    def render(self, markup: str) -> None:
        self.content = markup


class ConsoleContainer:
    """Prints preview markup verbatim to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def render(self, markup: str) -> None:
        # Previews are HTML, not rich markup
        self._console.print(markup, markup=False, highlight=False, soft_wrap=True)

"""Progress sinks: where the pipeline and ticket creator send user-facing messages."""

from abc import ABC, abstractmethod

from rich.console import Console
from rich.markup import escape


class Reporter(ABC):
    @abstractmethod
    def title(self, message: str) -> None: ...

    @abstractmethod
    def info(self, message: str) -> None: ...

    @abstractmethod
    def success(self, message: str) -> None: ...

    @abstractmethod
    def warn(self, message: str) -> None: ...

    @abstractmethod
    def error(self, message: str) -> None: ...

    def progress(self, current: int, total: int, message: str) -> None:
        self.info(f"[{current}/{total}] {message}")


class ConsoleReporter(Reporter):
    """Renders to a rich console. Messages are escaped; markup is ours alone."""

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console()

    def title(self, message: str) -> None:
        self._console.rule(f"[bold magenta]{escape(message)}[/bold magenta]")

    def info(self, message: str) -> None:
        self._console.print(escape(message))

    def success(self, message: str) -> None:
        self._console.print(f"[green]✓[/green] {escape(message)}")

    def warn(self, message: str) -> None:
        self._console.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        self._console.print(f"[red]Error:[/red] {escape(message)}")

    def progress(self, current: int, total: int, message: str) -> None:
        self._console.print(f"[cyan]\\[{current}/{total}][/cyan] {escape(message)}")


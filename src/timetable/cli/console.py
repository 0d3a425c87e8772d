"""Rich console shared by CLI commands."""

from rich.console import Console

console = Console()


def error(msg: str) -> None:
    console.print(f"[red]{msg}[/red]")


def success(msg: str) -> None:
    console.print(f"[green]{msg}[/green]")

"""Configuration management commands."""

from pathlib import Path
from typing import Annotated

import click
import typer

from timetable.cli.console import console, error, success


def register(app: typer.Typer) -> None:
    """Register the config command."""

    @app.command()
    def config(
        action: Annotated[
            str | None,
            typer.Argument(help="Action: show, validate"),
        ] = None,
        path: Annotated[
            Path | None,
            typer.Option(
                "--path",
                "-p",
                help="Path to config file (default: $TIMETABLE_HOME/config.toml)",
            ),
        ] = None,
    ) -> None:
        """Manage configuration."""
        if action is None:
            ctx = click.get_current_context()
            click.echo(ctx.get_help())
            raise typer.Exit(0)

        from pydantic import ValidationError
        from rich.syntax import Syntax
        from rich.table import Table

        from timetable.config import load_config
        from timetable.config.paths import get_config_path

        expanded_path = path.expanduser() if path else get_config_path()

        if action == "show":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            content = expanded_path.read_text()
            syntax = Syntax(content, "toml", theme="monokai", line_numbers=True)
            console.print(f"[bold]Config file: {expanded_path}[/bold]\n")
            console.print(syntax)

        elif action == "validate":
            if not expanded_path.exists():
                error(f"Config file not found: {expanded_path}")
                raise typer.Exit(1)

            try:
                config_obj = load_config(expanded_path)
            except ValidationError as e:
                error(f"Configuration validation failed:\n{e}")
                raise typer.Exit(1) from None
            except ValueError as e:
                # tomllib.TOMLDecodeError is a ValueError
                error(f"Error parsing config: {e}")
                raise typer.Exit(1) from None

            table = Table(title="Configuration Summary")
            table.add_column("Setting", style="cyan")
            table.add_column("Value", style="green")
            server = config_obj.server
            table.add_row("Endpoint", f"{server.host}:{server.port}{server.rpc_path}")
            table.add_row(
                "Socket",
                str(config_obj.rpc.socket_path)
                if config_obj.rpc.socket_path
                else "[dim]disabled[/dim]",
            )
            table.add_row("Store", config_obj.store.backend)
            table.add_row("Log level", config_obj.logging.level or "INFO")
            console.print(table)
            success("Configuration is valid")

        else:
            error(f"Unknown action: {action}")
            console.print("Valid actions: show, validate")
            raise typer.Exit(1)

"""Main CLI application."""

import typer

from timetable.cli.commands import call, config, serve

app = typer.Typer(
    name="timetable",
    help="Timetable - per-resource task schedules over JSON-RPC",
    no_args_is_help=True,
)

serve.register(app)
call.register(app)
config.register(app)


if __name__ == "__main__":
    app()

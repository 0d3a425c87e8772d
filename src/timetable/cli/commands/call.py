"""Call RPC methods on a running timetable service."""

from typing import Annotated, Any

import typer

from timetable.cli.console import console, error


def _parse_named(pairs: list[str]) -> dict[str, str]:
    named: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected name=value, got {pair!r}")
        named[name] = value
    return named


def register(app: typer.Typer) -> None:
    """Register the call command."""

    @app.command()
    def call(
        method: Annotated[
            str,
            typer.Argument(help="Method: get, getAll, insert, remove, next, delay"),
        ],
        args: Annotated[
            list[str] | None,
            typer.Argument(help="Positional params, in method order"),
        ] = None,
        param: Annotated[
            list[str] | None,
            typer.Option(
                "--param",
                "-P",
                help="Named param as name=value (repeatable)",
            ),
        ] = None,
        url: Annotated[
            str,
            typer.Option(
                "--url",
                "-u",
                envvar="TIMETABLE_URL",
                help="JSON-RPC endpoint URL",
            ),
        ] = "http://127.0.0.1:8080/rpc",
        socket_path: Annotated[
            str | None,
            typer.Option(
                "--socket",
                "-s",
                help="Use the Unix socket listener instead of HTTP",
            ),
        ] = None,
    ) -> None:
        """Call a timetable RPC method and print the JSON result.

        Examples:
            timetable call insert t1 task-1 2030-01-01T09:00:00Z
            timetable call next t1
            timetable call remove -P key=t1 -P runAt=2030-01-01T09:00:00Z
        """
        import httpx

        from timetable.rpc.client import RPCClientError, rpc_call, socket_call

        if args and param:
            error("Use either positional params or --param, not both")
            raise typer.Exit(1)

        params: Any = _parse_named(param) if param else list(args or [])

        try:
            if socket_path:
                result = socket_call(socket_path, method, params)
            else:
                result = rpc_call(method, params, url=url)
        except RPCClientError as e:
            error(f"Error {e.code}: {e}")
            raise typer.Exit(1) from None
        except (httpx.HTTPError, OSError) as e:
            error(f"Request failed: {e}")
            raise typer.Exit(1) from None

        console.print_json(data=result)

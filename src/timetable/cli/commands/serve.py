"""Server command for running the timetable service."""

import asyncio
import logging
from pathlib import Path
from typing import Annotated

import typer

from timetable.cli.console import error

logger = logging.getLogger(__name__)


def register(app: typer.Typer) -> None:
    """Register the serve command."""

    @app.command()
    def serve(
        config: Annotated[
            Path | None,
            typer.Option(
                "--config",
                "-c",
                help="Path to configuration file",
            ),
        ] = None,
        host: Annotated[
            str | None,
            typer.Option(
                "--host",
                "-h",
                help="Host to bind to (default: server.host)",
            ),
        ] = None,
        port: Annotated[
            int | None,
            typer.Option(
                "--port",
                "-p",
                help="Port to bind to (default: server.port)",
            ),
        ] = None,
    ) -> None:
        """Start the timetable JSON-RPC server."""
        from pydantic import ValidationError

        try:
            asyncio.run(_run_server(config, host, port))
        except KeyboardInterrupt:
            # Use print here since logging may not be configured yet
            print("\nServer stopped")
        except (FileNotFoundError, ValidationError) as e:
            error(f"Invalid configuration: {e}")
            raise typer.Exit(1) from None
        except RuntimeError as e:
            error(str(e))
            raise typer.Exit(1) from None


async def _run_server(
    config_path: Path | None = None,
    host: str | None = None,
    port: int | None = None,
) -> None:
    """Run the server asynchronously."""
    from timetable.config import get_default_config, load_config
    from timetable.logging import configure_logging
    from timetable.server import ServerRunner, create_app
    from timetable.store import create_store

    missing_config: str | None = None
    try:
        config = load_config(config_path)
    except FileNotFoundError as e:
        if config_path is not None:
            raise
        config = get_default_config()
        missing_config = str(e)

    # Rich console output plus JSONL file logging for server mode
    configure_logging(
        level=config.logging.level,
        use_rich=True,
        log_to_file=config.logging.log_to_file,
    )
    if missing_config:
        logger.warning(
            "config_not_found_using_defaults",
            extra={"error.message": missing_config},
        )

    logger.info(
        "store_selected",
        extra={"store.backend": config.store.backend},
    )
    store = create_store(config)
    app = create_app(config, store)

    runner = ServerRunner(
        app,
        host=host or config.server.host,
        port=port or config.server.port,
    )
    await runner.run()

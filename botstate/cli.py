import asyncio
import json
import sys

import click


@click.group()
def main() -> None:
    """botstate - two-tier key-value state store."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from BOTSTATE_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from BOTSTATE_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the health endpoint server."""
    import uvicorn

    from botstate.settings import BotStateSettings

    settings = BotStateSettings()

    uvicorn.run(
        "botstate.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
    )


async def _check(settings) -> dict:
    from botstate.store.tiered import TieredStateStore

    store = TieredStateStore.from_settings(settings)
    try:
        await store.connect()
        result = await store.health()
    finally:
        await store.close()
    return result.model_dump(exclude_none=True)


@main.command()
def health() -> None:
    """Connect to the configured backends and print their health as JSON."""
    from botstate.errors import BotStateError
    from botstate.log import setup_logging
    from botstate.settings import get_settings

    settings = get_settings()
    setup_logging(settings.log_level)

    try:
        result = asyncio.run(_check(settings))
    except BotStateError as e:
        raise click.ClickException(str(e)) from e

    click.echo(json.dumps(result))
    sys.exit(0 if result["overall"] else 1)


if __name__ == "__main__":
    main()

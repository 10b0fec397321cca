"""RoverDeck CLI - serve the session manager and inspect rover data."""

from __future__ import annotations

import asyncio
import json

import click

from roverdeck.exceptions import CsvImportError, StoreError
from roverdeck.settings import ManagerSettings
from roverdeck.utils.logging import setup_logging


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--json-output", is_flag=True, help="Output in JSON format")
@click.option("--owner", "owner_id", default=None, help="Owner id for saved rovers")
@click.option("--store-url", default=None, help="Base URL of the rover store")
@click.pass_context
def cli(
    ctx: click.Context,
    debug: bool,
    json_output: bool,
    owner_id: str | None,
    store_url: str | None,
) -> None:
    """RoverDeck - manage several rover control sessions at once."""
    ctx.ensure_object(dict)
    ctx.obj["json_output"] = json_output
    ctx.obj["settings"] = ManagerSettings.from_env().with_overrides(
        owner_id=owner_id, store_url=store_url,
    )
    setup_logging(level="DEBUG" if debug else "INFO", json_output=json_output)


@cli.command()
@click.option("--host", default="127.0.0.1", help="Bind address")
@click.option("--port", type=int, default=8000, help="Bind port")
@click.option("--handshake/--simulate", default=None, help="Probe rovers on connect")
@click.pass_context
def serve(ctx: click.Context, host: str, port: int, handshake: bool | None) -> None:
    """Run the HTTP API."""
    import uvicorn

    from roverdeck.api.app import create_app

    settings: ManagerSettings = ctx.obj["settings"].with_overrides(handshake=handshake)
    uvicorn.run(create_app(settings), host=host, port=port, log_config=None)


@cli.command("check-csv")
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def check_csv(ctx: click.Context, path: str) -> None:
    """Validate a mission waypoint file."""
    from roverdeck.mission.csv_import import read_waypoint_file

    try:
        points = read_waypoint_file(path)
    except CsvImportError as exc:
        raise click.ClickException(f"{path}: {exc}") from exc

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([{"x": p.x, "y": p.y} for p in points], indent=2))
    else:
        click.echo(f"Loaded {len(points)} waypoints")
        for i, p in enumerate(points, start=1):
            click.echo(f"  [{i}] x={p.x:g} y={p.y:g}")


@cli.command()
@click.pass_context
def saved(ctx: click.Context) -> None:
    """List saved rovers for the configured owner."""
    from roverdeck.api.app import build_store

    settings: ManagerSettings = ctx.obj["settings"]
    if not settings.owner_id:
        raise click.ClickException("No owner configured (use --owner or ROVERDECK_OWNER_ID)")

    async def _fetch() -> list:
        store = build_store(settings)
        try:
            return await store.fetch_records(settings.owner_id)
        finally:
            await store.aclose()

    try:
        records = asyncio.run(_fetch())
    except StoreError as exc:
        raise click.ClickException(str(exc)) from exc

    if ctx.obj.get("json_output"):
        click.echo(json.dumps([r.model_dump(mode="json") for r in records], indent=2))
        return
    if not records:
        click.echo("No saved rovers.")
        return
    click.echo(f"Found {len(records)} saved rover(s):")
    for record in records:
        click.echo(f"  {record.name or '(unnamed)'} @ {record.host}:{record.port}  [{record.id}]")


if __name__ == "__main__":
    cli()

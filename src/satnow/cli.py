#!/usr/bin/env python3
"""satnow command-line interface.

Usage::

    satnow update sources.txt
    satnow track --lat 51.48 --lon -0.0 --alt 20
    satnow track --lat 51.48 --lon -0.0 --update sources.txt --gui --refresh 1000
    satnow catalog
"""
from __future__ import annotations

import sys
import logging

import click
from rich.console import Console
from rich.table import Table
from rich import box

from . import __version__
from .catalog import SQLiteCatalog
from .config import Settings
from .display import make_presenter
from .errors import CatalogError, ConfigError, InvalidObserverError
from .ingest import ingest_file
from .propagation import Observer, SkyfieldPropagator
from .sources import SourceLoader
from .tracking import TrackingView

console = Console()
err_console = Console(stderr=True)


@click.group()
@click.version_option(__version__, prog_name="satnow")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--db", "db_path", type=click.Path(dir_okay=False),
              help="Path to the catalog database (default: $SATNOW_DB or ./.satnow.sql3)")
@click.pass_context
def main(ctx: click.Context, verbose: bool, db_path: str | None):
    """satnow — which satellites are closest to you right now."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(name)s — %(message)s")
    try:
        ctx.obj = Settings.from_env(db_path=db_path, verbose=verbose)
    except ConfigError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@main.command()
@click.argument("manifest", type=click.Path(exists=True, dir_okay=False))
@click.pass_obj
def update(settings: Settings, manifest: str):
    """Load every source listed in MANIFEST into the catalog."""
    settings.manifest = manifest
    with _open_catalog(settings) as store:
        _ingest(settings, store)


@main.command()
@click.option("--lat", "-x", type=float, required=True, help="Latitude in degrees")
@click.option("--lon", "-y", type=float, required=True, help="Longitude in degrees")
@click.option("--alt", "-a", type=float, default=0.0, help="Altitude in meters")
@click.option("--update", "-u", "manifest", type=click.Path(exists=True, dir_okay=False),
              help="Manifest of TLE sources to load before tracking")
@click.option("--gui", "-g", is_flag=True, help="Interactive curses display")
@click.option("--refresh", "-r", "refresh_ms", type=int,
              help="Milliseconds between refreshes in --gui mode (negative: manual only)")
@click.option("--output", "-o", type=click.Path(dir_okay=False), help="Save results to CSV")
@click.pass_obj
def track(
    settings: Settings,
    lat: float,
    lon: float,
    alt: float,
    manifest: str | None,
    gui: bool,
    refresh_ms: int | None,
    output: str | None,
):
    """Show every cataloged satellite's look angle, closest first."""
    settings.observer = Observer(lat, lon, alt)
    settings.manifest = manifest
    settings.interactive = gui
    settings.output = output
    if refresh_ms is not None:
        settings.refresh_ms = refresh_ms

    try:
        settings.validate()
    except InvalidObserverError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)
    console.print(f"Using viewer position ({settings.observer})")

    with _open_catalog(settings) as store:
        if settings.manifest:
            _ingest(settings, store)
        try:
            view = TrackingView.build(settings.observer, store, SkyfieldPropagator())
        except CatalogError as e:
            err_console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)

    make_presenter(settings, console=console).render(view)


@main.command()
@click.pass_obj
def catalog(settings: Settings):
    """List the satellites stored in the catalog."""
    with _open_catalog(settings) as store:
        try:
            records = store.fetch_all()
        except CatalogError as e:
            err_console.print(f"[red]Error: {e}[/red]")
            sys.exit(1)

    table = Table(title=f"Catalog {settings.db_path}", box=box.SIMPLE_HEAVY)
    table.add_column("NORAD", justify="right", style="cyan")
    table.add_column("Name")
    table.add_column("Epoch")
    for record in sorted(records, key=lambda r: r.catalog_id):
        try:
            epoch = f"{record.elements().epoch:%Y-%m-%d %H:%M}"
        except ValueError:
            epoch = "?"
        table.add_row(str(record.catalog_id), record.name or "", epoch)

    console.print(table)
    console.print(f"{len(records)} records")


def _open_catalog(settings: Settings) -> SQLiteCatalog:
    console.print(f"Using database: {settings.db_path}")
    try:
        return SQLiteCatalog(settings.db_path)
    except CatalogError as e:
        err_console.print(f"[red]{e}[/red]")
        sys.exit(1)


def _ingest(settings: Settings, store: SQLiteCatalog) -> None:
    with SourceLoader(timeout=settings.fetch_timeout) as loader:
        report = ingest_file(
            settings.manifest,
            store,
            loader=loader,
            verbose=settings.verbose,
            progress=err_console.is_terminal,
        )
    console.print(
        f"Stored [bold green]{report.stored}[/bold green] of {report.parsed} records "
        f"from {report.locations - len(report.unresolved)}/{report.locations} sources"
    )
    if report.unresolved:
        lines = ", ".join(map(str, report.unresolved))
        err_console.print(f"[yellow]Unresolved manifest lines: {lines}[/yellow]")
    if report.failed:
        err_console.print(f"[yellow]{report.failed} records could not be stored[/yellow]")


if __name__ == "__main__":
    main()

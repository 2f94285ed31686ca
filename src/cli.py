#!/usr/bin/env python3
"""Command Line Interface for the Timber Market service.

Usage:
    cd src
    python cli.py server                          # Start API server
    python cli.py init-db                         # Create the document table
    python cli.py token USER_ID forester          # Issue a bearer token
    python cli.py inventory totals cruise.json    # Aggregate a cruise file
    python cli.py inventory report cruise.json    # Sawtimber/pulpwood summary
    python cli.py info                            # Show configuration
"""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, List, Optional

import typer
import uvicorn

from core.config import get_settings
from core.logging_config import get_logger, setup_logging
from core.types import CruiseData

LOGGER = get_logger(__name__)

app = typer.Typer(help="Timber Market CLI")
inventory_app = typer.Typer(help="Cruise inventory commands")
app.add_typer(inventory_app, name="inventory")


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
) -> None:
    """Timber Market - inquiries, quotes, cruises and timber sales."""
    settings = get_settings()
    log_level = "DEBUG" if verbose else settings.log_level
    setup_logging(level=log_level, json_format=settings.log_format == "json")


def _load_cruise(file_path: Path) -> CruiseData:
    """Read a cruise file: either a cruiseData object or a bare list of stands."""
    try:
        raw: Any = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as e:
        typer.secho(f"✗ Could not read {file_path}: {e}", fg="red")
        raise typer.Exit(1)
    if isinstance(raw, list):
        raw = {"inventory": raw}
    if not isinstance(raw, dict):
        typer.secho("✗ Expected a cruise object or a list of stands", fg="red")
        raise typer.Exit(1)
    return CruiseData.from_dict(raw)


# =============================================================================
# Inventory Commands
# =============================================================================


@inventory_app.command("totals")
def inventory_totals(
    file_path: Path = typer.Argument(..., help="Path to cruise JSON"),
    acreage: Optional[float] = typer.Option(None, help="Property acreage for Entire Tract cruises"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
) -> None:
    """Per-stand totals and grand totals by category."""
    from domain.inventory import aggregate_inventory

    totals = aggregate_inventory(_load_cruise(file_path).inventory, property_acreage=acreage)
    if as_json:
        typer.echo(json.dumps(totals.to_dict(), indent=2))
        return

    for stand in totals.stands:
        typer.echo(
            f"  {stand.name}: {stand.net_acres:.2f} ac, {stand.total_trees} trees, "
            f"{stand.total_volume:.2f} tons "
            f"({stand.trees_per_acre:.1f} trees/ac, {stand.volume_per_acre:.2f} tons/ac)"
        )
    typer.echo("Grand totals:")
    for category, tons in totals.categories.items():
        typer.echo(f"  {category}: {tons:.2f} tons")
    typer.secho(f"✓ Total: {totals.grand_total:.2f} tons", fg="green")
    if totals.unmapped_products:
        typer.secho(
            f"  Not in grand totals: {', '.join(totals.unmapped_products)}",
            fg="yellow",
        )


@inventory_app.command("report")
def inventory_report(
    file_path: Path = typer.Argument(..., help="Path to cruise JSON"),
    owner: str = typer.Option("", help="Owner name for the report header"),
    forester: str = typer.Option("", help="Forester name for the report header"),
) -> None:
    """Printable sale report as JSON."""
    from domain.report import build_sale_report

    report = build_sale_report(_load_cruise(file_path), owner_name=owner, forester_name=forester)
    typer.echo(json.dumps(report, indent=2))


# =============================================================================
# Service Commands
# =============================================================================


@app.command("server")
def run_server(
    host: str = typer.Option("0.0.0.0", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload for development"),
) -> None:
    """Start the API server."""
    typer.echo(f"Starting API server on {host}:{port}...")
    uvicorn.run("api.app:app", host=host, port=port, reload=reload)


@app.command("init-db")
def init_database() -> None:
    """Create missing tables."""
    from core.db import init_db

    result = init_db()
    if result["status"] == "error":
        typer.secho(f"✗ Database init failed: {result.get('error')}", fg="red")
        raise typer.Exit(1)
    created: List[str] = result["tables_created"]
    typer.secho(f"✓ Database ready (created: {', '.join(created) or 'none'})", fg="green")
    for warning in result["warnings"]:
        typer.secho(f"  {warning}", fg="yellow")


@app.command("token")
def issue_token(
    user_id: str = typer.Argument(..., help="User id (token subject)"),
    role: str = typer.Argument(..., help="landowner, forester, timber-buyer, ..."),
    minutes: Optional[int] = typer.Option(None, help="Lifetime in minutes"),
) -> None:
    """Issue a bearer token for local testing."""
    from core.auth import create_access_token
    from core.exceptions import InvalidArgumentError
    from domain.roles import ROLE_LABELS, parse_role

    try:
        parsed = parse_role(role)
    except InvalidArgumentError as e:
        typer.secho(f"✗ {e.message}", fg="red")
        raise typer.Exit(1)
    typer.secho(f"{ROLE_LABELS[parsed]} token for {user_id}:", fg="green", err=True)
    typer.echo(create_access_token(user_id, parsed.value, expires_minutes=minutes))


@app.command("info")
def show_info() -> None:
    """Show application configuration info."""
    settings = get_settings()
    typer.echo("Timber Market Configuration:")
    typer.echo(f"  Environment: {settings.environment}")
    typer.echo(f"  Database: {settings.database_url}")
    typer.echo(f"  Log Level: {settings.log_level}")
    typer.echo(f"  Log Format: {settings.log_format}")
    typer.echo(f"  Allowed Origins: {', '.join(settings.get_allowed_origins())}")
    typer.echo(f"  Token Lifetime: {settings.jwt_access_token_expire_minutes} min")


if __name__ == "__main__":
    app()

"""Click CLI commands for laundry-buddy."""

from __future__ import annotations

import asyncio

import click

from laundry.config import AppConfig
from laundry.errors import LaundryError
from laundry.models.entities import Collection, Role
from laundry.utils.logging import setup_logging


@click.group()
def cli() -> None:
    """Laundry Buddy: campus laundry booking backend."""


@cli.command()
@click.option("--host", default=None, help="Bind address (default: config web.host).")
@click.option("--port", default=None, type=int, help="Port (default: config web.port).")
def serve(host: str | None, port: int | None) -> None:
    """Run the HTTP API with uvicorn."""
    import uvicorn

    from laundry.web.app import create_app

    cfg = AppConfig()
    setup_logging(cfg.log_level, cfg.log_format)
    uvicorn.run(
        create_app(cfg),
        host=host or cfg.web.host,
        port=port or cfg.web.port,
        log_config=None,
    )


@cli.command()
def config() -> None:
    """Show current configuration."""
    cfg = AppConfig()

    click.echo("=== Laundry Buddy Configuration ===\n")

    click.echo(f"Log Level:    {cfg.log_level}")
    click.echo(f"Log Format:   {cfg.log_format}")
    click.echo("")

    click.echo("[Store]")
    click.echo(f"  Backend:    {cfg.store.backend}")
    click.echo(f"  Data Dir:   {cfg.store.data_dir}")
    click.echo(f"  DB Path:    {cfg.store.db_path}")
    click.echo("")

    click.echo("[Security]")
    click.echo(f"  Auth Mode:           {cfg.security.auth_mode}")
    click.echo(f"  CSRF TTL (h):        {cfg.security.csrf_ttl_hours}")
    click.echo(f"  Session TTL (h):     {cfg.security.session_ttl_hours}")
    click.echo(f"  Sweep Interval (s):  {cfg.security.sweep_interval_seconds}")
    click.echo(f"  Max Login Attempts:  {cfg.security.max_login_attempts}")
    click.echo(f"  Lockout (min):       {cfg.security.lockout_minutes}")
    click.echo("")

    click.echo("[Identity]")
    client_id = cfg.identity.google_client_id or "(not set)"
    click.echo(f"  Google Client ID:    {client_id}")
    click.echo("")

    click.echo(f"Web:          {cfg.web.host}:{cfg.web.port}")


@cli.command("init-store")
def init_store() -> None:
    """Create any missing collections as empty."""
    cfg = AppConfig()
    counts = asyncio.run(_init_store(cfg))
    for name, count in counts.items():
        click.echo(f"{name}: {count} entities")


async def _init_store(cfg: AppConfig) -> dict[str, int]:
    from laundry.store import build_store

    store = build_store(cfg.store)
    try:
        await store.bootstrap()
        return {c.value: len(await store.list(c)) for c in Collection}
    finally:
        await store.dispose()


@cli.command("create-staff")
@click.option("--email", required=True, help="Login e-mail.")
@click.option("--name", required=True, help="Display name.")
@click.option(
    "--password",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Initial password.",
)
@click.option(
    "--role",
    type=click.Choice([Role.LAUNDRY.value, Role.ADMIN.value]),
    default=Role.LAUNDRY.value,
    help="Staff role (default: laundry).",
)
def create_staff(email: str, name: str, password: str, role: str) -> None:
    """Create a laundry or admin account."""
    cfg = AppConfig()
    try:
        user_id = asyncio.run(_create_staff(cfg, email, name, password, Role(role)))
    except LaundryError as e:
        raise click.ClickException(e.message) from e
    click.echo(f"Created {role} account {email} (id: {user_id})")


async def _create_staff(
    cfg: AppConfig,
    email: str,
    name: str,
    password: str,
    role: Role,
) -> str:
    from laundry.accounts import AccountService
    from laundry.store import build_store

    store = build_store(cfg.store)
    try:
        await store.bootstrap()
        user = await AccountService(store, cfg.security).create_staff(
            email, name, password, role
        )
    finally:
        await store.dispose()
    return user.id


@cli.command()
def quarantine() -> None:
    """List collection files moved aside after failing to parse."""
    from pathlib import Path

    cfg = AppConfig()
    data_dir = Path(cfg.store.data_dir)
    quarantined = sorted(data_dir.glob("*.json.corrupt-*")) if data_dir.is_dir() else []
    if not quarantined:
        click.echo("No quarantined collection files.")
        return
    for path in quarantined:
        click.echo(str(path))

"""
SideHive - CLI Entry Point.

Usage:
    sidehive serve                   Start the functions server
    sidehive health                  Check configuration
    sidehive db                      Check database tables
    sidehive session [--new]         Show (or start) the local onboarding session
    sidehive flags                   List feature flags and local overrides
    sidehive flag-override KEY on    Override a flag locally (development only)
"""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="sidehive",
    help="SideHive - onboarding reliability toolkit.",
    add_completion=False,
)
console = Console()

TABLES = [
    "events",
    "feature_flags",
    "idempotent_responses",
    "ai_usage",
    "ai_cost_tracking",
    "onboarding_sessions",
    "onboarding_state",
    "onboarding_profiles",
    "preauth_profiles",
    "businesses",
    "products",
    "campaigns",
]


def _local_identity():
    from sidehive.config import core_settings
    from sidehive.telemetry import DurableStorage, Location, TelemetryIdentity

    storage = DurableStorage(core_settings.storage_path)
    location = Location(core_settings.app_url)
    return storage, location, TelemetryIdentity(storage, location, env=core_settings.sidehive_env)


def _flag_cache(storage):
    from sidehive.config import core_settings
    from sidehive.core.feature_flags import FeatureFlagCache
    from sidehive.db.client import fetch_feature_flags

    return FeatureFlagCache(
        fetch_feature_flags,
        storage,
        ttl_seconds=core_settings.flag_cache_ttl_seconds,
        allow_overrides=core_settings.is_development,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    from sidehive.observability.log_setup import configure_logging

    configure_logging("DEBUG" if verbose else "WARNING")


@app.command()
def health() -> None:
    """Check system health and configuration."""
    from sidehive.config import get_core_settings

    console.print("\n[bold]SideHive Health Check[/bold]\n")

    try:
        settings = get_core_settings()
        console.print("[green]OK[/green] Configuration loaded")
        console.print(f"   Environment: {settings.sidehive_env}")
        console.print(f"   Log level: {settings.log_level}")
        console.print(f"   Functions: {settings.functions_base_url}")

        if settings.supabase_url.startswith("https://"):
            console.print("[green]OK[/green] Supabase URL configured")
        else:
            console.print("[yellow]WARN[/yellow] Supabase URL is not https")

        console.print(
            f"[dim]INFO[/dim] Retries: {settings.max_retries}, "
            f"timeout {settings.request_timeout_seconds}s, "
            f"backoff {settings.backoff_base_seconds}s x{settings.backoff_multiplier}"
        )
        console.print("\n[green]All checks passed![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with required variables.[/dim]")
        raise typer.Exit(1)


@app.command()
def version() -> None:
    """Show version information."""
    from sidehive import __version__

    console.print(f"SideHive version {__version__}")


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
    log_prompts: bool = typer.Option(False, "--log-prompts", help="Write LLM prompts to prompt_logs/"),
) -> None:
    """Start the functions server."""
    import os

    import uvicorn

    actual_port = int(os.environ.get("PORT", port))
    if log_prompts:
        # Read by the server process at startup
        os.environ["SIDEHIVE_LOG_PROMPTS"] = "1"

    console.print("\n[bold green]SideHive Functions[/bold green]")
    console.print(f"Starting server on http://localhost:{actual_port}/functions")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run(
        "sidehive_functions.app:app",
        host="0.0.0.0",
        port=actual_port,
        reload=reload,
    )


@app.command()
def db() -> None:
    """Check database connection and tables."""
    from sidehive_functions.db import get_service_client

    console.print("\n[bold]Database Connection Check[/bold]\n")

    try:
        client = get_service_client()
        console.print("[green]OK[/green] Connected to Supabase")

        console.print("\n[bold]Table Status:[/bold]")
        for table in TABLES:
            try:
                result = client.table(table).select("*", count="exact").limit(0).execute()
                count = result.count if hasattr(result, "count") else "?"
                console.print(f"  [green]OK[/green] {table}: {count} rows")
            except Exception as e:
                console.print(f"  [red]FAIL[/red] {table}: {e}")

        console.print("\n[green]Database check complete![/green]")

    except Exception as e:
        console.print(f"\n[red]FAIL Database connection failed: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def session(
    new: bool = typer.Option(False, "--new", help="Forget the current session and start a new one"),
) -> None:
    """Show the local onboarding session id and saved step."""
    from sidehive.telemetry.storage import FORM_STATE_KEY, SESSION_ID_KEY, STEP_STATE_KEY

    storage, location, identity = _local_identity()

    if new:
        for key in (SESSION_ID_KEY, FORM_STATE_KEY, STEP_STATE_KEY):
            storage.remove(key)
        location.remove_param("sid")
        console.print("[dim]Previous session forgotten.[/dim]")

    session_id = identity.get_session_id()
    form = storage.get_json(FORM_STATE_KEY, {}) or {}

    console.print(f"\n[bold]Session:[/bold] {session_id}")
    console.print(f"[bold]URL:[/bold] {location.href}")
    console.print(f"[bold]Step:[/bold] {storage.get(STEP_STATE_KEY) or '-'}")
    if form.get("idea"):
        console.print(f"[bold]Idea:[/bold] {form['idea'][:80]}")
    for divergence in identity.divergences:
        console.print(
            f"[yellow]WARN[/yellow] URL session {divergence.url_session_id} "
            f"differs from stored {divergence.stored_session_id}"
        )


@app.command()
def flags() -> None:
    """List feature flags (server values with local overrides applied)."""
    storage, _, _ = _local_identity()
    cache = _flag_cache(storage)

    values = asyncio.run(cache.get_all())
    overrides = cache.get_local_overrides()

    if not values:
        console.print("[dim]No feature flags.[/dim]")
        return

    table = Table(title="Feature Flags")
    table.add_column("Key")
    table.add_column("Enabled")
    table.add_column("Override")
    for key in sorted(values):
        enabled = "[green]on[/green]" if values[key] else "[dim]off[/dim]"
        override = "yes" if key in overrides else ""
        table.add_row(key, enabled, override)
    console.print(table)


@app.command("flag-override")
def flag_override(
    key: str = typer.Argument(..., help="Flag key"),
    state: str = typer.Argument(..., help="on | off | clear"),
) -> None:
    """Set or clear a local flag override (development only)."""
    from sidehive.config import core_settings

    if not core_settings.is_development:
        console.print("[red]Local overrides are only available in development.[/red]")
        raise typer.Exit(1)

    storage, _, _ = _local_identity()
    cache = _flag_cache(storage)

    state = state.lower()
    if state == "clear":
        cache.clear_local_override(key)
        console.print(f"Cleared override for [bold]{key}[/bold]")
    elif state in ("on", "off"):
        cache.set_local_override(key, state == "on")
        console.print(f"[bold]{key}[/bold] overridden to {state}")
    else:
        console.print(f"[red]Invalid state: {state}. Use on, off or clear.[/red]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()

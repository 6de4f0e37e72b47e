"""CLI commands for ritualbot."""

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from ritualbot import __logo__, __title__, __version__

app = typer.Typer(
    name="ritualbot",
    help=f"{__logo__} {__title__} - scheduled group rituals for WhatsApp",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} {__title__} v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """RitualBot - scheduled group rituals for WhatsApp."""
    pass


# ============================================================================
# Onboard / Setup
# ============================================================================


@app.command()
def onboard():
    """Write a default configuration file."""
    from ritualbot.config.loader import get_config_path, save_config
    from ritualbot.config.schema import Config

    config_path = get_config_path()

    if config_path.exists():
        console.print(f"[yellow]Config already exists at {config_path}[/yellow]")
        if not typer.confirm("Overwrite?"):
            raise typer.Exit()

    save_config(Config())
    console.print(f"[green]✓[/green] Created config at {config_path}")

    console.print(f"\n{__logo__} {__title__} is ready!")
    console.print("\nNext steps:")
    console.print("  1. Start the WhatsApp bridge and scan the QR code with your phone")
    console.print("  2. Run: [cyan]ritualbot gateway[/cyan]")
    console.print("  3. In the group, send: [cyan]!bot start[/cyan]")


# ============================================================================
# Gateway
# ============================================================================


@app.command()
def gateway(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Connect to WhatsApp and run the scheduler."""
    from loguru import logger

    from ritualbot.config.loader import load_config
    from ritualbot.gateway import Gateway
    from ritualbot.utils.logging_config import configure_logging

    configure_logging(level="DEBUG" if verbose else None)
    config = load_config()

    console.print(f"{__logo__} Starting {__title__} gateway...")
    console.print(f"[green]✓[/green] Bridge: {config.channels.whatsapp.bridge_url}")
    console.print(f"[green]✓[/green] Timezone: {config.schedule.timezone}")
    console.print(
        f"[green]✓[/green] Retries: {config.retry.max_retries} "
        f"(base delay {config.retry.base_delay_s:.0f}s)"
    )
    console.print(
        f"[green]✓[/green] Reconnect: {config.connection.max_reconnect_attempts} attempts, "
        f"health check every {config.connection.health_check_interval_s / 60:.0f}m"
    )

    gw = Gateway(config)
    logger.info("Starting WhatsApp bot...")
    try:
        asyncio.run(gw.run_forever())
    except KeyboardInterrupt:
        console.print("\nGoodbye!")


# ============================================================================
# Schedule
# ============================================================================


@app.command()
def schedule(
    count: int = typer.Option(3, "--count", "-n", help="Occurrences to show per action"),
):
    """Show the next fire times of every scheduled action."""
    from ritualbot.config.loader import load_config
    from ritualbot.cron.catalog import ActionCatalog
    from ritualbot.cron.clock import next_fire_time, to_cron_expr
    from ritualbot.utils.helpers import format_timestamp, now_in

    config = load_config()
    tz = config.schedule.timezone
    catalog = ActionCatalog.default(tz)

    table = Table(title=f"Schedule ({tz})")
    table.add_column("Action", style="cyan")
    table.add_column("Cron", style="yellow")
    table.add_column("Next runs", style="green")

    now = now_in(tz)
    for action in catalog.all():
        runs = []
        moment = now
        for _ in range(max(1, count)):
            moment = next_fire_time(action.recurrence, moment)
            runs.append(format_timestamp(moment, tz))
        table.add_row(action.name, to_cron_expr(action.recurrence), "\n".join(runs))

    console.print(table)


# ============================================================================
# Status Commands
# ============================================================================


@app.command()
def status():
    """Show configuration status."""
    from ritualbot.config.loader import get_config_path, load_config

    config_path = get_config_path()
    config = load_config()

    console.print(f"{__logo__} {__title__} Status\n")
    console.print(f"Config: {config_path} {'[green]✓[/green]' if config_path.exists() else '[red]✗[/red]'}")
    console.print(f"Bridge: {config.channels.whatsapp.bridge_url}")
    console.print(f"Timezone: {config.schedule.timezone}")
    console.print(f"Command prefix: {config.commands.prefix}")
    console.print(f"Retries: {config.retry.max_retries} x {config.retry.base_delay_s:.0f}s")
    console.print(
        f"Reconnect: {config.connection.max_reconnect_attempts} x "
        f"{config.connection.reconnect_delay_s:.0f}s"
    )


if __name__ == "__main__":
    app()

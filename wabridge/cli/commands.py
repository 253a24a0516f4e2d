"""CLI commands for wabridge."""

import asyncio
import shlex
import shutil
import sys
from pathlib import Path

import typer
from dotenv import load_dotenv
from loguru import logger
from rich.console import Console
from rich.table import Table

from wabridge import __logo__, __version__
from wabridge.utils.helpers import get_data_path

app = typer.Typer(
    name="wabridge",
    help=f"{__logo__} wabridge - WhatsApp bridge for Claude Code",
    no_args_is_help=True,
)

console = Console()

CONFIG_OPTION_HELP = "Path to config.json (default: ~/.wabridge/config.json)"


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} wabridge v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None, "--version", "-v", callback=version_callback, is_eager=True
    ),
):
    """wabridge - WhatsApp bridge for Claude Code."""
    pass


def _configure_logging(level: str) -> None:
    logger.remove()
    logger.add(sys.stderr, level=level.upper())


def _load(config_path: Path | None):
    from wabridge.config.loader import load_config

    load_dotenv(Path.cwd() / ".env", override=False)
    load_dotenv(get_data_path() / ".env", override=False)
    return load_config(config_path)


def _assistant_executable(config) -> str | None:
    parts = shlex.split(config.assistant.command)
    return shutil.which(parts[0]) if parts else None


def _log_startup(config) -> None:
    allowed = sorted(config.allowed_senders)
    logger.info(f"📂 Working directory: {config.work_path}")
    if allowed:
        logger.info(f"🔒 Authorized numbers: {', '.join(allowed)}")
    else:
        logger.warning("⚠️  No authorized numbers set — will reject all messages.")
        logger.warning('   Set WA_AUTHORIZED_NUMBERS env var (e.g., "491234567890")')
    if _assistant_executable(config) is None:
        logger.warning(f"Assistant command '{config.assistant.command}' not found on PATH")


# ============================================================================
# Bridge
# ============================================================================


@app.command()
def run(
    config_path: Path = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
):
    """Start the WhatsApp bridge."""
    from wabridge.agent.invoker import ClaudeInvoker
    from wabridge.agent.router import MessageRouter
    from wabridge.bus.queue import MessageBus
    from wabridge.channels.whatsapp import WhatsAppChannel

    config = _load(config_path)
    _configure_logging("DEBUG" if verbose else config.log_level)

    console.print(f"{__logo__} Starting wabridge...")
    _log_startup(config)

    bus = MessageBus()
    channel = WhatsAppChannel(config.channels.whatsapp, bus)
    router = MessageRouter.from_config(config, bus, ClaudeInvoker.from_config(config))
    bus.subscribe_outbound(channel.name, channel.send)

    async def serve():
        dispatcher = asyncio.create_task(bus.dispatch_outbound())
        router_task = asyncio.create_task(router.run())
        try:
            await channel.start()
        finally:
            await router.stop()
            bus.stop()
            await channel.stop()
            await asyncio.gather(dispatcher, router_task, return_exceptions=True)
        if channel.logged_out:
            raise typer.Exit(1)

    try:
        asyncio.run(serve())
    except KeyboardInterrupt:
        console.print("\nShutting down...")


# ============================================================================
# Diagnostics
# ============================================================================


@app.command()
def status(
    config_path: Path = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Show the resolved configuration."""
    config = _load(config_path)
    allowed = sorted(config.allowed_senders)
    executable = _assistant_executable(config)

    table = Table(title="wabridge Status")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="yellow")

    table.add_row("Bridge URL", config.channels.whatsapp.bridge_url)
    table.add_row("Bridge token", "[green]✓[/green]" if config.channels.whatsapp.bridge_auth_token else "[dim]not set[/dim]")
    table.add_row("Authorized numbers", ", ".join(allowed) if allowed else "[red]none (all messages rejected)[/red]")
    table.add_row("Working directory", str(config.work_path))
    table.add_row("Assistant command", config.assistant.command)
    table.add_row("Assistant on PATH", f"[green]✓[/green] {executable}" if executable else "[red]✗[/red]")
    table.add_row("Max turns", str(config.assistant.max_turns))
    table.add_row("Timeout", f"{config.assistant.timeout_seconds:g}s")
    table.add_row("Reply limit", f"{config.replies.max_length} chars")

    console.print(table)


@app.command()
def ask(
    prompt: str = typer.Argument(..., help="Prompt to send to the assistant"),
    config_path: Path = typer.Option(None, "--config", "-c", help=CONFIG_OPTION_HELP),
):
    """Run one prompt through the assistant, as a chat message would."""
    from wabridge.agent.invoker import ClaudeInvoker, InvocationError

    config = _load(config_path)
    _configure_logging(config.log_level)
    invoker = ClaudeInvoker.from_config(config)

    try:
        response = asyncio.run(invoker.invoke(prompt))
    except InvocationError as exc:
        console.print(f"[red]❌ Error: {exc}[/red]")
        raise typer.Exit(1)
    console.print(response, markup=False, highlight=False)


if __name__ == "__main__":
    app()

"""
SAGE Webhooks CLI entry point.

Usage:
    sage-webhooks [OPTIONS] COMMAND [ARGS]...
    python -m sage_webhooks [OPTIONS] COMMAND [ARGS]...
"""

import logging

import typer
from rich.console import Console

from sage_webhooks import __version__
from sage_webhooks.cli import webhooks_app
from sage_webhooks.core.config import get_config

console = Console()

app = typer.Typer(
    name="sage-webhooks",
    help="SAGE Webhooks - Outbound webhook delivery.",
    no_args_is_help=True,
)
app.add_typer(webhooks_app, name="webhooks")


def setup_logging(verbose: bool) -> None:
    """Configure root logging; DEBUG when verbose."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    # Quiet down noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose output"),
):
    """SAGE Webhooks - Outbound webhook delivery."""
    setup_logging(verbose)


@app.command()
def version():
    """Show the installed version."""
    console.print(f"sage-webhooks {__version__}")


@app.command()
def status():
    """Show the effective delivery configuration."""
    config = get_config()
    console.print("[bold]SAGE Webhooks Status[/bold]\n")
    console.print(f"Version: {__version__}")
    console.print(f"Retry attempts: {config.retry_attempts}")
    console.print(f"Retry delay: {config.retry_delay_ms}ms (exponential)")
    console.print(f"Timeout: {config.timeout_ms}ms")
    console.print(f"Storage: {config.storage_path or '.sage/webhooks.json'}")
    if not config.signing_secret:
        console.print("Default secret: [dim]generated per endpoint[/dim]")


if __name__ == "__main__":
    app()

"""
SAGE Webhooks CLI - Endpoint management commands.

Provides commands for managing webhook endpoints and sending test events.
Endpoints are kept in the JSON store configured by WEBHOOK_STORAGE
(default .sage/webhooks.json).
"""

import asyncio
import json
from dataclasses import replace
from pathlib import Path

import typer
from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from sage_webhooks.core.config import get_config
from sage_webhooks.webhooks import (
    WebhookEndpoint,
    WebhookEvent,
    WebhookPayload,
    WebhookService,
    get_webhook_service,
)

console = Console()

DEFAULT_STORAGE_PATH = Path(".sage") / "webhooks.json"

# Create webhooks subcommand app
webhooks_app = typer.Typer(
    name="webhooks",
    help="Webhook endpoint management commands",
    no_args_is_help=True,
)


def _get_service() -> WebhookService:
    config = get_config()
    if config.storage_path is None:
        config = replace(config, storage_path=DEFAULT_STORAGE_PATH)
    return get_webhook_service(config)


def _find_endpoint(service: WebhookService, webhook_id: str) -> WebhookEndpoint:
    """Resolve a full or partial endpoint id, exiting on no or ambiguous match."""
    matches = [e for e in service.list_webhooks() if e.id.startswith(webhook_id)]

    if not matches:
        console.print(f"[red]Webhook not found: {webhook_id}[/red]")
        raise typer.Exit(1)

    if len(matches) > 1:
        console.print(f"[yellow]Multiple webhooks match '{webhook_id}':[/yellow]")
        for endpoint in matches:
            console.print(f"  {endpoint.id} - {endpoint.url}")
        console.print("\n[dim]Please provide a more specific ID.[/dim]")
        raise typer.Exit(1)

    return matches[0]


def _status_text(endpoint: WebhookEndpoint) -> str:
    if endpoint.active:
        return "[green]Active[/green]"
    if endpoint.failure_count:
        return "[red]Disabled[/red]"
    return "[dim]Inactive[/dim]"


@webhooks_app.command("list")
def webhooks_list(
    active_only: bool = typer.Option(
        False,
        "--active",
        "-a",
        help="Show only active webhooks",
    ),
):
    """
    List all webhook endpoints.

    Shows registered endpoints and their health state.
    """
    endpoints = _get_service().list_webhooks()
    if active_only:
        endpoints = [e for e in endpoints if e.active]

    if not endpoints:
        console.print("[yellow]No webhooks registered.[/yellow]")
        console.print("\nTo create a webhook:")
        console.print(
            "  [dim]sage-webhooks webhooks create https://example.com/webhook "
            "-e payment.succeeded[/dim]"
        )
        return

    table = Table(
        title="Webhook Endpoints",
        box=box.ROUNDED,
    )
    table.add_column("ID", style="dim", max_width=8)
    table.add_column("URL", max_width=40)
    table.add_column("Events", max_width=30)
    table.add_column("Status")
    table.add_column("Failures", justify="right")

    for endpoint in endpoints:
        events = ", ".join(e.value for e in endpoint.events[:2])
        if len(endpoint.events) > 2:
            events += f" +{len(endpoint.events) - 2}"

        table.add_row(
            endpoint.id[:8],
            endpoint.url[:40] + ("..." if len(endpoint.url) > 40 else ""),
            events,
            _status_text(endpoint),
            str(endpoint.failure_count),
        )

    console.print(table)
    console.print(f"\n[dim]{len(endpoints)} webhook(s) registered[/dim]")


@webhooks_app.command("create")
def webhooks_create(
    url: str = typer.Argument(
        ...,
        help="Webhook endpoint URL",
    ),
    events: list[str] = typer.Option(
        ...,
        "--event",
        "-e",
        help="Event types to subscribe to (can specify multiple)",
    ),
    secret: str = typer.Option(
        None,
        "--secret",
        "-s",
        help="Shared secret for HMAC signature (auto-generated if not provided)",
    ),
):
    """
    Create a new webhook endpoint.

    Events can be specified multiple times:
      sage-webhooks webhooks create URL -e lead.created -e payment.succeeded

    Available events:
      lead.created, lead.updated, lead.converted, client.created,
      project.created, project.updated, project.status_changed,
      milestone.completed, payment.succeeded, payment.failed,
      deliverable.uploaded
    """
    try:
        endpoint = _get_service().register_webhook(url=url, events=events, secret=secret)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[green]Created webhook:[/green] {endpoint.id}")
    console.print(f"  URL: {endpoint.url}")
    console.print(f"  Events: {', '.join(e.value for e in endpoint.events)}")
    console.print(f"  Secret: {endpoint.secret}")
    console.print("\n[dim]Use the secret to verify webhook signatures on your server.[/dim]")
    console.print("[dim]Header: X-Webhook-Signature: <hex hmac-sha256 of raw body>[/dim]")


@webhooks_app.command("update")
def webhooks_update(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to update (can be partial)",
    ),
    url: str = typer.Option(None, "--url", "-u", help="New endpoint URL"),
    events: list[str] = typer.Option(
        None,
        "--event",
        "-e",
        help="Replace subscribed event types (can specify multiple)",
    ),
):
    """
    Change the URL or subscribed events of a webhook.

    The secret cannot be changed; delete and re-create the webhook to rotate it.
    """
    service = _get_service()
    endpoint = _find_endpoint(service, webhook_id)

    try:
        updated = service.update_webhook(endpoint.id, url=url, events=events or None)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    console.print(f"[green]Updated webhook: {updated.id}[/green]")


@webhooks_app.command("enable")
def webhooks_enable(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to enable (can be partial)",
    ),
):
    """
    Reactivate a webhook, including one disabled after repeated failures.

    The failure count is kept; it resets on the next successful delivery.
    """
    service = _get_service()
    endpoint = _find_endpoint(service, webhook_id)
    service.reactivate_webhook(endpoint.id)
    console.print(f"[green]Enabled webhook: {endpoint.id}[/green]")
    if endpoint.failure_count:
        console.print(f"[dim]Failure count: {endpoint.failure_count}[/dim]")


@webhooks_app.command("disable")
def webhooks_disable(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to disable (can be partial)",
    ),
):
    """
    Stop deliveries to a webhook without deleting it.
    """
    service = _get_service()
    endpoint = _find_endpoint(service, webhook_id)
    service.update_webhook(endpoint.id, active=False)
    console.print(f"[yellow]Disabled webhook: {endpoint.id}[/yellow]")


@webhooks_app.command("delete")
def webhooks_delete(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to delete (can be partial)",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Skip confirmation prompt",
    ),
):
    """
    Delete a webhook endpoint.

    The webhook ID can be a partial match (first 8 characters).
    """
    service = _get_service()
    endpoint = _find_endpoint(service, webhook_id)

    # Confirm deletion
    if not force:
        console.print(f"Webhook: [cyan]{endpoint.url}[/cyan]")
        console.print(f"ID: {endpoint.id}")
        confirm = typer.confirm("\nAre you sure you want to delete this webhook?")
        if not confirm:
            console.print("[dim]Cancelled.[/dim]")
            raise typer.Exit(0)

    if service.delete_webhook(endpoint.id):
        console.print(f"[green]Deleted webhook: {endpoint.id}[/green]")
    else:
        console.print("[red]Failed to delete webhook[/red]")
        raise typer.Exit(1)


@webhooks_app.command("info")
def webhooks_info(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to show info for (can be partial)",
    ),
):
    """
    Show detailed information about a webhook.
    """
    endpoint = _find_endpoint(_get_service(), webhook_id)

    console.print(Panel(
        f"[bold cyan]{endpoint.url}[/bold cyan]\n"
        f"[dim]{endpoint.id}[/dim]",
        title="Webhook Details",
    ))

    console.print(f"\n  Status: {_status_text(endpoint)}")
    console.print(f"  Created: {endpoint.created_at.isoformat()}")

    console.print("\n  [bold]Events:[/bold]")
    for event in endpoint.events:
        console.print(f"    - {event.value}")

    console.print("\n  [bold]Health:[/bold]")
    console.print(f"    Consecutive failures: {endpoint.failure_count}")
    last = endpoint.last_triggered_at
    console.print(f"    Last delivered: {last.isoformat() if last else '[dim]never[/dim]'}")


@webhooks_app.command("test")
def webhooks_test(
    webhook_id: str = typer.Argument(
        ...,
        help="Webhook ID to test (can be partial)",
    ),
    event: str = typer.Option(
        None,
        "--event",
        "-e",
        help="Event type to send (defaults to the first subscribed event)",
    ),
):
    """
    Send a test event to a single webhook.

    Uses the configured retry policy; failures count towards auto-disable.
    """
    service = _get_service()
    endpoint = _find_endpoint(service, webhook_id)

    try:
        event_type = WebhookEvent.parse(event) if event else endpoint.events[0]
    except (ValueError, IndexError):
        console.print(f"[red]Invalid or missing event type: {event}[/red]")
        raise typer.Exit(1)

    payload = WebhookPayload.create(
        event_type,
        {"test": True, "message": "This is a test webhook delivery from SAGE"},
    )

    async def _test():
        async with service:
            return await service.dispatcher.orchestrator.deliver_with_retry(
                endpoint, payload
            )

    with console.status("[bold cyan]Sending test webhook...[/bold cyan]"):
        result = asyncio.run(_test())

    console.print(f"\nWebhook: [cyan]{endpoint.url}[/cyan]")
    if result.success:
        console.print("\n[green]Test successful![/green]")
        console.print(f"  Status: {result.status_code}")
        console.print(f"  Time: {result.duration:.0f}ms")
    else:
        console.print("\n[red]Test failed![/red]")
        console.print(f"  Error: {result.error}")
        console.print(f"  Attempts: {result.attempts}")
        raise typer.Exit(1)


@webhooks_app.command("trigger")
def webhooks_trigger(
    event: str = typer.Argument(
        ...,
        help="Event type to trigger, e.g. payment.succeeded",
    ),
    data: str = typer.Option(
        "{}",
        "--data",
        "-d",
        help="Event body as JSON",
    ),
):
    """
    Trigger an event for every subscribed webhook and show the results.
    """
    try:
        body = json.loads(data)
        WebhookEvent.parse(event)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)

    service = _get_service()

    async def _trigger():
        async with service:
            return await service.trigger(event, body)

    with console.status(f"[bold cyan]Triggering {event}...[/bold cyan]"):
        results = asyncio.run(_trigger())

    if not results:
        console.print(f"[yellow]No active webhooks subscribed to {event}.[/yellow]")
        return

    table = Table(title=f"Deliveries for {event}", box=box.ROUNDED)
    table.add_column("Webhook", style="dim", max_width=8)
    table.add_column("Result")
    table.add_column("Status", justify="right")
    table.add_column("Attempts", justify="right")
    table.add_column("Error", max_width=40)

    for endpoint_id, result in results.items():
        table.add_row(
            endpoint_id[:8],
            "[green]OK[/green]" if result.success else "[red]Failed[/red]",
            str(result.status_code) if result.status_code else "[dim]-[/dim]",
            str(result.attempts),
            result.error or "",
        )

    console.print(table)
    if not all(r.success for r in results.values()):
        raise typer.Exit(1)

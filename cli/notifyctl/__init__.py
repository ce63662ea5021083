#!/usr/bin/env python3
"""Notification Dispatcher CLI.

Usage:
    notifyctl health                        - Show service health
    notifyctl replay FILE [--event NAME]    - Send a trigger payload to the service
    notifyctl evaluate FILE                 - Show the decision for a record, no side effects
"""

import hashlib
import hmac
import json
import os
import sys
from typing import Optional

import click
import httpx
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.text import Text

# API base URL
API_BASE = os.getenv("NOTIFY_API_URL", "http://localhost:8000")

console = Console()


def _handle_api_error(error: Exception, endpoint: str) -> None:
    """Handle API errors with user-friendly messages."""
    if isinstance(error, httpx.ConnectError):
        console.print()
        console.print("[red]⚠️  Cannot connect to the notification dispatcher[/red]")
        console.print()
        console.print(f"[dim]Tried: {API_BASE}{endpoint}[/dim]")
        console.print("[dim]Check that the service is running and NOTIFY_API_URL is correct.[/dim]")
    elif isinstance(error, httpx.TimeoutException):
        console.print()
        console.print("[red]⚠️  Request timed out[/red]")
    elif isinstance(error, httpx.HTTPStatusError):
        status = error.response.status_code
        console.print()
        if status == 401:
            console.print("[red]⚠️  Invalid signature - check --secret[/red]")
        elif status in (400, 404):
            try:
                detail = error.response.json().get("detail", "Bad request")
            except ValueError:
                detail = "Bad request"
            console.print(f"[red]⚠️  {detail}[/red]")
        else:
            console.print(f"[red]⚠️  API Error: HTTP {status}[/red]")
    else:
        console.print()
        console.print(f"[red]⚠️  Unexpected error: {error}[/red]")
    sys.exit(1)


def sign(body: bytes, secret: str) -> str:
    """Hex HMAC-SHA256 signature, as the service expects."""
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def api_get(endpoint: str) -> dict:
    """Make GET request to API."""
    try:
        response = httpx.get(f"{API_BASE}{endpoint}", timeout=30)
        response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as e:
        _handle_api_error(e, endpoint)


def api_post(endpoint: str, body: bytes, headers: Optional[dict] = None) -> dict:
    """POST a raw JSON body. Operational errors (HTTP 500) still carry a result."""
    try:
        response = httpx.post(
            f"{API_BASE}{endpoint}",
            content=body,
            headers={"Content-Type": "application/json", **(headers or {})},
            timeout=30,
        )
        if response.status_code != 500:
            response.raise_for_status()
        return response.json()
    except (httpx.HTTPError, ValueError) as e:
        _handle_api_error(e, endpoint)


def read_payload(path: str) -> bytes:
    """Read and validate a JSON payload file."""
    with open(path, "rb") as f:
        body = f.read()
    try:
        json.loads(body)
    except ValueError as e:
        console.print(f"[red]⚠️  {path} is not valid JSON: {e}[/red]")
        sys.exit(1)
    return body


def format_outcome(data: dict) -> Panel:
    """Format a dispatcher response as a rich Panel."""
    content = Text()
    if not data.get("ok"):
        content.append(f"Error: {data.get('error', 'unknown')}", style="bold red")
        border = "red"
    elif data.get("sent"):
        content.append(f"Sent {data.get('type')} notification", style="bold green")
        border = "green"
    elif data.get("dryRun"):
        content.append(f"Dry run: {data.get('type')} notification", style="bold cyan")
        border = "cyan"
    else:
        content.append(f"Ignored: {data.get('ignored')}", style="bold yellow")
        border = "yellow"
    return Panel(content, title="[bold]Outcome[/bold]", border_style=border)


@click.group()
def cli():
    """Notification Dispatcher - inspect and replay document triggers."""
    pass


@cli.command()
def health():
    """Show service health."""
    with console.status("[bold blue]Checking service...", spinner="dots"):
        data = api_get("/health")

    console.print()
    mode = "[cyan]dry run[/cyan]" if data.get("dryRun") else "[green]live[/green]"
    console.print(f"[green]✓[/green] {data.get('status', 'unknown')} ({mode})")
    console.print(f"[dim]{data.get('timestamp', '')}[/dim]")
    console.print()


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--event", "-e", help="Event name, e.g. databases.main.collections.x.documents.y.update")
@click.option("--secret", envvar="WEBHOOK_SECRET", help="Webhook secret for signing")
def replay(path: str, event: Optional[str], secret: Optional[str]):
    """Send a trigger payload to the service."""
    body = read_payload(path)
    headers = {}
    if event:
        headers["x-appwrite-event"] = event
    if secret:
        headers["X-Webhook-Signature"] = sign(body, secret)

    with console.status("[bold blue]Sending trigger...", spinner="dots"):
        data = api_post("/webhooks/document", body, headers)

    console.print()
    console.print(format_outcome(data))
    console.print()
    if not data.get("ok"):
        sys.exit(1)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
def evaluate(path: str):
    """Show the decision for a record without sending anything."""
    body = read_payload(path)
    with console.status("[bold blue]Evaluating...", spinner="dots"):
        data = api_post("/evaluate", body)

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="dim")
    table.add_column("Value")
    table.add_row("Kind", data.get("kind", "?"))
    if data.get("status"):
        table.add_row("Status", data["status"])
    worthy = data.get("notifyWorthy")
    table.add_row("Notify-worthy", "[green]yes[/green]" if worthy else "[yellow]no[/yellow]")
    table.add_row("Type", data.get("notificationType", "?"))
    table.add_row("Fingerprint", data.get("fingerprint", "?"))
    if data.get("duplicate"):
        table.add_row("Duplicate", "[yellow]already notified[/yellow]")

    console.print()
    console.print(table)
    console.print()


if __name__ == "__main__":
    cli()

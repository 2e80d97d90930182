"""CLI commands for inspecting and releasing limiter keys.

Usage:
    warden limiter status KEY --name publicAddrInfo
    warden limiter release KEY --name publicAddrInfo
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console
from rich.table import Table

from warden.config import settings
from warden.context import CoordinationContext
from warden.errors import StoreError
from warden.limiter.escalating import CounterRecord

app = typer.Typer(help="Inspect and release rate-limited keys", no_args_is_help=True)

console = Console()

NAME_OPTION = typer.Option("http", "--name", "-n", help="Limiter name (key namespace)")


@app.command()
def status(
    key: str = typer.Argument(..., help="Rate key (subject identity)"),
    name: str = NAME_OPTION,
) -> None:
    """Show primary and secondary counters of a key."""
    asyncio.run(_status(key, name))


@app.command()
def release(
    key: str = typer.Argument(..., help="Rate key (subject identity)"),
    name: str = NAME_OPTION,
) -> None:
    """Unblock a key. Exits with code 1 if the key was not blocked."""
    released = asyncio.run(_release(key, name))
    if not released:
        console.print(f"[yellow]Key '{key}' is not blocked[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"[green]Released key '{key}'[/green]")


def _format_record(record: CounterRecord | None) -> tuple[str, str, str]:
    if record is None:
        return "-", "-", "-"
    expires = f"{record.expires_in:.1f}s" if record.expires_in is not None else "never"
    return str(record.consumed_points), str(record.remaining_points), expires


async def _status(key: str, name: str) -> None:
    context = CoordinationContext.from_settings(settings)
    try:
        limiter = context.limiter(name)
        primary = await limiter.get(key)
        secondary = await limiter.get_secondary(key)
        blocked = await limiter.is_blocked(key)
    except StoreError as e:
        console.print(f"[red]Store error:[/red] {e}")
        raise typer.Exit(code=2) from e
    finally:
        await context.close()

    table = Table(title=f"Limiter '{name}' key '{key}'")
    table.add_column("Counter", style="cyan")
    table.add_column("Consumed", style="green")
    table.add_column("Remaining", style="yellow")
    table.add_column("Expires in", style="magenta")
    table.add_row("primary", *_format_record(primary))
    table.add_row("secondary", *_format_record(secondary))
    console.print(table)

    state = "[red]blocked[/red]" if blocked else "[green]not blocked[/green]"
    console.print(f"[bold]State:[/bold] {state}")


async def _release(key: str, name: str) -> bool:
    context = CoordinationContext.from_settings(settings)
    try:
        return await context.limiter(name).release(key)
    except StoreError as e:
        console.print(f"[red]Store error:[/red] {e}")
        raise typer.Exit(code=2) from e
    finally:
        await context.close()

"""CLI commands for inspecting role ownership.

Usage:
    warden leader show haleaderselect
    warden selector show device-sessions
"""

from __future__ import annotations

import asyncio

import typer
from rich.console import Console

from warden.config import settings
from warden.context import CoordinationContext
from warden.errors import StoreError
from warden.store.keys import StoreKeys

leader_app = typer.Typer(help="Inspect lease leader election", no_args_is_help=True)
selector_app = typer.Typer(help="Inspect single-shot role selectors", no_args_is_help=True)

console = Console()


@leader_app.command("show")
def show_leader(role: str = typer.Argument(..., help="Leader role identifier")) -> None:
    """Show the instance currently holding the lease for a role."""
    owner = asyncio.run(_read_owner(StoreKeys.leader(role)))
    _print_owner("Leader", role, owner)


@selector_app.command("show")
def show_selector(role: str = typer.Argument(..., help="Selector role name")) -> None:
    """Show the instance that most recently claimed a role."""
    owner = asyncio.run(_read_owner(StoreKeys.selector(role)))
    _print_owner("Selector", role, owner)


def _print_owner(kind: str, role: str, owner: str | None) -> None:
    if owner is None:
        console.print(f"{kind} '{role}': [yellow]no owner[/yellow]")
    else:
        console.print(f"{kind} '{role}': [green]{owner}[/green]")


async def _read_owner(key: str) -> str | None:
    context = CoordinationContext.from_settings(settings)
    try:
        return await context.store.get(key)
    except StoreError as e:
        console.print(f"[red]Store error:[/red] {e}")
        raise typer.Exit(code=2) from e
    finally:
        await context.close()

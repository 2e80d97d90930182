"""CLI commands for Warden.

Provides command-line interface using Typer:
- warden limiter status: Show the counters of a rate key
- warden limiter release: Administratively unblock a rate key
- warden leader show: Show the current lease owner of a role
- warden selector show: Show the current claimant of a role

Usage:
    warden --help
    warden limiter status 10.0.0.7 --name anonymous
    warden limiter release 10.0.0.7 --name anonymous
    warden leader show haleaderselect
"""

import typer

from warden.cli.coordination_cmd import leader_app, selector_app
from warden.cli.limiter_cmd import app as limiter_app
from warden.config import settings
from warden.observability.logging import configure_logging

# Main CLI application
app = typer.Typer(
    name="warden",
    help="Warden: distributed rate limiting and role election",
    no_args_is_help=True,
)

app.add_typer(limiter_app, name="limiter")
app.add_typer(leader_app, name="leader")
app.add_typer(selector_app, name="selector")


@app.callback()
def callback() -> None:
    """Warden: distributed rate limiting and role election."""
    configure_logging(json_format=settings.log_json, level=settings.log_level)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()

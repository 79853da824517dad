"""CLI: wa-relay session status|clear"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from wa_relay.auth import CredentialStore
from wa_relay.config import load_settings

console = Console()


def _store(session_dir: Optional[Path]) -> CredentialStore:
    return CredentialStore(load_settings(session_dir=session_dir).session_dir)


@click.group()
def session():
    """Stored session commands."""


@session.command("status")
@click.option("--session-dir", type=click.Path(file_okay=False, path_type=Path), default=None)
def session_status(session_dir: Optional[Path]):
    """Show the stored session."""
    store = _store(session_dir)
    files = store.files()
    if not files:
        console.print(f"[yellow]No session in {store.directory}. Run `wa-relay start --number ...`.[/yellow]")
        return
    creds = store.load()
    table = Table(title="Session")
    table.add_column("Field", style="bold")
    table.add_column("Value")
    table.add_row("Directory", str(store.directory))
    table.add_row("Files", str(len(files)))
    table.add_row("Registered", "yes" if creds.registered else "no")
    table.add_row("Account", creds.account_id or "-")
    console.print(table)


@session.command("clear")
@click.option("--session-dir", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("-y", "--yes", is_flag=True, help="Do not ask for confirmation")
def session_clear(session_dir: Optional[Path], yes: bool):
    """Delete the stored session (forces pairing on next start)."""
    store = _store(session_dir)
    if not yes:
        click.confirm(f"Delete all files in {store.directory}?", abort=True)
    removed = store.clear()
    console.print(f"[green]Removed {len(removed)} file(s).[/green]")

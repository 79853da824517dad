"""CLI: wa-relay start"""

from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from wa_relay.auth import CredentialStore
from wa_relay.bridge import build_bridge
from wa_relay.config import load_settings
from wa_relay.errors import InvalidIdentifierError
from wa_relay.pairing import prepare_identifier

console = Console()


def _setup_logging(level: str) -> None:
    from wa_relay.cli.main import _setup_logging
    _setup_logging(level)


def _run(coro):
    from wa_relay.cli.main import _run
    return _run(coro)


def _show_pairing_code(code: str) -> None:
    console.print(f"[bold green]Pairing code:[/bold green] {code}")
    console.print("[dim]WhatsApp > Linked devices > Link with phone number[/dim]")


def _show_qr(_qr: str) -> None:
    console.print("[yellow]Scan the QR code shown by the gateway to log in.[/yellow]")


@click.command("start")
@click.argument("mode", required=False, type=click.Choice(["qr"]))
@click.option("--number", "phone_number", default=None, help="Phone number to pair with, e.g. 628xxxxxxx")
@click.option("--session-dir", type=click.Path(file_okay=False, path_type=Path), default=None)
@click.option("--gateway-url", default=None, help="WhatsApp Web gateway URL")
@click.option("--direct-only/--allow-groups", default=None, help="Ignore group chats")
def start_cmd(
    mode: Optional[str],
    phone_number: Optional[str],
    session_dir: Optional[Path],
    gateway_url: Optional[str],
    direct_only: Optional[bool],
):
    """Run the bridge. Pass `qr` to log in by QR code instead of a pairing code."""
    settings = load_settings(
        qr=True if mode == "qr" else None,
        phone_number=phone_number,
        session_dir=session_dir,
        gateway_url=gateway_url,
        direct_only=direct_only,
    )
    _setup_logging(settings.log_level)

    if not settings.qr and not CredentialStore(settings.session_dir).load().registered:
        try:
            prepare_identifier(settings.phone_number, settings.country_prefix)
        except InvalidIdentifierError as e:
            if e.code == "missing_identifier":
                console.print(
                    "[red]Please provide a number to pair with[/red]\n\n"
                    "Example: wa-relay start --number 628xxxxxxx"
                )
            else:
                console.print(f"[red]{e}[/red]")
            raise SystemExit(1)

    bridge = build_bridge(settings, on_pairing_code=_show_pairing_code, on_qr=_show_qr)

    async def _start() -> int:
        bridge.install_signal_handlers()
        return await bridge.run()

    raise SystemExit(_run(_start()))

"""
wa-relay CLI — `wa-relay` command.

Commands:
  wa-relay start [qr] [--number N]   Run the bridge (pairs first if needed)
  wa-relay session status            Show the stored session
  wa-relay session clear             Delete the stored session
"""

import asyncio
import logging

try:
    import click
    from rich.console import Console
    from rich.logging import RichHandler
except ImportError:
    raise SystemExit("CLI requires extras: pip install wa-relay[cli]")

from wa_relay import __version__

console = Console()


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _run(coro):
    return asyncio.run(coro)


@click.group()
@click.version_option(__version__)
def main():
    """wa-relay: answer WhatsApp chats with a language model."""


# Register subcommands from separate modules
from wa_relay.cli.session import session
from wa_relay.cli.start import start_cmd

main.add_command(start_cmd)
main.add_command(session)


if __name__ == "__main__":
    main()

"""Command-line entry point for the router."""

import asyncio
import logging
import sys
import threading
from typing import Optional, TextIO

import click
from pydantic import ValidationError

from ..exceptions import CommandError
from ..models import RouterConfig, DEFAULT_PORT
from ..node import RouterNode
from ..transport.protocol import DataMessage
from .commands import execute_command

logger = logging.getLogger(__name__)


def echo_payload(message: DataMessage):
    """Print a data message addressed to this router."""
    click.echo(message.payload)


def _start_reader(stream: TextIO, loop: asyncio.AbstractEventLoop, lines: asyncio.Queue):
    """Feed lines from a blocking stream into the loop on a daemon thread."""
    def read():
        try:
            for line in iter(stream.readline, ''):
                loop.call_soon_threadsafe(lines.put_nowait, line)
            loop.call_soon_threadsafe(lines.put_nowait, '')
        except RuntimeError:
            # Event loop already closed
            return

    thread = threading.Thread(target=read, name="udprip-stdin", daemon=True)
    thread.start()
    return thread


async def run_shell(node: RouterNode, stream: Optional[TextIO] = None):
    """
    Read administrative commands until ``quit`` or end of input.

    Lines are read on a daemon thread so the event loop keeps serving
    datagrams and ticks while waiting, and an interrupted process exits
    without waiting for the blocked read.
    """
    lines: asyncio.Queue = asyncio.Queue()
    _start_reader(stream or sys.stdin, asyncio.get_running_loop(), lines)

    while True:
        line = await lines.get()
        if not line:
            break

        try:
            if not await execute_command(node.router, line, echo=click.echo):
                break
        except CommandError as e:
            click.echo(str(e), err=True)
        except Exception as e:
            logger.error(f"Error executing command: {e}")


async def run_router(config: RouterConfig):
    """Run a router node with the interactive shell attached."""
    node = RouterNode(config, on_deliver=echo_payload)
    await node.start()
    try:
        await run_shell(node)
    finally:
        await node.stop()


@click.command()
@click.argument('address')
@click.argument('period', type=float)
@click.argument('startup', required=False, type=click.Path(exists=True, dir_okay=False))
@click.option('--port', default=DEFAULT_PORT, show_default=True, help='UDP port shared by all routers')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def cli(address, period, startup, port, debug):
    """UDP distance-vector router.

    Binds ADDRESS, advertises routes every PERIOD seconds and optionally
    applies the add/del commands in STARTUP before reading commands from
    stdin.
    """
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        config = RouterConfig(address=address, period=period, port=port, startup_file=startup)
    except ValidationError as e:
        raise click.UsageError(
            "; ".join(f"{'.'.join(map(str, err['loc']))}: {err['msg']}" for err in e.errors())
        )

    try:
        asyncio.run(run_router(config))
    except OSError as e:
        raise click.ClickException(f"Cannot bind {config.address}:{config.port}: {e}")
    except KeyboardInterrupt:
        pass


def main():
    """Entry point for CLI."""
    cli()


if __name__ == '__main__':
    main()

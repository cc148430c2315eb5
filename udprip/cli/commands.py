"""Administrative commands for the interactive shell and startup files."""

import ipaddress
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union

from ..exceptions import CommandError
from ..routing.router import RouterCore


logger = logging.getLogger(__name__)

USAGE = {
    "add": "add <ip> <weight>",
    "del": "del <ip>",
    "trace": "trace <ip>",
    "routes": "routes",
    "neighbors": "neighbors",
    "stats": "stats",
    "help": "help",
    "quit": "quit",
}

# Startup files may only configure links
STARTUP_COMMANDS = {"add", "del"}


@dataclass
class Command:
    """A parsed administrative command."""
    name: str
    args: List[str]


def parse_command(line: str) -> Optional[Command]:
    """
    Split a command line into name and arguments.

    Returns:
        None for blank lines and ``#`` comments
    """
    line = line.strip()
    if not line or line.startswith('#'):
        return None

    parts = line.split()
    return Command(name=parts[0].lower(), args=parts[1:])


def _parse_address(command: Command, value: str) -> str:
    try:
        return str(ipaddress.ip_address(value))
    except ValueError:
        raise CommandError(f"Invalid address {value!r} (usage: {USAGE[command.name]})")


def _expect_args(command: Command, count: int):
    if len(command.args) != count:
        raise CommandError(f"usage: {USAGE[command.name]}")


def _parse_weight(value: str) -> int:
    message = f"Weight must be a positive integer, got {value!r} (usage: {USAGE['add']})"
    try:
        weight = int(value)
    except ValueError:
        raise CommandError(message) from None
    if weight <= 0:
        raise CommandError(message)
    return weight


def format_routes(router: RouterCore) -> str:
    """Render the routing table as text."""
    lines = [f"{'destination':<18}{'distance':>9}  {'next hop':<18}learned from"]
    for route in router.routing_table.get_all_routes():
        lines.append(
            f"{route.destination:<18}{route.distance:>9}  {route.next_hop:<18}{route.learned_from}"
        )
    return "\n".join(lines)


def format_neighbors(router: RouterCore) -> str:
    """Render the neighbor table as text."""
    neighbors = router.neighbors.get_stats()["neighbors"]
    if not neighbors:
        return "No neighbors"

    lines = [f"{'neighbor':<18}{'weight':>7}  last heard"]
    for ip in sorted(neighbors):
        info = neighbors[ip]
        lines.append(f"{ip:<18}{info['weight']:>7}  {info['age']:.1f}s ago")
    return "\n".join(lines)


async def execute_command(
    router: RouterCore,
    line: str,
    echo: Callable[[str], None] = print
) -> bool:
    """
    Execute one shell command against the router.

    Args:
        router: Router to administer
        line: Raw command line
        echo: Output function for command results

    Returns:
        False when the shell should exit, True otherwise

    Raises:
        CommandError: If the command is unknown or malformed
    """
    command = parse_command(line)
    if command is None:
        return True

    if command.name == "quit":
        return False

    if command.name == "add":
        _expect_args(command, 2)
        ip = _parse_address(command, command.args[0])
        await router.add_neighbor(ip, _parse_weight(command.args[1]))

    elif command.name == "del":
        _expect_args(command, 1)
        ip = _parse_address(command, command.args[0])
        if not await router.remove_neighbor(ip):
            echo(f"{ip} is not a neighbor")

    elif command.name == "trace":
        _expect_args(command, 1)
        ip = _parse_address(command, command.args[0])
        if not await router.send_trace(ip):
            echo(f"No route to {ip}")

    elif command.name == "routes":
        echo(format_routes(router))

    elif command.name == "neighbors":
        echo(format_neighbors(router))

    elif command.name == "stats":
        echo(json.dumps(router.get_stats()["metrics"], indent=2))

    elif command.name == "help":
        echo("Commands: " + ", ".join(USAGE.values()))

    else:
        raise CommandError(f"Unknown command {command.name!r} (try 'help')")

    return True


async def load_startup_file(router: RouterCore, path: Union[str, Path]) -> int:
    """
    Apply the add/del commands in a startup file.

    Blank lines and comments are skipped. Invalid or unknown commands are
    logged and the remaining lines are still applied.

    Args:
        router: Router to configure
        path: Startup file path

    Returns:
        Number of commands applied
    """
    applied = 0
    with open(path, 'r', encoding='utf-8') as f:
        for lineno, line in enumerate(f, start=1):
            command = parse_command(line)
            if command is None:
                continue

            if command.name not in STARTUP_COMMANDS:
                logger.warning(f"{path}:{lineno}: unknown command in startup file: {line.strip()}")
                continue

            try:
                await execute_command(router, line, echo=logger.info)
                applied += 1
            except CommandError as e:
                logger.warning(f"{path}:{lineno}: {e}")

    logger.info(f"Processed startup file {path}: {applied} commands applied")
    return applied

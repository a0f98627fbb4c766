"""Command line front end: send notifications and inspect the systemd hand-off."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import sys
from collections.abc import Sequence

from .activation import LISTEN_FDNAMES, LISTEN_FDS, LISTEN_PID, construct_sockets
from .config import CliConfig
from .env import EnvironmentReader
from .errors import SystemdError
from .notify import (
    Custom,
    Errno,
    Message,
    NotifyClient,
    Ready,
    Reloading,
    Status,
    Stopping,
    WatchdogOk,
    WatchdogTrigger,
    notify,
)
from .properties import properties

LOGGER = logging.getLogger("sdbridge")


def _parse_custom(value: str) -> Custom:
    key, sep, text = value.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return Custom(key, text)


def build_parser(config: CliConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sdbridge", description="systemd integration helper")
    parser.add_argument("--log-level", default=config.log_level)
    commands = parser.add_subparsers(dest="command", required=True)

    send = commands.add_parser("notify", help="send a status notification to $NOTIFY_SOCKET")
    send.add_argument("--ready", action="store_true")
    send.add_argument("--reloading", action="store_true")
    send.add_argument("--stopping", action="store_true")
    send.add_argument("--status")
    send.add_argument("--errno", type=int)
    send.add_argument("--watchdog", action="store_true")
    send.add_argument("--watchdog-trigger", action="store_true")
    send.add_argument("--custom", type=_parse_custom, action="append", default=[], metavar="KEY=VALUE")
    send.add_argument("--best-effort", action="store_true", help="log failures instead of exiting non-zero")

    listing = commands.add_parser("sockets", help="list descriptors passed by socket activation")
    listing.add_argument("--pid", type=int, help="PID to match against $LISTEN_PID (default: this process)")

    unit = commands.add_parser("unit", help="show a unit's state and main PID")
    unit.add_argument("name")
    unit.add_argument("--pid", type=int, help="report whether this PID is the unit's main process")
    return parser


def build_message(args: argparse.Namespace) -> Message:
    message = Message()
    if args.ready:
        message.push(Ready())
    if args.reloading:
        message.push(Reloading())
    if args.stopping:
        message.push(Stopping())
    if args.status is not None:
        message.push(Status(args.status))
    if args.errno is not None:
        message.push(Errno(args.errno))
    if args.watchdog:
        message.push(WatchdogOk())
    if args.watchdog_trigger:
        message.push(WatchdogTrigger())
    for custom in args.custom:
        message.push(custom)
    return message


async def _send(message: Message, best_effort: bool, env: EnvironmentReader | None) -> int:
    if best_effort:
        await notify(message, env=env)
        return 0
    async with NotifyClient.from_environment(env) as client:
        await client.send(message)
    return 0


def _list_sockets(pid: int | None, env: EnvironmentReader) -> int:
    handles = construct_sockets(
        env.read(LISTEN_FDS),
        env.get(LISTEN_FDNAMES),
        env.read(LISTEN_PID),
        pid=os.getpid() if pid is None else pid,
    )
    for handle in handles:
        print(f"{handle.fileno()}\t{handle.name or ''}")
    return 0


def _show_unit(name: str, pid: int | None, config: CliConfig) -> int:
    unit_properties = properties(name, config.probe)
    main_pid = unit_properties.property("MainPID")
    print(f"ActiveState={unit_properties.state()}")
    print(f"MainPID={main_pid or ''}")
    if pid is not None:
        print(f"MainProcess={'yes' if main_pid == str(pid) else 'no'}")
    return 0


def main(argv: Sequence[str] | None = None, env: EnvironmentReader | None = None) -> int:
    config = CliConfig.from_env(env.environ if env is not None else None)
    parser = build_parser(config)
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.WARNING))

    try:
        if args.command == "notify":
            message = build_message(args)
            if not len(message):
                parser.error("notify: nothing to send")
            return asyncio.run(_send(message, args.best_effort, env))
        if args.command == "sockets":
            return _list_sockets(args.pid, env or EnvironmentReader())
        return _show_unit(args.name, args.pid, config)
    except SystemdError as exc:
        LOGGER.error("%s", exc)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()

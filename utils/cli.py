"""Subcommand dispatcher shared by the scanner entry points."""

from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from typing import Callable, Iterable, Optional

from utils.error_tracker import ErrorTracker, ScanError
from utils.logger import Logger, LoggerType


@dataclass
class Command:
    """One subcommand: its handler and the arguments it adds."""

    name: str
    handler: Callable[[argparse.Namespace], None]
    add_arguments: Optional[Callable[[argparse.ArgumentParser], None]] = None
    help: str | None = None


@dataclass
class CommandDispatcher:
    """Parse the command line and run the selected :class:`Command`.

    A :class:`ScanError` raised by a handler is an expected failure of the
    scan (missing camera, aborted capture, bad session file). It is logged
    with its camera serial and ends the process with exit status 1. Any
    other exception propagates to the :class:`ErrorTracker` hook.
    """

    description: str
    commands: Iterable[Command] = field(default_factory=list)
    prog: str | None = None

    def build_parser(self) -> argparse.ArgumentParser:
        parser = argparse.ArgumentParser(prog=self.prog, description=self.description)
        subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
        for cmd in self.commands:
            sp = subparsers.add_parser(cmd.name, help=cmd.help, description=cmd.help)
            if cmd.add_arguments:
                cmd.add_arguments(sp)
            sp.set_defaults(func=cmd.handler)
        return parser

    def run(
        self,
        args: Optional[list[str]] = None,
        *,
        logger: Optional[LoggerType] = None,
        track_exceptions: bool = True,
    ) -> None:
        """Dispatch ``args`` (``sys.argv`` when omitted)."""
        logger = logger or Logger.get_logger("utils.cli")
        if track_exceptions:
            ErrorTracker.install_excepthook()
            ErrorTracker.install_signal_handlers()

        parser = self.build_parser()
        ns = parser.parse_args(args)
        if ns.command is None:
            parser.print_help()
            return

        logger.debug(f"Running command '{ns.command}'")
        try:
            ns.func(ns)
        except ScanError as e:
            logger.error(f"{ns.command} failed: {e}")
            raise SystemExit(1) from e

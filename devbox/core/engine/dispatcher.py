"""
Dispatcher — resolve a command name and run what the registry says.

Resolution by descriptor kind:

    script / manifest_handler      run the file with the arguments
    function                       routine(arguments)
    manifest_dispatcher            routine(command_path, arguments)
    directory_default / routed     longest matching sub-route, else the
    function                       default target, else a listing

Arguments travel untouched: no flag parsing, no re-quoting, no
reordering.  For a manifest dispatcher, ``command_path[1:] + arguments``
is always exactly the trailing CLI tokens.

A target that raises is reported here, at the boundary, and becomes
exit status 1.  Nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

import click

from devbox.core.engine.registry import CommandRegistry
from devbox.core.engine.routines import Routine, RoutineTable, parse_route
from devbox.core.engine.scripts import exit_code, read_synopsis, run_script
from devbox.core.errors import CommandFailedError, UnknownCommandError
from devbox.core.models.command import CommandDescriptor, CommandKind, Mode

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1

HELP_COMMAND = "help"

PROG_NAMES = {
    Mode.GLOBAL: "devbox",
    Mode.PROJECT: "box",
}

_FILE_KINDS = (
    CommandKind.SCRIPT,
    CommandKind.MANIFEST_HANDLER,
    CommandKind.DIRECTORY_DEFAULT,
    CommandKind.DIRECTORY_SUBCOMMAND,
)


def match_subcommand(
    subcommands: dict[str, str],
    args: Sequence[str],
) -> tuple[str | None, list[str]]:
    """Find the longest leading run of tokens naming a sub-route.

    Returns:
        (dotted sub-route or None, remaining arguments)
    """
    for n in range(len(args), 0, -1):
        head = args[:n]
        if parse_route(head) is None:
            continue
        key = ".".join(head)
        if key in subcommands:
            return key, list(args[n:])
    return None, list(args)


def split_command_path(
    descriptor: CommandDescriptor,
    args: Sequence[str],
) -> tuple[list[str], list[str]]:
    """Decompose trailing tokens for a manifest dispatcher.

    A first token naming one of the declared routes joins the command
    path; everything else is an argument.
    """
    if args and args[0] in descriptor.dispatch_routes:
        return [descriptor.name, args[0]], list(args[1:])
    return [descriptor.name], list(args)


class Dispatcher:
    """Resolve and execute one command against a sealed registry."""

    def __init__(
        self,
        registry: CommandRegistry,
        table: RoutineTable,
        mode: Mode,
    ):
        registry.seal()
        self.registry = registry
        self.table = table
        self.mode = mode
        self.prog = PROG_NAMES[mode]

    # ── Entry ───────────────────────────────────────────────────

    def dispatch(self, name: str | None, args: Sequence[str] = ()) -> int:
        """Run ``name`` with ``args`` and return the exit status."""
        args = list(args)

        if not name:
            click.echo(self.help_text())
            return EXIT_OK

        if name == HELP_COMMAND and HELP_COMMAND not in self.registry:
            return self.help(args[0] if args else None, args[1:])

        descriptor = self.registry.get(name)
        if descriptor is None:
            return self._unknown(name)

        logger.debug(
            "Dispatching '%s' -> %s %s (%s)",
            name, descriptor.kind.value, descriptor.target or "-", descriptor.tier.value,
        )
        try:
            return self.invoke(descriptor, args)
        except SystemExit as e:
            return exit_code(e.code)
        except Exception as e:
            logger.error(
                "Command '%s' failed [%s tier, %s]: %s",
                name, descriptor.tier.value, descriptor.source, e,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            click.secho(f"❌ {name}: {e}", fg="red", err=True)
            return EXIT_FAILURE

    def invoke(self, descriptor: CommandDescriptor, args: list[str]) -> int:
        """Execute a resolved descriptor."""
        kind = descriptor.kind

        if kind is CommandKind.MANIFEST_DISPATCHER:
            command_path, arguments = split_command_path(descriptor, args)
            routine = self._routine(descriptor.target)
            return exit_code(routine.func(command_path, arguments))

        if descriptor.is_routed:
            sub, rest = match_subcommand(descriptor.subcommands, args)
            if sub is not None:
                resolved = self.registry.subcommand(descriptor.name, sub)
                if resolved is None:
                    raise CommandFailedError(
                        f"subcommand '{descriptor.name} {sub}' has no registered target"
                    )
                return self.invoke(resolved, rest)

        if not descriptor.has_default:
            if args:
                click.secho(
                    f"❌ Unknown subcommand for '{descriptor.name}': {args[0]}",
                    fg="red", err=True,
                )
            click.echo(self.subcommand_listing(descriptor))
            return EXIT_FAILURE if args else EXIT_OK

        if kind in _FILE_KINDS:
            return run_script(descriptor.target, args)

        routine = self._routine(descriptor.target)
        return exit_code(routine.func(args))

    # ── Help ────────────────────────────────────────────────────

    def help(self, name: str | None, args: Sequence[str] = ()) -> int:
        """``help [name]`` — generic listing or help for one command."""
        if not name:
            click.echo(self.help_text())
            return EXIT_OK

        descriptor = self.registry.get(name)
        if descriptor is None:
            return self._unknown(name)

        if descriptor.help_target:
            routine = self._routine(descriptor.help_target)
            try:
                return exit_code(routine.func(list(args)))
            except SystemExit as e:
                return exit_code(e.code)

        if descriptor.is_routed or not descriptor.has_default:
            click.echo(self.subcommand_listing(descriptor))
            return EXIT_OK

        click.echo(f"{self.prog} {name} — {descriptor.synopsis or 'no description'}")
        click.echo(f"  source: {descriptor.source} ({descriptor.tier.value})")
        if descriptor.dispatch_routes:
            click.echo(f"  routes: {', '.join(descriptor.dispatch_routes)}")
        return EXIT_OK

    def help_text(self) -> str:
        """Synthesized listing of every registered command."""
        lines = [f"Usage: {self.prog} <command> [args...]", "", "Commands:"]
        names = self.registry.names()
        if not names:
            lines.append("  (none)")
        width = max((len(n) for n in names), default=0) + 2
        for name in names:
            descriptor = self.registry.entries[name]
            lines.append(f"  {name:<{width}}{descriptor.synopsis}".rstrip())
            if not descriptor.has_default:
                for sub in sorted(descriptor.subcommands):
                    lines.append(f"    {name} {sub.replace('.', ' ')}")
        if HELP_COMMAND not in self.registry:
            lines += ["", f"Run '{self.prog} help <command>' for details."]
        return "\n".join(lines)

    def subcommand_listing(self, descriptor: CommandDescriptor) -> str:
        """Listing shown for a directory module invoked without a sub-route."""
        lines = [f"Usage: {self.prog} {descriptor.name} <subcommand> [args...]", ""]
        if descriptor.synopsis:
            lines += [descriptor.synopsis, ""]
        lines.append("Subcommands:")
        subs = sorted(descriptor.subcommands)
        width = max((len(s) for s in subs), default=0) + 2
        for sub in subs:
            synopsis = self._synopsis_of(descriptor, descriptor.subcommands[sub])
            lines.append(f"  {sub.replace('.', ' '):<{width}}{synopsis}".rstrip())
        return "\n".join(lines)

    # ── Internals ───────────────────────────────────────────────

    def _routine(self, key: str) -> Routine:
        routine = self.table.get(key)
        if routine is None:
            raise CommandFailedError(f"routine '{key}' is not loaded")
        return routine

    def _synopsis_of(self, descriptor: CommandDescriptor, target: str) -> str:
        if descriptor.kind is CommandKind.FUNCTION:
            routine = self.table.get(target)
            return routine.synopsis if routine else ""
        return read_synopsis(Path(target))

    def _unknown(self, name: str) -> int:
        rejection = self.registry.rejection_for(name)
        if rejection is not None:
            click.secho(
                f"❌ Command '{name}' is unavailable: its module failed validation {rejection}",
                fg="red", err=True,
            )
            return EXIT_FAILURE

        error = UnknownCommandError(name)
        logger.info("%s", error)
        click.secho(f"❌ {error}", fg="red", err=True)
        click.echo(self.help_text())
        return EXIT_FAILURE

"""
Embedded reconciler — rebuild the registry from in-process routines.

When devbox runs from a bundle there are no command folders to scan:
every command source was loaded into the routine table at import time.
The reconciler turns that table into the registry the scanner would
have produced from the same sources:

    route "alpha"                 -> alpha
    route "pkg"                   -> pkg (default)
    route "pkg install"           -> pkg, sub-route "install"
    route "pkg validate state"    -> pkg, sub-route "validate.state"

Routines are grouped by their first route token; the first routine of a
command decides where it came from, and insertion follows the same
first-wins rule as a disk scan.
"""

from __future__ import annotations

import logging

from devbox.core.engine.registry import CommandRegistry
from devbox.core.engine.routines import Convention, Routine, RoutineTable
from devbox.core.models.command import CommandDescriptor, CommandKind, Mode, SourceTier

logger = logging.getLogger(__name__)


def group_routines(routines: list[Routine]) -> dict[str, list[Routine]]:
    """Group routines by command name, keeping registration order."""
    groups: dict[str, list[Routine]] = {}
    for r in routines:
        groups.setdefault(r.command, []).append(r)
    return groups


def describe_group(
    table: RoutineTable,
    mode: Mode,
    command: str,
    routines: list[Routine],
) -> CommandDescriptor:
    """One descriptor for every routine sharing a command name."""
    default = next((r for r in routines if len(r.route) == 1), None)
    help_routine = table.help_for(mode, command)

    if default is not None and default.convention is Convention.PATH:
        extra = [r for r in routines if r is not default]
        if extra:
            logger.debug(
                "Dispatcher '%s' owns its sub-routes; ignoring %d routine(s)",
                command, len(extra),
            )
        return CommandDescriptor(
            name=command,
            kind=CommandKind.MANIFEST_DISPATCHER,
            target=default.key,
            tier=SourceTier.CORE_EMBEDDED,
            source=default.source,
            synopsis=default.synopsis,
            help_target=help_routine.key if help_routine else "",
            dispatch_routes=default.dispatch_routes,
        )

    subcommands = {r.sub_route: r.key for r in routines if len(r.route) > 1}
    return CommandDescriptor(
        name=command,
        kind=CommandKind.FUNCTION,
        target=default.key if default else "",
        tier=SourceTier.CORE_EMBEDDED,
        source=(default or routines[0]).source,
        synopsis=default.synopsis if default else "",
        subcommands=subcommands,
        help_target=help_routine.key if help_routine else "",
    )


def reconcile(
    table: RoutineTable,
    mode: Mode,
    registry: CommandRegistry | None = None,
) -> CommandRegistry:
    """Insert one CoreEmbedded descriptor per command of ``mode``.

    Args:
        table: The populated routine table.
        mode: Active mode; routines of the other mode are ignored.
        registry: Registry to extend (e.g. already holding box overrides).

    Returns:
        The registry, with reconciled entries added first-wins.
    """
    registry = registry if registry is not None else CommandRegistry()
    groups = group_routines(table.for_mode(mode))

    added = 0
    for command, routines in groups.items():
        if registry.add(describe_group(table, mode, command, routines)):
            added += 1

    logger.debug(
        "Reconciled %d command(s) from %d routine(s) for mode %s",
        added, sum(len(g) for g in groups.values()), mode.value,
    )
    return registry

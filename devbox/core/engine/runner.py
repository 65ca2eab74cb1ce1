"""
Runner — one invocation, start to finish.

    run(mode, args)
        1. resolve settings
        2. build the registry
             disk:      scan every tier
             embedded:  scan the box override tier, then reconcile the
                        bundle's routine table
        3. dispatch args[0] with args[1:]

Nothing here is shared between invocations: the registry and routine
table are created per call and dropped when it returns.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from devbox.core.config.settings import Settings, load_settings
from devbox.core.context import Invocation, set_invocation
from devbox.core.engine.dispatcher import Dispatcher
from devbox.core.engine.reconciler import reconcile
from devbox.core.engine.registry import CommandRegistry
from devbox.core.engine.routines import RoutineTable
from devbox.core.engine.scanner import SourceScanner
from devbox.core.models.command import Mode, SourceTier

logger = logging.getLogger(__name__)


def build_registry(
    settings: Settings,
    table: RoutineTable,
    embedded_table: RoutineTable | None = None,
) -> CommandRegistry:
    """Build the command registry for ``settings.mode``.

    Args:
        settings: Resolved settings (tier directories, mode).
        table: Table that receives routines loaded while scanning; the
            dispatcher resolves routine keys against it.
        embedded_table: Routine table of a bundle.  When given, only the
            project-local override tier is scanned from disk.
    """
    registry = CommandRegistry()

    if embedded_table is None:
        registry.fold(SourceScanner.for_settings(settings, table).scan())
    else:
        scanner = SourceScanner.for_settings(settings, table, only=(SourceTier.BOX_OVERRIDE,))
        registry.fold(scanner.scan())
        table.register_all(embedded_table.all())
        reconcile(embedded_table, settings.mode, registry)
        for error in embedded_table.rejections(settings.mode):
            registry.reject(error)

    logger.info(
        "Registry (%s%s): %d command(s), %d shadowed, %d rejected",
        settings.mode.value,
        ", embedded" if embedded_table is not None else "",
        len(registry), len(registry.dropped), len(registry.rejected),
    )
    return registry


def run(
    mode: Mode,
    args: Sequence[str],
    settings: Settings | None = None,
    embedded_table: RoutineTable | None = None,
) -> int:
    """Build the registry and dispatch ``args`` once.

    Returns:
        Process exit status.
    """
    if settings is None:
        settings = load_settings(mode)
    if embedded_table is not None:
        settings.embedded = True

    table = RoutineTable()
    registry = build_registry(settings, table, embedded_table)
    dispatcher = Dispatcher(registry, table, mode)

    set_invocation(Invocation(settings=settings, registry=registry, table=table))
    try:
        args = list(args)
        return dispatcher.dispatch(args[0] if args else None, args[1:])
    finally:
        set_invocation(None)

"""
Command registry — the resolved name -> implementation mapping.

Folding rule: the first candidate to claim a name keeps it.  Tiers are
scanned highest precedence first, so "first" means "highest tier, then
first module within the tier".  Later claimants are dropped; the drop
is logged at DEBUG so ``--debug`` shows what was shadowed.

The registry is built once per invocation and sealed before dispatch.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from devbox.core.engine.scanner import Rejection, ScanEvent
from devbox.core.errors import ManifestError, RegistrySealedError
from devbox.core.models.command import CommandDescriptor, CommandKind

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Write-once mapping of command names to descriptors."""

    def __init__(self) -> None:
        self.entries: dict[str, CommandDescriptor] = {}
        self.loaded_modules: dict[str, Path] = {}
        self.rejected: dict[str, ManifestError] = {}
        self.dropped: list[CommandDescriptor] = []
        self._sealed = False

    def __contains__(self, name: str) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self) -> None:
        """Freeze the registry; the dispatcher only ever reads it."""
        self._sealed = True

    def add(self, descriptor: CommandDescriptor) -> bool:
        """Insert a descriptor unless its name is already claimed.

        Returns:
            True if the descriptor was registered.
        """
        self._check_open()
        existing = self.entries.get(descriptor.name)
        if existing is not None:
            self.dropped.append(descriptor)
            logger.debug(
                "Command '%s' from %s (%s) shadowed by %s (%s)",
                descriptor.name, descriptor.source, descriptor.tier.value,
                existing.source, existing.tier.value,
            )
            return False

        self.entries[descriptor.name] = descriptor
        self.loaded_modules[descriptor.name] = Path(descriptor.source)
        return True

    def add_all(self, descriptors: Iterable[CommandDescriptor]) -> int:
        return sum(1 for d in descriptors if self.add(d))

    def fold(self, events: Iterable[ScanEvent]) -> CommandRegistry:
        """Apply a scanner stream in order."""
        for event in events:
            if isinstance(event, Rejection):
                self.reject(event.error)
            else:
                self.add(event.descriptor)
        return self

    def reject(self, error: ManifestError) -> None:
        """Remember a rejected module's command names for error reporting."""
        self._check_open()
        for name in error.commands:
            self.rejected.setdefault(name, error)

    def get(self, name: str) -> CommandDescriptor | None:
        return self.entries.get(name)

    def names(self) -> list[str]:
        return sorted(self.entries)

    def rejection_for(self, name: str) -> ManifestError | None:
        """The validation error of the module that would have owned ``name``."""
        if name in self.entries:
            return None
        return self.rejected.get(name)

    def subcommand(self, name: str, sub: str) -> CommandDescriptor | None:
        """Resolve ``name sub`` to a sub-route descriptor.

        Sub-routes are never top-level keys; they are derived from the
        owning descriptor on demand.
        """
        parent = self.entries.get(name)
        if parent is None or sub not in parent.subcommands:
            return None
        kind = (
            CommandKind.FUNCTION
            if parent.kind is CommandKind.FUNCTION
            else CommandKind.DIRECTORY_SUBCOMMAND
        )
        return CommandDescriptor(
            name=f"{name}.{sub}",
            kind=kind,
            target=parent.subcommands[sub],
            tier=parent.tier,
            source=parent.source,
        )

    def _check_open(self) -> None:
        if self._sealed:
            raise RegistrySealedError("command registry is sealed")

"""
Invocation context — what the running command was dispatched from.

Set ONCE by the runner before dispatch and read by built-in commands
that need more than their arguments (settings, the registry they were
resolved from):

    - CLI:    runner.run() → context.set_invocation(inv)
    - Tests:  set_invocation(...) directly, or call run()

Commands executed outside the runner (a script started by hand) get
None and fall back to loading settings themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from devbox.core.config.settings import Settings, load_settings
from devbox.core.models.command import Mode

if TYPE_CHECKING:
    from devbox.core.engine.registry import CommandRegistry
    from devbox.core.engine.routines import RoutineTable


@dataclass(frozen=True)
class Invocation:
    settings: Settings
    registry: CommandRegistry
    table: RoutineTable


_invocation: Optional[Invocation] = None


def set_invocation(invocation: Optional[Invocation]) -> None:
    """Register (or clear) the current invocation for this process."""
    global _invocation
    _invocation = invocation


def get_invocation() -> Optional[Invocation]:
    """Return the current invocation, or None outside the runner."""
    return _invocation


def current_settings(mode: Mode) -> Settings:
    """Settings of the running invocation, or freshly loaded ones."""
    if _invocation is not None:
        return _invocation.settings
    return load_settings(mode)

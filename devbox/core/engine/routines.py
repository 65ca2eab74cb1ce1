"""
Routine table — the in-process command namespace.

Every command source exposes an explicit, static list of the routines
it provides::

    def install(args):
        ...

    ROUTINES = [
        ("pkg install", install),
    ]

Loading a source executes it into a fresh module namespace and
registers each ``(route, callable)`` pair under the active mode.  The
embedded reconciler consumes this table directly; nothing is ever
discovered by parsing symbol names.

Calling conventions:
    args   routine(arguments)                   plain command routines
    path   routine(command_path, arguments)     manifest dispatchers
"""

from __future__ import annotations

import inspect
import logging
import re
import sys
import types
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from devbox.core.engine.scripts import PYTHON_SUFFIX, ScriptRoutine
from devbox.core.errors import ManifestError
from devbox.core.models.command import Mode

logger = logging.getLogger(__name__)

ROUTINES_ATTR = "ROUTINES"

_ROUTE_TOKEN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]*$")
_namespace_counter = 0


class Convention(str, Enum):
    ARGS = "args"
    PATH = "path"


@dataclass(frozen=True)
class Routine:
    """One registered entry point."""

    mode: Mode
    route: tuple[str, ...]
    func: Callable[..., Any]
    convention: Convention = Convention.ARGS
    source: str = ""
    is_help: bool = False
    synopsis: str = ""
    dispatch_routes: tuple[str, ...] = ()

    @property
    def key(self) -> str:
        return routine_key(self.mode, self.route, is_help=self.is_help)

    @property
    def command(self) -> str:
        return self.route[0]

    @property
    def sub_route(self) -> str:
        """Dotted remainder of the route ("" for the command itself)."""
        return ".".join(self.route[1:])


def routine_key(mode: Mode, route: Sequence[str], *, is_help: bool = False) -> str:
    key = f"{mode.value}:{' '.join(route)}"
    return f"{key}#help" if is_help else key


def parse_route(route: str | Sequence[str]) -> tuple[str, ...] | None:
    """Split a route into tokens, or return None if it is malformed."""
    tokens = tuple(route.split()) if isinstance(route, str) else tuple(route)
    if not tokens:
        return None
    if not all(isinstance(t, str) and _ROUTE_TOKEN.match(t) for t in tokens):
        return None
    return tokens


def first_doc_line(obj: Any) -> str:
    """First line of an object's docstring, or ""."""
    doc = inspect.getdoc(obj)
    return doc.splitlines()[0].strip() if doc else ""


def defined_functions(namespace: types.ModuleType) -> dict[str, Callable[..., Any]]:
    """Public functions *defined* by a module (imports excluded)."""
    return {
        name: obj
        for name, obj in vars(namespace).items()
        if inspect.isfunction(obj)
        and obj.__module__ == namespace.__name__
        and not name.startswith("_")
    }


def exec_namespace(path: str, source: str | None = None) -> types.ModuleType:
    """Execute a Python source file into a fresh module object.

    The module is registered in ``sys.modules`` under a synthetic name so
    dataclasses and pickling inside command files behave normally.
    """
    global _namespace_counter

    if source is None:
        source = Path(path).read_text(encoding="utf-8")

    _namespace_counter += 1
    stem = re.sub(r"\W", "_", Path(path).stem)
    name = f"devbox_loaded.{stem}_{_namespace_counter}"

    module = types.ModuleType(name)
    module.__file__ = path
    sys.modules[name] = module
    try:
        exec(compile(source, path, "exec"), module.__dict__)
    except BaseException:
        sys.modules.pop(name, None)
        raise
    return module


class RoutineTable:
    """Registered routines, keyed by ``mode:route``.

    Populated before dispatch begins and read-only afterwards.  A second
    registration of the same key is ignored (first wins), mirroring the
    registry's own rule.
    """

    def __init__(self) -> None:
        self._routines: dict[str, Routine] = {}
        self._rejected: list[tuple[Mode, ManifestError]] = []

    def __len__(self) -> int:
        return len(self._routines)

    def __contains__(self, key: str) -> bool:
        return key in self._routines

    def register(
        self,
        mode: Mode,
        route: str | Sequence[str],
        func: Callable[..., Any],
        *,
        convention: Convention = Convention.ARGS,
        source: str = "",
        is_help: bool = False,
        synopsis: str | None = None,
        dispatch_routes: Sequence[str] = (),
    ) -> Routine | None:
        """Register one routine.  Returns None if the route is malformed
        or the key is already taken."""
        tokens = parse_route(route)
        if tokens is None:
            logger.debug("Ignoring malformed route %r from %s", route, source or "?")
            return None
        if not callable(func):
            logger.debug("Ignoring non-callable routine %r from %s", route, source or "?")
            return None

        entry = Routine(
            mode=mode, route=tokens, func=func,
            convention=convention, source=source, is_help=is_help,
            synopsis=synopsis if synopsis is not None else first_doc_line(func),
            dispatch_routes=tuple(dispatch_routes),
        )
        if entry.key in self._routines:
            logger.debug(
                "Routine %s from %s already registered by %s",
                entry.key, source, self._routines[entry.key].source,
            )
            return None
        self._routines[entry.key] = entry
        return entry

    def get(self, key: str) -> Routine | None:
        return self._routines.get(key)

    def all(self) -> list[Routine]:
        """Every routine, help routines included, in registration order."""
        return list(self._routines.values())

    def for_mode(self, mode: Mode) -> list[Routine]:
        """Routines of one mode, in registration order."""
        return [r for r in self._routines.values() if r.mode == mode and not r.is_help]

    def help_for(self, mode: Mode, command: str) -> Routine | None:
        """A manifest module's own help routine for a command, if any."""
        return self._routines.get(routine_key(mode, (command,), is_help=True))

    def reject(self, mode: Mode, error: ManifestError) -> None:
        """Remember a module that failed validation while loading."""
        self._rejected.append((mode, error))

    def rejections(self, mode: Mode) -> list[ManifestError]:
        return [e for m, e in self._rejected if m == mode]

    # ── Loading ─────────────────────────────────────────────────

    def load_script(
        self,
        mode: Mode,
        path: str,
        source: str | None = None,
        default_route: Sequence[str] = (),
    ) -> list[Routine]:
        """Load one command script and register what it provides.

        Python scripts contribute their ``ROUTINES`` list.  Scripts that
        declare none (including every non-Python script) are registered
        as a whole under ``default_route``.
        """
        pairs: list[tuple[Any, Any]] = []
        if path.endswith(PYTHON_SUFFIX):
            module = exec_namespace(path, source)
            pairs = list(getattr(module, ROUTINES_ATTR, None) or [])

        if not pairs:
            if not default_route:
                return []
            pairs = [(tuple(default_route), ScriptRoutine(path, source))]

        added = []
        for pair in pairs:
            try:
                route, func = pair
            except (TypeError, ValueError):
                logger.debug("Ignoring malformed ROUTINES entry %r in %s", pair, path)
                continue
            entry = self.register(mode, route, func, source=path)
            if entry:
                added.append(entry)
        return added

    def register_all(self, routines: Iterable[Routine]) -> None:
        for r in routines:
            self.register(
                r.mode, r.route, r.func,
                convention=r.convention, source=r.source, is_help=r.is_help,
                synopsis=r.synopsis, dispatch_routes=r.dispatch_routes,
            )

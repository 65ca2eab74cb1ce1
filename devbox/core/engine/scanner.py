"""
Source scanner — enumerate command candidates from the location tiers.

Tiers are visited in precedence order (highest first)::

    box_override      <project>/.box/
    project_module    devbox/modules/<mode>/
    core_embedded     devbox/commands/<mode>/
    shared_manifest   devbox/modules/shared/

Inside a tier, entries are visited in sorted name order.  Each entry
becomes a candidate:

    alpha.py                single script          -> alpha
    pkg/default.py          directory module       -> pkg
    pkg/install.py            sub-route            -> pkg install
    pkg/validate.state.py     dotted sub-route     -> pkg validate state
    tools/module.yml        manifest module        -> each declared command

The scanner never resolves conflicts; it yields an ordered stream and
the registry applies precedence.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from devbox.core.config.settings import Settings
from devbox.core.engine.modules import ModuleSource, load_manifest_module
from devbox.core.engine.routines import RoutineTable, parse_route
from devbox.core.engine.scripts import is_script, read_synopsis, script_name
from devbox.core.errors import ManifestError
from devbox.core.models.command import CommandDescriptor, CommandKind, Mode, SourceTier
from devbox.core.models.manifest import MANIFEST_FILE

logger = logging.getLogger(__name__)

DEFAULT_SCRIPT = "default"


@dataclass(frozen=True)
class Candidate:
    tier: SourceTier
    descriptor: CommandDescriptor


@dataclass(frozen=True)
class Rejection:
    tier: SourceTier
    error: ManifestError


ScanEvent = Candidate | Rejection


def tier_roots(settings: Settings) -> list[tuple[SourceTier, Path]]:
    """The ordered tier directories for an invocation."""
    return [
        (SourceTier.BOX_OVERRIDE, settings.override_dir),
        (SourceTier.PROJECT_MODULE, settings.project_commands_dir),
        (SourceTier.CORE_EMBEDDED, settings.core_commands_dir),
        (SourceTier.SHARED_MANIFEST, settings.shared_modules_dir),
    ]


def tier_entries(root: Path) -> list[Path]:
    """Visible entries of a tier directory, sorted.

    Raises:
        OSError: the directory cannot be listed.
    """
    return sorted(
        p for p in root.iterdir()
        if not p.name.startswith((".", "_"))
    )


def is_manifest_dir(path: Path, tier: SourceTier) -> bool:
    """Whether a directory must be treated as a manifest module."""
    return tier is SourceTier.SHARED_MANIFEST or (path / MANIFEST_FILE).is_file()


def directory_scripts(path: Path) -> tuple[Path | None, dict[str, Path]]:
    """Split a directory module into its default script and sub-routes.

    Sub-routes are keyed by their dotted name (``validate.state``).
    Files whose names do not form a valid route are ignored.

    Raises:
        OSError: the directory cannot be listed.
    """
    default: Path | None = None
    subs: dict[str, Path] = {}
    for child in tier_entries(path):
        if not is_script(child):
            continue
        name = script_name(child)
        if name == DEFAULT_SCRIPT:
            default = default or child
        elif parse_route(name.split(".")) is not None:
            subs.setdefault(name, child)
        else:
            logger.debug("Ignoring script with unroutable name: %s", child)
    return default, subs


class SourceScanner:
    """Walk the tiers and yield candidates and manifest rejections."""

    def __init__(
        self,
        mode: Mode,
        table: RoutineTable,
        tiers: list[tuple[SourceTier, Path]],
    ):
        self.mode = mode
        self.table = table
        self.tiers = tiers

    @classmethod
    def for_settings(
        cls,
        settings: Settings,
        table: RoutineTable,
        only: tuple[SourceTier, ...] | None = None,
    ) -> SourceScanner:
        tiers = [(t, root) for t, root in tier_roots(settings) if only is None or t in only]
        return cls(settings.mode, table, tiers)

    def scan(self) -> Iterator[ScanEvent]:
        for tier, root in self.tiers:
            yield from self.scan_tier(tier, root)

    def scan_tier(self, tier: SourceTier, root: Path) -> Iterator[ScanEvent]:
        if not root.is_dir():
            logger.debug("Tier %s: %s not present", tier.value, root)
            return

        try:
            entries = tier_entries(root)
        except OSError as e:
            logger.warning("Cannot read %s (%s tier): %s — skipping", root, tier.value, e)
            return

        for entry in entries:
            if entry.is_dir():
                yield from self._scan_dir(tier, entry)
            elif tier is not SourceTier.SHARED_MANIFEST and is_script(entry):
                candidate = self._script_candidate(tier, entry)
                if candidate:
                    yield candidate

    def _script_candidate(self, tier: SourceTier, path: Path) -> Candidate | None:
        name = script_name(path)
        if parse_route((name,)) is None:
            logger.debug("Ignoring script with unroutable name: %s", path)
            return None
        return Candidate(
            tier,
            CommandDescriptor(
                name=name,
                kind=CommandKind.SCRIPT,
                target=str(path),
                tier=tier,
                source=str(path),
                synopsis=read_synopsis(path),
            ),
        )

    def _scan_dir(self, tier: SourceTier, path: Path) -> Iterator[ScanEvent]:
        if is_manifest_dir(path, tier):
            try:
                module = ModuleSource.from_dir(path)
                descriptors = load_manifest_module(self.table, self.mode, module, tier)
            except ManifestError as e:
                logger.warning("Rejected module %s: %s", path.name, e)
                yield Rejection(tier, e)
                return
            except OSError as e:
                logger.warning("Cannot read module %s: %s — skipping", path, e)
                return
            for descriptor in descriptors:
                yield Candidate(tier, descriptor)
            return

        if parse_route((path.name,)) is None:
            logger.debug("Ignoring directory with unroutable name: %s", path)
            return

        try:
            default, subs = directory_scripts(path)
        except OSError as e:
            logger.warning("Cannot read %s: %s — skipping", path, e)
            return

        if default is None and not subs:
            logger.debug("Directory %s holds no scripts", path)
            return

        yield Candidate(
            tier,
            CommandDescriptor(
                name=path.name,
                kind=CommandKind.DIRECTORY_DEFAULT,
                target=str(default) if default else "",
                tier=tier,
                source=str(path),
                synopsis=read_synopsis(default) if default else "",
                subcommands={name: str(p) for name, p in subs.items()},
            ),
        )

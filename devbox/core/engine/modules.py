"""
Manifest modules — load, validate and register a module.yml folder.

The same loader serves both execution styles:

    disk      ModuleSource.from_dir(path)    files read on demand
    bundle    ModuleSource(..., files={...})  file text carried in-process

so a module that is rejected on disk is rejected identically when it
runs from a bundle.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from devbox.core.engine.routines import (
    Convention,
    RoutineTable,
    defined_functions,
    exec_namespace,
    routine_key,
)
from devbox.core.engine.scripts import PYTHON_SUFFIX, ScriptRoutine
from devbox.core.engine.validator import parse_manifest, validate_entrypoints
from devbox.core.errors import ManifestError, ManifestErrorKind
from devbox.core.models.command import CommandDescriptor, CommandKind, Mode, SourceTier
from devbox.core.models.manifest import MANIFEST_FILE

logger = logging.getLogger(__name__)

_SKIP_PARTS = {"__pycache__"}


@dataclass
class ModuleSource:
    """A manifest module as data: its folder, manifest and files."""

    module_dir: str
    manifest: Any = None                     # parsed module.yml, None if absent
    files: dict[str, str | None] = field(default_factory=dict)  # rel path -> text

    @classmethod
    def from_dir(cls, module_dir: Path) -> ModuleSource:
        """Read a module folder.  File contents stay on disk.

        Raises:
            ManifestError: module.yml exists but is not valid YAML.
        """
        manifest = None
        manifest_path = module_dir / MANIFEST_FILE
        if manifest_path.is_file():
            try:
                manifest = yaml.safe_load(manifest_path.read_text(encoding="utf-8"))
            except (OSError, yaml.YAMLError) as e:
                raise ManifestError(
                    ManifestErrorKind.MISSING_REQUIRED_KEY,
                    f"unreadable manifest: {e}",
                    module_dir,
                ) from e
            if manifest is None:
                manifest = {}

        files: dict[str, str | None] = {}
        for path in sorted(module_dir.rglob("*")):
            if not path.is_file() or _SKIP_PARTS & set(path.parts):
                continue
            rel = path.relative_to(module_dir).as_posix()
            if rel != MANIFEST_FILE:
                files[rel] = None

        return cls(module_dir=str(module_dir), manifest=manifest, files=files)

    def path_of(self, rel: str) -> str:
        return str(Path(self.module_dir) / rel)

    def read(self, rel: str) -> str:
        text = self.files.get(rel)
        if text is None:
            text = Path(self.path_of(rel)).read_text(encoding="utf-8")
        return text


def load_manifest_module(
    table: RoutineTable,
    mode: Mode,
    module: ModuleSource,
    tier: SourceTier,
) -> list[CommandDescriptor]:
    """Validate a manifest module and register its routines.

    Nothing is registered unless the whole module validates.

    Returns:
        One descriptor per declared command.

    Raises:
        ManifestError: the module breaks the manifest contract.
    """
    module_dir = Path(module.module_dir)
    manifest = parse_manifest(module.manifest, module_dir)
    declared = tuple(manifest.commands)

    handlers = {Path(s.handler).as_posix() for s in manifest.commands.values() if s.handler}

    # Handler scripts run as whole files; every other Python file is a
    # library whose public functions the manifest must account for.
    functions: dict[str, Callable[..., Any]] = {}
    for rel in module.files:
        if not rel.endswith(PYTHON_SUFFIX) or rel in handlers:
            continue
        try:
            namespace = exec_namespace(module.path_of(rel), module.read(rel))
        except Exception as e:
            raise ManifestError(
                ManifestErrorKind.MISSING_ENTRYPOINT,
                f"cannot load '{rel}': {e}",
                module_dir,
                declared,
            ) from e
        for name, func in defined_functions(namespace).items():
            functions.setdefault(name, func)

    validate_entrypoints(manifest, module.files, functions, module_dir)

    help_key = ""
    descriptors: list[CommandDescriptor] = []
    for name, spec in manifest.commands.items():
        if manifest.help:
            table.register(
                mode, (name,), functions[manifest.help],
                source=module.module_dir, is_help=True,
            )
            help_key = routine_key(mode, (name,), is_help=True)

        if spec.dispatcher:
            func = functions[spec.dispatcher]
            table.register(
                mode, (name,), func,
                convention=Convention.PATH,
                source=func.__code__.co_filename,
                synopsis=spec.synopsis or None,
                dispatch_routes=spec.subcommands,
            )
            kind = CommandKind.MANIFEST_DISPATCHER
            target = routine_key(mode, (name,))
        else:
            rel = Path(spec.handler or "").as_posix()
            path = module.path_of(rel)
            table.register(
                mode, (name,), ScriptRoutine(path, module.files.get(rel)),
                source=path,
                synopsis=spec.synopsis or None,
            )
            kind = CommandKind.MANIFEST_HANDLER
            target = path

        descriptors.append(
            CommandDescriptor(
                name=name,
                kind=kind,
                target=target,
                tier=tier,
                source=module.module_dir,
                synopsis=spec.synopsis,
                module=manifest.module_name,
                help_target=help_key,
                dispatch_routes=tuple(spec.subcommands),
            )
        )

    logger.debug(
        "Loaded manifest module '%s' (%d commands) from %s",
        manifest.module_name, len(descriptors), module_dir,
    )
    return descriptors

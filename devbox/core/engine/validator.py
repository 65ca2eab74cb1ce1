"""
Manifest validator — enforce the module contract before trusting it.

A manifest module must:
    - have a module.yml at all                      (missing_metadata)
    - declare module_name and a non-empty commands  (missing_required_key)
    - give each command exactly one of handler /
      dispatcher                                    (handler_dispatcher_conflict)
    - point at handlers that exist and dispatchers
      that its files define                         (missing_entrypoint)
    - not define public functions the manifest
      neither exposes nor lists as private          (undeclared_function)

Any failure rejects the whole module; the caller registers nothing
from it.
"""

from __future__ import annotations

from collections.abc import Collection, Mapping
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from devbox.core.errors import ManifestError, ManifestErrorKind
from devbox.core.models.manifest import ModuleManifest


def _declared_names(raw: Mapping[str, Any]) -> tuple[str, ...]:
    commands = raw.get("commands")
    if isinstance(commands, Mapping):
        return tuple(str(k) for k in commands)
    return ()


def parse_manifest(raw: Any, module_dir: Path | None = None) -> ModuleManifest:
    """Turn raw module.yml data into a ModuleManifest.

    Raises:
        ManifestError: missing_metadata, missing_required_key or
            handler_dispatcher_conflict.
    """
    if raw is None:
        raise ManifestError(
            ManifestErrorKind.MISSING_METADATA,
            "module has commands but no manifest",
            module_dir,
        )
    if not isinstance(raw, Mapping):
        raise ManifestError(
            ManifestErrorKind.MISSING_REQUIRED_KEY,
            f"manifest must be a mapping, got {type(raw).__name__}",
            module_dir,
        )

    declared = _declared_names(raw)

    if not raw.get("module_name"):
        raise ManifestError(
            ManifestErrorKind.MISSING_REQUIRED_KEY,
            "manifest lacks 'module_name'",
            module_dir,
            declared,
        )
    if not declared:
        raise ManifestError(
            ManifestErrorKind.MISSING_REQUIRED_KEY,
            "manifest lacks a non-empty 'commands' map",
            module_dir,
        )

    for name, spec in raw["commands"].items():
        spec = spec if isinstance(spec, Mapping) else {}
        has_handler = bool(spec.get("handler"))
        has_dispatcher = bool(spec.get("dispatcher"))
        if has_handler == has_dispatcher:
            which = "both" if has_handler else "neither"
            raise ManifestError(
                ManifestErrorKind.HANDLER_DISPATCHER_CONFLICT,
                f"command '{name}' declares {which} handler and dispatcher",
                module_dir,
                declared,
            )

    try:
        return ModuleManifest.model_validate(dict(raw))
    except ValidationError as e:
        raise ManifestError(
            ManifestErrorKind.MISSING_REQUIRED_KEY,
            f"invalid manifest: {e.errors()[0]['msg']}",
            module_dir,
            declared,
        ) from e


def validate_entrypoints(
    manifest: ModuleManifest,
    files: Collection[str],
    functions: Collection[str],
    module_dir: Path | None = None,
) -> None:
    """Check handlers and dispatchers against what the module really has.

    Args:
        manifest: The parsed manifest.
        files: Module file listing, paths relative to the module dir.
        functions: Public function names defined by the module's files.
        module_dir: For error messages.

    Raises:
        ManifestError: missing_entrypoint or undeclared_function.
    """
    declared = tuple(manifest.commands)
    normalized = {Path(f).as_posix() for f in files}

    for name, spec in manifest.commands.items():
        if spec.handler and Path(spec.handler).as_posix() not in normalized:
            raise ManifestError(
                ManifestErrorKind.MISSING_ENTRYPOINT,
                f"handler '{spec.handler}' for command '{name}' does not exist",
                module_dir,
                declared,
            )
        if spec.dispatcher and spec.dispatcher not in functions:
            raise ManifestError(
                ManifestErrorKind.MISSING_ENTRYPOINT,
                f"dispatcher '{spec.dispatcher}' for command '{name}' is not defined",
                module_dir,
                declared,
            )

    if manifest.help and manifest.help not in functions:
        raise ManifestError(
            ManifestErrorKind.MISSING_ENTRYPOINT,
            f"help routine '{manifest.help}' is not defined",
            module_dir,
            declared,
        )

    allowed = manifest.dispatcher_names | manifest.private_functions
    undeclared = sorted(set(functions) - allowed)
    if undeclared:
        raise ManifestError(
            ManifestErrorKind.UNDECLARED_FUNCTION,
            f"functions not declared in manifest: {', '.join(undeclared)}",
            module_dir,
            declared,
        )


def validate_manifest(
    raw: Any,
    files: Collection[str],
    functions: Collection[str],
    module_dir: Path | None = None,
) -> ModuleManifest:
    """Full contract check: parse, then verify entry points."""
    manifest = parse_manifest(raw, module_dir)
    validate_entrypoints(manifest, files, functions, module_dir)
    return manifest

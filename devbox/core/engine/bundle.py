"""
Bundle — assemble every command source into one Python file.

The bundle is a drop-in replacement for the loose command folders: it
carries the text of each script and manifest module, and importing it
loads them all into a routine table.  At run time the embedded
reconciler rebuilds the registry from that table.

Payload layout (JSON-compatible)::

    {
      "version": "0.1.0",
      "modes": {
        "project": [
          {"type": "script", "path": "commands/project/env.py",
           "owner": "commands/project/env.py", "route": ["env"],
           "source": "..."},
          {"type": "module", "module_dir": "modules/shared/tools",
           "manifest": {...}, "files": {"tools.py": "..."}},
          ...
        ],
        "global": [...]
      }
    }

Entries keep tier order, then sorted name order inside a tier, so
first-wins resolution matches a disk scan of the same folders.  A
command name belongs to the first entry (``owner``: a script file, a
command directory or a module directory) that provides it; later
entries from other owners cannot add routes under it.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from devbox import __version__
from devbox.core.engine.modules import ModuleSource, load_manifest_module
from devbox.core.engine.routines import RoutineTable
from devbox.core.engine.scanner import directory_scripts, is_manifest_dir, tier_entries
from devbox.core.engine.scripts import is_script, script_name
from devbox.core.errors import DevboxError, ManifestError
from devbox.core.models.command import Mode, SourceTier

logger = logging.getLogger(__name__)

Payload = dict[str, Any]

_BUNDLE_TEMPLATE = '''\
#!/usr/bin/env python3
"""devbox {version}: single-file bundle (generated, do not edit).

Runs the bundled commands with the devbox package's engine, so devbox
itself must be installed for the interpreter running this file.
"""

import json
import sys

PAYLOAD = json.loads({payload!r})

if __name__ == "__main__":
    from devbox.core.engine.bundle import run_bundle

    sys.exit(run_bundle(PAYLOAD, sys.argv))
'''


def bundled_tiers(settings_like: Any, mode: Mode) -> list[tuple[SourceTier, Path]]:
    """Tool-owned tiers for a mode (the box override tier never ships)."""
    return [
        (SourceTier.PROJECT_MODULE, settings_like.modules_root / mode.value),
        (SourceTier.CORE_EMBEDDED, settings_like.commands_root / mode.value),
        (SourceTier.SHARED_MANIFEST, settings_like.modules_root / "shared"),
    ]


def _read(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def _virtual(path: Path, base: Path | None) -> str:
    if base is not None:
        try:
            return path.relative_to(base).as_posix()
        except ValueError:
            pass
    return path.as_posix()


def collect_sources(
    tiers: list[tuple[SourceTier, Path]],
    base: Path | None = None,
) -> list[dict[str, Any]]:
    """Read every command source of the given tiers, in scan order.

    Args:
        tiers: Ordered (tier, directory) pairs.
        base: Paths are recorded relative to this directory.

    Returns:
        Payload entries for one mode.
    """
    entries: list[dict[str, Any]] = []

    for tier, root in tiers:
        if not root.is_dir():
            continue
        try:
            children = tier_entries(root)
        except OSError as e:
            logger.warning("Cannot read %s: %s — skipping", root, e)
            continue

        for child in children:
            if child.is_dir() and is_manifest_dir(child, tier):
                module = ModuleSource.from_dir(child)
                entries.append({
                    "type": "module",
                    "module_dir": _virtual(child, base),
                    "manifest": module.manifest,
                    "files": {rel: module.read(rel) for rel in module.files},
                })
            elif child.is_dir():
                owner = _virtual(child, base)
                default, subs = directory_scripts(child)
                if default is not None:
                    entries.append(_script_entry(default, (child.name,), base, owner))
                for sub, path in subs.items():
                    entries.append(_script_entry(path, (child.name, *sub.split(".")), base, owner))
            elif tier is not SourceTier.SHARED_MANIFEST and is_script(child):
                entries.append(_script_entry(child, (script_name(child),), base))

    return entries


def _script_entry(
    path: Path,
    route: tuple[str, ...],
    base: Path | None,
    owner: str | None = None,
) -> dict[str, Any]:
    virtual = _virtual(path, base)
    return {
        "type": "script",
        "path": virtual,
        "owner": owner or virtual,
        "route": list(route),
        "source": _read(path),
    }


def load_payload(payload: Payload, table: RoutineTable | None = None) -> RoutineTable:
    """Load every bundled source into a routine table.

    Command names are first-wins per owner, the same way a disk scan
    resolves them.  Modules that fail validation are recorded on the
    table with ``reject`` and claim no names.
    """
    table = table if table is not None else RoutineTable()

    for mode_name, entries in payload.get("modes", {}).items():
        mode = Mode(mode_name)
        owners: dict[str, str] = {}

        for entry in entries:
            if entry["type"] == "module":
                module = ModuleSource(
                    module_dir=entry["module_dir"],
                    manifest=entry.get("manifest"),
                    files=dict(entry.get("files", {})),
                )
                loaded = RoutineTable()
                try:
                    load_manifest_module(loaded, mode, module, SourceTier.CORE_EMBEDDED)
                except ManifestError as e:
                    logger.warning("Rejected bundled module %s: %s", module.module_dir, e)
                    table.reject(mode, e)
                    continue
                table.register_all(
                    r for r in loaded.all()
                    if owners.setdefault(r.command, module.module_dir) == module.module_dir
                )
                continue

            route = tuple(entry["route"])
            owner = entry.get("owner") or entry["path"]
            if owners.setdefault(route[0], owner) != owner:
                logger.debug(
                    "Skipping %s: command '%s' already provided by %s",
                    entry["path"], route[0], owners[route[0]],
                )
                continue
            added = table.load_script(mode, entry["path"], entry["source"], default_route=route)
            stray = [r for r in added if r.command != route[0]]
            if stray:
                logger.warning(
                    "%s registers %s outside its command '%s'",
                    entry["path"], [" ".join(r.route) for r in stray], route[0],
                )

    return table


def build_payload(settings_like: Any, modes: tuple[Mode, ...] = tuple(Mode)) -> Payload:
    """Collect the tool's own command sources for every mode."""
    base = Path(settings_like.commands_root).parent
    return {
        "version": __version__,
        "modes": {
            mode.value: collect_sources(bundled_tiers(settings_like, mode), base)
            for mode in modes
        },
    }


def write_bundle(payload: Payload, out_path: Path) -> Path:
    """Write the bundle file after checking that its payload loads.

    The file is written next to ``out_path`` and renamed into place, so
    an existing bundle is never left half-written.

    Raises:
        DevboxError: a bundled source fails to load.
    """
    try:
        load_payload(payload)
    except Exception as e:
        raise DevboxError(f"bundle payload does not load: {e}") from e

    text = _BUNDLE_TEMPLATE.format(
        version=payload.get("version", __version__),
        payload=json.dumps(payload, sort_keys=False, default=str),
    )
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=out_path.parent, prefix=".bundle_", suffix=".tmp")
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        tmp_path.chmod(0o755)
        tmp_path.replace(out_path)
    except Exception:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.info("Wrote bundle %s (%d bytes)", out_path, len(text))
    return out_path


def mode_for_program(argv0: str) -> Mode:
    """``box`` (or anything named like it) runs the project manager."""
    stem = Path(argv0).stem
    return Mode.PROJECT if stem == "box" or stem.startswith("box-") else Mode.GLOBAL


def run_bundle(payload: Payload, argv: list[str]) -> int:
    """Entry point of a generated bundle file."""
    from devbox.main import main

    table = load_payload(payload)
    forced = os.environ.get("DEVBOX_MODE")
    mode = Mode(forced) if forced else mode_for_program(argv[0] if argv else "devbox")
    return main(mode, argv[1:], embedded_table=table)

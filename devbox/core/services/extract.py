"""
Archive extraction — stage selected archive content into the project.

Copy rules have the form ``kind:pattern:destination[:ENV]``:

    file:vbcc/config/*:tools/vbcc/config         every matching file
    dir:vbcc/bin:tools/vbcc/bin:VBCC_BIN         directory contents, recursively

``pattern`` is a glob relative to the archive root.  ``destination`` is
relative to the destination root and may not leave it.  When ``ENV`` is
given, that variable is set to the absolute destination path.

A rule that matches nothing is an error: a package whose layout changed
should fail loudly rather than install half of itself.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

from devbox.core.errors import ExtractError

logger = logging.getLogger(__name__)

RULE_KINDS = ("file", "dir")


@dataclass(frozen=True)
class CopyRule:
    kind: str
    pattern: str
    destination: str
    env: str = ""


@dataclass
class ExtractResult:
    """What an extraction put on disk (paths relative to the destination root)."""

    files: list[str] = field(default_factory=list)
    dirs: list[str] = field(default_factory=list)
    envs: dict[str, str] = field(default_factory=dict)


def parse_rule(rule: str) -> CopyRule:
    """Parse one ``kind:pattern:destination[:ENV]`` rule.

    Raises:
        ExtractError: the rule is malformed.
    """
    parts = rule.split(":")
    if len(parts) not in (3, 4):
        raise ExtractError(f"malformed rule '{rule}': expected kind:pattern:destination[:ENV]")
    kind, pattern, destination = (p.strip() for p in parts[:3])
    env = parts[3].strip() if len(parts) == 4 else ""

    if kind not in RULE_KINDS:
        raise ExtractError(f"malformed rule '{rule}': kind must be one of {', '.join(RULE_KINDS)}")
    if not pattern:
        raise ExtractError(f"malformed rule '{rule}': empty pattern")
    dest = PurePosixPath(destination)
    if not destination or dest.is_absolute() or ".." in dest.parts:
        raise ExtractError(f"malformed rule '{rule}': destination must stay inside the project")
    return CopyRule(kind=kind, pattern=pattern, destination=dest.as_posix(), env=env)


def _unpack(archive_path: Path, staging: Path) -> None:
    if tarfile.is_tarfile(archive_path):
        with tarfile.open(archive_path) as tf:
            tf.extractall(staging, filter="data")
        return

    if zipfile.is_zipfile(archive_path):
        with zipfile.ZipFile(archive_path) as zf:
            for name in zf.namelist():
                member = PurePosixPath(name)
                if member.is_absolute() or ".." in member.parts:
                    raise ExtractError(f"{archive_path.name}: unsafe member path '{name}'")
            zf.extractall(staging)
        return

    raise ExtractError(f"{archive_path.name}: not a tar or zip archive")


def _apply_rule(rule: CopyRule, root: Path, dest: Path, result: ExtractResult) -> None:
    matches = sorted(root.glob(rule.pattern))
    target = dest / rule.destination

    if rule.kind == "file":
        sources = [m for m in matches if m.is_file()]
        if not sources:
            raise ExtractError(f"rule '{rule.kind}:{rule.pattern}' matched no files")
        target.mkdir(parents=True, exist_ok=True)
        for src in sources:
            shutil.copy2(src, target / src.name)
            result.files.append((PurePosixPath(rule.destination) / src.name).as_posix())
    else:
        sources = [m for m in matches if m.is_dir()]
        if not sources:
            raise ExtractError(f"rule '{rule.kind}:{rule.pattern}' matched no directories")
        for src in sources:
            shutil.copytree(src, target, dirs_exist_ok=True)
            for path in sorted(src.rglob("*")):
                if path.is_file():
                    rel = PurePosixPath(rule.destination) / path.relative_to(src).as_posix()
                    result.files.append(rel.as_posix())
        if rule.destination not in result.dirs:
            result.dirs.append(rule.destination)

    if rule.env:
        result.envs[rule.env] = str(target.resolve())


def extract(archive_path: Path, rules: list[str], dest: Path) -> ExtractResult:
    """Unpack ``archive_path`` and copy what ``rules`` select into ``dest``.

    Nothing is written to ``dest`` unless every rule parses; the archive
    is unpacked into a temporary staging directory first.

    Raises:
        ExtractError: bad rule, unreadable archive or a rule matching nothing.
    """
    parsed = [parse_rule(r) for r in rules]
    if not archive_path.is_file():
        raise ExtractError(f"archive not found: {archive_path}")

    result = ExtractResult()
    with tempfile.TemporaryDirectory(prefix="devbox-extract-") as tmp:
        staging = Path(tmp)
        try:
            _unpack(archive_path, staging)
        except (tarfile.TarError, zipfile.BadZipFile, OSError) as e:
            raise ExtractError(f"{archive_path.name}: cannot unpack: {e}") from e

        for rule in parsed:
            _apply_rule(rule, staging, dest, result)

    logger.info(
        "Extracted %s: %d file(s), %d dir(s), %d env var(s)",
        archive_path.name, len(result.files), len(result.dirs), len(result.envs),
    )
    return result

"""
Package use cases — install, remove, list and check project packages.

    install   download (cached)  ->  extract by rules  ->  record state
    remove    delete recorded files  ->  prune recorded dirs  ->  forget
    validate  compare recorded state with box.yml and the file tree
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.config.settings import Settings
from devbox.core.errors import ConfigError, StateError
from devbox.core.models.config import PackageSpec
from devbox.core.models.package import PackageRecord
from devbox.core.persistence.package_state import PackageStateStore
from devbox.core.services.download import download
from devbox.core.services.extract import extract
from devbox.core.services.prompts import choose_letter, confirm

logger = logging.getLogger(__name__)

_REINSTALL_CHOICES = {"r": "reinstall", "s": "skip"}


@dataclass
class PackageStatus:
    """One row of ``pkg list``."""

    name: str
    version: str = ""
    description: str = ""
    installed: bool = False
    installed_version: str = ""
    declared: bool = True

    @property
    def outdated(self) -> bool:
        return self.installed and self.declared and self.installed_version != self.version


@dataclass
class InstallResult:
    name: str
    action: str = "installed"          # installed | reinstalled | upgraded | skipped
    record: PackageRecord | None = None


@dataclass
class StateReport:
    """Result of ``pkg validate state``."""

    checked: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def state_store(settings: Settings) -> PackageStateStore:
    return PackageStateStore(settings.state_path)


def _spec(settings: Settings, name: str) -> PackageSpec:
    spec = settings.require_config().get_package(name)
    if spec is None:
        raise ConfigError(f"Package '{name}' is not declared in {settings.config_path}")
    return spec


def list_packages(settings: Settings) -> list[PackageStatus]:
    """Declared packages plus any recorded ones box.yml no longer names."""
    config = settings.require_config()
    records = state_store(settings).load_all()

    rows = []
    for spec in config.packages:
        record = records.get(spec.name)
        rows.append(PackageStatus(
            name=spec.name,
            version=spec.version,
            description=spec.description,
            installed=bool(record and record.installed),
            installed_version=record.version if record else "",
        ))
    for name, record in sorted(records.items()):
        if config.get_package(name) is None:
            rows.append(PackageStatus(
                name=name,
                installed=record.installed,
                installed_version=record.version,
                declared=False,
            ))
    return rows


def install_package(settings: Settings, name: str, *, force: bool = False) -> InstallResult:
    """Install one declared package into the project tree.

    An existing install of the same version is kept unless ``force`` is
    set or the user chooses to reinstall.  A different recorded version
    is replaced after confirmation.

    Raises:
        ConfigError: the package is not declared.
        DownloadError, ExtractError, StateError: a step failed.
    """
    spec = _spec(settings, name)
    store = state_store(settings)
    existing = store.get(name)
    action = "installed"

    if existing and existing.installed and not force:
        if existing.version == spec.version:
            choice = choose_letter(
                f"{name} {spec.version} is already installed",
                _REINSTALL_CHOICES,
                default="s",
                non_interactive=settings.non_interactive or None,
            )
            if choice == "s":
                logger.info("Package %s already installed — skipped", name)
                return InstallResult(name=name, action="skipped", record=existing)
            action = "reinstalled"
        else:
            if not confirm(
                f"Replace {name} {existing.version or '?'} with {spec.version or '?'}?",
                default=True,
                non_interactive=settings.non_interactive or None,
            ):
                return InstallResult(name=name, action="skipped", record=existing)
            action = "upgraded"

    if existing and existing.installed:
        _delete_files(settings.project_root, existing)

    archive = download(spec.url, spec.cache_key, spec.source_kind, cache_dir=settings.cache_dir)
    result = extract(archive, spec.rules, settings.project_root)

    record = PackageRecord(
        name=name,
        version=spec.version,
        files=result.files,
        dirs=result.dirs,
        env=result.envs,
        installed=True,
    )
    store.set(record)
    logger.info("Package %s %s %s (%d files)", name, spec.version, action, len(record.files))
    return InstallResult(name=name, action=action, record=record)


def remove_package(settings: Settings, name: str) -> PackageRecord:
    """Delete a package's files and forget it.

    Raises:
        StateError: the package is not recorded as installed.
    """
    store = state_store(settings)
    record = store.get(name)
    if record is None:
        raise StateError(f"Package '{name}' is not installed")

    _delete_files(settings.project_root, record)
    store.remove(name)
    logger.info("Package %s removed", name)
    return record


def _delete_files(root: Path, record: PackageRecord) -> None:
    for rel in record.files:
        path = root / rel
        if path.is_file() or path.is_symlink():
            path.unlink()
    # Deepest first so nested recorded dirs empty out before their parents.
    for rel in sorted(record.dirs, key=lambda d: d.count("/"), reverse=True):
        path = root / rel
        if path.is_dir() and not any(path.iterdir()):
            path.rmdir()
        elif path.is_dir():
            logger.debug("Keeping %s: holds files not installed by %s", path, record.name)
    for rel in record.files:
        _prune_empty_parents((root / rel).parent, root)


def _prune_empty_parents(path: Path, root: Path) -> None:
    while path != root and root in path.parents:
        if path.is_dir():
            if any(path.iterdir()):
                return
            path.rmdir()
        path = path.parent


def validate_state(settings: Settings) -> StateReport:
    """Check recorded packages against box.yml and the files on disk."""
    config = settings.require_config()
    report = StateReport()

    for name, record in sorted(state_store(settings).load_all().items()):
        report.checked += 1
        spec = config.get_package(name)
        if spec is None:
            report.warnings.append(f"{name}: recorded but not declared in box.yml")
        elif record.installed and record.version != spec.version:
            report.warnings.append(
                f"{name}: installed {record.version or '?'}, box.yml wants {spec.version or '?'}"
            )

        if not record.installed:
            report.warnings.append(f"{name}: recorded but not marked installed")
            continue

        missing = [f for f in record.files if not (settings.project_root / f).exists()]
        if missing:
            report.errors.append(
                f"{name}: {len(missing)} recorded file(s) missing (first: {missing[0]})"
            )
        for rel in record.dirs:
            if not (settings.project_root / rel).is_dir():
                report.errors.append(f"{name}: recorded directory missing: {rel}")

    return report


def package_env(settings: Settings) -> dict[str, str]:
    """Environment variables exported by installed packages."""
    env: dict[str, str] = {}
    for _name, record in sorted(state_store(settings).load_all().items()):
        if record.installed:
            env.update(record.env)
    return env


def cache_entries(settings: Settings) -> list[Path]:
    """Files currently in the download cache."""
    if not settings.cache_dir.is_dir():
        return []
    return sorted(p for p in settings.cache_dir.iterdir() if p.is_file() and not p.name.startswith("."))


def clean_cache(settings: Settings) -> int:
    """Empty the download cache.  Returns the number of files removed."""
    entries = cache_entries(settings)
    if settings.cache_dir.is_dir():
        shutil.rmtree(settings.cache_dir)
    logger.info("Removed %d cached artifact(s) from %s", len(entries), settings.cache_dir)
    return len(entries)

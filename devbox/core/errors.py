"""
Error taxonomy — every failure devbox raises on purpose.

Lower layers (scanner, validator) raise and catch these locally; only the
dispatcher turns them into a user-visible failure and a non-zero exit.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class DevboxError(Exception):
    """Base class for all devbox errors."""


class ConfigError(DevboxError):
    """Raised when box.yml is invalid or unreadable."""


class ManifestErrorKind(str, Enum):
    """Why a manifest-described module was rejected."""

    MISSING_METADATA = "missing_metadata"
    MISSING_REQUIRED_KEY = "missing_required_key"
    HANDLER_DISPATCHER_CONFLICT = "handler_dispatcher_conflict"
    MISSING_ENTRYPOINT = "missing_entrypoint"
    UNDECLARED_FUNCTION = "undeclared_function"


class ManifestError(DevboxError):
    """A module broke the manifest contract and contributes no commands."""

    def __init__(
        self,
        kind: ManifestErrorKind,
        message: str,
        module_dir: Path | None = None,
        commands: tuple[str, ...] = (),
    ):
        super().__init__(message)
        self.kind = kind
        self.module_dir = module_dir
        self.commands = commands

    def __str__(self) -> str:
        where = f" ({self.module_dir})" if self.module_dir else ""
        return f"[{self.kind.value}] {self.args[0]}{where}"


class RegistrySealedError(DevboxError):
    """Raised when something tries to insert into a sealed registry."""


class UnknownCommandError(DevboxError):
    """No tier supplies the requested command name."""

    def __init__(self, name: str):
        super().__init__(f"Unknown command: {name}")
        self.name = name


class CommandFailedError(DevboxError):
    """The invoked target raised."""


class DownloadError(DevboxError):
    """All download attempts failed."""


class ExtractError(DevboxError):
    """An archive could not be staged into the project tree."""


class StateError(DevboxError):
    """The package state store could not be read or written."""

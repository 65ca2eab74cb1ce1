"""
Command model — what the registry maps a command name to.

A descriptor says *what* implements a command (a script, a function,
a manifest handler/dispatcher, a directory of scripts) and *where* it
came from (which precedence tier, which physical file or folder).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Mode(str, Enum):
    """Which manager is running."""

    GLOBAL = "global"     # devbox
    PROJECT = "project"   # box


class CommandKind(str, Enum):
    FUNCTION = "function"
    SCRIPT = "script"
    MANIFEST_HANDLER = "manifest_handler"
    MANIFEST_DISPATCHER = "manifest_dispatcher"
    DIRECTORY_DEFAULT = "directory_default"
    DIRECTORY_SUBCOMMAND = "directory_subcommand"


class SourceTier(str, Enum):
    """Precedence tiers, highest first (declaration order matters)."""

    BOX_OVERRIDE = "box_override"
    PROJECT_MODULE = "project_module"
    CORE_EMBEDDED = "core_embedded"
    SHARED_MANIFEST = "shared_manifest"


class CommandDescriptor(BaseModel):
    """A resolved command registry entry.

    Frozen: the registry is write-once per key and nothing downstream
    may edit an entry after it has been inserted.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    kind: CommandKind
    target: str = ""             # file path or routine key; "" = no default
    tier: SourceTier
    source: str = ""             # file or directory that produced the entry
    synopsis: str = ""

    # Dotted sub-route ("install", "validate.state") -> target
    subcommands: dict[str, str] = Field(default_factory=dict)

    # Manifest-only fields
    module: str = ""
    help_target: str = ""
    dispatch_routes: tuple[str, ...] = ()

    @property
    def has_default(self) -> bool:
        return bool(self.target)

    @property
    def is_routed(self) -> bool:
        """Whether the second CLI token may select a sub-route."""
        return bool(self.subcommands)

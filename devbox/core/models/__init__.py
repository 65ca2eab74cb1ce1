"""
Domain models — Pydantic types for devbox.

All models are re-exported here for convenient access:

    from devbox.core.models import CommandDescriptor, ModuleManifest, BoxConfig
"""

from devbox.core.models.command import CommandDescriptor, CommandKind, Mode, SourceTier
from devbox.core.models.config import BoxConfig, PackageSpec, TemplateSpec
from devbox.core.models.manifest import MANIFEST_FILE, CommandSpec, ModuleManifest
from devbox.core.models.package import PackageRecord, PackageState

__all__ = [
    # config.py
    "BoxConfig",
    # command.py
    "CommandDescriptor",
    "CommandKind",
    # manifest.py
    "CommandSpec",
    "MANIFEST_FILE",
    "Mode",
    "ModuleManifest",
    # package.py
    "PackageRecord",
    "PackageSpec",
    "PackageState",
    "SourceTier",
    "TemplateSpec",
]

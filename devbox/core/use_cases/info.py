"""
Info use case — resolved settings and registry summary for ``info``.
"""

from __future__ import annotations

from typing import Any

from devbox import __version__
from devbox.core.config.settings import Settings
from devbox.core.context import get_invocation


def describe(settings: Settings) -> dict[str, Any]:
    """Everything ``info`` prints, as plain data."""
    info: dict[str, Any] = {
        "version": __version__,
        "mode": settings.mode.value,
        "embedded": settings.embedded,
        "project_root": str(settings.project_root),
        "config_path": str(settings.config_path) if settings.config_path else None,
        "project": settings.config.name if settings.config else None,
        "home": str(settings.home),
        "cache_dir": str(settings.cache_dir),
        "state_path": str(settings.state_path),
        "tiers": {
            "box_override": str(settings.override_dir),
            "project_module": str(settings.project_commands_dir),
            "core_embedded": str(settings.core_commands_dir),
            "shared_manifest": str(settings.shared_modules_dir),
        },
        "non_interactive": settings.non_interactive,
    }

    invocation = get_invocation()
    if invocation is not None:
        registry = invocation.registry
        info["commands"] = len(registry)
        info["shadowed"] = len(registry.dropped)
        info["rejected"] = {
            str(error.module_dir): str(error) for error in registry.rejected.values()
        }
    return info

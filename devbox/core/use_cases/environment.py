"""
Environment use cases — the project's merged variables and rendered
config files.

Variable layers, later wins::

    built-ins (PROJECT_ROOT, DEVBOX_HOME, ...)
    package exports (recorded at install time)
    box.yml ``env:`` (values may use {{TOKEN}}s from the layers above)
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from devbox.core.config.settings import Settings
from devbox.core.errors import ConfigError
from devbox.core.services.template import builtin_vars, render, render_file, unresolved_tokens
from devbox.core.use_cases.packages import package_env

logger = logging.getLogger(__name__)


def project_env(settings: Settings) -> dict[str, str]:
    """Every variable the project defines, fully merged."""
    env = builtin_vars(settings)
    env.update(package_env(settings))

    config = settings.config
    if config is not None:
        for key, value in config.env.items():
            env[key] = render(value, env)
    return env


@dataclass
class RenderedTemplate:
    source: Path
    target: Path
    unresolved: list[str] = field(default_factory=list)
    text: str = ""


def render_templates(
    settings: Settings,
    *,
    dry_run: bool = False,
    environ: Mapping[str, str] | None = None,
) -> list[RenderedTemplate]:
    """Render every ``templates:`` entry of box.yml.

    Process environment variables are the lowest layer, so a template
    may reference ``{{HOME}}`` without box.yml declaring it.

    Raises:
        ConfigError: a template source does not exist.
    """
    config = settings.require_config()
    process_env = dict(os.environ) if environ is None else dict(environ)
    variables = project_env(settings)

    results = []
    for spec in config.templates:
        source = settings.project_root / spec.source
        target = settings.project_root / spec.target
        if not source.is_file():
            raise ConfigError(f"Template not found: {spec.source}")

        if dry_run:
            text = render(source.read_text(encoding="utf-8"), process_env, variables)
            results.append(RenderedTemplate(source, target, unresolved_tokens(text), text))
        else:
            missing = render_file(source, target, process_env, variables)
            results.append(RenderedTemplate(source, target, missing))

        if results[-1].unresolved:
            logger.warning(
                "%s: unresolved token(s) %s", spec.target, ", ".join(results[-1].unresolved),
            )
    return results

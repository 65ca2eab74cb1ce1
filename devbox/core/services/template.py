"""
Template rendering — ``{{TOKEN}}`` substitution.

Variables come from several mappings merged left to right, so a later
source overrides an earlier one::

    render(text, os.environ, builtin_vars(settings), config.env)

Tokens with no value are left in place and reported by
``unresolved_tokens``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

from devbox.core.config.settings import Settings

logger = logging.getLogger(__name__)

TOKEN_RE = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def merge_vars(*var_sources: Mapping[str, str] | None) -> dict[str, str]:
    merged: dict[str, str] = {}
    for source in var_sources:
        if source:
            merged.update({k: str(v) for k, v in source.items()})
    return merged


def render(template: str, *var_sources: Mapping[str, str] | None) -> str:
    """Replace every known ``{{TOKEN}}`` in ``template``."""
    variables = merge_vars(*var_sources)

    def _sub(match: re.Match[str]) -> str:
        name = match.group(1)
        if name in variables:
            return variables[name]
        logger.debug("Template token {{%s}} has no value", name)
        return match.group(0)

    return TOKEN_RE.sub(_sub, template)


def unresolved_tokens(text: str) -> list[str]:
    """Token names still present after rendering, in order of appearance."""
    seen: list[str] = []
    for name in TOKEN_RE.findall(text):
        if name not in seen:
            seen.append(name)
    return seen


def builtin_vars(settings: Settings) -> dict[str, str]:
    """Variables every project gets for free."""
    variables = {
        "PROJECT_ROOT": str(settings.project_root),
        "DEVBOX_HOME": str(settings.home),
        "DEVBOX_CACHE": str(settings.cache_dir),
    }
    if settings.config is not None:
        variables["PROJECT_NAME"] = settings.config.name
    return variables


def render_file(source: Path, target: Path, *var_sources: Mapping[str, str] | None) -> list[str]:
    """Render ``source`` into ``target``.

    Returns:
        Tokens left unresolved in the output.
    """
    text = render(source.read_text(encoding="utf-8"), *var_sources)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(text, encoding="utf-8")
    logger.info("Rendered %s -> %s", source, target)
    return unresolved_tokens(text)

"""
Environment file — read and write the project ``.env``.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

ENV_FILE = ".env"

_NEEDS_QUOTES = re.compile(r"[\s#'\"$`\\]")


def parse_env_file(path: Path) -> dict[str, str]:
    """Parse a .env file into a key/value dict.

    Handles:
    - KEY=value
    - KEY="value"
    - KEY='value'
    - export KEY=value
    - Comments (#)
    - Empty lines

    A missing file yields an empty dict.
    """
    result: dict[str, str] = {}
    if not path.is_file():
        return result

    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        if line.startswith("export "):
            line = line[7:].strip()

        if "=" not in line:
            continue

        key, _, value = line.partition("=")
        key = key.strip()
        value = value.strip()

        if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
            value = value[1:-1]

        result[key] = value

    return result


def format_env(env: Mapping[str, str]) -> str:
    """Render variables as .env lines, sorted by name."""
    lines = []
    for key in sorted(env):
        value = str(env[key])
        if _NEEDS_QUOTES.search(value):
            quote = "'" if '"' in value else '"'
            value = f"{quote}{value}{quote}"
        lines.append(f"{key}={value}")
    return "\n".join(lines) + ("\n" if lines else "")


def write_env_file(path: Path, env: Mapping[str, str], *, header: str = "") -> Path:
    """Write ``env`` to ``path``, replacing the file."""
    content = format_env(env)
    if header:
        content = "".join(f"# {line}\n" for line in header.splitlines()) + content
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    logger.info("Wrote %d variable(s) to %s", len(env), path)
    return path

"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from devbox.core.config.settings import Settings
from devbox.core.context import set_invocation

from tests.helpers import make_settings


@pytest.fixture
def project_root() -> Path:
    """Return the repository root directory."""
    return Path(__file__).parent.parent


@pytest.fixture(autouse=True)
def _clear_invocation():
    yield
    set_invocation(None)


@pytest.fixture
def write():
    """Write a dedented file, creating parent directories."""

    def _write(path: Path, content: str = "", mode: int | None = None) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(textwrap.dedent(content), encoding="utf-8")
        if mode is not None:
            path.chmod(mode)
        return path

    return _write


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Project-mode settings with empty, isolated tiers."""
    return make_settings(tmp_path)


@pytest.fixture
def tiers(settings: Settings) -> dict[str, Path]:
    """The four tier directories of ``settings``, created."""
    paths = {
        "override": settings.override_dir,
        "project_module": settings.project_commands_dir,
        "core": settings.core_commands_dir,
        "shared": settings.shared_modules_dir,
    }
    for path in paths.values():
        path.mkdir(parents=True, exist_ok=True)
    return paths

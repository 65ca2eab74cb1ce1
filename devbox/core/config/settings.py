"""
Runtime settings — everything an invocation needs to know about where
it is running.

Resolution order for each field:
    CLI option  >  environment variable  >  box.yml  >  default
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pydantic import BaseModel

from devbox.core.config.loader import find_box_file, load_box_config
from devbox.core.errors import ConfigError
from devbox.core.models.command import Mode
from devbox.core.models.config import BoxConfig

logger = logging.getLogger(__name__)

PACKAGE_DIR = Path(__file__).resolve().parents[2]

DEFAULT_HOME = Path.home() / ".devbox"
STATE_DIR = ".state"
STATE_FILE = "packages.json"

_TRUTHY = {"1", "true", "yes", "on"}


class Settings(BaseModel):
    """Resolved configuration for one invocation."""

    mode: Mode
    project_root: Path
    config_path: Path | None = None
    config: BoxConfig | None = None
    home: Path = DEFAULT_HOME
    override_dir: Path
    commands_root: Path = PACKAGE_DIR / "commands"
    modules_root: Path = PACKAGE_DIR / "modules"
    embedded: bool = False
    non_interactive: bool = False

    @property
    def cache_dir(self) -> Path:
        return self.home / "cache"

    @property
    def state_path(self) -> Path:
        return self.project_root / STATE_DIR / STATE_FILE

    @property
    def project_commands_dir(self) -> Path:
        """ProjectModule tier for the active mode."""
        return self.modules_root / self.mode.value

    @property
    def core_commands_dir(self) -> Path:
        """CoreEmbedded tier for the active mode."""
        return self.commands_root / self.mode.value

    @property
    def shared_modules_dir(self) -> Path:
        return self.modules_root / "shared"

    def require_config(self) -> BoxConfig:
        """Return the box config, or raise if the project has none."""
        if self.config is None:
            raise ConfigError(
                "No box.yml found. Run 'devbox init' to create one, or pass --config."
            )
        return self.config


def env_flag(name: str, environ: dict[str, str] | None = None) -> bool:
    """Read a boolean environment variable."""
    env = os.environ if environ is None else environ
    return env.get(name, "").strip().lower() in _TRUTHY


def load_settings(
    mode: Mode,
    config_path: Path | None = None,
    *,
    cwd: Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Resolve settings for an invocation.

    A missing box.yml is not an error here: global commands never need
    one and project commands that do call ``require_config()``.
    """
    env = dict(os.environ) if environ is None else environ

    path = config_path or find_box_file(cwd)
    config = load_box_config(path) if path else None
    project_root = path.parent.resolve() if path else (cwd or Path.cwd()).resolve()

    home = Path(env["DEVBOX_HOME"]).expanduser() if env.get("DEVBOX_HOME") else DEFAULT_HOME
    override_name = config.override_dir if config else ".box"

    settings = Settings(
        mode=mode,
        project_root=project_root,
        config_path=path,
        config=config,
        home=home,
        override_dir=project_root / override_name,
        non_interactive=env_flag("DEVBOX_NON_INTERACTIVE", env),
    )
    logger.debug(
        "Settings: mode=%s root=%s config=%s",
        mode.value, project_root, path,
    )
    return settings

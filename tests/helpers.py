"""
Helpers shared by test modules.
"""

import io
import tarfile
import zipfile
from pathlib import Path

from devbox.core.config.settings import Settings
from devbox.core.models.command import Mode

ECHO_ARGV = """\
\"\"\"Print the arguments as JSON.\"\"\"
import json
import sys

print(json.dumps(sys.argv[1:]))
"""


def make_settings(tmp_path: Path, mode: Mode = Mode.PROJECT, **overrides) -> Settings:
    """Settings whose every tier lives under ``tmp_path``."""
    project = tmp_path / "proj"
    project.mkdir(exist_ok=True)
    values = dict(
        mode=mode,
        project_root=project,
        override_dir=project / ".box",
        commands_root=tmp_path / "commands",
        modules_root=tmp_path / "modules",
        home=tmp_path / "home",
        non_interactive=True,
    )
    values.update(overrides)
    return Settings(**values)


def make_tarball(path: Path, members: dict[str, str]) -> Path:
    """Write a .tar.gz holding ``members`` (archive path -> text)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tf:
        for name, text in members.items():
            data = text.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tf.addfile(info, io.BytesIO(data))
    return path


def make_zip(path: Path, members: dict[str, str]) -> Path:
    """Write a .zip holding ``members`` (archive path -> text)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        for name, text in members.items():
            zf.writestr(name, text)
    return path


SDK_MEMBERS = {
    "sdk/bin/cc": "#!/bin/sh\necho cc\n",
    "sdk/bin/as": "#!/bin/sh\necho as\n",
    "sdk/config/default.cfg": "opt=1\n",
    "sdk/README": "readme\n",
}

SDK_RULES = [
    "dir:sdk/bin:tools/sdk/bin:SDK_BIN",
    "file:sdk/config/*.cfg:tools/sdk/config",
]

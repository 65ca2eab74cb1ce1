"""
Package state store — which packages are installed in a project.

State is stored as JSON in ``.state/packages.json``.  Writes are atomic
(write to temp file, then rename) so a crash mid-write never leaves a
truncated file behind.

Unlike most devbox state, a corrupt file here is an error rather than a
fresh start: silently forgetting installed packages would orphan their
files.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

from devbox.core.errors import StateError
from devbox.core.models.package import PackageRecord, PackageState

logger = logging.getLogger(__name__)


class PackageStateStore:
    """Read/write access to one project's package records."""

    def __init__(self, path: Path):
        self.path = path

    # ── Read ────────────────────────────────────────────────────

    def load(self) -> PackageState:
        """Load the whole state document (empty if the file is absent).

        Raises:
            StateError: the file exists but cannot be parsed.
        """
        if not self.path.is_file():
            logger.debug("No package state at %s — empty", self.path)
            return PackageState()

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return PackageState.model_validate(data)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise StateError(f"Cannot read package state {self.path}: {e}") from e

    def load_all(self) -> dict[str, PackageRecord]:
        return self.load().packages

    def get(self, name: str) -> PackageRecord | None:
        return self.load().packages.get(name)

    # ── Write ───────────────────────────────────────────────────

    def set(self, record: PackageRecord) -> None:
        state = self.load()
        state.packages[record.name] = record
        self.save(state)

    def remove(self, name: str) -> bool:
        """Forget a package.  Returns False if it was not recorded."""
        state = self.load()
        if state.packages.pop(name, None) is None:
            return False
        self.save(state)
        return True

    def save(self, state: PackageState) -> None:
        """Write the state document atomically.

        Raises:
            StateError: the file cannot be written.
        """
        content = json.dumps(state.model_dump(mode="json"), indent=2, ensure_ascii=False) + "\n"

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=".packages_",
                suffix=".tmp",
            )
            tmp = Path(tmp_path)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(content)
                tmp.replace(self.path)
                logger.debug("Package state saved to %s", self.path)
            except Exception:
                tmp.unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to save package state to %s: %s", self.path, e)
            raise StateError(f"Cannot write package state {self.path}: {e}") from e

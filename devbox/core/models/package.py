"""
Package record — what the state store remembers about an install.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, Field


def _now_iso() -> str:
    """Current UTC time as ISO string."""
    return datetime.now(UTC).isoformat()


class PackageRecord(BaseModel):
    """Installation record for one package."""

    name: str
    version: str = ""
    files: list[str] = Field(default_factory=list)   # relative to project root
    dirs: list[str] = Field(default_factory=list)
    env: dict[str, str] = Field(default_factory=dict)
    installed: bool = False
    installed_at: str = Field(default_factory=_now_iso)


class PackageState(BaseModel):
    """Root document of ``.state/packages.json``."""

    schema_version: int = 1
    packages: dict[str, PackageRecord] = Field(default_factory=dict)

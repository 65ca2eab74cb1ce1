"""
Box config model — the typed form of ``box.yml``.

Example::

    name: my-game
    description: "Demo project"
    env:
      SDK_ROOT: "{{PROJECT_ROOT}}/sdk"
    packages:
      - name: vbcc
        url: https://example.org/vbcc.tar.gz
        version: "0.9h"
        rules:
          - "dir:vbcc/bin:tools/vbcc/bin:VBCC"
          - "file:vbcc/config/*:tools/vbcc/config"
    templates:
      - source: templates/Makefile.in
        target: Makefile
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator


class PackageSpec(BaseModel):
    """A package the project wants installed."""

    name: str
    url: str
    version: str = ""
    source_kind: Literal["http", "file"] = "http"
    rules: list[str] = Field(default_factory=list)
    description: str = ""

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: object) -> object:
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @property
    def cache_key(self) -> str:
        """Stable cache file stem for the downloaded artifact."""
        return f"{self.name}-{self.version}" if self.version else self.name


class TemplateSpec(BaseModel):
    """A config file generated from a ``{{TOKEN}}`` template."""

    source: str
    target: str


class BoxConfig(BaseModel):
    """Root of ``box.yml``."""

    name: str
    description: str = ""
    override_dir: str = ".box"
    env: dict[str, str] = Field(default_factory=dict)
    packages: list[PackageSpec] = Field(default_factory=list)
    templates: list[TemplateSpec] = Field(default_factory=list)

    def get_package(self, name: str) -> PackageSpec | None:
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    @property
    def package_names(self) -> list[str]:
        return [p.name for p in self.packages]

"""
Manifest model — the declarative contract of a module.

A manifest module is a folder holding ``module.yml`` plus the scripts
and Python files it references::

    tools/
        module.yml
        tools.py          # defines the dispatcher function
        show.sh           # a handler script

``module.yml``::

    module_name: tools
    version: "1.0"
    commands:
      tools:
        dispatcher: tools_dispatch
        synopsis: Inspect resolved commands
        subcommands: [list, show]
    private_functions: [format_row]
    help: tools_help
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

MANIFEST_FILE = "module.yml"


class CommandSpec(BaseModel):
    """One command exposed by a manifest module.

    Exactly one of ``handler`` / ``dispatcher`` must be set; the
    validator enforces that so callers get a precise rejection reason
    instead of a pydantic error.
    """

    handler: str | None = None       # script path, relative to module dir
    dispatcher: str | None = None    # function name in the module's files
    synopsis: str = ""
    subcommands: list[str] = Field(default_factory=list)


class ModuleManifest(BaseModel):
    """Typed ``module.yml``."""

    module_name: str
    version: str = ""
    commands: dict[str, CommandSpec]
    private_functions: set[str] = Field(default_factory=set)
    help: str | None = None

    @field_validator("version", mode="before")
    @classmethod
    def _coerce_version(cls, value: object) -> object:
        # YAML reads `version: 1.0` as a float and `2024-01-01` as a date
        if value is not None and not isinstance(value, str):
            return str(value)
        return value

    @property
    def dispatcher_names(self) -> set[str]:
        """Every function name the manifest references."""
        names = {c.dispatcher for c in self.commands.values() if c.dispatcher}
        if self.help:
            names.add(self.help)
        return names

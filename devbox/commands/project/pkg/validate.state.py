"""Check recorded package state against box.yml and the project tree."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.packages import validate_state


@click.command("validate state")
@click.option("--strict", is_flag=True, help="Treat warnings as errors.")
def validate_state_cmd(strict: bool) -> None:
    """Check recorded package state against box.yml and the project tree."""
    report = validate_state(current_settings(Mode.PROJECT))

    for error in report.errors:
        click.secho(f"❌ {error}", fg="red")
    for warning in report.warnings:
        click.secho(f"⚠️  {warning}", fg="yellow")

    if not report.ok or (strict and report.warnings):
        sys.exit(1)
    click.secho(f"✅ Package state OK ({report.checked} recorded)", fg="green")


def main(args: list[str]) -> int:
    """Check recorded package state against box.yml and the project tree."""
    return invoke_click(validate_state_cmd, args, "box pkg validate state")


ROUTINES = [
    ("pkg validate state", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

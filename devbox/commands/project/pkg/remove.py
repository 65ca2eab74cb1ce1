"""Remove an installed package and its files."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.services.prompts import confirm
from devbox.core.use_cases.packages import remove_package, state_store


@click.command("remove")
@click.argument("name")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def remove(name: str, yes: bool) -> None:
    """Remove an installed package and the files it installed."""
    settings = current_settings(Mode.PROJECT)

    record = state_store(settings).get(name)
    if record is None:
        click.secho(f"❌ Package '{name}' is not installed", fg="red", err=True)
        sys.exit(1)

    if not yes and not confirm(
        f"Remove {name} ({len(record.files)} files)?",
        default=True,
        non_interactive=settings.non_interactive or None,
    ):
        click.echo("Aborted.")
        return

    remove_package(settings, name)
    click.secho(f"✅ {name} removed", fg="green")


def main(args: list[str]) -> int:
    """Remove an installed package and its files."""
    return invoke_click(remove, args, "box pkg remove")


ROUTINES = [
    ("pkg remove", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

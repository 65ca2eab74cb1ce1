"""Delete every downloaded artifact from the shared cache."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.services.prompts import confirm
from devbox.core.use_cases.packages import cache_entries, clean_cache


@click.command("clean")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation.")
def clean(yes: bool) -> None:
    """Delete every downloaded artifact from the shared cache."""
    settings = current_settings(Mode.GLOBAL)
    count = len(cache_entries(settings))

    if count == 0:
        click.echo("Cache is already empty.")
        return

    if not yes and not confirm(
        f"Delete {count} cached artifact(s) from {settings.cache_dir}?",
        default=False,
        non_interactive=settings.non_interactive or None,
    ):
        click.echo("Aborted.")
        return

    removed = clean_cache(settings)
    click.secho(f"✅ Removed {removed} artifact(s)", fg="green")


def main(args: list[str]) -> int:
    """Delete every downloaded artifact from the shared cache."""
    return invoke_click(clean, args, "devbox cache clean")


ROUTINES = [
    ("cache clean", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

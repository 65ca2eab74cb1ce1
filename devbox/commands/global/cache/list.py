"""List downloaded artifacts in the shared cache."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.packages import cache_entries


@click.command("list")
def list_cmd() -> None:
    """List downloaded artifacts in the shared cache."""
    settings = current_settings(Mode.GLOBAL)
    entries = cache_entries(settings)

    if not entries:
        click.echo(f"Cache is empty ({settings.cache_dir})")
        return

    total = 0
    click.secho(f"🗄️  {settings.cache_dir}:", fg="cyan", bold=True)
    for path in entries:
        size = path.stat().st_size
        total += size
        click.echo(f"   {path.name:<40} {size / 1024:>10.1f} KiB")
    click.echo(f"   {len(entries)} artifact(s), {total / (1024 * 1024):.1f} MiB")


def main(args: list[str]) -> int:
    """List downloaded artifacts in the shared cache."""
    return invoke_click(list_cmd, args, "devbox cache list")


ROUTINES = [
    ("cache list", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

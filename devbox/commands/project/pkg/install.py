"""Install a package declared in box.yml."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.packages import install_package


@click.command("install")
@click.argument("names", nargs=-1, required=True)
@click.option("--force", "-f", is_flag=True, help="Reinstall even if already installed.")
def install(names: tuple[str, ...], force: bool) -> None:
    """Install one or more packages declared in box.yml."""
    settings = current_settings(Mode.PROJECT)

    for name in names:
        result = install_package(settings, name, force=force)
        if result.action == "skipped":
            click.secho(f"⏭️  {name}: already installed, skipped", fg="yellow")
            continue
        record = result.record
        click.secho(f"✅ {name} {record.version if record else ''} {result.action}", fg="green")
        if record and record.env:
            for key, value in sorted(record.env.items()):
                click.echo(f"   {key}={value}")


def main(args: list[str]) -> int:
    """Install a package declared in box.yml."""
    return invoke_click(install, args, "box pkg install")


ROUTINES = [
    ("pkg install", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

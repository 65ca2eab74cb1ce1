"""List declared packages and whether they are installed."""

from __future__ import annotations

import json
import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.packages import list_packages


@click.command("list")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def list_cmd(as_json: bool) -> None:
    """List declared packages and whether they are installed."""
    rows = list_packages(current_settings(Mode.PROJECT))

    if as_json:
        click.echo(json.dumps([
            {
                "name": r.name,
                "version": r.version,
                "installed": r.installed,
                "installed_version": r.installed_version,
                "declared": r.declared,
            }
            for r in rows
        ], indent=2))
        return

    if not rows:
        click.secho("⚠️  No packages declared in box.yml", fg="yellow")
        return

    click.secho("📦 Packages:", fg="cyan", bold=True)
    for r in rows:
        if not r.declared:
            click.echo(f"   ⚠️  {r.name:<20} {r.installed_version or '?':<12} (not in box.yml)")
        elif r.outdated:
            click.echo(f"   ⚠️  {r.name:<20} {r.installed_version or '?':<12} → {r.version}")
        elif r.installed:
            click.echo(f"   ✅ {r.name:<20} {r.version:<12} {r.description}".rstrip())
        else:
            click.echo(f"   ·  {r.name:<20} {r.version:<12} {r.description}".rstrip())
    click.echo()


def main(args: list[str]) -> int:
    """List declared packages and whether they are installed."""
    return invoke_click(list_cmd, args, "box pkg list")


ROUTINES = [
    ("pkg list", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

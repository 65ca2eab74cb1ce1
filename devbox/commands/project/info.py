"""Show resolved settings, tier locations and registry health."""

from __future__ import annotations

import json
import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.info import describe


@click.command("info")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def info(as_json: bool) -> None:
    """Show resolved settings, tier locations and registry health."""
    data = describe(current_settings(Mode.PROJECT))

    if as_json:
        click.echo(json.dumps(data, indent=2))
        return

    click.secho(f"🧰 box {data['version']} ({data['mode']} mode{', embedded' if data['embedded'] else ''})", fg="cyan", bold=True)
    click.echo(f"   Project:   {data['project'] or '(no box.yml)'}")
    click.echo(f"   Root:      {data['project_root']}")
    click.echo(f"   Config:    {data['config_path'] or '-'}")
    click.echo(f"   Home:      {data['home']}")
    click.echo(f"   State:     {data['state_path']}")
    click.echo()
    click.secho("   Tiers (highest first):", bold=True)
    for tier, path in data["tiers"].items():
        click.echo(f"     {tier:<16} {path}")

    if "commands" in data:
        click.echo()
        click.echo(f"   Commands:  {data['commands']} ({data['shadowed']} shadowed)")
        for module_dir, error in data["rejected"].items():
            click.secho(f"   ❌ rejected {module_dir}: {error}", fg="red")


def main(args: list[str]) -> int:
    """Show resolved settings, tier locations and registry health."""
    return invoke_click(info, args, "box info")


ROUTINES = [
    ("info", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

"""Print the project environment, or write it to .env."""

from __future__ import annotations

import json
import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.services.env_file import ENV_FILE, format_env, parse_env_file, write_env_file
from devbox.core.use_cases.environment import project_env


@click.command("env")
@click.option("--write", "write", is_flag=True, help=f"Write {ENV_FILE} in the project root.")
@click.option("--merge", is_flag=True, help=f"Keep variables already in {ENV_FILE}.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
def env(write: bool, merge: bool, as_json: bool) -> None:
    """Print the merged project environment, or write it to .env."""
    settings = current_settings(Mode.PROJECT)
    settings.require_config()
    variables = project_env(settings)

    if write:
        path = settings.project_root / ENV_FILE
        if merge:
            variables = {**parse_env_file(path), **variables}
        write_env_file(path, variables, header="Generated by box env --write")
        click.secho(f"✅ Wrote {len(variables)} variable(s) to {path}", fg="green")
        return

    if as_json:
        click.echo(json.dumps(variables, indent=2, sort_keys=True))
    else:
        click.echo(format_env(variables), nl=False)


def main(args: list[str]) -> int:
    """Print the project environment, or write it to .env."""
    return invoke_click(env, args, "box env")


ROUTINES = [
    ("env", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

"""Create box.yml and the .box/ override folder for a project."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from devbox.core.config.loader import BOX_CONFIG_FILE, write_box_config
from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.models.config import BoxConfig
from devbox.core.services.prompts import ask_text

OVERRIDE_README = """\
Project-local commands.

Scripts and folders placed here override devbox's own commands of the
same name when running `box` in this project.
"""


@click.command("init")
@click.argument("directory", required=False, type=click.Path(file_okay=False, path_type=Path))
@click.option("--name", "-n", default=None, help="Project name (default: directory name).")
@click.option("--force", is_flag=True, help="Overwrite an existing box.yml.")
def init(directory: Path | None, name: str | None, force: bool) -> None:
    """Scaffold box.yml and .box/ in DIRECTORY (default: current directory)."""
    settings = current_settings(Mode.GLOBAL)
    root = (directory or Path.cwd()).resolve()
    config_path = root / BOX_CONFIG_FILE

    if config_path.exists() and not force:
        click.secho(f"❌ {config_path} already exists (use --force)", fg="red", err=True)
        sys.exit(1)

    if name is None:
        name = ask_text(
            "Project name",
            default=root.name,
            non_interactive=settings.non_interactive or None,
        )

    config = BoxConfig(name=name or root.name)
    root.mkdir(parents=True, exist_ok=True)
    write_box_config(config, config_path)

    override = root / config.override_dir
    override.mkdir(exist_ok=True)
    readme = override / "README"
    if not readme.exists():
        readme.write_text(OVERRIDE_README, encoding="utf-8")

    click.secho(f"✅ Created {config_path}", fg="green")
    click.echo(f"   Overrides: {override}")
    click.echo("   Next: add packages to box.yml, then run 'box pkg install <name>'")


def main(args: list[str]) -> int:
    """Create box.yml and the .box/ override folder for a project."""
    return invoke_click(init, args, "devbox init")


ROUTINES = [
    ("init", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

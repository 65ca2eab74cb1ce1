"""Write every built-in command into one runnable Python file."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from devbox.core.context import current_settings
from devbox.core.engine.bundle import build_payload, write_bundle
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode


@click.command("bundle")
@click.argument("output", type=click.Path(dir_okay=False, path_type=Path))
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def bundle(output: Path, force: bool) -> None:
    """Write the single-file bundle to OUTPUT.

    Run the result as ``box`` (symlink or name it box.py) for project
    mode; any other name runs the global manager.  The bundle carries
    the command sources only: the devbox package must be installed for
    the Python that runs it.
    """
    settings = current_settings(Mode.GLOBAL)
    if settings.embedded:
        click.secho("❌ Cannot bundle from inside a bundle", fg="red", err=True)
        sys.exit(1)
    if output.exists() and not force:
        click.secho(f"❌ {output} already exists (use --force)", fg="red", err=True)
        sys.exit(1)

    payload = build_payload(settings)
    write_bundle(payload, output)

    counts = ", ".join(f"{mode}: {len(entries)}" for mode, entries in payload["modes"].items())
    click.secho(f"✅ Wrote {output} ({counts} source(s))", fg="green")
    click.echo("   Requires the devbox package wherever the bundle runs.")


def main(args: list[str]) -> int:
    """Write every built-in command into one runnable Python file."""
    return invoke_click(bundle, args, "devbox bundle")


ROUTINES = [
    ("bundle", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

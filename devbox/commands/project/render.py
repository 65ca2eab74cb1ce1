"""Render the config files listed under templates: in box.yml."""

from __future__ import annotations

import sys

import click

from devbox.core.context import current_settings
from devbox.core.engine.scripts import invoke_click
from devbox.core.models.command import Mode
from devbox.core.use_cases.environment import render_templates


@click.command("render")
@click.option("--dry-run", is_flag=True, help="Print the output instead of writing it.")
@click.option("--strict", is_flag=True, help="Fail if any {{TOKEN}} stays unresolved.")
def render(dry_run: bool, strict: bool) -> None:
    """Render every template declared in box.yml."""
    settings = current_settings(Mode.PROJECT)
    results = render_templates(settings, dry_run=dry_run)

    if not results:
        click.secho("⚠️  No templates declared in box.yml", fg="yellow")
        return

    unresolved = 0
    for r in results:
        rel = r.target.relative_to(settings.project_root)
        if dry_run:
            click.secho(f"── {rel} ──", fg="cyan")
            click.echo(r.text, nl=not r.text.endswith("\n"))
        if r.unresolved:
            unresolved += 1
            click.secho(f"⚠️  {rel}: unresolved {', '.join(r.unresolved)}", fg="yellow")
        elif not dry_run:
            click.secho(f"✅ {rel}", fg="green")

    if strict and unresolved:
        sys.exit(1)


def main(args: list[str]) -> int:
    """Render the config files listed under templates: in box.yml."""
    return invoke_click(render, args, "box render")


ROUTINES = [
    ("render", main),
]

if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))

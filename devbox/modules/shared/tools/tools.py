"""
tools — inspect the command registry of the running invocation.

    tools [list]        every resolved command with its tier
    tools show <name>   one command in detail
"""

from __future__ import annotations

import click

from devbox.core.context import get_invocation


def format_row(name: str, kind: str, tier: str, source: str) -> str:
    return f"  {name:<16} {kind:<20} {tier:<16} {source}"


def tools_help(args):
    """Help for the tools command."""
    click.echo(__doc__.strip())
    return 0


def tools_dispatch(command_path, arguments):
    """Show resolved commands and where they come from."""
    invocation = get_invocation()
    if invocation is None:
        click.secho("❌ tools must run through devbox or box", fg="red", err=True)
        return 1

    registry = invocation.registry
    sub = command_path[1] if len(command_path) > 1 else "list"

    if sub == "show":
        if not arguments:
            click.secho("❌ Usage: tools show <name>", fg="red", err=True)
            return 1
        return _show(registry, arguments[0])

    if arguments:
        click.secho(f"❌ Unknown tools subcommand: {arguments[0]}", fg="red", err=True)
        return 1

    click.echo(format_row("NAME", "KIND", "TIER", "SOURCE"))
    for name in registry.names():
        d = registry.get(name)
        click.echo(format_row(name, d.kind.value, d.tier.value, d.source))
    for error in {str(e): e for e in registry.rejected.values()}.values():
        click.secho(f"  rejected: {error}", fg="red")
    return 0


def _show(registry, name):
    d = registry.get(name)
    if d is None:
        click.secho(f"❌ No command named '{name}'", fg="red", err=True)
        return 1

    click.secho(name, bold=True)
    click.echo(f"  kind:     {d.kind.value}")
    click.echo(f"  tier:     {d.tier.value}")
    click.echo(f"  source:   {d.source}")
    if d.synopsis:
        click.echo(f"  synopsis: {d.synopsis}")
    if d.module:
        click.echo(f"  module:   {d.module}")
    for sub in sorted(d.subcommands):
        click.echo(f"  sub:      {sub.replace('.', ' ')}")
    shadowed = [x for x in registry.dropped if x.name == name]
    for x in shadowed:
        click.echo(f"  shadows:  {x.source} ({x.tier.value})")
    return 0

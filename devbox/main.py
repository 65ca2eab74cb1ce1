"""
devbox — CLI entrypoints.

Usage:
    devbox [options] <command> [args...]     global manager
    box [options] <command> [args...]        per-project manager

Only the options *before* the command name belong to the entry point.
Everything from the command name on is handed to the dispatcher
untouched.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from devbox import __version__
from devbox.core.config.settings import load_settings
from devbox.core.engine.dispatcher import PROG_NAMES
from devbox.core.engine.routines import RoutineTable
from devbox.core.engine.runner import run
from devbox.core.engine.scripts import exit_code
from devbox.core.errors import ConfigError
from devbox.core.models.command import Mode
from devbox.core.observability.logging_config import resolve_level, setup_logging

CONTEXT_SETTINGS = {
    "ignore_unknown_options": True,
    "allow_interspersed_args": False,
}

_DESCRIPTIONS = {
    Mode.GLOBAL: "devbox — set up development environments.",
    Mode.PROJECT: "box — manage this project's development environment.",
}


def build_cli(mode: Mode) -> click.Command:
    """Create the click entry point for one mode."""
    prog = PROG_NAMES[mode]

    @click.command(name=prog, context_settings=CONTEXT_SETTINGS, help=_DESCRIPTIONS[mode])
    @click.version_option(version=__version__, prog_name=prog)
    @click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
    @click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
    @click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
    @click.option(
        "--config",
        "-c",
        "config_path",
        type=click.Path(exists=False, path_type=Path),
        default=None,
        help="Path to box.yml (default: auto-detect).",
    )
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    @click.pass_context
    def cli(
        ctx: click.Context,
        verbose: bool,
        quiet: bool,
        debug: bool,
        config_path: Path | None,
        args: tuple[str, ...],
    ) -> None:
        # ── Logging setup (once, at process start) ──────────────────
        setup_logging(
            level=resolve_level(
                debug=debug,
                verbose=verbose,
                quiet=quiet,
                env_level=os.environ.get("DEVBOX_LOG_LEVEL"),
            ),
            log_file=os.environ.get("DEVBOX_LOG_FILE"),
            log_file_level=os.environ.get("DEVBOX_LOG_FILE_LEVEL"),
            quiet_third_party=not debug,
        )

        try:
            settings = load_settings(mode, config_path)
        except ConfigError as e:
            click.secho(f"❌ {e}", fg="red", err=True)
            ctx.exit(1)

        embedded_table = (ctx.obj or {}).get("embedded_table")
        ctx.exit(run(mode, list(args), settings, embedded_table))

    return cli


devbox_cli = build_cli(Mode.GLOBAL)
box_cli = build_cli(Mode.PROJECT)


def main(
    mode: Mode,
    argv: list[str] | None = None,
    embedded_table: RoutineTable | None = None,
) -> int:
    """Run an entry point and return its exit status instead of exiting."""
    cli = devbox_cli if mode is Mode.GLOBAL else box_cli
    try:
        cli.main(
            args=argv,
            prog_name=PROG_NAMES[mode],
            obj={"embedded_table": embedded_table},
        )
    except SystemExit as e:
        return exit_code(e.code)
    return 0


if __name__ == "__main__":
    sys.exit(main(Mode.GLOBAL))

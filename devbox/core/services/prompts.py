"""
Interactive prompts used by the package workflow.

With ``DEVBOX_NON_INTERACTIVE`` set (or ``non_interactive=True``),
every prompt returns its default without reading stdin.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

import click

from devbox.core.config.settings import env_flag

logger = logging.getLogger(__name__)


def _non_interactive(flag: bool | None) -> bool:
    return env_flag("DEVBOX_NON_INTERACTIVE") if flag is None else flag


def confirm(question: str, default: bool = False, *, non_interactive: bool | None = None) -> bool:
    """Yes/no question."""
    if _non_interactive(non_interactive):
        logger.debug("Non-interactive: %s -> %s", question, default)
        return default
    return click.confirm(question, default=default)


def choose_letter(
    question: str,
    choices: Mapping[str, str],
    default: str,
    *,
    non_interactive: bool | None = None,
) -> str:
    """Pick one option by its letter.

    Args:
        question: Prompt text.
        choices: ``{"r": "reinstall", "s": "skip"}``.
        default: Letter returned on empty input or non-interactive runs.

    Returns:
        The chosen letter (lowercase).
    """
    letters = [c.lower() for c in choices]
    default = default.lower()
    if default not in letters:
        raise ValueError(f"default '{default}' is not one of {letters}")

    if _non_interactive(non_interactive):
        logger.debug("Non-interactive: %s -> %s", question, default)
        return default

    for letter, label in choices.items():
        click.echo(f"  [{letter.lower()}] {label}")
    answer = click.prompt(
        question,
        default=default,
        type=click.Choice(letters, case_sensitive=False),
        show_choices=False,
    )
    return answer.lower()


def ask_text(question: str, default: str = "", *, non_interactive: bool | None = None) -> str:
    """Free-text answer (stripped)."""
    if _non_interactive(non_interactive):
        logger.debug("Non-interactive: %s -> %r", question, default)
        return default
    return str(click.prompt(question, default=default, show_default=bool(default))).strip()

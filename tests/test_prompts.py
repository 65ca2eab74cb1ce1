"""
Tests for interactive prompts and their non-interactive defaults.
"""

import click
import pytest
from click.testing import CliRunner

from devbox.core.services.prompts import ask_text, choose_letter, confirm

CHOICES = {"r": "reinstall", "s": "skip"}


def _run(func, stdin):
    """Call ``func`` inside a click command fed with ``stdin``."""
    seen = []

    @click.command()
    def cmd():
        seen.append(func())

    result = CliRunner().invoke(cmd, input=stdin)
    assert result.exit_code == 0, result.output
    return seen[0], result.output


class TestNonInteractive:
    def test_defaults_returned(self):
        assert confirm("Go?", default=True, non_interactive=True) is True
        assert confirm("Go?", non_interactive=True) is False
        assert choose_letter("Again?", CHOICES, "S", non_interactive=True) == "s"
        assert ask_text("Name", "demo", non_interactive=True) == "demo"

    def test_env_flag(self, monkeypatch):
        monkeypatch.setenv("DEVBOX_NON_INTERACTIVE", "yes")
        assert confirm("Go?", default=True) is True

    def test_bad_default(self):
        with pytest.raises(ValueError):
            choose_letter("Again?", CHOICES, "x", non_interactive=True)


class TestInteractive:
    def test_confirm(self):
        answer, _ = _run(lambda: confirm("Go?", non_interactive=False), "y\n")
        assert answer is True

    def test_choose_letter(self):
        answer, output = _run(lambda: choose_letter("Again?", CHOICES, "s", non_interactive=False), "R\n")
        assert answer == "r"
        assert "[r] reinstall" in output

    def test_choose_letter_default(self):
        answer, _ = _run(lambda: choose_letter("Again?", CHOICES, "s", non_interactive=False), "\n")
        assert answer == "s"

    def test_ask_text(self):
        answer, _ = _run(lambda: ask_text("Name", "demo", non_interactive=False), "  game  \n")
        assert answer == "game"

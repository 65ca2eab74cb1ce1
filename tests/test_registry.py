"""
Tests for the command registry — first-wins folding, precedence, sealing.
"""

import logging

import pytest

from devbox.core.engine.registry import CommandRegistry
from devbox.core.engine.routines import RoutineTable
from devbox.core.engine.runner import build_registry
from devbox.core.errors import ManifestError, ManifestErrorKind, RegistrySealedError
from devbox.core.models.command import CommandDescriptor, CommandKind, SourceTier

from tests.helpers import ECHO_ARGV


def _descriptor(name, tier=SourceTier.CORE_EMBEDDED, source="x"):
    return CommandDescriptor(name=name, kind=CommandKind.SCRIPT, target=source, tier=tier, source=source)


def _handler_module(write, root, module, command):
    write(root / module / "module.yml", f"""\
        module_name: {module}
        commands:
          {command}:
            handler: run.sh
    """)
    write(root / module / "run.sh", f"echo {module}\n")


class TestFolding:
    """The first claimant of a name keeps it."""

    def test_first_wins(self):
        registry = CommandRegistry()
        assert registry.add(_descriptor("a", source="first"))
        assert not registry.add(_descriptor("a", source="second"))
        assert registry.get("a").source == "first"
        assert [d.source for d in registry.dropped] == ["second"]

    def test_drop_logged_at_debug(self, caplog):
        caplog.set_level(logging.DEBUG, logger="devbox.core.engine.registry")
        registry = CommandRegistry()
        registry.add(_descriptor("a", source="first"))
        registry.add(_descriptor("a", source="second"))
        assert "shadowed" in caplog.text

    def test_names_sorted(self):
        registry = CommandRegistry()
        registry.add_all([_descriptor("b"), _descriptor("a")])
        assert registry.names() == ["a", "b"]

    def test_rejection_only_reported_for_unclaimed_names(self):
        registry = CommandRegistry()
        error = ManifestError(ManifestErrorKind.MISSING_ENTRYPOINT, "bad", commands=("x", "y"))
        registry.add(_descriptor("x"))
        registry.reject(error)
        assert registry.rejection_for("x") is None
        assert registry.rejection_for("y") is error


class TestSealing:
    """The dispatcher only ever sees a frozen registry."""

    def test_add_after_seal(self):
        registry = CommandRegistry()
        registry.seal()
        assert registry.sealed
        with pytest.raises(RegistrySealedError):
            registry.add(_descriptor("a"))

    def test_reject_after_seal(self):
        registry = CommandRegistry()
        registry.seal()
        with pytest.raises(RegistrySealedError):
            registry.reject(ManifestError(ManifestErrorKind.MISSING_METADATA, "x"))


class TestPrecedence:
    """Tier order decides conflicts across a full scan."""

    def test_override_beats_core(self, settings, tiers, write):
        write(tiers["core"] / "build.py", ECHO_ARGV)
        write(tiers["override"] / "build.sh", "echo override\n")
        registry = build_registry(settings, RoutineTable())
        assert registry.get("build").tier is SourceTier.BOX_OVERRIDE
        assert registry.get("build").target.endswith("build.sh")

    def test_project_module_beats_core(self, settings, tiers, write):
        write(tiers["core"] / "lint.py", ECHO_ARGV)
        write(tiers["project_module"] / "lint.py", ECHO_ARGV)
        registry = build_registry(settings, RoutineTable())
        assert registry.get("lint").tier is SourceTier.PROJECT_MODULE

    def test_core_beats_shared(self, settings, tiers, write):
        write(tiers["core"] / "hello.py", ECHO_ARGV)
        _handler_module(write, tiers["shared"], "greet", "hello")
        registry = build_registry(settings, RoutineTable())
        assert registry.get("hello").tier is SourceTier.CORE_EMBEDDED
        assert len(registry.dropped) == 1

    def test_first_module_wins_within_tier(self, settings, tiers, write):
        _handler_module(write, tiers["shared"], "b_mod", "dup")
        _handler_module(write, tiers["shared"], "a_mod", "dup")
        registry = build_registry(settings, RoutineTable())
        assert registry.get("dup").module == "a_mod"

    def test_rejected_module_does_not_block_lower_tier(self, settings, tiers, write):
        write(tiers["override"] / "tool" / "module.yml", """\
            module_name: tool
            commands:
              tool:
                handler: missing.sh
        """)
        write(tiers["core"] / "tool.py", ECHO_ARGV)
        registry = build_registry(settings, RoutineTable())
        assert registry.get("tool").tier is SourceTier.CORE_EMBEDDED
        assert registry.rejection_for("tool") is None

    def test_rejection_is_local_to_its_module(self, settings, tiers, write):
        write(tiers["shared"] / "conflict" / "module.yml", """\
            module_name: conflict
            commands:
              both:
                handler: run.sh
                dispatcher: dispatch
        """)
        write(tiers["shared"] / "conflict" / "run.sh", "echo both\n")
        write(tiers["shared"] / "conflict" / "conflict.py", """\
            def dispatch(command_path, arguments):
                return 0
        """)
        write(tiers["shared"] / "good" / "module.yml", """\
            module_name: good
            commands:
              g1:
                handler: g1.sh
              g2:
                handler: g2.sh
        """)
        write(tiers["shared"] / "good" / "g1.sh", "echo g1\n")
        write(tiers["shared"] / "good" / "g2.sh", "echo g2\n")

        registry = build_registry(settings, RoutineTable())

        assert registry.names() == ["g1", "g2"]
        assert registry.rejection_for("both").kind is ManifestErrorKind.HANDLER_DISPATCHER_CONFLICT
        assert registry.rejection_for("g1") is None

"""
Tests for dispatch — argument passthrough, sub-routes, listings,
help and exit codes.
"""

import json
import sys

import pytest

from devbox.core.engine.dispatcher import Dispatcher, match_subcommand, split_command_path
from devbox.core.engine.registry import CommandRegistry
from devbox.core.engine.routines import Convention, RoutineTable
from devbox.core.engine.runner import run
from devbox.core.errors import CommandFailedError
from devbox.core.models.command import CommandDescriptor, CommandKind, Mode, SourceTier

from tests.helpers import ECHO_ARGV

PASSTHROUGH = ["a", "--flag", "b"]

DISPATCH_ECHO = """\
import json


def route(command_path, arguments):
    print(json.dumps([command_path, arguments]))
    return 0
"""


def _last_json(out):
    return json.loads(out.strip().splitlines()[-1])


def _dispatcher_module(write, root, subcommands="[foo]"):
    write(root / "router" / "module.yml", f"""\
        module_name: router
        commands:
          route:
            dispatcher: route
            synopsis: Route things
            subcommands: {subcommands}
    """)
    write(root / "router" / "lib.py", DISPATCH_ECHO)


class TestPassthrough:
    """Trailing tokens reach every kind of target untouched."""

    def test_script(self, settings, tiers, write, capsys):
        write(tiers["core"] / "echo.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["echo", *PASSTHROUGH], settings) == 0
        assert _last_json(capsys.readouterr().out) == PASSTHROUGH

    def test_function(self, settings, tiers, capsys):
        seen = []
        table = RoutineTable()
        table.register(Mode.PROJECT, "echo", lambda args: seen.append(args))
        assert run(Mode.PROJECT, ["echo", *PASSTHROUGH], settings, table) == 0
        assert seen == [PASSTHROUGH]

    def test_manifest_handler(self, settings, tiers, write, capsys):
        write(tiers["shared"] / "h" / "module.yml", """\
            module_name: h
            commands:
              echo:
                handler: echo.py
        """)
        write(tiers["shared"] / "h" / "echo.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["echo", *PASSTHROUGH], settings) == 0
        assert _last_json(capsys.readouterr().out) == PASSTHROUGH

    def test_manifest_dispatcher(self, settings, tiers, write, capsys):
        _dispatcher_module(write, tiers["shared"])
        assert run(Mode.PROJECT, ["route", *PASSTHROUGH], settings) == 0
        assert _last_json(capsys.readouterr().out) == [["route"], PASSTHROUGH]

    def test_directory_subroute(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "one.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["pkg", "one", *PASSTHROUGH], settings) == 0
        assert _last_json(capsys.readouterr().out) == PASSTHROUGH

    def test_dotted_subroute(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "validate.state.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["pkg", "validate", "state", "--strict"], settings) == 0
        assert _last_json(capsys.readouterr().out) == ["--strict"]

    def test_function_subroute(self, settings, tiers):
        seen = []
        table = RoutineTable()
        table.register(Mode.PROJECT, "pkg validate state", lambda args: seen.append(args))
        assert run(Mode.PROJECT, ["pkg", "validate", "state", "x"], settings, table) == 0
        assert seen == [["x"]]


class TestCommandPath:
    """Manifest dispatchers get their declared routes in the command path."""

    def test_declared_route(self, settings, tiers, write, capsys):
        _dispatcher_module(write, tiers["shared"], "[foo]")
        run(Mode.PROJECT, ["route", "foo", "bar"], settings)
        assert _last_json(capsys.readouterr().out) == [["route", "foo"], ["bar"]]

    def test_undeclared_route(self, settings, tiers, write, capsys):
        _dispatcher_module(write, tiers["shared"], "[]")
        run(Mode.PROJECT, ["route", "foo", "bar"], settings)
        assert _last_json(capsys.readouterr().out) == [["route"], ["foo", "bar"]]

    def test_split_preserves_tokens(self):
        d = CommandDescriptor(
            name="route", kind=CommandKind.MANIFEST_DISPATCHER, target="k",
            tier=SourceTier.CORE_EMBEDDED, dispatch_routes=("foo",),
        )
        for tail in ([], ["foo"], ["foo", "bar"], ["bar", "foo"], ["--x", "foo"]):
            path, args = split_command_path(d, tail)
            assert path[1:] + args == tail

    def test_dispatcher_routine_convention(self, settings, tiers):
        seen = []
        table = RoutineTable()
        table.register(
            Mode.PROJECT, "route", lambda path, args: seen.append((path, args)),
            convention=Convention.PATH, dispatch_routes=["foo"],
        )
        run(Mode.PROJECT, ["route", "foo", "--x"], settings, table)
        assert seen == [(["route", "foo"], ["--x"])]


class TestSubcommandMatching:
    """Longest dotted prefix wins."""

    def test_longest_prefix(self):
        subs = {"validate": "a", "validate.state": "b"}
        assert match_subcommand(subs, ["validate", "state", "x"]) == ("validate.state", ["x"])
        assert match_subcommand(subs, ["validate", "other"]) == ("validate", ["other"])

    def test_no_match(self):
        assert match_subcommand({"install": "a"}, ["--help"]) == (None, ["--help"])


class TestListings:
    """Directory modules without a default list their sub-routes."""

    def test_listing(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "one.py", '"""First thing."""\n')
        write(tiers["core"] / "pkg" / "two.py", '"""Second thing."""\n')
        assert run(Mode.PROJECT, ["pkg"], settings) == 0
        out = capsys.readouterr().out
        assert "one" in out and "First thing." in out
        assert "two" in out and "Second thing." in out

    def test_unknown_subroute(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "one.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["pkg", "nope"], settings) == 1
        captured = capsys.readouterr()
        assert "nope" in captured.err
        assert "one" in captured.out

    def test_default_receives_unmatched_tokens(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "default.py", ECHO_ARGV)
        write(tiers["core"] / "pkg" / "one.py", "")
        assert run(Mode.PROJECT, ["pkg", "other", "--x"], settings) == 0
        assert _last_json(capsys.readouterr().out) == ["other", "--x"]


class TestHelpAndErrors:
    """Generic help, unknown names, failures and exit codes."""

    def test_no_command_prints_help(self, settings, tiers, write, capsys):
        write(tiers["core"] / "echo.py", ECHO_ARGV)
        assert run(Mode.PROJECT, [], settings) == 0
        out = capsys.readouterr().out
        assert "Usage: box <command>" in out
        assert "echo" in out

    def test_help_command(self, settings, tiers, write, capsys):
        write(tiers["core"] / "echo.py", ECHO_ARGV)
        assert run(Mode.PROJECT, ["help", "echo"], settings) == 0
        assert "Print the arguments as JSON." in capsys.readouterr().out

    def test_registered_help_wins(self, settings, tiers, write, capsys):
        write(tiers["core"] / "help.py", 'print("custom help")\n')
        assert run(Mode.PROJECT, ["help"], settings) == 0
        assert "custom help" in capsys.readouterr().out

    def test_module_help_routine(self, settings, tiers, write, capsys):
        write(tiers["shared"] / "m" / "module.yml", """\
            module_name: m
            help: m_help
            commands:
              thing:
                handler: thing.sh
        """)
        write(tiers["shared"] / "m" / "thing.sh", "echo thing\n")
        write(tiers["shared"] / "m" / "lib.py", """\
            def m_help(args):
                print("module help")
        """)
        assert run(Mode.PROJECT, ["help", "thing"], settings) == 0
        assert "module help" in capsys.readouterr().out

    def test_unknown_command(self, settings, tiers, capsys):
        assert run(Mode.PROJECT, ["nosuch"], settings) == 1
        captured = capsys.readouterr()
        assert "Unknown command: nosuch" in captured.err
        assert "Usage:" in captured.out

    def test_rejected_module_name(self, settings, tiers, write, capsys):
        write(tiers["shared"] / "broken" / "module.yml", """\
            module_name: broken
            commands:
              broken:
                handler: missing.sh
        """)
        assert run(Mode.PROJECT, ["broken"], settings) == 1
        assert "failed validation" in capsys.readouterr().err

    def test_exception_becomes_exit_1(self, settings, tiers, capsys):
        table = RoutineTable()

        def boom(args):
            raise RuntimeError("kaput")

        table.register(Mode.PROJECT, "boom", boom)
        assert run(Mode.PROJECT, ["boom"], settings, table) == 1
        assert "kaput" in capsys.readouterr().err

    def test_script_exit_code(self, settings, tiers, write):
        write(tiers["core"] / "fail.py", "import sys\nsys.exit(3)\n")
        assert run(Mode.PROJECT, ["fail"], settings) == 3

    def test_return_value_exit_code(self, settings, tiers):
        table = RoutineTable()
        table.register(Mode.PROJECT, "four", lambda args: 4)
        assert run(Mode.PROJECT, ["four"], settings, table) == 4

    def test_shell_script_exit_code(self, settings, tiers, write):
        write(tiers["core"] / "five.sh", "exit 5\n")
        assert run(Mode.PROJECT, ["five"], settings) == 5

    def test_unregistered_parent_subroute_fails(self):
        dispatcher = Dispatcher(CommandRegistry(), RoutineTable(), Mode.PROJECT)
        ghost = CommandDescriptor(
            name="ghost", kind=CommandKind.FUNCTION, target="project:ghost",
            tier=SourceTier.CORE_EMBEDDED, source="x", subcommands={"one": "project:ghost one"},
        )
        with pytest.raises(CommandFailedError, match="ghost one"):
            dispatcher.invoke(ghost, ["one"])


class TestScriptImports:
    """Python scripts import their neighbours like ``python script.py``."""

    HELPER_USER = """\
        from helper_for_box import VALUE

        print(VALUE)
    """

    def test_sibling_module_importable(self, settings, tiers, write, capsys):
        write(tiers["override"] / "helper_for_box.py", "VALUE = 'from sibling'\n")
        write(tiers["override"] / "uses.py", self.HELPER_USER)
        before = list(sys.path)

        assert run(Mode.PROJECT, ["uses"], settings) == 0
        assert "from sibling" in capsys.readouterr().out
        assert sys.path == before
        sys.modules.pop("helper_for_box", None)

    def test_directory_script_sibling(self, settings, tiers, write, capsys):
        write(tiers["core"] / "pkg" / "_shared.py", "VALUE = 'shared'\n")
        write(tiers["core"] / "pkg" / "show.py", "from _shared import VALUE\nprint(VALUE)\n")

        assert run(Mode.PROJECT, ["pkg", "show"], settings) == 0
        assert "shared" in capsys.readouterr().out
        sys.modules.pop("_shared", None)

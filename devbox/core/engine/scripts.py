"""
Script execution — run a command file with its arguments verbatim.

Python scripts run in-process as ``__main__`` (same interpreter, same
logging, exceptions reach the dispatcher boundary).  Anything else runs
as a child process with inherited stdio.

The same entry points serve on-disk files and bundled sources: a bundle
carries the script text, so ``source`` may be given instead of read.
"""

from __future__ import annotations

import ast
import builtins
import logging
import os
import shutil
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

PYTHON_SUFFIX = ".py"
SHELL_SUFFIXES = (".sh",)
SCRIPT_SUFFIXES = (PYTHON_SUFFIX, *SHELL_SUFFIXES)


def is_script(path: Path) -> bool:
    """Whether a file counts as a command script."""
    if not path.is_file():
        return False
    if path.suffix in SCRIPT_SUFFIXES:
        return True
    return path.suffix == "" and os.access(path, os.X_OK)


def script_name(path: Path | str) -> str:
    """Command name of a script file: its filename minus the script suffix."""
    name = Path(path).name
    for suffix in SCRIPT_SUFFIXES:
        if name.endswith(suffix):
            return name[: -len(suffix)]
    return name


def exit_code(code: object) -> int:
    """Normalize a return value or ``SystemExit.code`` to an exit status."""
    if code is None or code is True:
        return 0
    if code is False:
        return 1
    if isinstance(code, int):
        return code
    print(code, file=sys.stderr)
    return 1


def run_python(path: str, args: Sequence[str], source: str | None = None) -> int:
    """Execute Python source as ``__main__`` with ``sys.argv = [path, *args]``.

    A script that exists on disk also gets its own directory at the
    front of ``sys.path``, as ``python path`` would give it.
    """
    if source is None:
        source = Path(path).read_text(encoding="utf-8")

    code = compile(source, path, "exec")
    namespace = {
        "__name__": "__main__",
        "__file__": path,
        "__builtins__": builtins,
    }

    saved_argv, saved_path = sys.argv, sys.path[:]
    sys.argv = [path, *args]
    if Path(path).is_file():
        sys.path.insert(0, str(Path(path).resolve().parent))
    try:
        exec(code, namespace)
    except SystemExit as e:
        return exit_code(e.code)
    finally:
        sys.argv = saved_argv
        sys.path[:] = saved_path
    return 0


def run_external(path: str, args: Sequence[str], source: str | None = None) -> int:
    """Run a non-Python script as a child process.

    Shell scripts without an on-disk file (bundled) are fed to ``sh -c``
    with ``$0`` set to their original path.
    """
    if source is not None:
        cmd = [_shell(), "-c", source, path, *args]
    elif path.endswith(SHELL_SUFFIXES) and not os.access(path, os.X_OK):
        cmd = [_shell(), path, *args]
    else:
        cmd = [path, *args]

    logger.debug("Executing: %s", cmd[:1] + [path])
    result = subprocess.run(cmd, check=False)
    return result.returncode


def run_script(path: str, args: Sequence[str], source: str | None = None) -> int:
    """Invoke a command script, dispatching on its type."""
    if path.endswith(PYTHON_SUFFIX):
        return run_python(path, args, source)
    return run_external(path, args, source)


class ScriptRoutine:
    """A script wrapped as an in-process routine (``routine(args)``).

    Used when a script has no ``ROUTINES`` of its own: the bundle still
    needs something callable to register for it.
    """

    def __init__(self, path: str, source: str | None = None):
        self.path = path
        self.source = source
        self.__name__ = f"script:{script_name(path)}"
        text = source if source is not None else _read_text(Path(path))
        self.__doc__ = synopsis_from_text(text, Path(path).suffix)

    def __call__(self, args: Sequence[str]) -> int:
        return run_script(self.path, list(args), self.source)

    def __repr__(self) -> str:
        return f"<ScriptRoutine {self.path}>"


def _shell() -> str:
    return shutil.which("sh") or "/bin/sh"


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError):
        return ""


def read_synopsis(path: Path) -> str:
    """First line of a script's docstring or leading comment block."""
    return synopsis_from_text(_read_text(path), path.suffix)


def synopsis_from_text(text: str, suffix: str) -> str:
    if suffix == PYTHON_SUFFIX:
        try:
            doc = ast.get_docstring(ast.parse(text))
        except SyntaxError:
            return ""
        return doc.strip().splitlines()[0] if doc else ""

    for line in text.splitlines()[:10]:
        if line.startswith("#!"):
            continue
        if line.startswith("#"):
            return line.lstrip("# ").strip()
        if line.strip():
            break
    return ""


def invoke_click(command: Any, args: Sequence[str], prog_name: str) -> int:
    """Run a click command on ``args`` and return its exit status.

    Built-in command files use click for their own options; this keeps
    click's ``sys.exit`` from ending the whole process.
    """
    try:
        command.main(args=list(args), prog_name=prog_name, standalone_mode=True)
    except SystemExit as e:
        return exit_code(e.code)
    return 0

"""`lldb-copilot`: start LLDB with the copilot commands already loaded.

The directory holding the `lldbcopilot` package is put at the front of
PYTHONPATH so LLDB's embedded interpreter can import it, and the plugin is
imported with a startup `-o` command.

Usage:
  lldb-copilot [--no-preload] [--lldb PATH] [--] <lldb-args...>

Examples:
  lldb-copilot -- ./crash -c core.1234
  lldb-copilot --lldb lldb-18 ./crash
"""
from __future__ import annotations

import argparse
import os
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Tuple

PLUGIN_MODULE = "lldbcopilot.plugins.lldb.copilot_cmd"

# Package root as seen from this file: <root>/lldbcopilot/lldbwrap.py
PACKAGE_ROOT = Path(__file__).resolve().parent.parent


def split_args(argv: List[str]) -> Tuple[List[str], List[str]]:
    """Separate wrapper options from arguments meant for lldb.

    Everything after ``--`` belongs to lldb. Without ``--`` only the wrapper's
    own options are picked out and the rest keeps its order.
    """
    if "--" in argv:
        idx = argv.index("--")
        return argv[:idx], argv[idx + 1 :]
    ours: List[str] = []
    rest: List[str] = []
    args = iter(argv)
    for arg in args:
        if arg in ("--no-preload", "--help") or arg.startswith("--lldb="):
            ours.append(arg)
        elif arg == "--lldb":
            ours += [arg, next(args, "lldb")]
        else:
            rest.append(arg)
    return ours, rest


def build_command(lldb_args: List[str], preload: bool = True, lldb_path: str = "lldb") -> List[str]:
    extra = ["-o", f"command script import {PLUGIN_MODULE}"] if preload else []
    return [lldb_path, *extra, *lldb_args]


def launch_env(base: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    env = dict(os.environ if base is None else base)
    paths = [str(PACKAGE_ROOT)]
    if env.get("PYTHONPATH"):
        paths.append(env["PYTHONPATH"])
    env["PYTHONPATH"] = os.pathsep.join(paths)
    env.setdefault("PYTHONIOENCODING", "utf-8")
    return env


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lldb-copilot",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--no-preload", action="store_true", help="Do not import the copilot plugin on startup")
    parser.add_argument("--lldb", default="lldb", help="Path to the lldb executable")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    ours, lldb_args = split_args(list(sys.argv[1:] if argv is None else argv))
    ns = _build_parser().parse_args(ours)
    cmd = build_command(lldb_args, preload=not ns.no_preload, lldb_path=ns.lldb)
    try:
        return subprocess.call(cmd, env=launch_env())
    except FileNotFoundError:
        print(f"[lldb-copilot] '{ns.lldb}' not found on PATH", file=sys.stderr)
        return 127


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())

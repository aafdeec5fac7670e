"""`lldb-copilot-plugin-path`: locate the LLDB plugin file.

Prints the plugin's absolute path, or with ``--import`` the complete
``command script import`` line to paste into LLDB or ``~/.lldbinit``.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Optional


def get_plugin_path() -> str:
    return str(Path(__file__).resolve().parent / "plugins" / "lldb" / "copilot_cmd.py")


def lldbinit_line(path: Optional[str] = None) -> str:
    return f'command script import "{path or get_plugin_path()}"'


def print_plugin_path(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="lldb-copilot-plugin-path", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--import",
        dest="as_import",
        action="store_true",
        help="Print an LLDB 'command script import' line instead of the bare path",
    )
    ns = parser.parse_args(argv)
    print(lldbinit_line() if ns.as_import else get_plugin_path())
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(print_plugin_path())

"""Command line entry: run a program in a headless terminal and show its screen."""

from __future__ import annotations

import argparse
import re
import sys
from typing import Optional, Sequence

from stterm.terminal import Config, Terminal
from stterm.tty import Tty

__all__ = ["main"]

VERSION = "0.8.4"

_GEOMETRY = re.compile(r"^(\d+)x(\d+)$")


def _geometry(text: str) -> tuple[int, int]:
    match = _GEOMETRY.match(text)
    if not match:
        raise argparse.ArgumentTypeError(f"invalid geometry: {text!r}")
    cols, rows = int(match.group(1)), int(match.group(2))
    if cols < 1 or rows < 1:
        raise argparse.ArgumentTypeError(f"invalid geometry: {text!r}")
    return cols, rows


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="stterm",
        description="Run a program in a terminal and print the final screen.",
    )
    parser.add_argument("-g", dest="geometry", type=_geometry, default=(80, 24),
                        help="grid size as COLSxROWS")
    parser.add_argument("-l", dest="line", help="use a serial line instead of a pty")
    parser.add_argument("-o", dest="output", help="write printed output to a file")
    parser.add_argument("-v", dest="version", action="store_true",
                        help="print the version and exit")
    parser.add_argument("-e", dest="command", nargs=argparse.REMAINDER,
                        help="program and arguments to run")
    parser.add_argument("args", nargs=argparse.REMAINDER,
                        help="program and arguments to run (or stty arguments with -l)")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    options = _parser().parse_args(argv)
    if options.version:
        print(f"stterm {VERSION}")
        return 0

    cols, rows = options.geometry
    config = Config()
    terminal = Terminal(cols, rows, config=config)
    command = options.command or options.args or None

    status = 0
    with Tty(terminal) as tty:
        try:
            tty.open(options.line, config.shell, options.output, command)
            tty.resize(0, 0)
            while True:
                tty.read()
        except EOFError:
            pass
        except (ChildProcessError, OSError, ValueError) as exc:
            print(exc, file=sys.stderr)
            status = 1
    sys.stdout.write(terminal.text())
    return status


if __name__ == "__main__":
    sys.exit(main())
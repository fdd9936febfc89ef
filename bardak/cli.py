"""Command line tool: load .pan definitions, dump .bmsg files, write headers."""

from __future__ import annotations

import errno
import getopt
import os
import stat
import sys
from pathlib import Path
from typing import TextIO

from .codegen import DEFAULT_INCPATH, generate_header
from .dump import RED, RST, bin_dump, bin_dump_short
from .protocol import PanSyntaxError, Protocol, Side

_HEADER_EXTS = (".h", ".hpp")


def help_text(exec_name: str) -> str:
    """The usage message."""
    return "\n".join(
        [
            "",
            f"Usage: {exec_name} [OPTIONS]... [FILES]...",
            "Parse binmsg & textmsg dumps, generate headers",
            "",
            "Action is determined by filetype:",
            "    dir       will search for .pan files there",
            "    .pan      protocol definitions will be loaded",
            "    .bmsg     binmsg dump will be processed and dumped",
            "    .h, .hpp  will write header with all currently loaded message types",
            "",
            "Options are:",
            "    -h        Prints this help message",
            "    -c        .bmsg dumps are assumed to be from client",
            "    -s        .bmsg dumps are assumed to be from server",
            "    -i INC    .h files will include that file for macros",
            "    -l        Single-line dump outputs",
            "",
            "",
        ]
    )


def _log(out: TextIO, text: str) -> None:
    out.write(" -> " + text.replace("\n", "\n    ") + "\n")


def _write_header(path: str, protocol: Protocol, incpath: str, out: TextIO) -> None:
    out.write(f"Writting header to {path}\n")
    try:
        with open(path, "w", encoding="utf-8") as output:
            generate_header(protocol, output, incpath)
    except OSError as err:
        sys.stderr.write(f"Failed to open header for writting: {err.strerror}\n")
    except ValueError as err:
        out.write(f"[x] Failed to write header: {err}\n")


def _load_pan(path: str, protocol: Protocol, out: TextIO) -> None:
    out.write(f"Loading defs from {path}\n")
    try:
        protocol.load_defs_from_file(path)
    except PanSyntaxError as err:
        _log(out, f"{RED}{err}{RST}")
        out.write(f"[x] Failed to load defs: {os.strerror(errno.EINVAL)}\n")
    except OSError as err:
        out.write(f"[x] Failed to load defs: {err.strerror}\n")
    else:
        out.write("Defs loaded\n")


def _dump_bmsg(path: str, protocol: Protocol, side: Side, oneline: bool, out: TextIO) -> None:
    out.write(f"Dumping binmsg from {path}\n")
    try:
        data = Path(path).read_bytes()
    except OSError as err:
        out.write(f"[x] Failed to read bmsg file: {err.strerror}\n")
        return
    out.write("\n")
    dump = bin_dump_short if oneline else bin_dump
    pos = 0
    while pos < len(data):
        text, used = dump(protocol, side, data[pos:], True)
        _log(out, text)
        if used <= 0:
            break
        pos += used


def process(
    path: str,
    protocol: Protocol,
    side: Side = Side.CLIENT,
    incpath: str = DEFAULT_INCPATH,
    oneline: bool = False,
    out: TextIO | None = None,
) -> None:
    """Handle one command line file according to its type and extension."""
    out = sys.stdout if out is None else out
    path = str(path)
    is_header = path.endswith(_HEADER_EXTS)
    try:
        mode = os.stat(path).st_mode
    except FileNotFoundError:
        if is_header:
            _write_header(path, protocol, incpath, out)
        else:
            out.write(f"[x] Failed to stat {path}: {os.strerror(errno.ENOENT)}\n")
        return
    except OSError as err:
        out.write(f"[x] Failed to stat {path}: {err.strerror}\n")
        return

    if stat.S_ISDIR(mode):
        return
    if not stat.S_ISREG(mode):
        out.write(f"[x] File {path} is of unknown type\n")
    elif path.endswith(".pan"):
        _load_pan(path, protocol, out)
    elif path.endswith(".bmsg"):
        _dump_bmsg(path, protocol, side, oneline, out)
    elif is_header:
        _write_header(path, protocol, incpath, out)
    else:
        out.write(f"[x] Program doesn't know what to do with {path}\n")


def main(argv: list[str] | None = None) -> int:
    """Run the tool on the given arguments (without the program name)."""
    exec_name = "pan"
    if argv is None:
        exec_name = os.path.basename(sys.argv[0]) or exec_name
        argv = sys.argv[1:]
    out = sys.stdout
    if not argv:
        out.write(help_text(exec_name))
        return 0

    try:
        opts, files = getopt.gnu_getopt(argv, "hcsli:")
    except getopt.GetoptError as err:
        out.write(f"Unknown argument `{err.opt}`!\n")
        out.write("Known arguments are: -h, -c, -s, -i INCPATH\n")
        return 1

    side = Side.CLIENT
    incpath = DEFAULT_INCPATH
    oneline = False
    for opt, value in opts:
        if opt == "-h":
            out.write(help_text(exec_name))
            return 0
        if opt == "-c":
            side = Side.CLIENT
        elif opt == "-s":
            side = Side.SERVER
        elif opt == "-i":
            incpath = value
        elif opt == "-l":
            oneline = True

    protocol = Protocol()
    for path in files:
        process(path, protocol, side, incpath, oneline, out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
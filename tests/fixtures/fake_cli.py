#!/usr/bin/env python3
"""Fake CLI for launcher tests.

Writes a few lines to stdout/stderr, optionally keeps running, and exits
with a chosen code. SIGTERM/SIGINT stop it early with 128 + signum.

Usage:
    python fake_cli.py [--out TEXT]... [--err TEXT]... [--duration SECONDS]
                       [--interval SECONDS] [--exit-code CODE]
                       [--print-env NAME]... [--print-cwd] [--ignore-term]
"""

from __future__ import annotations

import argparse
import os
import signal
import sys
import time
from typing import NoReturn

_should_stop = False
_exit_code = 0


def signal_handler(signum: int, frame) -> None:
    """Handle SIGINT/SIGTERM signals."""
    global _should_stop, _exit_code
    print(f"cancelled by {signal.Signals(signum).name}", flush=True)
    _should_stop = True
    _exit_code = 128 + signum


def main() -> NoReturn:
    """Main entry point."""
    global _exit_code

    parser = argparse.ArgumentParser(description="Fake CLI for testing")
    parser.add_argument("--out", action="append", default=[], help="Line for stdout")
    parser.add_argument("--err", action="append", default=[], help="Line for stderr")
    parser.add_argument("--duration", type=float, default=0.0, help="Duration in seconds")
    parser.add_argument("--interval", type=float, default=0.05, help="Interval between ticks")
    parser.add_argument("--exit-code", type=int, default=0, help="Exit code")
    parser.add_argument("--print-env", action="append", default=[], help="Print an env var")
    parser.add_argument("--print-cwd", action="store_true", help="Print working directory")
    parser.add_argument("--ignore-term", action="store_true", help="Ignore SIGTERM")
    parser.add_argument("args", nargs="*", help="Arguments echoed one per line")

    args = parser.parse_args()

    if args.ignore_term and hasattr(signal, "SIGTERM"):
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
    else:
        signal.signal(signal.SIGINT, signal_handler)
        signal.signal(signal.SIGTERM, signal_handler)

    for line in args.out:
        print(line, flush=True)
    for line in args.err:
        print(line, file=sys.stderr, flush=True)
    for name in args.print_env:
        print(f"{name}={os.environ.get(name, '<unset>')}", flush=True)
    if args.print_cwd:
        print(os.getcwd(), flush=True)
    for arg in args.args:
        print(f"arg:{arg}", flush=True)

    start_time = time.time()
    while not _should_stop and time.time() - start_time < args.duration:
        time.sleep(args.interval)

    if not _should_stop:
        _exit_code = args.exit_code

    sys.exit(_exit_code)


if __name__ == "__main__":
    main()

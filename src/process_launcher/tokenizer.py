"""Command-line splitting and rendering.

parse_arguments() turns a free-form command line into argument tokens using
the platform's conventions; render_command_line() produces the display string
recorded on each launched process.
"""

from __future__ import annotations

import shlex
import sys
from collections.abc import Sequence

from .errors import InvalidArgumentError

__all__ = [
    "parse_arguments",
    "render_command_line",
    "check_command_line",
]

IS_WINDOWS = sys.platform == "win32"


def check_command_line(command_line: str | None) -> None:
    """Reject a missing or empty command line."""
    if not command_line:
        raise InvalidArgumentError("Missing command line")


def parse_arguments(command_line: str | None, *, windows: bool = IS_WINDOWS) -> list[str]:
    """Split a command line into argument tokens.

    POSIX: shell-like splitting (quotes group, backslash escapes), no comments.
    Windows: MSVC runtime rules.

    Args:
        command_line: The command line to split
        windows: Use Windows splitting rules (defaults to the current platform)

    Returns:
        Argument tokens; empty for a whitespace-only string

    Raises:
        InvalidArgumentError: If the command line is empty or has an
            unterminated quote
    """
    check_command_line(command_line)

    if windows:
        return _split_windows(command_line)

    try:
        return shlex.split(command_line, comments=False, posix=True)
    except ValueError as e:
        raise InvalidArgumentError(f"Cannot parse command line: {e}") from e


def _split_windows(command_line: str) -> list[str]:
    args: list[str] = []
    buf: list[str] = []
    in_quotes = False
    has_token = False
    i = 0
    n = len(command_line)

    while i < n:
        ch = command_line[i]
        if ch == "\\":
            # Backslashes are literal unless they run into a double quote
            j = i
            while j < n and command_line[j] == "\\":
                j += 1
            count = j - i
            if j < n and command_line[j] == '"':
                buf.append("\\" * (count // 2))
                if count % 2:
                    buf.append('"')
                    j += 1
            else:
                buf.append("\\" * count)
            has_token = True
            i = j
            continue
        if ch == '"':
            if in_quotes and i + 1 < n and command_line[i + 1] == '"':
                buf.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            has_token = True
        elif ch in " \t\r\n" and not in_quotes:
            if has_token:
                args.append("".join(buf))
                buf = []
                has_token = False
        else:
            buf.append(ch)
            has_token = True
        i += 1

    if in_quotes:
        raise InvalidArgumentError("Cannot parse command line: No closing quotation")
    if has_token:
        args.append("".join(buf))
    return args


def render_command_line(command: Sequence[str]) -> str:
    """Render an argument sequence as a single display string.

    Each token is preceded by a space. Double quotes are escaped with a
    backslash and tokens containing a space are wrapped in double quotes.
    The result is for display only and is not meant to be parsed again.

    Example:
        >>> render_command_line(["echo", "hello world"])
        ' echo "hello world"'
    """
    parts: list[str] = []
    for token in command:
        escaped = token.replace('"', '\\"')
        if " " in token:
            parts.append(f' "{escaped}"')
        else:
            parts.append(f" {escaped}")
    return "".join(parts)

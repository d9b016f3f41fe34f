"""
Command-line argument codec.

Packs arbitrary text (JSON with quotes, paths ending in backslashes, multi-line
values) into a single double-quoted process argument and back.

``encode_arg`` prepares text for the quoted form; the platform argument parser
undoes the quote and backslash doubling; ``decode_arg`` restores line breaks
and brackets. ``split_command_line`` is that parser (Windows rules), so POSIX
workers receive exactly what a Windows worker would.

Every ``[`` in the text is doubled before the ``[SlashN]`` marker is inserted,
so a single ``[`` in an encoded argument always starts the marker and any
input text, the marker itself included, survives the round trip.
"""

import os
import re
from typing import List, Optional, Sequence

from .errors import EncodingError

ESCAPED_SLASH_N = "[SlashN]"
ESCAPED_BRACKET = "[["

_SLASHES_BEFORE_QUOTE = re.compile(r'\\+"')
_TRAILING_SLASHES = re.compile(r"\\+\Z")
_DECODE_TOKENS = re.compile("|".join([
    re.escape(ESCAPED_BRACKET),
    re.escape(ESCAPED_SLASH_N),
    re.escape("\\n"),
    re.escape("["),
]))


def encode_arg(text: str, newline: Optional[str] = None) -> str:
    """
    Encode text so it survives as one double-quoted command-line argument.

    Args:
        text: Raw argument text
        newline: Line separator to fold (defaults to ``os.linesep``)

    Returns:
        Encoded text, without the surrounding quotes
    """
    newline = os.linesep if newline is None else newline

    result = _encode_newlines(text, newline)
    result = _encode_slashes_before_quotes(result)
    result = result.replace('"', '""')
    result = _encode_trailing_slashes(result)
    return result


def decode_arg(text: str, newline: Optional[str] = None) -> str:
    """Restore line breaks and brackets in an argument received from the command line."""
    newline = os.linesep if newline is None else newline

    def restore(match: re.Match) -> str:
        token = match.group(0)
        if token == ESCAPED_BRACKET:
            return "["
        if token == ESCAPED_SLASH_N:
            return "\\n"
        if token == "\\n":
            return newline
        raise EncodingError(f"Stray '[' at offset {match.start()} in encoded argument {text!r}")

    # One left-to-right pass; tokens never overlap
    return _DECODE_TOKENS.sub(restore, text)


def _encode_newlines(text: str, newline: str) -> str:
    # Brackets, then literal backslash-n, so neither reads as a marker or a folded line break
    result = text.replace("[", ESCAPED_BRACKET)
    result = result.replace("\\n", ESCAPED_SLASH_N)
    return result.replace(newline, "\\n")


def _encode_slashes_before_quotes(text: str) -> str:
    def double(match: re.Match) -> str:
        slashes = match.group(0)[:-1]
        return slashes + slashes + '"'

    return _SLASHES_BEFORE_QUOTE.sub(double, text)


def _encode_trailing_slashes(text: str) -> str:
    # An odd trailing run would escape the closing quote
    return _TRAILING_SLASHES.sub(lambda m: m.group(0) * 2, text)


def quote_arg(text: str, newline: Optional[str] = None) -> str:
    """Encode and wrap in double quotes."""
    return f'"{encode_arg(text, newline)}"'


def build_command_line(tokens: Sequence[str], newline: Optional[str] = None) -> str:
    """Join tokens into one command-line string, each encoded and quoted."""
    return " ".join(quote_arg(str(token), newline) for token in tokens)


def split_command_line(line: str) -> List[str]:
    """
    Split a command line the way the Windows C runtime builds argv.

    Rules:
        - whitespace outside quotes separates arguments
        - 2n backslashes + quote -> n backslashes, quote toggles quoting
        - 2n+1 backslashes + quote -> n backslashes + literal quote
        - backslashes not followed by a quote are literal
        - ``""`` inside quotes -> literal quote, quoting continues
    """
    args: List[str] = []
    buf: List[str] = []
    in_arg = False
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        c = line[i]

        if c == "\\":
            j = i
            while j < n and line[j] == "\\":
                j += 1
            count = j - i
            in_arg = True
            if j < n and line[j] == '"':
                buf.append("\\" * (count // 2))
                if count % 2:
                    buf.append('"')
                    i = j + 1
                else:
                    i = j
            else:
                buf.append("\\" * count)
                i = j
            continue

        if c == '"':
            in_arg = True
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                buf.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
            i += 1
            continue

        if c in " \t" and not in_quotes:
            if in_arg:
                args.append("".join(buf))
                buf = []
                in_arg = False
            i += 1
            continue

        buf.append(c)
        in_arg = True
        i += 1

    if in_arg:
        args.append("".join(buf))
    return args

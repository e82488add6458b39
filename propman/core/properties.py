"""Reader and writer for the line-oriented properties text format.

The format follows the conventions of ``.properties`` files:

- Natural lines end with ``\\n``, ``\\r`` or ``\\r\\n``
- A line ending in an odd number of backslashes continues on the next
  line; leading whitespace of the continuation is dropped
- Lines whose first non-blank character is ``#`` or ``!`` are comments
- The key ends at the first unescaped ``=``, ``:`` or whitespace; one
  separator and surrounding whitespace are skipped before the value
- Escapes: ``\\t``, ``\\n``, ``\\r``, ``\\f``, ``\\uXXXX``; a backslash
  before any other character yields that character
- Duplicate keys: the last occurrence wins

The writer escapes everything outside printable ASCII as ``\\uXXXX`` so
files stay valid in ISO-8859-1.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from datetime import datetime
from pathlib import Path

DEFAULT_ENCODING = "iso-8859-1"

_WHITESPACE = " \t\f"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")
_SEPARATORS = "=:"
_COMMENT_CHARS = "#!"
_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_WRITE_ESCAPES = {"\t": "\\t", "\n": "\\n", "\r": "\\r", "\f": "\\f", "\\": "\\\\"}


class PropertiesFormatError(ValueError):
    """Raised when properties text cannot be decoded."""

    def __init__(self, message: str, line: int):
        """Initialize with message and 1-based line number."""
        self.line = line
        super().__init__(f"Line {line}: {message}")


def _logical_lines(text: str) -> Iterator[tuple[int, str]]:
    """Yield (line number, logical line) pairs, joining continuations."""
    natural = _LINE_BREAK.split(text)
    if natural[-1] == "":
        natural.pop()
    index = 0
    while index < len(natural):
        number = index + 1
        line = natural[index].lstrip(_WHITESPACE)
        index += 1

        if not line or line[0] in _COMMENT_CHARS:
            continue

        parts = []
        while _continues(line):
            parts.append(line[:-1])
            if index >= len(natural):
                line = ""
                break
            line = natural[index].lstrip(_WHITESPACE)
            index += 1
        parts.append(line)

        yield number, "".join(parts)


def _continues(line: str) -> bool:
    trailing = len(line) - len(line.rstrip("\\"))
    return trailing % 2 == 1


def _split_key_value(line: str) -> tuple[str, str]:
    """Split a logical line at the first unescaped separator."""
    pos = 0
    length = len(line)
    while pos < length:
        char = line[pos]
        if char == "\\":
            pos += 2
            continue
        if char in _SEPARATORS or char in _WHITESPACE:
            break
        pos += 1

    key = line[:pos]
    rest = line[pos:].lstrip(_WHITESPACE)
    if rest and rest[0] in _SEPARATORS:
        rest = rest[1:].lstrip(_WHITESPACE)
    return key, rest


def _unescape(raw: str, line: int) -> str:
    out = []
    pos = 0
    length = len(raw)
    while pos < length:
        char = raw[pos]
        if char != "\\":
            out.append(char)
            pos += 1
            continue

        pos += 1
        if pos >= length:
            break
        char = raw[pos]
        if char == "u":
            digits = raw[pos + 1 : pos + 5]
            if len(digits) != 4 or any(
                d not in "0123456789abcdefABCDEF" for d in digits
            ):
                raise PropertiesFormatError(f"Malformed \\uXXXX escape: {digits!r}", line)
            out.append(chr(int(digits, 16)))
            pos += 5
        else:
            out.append(_ESCAPES.get(char, char))
            pos += 1
    return _join_surrogates("".join(out))


def _join_surrogates(text: str) -> str:
    """Combine UTF-16 surrogate pairs produced by ``\\uXXXX`` escapes."""
    if not any("\ud800" <= char <= "\udfff" for char in text):
        return text
    return text.encode("utf-16-le", "surrogatepass").decode(
        "utf-16-le", "surrogatepass"
    )


def loads(text: str) -> dict[str, str]:
    """Parse properties text into a dictionary."""
    properties: dict[str, str] = {}
    for number, line in _logical_lines(text):
        raw_key, raw_value = _split_key_value(line)
        properties[_unescape(raw_key, number)] = _unescape(raw_value, number)
    return properties


def load(path: Path | str, encoding: str = DEFAULT_ENCODING) -> dict[str, str]:
    """Read and parse a properties file."""
    with open(path, encoding=encoding, newline="") as f:
        return loads(f.read())


def _escape(text: str, is_key: bool) -> str:
    out = []
    for index, char in enumerate(text):
        if char in _WRITE_ESCAPES:
            out.append(_WRITE_ESCAPES[char])
        elif char == " " and (is_key or index == 0):
            out.append("\\ ")
        elif char in "=:#!":
            out.append("\\" + char)
        elif " " <= char <= "~":
            out.append(char)
        elif ord(char) > 0xFFFF:
            # Outside the BMP: write the UTF-16 surrogate pair
            encoded = char.encode("utf-16-be")
            high = int.from_bytes(encoded[:2], "big")
            low = int.from_bytes(encoded[2:], "big")
            out.append(f"\\u{high:04X}\\u{low:04X}")
        else:
            out.append(f"\\u{ord(char):04X}")
    return "".join(out)


def _comment_lines(comment: str) -> list[str]:
    return ["#" + _escape_comment(part) for part in comment.splitlines() or [""]]


def _escape_comment(text: str) -> str:
    return "".join(
        char if " " <= char <= "~" else f"\\u{ord(char):04X}" for char in text
    )


def dumps(
    properties: Mapping[str, str],
    comment: str | None = None,
    timestamp: datetime | None = None,
) -> str:
    """Serialize a mapping to properties text.

    Keys are written in sorted order. An optional comment and a timestamp
    line are written as a header.
    """
    lines = []
    if comment:
        lines.extend(_comment_lines(comment))
    lines.append("#" + (timestamp or datetime.now()).strftime("%a %b %d %H:%M:%S %Y"))

    for key in sorted(properties):
        lines.append(f"{_escape(key, True)}={_escape(properties[key], False)}")

    return "\n".join(lines) + "\n"

"""
Code codec: ``(key, number)`` to display code / filename and back.

Pure functions, no I/O and no shared state, so they are safe to call from any
thread without synchronisation.

Format::

    <level1><sep><level2>...<sep><zero-padded number>[ <free text>][.<ext>]

    format_code(key(DFT, GOV, REG), 7, "Minutes", "pdf", CodeFormat())
    -> "DFT-GOV-REG-007 Minutes.pdf"

Parsing reverses it: the extension is split off at the last ``.``, the rest
is split on the separator, the first ``level_count`` tokens are levels, the
next token starts with the sequence number and everything after it is free
text.

Guardrails:
    ❌ DON'T: Emit empty tokens for absent levels ("DFT--REG-007")
    ✅ DO: Omit absent levels entirely

    ❌ DON'T: Raise on the first malformed name of a bulk import
    ✅ DO: Use try_parse_code() and collect the reason per line

Tags:
    docseries, codec, format, parse, filenames
"""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from docseries.core.errors import MalformedCode
from docseries.core.keys import HierarchicalKey, clamp_level_count
from docseries.core.models import ParsedCode

_LEVEL_TOKEN = re.compile(r"^[A-Za-z0-9_-]+$")
_NUMBER_TOKEN = re.compile(r"^([0-9]+)(?:\s+(.*))?$", re.DOTALL)

# Largest document number; next_number = number + 1 must still fit a 32-bit column
MAX_NUMBER = 2**31 - 2


class CodeFormat(BaseModel):
    """Code layout read from project settings.

    ``level_count`` is clamped into ``[1, 6]`` rather than rejected so a stale
    settings row never makes every code unparseable.
    """

    model_config = ConfigDict(frozen=True)

    level_count: int = Field(default=3, description="Active taxonomy levels (1-6)")
    separator: str = Field(default="-", min_length=1)
    padding_length: int = Field(default=3, ge=1, description="Zero-padded digits")

    @field_validator("level_count")
    @classmethod
    def _clamp_level_count(cls, value: int) -> int:
        return clamp_level_count(value)


DEFAULT_FORMAT = CodeFormat()


def _normalize_extension(extension: str | None) -> str | None:
    if extension is None:
        return None
    ext = extension.strip().lstrip(".")
    return ext or None


def build_code(key: HierarchicalKey, number: int, fmt: CodeFormat = DEFAULT_FORMAT) -> str:
    """Return the bare code, e.g. ``DFT-GOV-REG-007``."""
    if number < 0:
        raise ValueError(f"Sequence numbers are non-negative, got {number}")
    parts = key.active_levels(fmt.level_count)
    parts.append(str(number).rjust(fmt.padding_length, "0"))
    return fmt.separator.join(parts)


def format_code(
    key: HierarchicalKey,
    number: int,
    free_text: str | None = "",
    extension: str | None = None,
    fmt: CodeFormat = DEFAULT_FORMAT,
) -> str:
    """Return the display filename for an allocated number.

    Non-blank ``free_text`` follows the code after a single space; a
    non-blank ``extension`` is appended with exactly one leading dot.
    """
    result = build_code(key, number, fmt)

    trimmed = (free_text or "").strip()
    if trimmed:
        result = f"{result} {trimmed}"

    ext = _normalize_extension(extension)
    if ext:
        result = f"{result}.{ext}"
    return result


def parse_code(raw: str, fmt: CodeFormat = DEFAULT_FORMAT, scope: int = 0) -> ParsedCode:
    """Decode a code or filename.

    Raises:
        MalformedCode: wrong token count, invalid level characters, or a
            sequence token that is not a number up to ``MAX_NUMBER``.
    """
    text = (raw or "").strip()
    if not text:
        raise MalformedCode(raw, "Empty name")

    name, extension = text, None
    last_dot = text.rfind(".")
    if last_dot > 0:
        name = text[:last_dot]
        extension = _normalize_extension(text[last_dot + 1 :])

    tokens = [token for token in name.split(fmt.separator) if token.strip()]
    level_count = fmt.level_count
    if len(tokens) < level_count + 1:
        raise MalformedCode(raw, f"Expected {level_count} level(s) and a number")

    levels = [token.strip() for token in tokens[:level_count]]
    for level in levels:
        if not _LEVEL_TOKEN.match(level):
            raise MalformedCode(raw, "Codes must be alphanumeric (A-Z, 0-9, _, -)")

    match = _NUMBER_TOKEN.match(tokens[level_count].strip())
    if match is None:
        raise MalformedCode(raw, "Number not numeric")
    digits = match.group(1).lstrip("0")
    # int() refuses very long digit strings, so compare widths first
    if len(digits) > len(str(MAX_NUMBER)) or int(digits or "0") > MAX_NUMBER:
        raise MalformedCode(raw, "Number out of range")
    number = int(digits or "0")

    free_parts = []
    if match.group(2):
        free_parts.append(match.group(2))
    rest = fmt.separator.join(tokens[level_count + 1 :])
    if rest:
        free_parts.append(rest)
    free_text = fmt.separator.join(free_parts).strip()

    return ParsedCode(
        key=HierarchicalKey.of(scope, *levels),
        number=number,
        trailing_free_text=free_text,
        extension=extension,
    )


def try_parse_code(
    raw: str, fmt: CodeFormat = DEFAULT_FORMAT, scope: int = 0
) -> tuple[ParsedCode | None, str]:
    """Like :func:`parse_code` but returns ``(None, reason)`` on failure."""
    try:
        return parse_code(raw, fmt, scope), ""
    except MalformedCode as e:
        return None, e.reason


__all__ = [
    "CodeFormat",
    "DEFAULT_FORMAT",
    "MAX_NUMBER",
    "build_code",
    "format_code",
    "parse_code",
    "try_parse_code",
]

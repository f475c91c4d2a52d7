"""Hierarchical series keys and their normalisation rules.

A key is a scope (project / tenant id) plus up to six taxonomy levels,
e.g. ``(1, "DFT", "GOV", "REG")``.  Levels are trimmed, missing levels are
stored as ``""`` (never ``None``), and two keys are equal when every level
matches case-insensitively within the same scope.

The :attr:`HierarchicalKey.normalized` string is the canonical lookup form.
It is what the series and document tables index on, so equivalent keys can
never produce two rows.

Tags:
    docseries, keys, normalisation, value-object
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from docseries.core.errors import InvalidConfig

MAX_LEVELS = 6

# ASCII unit separator; cannot appear in a valid level token
NORMALIZED_SEPARATOR = "\x1f"


def normalize_level(value: str | None) -> str:
    """Trim a level; absent levels become the empty string."""
    if value is None:
        return ""
    return value.strip()


def clamp_level_count(level_count: int) -> int:
    """Clamp a configured level count into ``[1, MAX_LEVELS]``."""
    return max(1, min(MAX_LEVELS, level_count))


@dataclass(frozen=True, slots=True, eq=False)
class HierarchicalKey:
    """Scope plus six normalised level strings.

    Construct with :meth:`of` for the common positional form::

        key = HierarchicalKey.of(1, "DFT", "GOV", "REG")
        key.levels      # ('DFT', 'GOV', 'REG', '', '', '')
        key.normalized  # 'dft\\x1fgov\\x1freg\\x1f\\x1f\\x1f'
    """

    scope: int
    levels: tuple[str, ...]

    def __post_init__(self) -> None:
        levels = tuple(normalize_level(level) for level in self.levels)
        if len(levels) > MAX_LEVELS:
            raise InvalidConfig(
                f"A series key has at most {MAX_LEVELS} levels, got {len(levels)}"
            )
        levels = levels + ("",) * (MAX_LEVELS - len(levels))
        if not any(levels):
            raise InvalidConfig("A series key needs at least one non-empty level")
        object.__setattr__(self, "levels", levels)

    @classmethod
    def of(cls, scope: int, *levels: str | None) -> HierarchicalKey:
        return cls(scope=scope, levels=tuple(normalize_level(level) for level in levels))

    @classmethod
    def from_row(cls, scope: int, values: Iterable[str | None]) -> HierarchicalKey:
        """Build a key from ``level1 .. level6`` column values."""
        return cls(scope=scope, levels=tuple(normalize_level(v) for v in values))

    @property
    def normalized(self) -> str:
        return NORMALIZED_SEPARATOR.join(level.lower() for level in self.levels)

    def level(self, index: int) -> str:
        """1-based level accessor."""
        return self.levels[index - 1]

    def active_levels(self, level_count: int = MAX_LEVELS) -> list[str]:
        """Non-empty levels within the first ``level_count`` positions."""
        return [level for level in self.levels[: clamp_level_count(level_count)] if level]

    def display(self, separator: str = "-") -> str:
        return separator.join(self.active_levels())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, HierarchicalKey):
            return NotImplemented
        return self.scope == other.scope and self.normalized == other.normalized

    def __hash__(self) -> int:
        return hash((self.scope, self.normalized))

    def __repr__(self) -> str:
        return f"HierarchicalKey(scope={self.scope}, key={self.display()!r})"


__all__ = [
    "MAX_LEVELS",
    "NORMALIZED_SEPARATOR",
    "HierarchicalKey",
    "clamp_level_count",
    "normalize_level",
]

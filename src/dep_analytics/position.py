"""
Position model shared by every manifest parser.

Positions found in source text are 1-based ``(line, column)`` pairs. Ranges
handed to editors follow the LSP convention and are 0-based.
"""

from dataclasses import dataclass
from typing import Any, Dict


@dataclass(frozen=True)
class Position:
    """A 1-based line/column location. ``(0, 0)`` is not an edit anchor."""

    line: int = 0
    column: int = 0

    @property
    def is_anchor(self) -> bool:
        return self.line > 0

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "column": self.column}


NO_POSITION = Position(0, 0)


@dataclass(frozen=True)
class PositionedString:
    """A name or version token anchored to its source location."""

    value: str
    position: Position = NO_POSITION

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "position": self.position.to_dict()}


@dataclass(frozen=True)
class RangePoint:
    """A 0-based editor location."""

    line: int
    character: int

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    """A 0-based ``[start, end)`` span of editor text."""

    start: RangePoint
    end: RangePoint

    @classmethod
    def from_coordinates(
        cls, start_line: int, start_character: int, end_line: int, end_character: int
    ) -> "Range":
        return cls(
            RangePoint(start_line, start_character),
            RangePoint(end_line, end_character),
        )

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class PositionedContext:
    """
    Edit template for a dependency without an explicit version.

    ``value`` holds the replacement text containing the version placeholder
    and ``range`` the text it replaces.
    """

    value: str
    range: Range

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "range": self.range.to_dict()}

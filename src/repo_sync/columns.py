"""
Column definitions for list and table views.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generic, Optional, TypeVar


T = TypeVar("T")

_WIDTH_EXPRESSION = re.compile(r"^\s*(\d*)\s*\*\s*$")


@dataclass(frozen=True)
class ColumnSelector(Generic[T]):
    """Extracts one column's text from an item, with a fixed or proportional width.

    ``width`` is a fixed number of characters. ``width_expression`` is a
    proportional width such as ``"*"`` or ``"2*"``, sharing the remaining space
    with other proportional columns.
    """

    header: str
    value_provider: Callable[[T], str]
    width: int = 0
    width_expression: Optional[str] = None

    def __post_init__(self) -> None:
        if self.width < 0:
            raise ValueError(f"Column width must not be negative: {self.width}")
        if self.width_expression is not None and not _WIDTH_EXPRESSION.match(self.width_expression):
            raise ValueError(f"Invalid width expression: {self.width_expression!r}")

    @classmethod
    def fixed(cls, header: str, value_provider: Callable[[T], str], width: int) -> ColumnSelector[T]:
        return cls(header, value_provider, width=width)

    @classmethod
    def proportional(
        cls, header: str, value_provider: Callable[[T], str], width_expression: str = "*"
    ) -> ColumnSelector[T]:
        return cls(header, value_provider, width_expression=width_expression)

    def get_value(self, item: T) -> str:
        return self.value_provider(item)

    @property
    def ratio(self) -> Optional[int]:
        """Share of the remaining width for proportional columns."""
        if self.width_expression is None:
            return None
        digits = _WIDTH_EXPRESSION.match(self.width_expression).group(1)
        return int(digits) if digits else 1

    def rich_column_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for ``rich.table.Table.add_column``."""
        kwargs: Dict[str, Any] = {"header": self.header, "no_wrap": True}
        if self.ratio is not None:
            kwargs["ratio"] = self.ratio
        elif self.width:
            kwargs["width"] = self.width
        return kwargs

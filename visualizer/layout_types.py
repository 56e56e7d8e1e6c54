"""Heap layout data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class LayoutRow:
    """Heap objects drawn side by side; ``row_key`` is fixed when the row is created."""

    row_key: str
    object_ids: tuple[int, ...] = ()


@dataclass(frozen=True)
class StepLayout:
    rows: tuple[LayoutRow, ...] = ()

    def all_ids(self) -> list[int]:
        return [object_id for row in self.rows for object_id in row.object_ids]

    def row_of(self, object_id: int) -> LayoutRow | None:
        return next((row for row in self.rows if object_id in row.object_ids), None)

    def position(self, object_id: int) -> tuple[int, int] | None:
        """(row index, column index) of *object_id*, or None if it is not laid out."""
        for r, row in enumerate(self.rows):
            if object_id in row.object_ids:
                return r, row.object_ids.index(object_id)
        return None

    def __contains__(self, object_id: object) -> bool:
        return any(object_id in row.object_ids for row in self.rows)

    @property
    def max_row_width(self) -> int:
        return max((len(row.object_ids) for row in self.rows), default=0)


EMPTY_LAYOUT = StepLayout()

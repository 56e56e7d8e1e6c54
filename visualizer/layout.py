"""Heap layout — stable, row-partitioned arrangement of heap objects across steps.

Each step's layout is derived from the previous step's layout so that objects
that survive keep their row (no jitter between steps). Objects that chain into
each other (list cells, structurally identical nodes) share a row; objects no
longer reachable from any root are dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .layout_types import EMPTY_LAYOUT, LayoutRow, StepLayout
from .precompute_types import VisualizerConfig
from .trace_types import (
    DictObject,
    ExecutionStep,
    HeapObject,
    InlineComposite,
    LinearKind,
    LinearObject,
    RecordKind,
    RecordObject,
    Reference,
    TraceInvariantError,
    Value,
)
from . import constants

logger = logging.getLogger(__name__)

_CHAINABLE_LINEAR = frozenset({LinearKind.LIST, LinearKind.TUPLE})


def structurally_equivalent(a: HeapObject | None, b: HeapObject | None) -> bool:
    """Whether *a* and *b* look like nodes of the same linked structure.

    Same variant and arity; lists and tuples need nothing more, dicts and
    instances must also share the same set of keys (order ignored). Every
    other kind is never equivalent. This is a layout heuristic, not an
    equality test.
    """
    if a is None or b is None or type(a) is not type(b):
        return False
    if isinstance(a, LinearObject):
        return a.kind == b.kind and a.kind in _CHAINABLE_LINEAR and len(a.items) == len(b.items)
    if isinstance(a, DictObject):
        return len(a.entries) == len(b.entries) and _keys(a.entries) == _keys(b.entries)
    if isinstance(a, RecordObject):
        return (
            a.kind == b.kind == RecordKind.INSTANCE
            and len(a.fields) == len(b.fields)
            and _keys(a.fields) == _keys(b.fields)
        )
    return False


def _keys(pairs: tuple[tuple[Value, Value], ...]) -> set[Value]:
    return {k for k, _ in pairs}


# ── Working state for one step ───────────────────────────────────


@dataclass
class _WorkingRow:
    row_key: str
    ids: list[int] = field(default_factory=list)


@dataclass
class _PendingRow:
    """Ids collected during one descent that have not been placed in a row yet."""

    row_key: str = ""
    ids: list[int] = field(default_factory=list)

    def push(self, object_id: int) -> None:
        if not self.ids:
            self.row_key = f"{constants.ROW_KEY_PREFIX}{object_id}"
        self.ids.append(object_id)

    def clear(self) -> None:
        self.row_key = ""
        self.ids.clear()


class _LayoutPass:
    """Lays out the heap of one step, starting from a copy of the previous layout."""

    def __init__(self, step: ExecutionStep, prev_layout: StepLayout, config: VisualizerConfig):
        self.step = step
        self.nesting_disabled = config.disable_heap_nesting
        self.strict = config.strict
        self.rows = [_WorkingRow(r.row_key, list(r.object_ids)) for r in prev_layout.rows]
        self.ids_to_remove = {object_id for row in self.rows for object_id in row.ids}
        self.visited: set[int] = set()

    def run(self) -> StepLayout:
        for _, value in self.step.ordered_global_values():
            self._insert_root(value)
        for frame in self.step.frames:
            for _, value in frame.ordered_locals():
                self._insert_root(value)

        if self.ids_to_remove:
            logger.debug(
                "Step %d: dropping unreachable objects %s",
                self.step.index,
                sorted(self.ids_to_remove),
            )
        rows = [
            LayoutRow(
                row_key=row.row_key,
                object_ids=tuple(i for i in row.ids if i not in self.ids_to_remove),
            )
            for row in self.rows
        ]
        return StepLayout(rows=tuple(row for row in rows if row.object_ids))

    # ── traversal ────────────────────────────────────────────────

    def _insert_root(self, value: Value) -> None:
        if isinstance(value, InlineComposite):
            self._insert_composite_children(value)
            return
        # REFs, and C pointers into the heap
        object_id = self.step.heap_ref(value)
        if object_id is not None:
            self._insert(object_id, None, _PendingRow())

    def _insert_composite_children(self, composite: InlineComposite) -> None:
        for child in composite.children():
            self._insert_root(child)

    def _find(self, object_id: int) -> tuple[_WorkingRow, int] | None:
        for row in self.rows:
            if object_id in row.ids:
                return row, row.ids.index(object_id)
        return None

    def _insert(self, object_id: int, cur_row: _WorkingRow | None, new_row: _PendingRow) -> None:
        if object_id in self.visited:
            return
        self.visited.add(object_id)

        if object_id not in self.step.heap:
            self._missing_object(object_id)
            return

        found = self._find(object_id)
        if found is not None:
            found_row, found_index = found
            self.ids_to_remove.discard(object_id)
            if new_row.ids:
                # splice the pending chain right before the object it leads into
                found_row.ids[found_index:found_index] = new_row.ids
                self.ids_to_remove.difference_update(new_row.ids)
                new_row.clear()
            self._recurse(object_id, found_row, _PendingRow())
            return

        new_row.push(object_id)
        self._recurse(object_id, cur_row, new_row)

        if new_row.ids:
            if cur_row is not None and cur_row.ids:
                cur_row.ids.extend(new_row.ids)
            else:
                logger.debug("Step %d: new row %s", self.step.index, new_row.row_key)
                self.rows.append(_WorkingRow(new_row.row_key, list(new_row.ids)))
            self.ids_to_remove.difference_update(new_row.ids)
            new_row.clear()

    def _recurse(self, object_id: int, cur_row: _WorkingRow | None, new_row: _PendingRow) -> None:
        obj = self.step.heap[object_id]

        if isinstance(obj, LinearObject) and obj.kind != LinearKind.ARRAY:
            for child in obj.items:
                if isinstance(child, Reference):
                    if self.nesting_disabled:
                        self._insert(child.object_id, None, _PendingRow())
                    else:
                        self._insert(child.object_id, cur_row, new_row)
            return

        if isinstance(obj, DictObject) or (
            isinstance(obj, RecordObject) and obj.kind != RecordKind.STRUCT
        ):
            pairs = obj.entries if isinstance(obj, DictObject) else obj.fields
            for key, child in pairs:
                if self.nesting_disabled and isinstance(key, Reference):
                    self._insert(key.object_id, None, _PendingRow())
                if not isinstance(child, Reference):
                    continue
                if structurally_equivalent(obj, self.step.heap.get(child.object_id)):
                    self._insert(child.object_id, cur_row, new_row)
                elif self.nesting_disabled:
                    self._insert(child.object_id, None, _PendingRow())
            return

        # C arrays and structs boxed on the heap: every pointer gets its own row
        if isinstance(obj, LinearObject):
            children = obj.items
        elif isinstance(obj, RecordObject):
            children = tuple(v for _, v in obj.fields)
        else:
            return
        for child in children:
            self._insert_root(child)

    def _missing_object(self, object_id: int) -> None:
        message = f"Step {self.step.index}: reference to object {object_id} absent from heap"
        if self.strict:
            raise TraceInvariantError(message)
        logger.warning("%s; skipping it in the layout", message)


class LayoutEngine:
    """Computes each step's StepLayout from the previous one."""

    def __init__(self, config: VisualizerConfig | None = None):
        self.config = config or VisualizerConfig()

    def compute(self, prev_layout: StepLayout, step: ExecutionStep) -> StepLayout:
        return _LayoutPass(step, prev_layout, self.config).run()

    def compute_all(self, steps: list[ExecutionStep] | tuple[ExecutionStep, ...]) -> tuple[StepLayout, ...]:
        layouts: list[StepLayout] = []
        prev = EMPTY_LAYOUT
        for step in steps:
            prev = self.compute(prev, step)
            layouts.append(prev)
        logger.info(
            "Computed %d layouts (max %d rows)",
            len(layouts),
            max((len(layout.rows) for layout in layouts), default=0),
        )
        return tuple(layouts)

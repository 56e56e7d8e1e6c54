"""Reference graph and render model data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator


class EdgeKind(str, Enum):
    VALUE_POINTER = "value_pointer"  # variable slot -> heap object
    OBJECT_POINTER = "object_pointer"  # heap object slot -> heap object
    FRAME_PARENT = "frame_parent"  # frame -> enclosing frame or globals


@dataclass(frozen=True)
class ReferenceEdge:
    source_anchor: str
    target_anchor: str
    kind: EdgeKind
    target_object_id: int | None = None  # None for frame-parent edges


@dataclass(frozen=True)
class RenderedValue:
    """What occupies one cell: primitive text, an arrow source, or an object drawn in place."""

    text: str | None = None
    pointer_anchor: str | None = None
    nested: RenderedObject | None = None


@dataclass(frozen=True)
class RenderedSlot:
    label: str
    value: RenderedValue
    key: RenderedValue | None = None  # dict/record keys that are not plain names


@dataclass(frozen=True)
class RenderedObject:
    """One compound value expanded into full content.

    ``object_id`` and ``anchor`` are None for C structs and arrays embedded
    directly in a variable slot.
    """

    object_id: int | None
    anchor: str | None
    type_label: str
    slots: tuple[RenderedSlot, ...] = ()
    text: str = ""

    def walk(self) -> Iterator[RenderedObject]:
        """This object and every object expanded inside it, depth first."""
        yield self
        for slot in self.slots:
            for cell in (slot.key, slot.value):
                if cell is not None and cell.nested is not None:
                    yield from cell.nested.walk()


@dataclass(frozen=True)
class RenderedFrame:
    anchor: str
    label: str
    frame_id: int
    unique_hash: str
    slots: tuple[RenderedSlot, ...] = ()
    is_zombie: bool = False
    is_highlighted: bool = False


@dataclass(frozen=True)
class StepReferences:
    """Everything a renderer needs to draw one step, apart from the row layout."""

    value_to_heap: tuple[ReferenceEdge, ...] = ()
    heap_to_heap: tuple[ReferenceEdge, ...] = ()
    frame_parent: tuple[ReferenceEdge, ...] = ()
    objects: tuple[RenderedObject, ...] = ()  # top-level heap objects, in layout order
    globals_anchor: str = ""
    globals_slots: tuple[RenderedSlot, ...] = ()
    frames: tuple[RenderedFrame, ...] = ()
    highlighted_frame_anchor: str = ""

    def all_edges(self) -> tuple[ReferenceEdge, ...]:
        return self.value_to_heap + self.heap_to_heap + self.frame_parent

    def expanded_object_ids(self) -> list[int]:
        """Ids of every heap object expanded anywhere in this step, with repeats."""
        slot_groups = [self.globals_slots] + [f.slots for f in self.frames]
        roots = list(self.objects)
        for slots in slot_groups:
            roots.extend(s.value.nested for s in slots if s.value.nested is not None)
        return [
            obj.object_id
            for root in roots
            for obj in root.walk()
            if obj.object_id is not None
        ]

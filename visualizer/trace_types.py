"""Trace data types for step-by-step execution replay (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping, Union


class TraceInvariantError(Exception):
    """Raised in strict mode when a step violates a structural invariant of the trace."""

    pass


class EventKind(str, Enum):
    CALL = "call"
    RETURN = "return"
    LINE = "line"
    EXCEPTION = "exception"
    UNCAUGHT_EXCEPTION = "uncaught_exception"
    # Sentinels: only ever valid as the final step of a raw trace
    INSTRUCTION_LIMIT_REACHED = "instruction_limit_reached"
    RAW_INPUT = "raw_input"
    MOUSE_INPUT = "mouse_input"

    @property
    def is_error(self) -> bool:
        return self in (EventKind.EXCEPTION, EventKind.UNCAUGHT_EXCEPTION)


# ── Values ───────────────────────────────────────────────────────


class PrimitiveKind(str, Enum):
    NONE = "none"
    BOOL = "bool"
    NUMBER = "number"
    STRING = "string"
    SPECIAL_FLOAT = "special_float"
    OPAQUE_SCALAR = "opaque_scalar"


@dataclass(frozen=True)
class Primitive:
    """A scalar value rendered in place.

    ``tag`` keeps the backend's encoded tag for tagged scalars (e.g.
    ``SPECIAL_FLOAT``, ``C_DATA``, ``CHAR-LITERAL``) so that a dialect can
    render them; plain JSON scalars carry an empty tag. ``pointer_target`` is
    the address held by an initialised C pointer.
    """

    kind: PrimitiveKind
    value: Any = None
    tag: str = ""
    type_name: str = ""
    address: str = ""
    pointer_target: int | None = None


@dataclass(frozen=True)
class Reference:
    object_id: int


class CompositeKind(str, Enum):
    STRUCT = "struct"
    ARRAY = "array"


@dataclass(frozen=True)
class InlineComposite:
    """A struct or array embedded directly in a frame rather than boxed on the heap."""

    kind: CompositeKind
    address: str = ""
    type_name: str = ""
    fields: tuple[tuple[str, Value], ...] = ()
    elements: tuple[Value, ...] = ()

    def children(self) -> tuple[Value, ...]:
        if self.kind == CompositeKind.STRUCT:
            return tuple(v for _, v in self.fields)
        return self.elements


Value = Union[Primitive, Reference, InlineComposite]

NONE_VALUE = Primitive(kind=PrimitiveKind.NONE)


# ── Heap objects ─────────────────────────────────────────────────


class LinearKind(str, Enum):
    LIST = "list"
    TUPLE = "tuple"
    SET = "set"
    STACK = "stack"
    QUEUE = "queue"
    ARRAY = "array"


@dataclass(frozen=True)
class LinearObject:
    kind: LinearKind
    items: tuple[Value, ...] = ()


@dataclass(frozen=True)
class DictObject:
    entries: tuple[tuple[Value, Value], ...] = ()


class RecordKind(str, Enum):
    INSTANCE = "instance"
    CLASS = "class"
    STRUCT = "struct"


@dataclass(frozen=True)
class RecordObject:
    kind: RecordKind
    name: str
    superclasses: tuple[str, ...] = ()
    fields: tuple[tuple[Value, Value], ...] = ()


@dataclass(frozen=True)
class FunctionObject:
    name: str
    parent_frame_id: int | None = None
    source: str = ""  # JS functions carry their code text
    properties: tuple[tuple[str, Value], ...] = ()


@dataclass(frozen=True)
class OpaqueObject:
    type_name: str
    text: str = ""
    value: Primitive | None = None  # boxed primitives keep their scalar
    is_instance: bool = False


HeapObject = Union[LinearObject, DictObject, RecordObject, FunctionObject, OpaqueObject]


# ── Frames and steps ─────────────────────────────────────────────


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class Frame:
    """One stack frame as captured at a step.

    ``unique_hash`` is the stable diffing key across steps: recursion and
    closures can reuse ``func_name`` and even ``frame_id`` across calls.
    """

    func_name: str
    frame_id: int
    unique_hash: str
    parent_frame_ids: tuple[int, ...] = ()
    ordered_varnames: tuple[str, ...] = ()
    local_vars: Mapping[str, Value] = field(default_factory=_empty_mapping)
    is_zombie: bool = False
    is_highlighted: bool = False
    is_parent: bool = False

    def ordered_locals(self) -> list[tuple[str, Value]]:
        return [
            (name, self.local_vars[name])
            for name in self.ordered_varnames
            if name in self.local_vars
        ]


@dataclass(frozen=True)
class ExecutionStep:
    index: int
    event: EventKind
    line: int | None = None
    func_name: str = ""
    global_vars: Mapping[str, Value] = field(default_factory=_empty_mapping)
    ordered_globals: tuple[str, ...] = ()
    frames: tuple[Frame, ...] = ()
    heap: Mapping[int, HeapObject] = field(default_factory=_empty_mapping)
    stdout: str | None = None
    exception_msg: str | None = None
    prompt: str | None = None

    def ordered_global_values(self) -> list[tuple[str, Value]]:
        """Globals in declaration order, skipping names not yet bound at this step."""
        return [
            (name, self.global_vars[name])
            for name in self.ordered_globals
            if name in self.global_vars
        ]

    def heap_ref(self, value: Value) -> int | None:
        """Heap id that *value* points at, or None.

        A ``REF`` always names a heap id. A C pointer counts only when the
        address it holds is a key of this step's heap; pointers into the
        stack or globals are plain scalars.
        """
        if isinstance(value, Reference):
            return value.object_id
        if isinstance(value, Primitive) and value.pointer_target in self.heap:
            return value.pointer_target
        return None

    @property
    def top_frame(self) -> Frame | None:
        return self.frames[-1] if self.frames else None

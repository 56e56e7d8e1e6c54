"""Shared trace-building helpers for the visualizer unit tests."""

from types import MappingProxyType

from visualizer.dialects import get_dialect
from visualizer.trace_decoder import decode_trace
from visualizer.trace_types import (
    EventKind,
    ExecutionStep,
    Frame,
    HeapObject,
    LinearKind,
    LinearObject,
    Primitive,
    PrimitiveKind,
    RecordKind,
    RecordObject,
    Value,
)


# ── Raw (backend-shaped) records ─────────────────────────────────


def ref(object_id: int) -> list:
    return ["REF", object_id]


def raw_frame(
    func_name: str,
    frame_id: int,
    local_vars: dict | None = None,
    parents: list[int] | None = None,
    highlighted: bool = False,
    zombie: bool = False,
    is_parent: bool = False,
) -> dict:
    local_vars = local_vars or {}
    return {
        "func_name": func_name,
        "frame_id": frame_id,
        "unique_hash": f"{func_name}_f{frame_id}",
        "parent_frame_id_list": parents or [],
        "ordered_varnames": list(local_vars),
        "encoded_locals": local_vars,
        "is_zombie": zombie,
        "is_highlighted": highlighted,
        "is_parent": is_parent,
    }


def raw_step(
    event: str = "line",
    line: int = 1,
    globals_: dict | None = None,
    frames: list[dict] | None = None,
    heap: dict | None = None,
    stdout: str = "",
    exception_msg: str | None = None,
) -> dict:
    """A raw step record; heap keys become strings, as they arrive from JSON."""
    globals_ = globals_ or {}
    step = {
        "event": event,
        "line": line,
        "func_name": "<module>",
        "globals": globals_,
        "ordered_globals": list(globals_),
        "stack_to_render": frames or [],
        "heap": {str(k): v for k, v in (heap or {}).items()},
        "stdout": stdout,
    }
    if exception_msg is not None:
        step["exception_msg"] = exception_msg
    return step


def line_trace(lines: list[int]) -> list[dict]:
    """A trace with one plain ``line`` step per entry of *lines*."""
    return [raw_step(line=line) for line in lines]


def decode(raw_steps: list[dict], language: str = "python") -> list[ExecutionStep]:
    return decode_trace(raw_steps, get_dialect(language))


# ── Decoded model values ─────────────────────────────────────────


def text(s: str) -> Primitive:
    return Primitive(kind=PrimitiveKind.STRING, value=s)


def number(n) -> Primitive:
    return Primitive(kind=PrimitiveKind.NUMBER, value=n)


def instance(name: str, **fields: Value) -> RecordObject:
    return RecordObject(
        kind=RecordKind.INSTANCE,
        name=name,
        fields=tuple((text(k), v) for k, v in fields.items()),
    )


def py_list(*items: Value) -> LinearObject:
    return LinearObject(kind=LinearKind.LIST, items=items)


def make_step(
    heap: dict[int, HeapObject] | None = None,
    index: int = 0,
    event: EventKind = EventKind.LINE,
    line: int = 1,
    frames: tuple[Frame, ...] = (),
    **global_vars: Value,
) -> ExecutionStep:
    """A decoded step whose globals are bound in keyword order."""
    return ExecutionStep(
        index=index,
        event=event,
        line=line,
        global_vars=MappingProxyType(dict(global_vars)),
        ordered_globals=tuple(global_vars),
        frames=frames,
        heap=MappingProxyType(dict(heap or {})),
    )


def make_frame(
    func_name: str,
    frame_id: int,
    parents: tuple[int, ...] = (),
    highlighted: bool = False,
    **local_vars: Value,
) -> Frame:
    return Frame(
        func_name=func_name,
        frame_id=frame_id,
        unique_hash=f"{func_name}_f{frame_id}",
        parent_frame_ids=parents,
        ordered_varnames=tuple(local_vars),
        local_vars=MappingProxyType(dict(local_vars)),
        is_highlighted=highlighted,
    )



def c_int(n: int, address: str = "0x7ff0") -> Primitive:
    return Primitive(
        kind=PrimitiveKind.OPAQUE_SCALAR, value=n, tag="C_DATA", type_name="int", address=address
    )


def c_pointer(target: int, address: str = "0x7ff0") -> Primitive:
    """An initialised C pointer holding *target*."""
    return Primitive(
        kind=PrimitiveKind.OPAQUE_SCALAR,
        value=target,
        tag="C_DATA",
        type_name="pointer",
        address=address,
        pointer_target=target,
    )


def c_array(*items: Value) -> LinearObject:
    return LinearObject(kind=LinearKind.ARRAY, items=items)

"""Trace decoder — validates raw backend step records and decodes tagged values."""

from __future__ import annotations

import logging
from types import MappingProxyType
from typing import Any

from pydantic import BaseModel, ValidationError

from .dialects import ValueDialect
from .trace_types import (
    NONE_VALUE,
    CompositeKind,
    DictObject,
    EventKind,
    ExecutionStep,
    Frame,
    FunctionObject,
    HeapObject,
    InlineComposite,
    LinearKind,
    LinearObject,
    OpaqueObject,
    Primitive,
    PrimitiveKind,
    RecordKind,
    RecordObject,
    Reference,
    Value,
)
from . import constants

logger = logging.getLogger(__name__)


class TraceDecodeError(Exception):
    """Raised when a raw trace record cannot be decoded into the step model."""

    pass


# ── Raw envelope schema (backend output) ────────────────────────


class RawFrame(BaseModel):
    func_name: str
    frame_id: int
    unique_hash: str = ""
    parent_frame_id_list: list[int] = []
    ordered_varnames: list[str] = []
    encoded_locals: dict[str, Any] = {}
    is_zombie: bool = False
    is_highlighted: bool = False
    is_parent: bool = False


class RawStep(BaseModel):
    event: str
    line: int | None = None
    func_name: str = ""
    globals: dict[str, Any] = {}
    ordered_globals: list[str] = []
    stack_to_render: list[RawFrame] = []
    heap: dict[int | str, Any] = {}  # C backends key the heap by address strings
    stdout: str | None = None
    exception_msg: str | None = None
    prompt: str | None = None


# ── Values ───────────────────────────────────────────────────────


def parse_heap_address(key: Any) -> int:
    """Heap key as an int: object ids pass through, C addresses may be decimal or ``0x`` hex."""
    address = _parse_address(key)
    if address is None:
        raise TraceDecodeError(f"Heap key is neither an object id nor an address: {key!r}")
    return address


def _parse_address(raw: Any) -> int | None:
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    if isinstance(raw, str):
        text = raw.strip()
        try:
            if text.lower().startswith("0x"):
                return int(text, 16)
            return int(text)
        except ValueError:
            return None
    return None


def _tag_of(encoded: Any) -> str | None:
    if isinstance(encoded, list) and encoded and isinstance(encoded[0], str):
        return encoded[0]
    return None


def _pairs(items: list, what: str) -> list[tuple[Any, Any]]:
    pairs = []
    for item in items:
        if not isinstance(item, list) or len(item) != 2:
            raise TraceDecodeError(f"Expected a [key, value] pair in {what}, got {item!r}")
        pairs.append((item[0], item[1]))
    return pairs


def decode_value(encoded: Any, dialect: ValueDialect) -> Value:
    """Decode one encoded slot value (a global, a local, or a container element)."""
    if encoded is None:
        return NONE_VALUE
    # bool before int: bool is an int subclass
    if isinstance(encoded, bool):
        return Primitive(kind=PrimitiveKind.BOOL, value=encoded)
    if isinstance(encoded, (int, float)):
        return Primitive(kind=PrimitiveKind.NUMBER, value=encoded)
    if isinstance(encoded, str):
        return Primitive(kind=PrimitiveKind.STRING, value=encoded)

    tag = _tag_of(encoded)
    if tag is None:
        raise TraceDecodeError(f"Unrecognised encoded value: {encoded!r}")

    if tag == constants.REF_TAG:
        if len(encoded) != 2 or isinstance(encoded[1], bool) or not isinstance(encoded[1], int):
            raise TraceDecodeError(f"Malformed reference: {encoded!r}")
        return Reference(object_id=encoded[1])

    if tag == constants.C_STRUCT_TAG:
        if len(encoded) < 3:
            raise TraceDecodeError(f"Malformed C struct: {encoded!r}")
        fields = tuple(
            (str(name), decode_value(v, dialect))
            for name, v in _pairs(encoded[3:], "C struct")
        )
        return InlineComposite(
            kind=CompositeKind.STRUCT,
            address=str(encoded[1]),
            type_name=str(encoded[2]),
            fields=fields,
        )

    if tag == constants.C_ARRAY_TAG:
        if len(encoded) < 2:
            raise TraceDecodeError(f"Malformed C array: {encoded!r}")
        return InlineComposite(
            kind=CompositeKind.ARRAY,
            address=str(encoded[1]),
            elements=tuple(decode_value(v, dialect) for v in encoded[2:]),
        )

    kind = dialect.classify_primitive(tag, encoded)
    if kind is None:
        raise TraceDecodeError(f"Unrecognised encoded value tag {tag!r}: {encoded!r}")
    if tag == constants.C_DATA_TAG:
        if len(encoded) != 4:
            raise TraceDecodeError(f"Malformed C data: {encoded!r}")
        type_name = str(encoded[2])
        pointer_target = None
        if type_name == constants.C_POINTER_TYPE and encoded[3] not in (
            constants.C_UNINITIALIZED,
            constants.C_UNALLOCATED,
        ):
            pointer_target = _parse_address(encoded[3])
        return Primitive(
            kind=kind,
            value=encoded[3],
            tag=tag,
            type_name=type_name,
            address=str(encoded[1]),
            pointer_target=pointer_target,
        )
    return Primitive(kind=kind, value=encoded[1] if len(encoded) > 1 else None, tag=tag)


def _decode_fields(
    items: list, dialect: ValueDialect, what: str
) -> tuple[tuple[Value, Value], ...]:
    return tuple(
        (decode_value(k, dialect), decode_value(v, dialect))
        for k, v in _pairs(items, what)
    )


def decode_heap_object(encoded: Any, dialect: ValueDialect) -> HeapObject:
    """Decode one heap entry into its HeapObject variant."""
    tag = _tag_of(encoded)
    if tag is None:
        raise TraceDecodeError(f"Unrecognised heap object: {encoded!r}")

    linear = dialect.classify_linear(tag)
    if linear is not None:
        return LinearObject(
            kind=linear, items=tuple(decode_value(v, dialect) for v in encoded[1:])
        )

    if tag == constants.DICT_TAG:
        return DictObject(entries=_decode_fields(encoded[1:], dialect, "dict"))

    if tag == constants.INSTANCE_TAG:
        if len(encoded) < 2:
            raise TraceDecodeError(f"Malformed instance: {encoded!r}")
        return RecordObject(
            kind=RecordKind.INSTANCE,
            name=str(encoded[1]),
            fields=_decode_fields(encoded[2:], dialect, "instance"),
        )

    if tag == constants.CLASS_TAG:
        if len(encoded) < 3 or not isinstance(encoded[2], list):
            raise TraceDecodeError(f"Malformed class: {encoded!r}")
        return RecordObject(
            kind=RecordKind.CLASS,
            name=str(encoded[1]),
            superclasses=tuple(str(s) for s in encoded[2]),
            fields=_decode_fields(encoded[3:], dialect, "class"),
        )

    if tag == constants.FUNCTION_TAG:
        if len(encoded) < 2:
            raise TraceDecodeError(f"Malformed function: {encoded!r}")
        return FunctionObject(
            name=str(encoded[1]),
            parent_frame_id=encoded[2] if len(encoded) > 2 else None,
        )

    if tag == constants.JS_FUNCTION_TAG:
        if len(encoded) < 3:
            raise TraceDecodeError(f"Malformed JS function: {encoded!r}")
        props = encoded[3] if len(encoded) > 3 and encoded[3] else []
        return FunctionObject(
            name=str(encoded[1]),
            source=str(encoded[2]),
            properties=tuple(
                (str(k), decode_value(v, dialect)) for k, v in _pairs(props, "JS function")
            ),
            parent_frame_id=encoded[4] if len(encoded) > 4 else None,
        )

    if tag == constants.INSTANCE_PPRINT_TAG:
        if len(encoded) != 3:
            raise TraceDecodeError(f"Malformed pretty-printed instance: {encoded!r}")
        return OpaqueObject(type_name=str(encoded[1]), text=str(encoded[2]), is_instance=True)

    if tag == constants.HEAP_PRIMITIVE_TAG:
        if len(encoded) != 3:
            raise TraceDecodeError(f"Malformed heap primitive: {encoded!r}")
        boxed = decode_value(encoded[2], dialect)
        if not isinstance(boxed, Primitive):
            raise TraceDecodeError(f"Heap primitive must box a scalar: {encoded!r}")
        return OpaqueObject(type_name=str(encoded[1]), value=boxed)

    if tag == constants.C_STRUCT_TAG:
        if len(encoded) < 3:
            raise TraceDecodeError(f"Malformed C struct: {encoded!r}")
        return RecordObject(
            kind=RecordKind.STRUCT,
            name=str(encoded[2]),
            fields=tuple(
                (Primitive(kind=PrimitiveKind.STRING, value=str(k)), decode_value(v, dialect))
                for k, v in _pairs(encoded[3:], "C struct")
            ),
        )

    if tag == constants.C_ARRAY_TAG:
        return LinearObject(
            kind=LinearKind.ARRAY,
            items=tuple(decode_value(v, dialect) for v in encoded[2:]),
        )

    if len(encoded) == 2:
        return OpaqueObject(type_name=tag, text=str(encoded[1]))

    raise TraceDecodeError(f"Unrecognised heap object tag {tag!r}: {encoded!r}")


# ── Steps ────────────────────────────────────────────────────────


def _decode_frame(raw: RawFrame, dialect: ValueDialect) -> Frame:
    return Frame(
        func_name=raw.func_name,
        frame_id=raw.frame_id,
        unique_hash=raw.unique_hash or f"{raw.func_name}_f{raw.frame_id}",
        parent_frame_ids=tuple(raw.parent_frame_id_list),
        ordered_varnames=tuple(raw.ordered_varnames),
        local_vars=MappingProxyType(
            {name: decode_value(v, dialect) for name, v in raw.encoded_locals.items()}
        ),
        is_zombie=raw.is_zombie,
        is_highlighted=raw.is_highlighted,
        is_parent=raw.is_parent,
    )


def decode_step(raw: dict | RawStep, index: int, dialect: ValueDialect) -> ExecutionStep:
    """Validate and decode one raw step record.

    Raises ``TraceDecodeError`` for a malformed envelope, an unknown event kind
    or a malformed encoded value.
    """
    if not isinstance(raw, RawStep):
        try:
            raw = RawStep.model_validate(raw)
        except ValidationError as exc:
            raise TraceDecodeError(f"Malformed step {index}: {exc}") from exc

    try:
        event = EventKind(raw.event)
    except ValueError as exc:
        raise TraceDecodeError(f"Unknown event kind at step {index}: {raw.event!r}") from exc

    return ExecutionStep(
        index=index,
        event=event,
        line=raw.line,
        func_name=raw.func_name,
        global_vars=MappingProxyType(
            {name: decode_value(v, dialect) for name, v in raw.globals.items()}
        ),
        ordered_globals=tuple(raw.ordered_globals),
        frames=tuple(_decode_frame(f, dialect) for f in raw.stack_to_render),
        heap=MappingProxyType(
            {
                parse_heap_address(key): decode_heap_object(v, dialect)
                for key, v in raw.heap.items()
            }
        ),
        stdout=raw.stdout,
        exception_msg=raw.exception_msg,
        prompt=raw.prompt,
    )


def decode_trace(raw_steps: list[dict], dialect: ValueDialect) -> list[ExecutionStep]:
    """Decode every raw step in order; step indices follow list position."""
    steps = [decode_step(raw, i, dialect) for i, raw in enumerate(raw_steps)]
    logger.debug("Decoded %d steps", len(steps))
    return steps

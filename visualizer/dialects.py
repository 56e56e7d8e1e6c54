"""Value dialects — per-language strategies for classifying and labelling trace values.

A dialect is selected once from ``VisualizerConfig.language`` and injected into
the decoder and the reference-graph builder. It exposes a closed set of
override points: classify-primitive, classify-linear, render-primitive and
render-compound.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

from .precompute_types import Language
from .trace_types import (
    DictObject,
    FunctionObject,
    HeapObject,
    LinearKind,
    LinearObject,
    OpaqueObject,
    Primitive,
    PrimitiveKind,
    RecordKind,
    RecordObject,
)
from . import constants

logger = logging.getLogger(__name__)


class ValueDialect(ABC):
    """Strategy for language-specific value classification and labelling."""

    language: Language

    @abstractmethod
    def classify_primitive(self, tag: str, encoded: list) -> PrimitiveKind | None:
        """Return the primitive kind for a tagged encoded scalar, or None if *tag* is not scalar."""
        ...

    @abstractmethod
    def classify_linear(self, tag: str) -> LinearKind | None:
        """Return the linear container kind for a heap tag, or None if not linear."""
        ...

    @abstractmethod
    def render_primitive(self, value: Primitive) -> str:
        """Return the display text of a primitive value."""
        ...

    @abstractmethod
    def render_compound(self, obj: HeapObject) -> str:
        """Return the type label shown on top of an expanded heap object."""
        ...


class BaseDialect(ValueDialect):
    """Python-flavoured defaults; subclasses override the constants below."""

    language = Language.PYTHON

    # ── overridable constants ────────────────────────────────────

    LINE_COMMENT_MARKER: str = "#"
    FRAMES_INNERMOST_FIRST: bool = False
    SANITIZE_ANCHORS: bool = False

    PRIMITIVE_TAGS: dict[str, PrimitiveKind] = {
        constants.SPECIAL_FLOAT_TAG: PrimitiveKind.SPECIAL_FLOAT,
        constants.JS_SPECIAL_VAL_TAG: PrimitiveKind.OPAQUE_SCALAR,
        constants.C_DATA_TAG: PrimitiveKind.OPAQUE_SCALAR,
    }

    LINEAR_TAGS: dict[str, LinearKind] = {
        constants.LIST_TAG: LinearKind.LIST,
        constants.TUPLE_TAG: LinearKind.TUPLE,
        constants.SET_TAG: LinearKind.SET,
    }

    # label -> language-specific label
    LABELS: dict[str, str] = {}

    # ── override points ──────────────────────────────────────────

    def classify_primitive(self, tag: str, encoded: list) -> PrimitiveKind | None:
        return self.PRIMITIVE_TAGS.get(tag)

    def classify_linear(self, tag: str) -> LinearKind | None:
        return self.LINEAR_TAGS.get(tag)

    def render_primitive(self, value: Primitive) -> str:
        if value.kind == PrimitiveKind.NONE:
            return self.label("None")
        if value.kind == PrimitiveKind.BOOL:
            return self.label("True" if value.value else "False")
        if value.kind == PrimitiveKind.NUMBER:
            return _format_number(value.value)
        if value.kind == PrimitiveKind.STRING:
            return '"' + str(value.value).replace('"', '\\"') + '"'
        return str(value.value)

    def render_compound(self, obj: HeapObject) -> str:
        if isinstance(obj, LinearObject):
            return self._container_label(obj.kind.value, not obj.items)
        if isinstance(obj, DictObject):
            return self._container_label("dict", not obj.entries)
        if isinstance(obj, RecordObject):
            return self._record_label(obj)
        if isinstance(obj, FunctionObject):
            return self._function_label(obj)
        if isinstance(obj, OpaqueObject):
            if obj.is_instance:
                return f"{obj.type_name} {self.label('instance')}"
            return obj.type_name
        raise TypeError(f"Not a heap object: {obj!r}")

    # ── helpers ──────────────────────────────────────────────────

    def label(self, label: str) -> str:
        return self.LABELS.get(label, label)

    @property
    def line_comment_marker(self) -> str:
        return self.LINE_COMMENT_MARKER

    @property
    def frames_innermost_first(self) -> bool:
        return self.FRAMES_INNERMOST_FIRST

    @property
    def sanitize_anchors(self) -> bool:
        return self.SANITIZE_ANCHORS

    def _container_label(self, label: str, empty: bool) -> str:
        real = self.label(label)
        return f"empty {real}" if empty else real

    def _record_label(self, obj: RecordObject) -> str:
        if obj.kind == RecordKind.INSTANCE:
            return f"{obj.name} {self.label('instance')}"
        if obj.kind == RecordKind.CLASS:
            extends = f" [extends {', '.join(obj.superclasses)}]" if obj.superclasses else ""
            return f"{obj.name} class{extends}"
        return f"struct {obj.name}"

    def _function_label(self, obj: FunctionObject) -> str:
        name = obj.name.replace(constants.LAMBDA_FUNC_NAME, constants.LAMBDA_DISPLAY_NAME)
        parent = (
            f" [parent=f{obj.parent_frame_id}]" if obj.parent_frame_id is not None else ""
        )
        return f"{self.label('function')} {name}{parent}"


def _format_number(n) -> str:
    """Integral floats drop their fractional part, matching how the backend's numbers display."""
    if isinstance(n, float) and n.is_integer():
        return str(int(n))
    return str(n)


class PythonDialect(BaseDialect):
    language = Language.PYTHON


class JavaScriptDialect(BaseDialect):
    language = Language.JAVASCRIPT

    LINE_COMMENT_MARKER = "//"
    LABELS = {
        "list": "array",
        "instance": "object",
        "True": "true",
        "False": "false",
        "dict": "Map",
        "set": "Set",
    }


class TypeScriptDialect(JavaScriptDialect):
    language = Language.TYPESCRIPT

    LABELS = {
        "list": "array",
        "instance": "object",
        "True": "true",
        "False": "false",
    }


class RubyDialect(BaseDialect):
    language = Language.RUBY

    LABELS = {
        "list": "array",
        "instance": "object",
        "True": "true",
        "False": "false",
        "dict": "hash",
        "set": "Set",
        "function": "method",
        "None": "nil",
    }


class JavaDialect(BaseDialect):
    """Java traces list frames innermost-first and use their own scalar tags."""

    language = Language.JAVA

    LINE_COMMENT_MARKER = "//"
    FRAMES_INNERMOST_FIRST = True
    SANITIZE_ANCHORS = True  # synthetic names such as 'this$0'

    PRIMITIVE_TAGS = {
        **BaseDialect.PRIMITIVE_TAGS,
        constants.JAVA_VOID_TAG: PrimitiveKind.OPAQUE_SCALAR,
        constants.JAVA_NUMBER_LITERAL_TAG: PrimitiveKind.OPAQUE_SCALAR,
        constants.JAVA_CHAR_LITERAL_TAG: PrimitiveKind.OPAQUE_SCALAR,
        constants.JAVA_ELIDE_TAG: PrimitiveKind.OPAQUE_SCALAR,
    }

    LINEAR_TAGS = {
        **BaseDialect.LINEAR_TAGS,
        constants.JAVA_STACK_TAG: LinearKind.STACK,
        constants.JAVA_QUEUE_TAG: LinearKind.QUEUE,
    }

    LABELS = {
        "None": "null",
        "True": "true",
        "False": "false",
        "list": "array",
    }

    _CHAR_ESCAPES: dict[str, str] = {
        "\n": "\\n",
        "\r": "\\r",
        "\t": "\\t",
        "\b": "\\b",
        "\f": "\\f",
        "'": "\\'",
        '"': '\\"',
        "\\": "\\\\",
    }

    def render_primitive(self, value: Primitive) -> str:
        if value.tag == constants.JAVA_VOID_TAG:
            return "void"
        if value.tag == constants.JAVA_NUMBER_LITERAL_TAG:
            return str(value.value)
        if value.tag == constants.JAVA_CHAR_LITERAL_TAG:
            return f"'{self._escape_char(str(value.value))}'"
        if value.tag == constants.JAVA_ELIDE_TAG:
            return "\u2026"
        return super().render_primitive(value)

    def _escape_char(self, ch: str) -> str:
        if ch in self._CHAR_ESCAPES:
            return self._CHAR_ESCAPES[ch]
        if ch and ord(ch[0]) >= 32:
            return ch
        return f"\\u{ord(ch[0]) if ch else 0:04x}"


class CDialect(BaseDialect):
    """C and C++ — scalars arrive as ``C_DATA`` records carrying their C type."""

    language = Language.C

    LINE_COMMENT_MARKER = "//"

    def __init__(self, language: Language = Language.C):
        self.language = language

    def render_primitive(self, value: Primitive) -> str:
        if value.tag != constants.C_DATA_TAG:
            return super().render_primitive(value)
        raw = value.value
        if raw == constants.C_UNINITIALIZED:
            return "?"
        if raw == constants.C_UNALLOCATED:
            return "\U0001F480"
        if value.type_name == constants.C_POINTER_TYPE:
            return hex(raw) if isinstance(raw, int) else str(raw)
        if isinstance(raw, str):
            escaped = raw.replace("\n", "\\n").replace("\t", "\\t").replace('"', '\\"')
            return f"'{escaped}'"
        return _format_number(raw)

    def _record_label(self, obj: RecordObject) -> str:
        if obj.kind == RecordKind.STRUCT:
            keyword = "object" if self.language == Language.CPP else "struct"
            return f"{keyword} {obj.name}"
        return super()._record_label(obj)


_DIALECTS: dict[Language, type[BaseDialect]] = {
    Language.PYTHON: PythonDialect,
    Language.JAVA: JavaDialect,
    Language.JAVASCRIPT: JavaScriptDialect,
    Language.TYPESCRIPT: TypeScriptDialect,
    Language.RUBY: RubyDialect,
    Language.C: CDialect,
    Language.CPP: CDialect,
}


def get_dialect(language: Language | str) -> BaseDialect:
    """Instantiate the value dialect for *language*.

    Raises ``ValueError`` if *language* has no registered dialect.
    """
    try:
        lang = Language(language)
    except ValueError as exc:
        raise ValueError(f"Unsupported language for visualizer: {language}") from exc
    cls = _DIALECTS[lang]
    logger.debug("Using %s value dialect for %s", cls.__name__, lang.value)
    if cls is CDialect:
        return CDialect(lang)
    return cls()

"""Reference graph — pointer edges and the render model for one step.

Every object in the step's layout is drawn exactly once at its own anchor.
Any other occurrence of an already-drawn object within the same step becomes
an arrow from a freshly minted pointer-source anchor, never a second copy.
"""

from __future__ import annotations

import logging

from .anchors import AnchorAllocator
from .dialects import BaseDialect, get_dialect
from .graph_types import (
    EdgeKind,
    ReferenceEdge,
    RenderedFrame,
    RenderedObject,
    RenderedSlot,
    RenderedValue,
    StepReferences,
)
from .layout_types import StepLayout
from .precompute_types import VisualizerConfig
from .trace_types import (
    CompositeKind,
    DictObject,
    ExecutionStep,
    Frame,
    FunctionObject,
    InlineComposite,
    LinearObject,
    OpaqueObject,
    Primitive,
    PrimitiveKind,
    RecordObject,
    Reference,
    TraceInvariantError,
    Value,
)
from . import constants

logger = logging.getLogger(__name__)


class _StepRender:
    """Mutable bookkeeping for building one step's references."""

    def __init__(self, step: ExecutionStep):
        self.step = step
        self.rendered_anchors: set[str] = set()
        self.value_to_heap: list[ReferenceEdge] = []
        self.heap_to_heap: list[ReferenceEdge] = []
        self.frame_parent: list[ReferenceEdge] = []


class ReferenceGraphBuilder:
    """Builds the edges and render model of a step from its heap and layout."""

    def __init__(self, config: VisualizerConfig | None = None, dialect: BaseDialect | None = None):
        self.config = config or VisualizerConfig()
        self.dialect = dialect or get_dialect(self.config.language)
        self.anchors = AnchorAllocator(
            self.config.visualizer_id, sanitize=self.dialect.sanitize_anchors
        )

    def build(self, step: ExecutionStep, layout: StepLayout) -> StepReferences:
        self.anchors.reset_pointer_sources()
        state = _StepRender(step)

        # every laid-out object will be drawn at top level, so mark them up front
        for object_id in layout.all_ids():
            state.rendered_anchors.add(self.anchors.heap_object(object_id, step.index))

        objects = []
        for object_id in layout.all_ids():
            rendered = self._render_compound(state, object_id, top_level=True)
            if rendered.nested is not None:
                objects.append(rendered.nested)

        globals_anchor = self.anchors.globals_root()
        globals_slots = tuple(
            self._render_variable(state, name, value, self.anchors.global_variable(name))
            for name, value in step.ordered_global_values()
        )

        frames = tuple(self._render_frame(state, i, frame) for i, frame in enumerate(step.frames))

        if self.config.draw_parent_pointers:
            self._add_parent_edges(state, frames, globals_anchor)

        highlighted = next((f.anchor for f in frames if f.is_highlighted), globals_anchor)

        refs = StepReferences(
            value_to_heap=tuple(state.value_to_heap),
            heap_to_heap=tuple(state.heap_to_heap),
            frame_parent=tuple(state.frame_parent),
            objects=tuple(objects),
            globals_anchor=globals_anchor,
            globals_slots=globals_slots,
            frames=frames,
            highlighted_frame_anchor=highlighted,
        )
        logger.debug(
            "Step %d: %d objects, %d value edges, %d heap edges, %d parent edges",
            step.index,
            len(objects),
            len(refs.value_to_heap),
            len(refs.heap_to_heap),
            len(refs.frame_parent),
        )
        return refs

    # ── edges ────────────────────────────────────────────────────

    def _add_edge(
        self,
        state: _StepRender,
        source: str,
        target: str,
        kind: EdgeKind,
        target_object_id: int | None = None,
    ) -> None:
        if target not in state.rendered_anchors:
            logger.debug("Step %d: omitting edge %s -> %s", state.step.index, source, target)
            return
        edge = ReferenceEdge(source, target, kind, target_object_id)
        if kind == EdgeKind.VALUE_POINTER:
            state.value_to_heap.append(edge)
        elif kind == EdgeKind.OBJECT_POINTER:
            state.heap_to_heap.append(edge)
        else:
            state.frame_parent.append(edge)

    def _add_parent_edges(
        self, state: _StepRender, frames: tuple[RenderedFrame, ...], globals_anchor: str
    ) -> None:
        state.rendered_anchors.update(f.anchor for f in frames)
        if state.step.ordered_globals:
            state.rendered_anchors.add(globals_anchor)
        for frame, rendered in zip(state.step.frames, frames):
            if frame.parent_frame_ids:
                parent_id = frame.parent_frame_ids[0]
                matches = [
                    r.anchor for f, r in zip(state.step.frames, frames) if f.frame_id == parent_id
                ]
                if not matches:
                    logger.debug(
                        "Step %d: parent frame f%d of %s not on stack",
                        state.step.index,
                        parent_id,
                        rendered.anchor,
                    )
                    continue
                target = matches[-1]
            else:
                target = globals_anchor
            self._add_edge(state, rendered.anchor, target, EdgeKind.FRAME_PARENT)

    # ── values ───────────────────────────────────────────────────

    def _render_variable(
        self, state: _StepRender, name: str, value: Value, anchor: str
    ) -> RenderedSlot:
        object_id = state.step.heap_ref(value)
        if object_id is not None:
            target = self.anchors.heap_object(object_id, state.step.index)
            self._add_edge(state, anchor, target, EdgeKind.VALUE_POINTER, object_id)
            return RenderedSlot(
                label=name,
                value=RenderedValue(text=self._pointer_text(value), pointer_anchor=anchor),
            )
        return RenderedSlot(
            label=name, value=self._render_nested(state, value, EdgeKind.VALUE_POINTER)
        )

    def _render_frame(self, state: _StepRender, index: int, frame: Frame) -> RenderedFrame:
        slots = tuple(
            self._render_variable(
                state, name, value, self.anchors.frame_variable(frame.unique_hash, name)
            )
            for name, value in frame.ordered_locals()
        )
        return RenderedFrame(
            anchor=self.anchors.frame(index, zombie=frame.is_zombie),
            label=self._frame_label(frame),
            frame_id=frame.frame_id,
            unique_hash=frame.unique_hash,
            slots=slots,
            is_zombie=frame.is_zombie,
            is_highlighted=frame.is_highlighted,
        )

    def _pointer_text(self, value: Value) -> str | None:
        if isinstance(value, Primitive):
            return self.dialect.render_primitive(value)
        return None

    def _frame_label(self, frame: Frame) -> str:
        label = frame.func_name.replace(constants.LAMBDA_FUNC_NAME, constants.LAMBDA_DISPLAY_NAME)
        if frame.is_parent:
            label = f"f{frame.frame_id}: {label}"
        if frame.parent_frame_ids:
            label = f"{label} [parent=f{frame.parent_frame_ids[0]}]"
        return label

    def _render_nested(self, state: _StepRender, value: Value, edge_kind: EdgeKind) -> RenderedValue:
        if isinstance(value, Primitive):
            object_id = state.step.heap_ref(value)
            if object_id is not None:
                source = self.anchors.next_pointer_source(state.step.index)
                target = self.anchors.heap_object(object_id, state.step.index)
                self._add_edge(state, source, target, edge_kind, object_id)
                return RenderedValue(
                    text=self.dialect.render_primitive(value), pointer_anchor=source
                )
            return RenderedValue(text=self.dialect.render_primitive(value))
        if isinstance(value, Reference):
            return self._render_compound(state, value.object_id, top_level=False, edge_kind=edge_kind)
        return RenderedValue(nested=self._render_inline(state, value, edge_kind))

    def _render_inline(
        self, state: _StepRender, composite: InlineComposite, edge_kind: EdgeKind
    ) -> RenderedObject:
        if composite.kind == CompositeKind.STRUCT:
            label = f"struct {composite.type_name}".strip()
            slots = tuple(
                RenderedSlot(label=name, value=self._render_nested(state, v, edge_kind))
                for name, v in composite.fields
            )
        else:
            label = self.dialect.label("array")
            slots = tuple(
                RenderedSlot(label=str(i), value=self._render_nested(state, v, edge_kind))
                for i, v in enumerate(composite.elements)
            )
        return RenderedObject(object_id=None, anchor=None, type_label=label, slots=slots)

    # ── heap objects ─────────────────────────────────────────────

    def _render_compound(
        self,
        state: _StepRender,
        object_id: int,
        top_level: bool,
        edge_kind: EdgeKind = EdgeKind.OBJECT_POINTER,
    ) -> RenderedValue:
        step = state.step
        anchor = self.anchors.heap_object(object_id, step.index)

        if not top_level and anchor in state.rendered_anchors:
            source = self.anchors.next_pointer_source(step.index)
            self._add_edge(state, source, anchor, edge_kind, object_id)
            return RenderedValue(pointer_anchor=source)

        obj = step.heap.get(object_id)
        if obj is None:
            message = f"Step {step.index}: reference to object {object_id} absent from heap"
            if self.config.strict:
                raise TraceInvariantError(message)
            logger.warning("%s; skipping its rendering", message)
            return RenderedValue()

        state.rendered_anchors.add(anchor)
        nested_kind = EdgeKind.OBJECT_POINTER
        slots: tuple[RenderedSlot, ...] = ()
        text = ""

        if isinstance(obj, LinearObject):
            slots = tuple(
                RenderedSlot(label=str(i), value=self._render_nested(state, v, nested_kind))
                for i, v in enumerate(obj.items)
            )
        elif isinstance(obj, (DictObject, RecordObject)):
            pairs = obj.entries if isinstance(obj, DictObject) else obj.fields
            slots = tuple(self._render_pair(state, k, v, nested_kind) for k, v in pairs)
        elif isinstance(obj, FunctionObject):
            text = obj.source
            slots = tuple(
                RenderedSlot(label=name, value=self._render_nested(state, v, nested_kind))
                for name, v in obj.properties
            )
        elif isinstance(obj, OpaqueObject):
            text = self.dialect.render_primitive(obj.value) if obj.value is not None else obj.text

        return RenderedValue(
            nested=RenderedObject(
                object_id=object_id,
                anchor=anchor,
                type_label=self.dialect.render_compound(obj),
                slots=slots,
                text=text,
            )
        )

    def _render_pair(
        self, state: _StepRender, key: Value, value: Value, edge_kind: EdgeKind
    ) -> RenderedSlot:
        rendered_key = self._render_nested(state, key, edge_kind)
        if isinstance(key, Primitive) and key.kind == PrimitiveKind.STRING:
            label = str(key.value)
        else:
            label = rendered_key.text or ""
        return RenderedSlot(
            label=label,
            value=self._render_nested(state, value, edge_kind),
            key=rendered_key,
        )

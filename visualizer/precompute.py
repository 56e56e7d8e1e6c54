"""Precompute pipeline — normalise the trace and derive every step's artifacts eagerly."""

from __future__ import annotations

import logging
import time

from .artifact_types import StepArtifacts, Visualization
from .dialects import get_dialect
from .highlights import compute_line_highlight
from .layout import LayoutEngine
from .precompute_types import PrecomputeStats, VisualizerConfig
from .reference_graph import ReferenceGraphBuilder
from .trace_model import TraceModel, normalize

logger = logging.getLogger(__name__)


def starting_step(model: TraceModel, config: VisualizerConfig) -> int:
    """Step to show first.

    ``starting_instruction`` wins over ``jump_to_end`` and is clamped into
    range (a value equal to the step count means the last step). With
    ``jump_to_end`` the first error step is preferred over the last step.
    """
    if model.is_empty:
        return 0
    last = model.step_count - 1
    if config.starting_instruction is not None:
        return max(0, min(config.starting_instruction, last))
    if config.jump_to_end:
        first_error = model.first_error_step()
        return first_error if first_error is not None else last
    return 0


def precompute(
    raw_steps: list[dict],
    config: VisualizerConfig | None = None,
    source: str = "",
) -> Visualization:
    """End-to-end: decode → normalise → layouts → reference graphs → highlights.

    Args:
        raw_steps: Step records as produced by the execution backend (decoded JSON).
        config: Visualizer configuration; defaults to ``VisualizerConfig()``.
        source: Program source text, used for ``# breakpoint`` comments.

    Raises:
        TraceDecodeError: If a raw record is malformed.
        TraceInvariantError: In strict mode, if a step references a missing heap object.
        ValueError: If the configured language is unsupported.
    """
    config = config or VisualizerConfig()
    pipeline_start = time.perf_counter()
    dialect = get_dialect(config.language)
    stats = PrecomputeStats(raw_steps=len(raw_steps), language=dialect.language.value)

    # 1. Normalise
    t0 = time.perf_counter()
    model = normalize(raw_steps, source=source, dialect=dialect)
    stats.normalize_time = time.perf_counter() - t0
    stats.steps = model.step_count
    stats.trimmed_sentinel = ", ".join(model.trimmed_sentinels)

    # 2. Layouts
    t0 = time.perf_counter()
    layouts = LayoutEngine(config).compute_all(model.steps)
    stats.layout_time = time.perf_counter() - t0
    stats.max_rows = max((len(layout.rows) for layout in layouts), default=0)
    stats.max_row_width = max((layout.max_row_width for layout in layouts), default=0)

    # 3. Reference graphs
    t0 = time.perf_counter()
    builder = ReferenceGraphBuilder(config, dialect)
    references = [builder.build(step, layout) for step, layout in zip(model.steps, layouts)]
    stats.graph_time = time.perf_counter() - t0
    for refs in references:
        stats.value_edges += len(refs.value_to_heap)
        stats.heap_edges += len(refs.heap_to_heap)
        stats.parent_edges += len(refs.frame_parent)
    logger.info(
        "Built reference graphs for %d steps in %.1fms",
        len(references),
        stats.graph_time * 1000,
    )

    # 4. Highlights
    t0 = time.perf_counter()
    highlights = [
        compute_line_highlight(model.steps, i, model.instr_limit_reached)
        for i in range(model.step_count)
    ]
    stats.highlight_time = time.perf_counter() - t0

    artifacts = tuple(
        StepArtifacts(layout=layout, references=refs, highlight=highlight)
        for layout, refs, highlight in zip(layouts, references, highlights)
    )
    stats.total_time = time.perf_counter() - pipeline_start

    if config.verbose:
        print(stats.report())

    return Visualization(
        model=model,
        config=config,
        artifacts=artifacts,
        initial_breakpoints=tuple(model.breakpoints_from_source()),
        starting_step=starting_step(model, config),
        stats=stats,
    )


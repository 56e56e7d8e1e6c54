"""Precomputed per-step artifacts (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass, field

from .graph_types import StepReferences
from .highlights import LineHighlight
from .layout_types import StepLayout
from .precompute_types import PrecomputeStats, VisualizerConfig
from .trace_model import TraceModel


@dataclass(frozen=True)
class StepArtifacts:
    """Everything derived for one step; computed once, looked up by index."""

    layout: StepLayout
    references: StepReferences
    highlight: LineHighlight


@dataclass(frozen=True)
class Visualization:
    model: TraceModel
    config: VisualizerConfig
    artifacts: tuple[StepArtifacts, ...] = ()
    initial_breakpoints: tuple[int, ...] = ()
    starting_step: int = 0
    stats: PrecomputeStats = field(default_factory=PrecomputeStats)

    @property
    def step_count(self) -> int:
        return len(self.artifacts)

    def artifacts_at(self, index: int) -> StepArtifacts | None:
        if 0 <= index < len(self.artifacts):
            return self.artifacts[index]
        return None

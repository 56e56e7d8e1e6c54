"""Navigation — current step and breakpoints over a precomputed visualization."""

from __future__ import annotations

import bisect
import logging
from typing import Iterable

from .artifact_types import StepArtifacts, Visualization
from .graph_types import StepReferences
from .highlights import LineHighlight
from .layout_types import StepLayout
from .trace_types import ExecutionStep
from . import constants

logger = logging.getLogger(__name__)


class NavigationController:
    """Steps through a Visualization, honouring breakpoints.

    Every move only changes ``current``; the per-step artifacts were computed
    up front, so jumping to a step and stepping to it read the same data.
    """

    def __init__(self, visualization: Visualization):
        self.visualization = visualization
        self._breakpoints: set[int] = set()
        self._sorted: list[int] = []
        self.current = visualization.starting_step if visualization.step_count else 0
        self.set_breakpoints(visualization.initial_breakpoints)

    @property
    def step_count(self) -> int:
        return self.visualization.step_count

    @property
    def sorted_breakpoints(self) -> list[int]:
        return list(self._sorted)

    # ── moves ────────────────────────────────────────────────────

    def step_forward(self) -> bool:
        if self.current >= self.step_count - 1:
            return False
        if self._sorted:
            if self.current in self._breakpoints:
                # sitting on a breakpoint: advance one step
                self.current += 1
            else:
                nxt = self.find_next_breakpoint()
                self.current = nxt if nxt != constants.NO_BREAKPOINT else self.current + 1
        else:
            self.current += 1
        return True

    def step_back(self) -> bool:
        if self.current <= 0:
            return False
        if self._sorted:
            prev = self.find_prev_breakpoint()
            self.current = prev if prev != constants.NO_BREAKPOINT else self.current - 1
        else:
            self.current -= 1
        return True

    def jump_to(self, index: int) -> bool:
        """Move to *index*, clamped into range. Returns whether ``current`` changed."""
        if not self.step_count:
            return False
        target = max(0, min(index, self.step_count - 1))
        if target != index:
            logger.debug("Clamped jump to %d into step %d", index, target)
        moved = target != self.current
        self.current = target
        return moved

    def jump_to_first(self) -> bool:
        return self.jump_to(0)

    def jump_to_last(self) -> bool:
        return self.jump_to(self.step_count - 1)

    # ── breakpoints ──────────────────────────────────────────────

    def set_breakpoints(self, indices: Iterable[int]) -> None:
        self._breakpoints.update(i for i in indices if 0 <= i < self.step_count)
        self._sorted = sorted(self._breakpoints)

    def clear_breakpoints(self, indices: Iterable[int]) -> None:
        self._breakpoints.difference_update(indices)
        self._sorted = sorted(self._breakpoints)

    def toggle_line_breakpoint(self, line: int) -> bool:
        """Add or remove every execution point of *line* at once.

        Returns True if the line now has breakpoints. A line that never
        executed cannot hold a breakpoint.
        """
        points = self.visualization.model.execution_points(line)
        if not points:
            return False
        if all(p in self._breakpoints for p in points):
            self.clear_breakpoints(points)
            return False
        self.set_breakpoints(points)
        return True

    def find_prev_breakpoint(self) -> int:
        """Largest breakpoint strictly before ``current``, or -1."""
        pos = bisect.bisect_left(self._sorted, self.current)
        return self._sorted[pos - 1] if pos > 0 else constants.NO_BREAKPOINT

    def find_next_breakpoint(self) -> int:
        """Smallest breakpoint strictly after ``current``, or -1."""
        pos = bisect.bisect_right(self._sorted, self.current)
        return self._sorted[pos] if pos < len(self._sorted) else constants.NO_BREAKPOINT

    # ── current-step accessors ───────────────────────────────────

    def _artifacts(self) -> StepArtifacts | None:
        return self.visualization.artifacts_at(self.current)

    def current_step(self) -> ExecutionStep | None:
        if not self.step_count:
            return None
        return self.visualization.model.steps[self.current]

    def current_layout(self) -> StepLayout | None:
        artifacts = self._artifacts()
        return artifacts.layout if artifacts else None

    def current_references(self) -> StepReferences | None:
        artifacts = self._artifacts()
        return artifacts.references if artifacts else None

    def current_highlight(self) -> LineHighlight | None:
        artifacts = self._artifacts()
        return artifacts.highlight if artifacts else None

    @property
    def awaiting_input(self) -> bool:
        """True at the last step of a trace that ended waiting for user input."""
        model = self.visualization.model
        return (
            model.prompt_for_input is not None
            and self.step_count > 0
            and self.current == self.step_count - 1
        )

"""TraceModel — the normalised, immutable step sequence of one traced run."""

from __future__ import annotations

import dataclasses
import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from .dialects import BaseDialect, get_dialect
from .precompute_types import Language
from .trace_decoder import decode_trace
from .trace_types import EventKind, ExecutionStep
from . import constants

logger = logging.getLogger(__name__)


class InputKind(str, Enum):
    """What kind of user input the run was waiting for when the trace ended."""

    RAW = "raw_input"
    MOUSE = "mouse_input"


_INPUT_SENTINELS = {
    EventKind.RAW_INPUT: InputKind.RAW,
    EventKind.MOUSE_INPUT: InputKind.MOUSE,
}


@dataclass(frozen=True)
class TraceModel:
    steps: tuple[ExecutionStep, ...] = ()
    language: Language = Language.PYTHON
    source: str = ""
    comment_marker: str = "#"
    prompt_for_input: InputKind | None = None
    user_input_prompt: str | None = None
    instr_limit_reached: bool = False
    instr_limit_message: str | None = None
    num_stdout_lines: int = 0
    trimmed_sentinels: tuple[str, ...] = ()

    @property
    def step_count(self) -> int:
        return len(self.steps)

    @property
    def is_empty(self) -> bool:
        return not self.steps

    def execution_points(self, line: int) -> list[int]:
        """Every step index that executed *line*, in trace order."""
        return [step.index for step in self.steps if step.line == line]

    def lines_with_execution_points(self) -> dict[int, list[int]]:
        points: dict[int, list[int]] = defaultdict(list)
        for step in self.steps:
            if step.line is not None:
                points[step.line].append(step.index)
        return dict(points)

    def first_error_step(self) -> int | None:
        return next((step.index for step in self.steps if step.event.is_error), None)

    def breakpoints_from_source(self) -> list[int]:
        """Execution points of executed lines whose comment mentions ``breakpoint``.

        Lines are numbered from 1, matching the ``line`` recorded on each step.
        """
        points = self.lines_with_execution_points()
        found: set[int] = set()
        for lineno, text in enumerate(self.source.rstrip().split("\n"), start=1):
            comments = text.split(self.comment_marker)[1:]
            if any(constants.BREAKPOINT_COMMENT_MARKER in c for c in comments):
                found.update(points.get(lineno, []))
        return sorted(found)


def _count_stdout_lines(steps: list[ExecutionStep]) -> int:
    # the final step does not always carry stdout, so scan backwards
    last_stdout = next((s.stdout for s in reversed(steps) if s.stdout), None)
    if not last_stdout:
        return 0
    return len(last_stdout.rstrip().split("\n"))


def normalize(
    raw_steps: list[dict],
    language: Language | str = Language.PYTHON,
    source: str = "",
    dialect: BaseDialect | None = None,
) -> TraceModel:
    """Decode *raw_steps* and strip the trailing input-prompt and limit sentinels.

    An empty trace yields an empty model rather than an error.
    """
    dialect = dialect or get_dialect(language)
    steps = decode_trace(raw_steps, dialect)
    trimmed: list[str] = []

    prompt_for_input = None
    user_input_prompt = None
    if steps and steps[-1].event in _INPUT_SENTINELS:
        sentinel = steps.pop()
        prompt_for_input = _INPUT_SENTINELS[sentinel.event]
        user_input_prompt = sentinel.prompt
        trimmed.append(sentinel.event.value)
        logger.info("Trace ends waiting for %s: %r", prompt_for_input.value, user_input_prompt)

    instr_limit_reached = False
    instr_limit_message = None
    if steps and steps[-1].event == EventKind.INSTRUCTION_LIMIT_REACHED:
        sentinel = steps.pop()
        instr_limit_reached = True
        instr_limit_message = sentinel.exception_msg
        trimmed.append(sentinel.event.value)
        logger.info("Trace truncated by instruction limit: %s", instr_limit_message)

    if dialect.frames_innermost_first:
        steps = [
            dataclasses.replace(s, frames=tuple(reversed(s.frames))) for s in steps
        ]

    model = TraceModel(
        steps=tuple(steps),
        language=dialect.language,
        source=source,
        comment_marker=dialect.line_comment_marker,
        prompt_for_input=prompt_for_input,
        user_input_prompt=user_input_prompt,
        instr_limit_reached=instr_limit_reached,
        instr_limit_message=instr_limit_message,
        num_stdout_lines=_count_stdout_lines(steps),
        trimmed_sentinels=tuple(trimmed),
    )
    logger.info("Normalised trace: %d steps (%d raw)", model.step_count, len(raw_steps))
    return model

"""Line highlighting — which source lines to mark as current and previous at a step."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from .trace_types import EventKind, ExecutionStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LineHighlight:
    current_line: int | None = None
    previous_line: int | None = None
    current_is_return: bool = False
    previous_is_return: bool = False
    exception_message: str | None = None
    is_terminated: bool = False


def _call_site_index(steps: Sequence[ExecutionStep], return_index: int) -> int | None:
    """Index of the step just before the call whose frame returned at *return_index*.

    None when no matching call is found or the call is the very first step.
    """
    returning = steps[return_index].top_frame
    if returning is None:
        logger.debug("Return at step %d has an empty stack", return_index)
        return None
    idx = return_index
    while idx >= 0:
        step = steps[idx]
        top = step.top_frame
        if step.event == EventKind.CALL and top is not None and top.frame_id == returning.frame_id:
            break
        idx -= 1
    if idx > 0:
        return idx - 1
    return None


def compute_line_highlight(
    steps: Sequence[ExecutionStep], index: int, instr_limit_reached: bool = False
) -> LineHighlight:
    """Highlight data for the step at *index*.

    When the previous step was a ``return``, the previous line is the call
    site in the caller rather than the callee's return statement. On the final
    step of a run that finished without error, the current line is dropped if
    it repeats the previous line.
    """
    cur = steps[index]
    # a trace cut short by the instruction limit never terminates
    is_terminated = not instr_limit_reached and index == len(steps) - 1

    previous_line = None
    previous_is_return = False
    if index > 0:
        prev = steps[index - 1]
        previous_line = prev.line
        previous_is_return = prev.event == EventKind.RETURN
        if previous_is_return:
            call_site = _call_site_index(steps, index - 1)
            if call_site is not None:
                previous_line = steps[call_site].line
                previous_is_return = False

    has_error = cur.event.is_error
    current_line = cur.line
    if is_terminated and not has_error and previous_line == current_line:
        current_line = None

    return LineHighlight(
        current_line=current_line,
        previous_line=previous_line,
        current_is_return=cur.event == EventKind.RETURN,
        previous_is_return=previous_is_return,
        exception_message=cur.exception_msg if has_error else None,
        is_terminated=is_terminated,
    )

"""Tests for current/previous line highlighting."""

from visualizer.highlights import compute_line_highlight

from tests.unit.conftest import decode, line_trace, raw_frame, raw_step


def _call_and_return_trace() -> list:
    """
    1. def foo():
    2.     return 42
    3.
    4. y = foo()
    5. print(y)
    """
    foo = raw_frame("foo", 1)
    return decode(
        [
            raw_step(line=4),
            raw_step(event="call", line=1, frames=[foo]),
            raw_step(line=2, frames=[foo]),
            raw_step(event="return", line=2, frames=[foo]),
            raw_step(line=5),
            raw_step(line=5, stdout="42\n"),
        ]
    )


class TestPreviousLine:
    def test_first_step_has_no_previous_line(self):
        steps = decode(line_trace([1, 2]))
        highlight = compute_line_highlight(steps, 0)

        assert highlight.current_line == 1
        assert highlight.previous_line is None

    def test_previous_line_is_previous_step(self):
        steps = decode(line_trace([1, 2, 3]))
        highlight = compute_line_highlight(steps, 1)

        assert highlight.current_line == 2
        assert highlight.previous_line == 1
        assert not highlight.previous_is_return

    def test_after_return_previous_line_is_the_call_site(self):
        steps = _call_and_return_trace()
        highlight = compute_line_highlight(steps, 4)

        assert highlight.current_line == 5
        assert highlight.previous_line == 4
        assert not highlight.previous_is_return

    def test_return_step_is_flagged(self):
        steps = _call_and_return_trace()
        highlight = compute_line_highlight(steps, 3)

        assert highlight.current_is_return
        assert highlight.previous_line == 2

    def test_return_without_matching_call_keeps_return_line(self):
        foo = raw_frame("foo", 7)
        steps = decode(
            [
                raw_step(event="call", line=1, frames=[foo]),
                raw_step(event="return", line=2, frames=[foo]),
                raw_step(line=5),
            ]
        )
        highlight = compute_line_highlight(steps, 2)

        # the matching call is the very first step, so there is no call site
        assert highlight.previous_line == 2
        assert highlight.previous_is_return


class TestTerminalStep:
    def test_repeated_line_is_dropped_on_the_final_step(self):
        steps = _call_and_return_trace()
        highlight = compute_line_highlight(steps, 5)

        assert highlight.is_terminated
        assert highlight.current_line is None
        assert highlight.previous_line == 5

    def test_instruction_limit_keeps_the_final_line(self):
        steps = _call_and_return_trace()
        highlight = compute_line_highlight(steps, 5, instr_limit_reached=True)

        assert not highlight.is_terminated
        assert highlight.current_line == 5

    def test_error_on_final_step_keeps_the_line(self):
        steps = decode(
            [
                raw_step(line=3),
                raw_step(event="uncaught_exception", line=3, exception_msg="ValueError: bad"),
            ]
        )
        highlight = compute_line_highlight(steps, 1)

        assert highlight.current_line == 3
        assert highlight.exception_message == "ValueError: bad"


class TestExceptionMessage:
    def test_exception_event_carries_message(self):
        steps = decode(
            [
                raw_step(line=1),
                raw_step(event="exception", line=2, exception_msg="ZeroDivisionError"),
                raw_step(line=3),
            ]
        )

        assert compute_line_highlight(steps, 1).exception_message == "ZeroDivisionError"
        assert compute_line_highlight(steps, 2).exception_message is None

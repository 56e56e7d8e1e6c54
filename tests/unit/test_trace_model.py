"""Tests for TraceModel normalisation — sentinels, stdout and execution points."""

import pytest

from visualizer.precompute_types import Language
from visualizer.trace_model import InputKind, normalize

from tests.unit.conftest import line_trace, number, raw_frame, raw_step, ref


class TestSentinels:
    def test_raw_input_sentinel_is_stripped(self):
        raw = line_trace([1, 2]) + [{"event": "raw_input", "prompt": "Name? "}]
        model = normalize(raw)

        assert model.step_count == 2
        assert model.prompt_for_input == InputKind.RAW
        assert model.user_input_prompt == "Name? "
        assert model.trimmed_sentinels == ("raw_input",)

    def test_mouse_input_sentinel_is_stripped(self):
        raw = line_trace([1]) + [{"event": "mouse_input", "prompt": "Click"}]
        model = normalize(raw)

        assert model.step_count == 1
        assert model.prompt_for_input == InputKind.MOUSE

    def test_instruction_limit_sentinel_is_stripped(self):
        raw = line_trace([1, 2, 3]) + [
            {"event": "instruction_limit_reached", "exception_msg": "Stopped after 1000 steps"}
        ]
        model = normalize(raw)

        assert model.step_count == 3
        assert model.instr_limit_reached
        assert model.instr_limit_message == "Stopped after 1000 steps"
        assert model.prompt_for_input is None

    def test_plain_trace_has_no_flags(self):
        model = normalize(line_trace([1, 2]))

        assert model.step_count == 2
        assert not model.instr_limit_reached
        assert model.prompt_for_input is None
        assert model.trimmed_sentinels == ()

    def test_empty_trace_is_an_empty_model(self):
        model = normalize([])

        assert model.is_empty
        assert model.step_count == 0
        assert model.num_stdout_lines == 0
        assert model.first_error_step() is None


class TestStdout:
    def test_counts_lines_of_last_stdout_ignoring_trailing_whitespace(self):
        raw = [
            raw_step(line=1, stdout="a\n"),
            raw_step(line=2, stdout="a\nb\n\n"),
            raw_step(line=3, stdout=""),
        ]
        assert normalize(raw).num_stdout_lines == 2

    def test_no_output(self):
        assert normalize(line_trace([1, 2])).num_stdout_lines == 0


class TestExecutionPoints:
    def test_execution_points_per_line(self):
        model = normalize(line_trace([1, 2, 1, 3, 1]))

        assert model.execution_points(1) == [0, 2, 4]
        assert model.execution_points(3) == [3]
        assert model.execution_points(9) == []
        assert model.lines_with_execution_points() == {1: [0, 2, 4], 2: [1], 3: [3]}

    def test_first_error_step(self):
        raw = line_trace([1, 2]) + [
            raw_step(event="exception", line=3, exception_msg="ZeroDivisionError"),
            raw_step(event="uncaught_exception", line=3, exception_msg="ZeroDivisionError"),
        ]
        assert normalize(raw).first_error_step() == 2


class TestBreakpointsFromSource:
    def test_comment_breakpoints_on_executed_lines(self):
        source = "x = 1\ny = 2  # breakpoint\nz = 3  # breakpoint here\nw = 4\n"
        model = normalize(line_trace([1, 2, 2, 4]), source=source)

        # line 3 never executed, so it contributes nothing
        assert model.breakpoints_from_source() == [1, 2]

    def test_breakpoint_outside_a_comment_is_ignored(self):
        model = normalize(line_trace([1]), source="breakpoint = 1\n")
        assert model.breakpoints_from_source() == []

    def test_dialect_comment_marker(self):
        source = "int x = 1; // breakpoint\nint y = 2; # breakpoint\n"
        model = normalize(line_trace([1, 2]), language=Language.JAVA, source=source)

        assert model.comment_marker == "//"
        assert model.breakpoints_from_source() == [0]


class TestJavaFrames:
    def test_frames_are_reversed_to_outermost_first(self):
        raw = [
            raw_step(
                frames=[raw_frame("inner", 2, highlighted=True), raw_frame("main", 1)],
            )
        ]
        model = normalize(raw, language="java")

        assert model.language == Language.JAVA
        assert [f.func_name for f in model.steps[0].frames] == ["main", "inner"]
        assert model.steps[0].top_frame.is_highlighted

    def test_python_frames_keep_their_order(self):
        raw = [raw_step(frames=[raw_frame("main", 1), raw_frame("inner", 2)])]
        model = normalize(raw)

        assert [f.func_name for f in model.steps[0].frames] == ["main", "inner"]


class TestImmutability:
    def test_normalised_steps_cannot_be_modified(self):
        raw = [
            raw_step(
                globals_={"xs": ref(1)},
                frames=[raw_frame("f", 1, {"n": 2})],
                heap={1: ["LIST"]},
            )
        ]
        step = normalize(raw, language="java").steps[0]

        with pytest.raises(TypeError):
            step.global_vars["xs"] = number(0)
        with pytest.raises(TypeError):
            del step.heap[1]
        with pytest.raises(TypeError):
            step.frames[0].local_vars["n"] = number(0)

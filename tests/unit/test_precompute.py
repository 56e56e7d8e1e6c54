"""Tests for the precompute pipeline end to end."""

import pytest

from visualizer.graph_types import EdgeKind
from visualizer.precompute import precompute
from visualizer.precompute_types import Language, VisualizerConfig
from visualizer.trace_decoder import TraceDecodeError
from visualizer.trace_types import TraceInvariantError

from tests.unit.conftest import line_trace, raw_frame, raw_step, ref


def _limit_sentinel(message: str = "Stopped after 1000 steps") -> dict:
    return {"event": "instruction_limit_reached", "exception_msg": message}


class TestArtifacts:
    def test_one_artifact_bundle_per_step(self):
        vis = precompute(line_trace([1, 2, 3]))

        assert vis.step_count == 3
        assert len(vis.artifacts) == 3
        assert vis.artifacts_at(1).highlight.current_line == 2

    def test_sentinel_is_not_a_step(self):
        vis = precompute(line_trace([1, 1]) + [_limit_sentinel()])

        assert vis.step_count == 2
        assert vis.model.instr_limit_reached
        assert vis.model.instr_limit_message == "Stopped after 1000 steps"
        # a truncated trace keeps its final line highlighted
        assert vis.artifacts_at(1).highlight.current_line == 1

    def test_heap_objects_flow_into_layout_and_edges(self):
        raw = [
            raw_step(line=1),
            raw_step(line=2, globals_={"xs": ref(1)}, heap={1: ["LIST", 1, 2]}),
        ]
        vis = precompute(raw)

        last = vis.artifacts_at(1)
        assert last.layout.all_ids() == [1]
        (edge,) = last.references.value_to_heap
        assert edge.kind == EdgeKind.VALUE_POINTER
        assert edge.target_anchor == "v1__heap_object_1_s1"


class TestStats:
    def test_counts(self):
        raw = line_trace([1, 2]) + [_limit_sentinel()]
        vis = precompute(raw)

        assert vis.stats.raw_steps == 3
        assert vis.stats.steps == 2
        assert vis.stats.trimmed_sentinel == "instruction_limit_reached"
        assert vis.stats.language == "python"

    def test_report(self):
        report = precompute(line_trace([1])).stats.report()

        assert "Precompute Statistics" in report
        assert "Layout" in report
        assert "Total" in report

    def test_verbose_prints_report(self, capsys):
        precompute(line_trace([1, 2]), VisualizerConfig(verbose=True))

        assert "Precompute Statistics" in capsys.readouterr().out

    def test_quiet_by_default(self, capsys):
        precompute(line_trace([1, 2]))

        assert capsys.readouterr().out == ""


class TestErrors:
    def test_unknown_language(self):
        with pytest.raises(ValueError, match="cobol"):
            precompute(line_trace([1]), VisualizerConfig(language="cobol"))

    def test_malformed_record(self):
        with pytest.raises(TraceDecodeError):
            precompute([{"event": "teleport", "line": 1}])

    def test_strict_mode_propagates_missing_heap_object(self):
        raw = [raw_step(globals_={"xs": ref(1)}, heap={1: ["LIST", ref(99)]})]

        with pytest.raises(TraceInvariantError):
            precompute(raw, VisualizerConfig(strict=True))

    def test_lenient_mode_completes(self):
        raw = [raw_step(globals_={"xs": ref(1)}, heap={1: ["LIST", ref(99)]})]

        vis = precompute(raw)
        assert vis.artifacts_at(0).layout.all_ids() == [1]


class TestJava:
    def _trace(self) -> list[dict]:
        main = raw_frame("main", 1)
        inner = raw_frame("run", 2, {"this$0": ref(1)}, highlighted=True)
        return [
            raw_step(line=3, frames=[inner, main], heap={1: ["INSTANCE", "Outer"]}),
        ]

    def test_frames_are_reordered_outermost_first(self):
        vis = precompute(self._trace(), VisualizerConfig(language=Language.JAVA))

        step = vis.model.steps[0]
        assert [f.func_name for f in step.frames] == ["main", "run"]
        assert vis.artifacts_at(0).references.highlighted_frame_anchor == "v1__stack1"

    def test_synthetic_names_are_sanitized_in_anchors(self):
        vis = precompute(self._trace(), VisualizerConfig(language=Language.JAVA))

        (edge,) = vis.artifacts_at(0).references.value_to_heap
        assert edge.source_anchor == "v1__run_f2__this-36-0"
        assert edge.target_anchor == "v1__heap_object_1_s0"

    def test_comment_marker_follows_language(self):
        source = "int a = 1;\nint b = 2; // breakpoint\n"
        vis = precompute(
            line_trace([1, 2]), VisualizerConfig(language=Language.JAVA), source=source
        )

        assert vis.initial_breakpoints == (1,)


class TestStartingStep:
    def test_defaults_to_first_step(self):
        assert precompute(line_trace([1, 2, 3])).starting_step == 0

    def test_jump_to_end(self):
        vis = precompute(line_trace([1, 2, 3]), VisualizerConfig(jump_to_end=True))
        assert vis.starting_step == 2

    def test_empty_trace(self):
        vis = precompute([], VisualizerConfig(jump_to_end=True))

        assert vis.step_count == 0
        assert vis.starting_step == 0
        assert vis.stats.max_rows == 0


class TestCPointers:
    def test_malloced_block_is_laid_out_and_linked(self):
        raw = [
            raw_step(
                line=4,
                globals_={"p": ["C_DATA", "0x7ff0", "pointer", "0x4C2B040"]},
                heap={"0x4C2B040": ["C_ARRAY", "0x4C2B040", ["C_DATA", "0x4C2B040", "int", 7]]},
            )
        ]
        vis = precompute(raw, VisualizerConfig(language=Language.C))

        artifacts = vis.artifacts_at(0)
        assert artifacts.layout.all_ids() == [0x4C2B040]
        (edge,) = artifacts.references.value_to_heap
        assert edge.source_anchor == "v1__global__p"
        assert edge.target_anchor == f"v1__heap_object_{0x4C2B040}_s0"

    def test_integer_addresses(self):
        raw = [
            raw_step(
                globals_={"p": ["C_DATA", 100, "pointer", 4096]},
                heap={4096: ["C_ARRAY", 4096, ["C_DATA", 4096, "int", 1]]},
            )
        ]
        vis = precompute(raw, VisualizerConfig(language=Language.CPP))

        assert vis.artifacts_at(0).layout.all_ids() == [4096]
        assert len(vis.artifacts_at(0).references.value_to_heap) == 1

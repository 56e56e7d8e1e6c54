"""Precompute pipeline data types (pure data, no business logic)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Language(str, Enum):
    """Source language of the traced program; selects the value dialect."""

    PYTHON = "python"
    JAVA = "java"
    JAVASCRIPT = "javascript"
    TYPESCRIPT = "typescript"
    RUBY = "ruby"
    C = "c"
    CPP = "cpp"


@dataclass(frozen=True)
class VisualizerConfig:
    """Groups visualizer configuration."""

    language: Language = Language.PYTHON
    disable_heap_nesting: bool = False
    draw_parent_pointers: bool = False
    visualizer_id: int = 1
    strict: bool = False
    starting_instruction: int | None = None
    jump_to_end: bool = False
    verbose: bool = False


@dataclass
class PrecomputeStats:
    """Timing and size statistics for each precompute stage."""

    raw_steps: int = 0
    steps: int = 0
    trimmed_sentinel: str = ""
    language: str = ""

    # Stage timings (seconds)
    normalize_time: float = 0.0
    layout_time: float = 0.0
    graph_time: float = 0.0
    highlight_time: float = 0.0
    total_time: float = 0.0

    # Output sizes
    max_rows: int = 0
    max_row_width: int = 0
    value_edges: int = 0
    heap_edges: int = 0
    parent_edges: int = 0

    def report(self) -> str:
        lines = [
            "═══ Precompute Statistics ═══",
            f"  Trace: {self.steps} steps ({self.raw_steps} raw, {self.language})",
        ]
        if self.trimmed_sentinel:
            lines.append(f"  Trimmed trailing sentinel: {self.trimmed_sentinel}")
        lines += [
            "",
            f"  {'Stage':<20} {'Time':>10}  {'Output':>30}",
            f"  {'─' * 20} {'─' * 10}  {'─' * 30}",
        ]

        stages = [
            ("Normalize", self.normalize_time, f"{self.steps} steps"),
            (
                "Layout",
                self.layout_time,
                f"<= {self.max_rows} rows x {self.max_row_width} objects",
            ),
            (
                "Reference graph",
                self.graph_time,
                f"{self.value_edges + self.heap_edges + self.parent_edges} edges",
            ),
            ("Highlights", self.highlight_time, f"{self.steps} entries"),
        ]
        for name, t, output in stages:
            time_str = f"{t * 1000:>8.1f}ms"
            lines.append(f"  {name:<20} {time_str:>10}  {output:>30}")

        lines.append(f"  {'─' * 20} {'─' * 10}  {'─' * 30}")
        lines.append(f"  {'Total':<20} {self.total_time * 1000:>8.1f}ms")
        lines.append("")
        lines.append(
            f"  Edges: {self.value_edges} variable->object,"
            f" {self.heap_edges} object->object,"
            f" {self.parent_edges} frame->parent"
        )
        return "\n".join(lines)

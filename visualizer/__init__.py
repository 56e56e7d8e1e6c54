"""Execution trace visualizer core package."""

from .precompute import precompute  # noqa: F401
from .precompute_types import Language, VisualizerConfig  # noqa: F401
from .navigation import NavigationController  # noqa: F401
from .trace_decoder import (  # noqa: F401
    TraceDecodeError,
    decode_trace,
)
from .trace_types import TraceInvariantError  # noqa: F401

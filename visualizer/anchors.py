"""Anchor allocation — unique, addressable ids for edge endpoints."""

from __future__ import annotations

import re

from . import constants

_LEFT_BRACKETS = re.compile(r"[\[{(<]")
_RIGHT_BRACKETS = re.compile(r"[\]})>]")
_UNSAFE_CHARS = re.compile(r"[^0-9a-zA-Z_]")

_PUNCTUATION = (
    ("!", "_BANG_"),
    ("?", "_QUES_"),
    (":", "_COLON_"),
    ("=", "_EQ_"),
    (".", "_DOT_"),
    (" ", "_"),
)


def varname_to_css_id(varname: str) -> str:
    """Rewrite brackets and punctuation in a variable name so it can be part of an anchor."""
    result = _LEFT_BRACKETS.sub("LeftB_", varname)
    result = _RIGHT_BRACKETS.sub("_RightB", result)
    for char, replacement in _PUNCTUATION:
        result = result.replace(char, replacement)
    return result


class AnchorAllocator:
    """Mints anchors scoped to one visualizer instance.

    The pointer-source counter belongs to this allocator alone; it is reset at
    the start of every step so a step's anchors never depend on which steps
    were built before it.
    """

    def __init__(self, visualizer_id: int = 1, sanitize: bool = False):
        self.visualizer_id = visualizer_id
        self.sanitize = sanitize
        self._pointer_sources = 0

    def generate_id(self, original_id: str) -> str:
        if self.sanitize:
            original_id = _UNSAFE_CHARS.sub(lambda m: f"-{ord(m.group(0))}-", original_id)
        return constants.ANCHOR_TEMPLATE.format(
            visualizer_id=self.visualizer_id, original_id=original_id
        )

    def heap_object(self, object_id: int, step: int) -> str:
        return self.generate_id(
            constants.HEAP_OBJECT_ANCHOR.format(object_id=object_id, step=step)
        )

    def global_variable(self, varname: str) -> str:
        return self.generate_id(
            constants.GLOBAL_VAR_ANCHOR.format(varname=varname_to_css_id(varname))
        )

    def frame_variable(self, unique_hash: str, varname: str) -> str:
        return self.generate_id(
            varname_to_css_id(
                constants.FRAME_VAR_ANCHOR.format(unique_hash=unique_hash, varname=varname)
            )
        )

    def frame(self, index: int, zombie: bool = False) -> str:
        template = constants.ZOMBIE_FRAME_ANCHOR if zombie else constants.FRAME_ANCHOR
        return self.generate_id(template.format(index=index))

    def globals_root(self) -> str:
        return self.generate_id(constants.GLOBALS_ANCHOR)

    def next_pointer_source(self, step: int) -> str:
        self._pointer_sources += 1
        return self.generate_id(
            constants.HEAP_POINTER_SRC_ANCHOR.format(step=step, counter=self._pointer_sources)
        )

    def reset_pointer_sources(self) -> None:
        self._pointer_sources = 0

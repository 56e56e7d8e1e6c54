"""Named constants — eliminates magic strings across the codebase."""

from __future__ import annotations

# Encoded-value tags produced by the execution backend
REF_TAG = "REF"
SPECIAL_FLOAT_TAG = "SPECIAL_FLOAT"
JS_SPECIAL_VAL_TAG = "JS_SPECIAL_VAL"
C_DATA_TAG = "C_DATA"
C_STRUCT_TAG = "C_STRUCT"
C_ARRAY_TAG = "C_ARRAY"

LIST_TAG = "LIST"
TUPLE_TAG = "TUPLE"
SET_TAG = "SET"
DICT_TAG = "DICT"
INSTANCE_TAG = "INSTANCE"
CLASS_TAG = "CLASS"
FUNCTION_TAG = "FUNCTION"
JS_FUNCTION_TAG = "JS_FUNCTION"
INSTANCE_PPRINT_TAG = "INSTANCE_PPRINT"
HEAP_PRIMITIVE_TAG = "HEAP_PRIMITIVE"

# Java-specific tags
JAVA_VOID_TAG = "VOID"
JAVA_NUMBER_LITERAL_TAG = "NUMBER-LITERAL"
JAVA_CHAR_LITERAL_TAG = "CHAR-LITERAL"
JAVA_ELIDE_TAG = "ELIDE"
JAVA_STACK_TAG = "STACK"
JAVA_QUEUE_TAG = "QUEUE"

C_UNINITIALIZED = "<UNINITIALIZED>"
C_UNALLOCATED = "<UNALLOCATED>"
C_POINTER_TYPE = "pointer"

# Display
LAMBDA_FUNC_NAME = "<lambda>"
LAMBDA_DISPLAY_NAME = "\u03bb"

# Layout
ROW_KEY_PREFIX = "row"

# Anchor templates (all passed through AnchorAllocator.generate_id)
ANCHOR_TEMPLATE = "v{visualizer_id}__{original_id}"
HEAP_OBJECT_ANCHOR = "heap_object_{object_id}_s{step}"
HEAP_POINTER_SRC_ANCHOR = "heap_pointer_src_s{step}_{counter}"
GLOBAL_VAR_ANCHOR = "global__{varname}"
FRAME_VAR_ANCHOR = "{unique_hash}__{varname}"
FRAME_ANCHOR = "stack{index}"
ZOMBIE_FRAME_ANCHOR = "zombie_stack{index}"
GLOBALS_ANCHOR = "globals"

BREAKPOINT_COMMENT_MARKER = "breakpoint"

NO_BREAKPOINT = -1

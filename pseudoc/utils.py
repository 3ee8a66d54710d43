"""
Utility helpers for the pseudoc transpiler: terminal colouring, a JSON
encoder able to dump every stage artifact (syntax trees, IR, diagnostics)
and the recursion allowance the tree walks need for deeply nested input.
"""

import dataclasses
import json
import sys
from contextlib import contextmanager
from enum import Enum

from lark import Token
from pydantic import BaseModel

# Parser, transformer and generator each recurse several frames per block level.
FRAMES_PER_NESTING_LEVEL = 30


class TerminalColors:
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    CYAN = "\033[96m"
    RESET = "\033[0m"


class CompilerArtifactEncoder(json.JSONEncoder):
    def default(self, o):
        if isinstance(o, BaseModel):
            return o.model_dump(mode="json")
        if dataclasses.is_dataclass(o) and not isinstance(o, type):
            return {f.name: getattr(o, f.name) for f in dataclasses.fields(o)}
        if isinstance(o, Enum):
            return o.value
        if isinstance(o, Token):
            return o.value
        if isinstance(o, set):
            return sorted(o)
        return super().default(o)


@contextmanager
def recursion_headroom(nesting_depth: int):
    """Raises the interpreter recursion limit so walks `nesting_depth` blocks deep fit."""
    previous = sys.getrecursionlimit()
    sys.setrecursionlimit(previous + nesting_depth * FRAMES_PER_NESTING_LEVEL)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)

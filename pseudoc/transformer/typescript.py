from typing import Optional, Tuple

from pseudoc.config.config import INTEGER, METHOD_RESULT_TYPES, REAL, STRING, TYPESCRIPT_INPUT_CALLS, TYPESCRIPT_OUTPUT_CALLS
from pseudoc.parser.core.classes import ArrayLiteral, ASTNode, Call

from .base import BaseTransformer
from .indexing import dotted_name, int_literal
from .types import NormalizedType


class TypeScriptTransformer(BaseTransformer):
    """
    TypeScript and JavaScript rules: `prompt()`-style calls become INPUT and a
    `number` initialised with whole numbers is declared INTEGER.
    """

    language = "typescript"
    output_calls = TYPESCRIPT_OUTPUT_CALLS
    # Indexing a string yields a one-character string, not a CHAR.
    method_result_types = {**METHOD_RESULT_TYPES, "charAt": STRING}

    def _input_call(self, call: Call) -> Optional[Tuple[str, Optional[ASTNode]]]:
        if dotted_name(call.callee) in TYPESCRIPT_INPUT_CALLS:
            return STRING, call.args[0] if call.args else None
        return None

    def _refine_declared_type(self, declared: NormalizedType, init: Optional[ASTNode]) -> NormalizedType:
        if declared.base != REAL or declared.original not in ("number", "number[]", "Array<number>"):
            return declared
        if not declared.is_array and int_literal(init) is not None:
            return NormalizedType(INTEGER)
        if declared.is_array and isinstance(init, ArrayLiteral) and init.items and all(int_literal(i) is not None for i in init.items):
            return NormalizedType(INTEGER, declared.sizes)
        return declared

from typing import Optional, Tuple

from pseudoc.config.config import JAVA_INPUT_METHODS, JAVA_INPUT_SOURCE_TYPES, JAVA_INPUT_TYPES, JAVA_OUTPUT_CALLS
from pseudoc.parser.core.classes import ASTNode, Call, MemberAccess

from .base import BaseTransformer


class JavaTransformer(BaseTransformer):
    """
    Java rules on top of the shared ones: `Scanner`/`BufferedReader` reads
    become INPUT, and `/` between two integers is integer division (DIV).
    """

    language = "java"
    output_calls = JAVA_OUTPUT_CALLS
    input_source_types = JAVA_INPUT_SOURCE_TYPES
    integer_division = True

    def _input_call(self, call: Call) -> Optional[Tuple[str, Optional[ASTNode]]]:
        callee = call.callee
        if not isinstance(callee, MemberAccess) or callee.member not in JAVA_INPUT_METHODS or call.args:
            return None
        if self._is_input_source(callee.target):
            return JAVA_INPUT_TYPES[callee.member], None
        return None

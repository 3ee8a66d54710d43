import re
from typing import List, Optional

from pseudoc.config.config import MATH_FUNCTION_MAP, OPERATOR_PRECEDENCE, STRING_METHOD_MAP

from .ir import IRKind, IRNode, add_offset, function_call, subtract

TEMPLATE_OPERATOR = re.compile(r" (=|<>|<=|>=|<|>|&|\+|-|\*|/) ")


def template_precedence(template: str) -> Optional[int]:
    """The binding strength of the loosest operator outside parentheses, None for a plain call."""
    depth, outside = 0, []
    for char in template:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        outside.append(char if depth == 0 else "_")
    levels = [OPERATOR_PRECEDENCE[m.group(1)] for m in TEMPLATE_OPERATOR.finditer("".join(outside))]
    return min(levels) if levels else None


def map_string_method(name: str, target: IRNode, args: List[IRNode]) -> Optional[IRNode]:
    """
    Maps `target.name(args)` onto its pseudocode builtin, or returns None when
    the method is unknown or called with an unexpected number of arguments.
    Index arguments are shifted to 1-based positions here.
    """
    entry = STRING_METHOD_MAP.get(name)
    if entry is None or len(args) not in entry["arity"]:
        return None

    if name == "substring":
        start = args[0]
        if len(args) == 2:
            length = subtract(args[1], start)
        else:
            length = subtract(function_call("LENGTH", [target]), start)
        return function_call("SUBSTRING", [target, add_offset(start, 1), length], target.line)

    args = [add_offset(arg, 1) if i in entry.get("one_based_args", ()) else arg for i, arg in enumerate(args)]
    template = entry["template"]
    return IRNode(
        IRKind.BUILTIN_TEMPLATE,
        children=[target] + args,
        metadata={"name": name, "template": template, "precedence": template_precedence(template)},
        line=target.line,
    )


def map_math_function(name: str, args: List[IRNode]) -> Optional[IRNode]:
    """Maps `Math.name(args)`; `Math.floor(a / b)` becomes integer division."""
    builtin = MATH_FUNCTION_MAP.get(name)
    if builtin is None:
        return None
    if name == "floor" and len(args) == 1 and args[0].kind == IRKind.BINARY_OPERATION and args[0].metadata["op"] == "/":
        return function_call("DIV", list(args[0].children), args[0].line)
    return function_call(builtin, args)

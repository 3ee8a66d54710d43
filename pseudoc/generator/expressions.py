from typing import Callable, Dict

from pseudoc.config.config import OPERATOR_PRECEDENCE
from pseudoc.exceptions import InternalCompilerError
from pseudoc.transformer.ir import IRKind, IRNode

ATOMIC = 10
UNARY_MINUS = 8
COMPARISONS = {"=", "<>", "<", ">", "<=", ">="}
# A right operand at the same level needs parentheses under these operators.
NON_ASSOCIATIVE = {"-", "/", "MOD", "DIV"} | COMPARISONS
COMPARISON_LEVEL = OPERATOR_PRECEDENCE["="]


def precedence(node: IRNode) -> int:
    """Binding strength of the operator at the root of an expression."""
    if node.kind == IRKind.BINARY_OPERATION:
        return OPERATOR_PRECEDENCE.get(node.metadata["op"], COMPARISON_LEVEL)
    if node.kind == IRKind.UNARY_OPERATION:
        return OPERATOR_PRECEDENCE["NOT"] if node.metadata["op"] == "NOT" else UNARY_MINUS
    if node.kind == IRKind.BUILTIN_TEMPLATE:
        return node.metadata.get("precedence") or ATOMIC
    if node.kind == IRKind.CONDITIONAL:
        return 0
    return ATOMIC


class ExpressionRenderer:
    """Renders IR expression nodes as single-line pseudocode text."""

    def __init__(self):
        self._renderers: Dict[IRKind, Callable[[IRNode], str]] = {
            IRKind.LITERAL: lambda n: n.metadata["text"],
            IRKind.IDENTIFIER: lambda n: n.metadata["name"],
            IRKind.RAW: lambda n: n.metadata["text"],
            IRKind.BINARY_OPERATION: self._binary,
            IRKind.UNARY_OPERATION: self._unary,
            IRKind.FUNCTION_CALL: self._function_call,
            IRKind.METHOD_CALL: self._method_call,
            IRKind.BUILTIN_TEMPLATE: self._template,
            IRKind.MEMBER_ACCESS: self._member_access,
            IRKind.ARRAY_ACCESS: self._array_access,
            IRKind.ARRAY_LITERAL: lambda n: "[" + self._args(n.children) + "]",
            IRKind.CONDITIONAL: self._conditional,
            IRKind.NEW_OBJECT: lambda n: f"NEW {n.metadata['class_name']}({self._args(n.children)})",
        }

    def render(self, node: IRNode) -> str:
        renderer = self._renderers.get(node.kind)
        if renderer is None:
            raise InternalCompilerError(f"IR node of kind '{node.kind.value}' is not an expression.")
        return renderer(node)

    def _wrapped(self, node: IRNode, minimum: int) -> str:
        text = self.render(node)
        return f"({text})" if precedence(node) < minimum else text

    def _args(self, nodes) -> str:
        return ", ".join(self.render(n) for n in nodes)

    def _binary(self, node: IRNode) -> str:
        op = node.metadata["op"]
        level = precedence(node)
        left, right = node.children
        left_min = level + 1 if op in COMPARISONS else level
        right_min = level + 1 if op in NON_ASSOCIATIVE else level
        return f"{self._wrapped(left, left_min)} {op} {self._wrapped(right, right_min)}"

    def _unary(self, node: IRNode) -> str:
        op, operand = node.metadata["op"], node.children[0]
        if op == "NOT":
            return f"NOT {self._wrapped(operand, ATOMIC)}"
        return f"{op}{self._wrapped(operand, ATOMIC)}"

    def _function_call(self, node: IRNode) -> str:
        return f"{node.metadata['name']}({self._args(node.children)})"

    def _method_call(self, node: IRNode) -> str:
        target, args = node.children[0], node.children[1:]
        return f"{self._wrapped(target, ATOMIC)}.{node.metadata['name']}({self._args(args)})"

    def _template(self, node: IRNode) -> str:
        level = node.metadata.get("precedence")
        minimum = level + 1 if level else 0
        target, args = node.children[0], node.children[1:]
        return node.metadata["template"].format(*(self._wrapped(a, minimum) for a in args), target=self._wrapped(target, minimum))

    def _member_access(self, node: IRNode) -> str:
        return f"{self._wrapped(node.children[0], ATOMIC)}.{node.metadata['member']}"

    def _array_access(self, node: IRNode) -> str:
        target, index = node.children
        return f"{self._wrapped(target, ATOMIC)}[{self.render(index)}]"

    def _conditional(self, node: IRNode) -> str:
        condition, then_expr, else_expr = node.children
        return f"IF {self.render(condition)} THEN {self.render(then_expr)} ELSE {self.render(else_expr)}"


_DEFAULT_RENDERER = ExpressionRenderer()


def render_expression(node: IRNode) -> str:
    return _DEFAULT_RENDERER.render(node)

"""Renders syntax tree expressions back to source-like text for messages and comments."""

from pseudoc.parser.core.classes import ASTNode

BINARY_PRECEDENCE = {
    "??": 1,
    "||": 2,
    "&&": 3,
    "|": 4,
    "^": 5,
    "&": 6,
    "==": 7,
    "!=": 7,
    "===": 7,
    "!==": 7,
    "<": 8,
    ">": 8,
    "<=": 8,
    ">=": 8,
    "instanceof": 8,
    "+": 9,
    "-": 9,
    "*": 10,
    "/": 10,
    "%": 10,
    "**": 11,
}


def source_text(node: ASTNode) -> str:
    """Best-effort reconstruction of the source spelling of an expression."""
    kind = getattr(node, "kind", None)
    if kind == "number":
        return node.raw
    if kind == "string":
        return f'"{node.value}"'
    if kind == "char":
        return f"'{node.value}'"
    if kind == "boolean":
        return "true" if node.value else "false"
    if kind == "null":
        return "null"
    if kind == "template":
        parts = [p if isinstance(p, str) else "${" + source_text(p) + "}" for p in node.parts]
        return "`" + "".join(parts) + "`"
    if kind == "identifier":
        return node.name
    if kind == "member":
        return f"{source_text(node.target)}{'?.' if node.optional else '.'}{node.member}"
    if kind == "index":
        return f"{source_text(node.target)}[{source_text(node.index)}]"
    if kind == "call":
        return f"{source_text(node.callee)}({', '.join(source_text(a) for a in node.args)})"
    if kind == "new_object":
        return f"new {node.class_type.text}({', '.join(source_text(a) for a in node.args)})"
    if kind == "new_array":
        sizes = "".join(f"[{source_text(s)}]" for s in node.sizes)
        return f"new {node.element_type.text}{sizes}{'[]' * (node.dimensions - len(node.sizes))}"
    if kind == "array":
        return "[" + ", ".join(source_text(i) for i in node.items) + "]"
    if kind == "object":
        props = [p.key if p.value is None else f"{p.key}: {source_text(p.value)}" for p in node.properties]
        return "{ " + ", ".join(props) + " }"
    if kind == "binary":
        return f"{_operand(node.left, node.op, False)} {node.op} {_operand(node.right, node.op, True)}"
    if kind == "unary":
        separator = " " if node.op.isalpha() else ""
        return f"{node.op}{separator}{_operand(node.operand, '**', False)}"
    if kind == "update":
        return f"{node.op}{source_text(node.target)}" if node.prefix else f"{source_text(node.target)}{node.op}"
    if kind == "assignment":
        return f"{source_text(node.target)} {node.op} {source_text(node.value)}"
    if kind == "conditional":
        return f"{source_text(node.condition)} ? {source_text(node.then_expr)} : {source_text(node.else_expr)}"
    if kind == "cast":
        return f"({node.target_type.text}) {source_text(node.expression)}"
    if kind == "lambda":
        params = ", ".join(p.name for p in node.params)
        body = "{ ... }" if getattr(node.body, "kind", None) == "block" else source_text(node.body)
        return f"({params}) => {body}"
    if kind == "await":
        return f"await {source_text(node.expression)}"
    if kind == "spread":
        return f"...{source_text(node.expression)}"
    return kind or "?"


def _operand(node: ASTNode, parent_op: str, is_right: bool) -> str:
    text = source_text(node)
    if getattr(node, "kind", None) in ("binary", "conditional", "assignment"):
        child = BINARY_PRECEDENCE.get(getattr(node, "op", ""), 0)
        parent = BINARY_PRECEDENCE.get(parent_op, 0)
        if child < parent or (is_right and child == parent):
            return f"({text})"
    return text

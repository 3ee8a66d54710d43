"""
Defines the language-agnostic Intermediate Representation (IR) shared by the
Java and TypeScript transformers and consumed by the pseudocode generator.
Statement-level nodes keep their nested statements in `children`; the
expressions a statement needs (conditions, bounds, values) live in
`metadata` as expression nodes. Metadata is fully resolved: rendering never
needs a type or a scope lookup.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pseudoc.exceptions import Diagnostic


class IRCategory(str, Enum):
    PROGRAM = "program"
    STATEMENT = "statement"
    EXPRESSION = "expression"
    DECLARATION = "declaration"
    CONTROL_STRUCTURE = "control_structure"
    FUNCTION_LIKE = "function_like"


class IRKind(str, Enum):
    PROGRAM = "program"

    # --- Declarations ---
    VARIABLE_DECLARATION = "variable_declaration"
    CONSTANT_DECLARATION = "constant_declaration"
    CLASS_DECLARATION = "class_declaration"

    # --- Callables ---
    PROCEDURE = "procedure"
    FUNCTION = "function"

    # --- Control structures ---
    IF_STATEMENT = "if_statement"
    ELSE_IF_CLAUSE = "else_if_clause"
    ELSE_CLAUSE = "else_clause"
    WHILE_LOOP = "while_loop"
    FOR_LOOP = "for_loop"
    REPEAT_LOOP = "repeat_loop"
    CASE_STATEMENT = "case_statement"
    CASE_BRANCH = "case_branch"
    OTHERWISE_BRANCH = "otherwise_branch"

    # --- Simple statements ---
    ASSIGNMENT = "assignment"
    OUTPUT = "output"
    INPUT = "input"
    CALL = "call"
    RETURN = "return"
    EXPRESSION_STATEMENT = "expression_statement"
    COMMENT = "comment"
    UNPARSED = "unparsed"

    # --- Expressions ---
    LITERAL = "literal"
    IDENTIFIER = "identifier"
    BINARY_OPERATION = "binary_operation"
    UNARY_OPERATION = "unary_operation"
    FUNCTION_CALL = "function_call"
    METHOD_CALL = "method_call"
    BUILTIN_TEMPLATE = "builtin_template"
    MEMBER_ACCESS = "member_access"
    ARRAY_ACCESS = "array_access"
    ARRAY_LITERAL = "array_literal"
    CONDITIONAL = "conditional"
    NEW_OBJECT = "new_object"
    RAW = "raw"


KIND_CATEGORIES: Dict[IRKind, IRCategory] = {
    IRKind.PROGRAM: IRCategory.PROGRAM,
    IRKind.VARIABLE_DECLARATION: IRCategory.DECLARATION,
    IRKind.CONSTANT_DECLARATION: IRCategory.DECLARATION,
    IRKind.CLASS_DECLARATION: IRCategory.DECLARATION,
    IRKind.PROCEDURE: IRCategory.FUNCTION_LIKE,
    IRKind.FUNCTION: IRCategory.FUNCTION_LIKE,
    IRKind.IF_STATEMENT: IRCategory.CONTROL_STRUCTURE,
    IRKind.ELSE_IF_CLAUSE: IRCategory.CONTROL_STRUCTURE,
    IRKind.ELSE_CLAUSE: IRCategory.CONTROL_STRUCTURE,
    IRKind.WHILE_LOOP: IRCategory.CONTROL_STRUCTURE,
    IRKind.FOR_LOOP: IRCategory.CONTROL_STRUCTURE,
    IRKind.REPEAT_LOOP: IRCategory.CONTROL_STRUCTURE,
    IRKind.CASE_STATEMENT: IRCategory.CONTROL_STRUCTURE,
    IRKind.CASE_BRANCH: IRCategory.CONTROL_STRUCTURE,
    IRKind.OTHERWISE_BRANCH: IRCategory.CONTROL_STRUCTURE,
    IRKind.ASSIGNMENT: IRCategory.STATEMENT,
    IRKind.OUTPUT: IRCategory.STATEMENT,
    IRKind.INPUT: IRCategory.STATEMENT,
    IRKind.CALL: IRCategory.STATEMENT,
    IRKind.RETURN: IRCategory.STATEMENT,
    IRKind.EXPRESSION_STATEMENT: IRCategory.STATEMENT,
    IRKind.COMMENT: IRCategory.STATEMENT,
    IRKind.UNPARSED: IRCategory.STATEMENT,
    IRKind.LITERAL: IRCategory.EXPRESSION,
    IRKind.IDENTIFIER: IRCategory.EXPRESSION,
    IRKind.BINARY_OPERATION: IRCategory.EXPRESSION,
    IRKind.UNARY_OPERATION: IRCategory.EXPRESSION,
    IRKind.FUNCTION_CALL: IRCategory.EXPRESSION,
    IRKind.METHOD_CALL: IRCategory.EXPRESSION,
    IRKind.BUILTIN_TEMPLATE: IRCategory.EXPRESSION,
    IRKind.MEMBER_ACCESS: IRCategory.EXPRESSION,
    IRKind.ARRAY_ACCESS: IRCategory.EXPRESSION,
    IRKind.ARRAY_LITERAL: IRCategory.EXPRESSION,
    IRKind.CONDITIONAL: IRCategory.EXPRESSION,
    IRKind.NEW_OBJECT: IRCategory.EXPRESSION,
    IRKind.RAW: IRCategory.EXPRESSION,
}


@dataclass
class IRNode:
    """A single node of the IR tree."""

    kind: IRKind
    children: List["IRNode"] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)
    line: Optional[int] = None

    @property
    def category(self) -> IRCategory:
        return KIND_CATEGORIES[self.kind]

    @property
    def annotations(self) -> List[str]:
        return self.metadata.get("annotations", [])

    def annotate(self, text: str) -> "IRNode":
        self.metadata.setdefault("annotations", []).append(text)
        return self

    def walk(self):
        """Yields this node and every node below it, including expressions held in metadata."""
        yield self
        for child in self.children:
            yield from child.walk()
        for value in self.metadata.values():
            if isinstance(value, IRNode):
                yield from value.walk()
            elif isinstance(value, list):
                for item in value:
                    if isinstance(item, IRNode):
                        yield from item.walk()


@dataclass
class TransformResult:
    ir: IRNode
    diagnostics: List[Diagnostic] = field(default_factory=list)


# --- Expression constructors ---


def literal(text: str, value: Any = None, line: Optional[int] = None) -> IRNode:
    """A literal already spelled in pseudocode (`5`, `"abc"`, `TRUE`)."""
    return IRNode(IRKind.LITERAL, metadata={"text": text, "value": value}, line=line)


def number(value: int, line: Optional[int] = None) -> IRNode:
    return literal(str(value), value, line)


def identifier(name: str, declared: bool = True, line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.IDENTIFIER, metadata={"name": name, "declared": declared}, line=line)


def binary(op: str, left: IRNode, right: IRNode, line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.BINARY_OPERATION, children=[left, right], metadata={"op": op}, line=line)


def unary(op: str, operand: IRNode, line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.UNARY_OPERATION, children=[operand], metadata={"op": op}, line=line)


def function_call(name: str, args: List[IRNode], line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.FUNCTION_CALL, children=list(args), metadata={"name": name}, line=line)


def raw(text: str, line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.RAW, metadata={"text": text}, line=line)


def comment(text: str, annotation: bool = True, line: Optional[int] = None) -> IRNode:
    return IRNode(IRKind.COMMENT, metadata={"text": text, "annotation": annotation}, line=line)


def literal_int(node: Optional[IRNode]) -> Optional[int]:
    """Returns the integer value of an integer literal node, otherwise None."""
    if node is not None and node.kind == IRKind.LITERAL:
        value = node.metadata.get("value")
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def add_offset(expr: IRNode, offset: int) -> IRNode:
    """
    Returns `expr + offset` with constant folding: literals are folded and a
    trailing `- k` or `+ k` is merged, so `x - 1` plus one becomes `x`.
    """
    if offset == 0:
        return expr
    value = literal_int(expr)
    if value is not None:
        return number(value + offset, expr.line)
    if expr.kind == IRKind.BINARY_OPERATION and expr.metadata["op"] in ("+", "-"):
        right_value = literal_int(expr.children[1])
        if right_value is not None:
            signed = right_value if expr.metadata["op"] == "+" else -right_value
            return add_offset(expr.children[0], signed + offset)
    if offset > 0:
        return binary("+", expr, number(offset), expr.line)
    return binary("-", expr, number(-offset), expr.line)


def subtract(left: IRNode, right: IRNode) -> IRNode:
    """Returns `left - right`, folded when both sides are integer literals."""
    left_value, right_value = literal_int(left), literal_int(right)
    if left_value is not None and right_value is not None:
        return number(left_value - right_value, left.line)
    if right_value is not None:
        return add_offset(left, -right_value)
    return binary("-", left, right, left.line)

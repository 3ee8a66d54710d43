"""
Syntax tree analysis behind the 0-based to 1-based conversion: recognising
counting `for` loops and the collection-length bounds that let a loop be
shifted to run from 1 to LENGTH(collection).
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from pseudoc.config.config import JAVA_LENGTH_METHODS
from pseudoc.parser.core.classes import (
    Assignment,
    ASTNode,
    BinaryOp,
    Call,
    ClassDeclaration,
    ForStatement,
    FunctionDeclaration,
    Identifier,
    Lambda,
    MemberAccess,
    NumberLiteral,
    ReturnStatement,
    TypeRef,
    UnaryOp,
    UpdateExpression,
)

ASCENDING_COMPARISONS = {"<", "<="}
DESCENDING_COMPARISONS = {">", ">="}
FLIPPED_COMPARISONS = {"<": ">", ">": "<", "<=": ">=", ">=": "<="}


@dataclass
class CountingLoop:
    """A `for` loop of the form `var = start; var <op> bound; var += step`."""

    variable: str
    var_type: Optional[TypeRef]
    start: ASTNode
    comparison: str
    bound: ASTNode
    step: int

    @property
    def ascending(self) -> bool:
        return self.step > 0


def walk_ast(node) -> Iterator[ASTNode]:
    """Yields every syntax tree node below (and including) `node`."""
    if isinstance(node, ASTNode):
        yield node
        for name in type(node).model_fields:
            yield from walk_ast(getattr(node, name))
    elif isinstance(node, list):
        for item in node:
            yield from walk_ast(item)


def int_literal(node: Optional[ASTNode]) -> Optional[int]:
    if isinstance(node, NumberLiteral) and isinstance(node.value, int):
        return node.value
    if isinstance(node, UnaryOp) and node.op == "-":
        inner = int_literal(node.operand)
        return -inner if inner is not None else None
    return None


def length_target(node: ASTNode) -> Optional[ASTNode]:
    """Returns `x` for `x.length`, `x.length()` and `x.size()`, otherwise None."""
    if isinstance(node, MemberAccess) and node.member == "length":
        return node.target
    if isinstance(node, Call) and not node.args and isinstance(node.callee, MemberAccess) and node.callee.member in JAVA_LENGTH_METHODS:
        return node.callee.target
    return None


def split_length_bound(node: ASTNode) -> Optional[Tuple[ASTNode, int]]:
    """Splits `x.length`, `x.length - k` and `x.length + k` into the collection and the offset."""
    target = length_target(node)
    if target is not None:
        return target, 0
    if isinstance(node, BinaryOp) and node.op in ("+", "-"):
        offset = int_literal(node.right)
        target = length_target(node.left)
        if target is not None and offset is not None:
            return target, offset if node.op == "+" else -offset
    return None


def _is_variable(node: ASTNode, name: str) -> bool:
    return isinstance(node, Identifier) and node.name == name


def _update_step(node: ASTNode, name: str) -> Optional[int]:
    if isinstance(node, UpdateExpression) and _is_variable(node.target, name):
        return 1 if node.op == "++" else -1
    if isinstance(node, Assignment) and _is_variable(node.target, name):
        if node.op in ("+=", "-="):
            step = int_literal(node.value)
            if step:
                return step if node.op == "+=" else -step
        if node.op == "=" and isinstance(node.value, BinaryOp) and node.value.op in ("+", "-") and _is_variable(node.value.left, name):
            step = int_literal(node.value.right)
            if step:
                return step if node.value.op == "+" else -step
    return None


def assigns_variable(body: ASTNode, name: str) -> bool:
    """True when the loop body writes to `name` (outside nested lambdas)."""
    for node in walk_ast(body):
        if isinstance(node, Lambda):
            continue
        if isinstance(node, (Assignment, UpdateExpression)) and _is_variable(node.target, name):
            return True
    return False


def match_counting_loop(node: ForStatement) -> Optional[CountingLoop]:
    """Recognises a `for` loop that can be written as `FOR var ← start TO end [STEP s]`."""
    # --- Initialiser: exactly one variable ---
    var_type = None
    if node.init_declaration is not None:
        declarators = node.init_declaration.declarators
        if len(declarators) != 1 or declarators[0].initializer is None:
            return None
        name, start = declarators[0].name, declarators[0].initializer
        var_type = declarators[0].var_type or node.init_declaration.var_type
    elif len(node.init_expressions) == 1:
        init = node.init_expressions[0]
        if not (isinstance(init, Assignment) and init.op == "=" and isinstance(init.target, Identifier)):
            return None
        name, start = init.target.name, init.value
    else:
        return None

    # --- Condition: var compared against a bound ---
    condition = node.condition
    if not isinstance(condition, BinaryOp):
        return None
    if _is_variable(condition.left, name) and condition.op in FLIPPED_COMPARISONS:
        comparison, bound = condition.op, condition.right
    elif _is_variable(condition.right, name) and condition.op in FLIPPED_COMPARISONS:
        comparison, bound = FLIPPED_COMPARISONS[condition.op], condition.left
    else:
        return None
    if any(_is_variable(n, name) for n in walk_ast(bound)):
        return None

    # --- Update: a constant step in the direction of the bound ---
    if len(node.update) != 1:
        return None
    step = _update_step(node.update[0], name)
    if step is None:
        return None
    if (step > 0 and comparison not in ASCENDING_COMPARISONS) or (step < 0 and comparison not in DESCENDING_COMPARISONS):
        return None

    if assigns_variable(node.body, name):
        return None
    return CountingLoop(variable=name, var_type=var_type, start=start, comparison=comparison, bound=bound, step=step)


def contains_index_access(node: ASTNode) -> bool:
    return any(getattr(n, "kind", None) == "index" for n in walk_ast(node))


def iter_returns(node) -> Iterator[ReturnStatement]:
    """Yields the `return` statements of one callable body, skipping nested callables and classes."""
    if isinstance(node, ReturnStatement):
        yield node
    elif isinstance(node, (Lambda, FunctionDeclaration, ClassDeclaration)):
        return
    elif isinstance(node, ASTNode):
        for name in type(node).model_fields:
            yield from iter_returns(getattr(node, name))
    elif isinstance(node, list):
        for item in node:
            yield from iter_returns(item)


def dotted_name(node: ASTNode) -> Optional[str]:
    """`System.out.println` for the matching chain of member accesses, None for anything else."""
    if isinstance(node, Identifier):
        return node.name
    if isinstance(node, MemberAccess):
        prefix = dotted_name(node.target)
        return f"{prefix}.{node.member}" if prefix is not None else None
    return None


def is_self_reference(node: ASTNode) -> bool:
    return isinstance(node, Identifier) and node.name in ("this", "super")

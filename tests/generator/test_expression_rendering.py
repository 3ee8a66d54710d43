import pytest

from pseudoc import InternalCompilerError
from pseudoc.generator.expressions import render_expression
from pseudoc.transformer.ir import IRKind, IRNode, add_offset, binary, function_call, identifier, literal, number, subtract, unary

a, b, c = identifier("a"), identifier("b"), identifier("c")


@pytest.mark.parametrize(
    "node, expected",
    [
        pytest.param(binary("*", binary("+", a, b), c), "(a + b) * c", id="lower_precedence_left"),
        pytest.param(binary("+", a, binary("*", b, c)), "a + b * c", id="higher_precedence_right"),
        pytest.param(binary("-", a, binary("-", b, c)), "a - (b - c)", id="non_associative_right"),
        pytest.param(binary("-", binary("-", a, b), c), "a - b - c", id="left_associative"),
        pytest.param(binary("AND", binary("=", a, b), binary("<>", b, c)), "a = b AND b <> c", id="comparison_under_and"),
        pytest.param(binary("=", binary("<", a, b), literal("TRUE")), "(a < b) = TRUE", id="chained_comparison"),
        pytest.param(unary("NOT", binary("OR", a, b)), "NOT (a OR b)", id="not_wraps"),
        pytest.param(unary("-", binary("+", a, b)), "-(a + b)", id="negation_wraps"),
        pytest.param(binary("&", literal('"x"'), binary("+", a, number(1))), '"x" & a + 1', id="concatenation"),
    ],
)
def test_parentheses_follow_precedence(node, expected):
    assert render_expression(node) == expected


def test_array_access_and_calls():
    access = IRNode(IRKind.ARRAY_ACCESS, children=[IRNode(IRKind.ARRAY_ACCESS, children=[a, number(1)]), number(2)])
    assert render_expression(access) == "a[1][2]"
    assert render_expression(function_call("LENGTH", [a])) == "LENGTH(a)"
    method = IRNode(IRKind.METHOD_CALL, children=[a, number(1)], metadata={"name": "push"})
    assert render_expression(method) == "a.push(1)"


def test_conditional_and_new_object():
    conditional = IRNode(IRKind.CONDITIONAL, children=[a, number(1), number(2)])
    assert render_expression(conditional) == "IF a THEN 1 ELSE 2"
    created = IRNode(IRKind.NEW_OBJECT, children=[number(3)], metadata={"class_name": "Box"})
    assert render_expression(created) == "NEW Box(3)"


@pytest.mark.parametrize(
    "node, offset, expected",
    [
        pytest.param(number(0), 1, "1", id="literal_folds"),
        pytest.param(binary("-", a, number(1)), 1, "a", id="minus_one_cancels"),
        pytest.param(binary("+", a, number(2)), -1, "a + 1", id="merged_offset"),
        pytest.param(a, -1, "a - 1", id="new_subtraction"),
        pytest.param(a, 0, "a", id="zero_offset"),
    ],
)
def test_add_offset_folds_constants(node, offset, expected):
    assert render_expression(add_offset(node, offset)) == expected


def test_subtract_folds_literals():
    assert render_expression(subtract(number(7), number(3))) == "4"


def test_statement_nodes_are_not_expressions():
    with pytest.raises(InternalCompilerError):
        render_expression(IRNode(IRKind.OUTPUT, metadata={"items": []}))

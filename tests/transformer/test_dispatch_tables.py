import pytest

from pseudoc.generator.expressions import ExpressionRenderer
from pseudoc.generator.pseudocode_generator import LINE_ROLES
from pseudoc.parser.core.classes import EXPRESSION_CLASSES, STATEMENT_CLASSES
from pseudoc.transformer.base import BaseTransformer
from pseudoc.transformer.ir import KIND_CATEGORIES, IRCategory, IRKind
from pseudoc.transformer.java import JavaTransformer
from pseudoc.transformer.typescript import TypeScriptTransformer


def node_kinds(classes):
    return {cls.model_fields["kind"].default for cls in classes}


@pytest.mark.parametrize("transformer_class", [JavaTransformer, TypeScriptTransformer])
def test_every_statement_kind_has_a_handler(transformer_class):
    assert set(transformer_class()._statement_handlers) == node_kinds(STATEMENT_CLASSES)


@pytest.mark.parametrize("transformer_class", [JavaTransformer, TypeScriptTransformer])
def test_every_expression_kind_has_a_handler(transformer_class):
    assert set(transformer_class()._expression_handlers) == node_kinds(EXPRESSION_CLASSES)


def test_every_ir_kind_is_rendered_exactly_once():
    expression_kinds = set(ExpressionRenderer()._renderers)
    statement_kinds = set(LINE_ROLES)
    assert expression_kinds.isdisjoint(statement_kinds)
    assert expression_kinds | statement_kinds == set(IRKind)


def test_every_ir_kind_has_a_category():
    assert set(KIND_CATEGORIES) == set(IRKind)
    rendered_as_expression = set(ExpressionRenderer()._renderers)
    assert {k for k, c in KIND_CATEGORIES.items() if c == IRCategory.EXPRESSION} == rendered_as_expression


def test_base_transformer_has_no_language_tables():
    transformer = BaseTransformer()
    assert transformer.output_calls == set()
    assert transformer.input_source_types == set()
    assert not transformer.integer_division

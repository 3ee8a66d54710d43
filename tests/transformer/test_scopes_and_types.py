import pytest

from pseudoc import ErrorCode
from pseudoc.parser.core.classes import Span, TypeRef
from pseudoc.transformer import ir, symbol_table
from pseudoc.transformer.symbol_table import ParameterInfo, ScopeManager
from pseudoc.transformer.types import NormalizedType, combine_numeric, is_void, normalize_type, parse_type_text

SPAN = Span(s_line=1, s_col=1, e_line=1, e_col=1)


def type_ref(name, dimensions=0, args=(), form="simple"):
    return TypeRef(name=name, dimensions=dimensions, args=list(args), form=form, span=SPAN)


# --- 1. Scope manager ---


def test_lookup_walks_outward_and_inner_names_shadow():
    scopes = ScopeManager()
    scopes.declare_variable("x", "INTEGER")
    scopes.enter_scope("function")
    assert scopes.lookup_variable("x").normalized_type == "INTEGER"

    scopes.declare_variable("x", "STRING")
    assert scopes.lookup_variable("x").normalized_type == "STRING"
    assert scopes.depth == 1

    scopes.exit_scope()
    assert scopes.lookup_variable("x").normalized_type == "INTEGER"
    assert scopes.depth == 0


def test_inner_declarations_are_not_visible_outside():
    scopes = ScopeManager()
    scopes.enter_scope("block")
    scopes.declare_variable("tmp", "REAL")
    scopes.exit_scope()
    assert scopes.lookup_variable("tmp") is None


def test_exiting_the_global_scope_is_reported_not_raised():
    scopes = ScopeManager()
    scopes.exit_scope()
    assert scopes.depth == 0
    assert [d.code for d in scopes.diagnostics] == [ErrorCode.UNBALANCED_SCOPE_EXIT]


def test_callables_are_classified_by_return_type():
    scopes = ScopeManager()
    scopes.declare_callable("draw", [ParameterInfo("size", "INTEGER")])
    scopes.declare_callable("area", [], "REAL")
    assert scopes.lookup_callable("draw").is_procedure
    assert not scopes.lookup_callable("area").is_procedure
    assert scopes.lookup_callable("missing") is None


# --- 2. Type normalization ---


@pytest.mark.parametrize(
    "ref, language, expected",
    [
        pytest.param(type_ref("int"), "java", "INTEGER", id="java_int"),
        pytest.param(type_ref("double"), "java", "REAL", id="java_double"),
        pytest.param(type_ref("char"), "java", "CHAR", id="java_char"),
        pytest.param(type_ref("String", 1), "java", "ARRAY[1:n] OF STRING", id="java_array"),
        pytest.param(type_ref("int", 2), "java", "ARRAY[1:n] OF ARRAY[1:n] OF INTEGER", id="java_matrix"),
        pytest.param(type_ref("ArrayList", args=[type_ref("Integer")]), "java", "ARRAY[1:n] OF INTEGER", id="java_list"),
        pytest.param(type_ref("number"), "typescript", "REAL", id="ts_number"),
        pytest.param(type_ref("boolean", 1), "typescript", "ARRAY[1:n] OF BOOLEAN", id="ts_array"),
        pytest.param(type_ref("Array", args=[type_ref("string")]), "typescript", "ARRAY[1:n] OF STRING", id="ts_generic_array"),
        pytest.param(
            type_ref("string | undefined", args=[type_ref("string"), type_ref("undefined")], form="union"),
            "typescript",
            "STRING",
            id="ts_optional_union",
        ),
    ],
)
def test_known_types(ref, language, expected):
    normalized = normalize_type(ref, language)
    assert normalized.text == expected
    assert not normalized.fallback


@pytest.mark.parametrize(
    "ref, language",
    [
        pytest.param(type_ref("Scanner"), "java", id="java_class"),
        pytest.param(type_ref("Map", args=[type_ref("String"), type_ref("Integer")]), "java", id="java_map"),
        pytest.param(type_ref("any"), "typescript", id="ts_any"),
        pytest.param(type_ref("string | number", args=[type_ref("string"), type_ref("number")], form="union"), "typescript", id="ts_union"),
    ],
)
def test_unknown_types_fall_back_to_string(ref, language):
    normalized = normalize_type(ref, language)
    assert normalized.base == "STRING"
    assert normalized.fallback


def test_sizes_replace_placeholders():
    matrix = NormalizedType("INTEGER", ["n", "n"]).with_sizes(["3"])
    assert matrix.text == "ARRAY[1:3] OF ARRAY[1:n] OF INTEGER"
    assert matrix.element().text == "ARRAY[1:n] OF INTEGER"


def test_rendered_types_read_back():
    parsed = parse_type_text("ARRAY[1:5] OF ARRAY[1:n] OF CHAR")
    assert parsed.base == "CHAR"
    assert parsed.sizes == ["5", "n"]


@pytest.mark.parametrize(
    "left, right, expected",
    [("INTEGER", "INTEGER", "INTEGER"), ("INTEGER", "REAL", "REAL"), ("STRING", "INTEGER", "STRING"), (None, "REAL", "REAL"), (None, None, None)],
)
def test_numeric_combination(left, right, expected):
    assert combine_numeric(left, right) == expected


def test_void_types():
    assert is_void(None)
    assert is_void(type_ref("void"))
    assert not is_void(type_ref("int"))


def test_parameters_hide_fields_only_inside_a_class():
    scopes = ScopeManager()
    scopes.enter_scope("class")
    scopes.declare_variable("x", "INTEGER")
    scopes.enter_scope("function")
    assert not scopes.shadows_field("x")
    scopes.declare_variable("x", "INTEGER")
    assert scopes.shadows_field("x")
    scopes.enter_scope("block")
    assert scopes.shadows_field("x")
    assert not scopes.shadows_field("y")


def test_locals_outside_classes_hide_nothing():
    scopes = ScopeManager()
    scopes.enter_scope("function")
    scopes.declare_variable("x", "INTEGER")
    assert not scopes.shadows_field("x")


@pytest.mark.parametrize("module", [ir, symbol_table], ids=["ir", "symbol_table"])
def test_module_docstrings(module):
    assert module.__doc__ and module.__doc__.strip()

import logging

import pytest

from pseudoc import Diagnostic, ErrorCode, Severity, parse_java, parse_typescript
from pseudoc.parser.core.classes import (
    Assignment,
    BinaryOp,
    Call,
    ClassDeclaration,
    ForStatement,
    FunctionDeclaration,
    IfStatement,
    ImportDeclaration,
    IndexAccess,
    UnparsedStatement,
    VariableDeclaration,
)
from pseudoc.parser.utils.helpers import pre_parsing_checks, split_top_level_segments

# --- 1. Successful parses ---


def test_java_snippet_statements():
    result = parse_java("int x = 1;\nx = x + 2;\nif (x > 2) { x = 0; }")
    declaration, assignment, condition = (s for s in result.tree.body)

    assert isinstance(declaration, VariableDeclaration)
    assert declaration.declarators[0].name == "x"
    assert declaration.var_type.name == "int"

    assert isinstance(assignment.expression, Assignment)
    assert isinstance(assignment.expression.value, BinaryOp)
    assert isinstance(condition, IfStatement)
    assert result.diagnostics == []


def test_java_class_with_methods():
    source = """
    public class Main {
        public static void main(String[] args) {
            System.out.println("Hello");
        }
        static int twice(int n) { return n * 2; }
    }
    """
    tree = parse_java(source).tree
    (cls,) = tree.body
    assert isinstance(cls, ClassDeclaration)
    methods = [m for m in cls.members if isinstance(m, FunctionDeclaration)]
    assert [m.name for m in methods] == ["main", "twice"]
    assert methods[0].params[0].param_type.dimensions == 1
    assert "static" in methods[1].modifiers


def test_java_counting_loop_shape():
    (loop,) = parse_java("for (int i = 0; i < 10; i++) { sum += i; }").tree.body
    assert isinstance(loop, ForStatement)
    assert loop.init_declaration.declarators[0].name == "i"
    assert loop.condition.op == "<"
    assert loop.update[0].kind == "update"


def test_typescript_declarations_and_functions():
    source = """
    let total: number = 0;
    const names: string[] = ["a", "b"];
    function add(a: number, b: number): number {
        return a + b;
    }
    """
    result = parse_typescript(source)
    total, names, add = result.tree.body
    assert total.declaration_kind == "let"
    assert names.declaration_kind == "const"
    assert names.declarators[0].var_type.dimensions == 1
    assert isinstance(add, FunctionDeclaration)
    assert add.return_type.name == "number"


def test_nested_index_access():
    (statement,) = parse_typescript("grid[0][1] = 5;").tree.body
    target = statement.expression.target
    assert isinstance(target, IndexAccess)
    assert isinstance(target.target, IndexAccess)
    assert target.index.value == 1


def test_spans_are_one_based():
    (statement,) = parse_java("\n  print(1);").tree.body
    assert statement.span.s_line == 2
    assert statement.span.s_col == 3
    assert isinstance(statement.expression, Call)


def test_imports_are_lifted_out():
    tree = parse_java("import java.util.Scanner;\nint x = 1;").tree
    assert isinstance(tree.body[0], ImportDeclaration)
    assert tree.body[0].text == "import java.util.Scanner;"
    assert isinstance(tree.body[1], VariableDeclaration)


# --- 2. Empty and broken input ---


@pytest.mark.parametrize("parse", [parse_java, parse_typescript])
@pytest.mark.parametrize("source", ["", "   \n\t", "// only a comment\n"])
def test_empty_programs(parse, source):
    result = parse(source)
    assert [d.code for d in result.diagnostics] == [ErrorCode.EMPTY_PROGRAM]


@pytest.mark.parametrize(
    "source, language, expected_code",
    [
        pytest.param("int x = (1;", "java", ErrorCode.UNCLOSED_BRACKET, id="unclosed"),
        pytest.param("int x = 1);", "java", ErrorCode.UNMATCHED_BRACKET, id="unmatched"),
        pytest.param("int[] a = {1, 2);", "java", ErrorCode.MISMATCHED_BRACKET, id="mismatched"),
        pytest.param('String s = "abc;', "java", ErrorCode.UNTERMINATED_STRING, id="string"),
        pytest.param("char c = 'a;", "java", ErrorCode.UNTERMINATED_CHAR, id="char"),
        pytest.param("let t = `abc", "typescript", ErrorCode.UNTERMINATED_TEMPLATE, id="template"),
        pytest.param("/* never closed", "typescript", ErrorCode.UNTERMINATED_COMMENT, id="comment"),
    ],
)
def test_structural_checks(source, language, expected_code):
    _, diagnostics = pre_parsing_checks(source, language)
    assert expected_code in [d.code for d in diagnostics]
    assert all(d.severity == Severity.ERROR for d in diagnostics)


def test_brackets_inside_literals_and_comments_are_ignored():
    masked, diagnostics = pre_parsing_checks('String s = "(("; // )\n/* { */ int y = 2;', "java")
    assert diagnostics == []
    assert len(masked) == len('String s = "(("; // )\n/* { */ int y = 2;')


def test_structural_errors_are_recorded_on_the_program():
    result = parse_java("int a = 1;\nprint(a;\nint b = 2;")
    # The bracket check runs first; the failed statement adds its own syntax error.
    assert result.tree.structural_errors[0].startswith("ERROR[UNCLOSED_BRACKET] line 2")
    assert all(error.startswith("ERROR[") for error in result.tree.structural_errors)
    assert isinstance(result.tree.body[0], VariableDeclaration)
    assert isinstance(result.tree.body[-1], UnparsedStatement)


def test_one_bad_statement_does_not_lose_the_rest():
    result = parse_java("int a = 1;\nint = ;\nint b = 2;")
    kinds = [node.kind for node in result.tree.body]
    assert kinds == ["variable_declaration", "unparsed", "variable_declaration"]
    assert any(d.severity == Severity.ERROR for d in result.diagnostics)


def test_unsupported_features_are_warned_once_per_line():
    result = parse_typescript("const f = async () => { await g(); };")
    features = [d.message for d in result.diagnostics if d.code == ErrorCode.UNSUPPORTED_FEATURE]
    assert len(features) == 3
    assert all(d.severity == Severity.WARNING for d in result.diagnostics if d.code == ErrorCode.UNSUPPORTED_FEATURE)


def test_typescript_statements_split_on_newlines():
    source = "let a = 1\nlet b = a +\n  2\nprint(b)"
    segments = split_top_level_segments(source, "typescript")
    assert [source[s:e].strip() for s, e in segments] == ["let a = 1", "let b = a +\n  2", "print(b)"]


def test_unsupported_feature_messages_carry_the_suggestion():
    result = parse_java("import java.util.Scanner;\nint x = 1;")
    (feature,) = [d for d in result.diagnostics if d.code == ErrorCode.UNSUPPORTED_FEATURE]
    assert feature.message == "Import statements is not supported in IGCSE pseudocode. Remove the import; pseudocode has no libraries."
    assert feature.suggestion == "Remove the import; pseudocode has no libraries."
    assert feature.line == 1


def test_unsupported_feature_message_without_suggestion():
    diagnostic = Diagnostic.create(ErrorCode.UNSUPPORTED_FEATURE, feature="Goto")
    assert diagnostic.message == "Goto is not supported in IGCSE pseudocode."
    assert diagnostic.suggestion is None


def test_semicolon_terminated_statements_leave_no_empty_statements():
    source = "let x = 1;\nlet y = 2;\nif (x) {\n    y = 3;\n}"
    tree = parse_typescript(source).tree
    assert [node.kind for node in tree.body] == ["variable_declaration", "variable_declaration", "if"]
    assert [node.kind for node in tree.body[2].then_branch.statements] == ["expression_statement"]


def test_recovered_parse_failures_log_below_warning(caplog):
    with caplog.at_level(logging.DEBUG, logger="pseudoc"):
        result = parse_java("int a = 1;\nint = ;\nint b = 2;")
    assert any(d.severity == Severity.ERROR for d in result.diagnostics)
    assert [r for r in caplog.records if r.levelno >= logging.WARNING] == []

import re

import pytest

from pseudoc import ConversionOptions, ErrorCode, Severity, convert_code, convert_java, convert_typescript

# --- Helpers ---

BALANCED_PAIRS = [
    (r"IF .* THEN$", r"ENDIF$"),
    (r"WHILE .* DO$", r"ENDWHILE$"),
    (r"FOR .* TO .*", r"NEXT \w+$"),
    (r"REPEAT$", r"UNTIL .*"),
    (r"PROCEDURE \w+\(", r"ENDPROCEDURE$"),
    (r"FUNCTION \w+\(", r"ENDFUNCTION$"),
    (r"CASE OF .*", r"ENDCASE$"),
]


def no_comments() -> ConversionOptions:
    return ConversionOptions(include_annotation_comments=False)


def code_lines(text: str):
    """Non-comment lines with their indentation stripped."""
    return [line.strip() for line in text.splitlines() if line.strip() and not line.strip().startswith("//")]


def assert_balanced(text: str):
    lines = code_lines(text)
    for opener, closer in BALANCED_PAIRS:
        opened = sum(1 for line in lines if re.match(opener, line) and not line.startswith("ELSE IF"))
        closed = sum(1 for line in lines if re.match(closer, line))
        assert opened == closed, f"{opener} opened {opened} times but {closer} closed {closed} times"


# --- 1. Canonical scenarios ---


@pytest.mark.parametrize("language", ["java", "typescript"])
def test_counting_loop_scenario(language):
    result = convert_code("for (i = 0; i < 5; i++) { print(i); }", language)
    assert result.pseudocode == "FOR i ← 0 TO 4\n   OUTPUT i\nNEXT i\n"
    assert result.success


def test_empty_input_produces_empty_output_and_one_diagnostic():
    result = convert_java("")
    assert result.pseudocode == ""
    assert [d.code for d in result.diagnostics] == [ErrorCode.EMPTY_PROGRAM]
    assert result.diagnostics[0].severity == Severity.INFO
    assert result.success


def test_whitespace_only_input_is_an_empty_program():
    result = convert_typescript("   \n\n  ")
    assert result.pseudocode == ""
    assert [d.code for d in result.diagnostics] == [ErrorCode.EMPTY_PROGRAM]


def test_nested_array_indices_are_shifted_once():
    source = "int[][] grid = new int[3][3];\ngrid[0][1] = 7;"
    result = convert_java(source, no_comments())
    assert "grid[1][2] ← 7" in result.pseudocode.splitlines()
    assert "grid[2][3]" not in result.pseudocode


def test_nested_if_else_levels():
    source = """
    int x = 5;
    if (x > 3) {
        if (x > 4) {
            System.out.println("big");
        } else {
            System.out.println("medium");
        }
    } else {
        System.out.println("small");
    }
    """
    expected = (
        "DECLARE x : INTEGER\n"
        "x ← 5\n"
        "IF x > 3 THEN\n"
        "   IF x > 4 THEN\n"
        '      OUTPUT "big"\n'
        "   ELSE\n"
        '      OUTPUT "medium"\n'
        "   ENDIF\n"
        "ELSE\n"
        '   OUTPUT "small"\n'
        "ENDIF\n"
    )
    assert convert_java(source, no_comments()).pseudocode == expected


def test_switch_with_three_labels_and_default():
    source = """
    switch (day) {
        case 1: System.out.println("Mon"); break;
        case 2: System.out.println("Tue"); break;
        case 3: System.out.println("Wed"); break;
        default: System.out.println("Other");
    }
    """
    lines = convert_java(source, no_comments()).pseudocode.splitlines()
    assert lines[0] == "CASE OF day"
    assert lines.count("OTHERWISE") == 1
    assert lines.count("ENDCASE") == 1
    assert lines[-1] == "ENDCASE"

    # Each body sits strictly between its label and the next boundary.
    boundaries = [i for i, line in enumerate(lines) if line in ("1:", "2:", "3:", "OTHERWISE", "ENDCASE")]
    assert [lines[i] for i in boundaries] == ["1:", "2:", "3:", "OTHERWISE", "ENDCASE"]
    for start, end in zip(boundaries, boundaries[1:]):
        assert end - start == 2
        assert lines[start + 1].startswith("   OUTPUT ")


def test_procedure_and_function_classification():
    source = """
    static void greet(String name) {
        System.out.println("Hi " + name);
    }

    static int square(int n) {
        return n * n;
    }
    """
    expected = (
        "PROCEDURE greet(name : STRING)\n"
        '   OUTPUT "Hi ", name\n'
        "ENDPROCEDURE\n"
        "\n"
        "FUNCTION square(n : INTEGER) RETURNS INTEGER\n"
        "   RETURN n * n\n"
        "ENDFUNCTION\n"
    )
    assert convert_java(source, no_comments()).pseudocode == expected


def test_calls_use_call_for_procedures_only():
    source = """
    function show(n: number): void { console.log(n); }
    function twice(n: number): number { return n * 2; }
    show(3);
    let y = twice(4);
    """
    lines = code_lines(convert_typescript(source, no_comments()).pseudocode)
    assert "CALL show(3)" in lines
    assert "y ← twice(4)" in lines
    assert not any(line.startswith("CALL twice") for line in lines)


# --- 2. Structural invariants ---

PROGRAMS = [
    pytest.param(
        "java",
        """
        int total = 0;
        for (int i = 0; i < 10; i++) {
            if (i % 2 == 0) { total += i; } else if (i == 5) { total -= 1; } else { total = total; }
        }
        int k = 0;
        while (k < 3) { k++; }
        do { k--; } while (k > 0);
        """,
        id="java_loops_and_branches",
    ),
    pytest.param(
        "typescript",
        """
        function grade(score: number): string {
            if (score >= 90) { return "A"; }
            return "B";
        }
        function report(items: number[]): void {
            for (const item of items) { console.log(grade(item)); }
        }
        switch (mode) { case "a": report([1]); break; default: console.log("none"); }
        """,
        id="typescript_callables_and_switch",
    ),
]


@pytest.mark.parametrize("language, source", PROGRAMS)
def test_openers_and_closers_balance(language, source):
    assert_balanced(convert_code(source, language).pseudocode)


@pytest.mark.parametrize("language, source", PROGRAMS)
def test_output_layout_rules(language, source):
    text = convert_code(source, language, ConversionOptions(indent_width=4)).pseudocode
    assert text.endswith("\n") and not text.endswith("\n\n")
    assert "\n\n\n" not in text
    for line in text.splitlines():
        assert line == line.rstrip()
        indent = len(line) - len(line.lstrip(" "))
        assert indent % 4 == 0


@pytest.mark.parametrize("width", [0, -2])
def test_non_positive_indent_width_disables_indentation(width):
    result = convert_java("for (i = 0; i < 5; i++) { print(i); }", ConversionOptions(indent_width=width))
    assert result.pseudocode == "FOR i ← 0 TO 4\nOUTPUT i\nNEXT i\n"


# --- 3. Diagnostics and metadata ---


def test_structural_error_marker_and_recovery():
    source = "int a = 1;\nSystem.out.println(a;\nint b = 2;"
    result = convert_java(source)
    lines = result.pseudocode.splitlines()
    assert lines[0].startswith("// ERROR[UNCLOSED_BRACKET] line 2:")
    assert "DECLARE a : INTEGER" in lines
    assert "//   System.out.println(a;" in lines
    assert not result.success


def test_result_metadata_counts():
    result = convert_java("int x = 1;\nx = x + 1;\nSystem.out.println(x);", no_comments())
    assert result.metadata["language"] == "java"
    assert result.metadata["input_lines"] == 3
    assert result.metadata["output_lines"] == 4
    assert result.metadata["statement_count"] == 4
    assert set(result.metadata["diagnostic_counts"]) == {"error", "warning", "info"}


def test_unknown_type_falls_back_to_string():
    result = convert_java("Widget w = makeWidget();", no_comments())
    assert "DECLARE w : STRING" in result.pseudocode.splitlines()
    assert ErrorCode.TYPE_CONVERSION_FALLBACK in [d.code for d in result.diagnostics]


def test_annotation_comments_can_be_turned_off():
    source = "static void ping() { System.out.println(1); }"
    assert "// Static method" in convert_java(source).pseudocode
    assert "//" not in convert_java(source, no_comments()).pseudocode


def test_language_aliases():
    for alias in ("ts", "js", "javascript", "TypeScript"):
        assert convert_code("let a = 1;", alias).metadata["language"] == "typescript"


@pytest.mark.parametrize(
    "convert, source",
    [
        pytest.param(convert_typescript, "const f = (x: number) => x * 2;", id="arrow_function"),
        pytest.param(convert_java, "import java.util.Scanner;\nint x = 1;", id="import"),
        pytest.param(convert_java, "try { run(); } catch (Exception e) { }", id="try_catch"),
    ],
)
def test_unsupported_features_are_reported_not_fatal(convert, source):
    result = convert(source)
    features = [d for d in result.diagnostics if d.code == ErrorCode.UNSUPPORTED_FEATURE]
    assert features
    assert all(d.severity == Severity.WARNING and d.suggestion for d in features)
    assert result.success
    assert result.pseudocode


# --- 4. Deep nesting ---


def nested_ifs(depth: int) -> str:
    return "if (a) {\n" * depth + "x = 1;\n" + "}\n" * depth


def test_nesting_just_below_the_default_limit_converts():
    depth = 199
    result = convert_java(nested_ifs(depth), no_comments())
    lines = code_lines(result.pseudocode)
    assert lines.count("IF a THEN") == depth
    assert lines.count("ENDIF") == depth
    assert "x ← 1" in lines
    assert ErrorCode.NESTING_TOO_DEEP not in [d.code for d in result.diagnostics]


def test_nesting_past_the_default_limit_degrades_to_a_placeholder():
    result = convert_java(nested_ifs(210), no_comments())
    assert ErrorCode.NESTING_TOO_DEEP in [d.code for d in result.diagnostics]
    assert "// Code nested deeper than 200 levels was not converted" in [line.strip() for line in result.pseudocode.splitlines()]
    assert "x ← 1" not in code_lines(result.pseudocode)
    assert_balanced(result.pseudocode)

import pytest

from pseudoc import ConversionOptions, ErrorCode, convert_java, parse_java
from pseudoc.transformer.ir import IRKind
from pseudoc.transformer.java import JavaTransformer

# --- Helpers ---


def pseudocode_lines(source: str, **options):
    options.setdefault("include_annotation_comments", False)
    return convert_java(source, ConversionOptions(**options)).pseudocode.splitlines()


def transform(source: str, options=None):
    return JavaTransformer(options).transform(parse_java(source).tree)


def find_kind(node, kind):
    return [n for n in node.walk() if n.kind == kind]


# --- 1. Line-level rewrites ---

LINE_CASES = [
    pytest.param("final int MAX = 10;", ["CONSTANT MAX ← 10"], id="final_literal_is_constant"),
    pytest.param(
        "int[] nums = {4, 5, 6};",
        ["DECLARE nums : ARRAY[1:3] OF INTEGER", "nums[1] ← 4", "nums[2] ← 5", "nums[3] ← 6"],
        id="array_literal_assigned_per_element",
    ),
    pytest.param("int a = 7 / 2;", ["DECLARE a : INTEGER", "a ← DIV(7, 2)"], id="integer_division"),
    pytest.param("double r = 7.0 / 2;", ["DECLARE r : REAL", "r ← 7.0 / 2"], id="real_division"),
    pytest.param('String s = "ab";\nString msg = "Hi " + s;', ['msg ← "Hi " & s'], id="string_concatenation"),
    pytest.param("int x = 0;\nx += 5;", ["x ← x + 5"], id="compound_assignment"),
    pytest.param("int x = 0;\nx++;", ["x ← x + 1"], id="increment"),
    pytest.param("boolean ok = !(a == b);", ["ok ← NOT (a = b)"], id="not_and_equality"),
    pytest.param("int m = Math.max(a, b);", ["m ← MAX(a, b)"], id="math_max"),
    pytest.param("double d = 3.7;\nint n = (int) d;", ["n ← INT(d)"], id="cast_real_to_int"),
    pytest.param("char c = (char) 65;", ["c ← CHR(65)"], id="cast_int_to_char"),
    pytest.param('int v = Integer.parseInt("42");', ['v ← STR_TO_NUM("42")'], id="number_parsing"),
    pytest.param("int x = -(-5);", ["x ← 5"], id="negated_negative_literal"),
    pytest.param("double r = -(-2.5);", ["r ← 2.5"], id="negated_negative_real"),
]


@pytest.mark.parametrize("source, expected_lines", LINE_CASES)
def test_line_rewrites(source, expected_lines):
    lines = pseudocode_lines(source)
    for expected in expected_lines:
        assert expected in lines


@pytest.mark.parametrize(
    "call, expected",
    [
        pytest.param("s.length()", "LENGTH(s)", id="length"),
        pytest.param("s.charAt(0)", "MID(s, 1, 1)", id="char_at"),
        pytest.param("s.substring(1, 3)", "SUBSTRING(s, 2, 2)", id="substring"),
        pytest.param("s.toUpperCase()", "UCASE(s)", id="upper"),
        pytest.param("s.toLowerCase()", "LCASE(s)", id="lower"),
        pytest.param('s.indexOf("l")', 'FIND(s, "l") - 1', id="index_of"),
        pytest.param("s.trim()", "TRIM(s)", id="trim"),
        pytest.param('s.equals("x")', 's = "x"', id="equals"),
    ],
)
def test_string_methods(call, expected):
    lines = pseudocode_lines(f'String s = "hello";\nSystem.out.println({call});')
    assert lines[-1] == f"OUTPUT {expected}"


def test_unknown_method_passes_through_with_diagnostic():
    result = convert_java('String s = "a";\ns.intern();')
    assert "s.intern()" in result.pseudocode
    assert ErrorCode.NO_DIRECT_EQUIVALENT in [d.code for d in result.diagnostics]


def test_scanner_reads_become_input():
    source = """
    Scanner sc = new Scanner(System.in);
    int age = sc.nextInt();
    sc.close();
    """
    assert pseudocode_lines(source) == ["DECLARE age : INTEGER", "INPUT age"]


def test_input_source_note_is_an_annotation():
    lines = pseudocode_lines("Scanner sc = new Scanner(System.in);", include_annotation_comments=True)
    assert lines == ["// sc reads keyboard input; INPUT is used instead"]


# --- 2. Loops ---


def test_length_bounded_loop_counts_from_one():
    source = """
    int[] nums = {1, 2};
    for (int i = 0; i < nums.length; i++) {
        System.out.println(nums[i]);
    }
    """
    lines = pseudocode_lines(source)
    assert "FOR i ← 1 TO LENGTH(nums)" in lines
    assert "   OUTPUT nums[i]" in lines
    assert "NEXT i" in lines


def test_loop_with_step_and_descending_loop():
    lines = pseudocode_lines("for (int i = 0; i < 10; i += 2) { print(i); }\nfor (int j = 10; j > 0; j--) { print(j); }")
    assert "FOR i ← 0 TO 9 STEP 2" in lines
    assert "FOR j ← 10 TO 1 STEP -1" in lines


def test_non_counting_loop_becomes_while():
    result = convert_java("for (int i = 1; i < n; i *= 2) { print(i); }", ConversionOptions(include_annotation_comments=False))
    assert result.pseudocode.splitlines() == [
        "DECLARE i : INTEGER",
        "i ← 1",
        "WHILE i < n DO",
        "   OUTPUT i",
        "   i ← i * 2",
        "ENDWHILE",
    ]
    assert ErrorCode.NON_CANONICAL_FOR_LOOP in [d.code for d in result.diagnostics]


def test_do_while_becomes_repeat_until_not():
    lines = pseudocode_lines("int x = 3;\ndo { x--; } while (x > 0);")
    assert lines[-3:] == ["REPEAT", "   x ← x - 1", "UNTIL NOT (x > 0)"]


def test_break_inside_loop_becomes_comment():
    lines = pseudocode_lines("while (true) { break; }", include_annotation_comments=True)
    assert lines == ["WHILE TRUE DO", "   // Exit loop here (break)", "ENDWHILE"]


# --- 3. Conditionals, switch and operators ---


def test_ternary_assignment_expands_to_if():
    lines = pseudocode_lines("int m = a > b ? a : b;")
    assert lines == ["DECLARE m : INTEGER", "IF a > b THEN", "   m ← a", "ELSE", "   m ← b", "ENDIF"]


def test_else_if_chain():
    lines = pseudocode_lines("if (a) { x = 1; } else if (b) { x = 2; } else { x = 3; }")
    assert lines == ["IF a THEN", "   x ← 1", "ELSE IF b THEN", "   x ← 2", "ELSE", "   x ← 3", "ENDIF"]


def test_switch_fall_through_is_flagged():
    result = transform("switch (n) { case 1: x = 1; case 2: x = 2; break; default: x = 0; }")
    branches = find_kind(result.ir, IRKind.CASE_BRANCH)
    assert [b.metadata["falls_through"] for b in branches] == [True, False]
    assert "Falls through into case 2" in branches[0].annotations
    assert [d.code for d in result.diagnostics].count(ErrorCode.SWITCH_FALL_THROUGH) == 1


def test_default_branch_is_moved_last():
    lines = pseudocode_lines("switch (n) { default: x = 0; break; case 1: x = 1; break; }")
    assert lines == ["CASE OF n", "1:", "   x ← 1", "OTHERWISE", "   x ← 0", "ENDCASE"]


def test_moved_default_names_its_original_successor():
    result = transform("switch (n) { case 1: x = 1; break; default: x = 0; case 2: x = 2; break; }")
    (otherwise,) = find_kind(result.ir, IRKind.OTHERWISE_BRANCH)
    assert otherwise.metadata["falls_through"]
    assert "Falls through into case 2" in otherwise.annotations
    # OTHERWISE is rendered last even though it falls into case 2.
    assert [b.kind for b in find_kind(result.ir, IRKind.CASE_STATEMENT)[0].children][-1] == IRKind.OTHERWISE_BRANCH


def test_case_falling_into_default_names_otherwise():
    result = transform("switch (n) { case 1: x = 1; default: x = 0; }")
    (branch,) = find_kind(result.ir, IRKind.CASE_BRANCH)
    assert "Falls through into OTHERWISE" in branch.annotations


def test_bitwise_operator_on_integers_is_reported():
    result = transform("int x = 5 & 3;")
    simplified = [d.message for d in result.diagnostics if d.code == ErrorCode.CONSTRUCT_SIMPLIFIED]
    assert simplified == ["Bitwise operator '&' was simplified: rendered as the logical operator AND"]
    assert "x ← 5 AND 3" in pseudocode_lines("int x = 5 & 3;")


def test_non_short_circuit_operator_on_booleans_is_not_reported():
    result = transform("boolean a = true;\nboolean b = false;\nboolean c = a & b;")
    assert not [d for d in result.diagnostics if "Bitwise" in d.message]


# --- 4. Callables, classes and enums ---


def test_class_members_are_flattened():
    source = """
    class Counter {
        private int count = 0;
        public void increment() { count++; }
        public int get() { return this.count; }
    }
    """
    lines = pseudocode_lines(source)
    assert lines[0] == "// Counter class"
    for expected in ["DECLARE count : INTEGER", "PROCEDURE increment()", "   count ← count + 1", "FUNCTION get() RETURNS INTEGER", "   RETURN count"]:
        assert expected in lines


def test_field_hidden_by_a_parameter_keeps_its_object():
    source = """
    class Point {
        private int x;
        public Point(int x) { this.x = x; }
    }
    """
    lines = pseudocode_lines(source)
    assert "PROCEDURE Point(x : INTEGER)" in lines
    assert "   this.x ← x" in lines
    assert "   x ← x" not in lines
    annotated = convert_java(source).pseudocode.splitlines()
    assert "   // this.x is the field of Point, not the local x" in annotated


def test_enum_members_become_constants():
    assert pseudocode_lines("enum Color { RED, GREEN, BLUE }") == ["CONSTANT RED ← 0", "CONSTANT GREEN ← 1", "CONSTANT BLUE ← 2"]


def test_call_before_definition_is_classified():
    source = """
    static void main() { show(); int v = value(); }
    static void show() { print(1); }
    static int value() { return 2; }
    """
    lines = pseudocode_lines(source)
    assert "   CALL show()" in lines
    assert "   v ← value()" in lines


def test_throw_is_always_commented():
    lines = pseudocode_lines('throw new IllegalStateException("bad");')
    assert len(lines) == 1
    assert lines[0].startswith("// Raise error: new IllegalStateException(")


# --- 5. Limits ---


def test_nesting_limit_replaces_deep_blocks():
    source = "if (a) { if (b) { if (c) { x = 1; } } }"
    result = convert_java(source, ConversionOptions(max_nesting_depth=2))
    lines = result.pseudocode.splitlines()
    assert "         // Code nested deeper than 2 levels was not converted" in lines
    assert "x ← 1" not in result.pseudocode
    assert [line.strip() for line in lines].count("ENDIF") == 3
    assert ErrorCode.NESTING_TOO_DEEP in [d.code for d in result.diagnostics]

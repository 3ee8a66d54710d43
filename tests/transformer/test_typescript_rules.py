import pytest

from pseudoc import ConversionOptions, ErrorCode, convert_typescript, parse_typescript
from pseudoc.transformer.ir import IRKind
from pseudoc.transformer.typescript import TypeScriptTransformer


def pseudocode_lines(source: str, **options):
    options.setdefault("include_annotation_comments", False)
    return convert_typescript(source, ConversionOptions(**options)).pseudocode.splitlines()


@pytest.mark.parametrize(
    "source, expected_lines",
    [
        pytest.param("const PI = 3.14;", ["CONSTANT PI ← 3.14"], id="const_literal"),
        pytest.param("let n: number = 3;", ["DECLARE n : INTEGER", "n ← 3"], id="whole_number_is_integer"),
        pytest.param("let r: number = 2.5;", ["DECLARE r : REAL", "r ← 2.5"], id="fraction_is_real"),
        pytest.param("let q = 7 / 2;", ["DECLARE q : REAL", "q ← 7 / 2"], id="division_stays_real"),
        pytest.param("let p = 2 ** 3;", ["p ← POWER(2, 3)"], id="exponent"),
        pytest.param("let ok = a === b && c !== d;", ["ok ← a = b AND c <> d"], id="strict_equality"),
        pytest.param("let label = 'n=' + 4;", ["DECLARE label : STRING", 'label ← "n=" & 4'], id="concatenation"),
        pytest.param("let v = Math.floor(a / b);", ["v ← DIV(a, b)"], id="floor_division"),
        pytest.param("let t = parseInt(s);", ["DECLARE t : INTEGER", "t ← STR_TO_NUM(s)"], id="parse_int"),
        pytest.param("let u = undefined;", ["u ← NULL"], id="undefined_is_null"),
    ],
)
def test_line_rewrites(source, expected_lines):
    lines = pseudocode_lines(source)
    for expected in expected_lines:
        assert expected in lines


def test_prompt_becomes_output_and_input():
    assert pseudocode_lines('let name: string = prompt("Name?");') == ["DECLARE name : STRING", 'OUTPUT "Name?"', "INPUT name"]


def test_number_wrapped_prompt_is_typed():
    assert pseudocode_lines('let age = Number(prompt("Age?"));') == ["DECLARE age : REAL", 'OUTPUT "Age?"', "INPUT age"]


def test_template_literal_output_is_split():
    lines = pseudocode_lines('let name = "Ann";\nconsole.log(`Hello ${name}!`);')
    assert lines[-1] == 'OUTPUT "Hello ", name, "!"'


def test_template_literal_value_is_concatenated():
    lines = pseudocode_lines('let name = "Ann";\nlet msg = `Hi ${name}`;')
    assert lines[-1] == 'msg ← "Hi " & name'


def test_for_of_loop_uses_index():
    source = """
    const nums: number[] = [1, 2, 3];
    for (const n of nums) {
        console.log(n);
    }
    """
    lines = pseudocode_lines(source)
    assert lines[0] == "DECLARE nums : ARRAY[1:3] OF INTEGER"
    assert lines[-5:] == ["DECLARE n : INTEGER", "FOR i ← 1 TO LENGTH(nums)", "   n ← nums[i]", "   OUTPUT n", "NEXT i"]


def test_arrow_function_becomes_named_function():
    lines = pseudocode_lines("const add = (a: number, b: number) => a + b;")
    assert lines == ["FUNCTION add(a : REAL, b : REAL) RETURNS REAL", "   RETURN a + b", "ENDFUNCTION"]


def test_arrow_procedure_is_called_with_call():
    lines = pseudocode_lines("const hello = () => console.log(1);\nhello();")
    assert lines[0] == "PROCEDURE hello()"
    assert lines[-1] == "CALL hello()"


def test_untyped_return_is_inferred():
    lines = pseudocode_lines("function isAdult(age: number) { return age >= 18; }")
    assert lines[0] == "FUNCTION isAdult(age : REAL) RETURNS BOOLEAN"


def test_optional_parameters_are_annotated():
    lines = pseudocode_lines("function greet(name?: string): void { console.log(name); }", include_annotation_comments=True)
    assert lines[0] == "// Optional parameter name"
    assert lines[1] == "PROCEDURE greet(name : STRING)"


def test_union_with_null_reads_as_plain_type():
    assert "DECLARE s : STRING" in pseudocode_lines("let s: string | null = null;")


def test_unknown_type_falls_back_with_diagnostic():
    result = convert_typescript("let m: Map<string, number> = new Map();")
    assert "DECLARE m : STRING" in result.pseudocode
    assert ErrorCode.TYPE_CONVERSION_FALLBACK in [d.code for d in result.diagnostics]


def test_untyped_unknown_value_falls_back_to_string():
    result = convert_typescript("let thing = getThing();")
    assert "DECLARE thing : STRING" in result.pseudocode
    assert ErrorCode.TYPE_INFERENCE_FALLBACK in [d.code for d in result.diagnostics]


def test_interface_and_type_alias_are_comments():
    source = "interface Point { x: number; y: number; }\ntype Id = string;"
    lines = pseudocode_lines(source, include_annotation_comments=True)
    assert lines[0] == "// Interface Point"
    assert "// Type Id = string" in lines


def test_try_block_runs_inline():
    lines = pseudocode_lines("try { risky(); } catch (e) { console.log(e); }")
    assert lines == ["CALL risky()"]


def test_nullish_assignment_becomes_if():
    lines = pseudocode_lines("let x: number | null = null;\nx ??= 5;")
    assert lines[-3:] == ["IF x = NULL THEN", "   x ← 5", "ENDIF"]


def test_transformer_reports_language_in_metadata():
    result = TypeScriptTransformer().transform(parse_typescript("let a = 1;").tree)
    assert result.ir.kind == IRKind.PROGRAM
    assert result.ir.metadata["language"] == "typescript"
    assert result.ir.metadata["structural_errors"] == []

import pytest

from pseudoc import ConversionOptions, ErrorCode, PseudocError, convert_code, validate_input


def run_validation_with_error(source, expected_code: ErrorCode, options=None):
    """Asserts that validation raises a PseudocError with a specific code."""
    with pytest.raises(PseudocError) as excinfo:
        validate_input(source, options)
    assert excinfo.value.code == expected_code
    return excinfo.value


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("", id="empty"),
        pytest.param("int x = 1;\n\tx++;\r\n", id="ordinary_whitespace"),
        pytest.param("String s = \"héllo ✓\";", id="unicode"),
    ],
)
def test_valid_text_is_returned_unchanged(source):
    assert validate_input(source) is source


@pytest.mark.parametrize("source", [None, 42, b"int x = 1;"])
def test_non_text_input_is_rejected(source):
    error = run_validation_with_error(source, ErrorCode.INVALID_INPUT)
    assert type(source).__name__ in error.message


def test_oversized_input_is_rejected():
    options = ConversionOptions(max_input_size=16)
    error = run_validation_with_error("x" * 17, ErrorCode.INPUT_TOO_LARGE, options)
    assert error.details == {"size": 17, "limit": 16}


def test_size_is_measured_in_utf8_bytes():
    options = ConversionOptions(max_input_size=4)
    validate_input("abcd", options)
    run_validation_with_error("ééé", ErrorCode.INPUT_TOO_LARGE, options)


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("int x\x00 = 1;", id="nul_byte"),
        pytest.param("\x01\x02\x03\x04abc", id="control_characters"),
        pytest.param("bad \ud800 surrogate", id="lone_surrogate"),
    ],
)
def test_binary_looking_input_is_rejected(source):
    run_validation_with_error(source, ErrorCode.BINARY_CONTENT)


def test_pipeline_validates_before_parsing():
    with pytest.raises(PseudocError) as excinfo:
        convert_code("\x00\x00", "java")
    assert excinfo.value.code == ErrorCode.BINARY_CONTENT


def test_unknown_language_is_rejected():
    with pytest.raises(PseudocError) as excinfo:
        convert_code("x = 1", "cobol")
    assert excinfo.value.code == ErrorCode.UNKNOWN_LANGUAGE
    assert "cobol" in excinfo.value.message


@pytest.mark.parametrize("field", ["max_input_size", "max_nesting_depth"])
def test_limits_must_be_positive(field):
    with pytest.raises(ValueError):
        ConversionOptions(**{field: 0})

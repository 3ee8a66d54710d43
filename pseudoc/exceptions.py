"""
Diagnostic and exception types for the pseudoc transpiler.

Every stage of the conversion is total: problems found while parsing,
transforming or generating are collected as `Diagnostic` records instead of
being raised. Only the input validator raises (`PseudocError`), and
`InternalCompilerError` marks programmer errors.
"""

from enum import Enum
from typing import TYPE_CHECKING, Optional

from pydantic import BaseModel, field_serializer

if TYPE_CHECKING:
    from pseudoc.parser.core.classes import Span


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ErrorCode(Enum):

    # --- Structural Errors (parser) ---
    UNMATCHED_BRACKET = "Unmatched closing bracket '{char}'."
    MISMATCHED_BRACKET = "Mismatched bracket: expected '{expected}' but found '{char}'."
    UNCLOSED_BRACKET = "Bracket '{char}' opened here is never closed."
    UNTERMINATED_STRING = "Unterminated string literal."
    UNTERMINATED_CHAR = "Unterminated character literal."
    UNTERMINATED_TEMPLATE = "Unterminated template literal."
    UNTERMINATED_COMMENT = "Unterminated block comment."
    UNEXPECTED_TOKEN = "Invalid syntax. {details}"
    INVALID_CHARACTER = "Invalid character '{char}' found."
    PARSING_ERROR = "A general parsing error occurred. Details: {details}"
    EMPTY_PROGRAM = "The input contains zero statements."

    # --- Unsupported Features ---
    UNSUPPORTED_FEATURE = "{feature} is not supported in IGCSE pseudocode. {suggestion}"

    # --- Conversion ---
    TYPE_CONVERSION_FALLBACK = "Type '{type_name}' has no IGCSE equivalent; using STRING."
    TYPE_INFERENCE_FALLBACK = "Could not infer a type for '{name}'; using STRING."
    ARRAY_INDEX_CONVERSION = "Array index '{original}' converted to '{converted}' for 1-based indexing."
    ARRAY_INDEX_REVIEW = "Nested array index '{original}' may need manual review."
    LOOP_BOUND_CONVERSION = "Loop over '{name}' adjusted to 1-based bounds ({start} TO {end})."
    NON_CANONICAL_FOR_LOOP = "FOR loop over '{name}' cannot be expressed as a counting loop; converted to WHILE."
    NO_DIRECT_EQUIVALENT = "Method '{name}' has no direct IGCSE equivalent and was passed through unchanged."
    CONSTRUCT_SIMPLIFIED = "{construct} was simplified: {details}"
    INLINE_TERNARY = "Conditional expression inside '{context}' was kept inline; consider an IF statement."
    SWITCH_FALL_THROUGH = "Case '{label}' falls through to the next case; IGCSE CASE branches do not fall through."
    NESTING_TOO_DEEP = "Nesting deeper than {limit} levels was not converted."
    UNBALANCED_SCOPE_EXIT = "Attempted to exit the outermost scope."

    # --- Generation (strict mode) ---
    UNDECLARED_IDENTIFIER = "Identifier '{name}' is used but never declared."
    LINE_TOO_LONG = "Line {line_number} is {length} characters long (limit {limit})."
    PASS_THROUGH_CALL = "Call to '{name}' has no IGCSE equivalent."

    # --- Input Validation ---
    INVALID_INPUT = "Input must be a string, got {type_name}."
    INPUT_TOO_LARGE = "Input is {size} bytes, exceeding the {limit} byte limit."
    BINARY_CONTENT = "Input appears to contain binary data."
    UNKNOWN_LANGUAGE = "Unknown source language '{language}'. Expected 'java' or 'typescript'."


# Codes whose diagnostics mean the source could not be read as a complete program.
STRUCTURAL_ERROR_CODES = frozenset(
    {
        ErrorCode.UNMATCHED_BRACKET,
        ErrorCode.MISMATCHED_BRACKET,
        ErrorCode.UNCLOSED_BRACKET,
        ErrorCode.UNTERMINATED_STRING,
        ErrorCode.UNTERMINATED_CHAR,
        ErrorCode.UNTERMINATED_TEMPLATE,
        ErrorCode.UNTERMINATED_COMMENT,
        ErrorCode.UNEXPECTED_TOKEN,
        ErrorCode.INVALID_CHARACTER,
        ErrorCode.PARSING_ERROR,
    }
)


class Diagnostic(BaseModel):
    """A single non-fatal note produced by one of the conversion stages."""

    code: ErrorCode
    message: str
    severity: Severity
    line: Optional[int] = None
    column: Optional[int] = None
    suggestion: Optional[str] = None

    @field_serializer("code")
    def _serialize_code(self, code: ErrorCode) -> str:
        return code.name

    @classmethod
    def create(
        cls,
        code: ErrorCode,
        severity: Severity = Severity.WARNING,
        span: Optional["Span"] = None,
        line: Optional[int] = None,
        column: Optional[int] = None,
        suggestion: Optional[str] = None,
        **kwargs,
    ) -> "Diagnostic":
        if span is not None:
            line, column = span.s_line, span.s_col
        return cls(
            code=code,
            message=code.value.format(suggestion=suggestion or "", **kwargs).strip(),
            severity=severity,
            line=line,
            column=column,
            suggestion=suggestion,
        )

    @property
    def is_structural(self) -> bool:
        return self.code in STRUCTURAL_ERROR_CODES

    def __str__(self) -> str:
        location = f"line {self.line}: " if self.line is not None else ""
        return f"{self.severity.value.upper()}[{self.code.name}] {location}{self.message}"


class PseudocError(Exception):
    def __init__(
        self,
        code: ErrorCode,
        span: Optional["Span"] = None,
        file_path: Optional[str] = None,
        **kwargs,
    ):
        self.code = code
        self.span = span
        self.details = kwargs

        core_message = code.value.format(**kwargs)

        location_prefix = ""
        if span:
            location_prefix = f"Error in '{span.file_path or file_path or '<input>'}' (Line: {span.s_line}, Column: {span.s_col}):\n"
        elif file_path:
            location_prefix = f"Error in '{file_path}': "

        self.message = location_prefix + core_message

        super().__init__(self.message)


class InternalCompilerError(Exception):
    def __init__(self, message: str):
        super().__init__(message)

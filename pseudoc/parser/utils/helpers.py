import re
from typing import List, Tuple

from lark.exceptions import LarkError, UnexpectedCharacters, UnexpectedEOF, UnexpectedToken, VisitError

from pseudoc.exceptions import Diagnostic, ErrorCode, Severity

# --- Constants for the checks ---
BRACKET_PAIRS = {"(": ")", "[": "]", "{": "}"}
OPENING_BRACKETS = set(BRACKET_PAIRS.keys())
CLOSING_BRACKETS = set(BRACKET_PAIRS.values())

# Words that continue a statement after its closing brace (`} else {`, `} catch`).
BRACE_CONTINUATIONS = {"else", "catch", "finally"}


def pre_parsing_checks(source: str, language: str) -> Tuple[str, List[Diagnostic]]:
    """
    Scans the source once, character by character, to find structural problems
    the grammar would only report as a confusing syntax error:
    1. Mismatched, unmatched or unclosed brackets.
    2. Unterminated string, character and template literals.
    3. Unterminated block comments.

    Returns the source with comments and literal contents blanked out (same
    length, newlines kept) so later regex scans do not see them, together with
    the diagnostics found. Nothing is raised.
    """
    diagnostics: List[Diagnostic] = []
    masked = list(source)
    bracket_stack = []  # A stack of (char, line, column)

    line, col = 1, 1
    i, n = 0, len(source)

    def blank(start: int, end: int):
        for k in range(start, min(end, n)):
            if masked[k] != "\n":
                masked[k] = " "

    def advance(count: int):
        nonlocal i, line, col
        for _ in range(count):
            if i < n and source[i] == "\n":
                line += 1
                col = 1
            else:
                col += 1
            i += 1

    while i < n:
        char = source[i]
        pair = source[i : i + 2]

        # --- Comments ---
        if pair == "//":
            end = source.find("\n", i)
            end = n if end == -1 else end
            blank(i, end)
            advance(end - i)
            continue

        if pair == "/*":
            end = source.find("*/", i + 2)
            if end == -1:
                diagnostics.append(Diagnostic.create(ErrorCode.UNTERMINATED_COMMENT, Severity.ERROR, line=line, column=col))
                blank(i, n)
                advance(n - i)
                continue
            blank(i, end + 2)
            advance(end + 2 - i)
            continue

        # --- Literals ---
        if char == '"' or char == "'":
            start, s_line, s_col = i, line, col
            advance(1)
            terminated = False
            while i < n and source[i] != "\n":
                if source[i] == "\\":
                    advance(2)
                    continue
                if source[i] == char:
                    advance(1)
                    terminated = True
                    break
                advance(1)
            if not terminated:
                code = ErrorCode.UNTERMINATED_CHAR if (char == "'" and language == "java") else ErrorCode.UNTERMINATED_STRING
                diagnostics.append(Diagnostic.create(code, Severity.ERROR, line=s_line, column=s_col))
                blank(start, i)
            else:
                blank(start + 1, i - 1)
            continue

        if char == "`" and language == "typescript":
            start, s_line, s_col = i, line, col
            advance(1)
            terminated = False
            while i < n:
                if source[i] == "\\":
                    advance(2)
                    continue
                if source[i] == "`":
                    advance(1)
                    terminated = True
                    break
                advance(1)
            if not terminated:
                diagnostics.append(Diagnostic.create(ErrorCode.UNTERMINATED_TEMPLATE, Severity.ERROR, line=s_line, column=s_col))
                blank(start, i)
            else:
                blank(start + 1, i - 1)
            continue

        # --- Brackets ---
        if char in OPENING_BRACKETS:
            bracket_stack.append((char, line, col))
        elif char in CLOSING_BRACKETS:
            if not bracket_stack:
                diagnostics.append(Diagnostic.create(ErrorCode.UNMATCHED_BRACKET, Severity.ERROR, line=line, column=col, char=char))
            else:
                opening_char, _, _ = bracket_stack.pop()
                if BRACKET_PAIRS[opening_char] != char:
                    diagnostics.append(
                        Diagnostic.create(
                            ErrorCode.MISMATCHED_BRACKET,
                            Severity.ERROR,
                            line=line,
                            column=col,
                            expected=BRACKET_PAIRS[opening_char],
                            char=char,
                        )
                    )

        advance(1)

    for opening_char, b_line, b_col in bracket_stack:
        diagnostics.append(Diagnostic.create(ErrorCode.UNCLOSED_BRACKET, Severity.ERROR, line=b_line, column=b_col, char=opening_char))

    return "".join(masked), diagnostics


# --- Unsupported features ---
# (pattern, feature name, suggested alternative)
JAVA_UNSUPPORTED_PATTERNS = [
    (r"^[ \t]*import\b", "Import statements", "Remove the import; pseudocode has no libraries."),
    (r"^[ \t]*package\b", "Package declarations", "Remove the package declaration."),
    (r"\btry\s*[({]", "Exception handling (try/catch)", "Use IF statements to check for error conditions."),
    (r"\bthrow\b", "Throwing exceptions", "Use OUTPUT to report the error instead."),
    (r"\bsynchronized\b", "Synchronization", "Remove the synchronized modifier."),
    (r"\babstract\b", "Abstract classes and methods", "Write a concrete PROCEDURE or FUNCTION."),
    (r"\binterface\s+\w", "Interfaces", "Describe the required procedures in a comment."),
    (r"\benum\s+\w", "Enumerations", "Use CONSTANT declarations for each value."),
    (r"->", "Lambda expressions", "Write a named PROCEDURE or FUNCTION instead."),
    (r"\b[A-Z]\w*<[\w\s,<>?\[\].]*>", "Generic types", "Use a plain ARRAY of a single type."),
    (r"@[A-Za-z_]\w*", "Annotations", "Annotations are ignored."),
]

TYPESCRIPT_UNSUPPORTED_PATTERNS = [
    (r"^[ \t]*import\b", "Module imports", "Remove the import; pseudocode has no modules."),
    (r"^[ \t]*export\b", "Module exports", "Remove the export keyword."),
    (r"\basync\b", "Asynchronous functions", "Write a normal PROCEDURE or FUNCTION."),
    (r"\bawait\b", "Await expressions", "Call the procedure or function directly."),
    (r"\bPromise\b", "Promises", "Return the value directly from a FUNCTION."),
    (r"\binterface\s+\w", "Interfaces", "Describe the required fields in a comment."),
    (r"^[ \t]*(?:export\s+)?type\s+\w+\s*(?:<[^=\n]*>)?\s*=", "Type aliases", "Use the underlying type directly."),
    (r"\bnamespace\s+\w", "Namespaces", "Remove the namespace wrapper."),
    (r"\breadonly\b", "Readonly modifiers", "Use CONSTANT for values that never change."),
    (r"\benum\s+\w", "Enumerations", "Use CONSTANT declarations for each value."),
    (r"\?\?", "Nullish coalescing", "Use an IF statement to check for a missing value."),
    (r"\?\.", "Optional chaining", "Use an IF statement to check for a missing value."),
    (r"\bas\s+[A-Za-z_{(\[]", "Type assertions", "Remove the type assertion."),
    (r"\btry\s*\{", "Exception handling (try/catch)", "Use IF statements to check for error conditions."),
    (r"\bthrow\b", "Throwing exceptions", "Use OUTPUT to report the error instead."),
    (r"=>", "Arrow functions", "Write a named PROCEDURE or FUNCTION instead."),
    (r"\b(?!(?:Array|ReadonlyArray)\s*<)[A-Z]\w*<[\w\s,<>\[\]|.]*>", "Generic types", "Use a plain ARRAY of a single type."),
    (r"\bfunction\s+\w+\s*<", "Generic functions", "Use a single concrete type."),
    (r"@[A-Za-z_]\w*", "Decorators", "Decorators are ignored."),
]

UNSUPPORTED_PATTERNS = {
    "java": [(re.compile(p, re.MULTILINE), f, s) for p, f, s in JAVA_UNSUPPORTED_PATTERNS],
    "typescript": [(re.compile(p, re.MULTILINE), f, s) for p, f, s in TYPESCRIPT_UNSUPPORTED_PATTERNS],
}


def scan_unsupported_features(masked_source: str, language: str) -> List[Diagnostic]:
    """Flags constructs with no pseudocode equivalent. Reported once per feature and line."""
    diagnostics = []
    seen = set()
    for pattern, feature, suggestion in UNSUPPORTED_PATTERNS[language]:
        for match in pattern.finditer(masked_source):
            line = masked_source.count("\n", 0, match.start()) + 1
            if (feature, line) in seen:
                continue
            seen.add((feature, line))
            column = match.start() - masked_source.rfind("\n", 0, match.start())
            diagnostics.append(
                Diagnostic.create(
                    ErrorCode.UNSUPPORTED_FEATURE,
                    Severity.WARNING,
                    line=line,
                    column=column,
                    suggestion=suggestion,
                    feature=feature,
                )
            )
    diagnostics.sort(key=lambda d: (d.line, d.column))
    return diagnostics


# --- Imports ---
IMPORT_PATTERNS = {
    "java": [re.compile(r"^[ \t]*(?:import|package)\b[^;\n]*;?", re.MULTILINE)],
    "typescript": [
        re.compile(r"^[ \t]*import\b[^\"'`]*?[\"'][^\"'\n]*[\"'][ \t]*;?", re.MULTILINE),
        re.compile(r"^[ \t]*export\s*(?:\*|\{[^}]*\})(?:\s*from\s*[\"'][^\"'\n]*[\"'])?[ \t]*;?", re.MULTILINE),
    ],
}


def extract_imports(source: str, masked_source: str, language: str) -> Tuple[str, str, List[Tuple[str, int, int]]]:
    """
    Lifts import, package and re-export lines out of the source. They are
    matched on the masked text so string contents never trigger a match, and
    blanked in both texts so line and column numbers stay valid.

    Returns the cleaned source, the cleaned masked source and a list of
    (original text, line, column) for each import found.
    """
    found = []
    source_chars = list(source)
    masked_chars = list(masked_source)
    for pattern in IMPORT_PATTERNS[language]:
        for match in pattern.finditer(masked_source):
            start, end = match.start(), match.end()
            text = source[start:end].strip()
            if not text:
                continue
            leading = len(source[start:end]) - len(source[start:end].lstrip())
            line = source.count("\n", 0, start + leading) + 1
            column = start + leading - source.rfind("\n", 0, start + leading)
            found.append((text, line, column))
            for k in range(start, end):
                if source_chars[k] != "\n":
                    source_chars[k] = " "
                    masked_chars[k] = " "
    found.sort(key=lambda item: (item[1], item[2]))
    return "".join(source_chars), "".join(masked_chars), found


# --- Recovery ---
LINE_CONTINUATION_ENDINGS = tuple(",=+-*/%&|<>!?:.([{")
LINE_CONTINUATION_STARTS = tuple(".?:+-*/%&|=<>)]},(")


def split_top_level_segments(masked_source: str, language: str) -> List[Tuple[int, int]]:
    """
    Splits a source into top-level statements using the masked text, so
    brackets inside literals and comments are ignored. A statement ends at a
    `;` or a `}` at bracket depth zero; TypeScript statements may also end at
    a newline. Returns (start, end) offsets into the source.
    """
    segments = []
    depth = 0
    start = None
    n = len(masked_source)

    def next_word(pos: int) -> str:
        match = re.match(r"\s*([A-Za-z_]\w*|\S)?", masked_source[pos:])
        return match.group(1) or "" if match else ""

    for i, char in enumerate(masked_source):
        if start is None:
            if char.isspace():
                continue
            start = i

        if char in OPENING_BRACKETS:
            depth += 1
        elif char in CLOSING_BRACKETS:
            depth = max(0, depth - 1)
            if char == "}" and depth == 0:
                following = next_word(i + 1)
                opener = next_word(start)
                if following in BRACE_CONTINUATIONS or (following == "while" and opener == "do"):
                    continue
                if following and following in ";,.)":
                    continue
                segments.append((start, i + 1))
                start = None
        elif char == ";" and depth == 0:
            segments.append((start, i + 1))
            start = None
        elif char == "\n" and depth == 0 and language == "typescript":
            text = masked_source[start:i].rstrip()
            if not text or text.endswith(LINE_CONTINUATION_ENDINGS):
                continue
            following = next_word(i + 1)
            if following and (following.startswith(LINE_CONTINUATION_STARTS) or following in BRACE_CONTINUATIONS):
                continue
            segments.append((start, i))
            start = None

    if start is not None and masked_source[start:n].strip():
        segments.append((start, n))
    return segments


# A mapping from Lark's internal token names to friendly, human-readable names.
FRIENDLY_TOKEN_NAMES = {
    "NAME": "a name",
    "NUMBER": "a number",
    "STRING": "a string literal",
    "CHAR_LITERAL": "a character literal",
    "TEMPLATE": "a template literal",
    "SEMICOLON": "a semicolon ';'",
    "RSQB": "a closing bracket ']'",
    "LSQB": "an opening bracket '['",
    "RPAR": "a closing parenthesis ')'",
    "LPAR": "an opening parenthesis '('",
    "RBRACE": "a closing brace '}'",
    "LBRACE": "an opening brace '{'",
    "EQUAL": "an equals sign '='",
    "COMMA": "a comma ','",
    "COLON": "a colon ':'",
    "$END": "the end of the input",
}


def _translate_lark_error(err: LarkError) -> Diagnostic:
    """Translates a generic LarkError into a structural Diagnostic."""

    if isinstance(err, UnexpectedEOF):
        details = "Reached the end of the input while a statement was still open."
        return Diagnostic.create(ErrorCode.UNEXPECTED_TOKEN, Severity.ERROR, line=None, details=details)

    if isinstance(err, UnexpectedToken):
        expected_str = ""
        if err.expected:
            friendly_expected = sorted({FRIENDLY_TOKEN_NAMES.get(e, e) for e in err.expected})
            if len(friendly_expected) > 1:
                shown = friendly_expected[:6]
                expected_str = f"Expected one of: {', '.join(shown)}"
            elif friendly_expected:
                expected_str = f"Expected {friendly_expected[0]}"

        found_token = err.token
        found_str = f"but found '{found_token}' instead."
        if found_token.type == "$END":
            found_str = "but reached the end of the input instead."

        details = f"{expected_str}, {found_str}" if expected_str else f"Found unexpected token '{found_token}'."
        return Diagnostic.create(ErrorCode.UNEXPECTED_TOKEN, Severity.ERROR, line=err.line, column=err.column, details=details)

    if isinstance(err, UnexpectedCharacters):
        return Diagnostic.create(ErrorCode.INVALID_CHARACTER, Severity.ERROR, line=err.line, column=err.column, char=err.char)

    if isinstance(err, VisitError):
        return Diagnostic.create(ErrorCode.PARSING_ERROR, Severity.ERROR, details=str(err.orig_exc))

    # Fallback for any other Lark error
    return Diagnostic.create(ErrorCode.PARSING_ERROR, Severity.ERROR, line=getattr(err, "line", None), details=str(err))

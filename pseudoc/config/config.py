"""
Static configuration data for the pseudoc transpiler.
This includes operator mappings, type tables, the string method table and
the options accepted by the conversion pipeline.
"""

from typing import Literal

from pydantic import BaseModel, Field

SUPPORTED_LANGUAGES = ("java", "typescript")

LANGUAGE_ALIASES = {
    "java": "java",
    "typescript": "typescript",
    "ts": "typescript",
    "javascript": "typescript",
    "js": "typescript",
}

FILE_EXTENSIONS = {
    ".java": "java",
    ".ts": "typescript",
    ".tsx": "typescript",
    ".js": "typescript",
    ".mjs": "typescript",
}

ASSIGNMENT_ARROW = "←"

# --- Operators ---
COMPARISON_OPERATOR_MAP = {
    "==": "=",
    "===": "=",
    "!=": "<>",
    "!==": "<>",
    "<": "<",
    ">": ">",
    "<=": "<=",
    ">=": ">=",
}
LOGICAL_OPERATOR_MAP = {"&&": "AND", "||": "OR", "!": "NOT"}
MATH_OPERATOR_MAP = {"+": "+", "-": "-", "*": "*", "/": "/", "%": "MOD"}
# Bitwise operators have no pseudocode counterpart; the boolean forms are the closest reading.
BITWISE_OPERATOR_MAP = {"&": "AND", "|": "OR", "^": "XOR"}
COMPOUND_ASSIGNMENT_MAP = {"+=": "+", "-=": "-", "*=": "*", "/=": "/", "%=": "%"}

# Binding strength of the rendered pseudocode operators, used to decide where
# synthesized expressions need parentheses.
OPERATOR_PRECEDENCE = {
    "OR": 1,
    "AND": 2,
    "NOT": 3,
    "=": 4,
    "<>": 4,
    "<": 4,
    ">": 4,
    "<=": 4,
    ">=": 4,
    "&": 5,
    "+": 6,
    "-": 6,
    "*": 7,
    "/": 7,
    "MOD": 7,
    "DIV": 7,
    "XOR": 1,
}

# --- Types ---
INTEGER = "INTEGER"
REAL = "REAL"
STRING = "STRING"
CHAR = "CHAR"
BOOLEAN = "BOOLEAN"

JAVA_TYPE_MAP = {
    "int": INTEGER,
    "long": INTEGER,
    "short": INTEGER,
    "byte": INTEGER,
    "Integer": INTEGER,
    "Long": INTEGER,
    "Short": INTEGER,
    "Byte": INTEGER,
    "double": REAL,
    "float": REAL,
    "Double": REAL,
    "Float": REAL,
    "String": STRING,
    "char": CHAR,
    "Character": CHAR,
    "boolean": BOOLEAN,
    "Boolean": BOOLEAN,
}

TYPESCRIPT_TYPE_MAP = {
    "number": REAL,
    "string": STRING,
    "boolean": BOOLEAN,
    "Number": REAL,
    "String": STRING,
    "Boolean": BOOLEAN,
}

# Generic containers whose single type argument is the element type of an array.
JAVA_LIST_TYPES = {"List", "ArrayList", "LinkedList", "Vector"}
TYPESCRIPT_ARRAY_TYPES = {"Array", "ReadonlyArray"}

VOID_TYPES = {"void", "undefined", "never"}

# --- Methods ---
# Each entry renders one source method call as a pseudocode builtin. The
# template placeholders are `{target}` (the receiver) and `{0}`, `{1}`... for
# the arguments. Index arguments are shifted by the transformer before
# formatting, which is signalled by the `one_based_args` tuple.
STRING_METHOD_MAP = {
    "length": {"arity": (0,), "template": "LENGTH({target})"},
    "size": {"arity": (0,), "template": "LENGTH({target})"},
    "charAt": {"arity": (1,), "template": "MID({target}, {0}, 1)", "one_based_args": (0,)},
    "substring": {"arity": (1, 2), "template": None},
    "indexOf": {"arity": (1,), "template": "FIND({target}, {0}) - 1"},
    "toUpperCase": {"arity": (0,), "template": "UCASE({target})"},
    "toLowerCase": {"arity": (0,), "template": "LCASE({target})"},
    "concat": {"arity": (1,), "template": "{target} & {0}"},
    "contains": {"arity": (1,), "template": "FIND({target}, {0}) > 0"},
    "includes": {"arity": (1,), "template": "FIND({target}, {0}) > 0"},
    "startsWith": {"arity": (1,), "template": "LEFT({target}, LENGTH({0})) = {0}"},
    "endsWith": {"arity": (1,), "template": "RIGHT({target}, LENGTH({0})) = {0}"},
    "equals": {"arity": (1,), "template": "{target} = {0}"},
    "equalsIgnoreCase": {"arity": (1,), "template": "LCASE({target}) = LCASE({0})"},
    "isEmpty": {"arity": (0,), "template": "LENGTH({target}) = 0"},
    "trim": {"arity": (0,), "template": "TRIM({target})"},
    "replace": {"arity": (2,), "template": "REPLACE({target}, {0}, {1})"},
}

# Static helpers of the Math object/class with a direct pseudocode builtin.
MATH_FUNCTION_MAP = {
    "round": "ROUND",
    "abs": "ABS",
    "sqrt": "SQRT",
    "pow": "POWER",
    "max": "MAX",
    "min": "MIN",
    "random": "RANDOM",
    "ceil": "CEILING",
    "floor": "INT",
}

JAVA_OUTPUT_CALLS = {"System.out.println", "System.out.print", "System.out.printf", "System.err.println", "print", "println"}
TYPESCRIPT_OUTPUT_CALLS = {"console.log", "console.info", "console.error", "console.warn", "print", "alert"}

JAVA_INPUT_METHODS = {"nextInt", "nextLine", "next", "nextDouble", "nextFloat", "nextLong", "nextBoolean", "readLine"}
JAVA_INPUT_SOURCE_TYPES = {"Scanner", "BufferedReader", "Console"}
TYPESCRIPT_INPUT_CALLS = {"prompt", "readline", "readLine", "input"}

JAVA_INPUT_TYPES = {
    "nextInt": INTEGER,
    "nextLong": INTEGER,
    "nextDouble": REAL,
    "nextFloat": REAL,
    "nextBoolean": BOOLEAN,
    "next": STRING,
    "nextLine": STRING,
    "readLine": STRING,
}

JAVA_LENGTH_METHODS = {"length", "size"}

# Result types of the mapped methods, used when inferring untyped declarations.
METHOD_RESULT_TYPES = {
    "length": INTEGER,
    "size": INTEGER,
    "charAt": CHAR,
    "substring": STRING,
    "indexOf": INTEGER,
    "toUpperCase": STRING,
    "toLowerCase": STRING,
    "concat": STRING,
    "contains": BOOLEAN,
    "includes": BOOLEAN,
    "startsWith": BOOLEAN,
    "endsWith": BOOLEAN,
    "equals": BOOLEAN,
    "equalsIgnoreCase": BOOLEAN,
    "isEmpty": BOOLEAN,
    "trim": STRING,
    "replace": STRING,
    "toString": STRING,
}
MATH_RESULT_TYPES = {"round": INTEGER, "floor": INTEGER, "ceil": INTEGER, "sqrt": REAL, "pow": REAL, "random": REAL}

# Text-to-number conversions, rendered with the STR_TO_NUM builtin.
NUMBER_PARSERS = {
    "Integer.parseInt": INTEGER,
    "Integer.valueOf": INTEGER,
    "Long.parseLong": INTEGER,
    "Double.parseDouble": REAL,
    "Float.parseFloat": REAL,
    "parseInt": INTEGER,
    "Number.parseInt": INTEGER,
    "parseFloat": REAL,
    "Number.parseFloat": REAL,
    "Number": REAL,
}

# Names that are always in scope and never reported as undeclared.
BUILTIN_GLOBALS = {
    "Math",
    "System",
    "console",
    "String",
    "Integer",
    "Double",
    "Long",
    "Float",
    "Character",
    "Boolean",
    "Arrays",
    "Collections",
    "Objects",
    "Number",
    "Array",
    "Object",
    "JSON",
    "Date",
    "NaN",
    "Infinity",
    "window",
    "document",
    "process",
}

# --- Generation defaults ---
DEFAULT_INDENT_WIDTH = 3
DEFAULT_MAX_LINE_LENGTH = 80
MAX_NESTING_DEPTH = 200
MAX_INPUT_SIZE = 1024 * 1024


class ConversionOptions(BaseModel):
    """Options accepted by the conversion pipeline and the generator."""

    indent_width: int = DEFAULT_INDENT_WIDTH
    include_annotation_comments: bool = True
    strictness: Literal["permissive", "strict"] = "permissive"
    max_line_length: int = DEFAULT_MAX_LINE_LENGTH
    max_input_size: int = Field(default=MAX_INPUT_SIZE, gt=0)
    max_nesting_depth: int = Field(default=MAX_NESTING_DEPTH, gt=0)

    @property
    def is_strict(self) -> bool:
        return self.strictness == "strict"

from dataclasses import dataclass, field
from typing import List, Optional

from pseudoc.config.config import (
    BOOLEAN,
    CHAR,
    INTEGER,
    JAVA_LIST_TYPES,
    JAVA_TYPE_MAP,
    REAL,
    STRING,
    TYPESCRIPT_ARRAY_TYPES,
    TYPESCRIPT_TYPE_MAP,
    VOID_TYPES,
)
from pseudoc.parser.core.classes import TypeRef

SCALAR_TYPES = (INTEGER, REAL, STRING, CHAR, BOOLEAN)


@dataclass
class NormalizedType:
    """
    A type in the pseudocode vocabulary. `sizes` holds one entry per array
    dimension, outermost first (`"5"`, `"n"`); an empty list is a scalar.
    `fallback` marks types that had no precise equivalent.
    """

    base: str
    sizes: List[str] = field(default_factory=list)
    fallback: bool = False
    original: str = ""

    @property
    def is_array(self) -> bool:
        return bool(self.sizes)

    @property
    def text(self) -> str:
        rendered = self.base
        for size in reversed(self.sizes):
            rendered = f"ARRAY[1:{size}] OF {rendered}"
        return rendered

    def element(self) -> "NormalizedType":
        return NormalizedType(self.base, self.sizes[1:], self.fallback, self.original)

    def with_sizes(self, sizes: List[str]) -> "NormalizedType":
        """Replaces the placeholder sizes with known ones, keeping the dimension count."""
        merged = list(sizes[: len(self.sizes)]) + self.sizes[len(sizes) :]
        return NormalizedType(self.base, merged, self.fallback, self.original)


def is_void(type_ref: Optional[TypeRef]) -> bool:
    return type_ref is None or (type_ref.form == "simple" and type_ref.name in VOID_TYPES and not type_ref.dimensions)


def normalize_type(type_ref: TypeRef, language: str) -> NormalizedType:
    """Maps a source type onto INTEGER, REAL, STRING, CHAR, BOOLEAN or an array of one of them."""
    if language == "java":
        base, dims = _normalize_java(type_ref)
    else:
        base, dims = _normalize_typescript(type_ref)

    if base is None:
        return NormalizedType(STRING, ["n"] * type_ref.dimensions, fallback=True, original=type_ref.text)
    return NormalizedType(base.base, ["n"] * dims + base.sizes, base.fallback, base.original or type_ref.text)


def _normalize_java(type_ref: TypeRef):
    if type_ref.form != "simple":
        return None, 0
    if type_ref.name in JAVA_TYPE_MAP and not type_ref.args:
        return NormalizedType(JAVA_TYPE_MAP[type_ref.name]), type_ref.dimensions
    short_name = type_ref.name.rsplit(".", 1)[-1]
    if short_name in JAVA_LIST_TYPES and len(type_ref.args) == 1:
        return normalize_type(type_ref.args[0], "java"), type_ref.dimensions + 1
    return None, 0


def _normalize_typescript(type_ref: TypeRef):
    if type_ref.form == "union":
        # `T | null` and `T | undefined` read as plain T.
        concrete = [a for a in type_ref.args if a.name not in ("null", "undefined")]
        if len(concrete) == 1:
            inner = normalize_type(concrete[0], "typescript")
            if not inner.fallback:
                return inner, type_ref.dimensions
        return None, 0
    if type_ref.form != "simple":
        return None, 0
    if type_ref.name in TYPESCRIPT_TYPE_MAP and not type_ref.args:
        return NormalizedType(TYPESCRIPT_TYPE_MAP[type_ref.name]), type_ref.dimensions
    if type_ref.name in TYPESCRIPT_ARRAY_TYPES and len(type_ref.args) == 1:
        return normalize_type(type_ref.args[0], "typescript"), type_ref.dimensions + 1
    return None, 0


def literal_type(kind: str, value=None) -> Optional[str]:
    """The pseudocode type of a literal node kind, or None when it says nothing."""
    if kind == "number":
        return INTEGER if isinstance(value, int) else REAL
    return {"string": STRING, "template": STRING, "char": CHAR, "boolean": BOOLEAN}.get(kind)


def combine_numeric(left: Optional[str], right: Optional[str]) -> Optional[str]:
    """Result type of an arithmetic operator applied to two operand types."""
    if left == STRING or right == STRING:
        return STRING
    if left == REAL or right == REAL:
        return REAL
    if left == INTEGER and right == INTEGER:
        return INTEGER
    return left or right


def parse_type_text(text: str) -> NormalizedType:
    """Reads a rendered type such as `ARRAY[1:n] OF INTEGER` back into a NormalizedType."""
    sizes = []
    while text.startswith("ARRAY[1:"):
        size, text = text[len("ARRAY[1:") :].split("] OF ", 1)
        sizes.append(size)
    return NormalizedType(text, sizes)

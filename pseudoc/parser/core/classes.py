"""
Defines the formal data structures (contracts) for the syntax tree produced by
the Java and TypeScript parsers.

Both languages share one closed family of node classes. Each node is a pydantic
model carrying a `kind` literal, used by later stages to dispatch, and a `Span`
object tracking its location in the source code.
"""

from typing import List, Literal, Optional, Union

from pydantic import BaseModel

from pseudoc.exceptions import Diagnostic

# --- Core Data Structures ---


class Span(BaseModel):
    """Represents a location in the source code for precise error reporting."""

    s_line: int
    s_col: int
    e_line: int
    e_col: int
    file_path: Optional[str] = None


class ASTNode(BaseModel):
    """A base class for all syntax tree nodes, ensuring they have a span."""

    span: Span


class TypeRef(ASTNode):
    """
    A type as written in the source. `name` is the base spelling (`int`,
    `List`, `number`), `args` holds generic arguments and `dimensions` counts
    trailing `[]` pairs. Types without a simple name (unions, function types,
    object types) use `form` to say so and keep their spelling in `name`.
    """

    kind: Literal["type"] = "type"
    name: str
    args: List["TypeRef"] = []
    dimensions: int = 0
    form: Literal["simple", "union", "intersection", "function", "object", "tuple", "literal"] = "simple"

    @property
    def text(self) -> str:
        base = self.name
        if self.args and self.form == "simple":
            base += "<" + ", ".join(a.text for a in self.args) + ">"
        return base + "[]" * self.dimensions


# --- Literals and Identifiers ---


class NumberLiteral(ASTNode):
    kind: Literal["number"] = "number"
    value: Union[int, float]
    raw: str


class StringLiteral(ASTNode):
    kind: Literal["string"] = "string"
    value: str


class CharLiteral(ASTNode):
    kind: Literal["char"] = "char"
    value: str


class BooleanLiteral(ASTNode):
    kind: Literal["boolean"] = "boolean"
    value: bool


class NullLiteral(ASTNode):
    kind: Literal["null"] = "null"


class TemplateLiteral(ASTNode):
    """A backtick string; `parts` alternates raw text and interpolated expressions."""

    kind: Literal["template"] = "template"
    parts: List[Union[str, "Expression"]]


class Identifier(ASTNode):
    kind: Literal["identifier"] = "identifier"
    name: str


# --- Expressions ---
# A generic type hint for any expression node
Expression = Union[
    NumberLiteral,
    StringLiteral,
    CharLiteral,
    BooleanLiteral,
    NullLiteral,
    TemplateLiteral,
    Identifier,
    "MemberAccess",
    "IndexAccess",
    "Call",
    "NewObject",
    "NewArray",
    "ArrayLiteral",
    "ObjectLiteral",
    "BinaryOp",
    "UnaryOp",
    "UpdateExpression",
    "Assignment",
    "ConditionalExpression",
    "Cast",
    "Lambda",
    "AwaitExpression",
    "SpreadElement",
]


class MemberAccess(ASTNode):
    kind: Literal["member"] = "member"
    target: Expression
    member: str
    optional: bool = False


class IndexAccess(ASTNode):
    kind: Literal["index"] = "index"
    target: Expression
    index: Expression


class Call(ASTNode):
    kind: Literal["call"] = "call"
    callee: Expression
    args: List[Expression]


class NewObject(ASTNode):
    kind: Literal["new_object"] = "new_object"
    class_type: TypeRef
    args: List[Expression]


class NewArray(ASTNode):
    kind: Literal["new_array"] = "new_array"
    element_type: TypeRef
    sizes: List[Expression] = []
    dimensions: int = 1
    initializer: Optional["ArrayLiteral"] = None


class ArrayLiteral(ASTNode):
    kind: Literal["array"] = "array"
    items: List[Expression]


class ObjectProperty(ASTNode):
    kind: Literal["property"] = "property"
    key: str
    value: Optional[Expression] = None


class ObjectLiteral(ASTNode):
    kind: Literal["object"] = "object"
    properties: List[ObjectProperty]


class BinaryOp(ASTNode):
    kind: Literal["binary"] = "binary"
    op: str
    left: Expression
    right: Expression


class UnaryOp(ASTNode):
    kind: Literal["unary"] = "unary"
    op: str
    operand: Expression


class UpdateExpression(ASTNode):
    """`i++`, `--i` and friends."""

    kind: Literal["update"] = "update"
    op: Literal["++", "--"]
    prefix: bool
    target: Expression


class Assignment(ASTNode):
    kind: Literal["assignment"] = "assignment"
    op: str
    target: Expression
    value: Expression


class ConditionalExpression(ASTNode):
    kind: Literal["conditional"] = "conditional"
    condition: Expression
    then_expr: Expression
    else_expr: Expression


class Cast(ASTNode):
    """A Java cast `(int) x` or a TypeScript assertion `x as T`."""

    kind: Literal["cast"] = "cast"
    target_type: TypeRef
    expression: Expression


class Lambda(ASTNode):
    """Java lambdas, TypeScript arrow functions and function expressions."""

    kind: Literal["lambda"] = "lambda"
    params: List["Parameter"]
    body: Union["Block", Expression]
    is_async: bool = False


class AwaitExpression(ASTNode):
    kind: Literal["await"] = "await"
    expression: Expression


class SpreadElement(ASTNode):
    kind: Literal["spread"] = "spread"
    expression: Expression


# --- Statements ---

Statement = Union[
    "Block",
    "VariableDeclaration",
    "DestructuringDeclaration",
    "ExpressionStatement",
    "IfStatement",
    "WhileStatement",
    "DoWhileStatement",
    "ForStatement",
    "ForEachStatement",
    "SwitchStatement",
    "ReturnStatement",
    "BreakStatement",
    "ContinueStatement",
    "ThrowStatement",
    "TryStatement",
    "EmptyStatement",
    "UnparsedStatement",
    "FunctionDeclaration",
    "ClassDeclaration",
    "InterfaceDeclaration",
    "EnumDeclaration",
    "TypeAliasDeclaration",
    "NamespaceDeclaration",
    "ImportDeclaration",
]


class Block(ASTNode):
    kind: Literal["block"] = "block"
    statements: List[Statement]


class VariableDeclarator(ASTNode):
    kind: Literal["declarator"] = "declarator"
    name: str
    var_type: Optional[TypeRef] = None
    extra_dimensions: int = 0
    initializer: Optional[Expression] = None


class VariableDeclaration(ASTNode):
    """
    A local variable, global or field declaration. Java carries the type on
    the declaration (`var_type`), TypeScript on each declarator.
    """

    kind: Literal["variable_declaration"] = "variable_declaration"
    declarators: List[VariableDeclarator]
    var_type: Optional[TypeRef] = None
    modifiers: List[str] = []
    declaration_kind: Optional[Literal["let", "const", "var"]] = None


class DestructuringDeclaration(ASTNode):
    kind: Literal["destructuring"] = "destructuring"
    pattern: Literal["array", "object"]
    names: List[str]
    initializer: Expression
    declaration_kind: Optional[Literal["let", "const", "var"]] = None


class ExpressionStatement(ASTNode):
    kind: Literal["expression_statement"] = "expression_statement"
    expression: Expression


class IfStatement(ASTNode):
    kind: Literal["if"] = "if"
    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement] = None


class WhileStatement(ASTNode):
    kind: Literal["while"] = "while"
    condition: Expression
    body: Statement


class DoWhileStatement(ASTNode):
    kind: Literal["do_while"] = "do_while"
    body: Statement
    condition: Expression


class ForStatement(ASTNode):
    kind: Literal["for"] = "for"
    init_declaration: Optional[VariableDeclaration] = None
    init_expressions: List[Expression] = []
    condition: Optional[Expression] = None
    update: List[Expression] = []
    body: Statement


class ForEachStatement(ASTNode):
    kind: Literal["for_each"] = "for_each"
    variable: str
    var_type: Optional[TypeRef] = None
    iterable: Expression
    iteration: Literal["of", "in"] = "of"
    body: Statement


class SwitchCase(ASTNode):
    """One group of labels sharing a body; a `None` label is `default`."""

    kind: Literal["switch_case"] = "switch_case"
    labels: List[Optional[Expression]]
    body: List[Statement]


class SwitchStatement(ASTNode):
    kind: Literal["switch"] = "switch"
    discriminant: Expression
    cases: List[SwitchCase]


class ReturnStatement(ASTNode):
    kind: Literal["return"] = "return"
    value: Optional[Expression] = None


class BreakStatement(ASTNode):
    kind: Literal["break"] = "break"
    label: Optional[str] = None


class ContinueStatement(ASTNode):
    kind: Literal["continue"] = "continue"
    label: Optional[str] = None


class ThrowStatement(ASTNode):
    kind: Literal["throw"] = "throw"
    expression: Expression


class CatchClause(ASTNode):
    kind: Literal["catch"] = "catch"
    param: Optional[str] = None
    param_types: List[TypeRef] = []
    body: Block


class TryStatement(ASTNode):
    kind: Literal["try"] = "try"
    block: Block
    handlers: List[CatchClause] = []
    finalizer: Optional[Block] = None


class EmptyStatement(ASTNode):
    kind: Literal["empty"] = "empty"


class UnparsedStatement(ASTNode):
    """Source text the parser could not understand, kept verbatim."""

    kind: Literal["unparsed"] = "unparsed"
    text: str
    message: str


class ImportDeclaration(ASTNode):
    kind: Literal["import"] = "import"
    text: str


# --- Declarations ---


class Parameter(ASTNode):
    kind: Literal["parameter"] = "parameter"
    name: str
    param_type: Optional[TypeRef] = None
    is_optional: bool = False
    is_rest: bool = False
    default: Optional[Expression] = None
    modifiers: List[str] = []


class FunctionDeclaration(ASTNode):
    """Functions, methods and constructors. `body` is None for abstract signatures."""

    kind: Literal["function"] = "function"
    name: str
    params: List[Parameter]
    return_type: Optional[TypeRef] = None
    body: Optional[Block] = None
    modifiers: List[str] = []
    type_params: List[str] = []
    decorators: List[str] = []
    is_constructor: bool = False


class ClassDeclaration(ASTNode):
    kind: Literal["class"] = "class"
    name: str
    superclass: Optional[TypeRef] = None
    interfaces: List[TypeRef] = []
    type_params: List[str] = []
    members: List[Statement] = []
    modifiers: List[str] = []
    decorators: List[str] = []


class InterfaceMember(ASTNode):
    kind: Literal["interface_member"] = "interface_member"
    name: str
    member_type: Optional[TypeRef] = None
    params: Optional[List[Parameter]] = None
    is_optional: bool = False


class InterfaceDeclaration(ASTNode):
    kind: Literal["interface"] = "interface"
    name: str
    type_params: List[str] = []
    extends: List[TypeRef] = []
    members: List[Union[InterfaceMember, FunctionDeclaration, VariableDeclaration]] = []


class EnumMember(ASTNode):
    kind: Literal["enum_member"] = "enum_member"
    name: str
    value: Optional[Expression] = None


class EnumDeclaration(ASTNode):
    kind: Literal["enum"] = "enum"
    name: str
    members: List[EnumMember]


class TypeAliasDeclaration(ASTNode):
    kind: Literal["type_alias"] = "type_alias"
    name: str
    aliased: TypeRef


class NamespaceDeclaration(ASTNode):
    kind: Literal["namespace"] = "namespace"
    name: str
    body: List[Statement]


# --- Top-level Structure ---


class Program(ASTNode):
    kind: Literal["program"] = "program"
    language: Literal["java", "typescript"]
    body: List[Statement]
    structural_errors: List[str] = []


EXPRESSION_CLASSES = (
    NumberLiteral,
    StringLiteral,
    CharLiteral,
    BooleanLiteral,
    NullLiteral,
    TemplateLiteral,
    Identifier,
    MemberAccess,
    IndexAccess,
    Call,
    NewObject,
    NewArray,
    ArrayLiteral,
    ObjectLiteral,
    BinaryOp,
    UnaryOp,
    UpdateExpression,
    Assignment,
    ConditionalExpression,
    Cast,
    Lambda,
    AwaitExpression,
    SpreadElement,
)

STATEMENT_CLASSES = (
    Block,
    VariableDeclaration,
    DestructuringDeclaration,
    ExpressionStatement,
    IfStatement,
    WhileStatement,
    DoWhileStatement,
    ForStatement,
    ForEachStatement,
    SwitchStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    ThrowStatement,
    TryStatement,
    EmptyStatement,
    UnparsedStatement,
    FunctionDeclaration,
    ClassDeclaration,
    InterfaceDeclaration,
    EnumDeclaration,
    TypeAliasDeclaration,
    NamespaceDeclaration,
    ImportDeclaration,
)

# Forward references between the node families are resolved once every class exists.
for _model in (
    TypeRef,
    TemplateLiteral,
    *EXPRESSION_CLASSES,
    ObjectProperty,
    *STATEMENT_CLASSES,
    VariableDeclarator,
    SwitchCase,
    CatchClause,
    Parameter,
    InterfaceMember,
    EnumMember,
    Program,
):
    _model.model_rebuild()


class ParseResult(BaseModel):
    """The syntax tree of one input together with the parser's diagnostics."""

    tree: Program
    diagnostics: List[Diagnostic] = []

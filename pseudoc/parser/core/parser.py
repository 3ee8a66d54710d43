import logging
import os
from collections import namedtuple
from typing import Dict, List, Optional

from lark import Lark, LarkError, Token, Transformer

from pseudoc.exceptions import Diagnostic, ErrorCode, Severity

from ..utils.helpers import _translate_lark_error, extract_imports, pre_parsing_checks, scan_unsupported_features, split_top_level_segments
from .classes import *

logger = logging.getLogger(__name__)

GRAMMAR_FILES = {"java": "java.lark", "typescript": "typescript.lark"}


def _load_parser(language: str) -> Lark:
    try:
        # Use importlib.resources for robust package data access
        from importlib.resources import files as pkg_files

        # The path is relative to the 'pseudoc.parser' subpackage
        grammar = (pkg_files("pseudoc.parser") / "grammars" / GRAMMAR_FILES[language]).read_text()
    except Exception:
        # Fallback for development environments or zipped installs
        grammar_path = os.path.join(os.path.dirname(os.path.dirname(__file__)), "grammars", GRAMMAR_FILES[language])
        with open(grammar_path, "r") as f:
            grammar = f.read()

    # "start" parses whole programs, "expression" parses interpolated fragments
    return Lark(grammar, start=["start", "expression"], parser="earley", lexer="basic")


LARK_PARSERS: Dict[str, Lark] = {language: _load_parser(language) for language in GRAMMAR_FILES}

# An intermediate value passed between rule callbacks: optional grammar parts
# (parameter lists, type arguments, extends clauses...) are tagged so the
# enclosing rule can pick them out regardless of which ones are present.
_Part = namedtuple("_Part", ["tag", "value", "span"], defaults=[None])
_DIM = "dim"


def _parts(items: list) -> Dict[str, "_Part"]:
    return {item.tag: item for item in items if isinstance(item, _Part)}


def _tokens(items: list, token_type: str = "NAME") -> List[Token]:
    return [item for item in items if isinstance(item, Token) and item.type == token_type]


class BaseTreeTransformer(Transformer):
    """
    Transforms the Lark parse tree into the pydantic syntax tree.
    Each method is called when the Lark parser finishes a rule (or alias) of
    the same name; the transformation starts from the leaves and works upward.
    Rules shared by the Java and TypeScript grammars live here, the language
    subclasses add the rest.
    """

    language = ""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path
        super().__init__()

    # --- Helper methods for creating spans ---
    def _create_span_from_token(self, token: Token) -> Span:
        """Creates a Span object from a single Lark Token."""
        return Span(s_line=token.line, s_col=token.column, e_line=token.end_line, e_col=token.end_column, file_path=self.file_path)

    def _get_span_from_items(self, items: list) -> Span:
        """Calculates a Span that covers a list of tokens and/or nodes."""
        located = [item for item in items if isinstance(item, (ASTNode, Token)) or (isinstance(item, _Part) and item.span)]
        if not located:  # Handle empty lists
            return Span(s_line=1, s_col=1, e_line=1, e_col=1, file_path=self.file_path)

        first, last = located[0], located[-1]
        first_span = first.span if not isinstance(first, Token) else self._create_span_from_token(first)
        last_span = last.span if not isinstance(last, Token) else self._create_span_from_token(last)
        return Span(s_line=first_span.s_line, s_col=first_span.s_col, e_line=last_span.e_line, e_col=last_span.e_col, file_path=self.file_path)

    def _type(self, item, span: Optional[Span] = None) -> TypeRef:
        """Coerces a type-like item (TypeRef or an object type part) into a TypeRef."""
        if isinstance(item, TypeRef):
            return item
        if isinstance(item, _Part) and item.tag == "object_type":
            names = ", ".join(member.name for member in item.value)
            return TypeRef(name="{ " + names + " }", form="object", span=item.span or span or self._get_span_from_items([]))
        return TypeRef(name=str(item), span=span or self._get_span_from_items([]))

    # --- Terminal Transformations ---
    def NUMBER(self, n: Token):
        raw = n.value
        val = raw.replace("_", "")
        if val.lower().startswith("0x"):
            num = int(val.rstrip("lL"), 16)
        else:
            is_real = val[-1] in "fFdD" or "." in val or "e" in val.lower()
            val = val.rstrip("lLfFdDn")
            num = float(val) if is_real else int(val)
        return NumberLiteral(value=num, raw=raw, span=self._create_span_from_token(n))

    def STRING(self, s: Token):
        return StringLiteral(value=s.value[1:-1], span=self._create_span_from_token(s))

    def TRUE(self, t: Token):
        return BooleanLiteral(value=True, span=self._create_span_from_token(t))

    def FALSE(self, f: Token):
        return BooleanLiteral(value=False, span=self._create_span_from_token(f))

    def NULL(self, n: Token):
        return NullLiteral(span=self._create_span_from_token(n))

    # --- Pass-through methods for operator rules ---
    def assign_op(self, items):
        return items[0]

    def logical_or_op(self, items):
        return items[0]

    def logical_and_op(self, items):
        return items[0]

    def bitwise_or_op(self, items):
        return items[0]

    def bitwise_xor_op(self, items):
        return items[0]

    def bitwise_and_op(self, items):
        return items[0]

    def equality_op(self, items):
        return items[0]

    def relational_op(self, items):
        return items[0]

    def additive_op(self, items):
        return items[0]

    def multiplicative_op(self, items):
        return items[0]

    def unary_op(self, items):
        return items[0]

    def update_op(self, items):
        return items[0]

    def modifier(self, items):
        return items[0]

    # --- Names ---
    def name(self, items):
        return Identifier(name=items[0].value, span=self._create_span_from_token(items[0]))

    def this_expression(self, items):
        return Identifier(name="this", span=self._create_span_from_token(items[0]))

    def super_expression(self, items):
        return Identifier(name="super", span=self._create_span_from_token(items[0]))

    def qualified_name(self, items):
        return Token.new_borrow_pos("NAME", ".".join(t.value for t in items), items[0])

    def type_parameters(self, items):
        return _Part("type_params", list(items))

    def type_parameter(self, items):
        return items[0].value

    # --- Statements ---
    def block(self, items):
        statements = [item for item in items if item is not None and not isinstance(item, EmptyStatement)]
        return Block(statements=statements, span=self._get_span_from_items(items))

    def if_statement(self, items):
        condition, then_branch = items[0], items[1]
        else_branch = items[2] if len(items) > 2 else None
        return IfStatement(condition=condition, then_branch=then_branch, else_branch=else_branch, span=self._get_span_from_items(items))

    def while_statement(self, items):
        condition, body = items
        return WhileStatement(condition=condition, body=body, span=self._get_span_from_items(items))

    def do_statement(self, items):
        body, condition = items
        return DoWhileStatement(body=body, condition=condition, span=self._get_span_from_items(items))

    def for_init(self, items):
        if len(items) == 1 and isinstance(items[0], VariableDeclaration):
            return _Part("init", items[0])
        return _Part("init", list(items))

    def for_condition(self, items):
        return _Part("condition", items[0])

    def for_update(self, items):
        return _Part("update", list(items))

    def for_statement(self, items):
        parts = _parts(items)
        init = parts["init"].value if "init" in parts else None
        return ForStatement(
            init_declaration=init if isinstance(init, VariableDeclaration) else None,
            init_expressions=init if isinstance(init, list) else [],
            condition=parts["condition"].value if "condition" in parts else None,
            update=parts["update"].value if "update" in parts else [],
            body=items[-1],
            span=self._get_span_from_items(items),
        )

    def case_label(self, items):
        return _Part("label", items[0], items[0].span)

    def default_label(self, items):
        return _Part("label", None, self._create_span_from_token(items[0]))

    def switch_statement(self, items):
        discriminant, entries = items[0], items[1:]
        cases: List[SwitchCase] = []
        for entry in entries:
            if isinstance(entry, _Part):
                # Consecutive labels with nothing between them share one body.
                if cases and not cases[-1].body:
                    cases[-1].labels.append(entry.value)
                else:
                    cases.append(SwitchCase(labels=[entry.value], body=[], span=entry.span))
            elif cases and entry is not None:
                cases[-1].body.append(entry)
        return SwitchStatement(discriminant=discriminant, cases=cases, span=self._get_span_from_items(items))

    def return_statement(self, items):
        value = items[1] if len(items) > 1 else None
        return ReturnStatement(value=value, span=self._get_span_from_items(items))

    def break_statement(self, items):
        label = items[1].value if len(items) > 1 else None
        return BreakStatement(label=label, span=self._get_span_from_items(items))

    def continue_statement(self, items):
        label = items[1].value if len(items) > 1 else None
        return ContinueStatement(label=label, span=self._get_span_from_items(items))

    def throw_statement(self, items):
        return ThrowStatement(expression=items[0], span=self._get_span_from_items(items))

    def finally_clause(self, items):
        return _Part("finally", items[0], items[0].span)

    def expression_statement(self, items):
        return ExpressionStatement(expression=items[0], span=self._get_span_from_items(items))

    def empty_statement(self, items):
        return EmptyStatement(span=self._get_span_from_items(items))

    # --- Expressions ---
    def assignment(self, items):
        target, op, value = items
        return Assignment(op=op.value, target=target, value=value, span=self._get_span_from_items(items))

    def conditional_expression(self, items):
        condition, then_expr, else_expr = items
        return ConditionalExpression(condition=condition, then_expr=then_expr, else_expr=else_expr, span=self._get_span_from_items(items))

    def binary_expression(self, items):
        left, op, right = items
        return BinaryOp(op=op.value, left=left, right=right, span=self._get_span_from_items(items))

    def unary_expression(self, items):
        op, operand = items
        return UnaryOp(op=op.value, operand=operand, span=self._get_span_from_items(items))

    def prefix_update(self, items):
        op, target = items
        return UpdateExpression(op=op.value, prefix=True, target=target, span=self._get_span_from_items(items))

    def postfix_update(self, items):
        target, op = items
        return UpdateExpression(op=op.value, prefix=False, target=target, span=self._get_span_from_items(items))

    def arguments(self, items):
        args = [item for item in items if item is not None]
        return _Part("args", args, self._get_span_from_items(args) if args else None)

    def call(self, items):
        callee, args = items
        return Call(callee=callee, args=args.value, span=self._get_span_from_items(items))

    def array_access(self, items):
        target, index = items
        return IndexAccess(target=target, index=index, span=self._get_span_from_items(items))

    def start(self, children):
        body = [child for child in children if child is not None and not isinstance(child, EmptyStatement)]
        return Program(language=self.language, body=body, span=self._get_span_from_items(children))


class JavaTreeTransformer(BaseTreeTransformer):
    """Builds the syntax tree for the Java grammar."""

    language = "java"

    def CHAR_LITERAL(self, c: Token):
        return CharLiteral(value=c.value[1:-1], span=self._create_span_from_token(c))

    # --- Declarations ---
    def modifiers(self, items):
        return [item.value if isinstance(item, Token) else item for item in items]

    def annotation(self, items):
        return "@" + items[0].value

    def _split_modifiers(self, modifiers: List[str]):
        plain = [m for m in modifiers if not m.startswith("@")]
        annotations = [m for m in modifiers if m.startswith("@")]
        return plain, annotations

    def superclass(self, items):
        return _Part("superclass", items[0])

    def interfaces(self, items):
        return _Part("interfaces", list(items))

    def interface_extends(self, items):
        return _Part("extends", list(items))

    def class_body(self, items):
        members = [item for item in items if item is not None]
        return _Part("body", members, self._get_span_from_items(members) if members else None)

    def initializer_block(self, items):
        return items[-1]

    def throws_clause(self, items):
        return _Part("throws", list(items))

    def class_declaration(self, items):
        modifiers, annotations = self._split_modifiers(items[0])
        parts = _parts(items)
        return ClassDeclaration(
            name=_tokens(items)[0].value,
            superclass=parts["superclass"].value if "superclass" in parts else None,
            interfaces=parts["interfaces"].value if "interfaces" in parts else [],
            type_params=parts["type_params"].value if "type_params" in parts else [],
            members=parts["body"].value,
            modifiers=modifiers,
            decorators=annotations,
            span=self._get_span_from_items(items[1:]),
        )

    def interface_declaration(self, items):
        parts = _parts(items)
        members = [m for m in parts["body"].value if isinstance(m, (FunctionDeclaration, VariableDeclaration))]
        return InterfaceDeclaration(
            name=_tokens(items)[0].value,
            type_params=parts["type_params"].value if "type_params" in parts else [],
            extends=parts["extends"].value if "extends" in parts else [],
            members=members,
            span=self._get_span_from_items(items[1:]),
        )

    def enum_constant(self, items):
        name_token = _tokens(items)[0]
        parts = _parts(items)
        args = parts["args"].value if "args" in parts else []
        return EnumMember(name=name_token.value, value=args[0] if args else None, span=self._create_span_from_token(name_token))

    def enum_body_declarations(self, items):
        return _Part("enum_body", [item for item in items if item is not None])

    def enum_declaration(self, items):
        return EnumDeclaration(
            name=_tokens(items)[0].value,
            members=[item for item in items if isinstance(item, EnumMember)],
            span=self._get_span_from_items(items[1:]),
        )

    def field_declaration(self, items):
        return self.local_variable_declaration(items)

    def local_variable_declaration(self, items):
        modifiers, _ = self._split_modifiers(items[0])
        var_type = items[1]
        declarators = [item for item in items[2:] if isinstance(item, VariableDeclarator)]
        return VariableDeclaration(declarators=declarators, var_type=var_type, modifiers=modifiers, span=self._get_span_from_items(items[1:]))

    def for_init_declaration(self, items):
        return self.local_variable_declaration(items)

    def void_type(self, items):
        return TypeRef(name="void", span=self._create_span_from_token(items[0]))

    def method_declaration(self, items):
        modifiers, annotations = self._split_modifiers(items[0])
        parts = _parts(items)
        return_type = next(item for item in items if isinstance(item, TypeRef))
        body = items[-1] if isinstance(items[-1], Block) else None
        return FunctionDeclaration(
            name=_tokens(items)[0].value,
            params=parts["params"].value,
            return_type=return_type,
            body=body,
            modifiers=modifiers,
            type_params=parts["type_params"].value if "type_params" in parts else [],
            decorators=annotations,
            span=self._get_span_from_items(items[1:]),
        )

    def constructor_declaration(self, items):
        modifiers, annotations = self._split_modifiers(items[0])
        parts = _parts(items)
        return FunctionDeclaration(
            name=_tokens(items)[0].value,
            params=parts["params"].value,
            body=items[-1],
            modifiers=modifiers,
            decorators=annotations,
            is_constructor=True,
            span=self._get_span_from_items(items[1:]),
        )

    def formal_parameters(self, items):
        return _Part("params", list(items))

    def formal_parameter(self, items):
        param_type = items[1]
        is_rest = bool(_tokens(items, "VARARGS"))
        name_token = _tokens(items)[0]
        extra_dims = sum(1 for item in items if isinstance(item, _Part) and item.tag == _DIM)
        if is_rest or extra_dims:
            param_type = param_type.model_copy(update={"dimensions": param_type.dimensions + extra_dims + int(is_rest)})
        return Parameter(name=name_token.value, param_type=param_type, is_rest=is_rest, modifiers=items[0], span=self._get_span_from_items(items[1:]))

    # --- Types ---
    def type(self, items):
        base = items[0]
        dims = sum(1 for item in items[1:] if isinstance(item, _Part) and item.tag == _DIM)
        if dims:
            return base.model_copy(update={"dimensions": base.dimensions + dims})
        return base

    def primitive_type(self, items):
        return TypeRef(name=items[0].value, span=self._create_span_from_token(items[0]))

    def class_type(self, items):
        parts = _parts(items)
        args = parts["type_args"].value if "type_args" in parts else []
        return TypeRef(name=items[0].value, args=args, span=self._get_span_from_items(items))

    def type_arguments(self, items):
        return _Part("type_args", list(items))

    def wildcard(self, items):
        bound = items[-1] if items else None
        return TypeRef(name="?", args=[bound] if isinstance(bound, TypeRef) else [], span=self._get_span_from_items(items))

    def array_dim(self, items):
        return _Part(_DIM, 1)

    def variable_declarator(self, items):
        name_token = items[0]
        extra_dims = sum(1 for item in items[1:] if isinstance(item, _Part) and item.tag == _DIM)
        initializer = items[-1] if len(items) > 1 and not isinstance(items[-1], _Part) else None
        return VariableDeclarator(name=name_token.value, extra_dimensions=extra_dims, initializer=initializer, span=self._get_span_from_items(items))

    def array_initializer(self, items):
        return ArrayLiteral(items=list(items), span=self._get_span_from_items(items))

    # --- Statements ---
    def foreach_statement(self, items):
        var_type, name_token, iterable, body = items[1], items[2], items[3], items[4]
        return ForEachStatement(variable=name_token.value, var_type=var_type, iterable=iterable, body=body, span=self._get_span_from_items(items[1:]))

    def resource(self, items):
        declarator = VariableDeclarator(name=items[2].value, initializer=items[3], span=self._get_span_from_items(items[2:]))
        return VariableDeclaration(declarators=[declarator], var_type=items[1], span=self._get_span_from_items(items[1:]))

    def resource_specification(self, items):
        return _Part("resources", list(items))

    def catch_clause(self, items):
        types = [item for item in items if isinstance(item, TypeRef)]
        return CatchClause(param=_tokens(items)[-1].value, param_types=types, body=items[-1], span=self._get_span_from_items(items[1:]))

    def try_statement(self, items):
        parts = _parts(items)
        block = next(item for item in items if isinstance(item, Block))
        if "resources" in parts:
            block = Block(statements=parts["resources"].value + block.statements, span=block.span)
        return TryStatement(
            block=block,
            handlers=[item for item in items if isinstance(item, CatchClause)],
            finalizer=parts["finally"].value if "finally" in parts else None,
            span=self._get_span_from_items(items),
        )

    # --- Expressions ---
    def field_access(self, items):
        target, member = items
        return MemberAccess(target=target, member=member.value, span=self._get_span_from_items(items))

    def instanceof_expression(self, items):
        left, type_ref = items
        return BinaryOp(op="instanceof", left=left, right=Identifier(name=type_ref.text, span=type_ref.span), span=self._get_span_from_items(items))

    def cast_expression(self, items):
        target_type = self.type(items[:-1])
        return Cast(target_type=target_type, expression=items[-1], span=self._get_span_from_items(items))

    def new_object(self, items):
        class_type, args = items[0], items[1]
        return NewObject(class_type=class_type, args=args.value, span=self._get_span_from_items(items))

    def dim_expression(self, items):
        return _Part("size", items[0])

    def new_array(self, items):
        element_type = items[0]
        sizes = [item.value for item in items if isinstance(item, _Part) and item.tag == "size"]
        dims = sum(1 for item in items if isinstance(item, _Part) and item.tag == _DIM)
        initializer = items[-1] if isinstance(items[-1], ArrayLiteral) else None
        return NewArray(element_type=element_type, sizes=sizes, dimensions=len(sizes) + dims, initializer=initializer, span=self._get_span_from_items(items))

    def lambda_parameter(self, items):
        if len(items) == 1:
            return Parameter(name=items[0].value, span=self._create_span_from_token(items[0]))
        return Parameter(name=items[2].value, param_type=items[1], modifiers=items[0], span=self._get_span_from_items(items[1:]))

    def lambda_parameters(self, items):
        if len(items) == 1 and isinstance(items[0], Token):
            return _Part("params", [Parameter(name=items[0].value, span=self._create_span_from_token(items[0]))])
        return _Part("params", list(items))

    def lambda_expression(self, items):
        params, body = items
        return Lambda(params=params.value, body=body, span=self._get_span_from_items(items))


class TypeScriptTreeTransformer(BaseTreeTransformer):
    """Builds the syntax tree for the TypeScript grammar."""

    language = "typescript"

    def STRING(self, s: Token):
        value = s.value[1:-1]
        if s.value.startswith("'"):
            # Normalise to the double-quoted form used in the output.
            value = value.replace("\\'", "'").replace('"', '\\"')
        return StringLiteral(value=value, span=self._create_span_from_token(s))

    def TEMPLATE(self, t: Token):
        content = t.value[1:-1]
        parts: list = []
        text, i = "", 0
        while i < len(content):
            if content[i] == "\\" and i + 1 < len(content):
                text += content[i : i + 2]
                i += 2
                continue
            if content.startswith("${", i):
                depth, j = 1, i + 2
                while j < len(content) and depth:
                    depth += {"{": 1, "}": -1}.get(content[j], 0)
                    j += 1
                if text:
                    parts.append(text)
                    text = ""
                parts.append(self._parse_fragment(content[i + 2 : j - 1], t))
                i = j
                continue
            text += content[i]
            i += 1
        if text:
            parts.append(text)
        return TemplateLiteral(parts=parts, span=self._create_span_from_token(t))

    def _parse_fragment(self, source: str, token: Token):
        """Parses an interpolated `${...}` expression with the expression entry point."""
        padded = "\n" * (token.line - 1) + source
        try:
            tree = LARK_PARSERS[self.language].parse(padded, start="expression")
            return type(self)(self.file_path).transform(tree)
        except LarkError:
            logger.warning("Could not parse template fragment %r; keeping it as text", source)
            return Identifier(name=source.strip(), span=self._create_span_from_token(token))

    # --- Declarations ---
    def export_declaration(self, items):
        declaration = items[-1]
        if "modifiers" in type(declaration).model_fields:
            return declaration.model_copy(update={"modifiers": ["export"] + declaration.modifiers})
        return declaration

    def var_kind(self, items):
        return items[0]

    def variable_binding(self, items):
        var_type = next((item for item in items[1:] if isinstance(item, TypeRef)), None)
        initializer = items[-1] if len(items) > 1 and not isinstance(items[-1], TypeRef) else None
        return VariableDeclarator(name=items[0].value, var_type=var_type, initializer=initializer, span=self._get_span_from_items(items))

    def variable_statement(self, items):
        kind_token = items[0]
        declarators = [item for item in items[1:] if isinstance(item, VariableDeclarator)]
        return VariableDeclaration(declarators=declarators, declaration_kind=kind_token.value, span=self._get_span_from_items(items))

    def for_init_declaration(self, items):
        return self.variable_statement(items)

    def array_pattern(self, items):
        return _Part("array", [t.value for t in items])

    def object_pattern(self, items):
        return _Part("object", [t.value for t in items])

    def destructuring_statement(self, items):
        kind_token, pattern = items[0], items[1]
        return DestructuringDeclaration(
            pattern=pattern.tag,
            names=pattern.value,
            initializer=items[-1],
            declaration_kind=kind_token.value,
            span=self._get_span_from_items(items),
        )

    def decorator(self, items):
        return "@" + items[0].value

    def optional_marker(self, items):
        return _Part("optional", True)

    def param_modifier(self, items):
        return items[0]

    def member_modifier(self, items):
        return items[0]

    def class_modifier(self, items):
        return items[0]

    def parameter_list(self, items):
        return _Part("params", list(items))

    def parameter(self, items):
        decorators = [item for item in items if isinstance(item, str) and not isinstance(item, Token)]
        modifiers = [item.value for item in items if isinstance(item, Token) and item.type not in ("NAME", "REST")]
        name_token = _tokens(items)[0]
        param_type = next((item for item in items if isinstance(item, TypeRef)), None)
        tail = items[items.index(name_token) + 1 :]
        default = next((item for item in tail if not isinstance(item, (TypeRef, _Part))), None)
        return Parameter(
            name=name_token.value,
            param_type=param_type,
            is_optional="optional" in _parts(items) or default is not None,
            is_rest=bool(_tokens(items, "REST")),
            default=default,
            modifiers=modifiers + decorators,
            span=self._get_span_from_items([name_token] + tail),
        )

    def function_declaration(self, items):
        parts = _parts(items)
        decorators = [item for item in items if isinstance(item, str) and not isinstance(item, Token)]
        return FunctionDeclaration(
            name=_tokens(items)[0].value,
            params=parts["params"].value,
            return_type=next((item for item in items if isinstance(item, TypeRef)), None),
            body=items[-1],
            modifiers=["async"] if _tokens(items, "ASYNC") else [],
            type_params=parts["type_params"].value if "type_params" in parts else [],
            decorators=decorators,
            span=self._get_span_from_items(items),
        )

    def extends_clause(self, items):
        return _Part("superclass", items[0])

    def implements_clause(self, items):
        return _Part("interfaces", list(items))

    def class_declaration(self, items):
        parts = _parts(items)
        decorators = [item for item in items if isinstance(item, str) and not isinstance(item, Token)]
        modifiers = [item.value for item in items if isinstance(item, Token) and item.type != "NAME"]
        return ClassDeclaration(
            name=_tokens(items)[0].value,
            superclass=parts["superclass"].value if "superclass" in parts else None,
            interfaces=parts["interfaces"].value if "interfaces" in parts else [],
            type_params=parts["type_params"].value if "type_params" in parts else [],
            members=[item for item in items if isinstance(item, (VariableDeclaration, FunctionDeclaration))],
            modifiers=modifiers,
            decorators=decorators,
            span=self._get_span_from_items(items),
        )

    def class_property(self, items):
        decorators = [item for item in items if isinstance(item, str) and not isinstance(item, Token)]
        modifiers = [item.value for item in items if isinstance(item, Token) and item.type != "NAME"]
        name_token = _tokens(items)[0]
        var_type = next((item for item in items if isinstance(item, TypeRef)), None)
        tail = items[items.index(name_token) + 1 :]
        initializer = next((item for item in tail if not isinstance(item, (TypeRef, _Part))), None)
        declarator = VariableDeclarator(name=name_token.value, var_type=var_type, initializer=initializer, span=self._get_span_from_items([name_token] + tail))
        return VariableDeclaration(declarators=[declarator], modifiers=modifiers + decorators, span=self._get_span_from_items(items))

    def class_method(self, items):
        parts = _parts(items)
        decorators = [item for item in items if isinstance(item, str) and not isinstance(item, Token)]
        modifiers = [item.value.lower() if item.type == "ASYNC" else item.value for item in items if isinstance(item, Token) and item.type != "NAME"]
        name = _tokens(items)[0].value
        return FunctionDeclaration(
            name=name,
            params=parts["params"].value,
            return_type=next((item for item in items if isinstance(item, TypeRef)), None),
            body=items[-1] if isinstance(items[-1], Block) else None,
            modifiers=modifiers,
            type_params=parts["type_params"].value if "type_params" in parts else [],
            decorators=decorators,
            is_constructor=name == "constructor",
            span=self._get_span_from_items(items),
        )

    def accessor_declaration(self, items):
        parts = _parts(items)
        accessor, name_token = _tokens(items)[:2]
        modifiers = [item.value for item in items if isinstance(item, Token) and item.type != "NAME"]
        return FunctionDeclaration(
            name=name_token.value,
            params=parts["params"].value,
            return_type=next((item for item in items if isinstance(item, TypeRef)), None),
            body=items[-1],
            modifiers=modifiers + [accessor.value],
            span=self._get_span_from_items(items),
        )

    def interface_extends(self, items):
        return _Part("extends", list(items))

    def interface_declaration(self, items):
        parts = _parts(items)
        return InterfaceDeclaration(
            name=_tokens(items)[0].value,
            type_params=parts["type_params"].value if "type_params" in parts else [],
            extends=parts["extends"].value if "extends" in parts else [],
            members=parts["object_type"].value,
            span=self._get_span_from_items(items),
        )

    def property_signature(self, items):
        name_token = _tokens(items)[0]
        return InterfaceMember(
            name=name_token.value,
            member_type=items[-1],
            is_optional="optional" in _parts(items),
            span=self._get_span_from_items(items),
        )

    def method_signature(self, items):
        parts = _parts(items)
        return InterfaceMember(
            name=_tokens(items)[0].value,
            member_type=items[-1] if isinstance(items[-1], TypeRef) else None,
            params=parts["params"].value,
            is_optional="optional" in parts,
            span=self._get_span_from_items(items),
        )

    def index_signature(self, items):
        key, key_type, value_type = items
        return InterfaceMember(name=f"[{key.value}: {self._type(key_type).text}]", member_type=self._type(value_type), span=self._get_span_from_items(items))

    def type_alias_declaration(self, items):
        return TypeAliasDeclaration(name=items[0].value, aliased=self._type(items[-1], self._create_span_from_token(items[0])), span=self._get_span_from_items(items))

    def enum_member(self, items):
        key = items[0]
        name = key.value if isinstance(key, (Token, StringLiteral)) else str(key)
        value = items[1] if len(items) > 1 else None
        return EnumMember(name=name, value=value, span=self._get_span_from_items(items))

    def enum_declaration(self, items):
        return EnumDeclaration(name=items[0].value, members=list(items[1:]), span=self._get_span_from_items(items))

    def namespace_declaration(self, items):
        return NamespaceDeclaration(name=items[0].value, body=[item for item in items[1:] if item is not None], span=self._get_span_from_items(items))

    # --- Types ---
    def type_annotation(self, items):
        return self._type(items[0])

    def type_reference(self, items):
        parts = _parts(items)
        args = parts["type_args"].value if "type_args" in parts else []
        return TypeRef(name=items[0].value, args=args, span=self._get_span_from_items(items))

    def type_arguments(self, items):
        return _Part("type_args", [self._type(item) for item in items])

    def union_type(self, items):
        members = [self._type(item) for item in items]
        return TypeRef(name=" | ".join(m.text for m in members), args=members, form="union", span=self._get_span_from_items(members))

    def intersection_type(self, items):
        members = [self._type(item) for item in items]
        return TypeRef(name=" & ".join(m.text for m in members), args=members, form="intersection", span=self._get_span_from_items(members))

    def array_type(self, items):
        element = self._type(items[0])
        return element.model_copy(update={"dimensions": element.dimensions + 1})

    def function_type(self, items):
        params, return_type = items[0], self._type(items[1])
        signature = ", ".join(p.name + (f": {p.param_type.text}" if p.param_type else "") for p in params.value)
        return TypeRef(name=f"({signature}) => {return_type.text}", form="function", span=self._get_span_from_items([return_type]))

    def object_type(self, items):
        members = [item for item in items if isinstance(item, InterfaceMember)]
        return _Part("object_type", members, self._get_span_from_items(members) if members else None)

    def tuple_type(self, items):
        members = [self._type(item) for item in items]
        return TypeRef(name="[" + ", ".join(m.text for m in members) + "]", args=members, form="tuple", span=self._get_span_from_items(members))

    def literal_type(self, items):
        literal = items[0]
        text = f'"{literal.value}"' if isinstance(literal, StringLiteral) else getattr(literal, "raw", None) or str(getattr(literal, "value", "null")).lower()
        return TypeRef(name=text, form="literal", span=literal.span)

    def typeof_type(self, items):
        return TypeRef(name="typeof " + items[0].value, form="literal", span=self._create_span_from_token(items[0]))

    # --- Statements ---
    def for_of_statement(self, items):
        return self._for_each(items, "of")

    def for_in_statement(self, items):
        return self._for_each(items, "in")

    def _for_each(self, items, iteration: str):
        name_token = _tokens(items)[0]
        var_type = next((item for item in items if isinstance(item, TypeRef)), None)
        return ForEachStatement(
            variable=name_token.value,
            var_type=var_type,
            iterable=items[-2],
            iteration=iteration,
            body=items[-1],
            span=self._get_span_from_items(items),
        )

    def catch_clause(self, items):
        names = _tokens(items)
        types = [item for item in items if isinstance(item, TypeRef)]
        return CatchClause(param=names[0].value if names else None, param_types=types, body=items[-1], span=self._get_span_from_items(items))

    def try_statement(self, items):
        parts = _parts(items)
        return TryStatement(
            block=items[0],
            handlers=[item for item in items if isinstance(item, CatchClause)],
            finalizer=parts["finally"].value if "finally" in parts else None,
            span=self._get_span_from_items(items),
        )

    # --- Expressions ---
    def nullish_op(self, items):
        return items[0]

    def keyword_name(self, items):
        return items[0]

    def member_access(self, items):
        target, member = items
        return MemberAccess(target=target, member=member.value, span=self._get_span_from_items(items))

    def optional_member_access(self, items):
        target, member = items
        return MemberAccess(target=target, member=member.value, optional=True, span=self._get_span_from_items(items))

    def index_access(self, items):
        return self.array_access(items)

    def optional_call(self, items):
        return self.call(items)

    def instanceof_expression(self, items):
        left, right = items
        return BinaryOp(op="instanceof", left=left, right=right, span=self._get_span_from_items(items))

    def as_expression(self, items):
        expression, target_type = items
        return Cast(target_type=self._type(target_type, expression.span), expression=expression, span=self._get_span_from_items(items))

    def await_expression(self, items):
        return AwaitExpression(expression=items[0], span=self._get_span_from_items(items))

    def spread_element(self, items):
        return SpreadElement(expression=items[-1], span=self._get_span_from_items(items))

    def new_expression(self, items):
        class_type, args = items
        return NewObject(class_type=class_type, args=args.value, span=self._get_span_from_items(items))

    def array_literal(self, items):
        return ArrayLiteral(items=list(items), span=self._get_span_from_items(items))

    def keyed_property(self, items):
        key, value = items
        key_text = key.value if isinstance(key, Token) else getattr(key, "raw", None) or str(key.value)
        return ObjectProperty(key=key_text, value=value, span=self._get_span_from_items(items))

    def shorthand_property(self, items):
        return ObjectProperty(key=items[0].value, span=self._create_span_from_token(items[0]))

    def object_literal(self, items):
        properties = []
        for item in items:
            if isinstance(item, SpreadElement):
                properties.append(ObjectProperty(key="...", value=item.expression, span=item.span))
            else:
                properties.append(item)
        return ObjectLiteral(properties=properties, span=self._get_span_from_items(items))

    def arrow_parameters(self, items):
        if isinstance(items[0], Token):
            return _Part("params", [Parameter(name=items[0].value, span=self._create_span_from_token(items[0]))])
        return items[0]

    def arrow_block(self, items):
        return self.block(items)

    def arrow_function(self, items):
        parts = _parts(items)
        return Lambda(params=parts["params"].value, body=items[-1], is_async=bool(_tokens(items, "ASYNC")), span=self._get_span_from_items(items))

    def function_expression(self, items):
        parts = _parts(items)
        return Lambda(params=parts["params"].value, body=items[-1], is_async=bool(_tokens(items, "ASYNC")), span=self._get_span_from_items(items))


TREE_TRANSFORMERS = {"java": JavaTreeTransformer, "typescript": TypeScriptTreeTransformer}


class BaseParser:
    """
    Turns raw source text into a `ParseResult`. Parsing never raises: structural
    problems and unsupported constructs become diagnostics, and statements the
    grammar cannot read are kept as `UnparsedStatement` nodes.
    """

    language = ""

    def __init__(self, file_path: Optional[str] = None):
        self.file_path = file_path

    def parse(self, source: str) -> ParseResult:
        masked, diagnostics = pre_parsing_checks(source, self.language)
        diagnostics.extend(scan_unsupported_features(masked, self.language))

        cleaned, cleaned_masked, imports = extract_imports(source, masked, self.language)
        body: List = [
            ImportDeclaration(text=text, span=Span(s_line=line, s_col=col, e_line=line, e_col=col + len(text), file_path=self.file_path))
            for text, line, col in imports
        ]

        if cleaned.strip():
            try:
                body.extend(self._parse_text(cleaned).body)
            except (LarkError, RecursionError) as e:
                logger.debug("Full parse of %s input failed (%s); recovering statement by statement", self.language, type(e).__name__)
                recovered, errors = self._parse_segments(cleaned, cleaned_masked)
                body.extend(recovered)
                diagnostics.extend(errors)

        body.sort(key=lambda node: (node.span.s_line, node.span.s_col))
        meaningful = [node for node in body if not isinstance(node, EmptyStatement)]
        if not meaningful and not any(d.severity == Severity.ERROR for d in diagnostics):
            diagnostics.append(Diagnostic.create(ErrorCode.EMPTY_PROGRAM, Severity.INFO))

        structural_errors = [str(d) for d in diagnostics if d.is_structural]
        span = Span(s_line=1, s_col=1, e_line=source.count("\n") + 1, e_col=1, file_path=self.file_path)
        program = Program(language=self.language, body=body, structural_errors=structural_errors, span=span)
        logger.debug("Parsed %d top-level %s statements with %d diagnostics", len(body), self.language, len(diagnostics))
        return ParseResult(tree=program, diagnostics=diagnostics)

    def _parse_text(self, text: str) -> Program:
        parse_tree = LARK_PARSERS[self.language].parse(text, start="start")
        return TREE_TRANSFORMERS[self.language](file_path=self.file_path).transform(parse_tree)

    def _parse_segments(self, source: str, masked: str):
        """Parses each top-level statement on its own so one bad statement does not lose the rest."""
        body, errors = [], []
        for start, end in split_top_level_segments(masked, self.language):
            line = source.count("\n", 0, start) + 1
            column = start - source.rfind("\n", 0, start)
            # Padding keeps line and column numbers relative to the whole input.
            padded = "\n" * (line - 1) + " " * (column - 1) + source[start:end]
            try:
                body.extend(self._parse_text(padded).body)
            except (LarkError, RecursionError) as e:
                diagnostic = _translate_lark_error(e)
                if diagnostic.line is None:
                    diagnostic = diagnostic.model_copy(update={"line": line, "column": column})
                errors.append(diagnostic)
                text = source[start:end].strip()
                end_line = line + text.count("\n")
                body.append(
                    UnparsedStatement(
                        text=text,
                        message=diagnostic.message,
                        span=Span(s_line=line, s_col=column, e_line=end_line, e_col=1, file_path=self.file_path),
                    )
                )
        return body, errors


class JavaParser(BaseParser):
    language = "java"


class TypeScriptParser(BaseParser):
    language = "typescript"


PARSERS = {"java": JavaParser, "typescript": TypeScriptParser}


def parse_java(source: str, file_path: Optional[str] = None) -> ParseResult:
    """Parses Java source into a syntax tree plus diagnostics."""
    return JavaParser(file_path).parse(source)


def parse_typescript(source: str, file_path: Optional[str] = None) -> ParseResult:
    """Parses TypeScript or JavaScript source into a syntax tree plus diagnostics."""
    return TypeScriptParser(file_path).parse(source)

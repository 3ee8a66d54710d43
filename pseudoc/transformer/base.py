import copy
import logging
from contextlib import contextmanager
from typing import Callable, Dict, List, Optional, Set, Tuple

from pseudoc.config.config import (
    BITWISE_OPERATOR_MAP,
    BOOLEAN,
    BUILTIN_GLOBALS,
    CHAR,
    COMPARISON_OPERATOR_MAP,
    COMPOUND_ASSIGNMENT_MAP,
    INTEGER,
    JAVA_LIST_TYPES,
    LOGICAL_OPERATOR_MAP,
    MATH_OPERATOR_MAP,
    MATH_RESULT_TYPES,
    METHOD_RESULT_TYPES,
    NUMBER_PARSERS,
    REAL,
    STRING,
    STRING_METHOD_MAP,
    TYPESCRIPT_ARRAY_TYPES,
    ConversionOptions,
)
from pseudoc.exceptions import Diagnostic, ErrorCode, Severity
from pseudoc.generator.expressions import render_expression
from pseudoc.parser.core.classes import (
    ArrayLiteral,
    Assignment,
    ASTNode,
    AwaitExpression,
    BinaryOp,
    Block,
    BreakStatement,
    Call,
    ClassDeclaration,
    ConditionalExpression,
    EnumDeclaration,
    ExpressionStatement,
    FunctionDeclaration,
    Identifier,
    IfStatement,
    InterfaceDeclaration,
    InterfaceMember,
    Lambda,
    MemberAccess,
    NamespaceDeclaration,
    NewArray,
    NewObject,
    NumberLiteral,
    Parameter,
    Program,
    ReturnStatement,
    TypeAliasDeclaration,
    TypeRef,
    UnaryOp,
    VariableDeclaration,
)

from .indexing import (
    contains_index_access,
    dotted_name,
    int_literal,
    is_self_reference,
    iter_returns,
    match_counting_loop,
    split_length_bound,
)
from .ir import (
    IRKind,
    IRNode,
    TransformResult,
    add_offset,
    binary,
    comment,
    function_call,
    identifier,
    literal,
    number,
    raw,
    unary,
)
from .source_text import source_text
from .string_methods import map_math_function, map_string_method
from .symbol_table import ParameterInfo, ScopeManager
from .types import NormalizedType, combine_numeric, is_void, literal_type, normalize_type, parse_type_text

logger = logging.getLogger(__name__)

EXIT_STATEMENTS = ("break", "continue", "return", "throw")
CONSTANT_VALUE_KINDS = ("number", "string", "char", "boolean")
# Compound operators outside COMPOUND_ASSIGNMENT_MAP that still read as `x ← x op y`.
EXTRA_COMPOUND_OPERATORS = {"**=": "**", "&=": "&", "|=": "|", "^=": "^", "&&=": "&&", "||=": "||"}
INDEX_METHODS = {"charAt", "substring"}


class BaseTransformer:
    """
    Converts a syntax tree into the pseudocode IR.

    All rules shared by the input languages live here; subclasses only supply
    language tables (output and input calls, method result types) and a few
    hooks. One instance converts one tree: the scope manager and the
    diagnostics list belong to a single conversion call.
    """

    language = ""
    output_calls: Set[str] = set()
    input_source_types: Set[str] = set()
    method_result_types: Dict[str, str] = METHOD_RESULT_TYPES
    integer_division = False

    def __init__(self, options: Optional[ConversionOptions] = None):
        self.options = options or ConversionOptions()
        self.scopes = ScopeManager()
        self.diagnostics: List[Diagnostic] = []

        self._pending: List[str] = []
        self._statement_kind = "program"
        self._breakables: List[str] = []
        self._class_stack: List[ClassDeclaration] = []
        self._type_names: Set[str] = set()
        self._enum_names: Set[str] = set()
        self._zero_based_view = False

        self._statement_handlers: Dict[str, Callable[[ASTNode], List[IRNode]]] = {
            "block": lambda node: self._body(node),
            "variable_declaration": self._variable_declaration,
            "destructuring": self._destructuring,
            "expression_statement": self._expression_statement,
            "if": self._if,
            "while": self._while,
            "do_while": self._do_while,
            "for": self._for,
            "for_each": self._for_each,
            "switch": self._switch,
            "return": self._return,
            "break": self._break,
            "continue": self._continue,
            "throw": self._throw,
            "try": self._try,
            "empty": lambda node: [],
            "unparsed": self._unparsed,
            "function": self._function,
            "class": self._class,
            "interface": self._interface,
            "enum": self._enum,
            "type_alias": self._type_alias,
            "namespace": self._namespace,
            "import": self._import,
        }
        self._expression_handlers: Dict[str, Callable[[ASTNode], IRNode]] = {
            "number": self._number,
            "string": lambda node: literal(f'"{node.value}"', node.value, self._line(node)),
            "char": lambda node: literal(f"'{node.value}'", node.value, self._line(node)),
            "boolean": lambda node: literal("TRUE" if node.value else "FALSE", node.value, self._line(node)),
            "null": lambda node: literal("NULL", None, self._line(node)),
            "template": self._template,
            "identifier": self._identifier,
            "member": self._member,
            "index": self._index,
            "call": self._call,
            "new_object": self._new_object,
            "new_array": self._new_array,
            "array": lambda node: IRNode(IRKind.ARRAY_LITERAL, children=[self._expression(i) for i in node.items], line=self._line(node)),
            "object": self._object,
            "binary": self._binary,
            "unary": self._unary,
            "update": self._kept_as_written,
            "assignment": self._kept_as_written,
            "conditional": self._conditional,
            "cast": self._cast,
            "lambda": self._lambda,
            "await": self._await,
            "spread": self._spread,
        }

    # --- Entry point ---

    def transform(self, tree: Program) -> TransformResult:
        logger.debug("Transforming %d top-level %s statements", len(tree.body), self.language)
        self._predeclare(tree.body)
        children = self._statements(tree.body)
        program = IRNode(
            IRKind.PROGRAM,
            children=children,
            metadata={"language": self.language, "structural_errors": list(tree.structural_errors)},
            line=1,
        )
        self.diagnostics.extend(self.scopes.diagnostics)
        return TransformResult(ir=program, diagnostics=self.diagnostics)

    # --- Language hooks ---

    def _input_call(self, call: Call) -> Optional[Tuple[str, Optional[ASTNode]]]:
        """Returns (type, prompt) when `call` reads keyboard input."""
        return None

    def _refine_declared_type(self, declared: NormalizedType, init: Optional[ASTNode]) -> NormalizedType:
        return declared

    # --- Helpers ---

    @staticmethod
    def _line(node: Optional[ASTNode]) -> Optional[int]:
        return node.span.s_line if node is not None else None

    def _diagnose(self, code: ErrorCode, node: Optional[ASTNode] = None, severity: Severity = Severity.WARNING, **kwargs) -> None:
        self.diagnostics.append(Diagnostic.create(code, severity, span=getattr(node, "span", None), **kwargs))

    def _simplified(self, node: ASTNode, construct: str, details: str, annotation: Optional[str] = None, severity: Severity = Severity.INFO) -> None:
        self._diagnose(ErrorCode.CONSTRUCT_SIMPLIFIED, node, severity, construct=construct, details=details)
        if annotation:
            self._pending.append(annotation)

    @contextmanager
    def _inside(self, kind: str):
        self._breakables.append(kind)
        try:
            yield
        finally:
            self._breakables.pop()

    def _assign(self, target: IRNode, value: IRNode, line: Optional[int]) -> IRNode:
        return IRNode(IRKind.ASSIGNMENT, metadata={"target": target, "value": value}, line=line)

    def _length_of(self, node: ASTNode) -> IRNode:
        return function_call("LENGTH", [self._expression(node)], self._line(node))

    # --- Pre-declaration pass ---

    def _predeclare(self, statements: List[ASTNode], owner: Optional[str] = None) -> None:
        """Declares every callable up front so calls before a definition classify correctly."""
        for node in statements:
            if isinstance(node, FunctionDeclaration):
                name = owner if node.is_constructor and owner else node.name
                parameters = [self._quiet_parameter(p) for p in node.params]
                self.scopes.declare_callable(name, parameters, self._quiet_return_type(node))
            elif isinstance(node, ClassDeclaration):
                self._type_names.add(node.name)
                self._predeclare(node.members, node.name)
            elif isinstance(node, EnumDeclaration):
                self._type_names.add(node.name)
                self._enum_names.add(node.name)
            elif isinstance(node, (InterfaceDeclaration, TypeAliasDeclaration)):
                self._type_names.add(node.name)
            elif isinstance(node, NamespaceDeclaration):
                self._type_names.add(node.name)
                self._predeclare(node.body)
            elif isinstance(node, VariableDeclaration):
                for declarator in node.declarators:
                    if isinstance(declarator.initializer, Lambda):
                        self._predeclare([self._lambda_function(declarator.name, declarator.initializer, declarator)])

    def _quiet_parameter(self, param: Parameter) -> ParameterInfo:
        normalized = normalize_type(param.param_type, self.language) if param.param_type else NormalizedType(STRING)
        return ParameterInfo(param.name, normalized.base, normalized.is_array or param.is_rest, param.is_optional or param.default is not None)

    def _quiet_return_type(self, node: FunctionDeclaration) -> Optional[str]:
        if node.is_constructor:
            return None
        if node.return_type is not None:
            return None if is_void(node.return_type) else normalize_type(node.return_type, self.language).text
        if any(r.value is not None for r in iter_returns(node.body)):
            return STRING
        return None

    # --- Statements ---

    def _statements(self, nodes: List[ASTNode]) -> List[IRNode]:
        result = []
        for node in nodes:
            result.extend(self._statement(node))
        return result

    def _statement(self, node: ASTNode) -> List[IRNode]:
        handler = self._statement_handlers[node.kind]
        saved_pending, self._pending = self._pending, []
        saved_kind, self._statement_kind = self._statement_kind, node.kind
        try:
            result = handler(node)
        finally:
            pending, self._pending = self._pending, saved_pending
            self._statement_kind = saved_kind

        pending = list(dict.fromkeys(pending))
        if pending:
            if result:
                result[0].metadata["annotations"] = pending + [a for a in result[0].annotations if a not in pending]
            else:
                result = [comment(text, line=self._line(node)) for text in pending]
        return result

    def _nested(
        self,
        statements: List[ASTNode],
        kind: str = "block",
        span_node: Optional[ASTNode] = None,
        declare: Optional[Callable[[], None]] = None,
        after: Optional[Callable[[], None]] = None,
    ) -> List[IRNode]:
        """Converts a nested statement list inside its own scope, or a placeholder when nested too deeply."""
        limit = self.options.max_nesting_depth
        if self.scopes.depth >= limit:
            return self._too_deep(span_node, limit)

        depth, outer = self.scopes.depth, self.scopes.current
        self.scopes.enter_scope(kind)
        try:
            if declare is not None:
                declare()
            result = self._statements(statements)
            if after is not None:
                after()
            return result
        except RecursionError:
            # The interpreter ran out of stack before the configured limit.
            if depth == 0:
                raise
            self.scopes.current = outer
            return self._too_deep(span_node, depth)
        finally:
            self.scopes.current = outer

    def _too_deep(self, span_node: Optional[ASTNode], limit: int) -> List[IRNode]:
        self._diagnose(ErrorCode.NESTING_TOO_DEEP, span_node, limit=limit)
        logger.warning("Nesting limit of %d reached; skipping a nested block", limit)
        return [comment(f"Code nested deeper than {limit} levels was not converted", annotation=False, line=self._line(span_node))]

    def _body(self, statement: ASTNode, **kwargs) -> List[IRNode]:
        statements = statement.statements if isinstance(statement, Block) else [statement]
        return self._nested(statements, span_node=statement, **kwargs)

    def _expression_statement(self, node: ExpressionStatement) -> List[IRNode]:
        expression = node.expression
        if isinstance(expression, Call):
            return self._call_statement(expression)
        if isinstance(expression, Assignment):
            return self._assignment_statement(expression)
        if expression.kind == "update":
            step = NumberLiteral(value=1, raw="1", span=expression.span)
            op = "+=" if expression.op == "++" else "-="
            return self._assignment_statement(Assignment(op=op, target=expression.target, value=step, span=expression.span))
        if isinstance(expression, AwaitExpression):
            self._simplified(expression, "await", "the awaited call runs synchronously", "await removed: the call runs synchronously")
            return self._expression_statement(ExpressionStatement(expression=expression.expression, span=node.span))
        value = self._expression(expression)
        return [IRNode(IRKind.EXPRESSION_STATEMENT, metadata={"expression": value}, line=self._line(node))]

    def _output_items(self, node: ASTNode) -> List[IRNode]:
        """Splits a string concatenation along its left spine into separate OUTPUT items."""
        if isinstance(node, BinaryOp) and node.op == "+" and self._infer_base(node) == STRING:
            return self._output_items(node.left) + [self._expression(node.right)]
        if node.kind == "template":
            self._simplified(node, "Template literal", "interpolated parts became OUTPUT items")
            return self._template_items(node)
        return [self._expression(node)]

    def _input(self, node: ASTNode) -> Optional[Tuple[str, Optional[ASTNode]]]:
        """Recognises input calls, including ones wrapped in a number conversion."""
        if not isinstance(node, Call):
            return None
        found = self._input_call(node)
        if found is not None:
            return found
        wrapper = dotted_name(node.callee)
        if wrapper in NUMBER_PARSERS and len(node.args) == 1 and isinstance(node.args[0], Call):
            inner = self._input_call(node.args[0])
            if inner is not None:
                return NUMBER_PARSERS[wrapper], inner[1]
        return None

    def _input_statements(self, target: ASTNode, prompt: Optional[ASTNode]) -> List[IRNode]:
        line = self._line(target)
        result = []
        if prompt is not None:
            result.append(IRNode(IRKind.OUTPUT, metadata={"items": self._output_items(prompt)}, line=line))
        result.append(IRNode(IRKind.INPUT, metadata={"target": self._expression(target)}, line=line))
        return result

    def _is_input_source(self, node: ASTNode) -> bool:
        if isinstance(node, Identifier):
            info = self.scopes.lookup_variable(node.name)
            return info is not None and info.source_type in self.input_source_types
        return isinstance(node, NewObject) and node.class_type.name in self.input_source_types

    def _call_statement(self, call: Call) -> List[IRNode]:
        line = self._line(call)
        dotted = dotted_name(call.callee)
        if dotted in self.output_calls:
            if dotted.endswith("printf"):
                self._pending.append("printf format string kept as written")
            items = [item for arg in call.args for item in self._output_items(arg)]
            return [IRNode(IRKind.OUTPUT, metadata={"items": items or [literal('""')]}, line=line)]
        if self._input(call) is not None:
            return [comment("Input read and discarded", line=line)]
        if isinstance(call.callee, MemberAccess) and self._is_input_source(call.callee.target):
            # Closing or configuring an input reader has no pseudocode counterpart.
            return []

        expression = self._expression(call)
        name = expression.metadata.get("name")
        is_user_call = expression.kind == IRKind.FUNCTION_CALL and "declared" in expression.metadata
        is_user_method = expression.kind == IRKind.METHOD_CALL and not expression.metadata.get("passthrough")
        if is_user_call or is_user_method:
            info = self.scopes.lookup_callable(name)
            if info is None or info.is_procedure:
                return [IRNode(IRKind.CALL, metadata={"call": expression}, line=line)]
        return [IRNode(IRKind.EXPRESSION_STATEMENT, metadata={"expression": expression}, line=line)]

    def _assignment_statement(self, node: Assignment) -> List[IRNode]:
        line = self._line(node)
        if node.op == "=":
            if isinstance(node.value, ConditionalExpression):
                return self._expand_conditional(
                    node.value,
                    lambda branch: ExpressionStatement(expression=Assignment(op="=", target=node.target, value=branch, span=node.span), span=node.span),
                )
            found = self._input(node.value)
            if found is not None:
                return self._input_statements(node.target, found[1])
            target = self._expression(node.target)
            return [self._assign(target, self._expression(node.value), line)]

        if node.op == "??=":
            self._simplified(node, "Nullish assignment", "rewritten as an IF statement", "x ??= y assigns only when x is NULL")
            target = self._expression(node.target)
            check = IRNode(IRKind.IF_STATEMENT, metadata={"condition": binary("=", target, literal("NULL"))}, line=line)
            check.children = [self._assign(copy.deepcopy(target), self._expression(node.value), line)]
            return [check]

        operator = COMPOUND_ASSIGNMENT_MAP.get(node.op) or EXTRA_COMPOUND_OPERATORS.get(node.op)
        if operator is None:
            self._simplified(node, f"Operator '{node.op}'", "kept as written", severity=Severity.WARNING)
            return [IRNode(IRKind.EXPRESSION_STATEMENT, metadata={"expression": raw(source_text(node), line)}, line=line)]

        value = self._expression(BinaryOp(op=operator, left=node.target, right=node.value, span=node.span))
        target = copy.deepcopy(value.children[0]) if value.children else self._expression(node.target)
        return [self._assign(target, value, line)]

    def _expand_conditional(self, node: ConditionalExpression, build: Callable[[ASTNode], ASTNode]) -> List[IRNode]:
        """Turns `c ? a : b` feeding an assignment or return into IF … ELSE … ENDIF."""
        self._simplified(node, "Conditional expression", "expanded to an IF statement", "Conditional expression expanded to IF")
        line = self._line(node)
        statement = IRNode(IRKind.IF_STATEMENT, metadata={"condition": self._expression(node.condition)}, line=line)
        statement.children = self._nested([build(node.then_expr)], span_node=node)
        otherwise = IRNode(IRKind.ELSE_CLAUSE, children=self._nested([build(node.else_expr)], span_node=node), line=line)
        statement.children.append(otherwise)
        return [statement]

    # --- Declarations ---

    def _declared_type(self, name: str, type_ref: Optional[TypeRef], init: Optional[ASTNode], node: ASTNode) -> NormalizedType:
        if type_ref is not None and not (self.language == "java" and type_ref.name == "var"):
            declared = normalize_type(type_ref, self.language)
            if declared.fallback:
                self._diagnose(ErrorCode.TYPE_CONVERSION_FALLBACK, node, type_name=declared.original)
            else:
                declared = self._refine_declared_type(declared, init)
        else:
            declared = self._infer(init)
            if declared is None:
                self._diagnose(ErrorCode.TYPE_INFERENCE_FALLBACK, node, name=name)
                declared = NormalizedType(STRING, fallback=True)
        return declared.with_sizes(self._initializer_sizes(init))

    def _initializer_sizes(self, init: Optional[ASTNode]) -> List[str]:
        if isinstance(init, NewArray):
            if init.initializer is not None:
                return self._literal_sizes(init.initializer)
            return [render_expression(self._expression(size)) for size in init.sizes]
        if isinstance(init, ArrayLiteral):
            return self._literal_sizes(init)
        return []

    def _literal_sizes(self, node: ArrayLiteral) -> List[str]:
        if not node.items:
            return ["n"]
        sizes = [str(len(node.items))]
        if isinstance(node.items[0], ArrayLiteral):
            sizes += self._literal_sizes(node.items[0])
        return sizes

    @staticmethod
    def _is_constant_value(node: Optional[ASTNode]) -> bool:
        if node is None:
            return False
        if isinstance(node, UnaryOp) and node.op == "-":
            return node.operand.kind == "number"
        return node.kind in CONSTANT_VALUE_KINDS

    def _variable_declaration(self, node: VariableDeclaration) -> List[IRNode]:
        is_constant = "final" in node.modifiers or "readonly" in node.modifiers or node.declaration_kind == "const"
        if "static" in node.modifiers:
            self._pending.append("Static field")
        result = []
        for declarator in node.declarators:
            result.extend(self._declarator(node, declarator, is_constant))
        return result

    def _declarator(self, node: VariableDeclaration, declarator, is_constant: bool) -> List[IRNode]:
        name, init, line = declarator.name, declarator.initializer, self._line(declarator)
        type_ref = declarator.var_type or node.var_type
        if type_ref is not None and declarator.extra_dimensions:
            type_ref = type_ref.model_copy(update={"dimensions": type_ref.dimensions + declarator.extra_dimensions})

        if type_ref is not None and type_ref.name in self.input_source_types:
            self.scopes.declare_variable(name, STRING, source_type=type_ref.name)
            return [comment(f"{name} reads keyboard input; INPUT is used instead", line=line)]
        if isinstance(init, Lambda):
            return self._lambda_declaration(name, init, declarator)

        declared = self._declared_type(name, type_ref, init, declarator)
        source_type = type_ref.name if type_ref is not None else None
        if is_constant and self._is_constant_value(init) and not declared.is_array:
            value = self._expression(init)
            self.scopes.declare_variable(name, declared.base, is_constant=True, initial_value_text=source_text(init), source_type=source_type)
            return [IRNode(IRKind.CONSTANT_DECLARATION, metadata={"name": name, "value": value}, line=line)]

        self.scopes.declare_variable(
            name,
            declared.base,
            is_array=declared.is_array,
            dimensions=declared.sizes,
            is_constant=is_constant,
            initial_value_text=source_text(init) if init is not None else None,
            source_type=source_type,
        )
        result = [IRNode(IRKind.VARIABLE_DECLARATION, metadata={"name": name, "type": declared.text}, line=line)]
        if init is not None:
            result.extend(self._initializer(name, init, declarator))
        return result

    def _initializer(self, name: str, init: ASTNode, declarator: ASTNode) -> List[IRNode]:
        if isinstance(init, NewArray):
            if init.initializer is None:
                return []
            init = init.initializer
        if isinstance(init, ArrayLiteral):
            return self._array_elements(name, init.items, [], self._line(declarator))
        if isinstance(init, NewObject) and init.class_type.name in JAVA_LIST_TYPES | TYPESCRIPT_ARRAY_TYPES and not init.args:
            self._pending.append(f"{name} starts as an empty list")
            return []
        target = Identifier(name=name, span=declarator.span)
        return self._assignment_statement(Assignment(op="=", target=target, value=init, span=declarator.span))

    def _array_elements(self, name: str, items: List[ASTNode], prefix: List[int], line: Optional[int]) -> List[IRNode]:
        """Assigns an array literal element by element (`arr[1] ← …`)."""
        result = []
        for position, item in enumerate(items, 1):
            indices = prefix + [position]
            if isinstance(item, ArrayLiteral):
                result.extend(self._array_elements(name, item.items, indices, line))
                continue
            access = identifier(name, line=line)
            for index in indices:
                access = IRNode(IRKind.ARRAY_ACCESS, children=[access, number(index)], line=line)
            result.append(self._assign(access, self._expression(item), line))
        return result

    def _destructuring(self, node) -> List[IRNode]:
        line = self._line(node)
        self._simplified(node, "Destructuring", "each name is assigned separately", f"Destructuring of {source_text(node.initializer)} split into assignments")
        source_type = self._infer(node.initializer)
        result = []
        for position, name in enumerate(node.names, 1):
            source = self._expression(node.initializer)
            if node.pattern == "array":
                value = IRNode(IRKind.ARRAY_ACCESS, children=[source, number(position)], line=line)
                element = source_type.element() if source_type is not None and source_type.is_array else None
            else:
                value = IRNode(IRKind.MEMBER_ACCESS, children=[source], metadata={"member": name}, line=line)
                element = None
            if element is None:
                self._diagnose(ErrorCode.TYPE_INFERENCE_FALLBACK, node, name=name)
                element = NormalizedType(STRING, fallback=True)
            self.scopes.declare_variable(name, element.base, is_array=element.is_array, dimensions=element.sizes)
            result.append(IRNode(IRKind.VARIABLE_DECLARATION, metadata={"name": name, "type": element.text}, line=line))
            result.append(self._assign(identifier(name, line=line), value, line))
        return result

    # --- Control flow ---

    def _if(self, node: IfStatement) -> List[IRNode]:
        statement = IRNode(IRKind.IF_STATEMENT, metadata={"condition": self._expression(node.condition)}, line=self._line(node))
        statement.children = self._body(node.then_branch)
        branch = node.else_branch
        while branch is not None:
            if isinstance(branch, IfStatement):
                clause = IRNode(IRKind.ELSE_IF_CLAUSE, metadata={"condition": self._expression(branch.condition)}, line=self._line(branch))
                clause.children = self._body(branch.then_branch)
                branch = branch.else_branch
            else:
                clause = IRNode(IRKind.ELSE_CLAUSE, children=self._body(branch), line=self._line(branch))
                branch = None
            statement.children.append(clause)
        return [statement]

    def _while(self, node) -> List[IRNode]:
        condition = self._expression(node.condition)
        with self._inside("loop"):
            body = self._body(node.body)
        return [IRNode(IRKind.WHILE_LOOP, children=body, metadata={"condition": condition}, line=self._line(node))]

    def _do_while(self, node) -> List[IRNode]:
        with self._inside("loop"):
            body = self._body(node.body)
        condition = unary("NOT", self._expression(node.condition))
        return [IRNode(IRKind.REPEAT_LOOP, children=body, metadata={"condition": condition}, line=self._line(node))]

    def _for(self, node) -> List[IRNode]:
        loop = match_counting_loop(node)
        if loop is None:
            return self._for_as_while(node)

        line = self._line(node)
        start, end, one_based = self._loop_bounds(loop)
        if one_based:
            self._diagnose(
                ErrorCode.LOOP_BOUND_CONVERSION, node, Severity.INFO, name=loop.variable, start=render_expression(start), end=render_expression(end)
            )
        counter = normalize_type(loop.var_type, self.language) if loop.var_type is not None and loop.var_type.name != "var" else NormalizedType(INTEGER)
        if counter.base == REAL and counter.original in ("number", "Number"):
            counter = NormalizedType(INTEGER)

        def declare():
            self.scopes.declare_variable(loop.variable, counter.base, one_based=one_based)

        with self._inside("loop"):
            body = self._body(node.body, declare=declare)
        metadata = {
            "variable": loop.variable,
            "start": start,
            "end": end,
            "step": None if loop.step == 1 else number(loop.step),
        }
        return [IRNode(IRKind.FOR_LOOP, children=body, metadata=metadata, line=line)]

    def _loop_bounds(self, loop) -> Tuple[IRNode, IRNode, bool]:
        """
        Computes the FOR range. A loop bounded by a collection length is moved
        up by one so its counter can index the collection directly.
        """
        start = self._expression(loop.start)
        if loop.ascending:
            length = split_length_bound(loop.bound)
            if length is not None:
                collection, offset = length
                total = add_offset(self._length_of(collection), offset)
                end = add_offset(total, -1) if loop.comparison == "<" else total
                return add_offset(start, 1), add_offset(end, 1), True
            bound = self._expression(loop.bound)
            return start, add_offset(bound, -1) if loop.comparison == "<" else bound, False

        bound = self._expression(loop.bound)
        end = add_offset(bound, 1) if loop.comparison == ">" else bound
        length = split_length_bound(loop.start)
        if length is not None:
            collection, offset = length
            return add_offset(self._length_of(collection), offset + 1), add_offset(end, 1), True
        return start, end, False

    def _for_as_while(self, node) -> List[IRNode]:
        """Rewrites a non-counting `for` as initialiser + WHILE with the update appended to the body."""
        line = self._line(node)
        if node.init_declaration is not None:
            name = node.init_declaration.declarators[0].name
        elif node.condition is not None:
            name = source_text(node.condition)
        else:
            name = "for"
        self._diagnose(ErrorCode.NON_CANONICAL_FOR_LOOP, node, name=name)

        result = []
        if node.init_declaration is not None:
            result.extend(self._statement(node.init_declaration))
        for expression in node.init_expressions:
            result.extend(self._statement(ExpressionStatement(expression=expression, span=expression.span)))

        condition = self._expression(node.condition) if node.condition is not None else literal("TRUE", True)
        statements = node.body.statements if isinstance(node.body, Block) else [node.body]
        updates = [ExpressionStatement(expression=u, span=u.span) for u in node.update]
        with self._inside("loop"):
            body = self._nested(list(statements) + updates, span_node=node)
        loop = IRNode(IRKind.WHILE_LOOP, children=body, metadata={"condition": condition}, line=line)
        loop.annotate("for loop rewritten as WHILE")
        result.append(loop)
        return result

    def _free_index_name(self) -> str:
        for candidate in ("i", "j", "k", "index"):
            if self.scopes.lookup_variable(candidate) is None:
                return candidate
        suffix = 2
        while self.scopes.lookup_variable(f"index{suffix}") is not None:
            suffix += 1
        return f"index{suffix}"

    def _for_each(self, node) -> List[IRNode]:
        line = self._line(node)
        iterable_type = self._infer(node.iterable)
        length = self._length_of(node.iterable)

        if node.iteration == "in":
            self._simplified(node, "for...in loop", "iterates over positions 1 to LENGTH", f"for...in over {source_text(node.iterable)} iterates positions")

            def declare_key():
                self.scopes.declare_variable(node.variable, INTEGER, one_based=True)

            with self._inside("loop"):
                body = self._body(node.body, declare=declare_key)
            metadata = {"variable": node.variable, "start": number(1), "end": length, "step": None}
            return [IRNode(IRKind.FOR_LOOP, children=body, metadata=metadata, line=line)]

        if node.var_type is not None and node.var_type.name != "var":
            element = normalize_type(node.var_type, self.language)
        elif iterable_type is not None and iterable_type.is_array:
            element = iterable_type.element()
        elif iterable_type is not None and iterable_type.base == STRING:
            element = NormalizedType(CHAR if self.language == "java" else STRING)
        else:
            self._diagnose(ErrorCode.TYPE_INFERENCE_FALLBACK, node, name=node.variable)
            element = NormalizedType(STRING, fallback=True)

        index_name = self._free_index_name()
        self._simplified(node, "for-each loop", f"rewritten with the index variable {index_name}", "for-each loop rewritten with an index")
        self.scopes.declare_variable(node.variable, element.base, is_array=element.is_array, dimensions=element.sizes)
        declaration = IRNode(IRKind.VARIABLE_DECLARATION, metadata={"name": node.variable, "type": element.text}, line=line)

        def declare_index():
            self.scopes.declare_variable(index_name, INTEGER, one_based=True)

        with self._inside("loop"):
            body = self._body(node.body, declare=declare_index)
        current = IRNode(IRKind.ARRAY_ACCESS, children=[self._expression(node.iterable), identifier(index_name, line=line)], line=line)
        body.insert(0, self._assign(identifier(node.variable, line=line), current, line))
        metadata = {"variable": index_name, "start": number(1), "end": length, "step": None}
        return [declaration, IRNode(IRKind.FOR_LOOP, children=body, metadata=metadata, line=line)]

    def _switch(self, node) -> List[IRNode]:
        subject = self._expression(node.discriminant)
        branches, otherwise = [], None
        with self._inside("switch"):
            for position, case in enumerate(node.cases):
                body = list(case.body)
                if len(body) == 1 and isinstance(body[0], Block):
                    body = list(body[0].statements)
                exits = bool(body) and body[-1].kind in EXIT_STATEMENTS
                if body and isinstance(body[-1], BreakStatement) and body[-1].label is None:
                    body = body[:-1]
                falls_through = bool(case.body) and not exits and position < len(node.cases) - 1

                statements = self._nested(body, span_node=case)
                if any(label is None for label in case.labels):
                    branch = IRNode(IRKind.OTHERWISE_BRANCH, children=statements, metadata={"falls_through": falls_through}, line=self._line(case))
                    otherwise = branch
                else:
                    labels = [self._expression(label) for label in case.labels]
                    branch = IRNode(IRKind.CASE_BRANCH, children=statements, metadata={"labels": labels, "falls_through": falls_through}, line=self._line(case))
                    branches.append(branch)

                if falls_through:
                    label_text = ", ".join("default" if label is None else source_text(label) for label in case.labels)
                    successor = node.cases[position + 1].labels
                    if any(label is None for label in successor):
                        branch.annotate("Falls through into OTHERWISE")
                    else:
                        branch.annotate(f"Falls through into case {', '.join(source_text(label) for label in successor)}")
                    self._diagnose(ErrorCode.SWITCH_FALL_THROUGH, case, label=label_text)
        if otherwise is not None:
            branches.append(otherwise)
        return [IRNode(IRKind.CASE_STATEMENT, children=branches, metadata={"subject": subject}, line=self._line(node))]

    def _return(self, node: ReturnStatement) -> List[IRNode]:
        if isinstance(node.value, ConditionalExpression):
            return self._expand_conditional(node.value, lambda branch: ReturnStatement(value=branch, span=node.span))
        value = self._expression(node.value) if node.value is not None else None
        return [IRNode(IRKind.RETURN, metadata={"value": value}, line=self._line(node))]

    def _break(self, node) -> List[IRNode]:
        if self._breakables and self._breakables[-1] == "switch":
            return [comment("Leave the CASE here (break)", line=self._line(node))]
        label = f" {node.label}" if node.label else ""
        return [comment(f"Exit loop{label} here (break)", line=self._line(node))]

    def _continue(self, node) -> List[IRNode]:
        label = f" of {node.label}" if node.label else ""
        return [comment(f"Skip to the next iteration{label} (continue)", line=self._line(node))]

    def _throw(self, node) -> List[IRNode]:
        self._simplified(node, "throw", "rendered as a comment", severity=Severity.WARNING)
        return [comment(f"Raise error: {source_text(node.expression)}", annotation=False, line=self._line(node))]

    def _try(self, node) -> List[IRNode]:
        self._simplified(node, "try/catch", "the protected block runs inline and handlers became comments", "try block: errors are not handled", Severity.WARNING)
        result = self._nested(node.block.statements, span_node=node)
        for handler in node.handlers:
            caught = " | ".join(t.text for t in handler.param_types)
            described = " ".join(part for part in (caught, handler.param) if part)
            result.append(comment(f"catch ({described}) handler omitted", line=self._line(handler)))
        if node.finalizer is not None:
            result.append(comment("finally block always runs", line=self._line(node.finalizer)))
            result.extend(self._nested(node.finalizer.statements, span_node=node.finalizer))
        return result

    def _unparsed(self, node) -> List[IRNode]:
        return [IRNode(IRKind.UNPARSED, metadata={"text": node.text, "message": node.message}, line=self._line(node))]

    # --- Callables and types ---

    def _parameter(self, param: Parameter) -> Tuple[ParameterInfo, NormalizedType]:
        if param.param_type is not None:
            declared = normalize_type(param.param_type, self.language)
            if declared.fallback:
                self._diagnose(ErrorCode.TYPE_CONVERSION_FALLBACK, param, type_name=declared.original)
        else:
            declared = self._infer(param.default) if param.default is not None else None
            if declared is None:
                self._diagnose(ErrorCode.TYPE_INFERENCE_FALLBACK, param, name=param.name)
                declared = NormalizedType(STRING, fallback=True)
        if param.is_rest:
            declared = NormalizedType(declared.base, ["n"] + declared.sizes, declared.fallback, declared.original)
            self._pending.append(f"Rest parameter {param.name} collects the remaining arguments")
        if param.default is not None:
            self._pending.append(f"Parameter {param.name} defaults to {source_text(param.default)}")
        elif param.is_optional:
            self._pending.append(f"Optional parameter {param.name}")
        optional = param.is_optional or param.default is not None
        return ParameterInfo(param.name, declared.base, declared.is_array, optional), declared

    def _return_type(self, node: FunctionDeclaration, name: str) -> Optional[NormalizedType]:
        if node.is_constructor:
            return None
        if node.return_type is not None:
            if is_void(node.return_type):
                return None
            declared = normalize_type(node.return_type, self.language)
            if declared.fallback:
                self._diagnose(ErrorCode.TYPE_CONVERSION_FALLBACK, node, type_name=declared.original)
            return declared
        values = [r.value for r in iter_returns(node.body) if r.value is not None]
        if not values:
            return None
        inferred = self._infer(values[0])
        if inferred is None:
            self._diagnose(ErrorCode.TYPE_INFERENCE_FALLBACK, node, name=name)
            inferred = NormalizedType(STRING, fallback=True)
        return inferred

    def _callable_annotations(self, node: FunctionDeclaration, owner: Optional[str]) -> None:
        modifiers = set(node.modifiers)
        if node.is_constructor and owner:
            self._pending.append(f"Constructor for {owner}")
        if "static" in modifiers:
            self._pending.append("Static method")
        if "async" in modifiers:
            self._simplified(node, "async function", "it runs synchronously in pseudocode", "Async function")
        if "abstract" in modifiers or node.body is None:
            self._pending.append("Abstract method: no body")
        if node.type_params:
            self._simplified(node, "Generics", "type parameters were dropped", f"Generic type parameters: {', '.join(node.type_params)}")
        if node.decorators:
            self._simplified(node, "Decorators", "they were dropped", f"Decorators: {', '.join(node.decorators)}")

    def _function(self, node: FunctionDeclaration) -> List[IRNode]:
        owner = self._class_stack[-1].name if self._class_stack else None
        name = owner if node.is_constructor and owner else node.name
        self._callable_annotations(node, owner)

        parameters: List[ParameterInfo] = []
        rendered: List[Dict[str, str]] = []
        resolved: Dict[str, Optional[NormalizedType]] = {}

        def declare():
            for param in node.params:
                info, declared = self._parameter(param)
                parameters.append(info)
                rendered.append({"name": param.name, "type": declared.text})
                source_type = param.param_type.name if param.param_type is not None else None
                self.scopes.declare_variable(param.name, declared.base, is_array=declared.is_array, dimensions=declared.sizes, source_type=source_type)

        def finish():
            resolved["return_type"] = self._return_type(node, name)

        statements = node.body.statements if node.body is not None else []
        body = self._nested(statements, "function", span_node=node, declare=declare, after=finish)

        if "return_type" in resolved:
            return_type = resolved["return_type"].text if resolved["return_type"] is not None else None
        else:
            known = self.scopes.lookup_callable(name)
            return_type = known.return_type if known is not None else None
        self.scopes.declare_callable(name, parameters, return_type)

        kind = IRKind.PROCEDURE if return_type is None else IRKind.FUNCTION
        metadata = {"name": name, "params": rendered, "return_type": return_type}
        return [IRNode(kind, children=body, metadata=metadata, line=self._line(node))]

    def _lambda_function(self, name: str, node: Lambda, declarator: ASTNode) -> FunctionDeclaration:
        """Builds the named callable a lambda-valued variable stands for."""
        if isinstance(node.body, Block):
            body = node.body
        else:
            expression = node.body
            returns_nothing = False
            if isinstance(expression, Call):
                dotted = dotted_name(expression.callee)
                known = self.scopes.lookup_callable(dotted) if dotted else None
                returns_nothing = dotted in self.output_calls or (known is not None and known.is_procedure)
            if returns_nothing:
                statement = ExpressionStatement(expression=expression, span=expression.span)
            else:
                statement = ReturnStatement(value=expression, span=expression.span)
            body = Block(statements=[statement], span=expression.span)
        modifiers = ["async"] if node.is_async else []
        return FunctionDeclaration(name=name, params=node.params, body=body, modifiers=modifiers, span=declarator.span)

    def _lambda_declaration(self, name: str, node: Lambda, declarator: ASTNode) -> List[IRNode]:
        self._simplified(node, "Lambda", f"converted to the named callable {name}", f"Lambda assigned to {name} converted to a named callable")
        return self._function(self._lambda_function(name, node, declarator))

    def _class(self, node: ClassDeclaration) -> List[IRNode]:
        self._type_names.add(node.name)
        self._simplified(node, f"Class {node.name}", "fields became declarations and methods became procedures or functions")
        if node.superclass is not None:
            self._pending.append(f"{node.name} inherits from {node.superclass.text}")
        if node.interfaces:
            self._pending.append(f"{node.name} implements {', '.join(i.text for i in node.interfaces)}")
        if "abstract" in node.modifiers:
            self._pending.append(f"{node.name} is abstract")
        if node.type_params:
            self._simplified(node, "Generics", "type parameters were dropped", f"Generic type parameters: {', '.join(node.type_params)}")
        if node.decorators:
            self._simplified(node, "Decorators", "they were dropped", f"Decorators: {', '.join(node.decorators)}")

        self._class_stack.append(node)
        try:
            members = self._nested(node.members, "class", span_node=node)
        finally:
            self._class_stack.pop()
        return [IRNode(IRKind.CLASS_DECLARATION, children=members, metadata={"name": node.name}, line=self._line(node))]

    def _interface(self, node: InterfaceDeclaration) -> List[IRNode]:
        self._simplified(node, f"Interface {node.name}", "its members are listed as comments")
        header = f"Interface {node.name}"
        if node.extends:
            header += f" extends {', '.join(t.text for t in node.extends)}"
        result = [comment(header, line=self._line(node))]
        for member in node.members:
            result.append(comment(f"   {self._member_signature(member)}", line=self._line(member)))
        return result

    @staticmethod
    def _member_signature(member: ASTNode) -> str:
        if isinstance(member, InterfaceMember):
            optional = "?" if member.is_optional else ""
            type_text = member.member_type.text if member.member_type is not None else "any"
            if member.params is not None:
                params = ", ".join(p.name for p in member.params)
                return f"{member.name}{optional}({params}): {type_text}"
            return f"{member.name}{optional}: {type_text}"
        if isinstance(member, FunctionDeclaration):
            params = ", ".join(p.name for p in member.params)
            type_text = member.return_type.text if member.return_type is not None else "void"
            return f"{member.name}({params}): {type_text}"
        if isinstance(member, VariableDeclaration):
            return ", ".join(d.name for d in member.declarators)
        return source_text(member)

    def _enum(self, node: EnumDeclaration) -> List[IRNode]:
        self._type_names.add(node.name)
        self._enum_names.add(node.name)
        self._simplified(node, f"Enum {node.name}", "its members became constants", f"Enum {node.name} converted to constants")
        result, counter = [], 0
        for member in node.members:
            if member.value is not None:
                value = self._expression(member.value)
                member_type = self._infer_base(member.value) or INTEGER
                explicit = int_literal(member.value)
                counter = explicit + 1 if explicit is not None else counter + 1
            else:
                value, member_type = number(counter, self._line(member)), INTEGER
                counter += 1
            self.scopes.declare_variable(member.name, member_type, is_constant=True, initial_value_text=render_expression(value))
            result.append(IRNode(IRKind.CONSTANT_DECLARATION, metadata={"name": member.name, "value": value}, line=self._line(member)))
        return result

    def _type_alias(self, node: TypeAliasDeclaration) -> List[IRNode]:
        self._type_names.add(node.name)
        self._simplified(node, f"Type alias {node.name}", "kept as a comment")
        return [comment(f"Type {node.name} = {node.aliased.text}", line=self._line(node))]

    def _namespace(self, node: NamespaceDeclaration) -> List[IRNode]:
        self._simplified(node, f"Namespace {node.name}", "its members were moved to the enclosing scope", f"Namespace {node.name}")
        return self._statements(node.body)

    def _import(self, node) -> List[IRNode]:
        return [comment(f"Import omitted: {node.text.strip()}", line=self._line(node))]

    # --- Expressions ---

    def _expression(self, node: ASTNode) -> IRNode:
        return self._expression_handlers[node.kind](node)

    def _number(self, node: NumberLiteral) -> IRNode:
        text = node.raw.replace("_", "")
        if text.lower().startswith(("0x", "0b", "0o")) or text.endswith("."):
            text = str(node.value)
        elif "e" not in text.lower():
            text = text.rstrip("lLfFdDn")
        return literal(text, node.value, self._line(node))

    def _template_items(self, node) -> List[IRNode]:
        items = []
        for part in node.parts:
            if isinstance(part, str):
                if part:
                    items.append(literal('"' + part.replace('"', '\\"') + '"', part, self._line(node)))
            else:
                items.append(self._expression(part))
        return items

    def _template(self, node) -> IRNode:
        self._simplified(node, "Template literal", "converted to string concatenation with &", "Template literal converted to concatenation")
        items = self._template_items(node) or [literal('""', "", self._line(node))]
        result = items[0]
        for item in items[1:]:
            result = binary("&", result, item, self._line(node))
        return result

    def _identifier(self, node: Identifier) -> IRNode:
        name, line = node.name, self._line(node)
        if name == "undefined":
            return literal("NULL", None, line)
        if name in ("this", "super"):
            return identifier(name, True, line)
        info = self.scopes.lookup_variable(name)
        declared = (
            info is not None or self.scopes.lookup_callable(name) is not None or name in self._type_names or name in BUILTIN_GLOBALS
        )
        result = identifier(name, declared, line)
        if info is not None and info.one_based and self._zero_based_view:
            return binary("-", result, number(1), line)
        return result

    def _member(self, node: MemberAccess) -> IRNode:
        line = self._line(node)
        if node.optional:
            self._simplified(node, "Optional chaining", "treated as ordinary member access", "Optional chaining ?. treated as .")
        if is_self_reference(node.target):
            if self.scopes.shadows_field(node.member):
                owner = self._class_stack[-1].name if self._class_stack else "the class"
                self._simplified(
                    node,
                    f"Field access this.{node.member}",
                    "kept with its object because a local name hides the field",
                    f"this.{node.member} is the field of {owner}, not the local {node.member}",
                )
                return IRNode(IRKind.MEMBER_ACCESS, children=[identifier("this", True, line)], metadata={"member": node.member}, line=line)
            return self._identifier(Identifier(name=node.member, span=node.span))
        if node.member == "length":
            return self._length_of(node.target)
        if isinstance(node.target, Identifier) and node.target.name in self._enum_names:
            return identifier(node.member, True, line)
        return IRNode(IRKind.MEMBER_ACCESS, children=[self._expression(node.target)], metadata={"member": node.member}, line=line)

    def _zero_based(self, node: ASTNode) -> IRNode:
        """Converts an index expression as seen with 0-based counters, ready to be shifted."""
        previous, self._zero_based_view = self._zero_based_view, True
        try:
            return self._expression(node)
        finally:
            self._zero_based_view = previous

    def _index_value(self, node: ASTNode) -> IRNode:
        if isinstance(node, Identifier):
            info = self.scopes.lookup_variable(node.name)
            if info is not None and info.one_based:
                return self._identifier(node)
        shifted = add_offset(self._zero_based(node), 1)
        self._diagnose(ErrorCode.ARRAY_INDEX_CONVERSION, node, Severity.INFO, original=source_text(node), converted=render_expression(shifted))
        if contains_index_access(node):
            self._diagnose(ErrorCode.ARRAY_INDEX_REVIEW, node, original=source_text(node))
        return shifted

    def _index(self, node) -> IRNode:
        target = self._expression(node.target)
        if node.index.kind == "string":
            index = self._expression(node.index)
        else:
            index = self._index_value(node.index)
        return IRNode(IRKind.ARRAY_ACCESS, children=[target, index], line=self._line(node))

    def _call(self, node: Call) -> IRNode:
        line = self._line(node)
        callee = node.callee
        dotted = dotted_name(callee)
        if self._input(node) is not None:
            self._simplified(node, "Input inside an expression", "read it into a variable with INPUT first", severity=Severity.WARNING)
            return raw(source_text(node), line)
        if dotted in NUMBER_PARSERS and len(node.args) == 1:
            return function_call("STR_TO_NUM", [self._expression(node.args[0])], line)
        if isinstance(callee, MemberAccess):
            return self._method_call(node, callee, dotted)
        if isinstance(callee, Identifier):
            name = callee.name
            if name == "super" and self._class_stack and self._class_stack[-1].superclass is not None:
                name = self._class_stack[-1].superclass.name
                self._pending.append(f"Calls the {name} constructor")
            call = function_call(name, [self._expression(a) for a in node.args], line)
            call.metadata["declared"] = self.scopes.lookup_callable(name) is not None or name in self._type_names
            return call
        self._diagnose(ErrorCode.NO_DIRECT_EQUIVALENT, node, name=source_text(callee))
        return raw(source_text(node), line)

    def _method_call(self, node: Call, callee: MemberAccess, dotted: Optional[str]) -> IRNode:
        line, method, target_node = self._line(node), callee.member, callee.target
        if callee.optional:
            self._simplified(callee, "Optional chaining", "treated as an ordinary call", "Optional chaining ?. treated as .")
        if is_self_reference(target_node):
            call = function_call(method, [self._expression(a) for a in node.args], line)
            call.metadata["declared"] = self.scopes.lookup_callable(method) is not None
            return call
        if isinstance(target_node, Identifier) and target_node.name == "Math":
            mapped = map_math_function(method, [self._expression(a) for a in node.args])
            if mapped is not None:
                return mapped

        user_method = self.scopes.lookup_callable(method) is not None
        entry = STRING_METHOD_MAP.get(method)
        if entry is not None and not user_method and len(node.args) in entry["arity"]:
            index_args = {0, 1} if method == "substring" else set(entry.get("one_based_args", ()))
            target = self._expression(target_node)
            args = [self._zero_based(a) if i in index_args else self._expression(a) for i, a in enumerate(node.args)]
            mapped = map_string_method(method, target, args)
            if mapped is not None:
                return mapped

        target = self._expression(target_node)
        args = [self._expression(a) for a in node.args]
        if not user_method:
            self._diagnose(ErrorCode.NO_DIRECT_EQUIVALENT, node, name=dotted or method)
        return IRNode(IRKind.METHOD_CALL, children=[target] + args, metadata={"name": method, "passthrough": not user_method}, line=line)

    def _new_object(self, node: NewObject) -> IRNode:
        name = node.class_type.name
        self._simplified(node, "Object instantiation", f"a {name} object is created with NEW", f"Creates a new {name} object")
        args = [self._expression(a) for a in node.args]
        return IRNode(IRKind.NEW_OBJECT, children=args, metadata={"class_name": name}, line=self._line(node))

    def _new_array(self, node: NewArray) -> IRNode:
        if node.initializer is not None:
            return self._expression(node.initializer)
        element = normalize_type(node.element_type, self.language)
        sizes = [render_expression(self._expression(s)) for s in node.sizes]
        shaped = NormalizedType(element.base, sizes + ["n"] * (node.dimensions - len(sizes)))
        self._simplified(node, "Array creation", "written as its array type", severity=Severity.WARNING)
        return raw(shaped.text, self._line(node))

    def _object(self, node) -> IRNode:
        self._simplified(node, "Object literal", "kept as written", severity=Severity.WARNING)
        return raw(source_text(node), self._line(node))

    def _binary(self, node: BinaryOp) -> IRNode:
        op, line = node.op, self._line(node)
        if op == "instanceof":
            self._simplified(node, "instanceof", "kept as written", "Type check kept as written", Severity.WARNING)
            return raw(source_text(node), line)
        if op == "??":
            self._simplified(node, "Nullish coalescing", "rewritten as a conditional", "a ?? b uses b when a is NULL")
            left = self._expression(node.left)
            check = binary("<>", left, literal("NULL"), line)
            return IRNode(IRKind.CONDITIONAL, children=[check, copy.deepcopy(left), self._expression(node.right)], line=line)

        left, right = self._expression(node.left), self._expression(node.right)
        if op == "+" and STRING in (self._infer_base(node.left), self._infer_base(node.right)):
            return binary("&", left, right, line)
        if op == "/" and self.integer_division and self._infer_base(node.left) == INTEGER and self._infer_base(node.right) == INTEGER:
            return function_call("DIV", [left, right], line)
        if op == "**":
            return function_call("POWER", [left, right], line)
        mapped = COMPARISON_OPERATOR_MAP.get(op) or LOGICAL_OPERATOR_MAP.get(op) or MATH_OPERATOR_MAP.get(op) or BITWISE_OPERATOR_MAP.get(op)
        if mapped is None:
            self._simplified(node, f"Operator '{op}'", "kept as written", severity=Severity.WARNING)
            return raw(source_text(node), line)
        if op in BITWISE_OPERATOR_MAP and not self._infer_base(node.left) == self._infer_base(node.right) == BOOLEAN:
            self._simplified(
                node,
                f"Bitwise operator '{op}'",
                f"rendered as the logical operator {mapped}",
                f"'{op}' works on bits in the source; {mapped} is only exact for BOOLEAN values",
                Severity.WARNING,
            )
        return binary(mapped, left, right, line)

    def _unary(self, node: UnaryOp) -> IRNode:
        line = self._line(node)
        if node.op == "!":
            return unary("NOT", self._expression(node.operand), line)
        if node.op == "+":
            return self._expression(node.operand)
        if node.op == "-":
            operand = self._expression(node.operand)
            value = operand.metadata["value"] if operand.kind == IRKind.LITERAL else None
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                text = operand.metadata["text"]
                return literal(text[1:] if text.startswith("-") else f"-{text}", -value, line)
            return unary("-", operand, line)
        self._simplified(node, f"Operator '{node.op}'", "kept as written", severity=Severity.WARNING)
        return raw(source_text(node), line)

    def _kept_as_written(self, node) -> IRNode:
        self._simplified(node, "Assignment inside an expression", "kept as written; move it to its own statement", severity=Severity.WARNING)
        return raw(source_text(node), self._line(node))

    def _conditional(self, node: ConditionalExpression) -> IRNode:
        self._diagnose(ErrorCode.INLINE_TERNARY, node, context=self._statement_kind)
        children = [self._expression(node.condition), self._expression(node.then_expr), self._expression(node.else_expr)]
        return IRNode(IRKind.CONDITIONAL, children=children, line=self._line(node))

    def _cast(self, node) -> IRNode:
        value = self._expression(node.expression)
        if self.language != "java":
            self._pending.append(f"Type assertion 'as {node.target_type.text}' removed")
            return value
        target = normalize_type(node.target_type, self.language)
        operand = self._infer_base(node.expression)
        if target.base == INTEGER and operand == REAL:
            self._pending.append("Cast to int truncates the decimal part")
            return function_call("INT", [value], self._line(node))
        if target.base == CHAR and operand == INTEGER:
            return function_call("CHR", [value], self._line(node))
        if target.base == INTEGER and operand == CHAR:
            return function_call("ASC", [value], self._line(node))
        return value

    def _lambda(self, node: Lambda) -> IRNode:
        self._simplified(node, "Lambda", "kept as written; define a named PROCEDURE or FUNCTION instead", "Lambda kept as written", Severity.WARNING)
        return raw(source_text(node), self._line(node))

    def _await(self, node) -> IRNode:
        self._simplified(node, "await", "the awaited value is used directly", "await removed: the call runs synchronously")
        return self._expression(node.expression)

    def _spread(self, node) -> IRNode:
        self._simplified(node, "Spread operator", "the collection is passed as a whole", f"...{source_text(node.expression)} spreads its elements")
        return self._expression(node.expression)

    # --- Type inference ---

    def _infer_base(self, node: Optional[ASTNode]) -> Optional[str]:
        """The scalar pseudocode type of an expression, None for arrays and unknowns."""
        inferred = self._infer(node)
        return inferred.base if inferred is not None and not inferred.is_array else None

    def _infer(self, node: Optional[ASTNode]) -> Optional[NormalizedType]:
        if node is None:
            return None
        kind = node.kind
        scalar = literal_type(kind, getattr(node, "value", None))
        if scalar is not None:
            return NormalizedType(scalar)
        if kind == "identifier":
            info = self.scopes.lookup_variable(node.name)
            return NormalizedType(info.normalized_type, list(info.array_dimensions)) if info is not None else None
        if kind == "member":
            if node.member == "length":
                return NormalizedType(INTEGER)
            if is_self_reference(node.target):
                return self._infer(Identifier(name=node.member, span=node.span))
            if isinstance(node.target, Identifier) and node.target.name in self._enum_names:
                return self._infer(Identifier(name=node.member, span=node.span))
            return None
        if kind == "index":
            target = self._infer(node.target)
            if target is not None and target.is_array:
                return target.element()
            if target is not None and target.base == STRING:
                return NormalizedType(CHAR if self.language == "java" else STRING)
            return None
        if kind == "call":
            return self._infer_call(node)
        if kind == "new_array":
            if node.initializer is not None:
                return self._infer(node.initializer)
            element = normalize_type(node.element_type, self.language)
            return NormalizedType(element.base, ["n"] * node.dimensions + element.sizes)
        if kind == "array":
            if not node.items:
                return None
            element = self._infer(node.items[0])
            if element is None:
                return None
            return NormalizedType(element.base, [str(len(node.items))] + element.sizes)
        if kind == "binary":
            return self._infer_binary(node)
        if kind == "unary":
            return NormalizedType(BOOLEAN) if node.op == "!" else self._infer(node.operand)
        if kind == "update":
            return self._infer(node.target)
        if kind == "assignment":
            return self._infer(node.value)
        if kind == "conditional":
            return self._infer(node.then_expr) or self._infer(node.else_expr)
        if kind == "cast":
            target = normalize_type(node.target_type, self.language)
            return None if target.fallback else target
        if kind in ("await", "spread"):
            return self._infer(node.expression)
        return None

    def _infer_binary(self, node: BinaryOp) -> Optional[NormalizedType]:
        op = node.op
        if op in COMPARISON_OPERATOR_MAP or op in ("&&", "||", "instanceof"):
            return NormalizedType(BOOLEAN)
        left, right = self._infer_base(node.left), self._infer_base(node.right)
        if op == "??":
            base = left or right
        elif op == "+" and STRING in (left, right):
            base = STRING
        elif op == "/":
            if left is None or right is None:
                return None
            base = INTEGER if self.integer_division and left == INTEGER and right == INTEGER else REAL
        else:
            base = combine_numeric(left, right)
        return NormalizedType(base) if base is not None else None

    def _infer_call(self, node: Call) -> Optional[NormalizedType]:
        found = self._input(node)
        if found is not None:
            return NormalizedType(found[0])
        dotted = dotted_name(node.callee)
        if dotted in NUMBER_PARSERS:
            return NormalizedType(NUMBER_PARSERS[dotted])
        callee = node.callee
        name = None
        if isinstance(callee, Identifier):
            name = callee.name
        elif isinstance(callee, MemberAccess):
            method = callee.member
            if isinstance(callee.target, Identifier) and callee.target.name == "Math":
                if method in MATH_RESULT_TYPES:
                    return NormalizedType(MATH_RESULT_TYPES[method])
                operands = [self._infer_base(a) for a in node.args]
                return NormalizedType(REAL if REAL in operands else operands[0]) if operands and operands[0] else None
            if self.scopes.lookup_callable(method) is None and method in self.method_result_types:
                return NormalizedType(self.method_result_types[method])
            name = method
        info = self.scopes.lookup_callable(name) if name else None
        if info is not None and info.return_type is not None:
            return parse_type_text(info.return_type)
        return None

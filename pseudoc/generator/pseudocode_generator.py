import logging
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from pseudoc.config.config import ASSIGNMENT_ARROW, ConversionOptions
from pseudoc.exceptions import Diagnostic, ErrorCode, InternalCompilerError, Severity
from pseudoc.transformer.ir import IRCategory, IRKind, IRNode

from .expressions import ExpressionRenderer

logger = logging.getLogger(__name__)

OPENER = "opener"
CLOSER = "closer"
CONTINUATION = "continuation"
PLAIN = "plain"
BLANK = "blank"

# Role of the header line each statement kind emits. Openers are always
# paired with the closer line returned by `_closer`.
LINE_ROLES: Dict[IRKind, str] = {
    IRKind.PROGRAM: PLAIN,
    IRKind.VARIABLE_DECLARATION: PLAIN,
    IRKind.CONSTANT_DECLARATION: PLAIN,
    IRKind.CLASS_DECLARATION: PLAIN,
    IRKind.PROCEDURE: OPENER,
    IRKind.FUNCTION: OPENER,
    IRKind.IF_STATEMENT: OPENER,
    IRKind.ELSE_IF_CLAUSE: CONTINUATION,
    IRKind.ELSE_CLAUSE: CONTINUATION,
    IRKind.WHILE_LOOP: OPENER,
    IRKind.FOR_LOOP: OPENER,
    IRKind.REPEAT_LOOP: OPENER,
    IRKind.CASE_STATEMENT: OPENER,
    IRKind.CASE_BRANCH: CONTINUATION,
    IRKind.OTHERWISE_BRANCH: CONTINUATION,
    IRKind.ASSIGNMENT: PLAIN,
    IRKind.OUTPUT: PLAIN,
    IRKind.INPUT: PLAIN,
    IRKind.CALL: PLAIN,
    IRKind.RETURN: PLAIN,
    IRKind.EXPRESSION_STATEMENT: PLAIN,
    IRKind.COMMENT: PLAIN,
    IRKind.UNPARSED: PLAIN,
}


@dataclass
class Line:
    role: str
    text: str = ""


class PseudocodeGenerator:
    """
    Renders an IR tree as pseudocode text in two passes: the tree is first
    flattened into role-tagged lines, then a single level counter turns the
    roles into indentation. Nothing before the formatter indents.
    """

    def __init__(self, options: Optional[ConversionOptions] = None):
        self.options = options or ConversionOptions()
        self.diagnostics: List[Diagnostic] = []
        self.expressions = ExpressionRenderer()
        self._headers: Dict[IRKind, Callable[[IRNode], str]] = {
            IRKind.PROGRAM: lambda node: "",
            IRKind.VARIABLE_DECLARATION: lambda node: f"DECLARE {node.metadata['name']} : {node.metadata['type']}",
            IRKind.CONSTANT_DECLARATION: lambda node: f"CONSTANT {node.metadata['name']} {ASSIGNMENT_ARROW} {self._expr(node.metadata['value'])}",
            IRKind.CLASS_DECLARATION: lambda node: f"// {node.metadata['name']} class",
            IRKind.PROCEDURE: lambda node: f"PROCEDURE {node.metadata['name']}({self._params(node)})",
            IRKind.FUNCTION: lambda node: f"FUNCTION {node.metadata['name']}({self._params(node)}) RETURNS {node.metadata['return_type']}",
            IRKind.IF_STATEMENT: lambda node: f"IF {self._expr(node.metadata['condition'])} THEN",
            IRKind.ELSE_IF_CLAUSE: lambda node: f"ELSE IF {self._expr(node.metadata['condition'])} THEN",
            IRKind.ELSE_CLAUSE: lambda node: "ELSE",
            IRKind.WHILE_LOOP: lambda node: f"WHILE {self._expr(node.metadata['condition'])} DO",
            IRKind.FOR_LOOP: self._for_header,
            IRKind.REPEAT_LOOP: lambda node: "REPEAT",
            IRKind.CASE_STATEMENT: lambda node: f"CASE OF {self._expr(node.metadata['subject'])}",
            IRKind.CASE_BRANCH: lambda node: ", ".join(self._expr(label) for label in node.metadata["labels"]) + ":",
            IRKind.OTHERWISE_BRANCH: lambda node: "OTHERWISE",
            IRKind.ASSIGNMENT: lambda node: f"{self._expr(node.metadata['target'])} {ASSIGNMENT_ARROW} {self._expr(node.metadata['value'])}",
            IRKind.OUTPUT: lambda node: "OUTPUT " + ", ".join(self._expr(item) for item in node.metadata["items"]),
            IRKind.INPUT: lambda node: f"INPUT {self._expr(node.metadata['target'])}",
            IRKind.CALL: lambda node: f"CALL {self._expr(node.metadata['call'])}",
            IRKind.RETURN: self._return,
            IRKind.EXPRESSION_STATEMENT: lambda node: self._expr(node.metadata["expression"]),
            IRKind.COMMENT: lambda node: f"// {node.metadata['text']}",
            IRKind.UNPARSED: lambda node: f"// Could not convert: {node.metadata['message']}",
        }

    def generate(self, ir: IRNode) -> str:
        """Renders a PROGRAM node; the result ends with exactly one newline, or is empty."""
        if ir.kind != IRKind.PROGRAM:
            raise InternalCompilerError(f"Expected a program node, got '{ir.kind.value}'.")
        self.diagnostics = []

        lines: List[Line] = []
        for error in ir.metadata.get("structural_errors", []):
            lines.append(Line(PLAIN, f"// {error}"))
        self._emit_sequence(ir.children, lines, separate_callables=True)

        output_lines = self._format(lines)
        if self.options.is_strict:
            self._check_strict(ir, output_lines)
        logger.debug("Generated %d lines of pseudocode", len(output_lines))
        return "\n".join(output_lines) + "\n" if output_lines else ""

    # --- Pass 1: flatten the tree into role-tagged lines ---

    def _emit_sequence(self, nodes: List[IRNode], lines: List[Line], separate_callables: bool = False) -> None:
        previous = None
        for node in nodes:
            if separate_callables and previous is not None:
                if IRCategory.FUNCTION_LIKE in (node.category, previous.category):
                    lines.append(Line(BLANK))
            self._emit(node, lines)
            previous = node

    def _emit(self, node: IRNode, lines: List[Line]) -> None:
        role = LINE_ROLES.get(node.kind)
        if role is None:
            raise InternalCompilerError(f"IR node of kind '{node.kind.value}' cannot be used as a statement.")

        annotation_role = CONTINUATION if role == CONTINUATION else PLAIN
        if self.options.include_annotation_comments:
            for annotation in node.annotations:
                lines.append(Line(annotation_role, f"// {annotation}"))

        if node.kind == IRKind.COMMENT and node.metadata.get("annotation") and not self.options.include_annotation_comments:
            return

        lines.append(Line(role, self._headers[node.kind](node)))
        if node.kind == IRKind.UNPARSED:
            for source_line in node.metadata["text"].splitlines():
                lines.append(Line(PLAIN, f"//   {source_line.rstrip()}"))

        # Classes are containers: their members sit at the class's own level.
        self._emit_sequence(node.children, lines, separate_callables=node.kind == IRKind.CLASS_DECLARATION)
        if role == OPENER:
            lines.append(Line(CLOSER, self._closer(node)))

    def _closer(self, node: IRNode) -> str:
        if node.kind == IRKind.FOR_LOOP:
            return f"NEXT {node.metadata['variable']}"
        if node.kind == IRKind.REPEAT_LOOP:
            return f"UNTIL {self._expr(node.metadata['condition'])}"
        return {
            IRKind.PROCEDURE: "ENDPROCEDURE",
            IRKind.FUNCTION: "ENDFUNCTION",
            IRKind.IF_STATEMENT: "ENDIF",
            IRKind.WHILE_LOOP: "ENDWHILE",
            IRKind.CASE_STATEMENT: "ENDCASE",
        }[node.kind]

    def _expr(self, node: IRNode) -> str:
        return self.expressions.render(node)

    def _params(self, node: IRNode) -> str:
        return ", ".join(f"{p['name']} : {p['type']}" for p in node.metadata["params"])

    def _for_header(self, node: IRNode) -> str:
        meta = node.metadata
        header = f"FOR {meta['variable']} {ASSIGNMENT_ARROW} {self._expr(meta['start'])} TO {self._expr(meta['end'])}"
        if meta.get("step") is not None:
            header += f" STEP {self._expr(meta['step'])}"
        return header

    def _return(self, node: IRNode) -> str:
        value = node.metadata.get("value")
        return "RETURN" if value is None else f"RETURN {self._expr(value)}"

    # --- Pass 2: apply the level counter ---

    def _format(self, lines: List[Line]) -> List[str]:
        width = max(self.options.indent_width, 0)
        level = 0
        output: List[str] = []
        for line in lines:
            if line.role == BLANK:
                if output and output[-1] != "":
                    output.append("")
                continue
            if line.role == CLOSER:
                level = max(level - 1, 0)
            current = max(level - 1, 0) if line.role == CONTINUATION else level
            output.append((" " * (width * current) + line.text).rstrip())
            if line.role == OPENER:
                level += 1

        while output and output[-1] == "":
            output.pop()
        return output

    # --- Strict mode ---

    def _check_strict(self, ir: IRNode, output_lines: List[str]) -> None:
        reported = set()
        for node in ir.walk():
            if node.kind in (IRKind.IDENTIFIER, IRKind.FUNCTION_CALL) and node.metadata.get("declared") is False:
                name = node.metadata["name"]
                if name not in reported:
                    reported.add(name)
                    self.diagnostics.append(Diagnostic.create(ErrorCode.UNDECLARED_IDENTIFIER, Severity.WARNING, line=node.line, name=name))
            elif node.kind == IRKind.METHOD_CALL and node.metadata.get("passthrough"):
                self.diagnostics.append(Diagnostic.create(ErrorCode.PASS_THROUGH_CALL, Severity.WARNING, line=node.line, name=node.metadata["name"]))

        limit = self.options.max_line_length
        for number, text in enumerate(output_lines, 1):
            if len(text) > limit:
                self.diagnostics.append(
                    Diagnostic.create(ErrorCode.LINE_TOO_LONG, Severity.WARNING, line=number, line_number=number, length=len(text), limit=limit)
                )

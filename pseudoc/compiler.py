import json
import logging
import os
from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from pseudoc.config.config import LANGUAGE_ALIASES, ConversionOptions
from pseudoc.generator.pseudocode_generator import PseudocodeGenerator
from pseudoc.parser.core.parser import PARSERS
from pseudoc.transformer.ir import IRCategory
from pseudoc.transformer.java import JavaTransformer
from pseudoc.transformer.typescript import TypeScriptTransformer

from .exceptions import Diagnostic, ErrorCode, InternalCompilerError, PseudocError, Severity
from .utils import CompilerArtifactEncoder, recursion_headroom
from .validator import validate_input

logger = logging.getLogger(__name__)

TRANSFORMERS = {"java": JavaTransformer, "typescript": TypeScriptTransformer}
STAGES = ("ast", "ir", "pseudocode")


class ConversionResult(BaseModel):
    pseudocode: str
    diagnostics: List[Diagnostic] = []
    success: bool
    metadata: Dict[str, Any] = {}


def resolve_language(language: str, file_path: Optional[str] = None) -> str:
    resolved = LANGUAGE_ALIASES.get((language or "").lower())
    if resolved is None:
        raise PseudocError(ErrorCode.UNKNOWN_LANGUAGE, file_path=file_path, language=language)
    return resolved


class ConversionPipeline:
    """
    Orchestrates one conversion from source text to pseudocode.
    This class manages the flow of data between the stages (validate, parse,
    transform, generate) and collects the diagnostics each stage reports.
    """

    def __init__(
        self,
        source_content: str,
        language: str,
        options: Optional[ConversionOptions] = None,
        file_path: Optional[str] = None,
        dump_stages: Optional[List[str]] = None,
        stop_after_stage: Optional[str] = None,
    ):
        self.source_content = source_content
        self.language = resolve_language(language, file_path)
        self.options = options or ConversionOptions()
        self.file_path = os.path.abspath(file_path) if file_path else "<stdin>"
        self.dump_stages = dump_stages or []
        self.stop_after_stage = stop_after_stage
        self.artifacts: Dict[str, Any] = {}
        self.results: List[Any] = []
        self.diagnostics: List[Diagnostic] = []

    def run(self) -> Any:
        """
        Executes the pipeline stage by stage.
        The artifact of each stage is passed as input to the next.
        """
        validate_input(self.source_content, self.options, self.file_path)
        display_path = None if self.file_path == "<stdin>" else self.file_path

        try:
            with recursion_headroom(self.options.max_nesting_depth):
                return self._run_stages(display_path)
        except (PseudocError, InternalCompilerError):
            raise
        except Exception as e:
            logger.exception("Conversion of %s failed unexpectedly", self.file_path)
            raise InternalCompilerError(f"An unexpected internal error occurred: {e}") from e

    def _run_stages(self, display_path: Optional[str]) -> Any:
        # --- Stage 1: Parsing ---
        parse_result = self._run_simple_stage("ast", PARSERS[self.language](display_path).parse, self.source_content)
        self.diagnostics.extend(parse_result.diagnostics)
        if self.stop_after_stage == "ast":
            return self.results[-1]

        # --- Stage 2: AST to IR ---
        transformer = TRANSFORMERS[self.language](self.options)
        transform_result = self._run_simple_stage("ir", transformer.transform, parse_result.tree)
        self.diagnostics.extend(transform_result.diagnostics)
        if self.stop_after_stage == "ir":
            return self.results[-1]

        # --- Stage 3: Generation ---
        generator = PseudocodeGenerator(self.options)
        self._run_simple_stage("pseudocode", generator.generate, transform_result.ir)
        self.diagnostics.extend(generator.diagnostics)
        return self.results[-1]

    def _run_simple_stage(self, name: str, func, *args, **kwargs) -> Any:
        """Runs a single function as a stage, storing and returning its result."""
        logger.debug("Running stage '%s'", name)
        result = func(*args, **kwargs)
        self.artifacts[name] = result
        self.results.append(result)
        if name in self.dump_stages:
            self.save_artifact(name, result)
        return result

    def save_artifact(self, name: str, data: Any) -> Optional[str]:
        """Saves a stage artifact to a JSON file next to the input."""
        if self.file_path == "<stdin>":
            base_name = "stdin_output"
        else:
            base_name = os.path.splitext(self.file_path)[0]

        output_path = f"{base_name}.{name}.json"
        logger.info("Saving artifact '%s' to %s", name, output_path)

        try:
            with open(output_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, sort_keys=False, cls=CompilerArtifactEncoder)
        except OSError as e:
            logger.error("Could not save artifact '%s': %s", name, e)
            return None
        return output_path

    def result(self) -> ConversionResult:
        """Summarises a completed run as a ConversionResult."""
        pseudocode = self.artifacts.get("pseudocode", "")
        counts = {severity.value: 0 for severity in Severity}
        for diagnostic in self.diagnostics:
            counts[diagnostic.severity.value] += 1

        statement_count = 0
        if "ir" in self.artifacts:
            statement_count = sum(
                1
                for node in self.artifacts["ir"].ir.walk()
                if node.category not in (IRCategory.PROGRAM, IRCategory.EXPRESSION)
            )

        metadata = {
            "language": self.language,
            "input_lines": len(self.source_content.splitlines()),
            "output_lines": len(pseudocode.splitlines()),
            "statement_count": statement_count,
            "diagnostic_counts": counts,
        }
        return ConversionResult(
            pseudocode=pseudocode,
            diagnostics=self.diagnostics,
            success=counts[Severity.ERROR.value] == 0,
            metadata=metadata,
        )


def convert_code(
    source: str,
    language: str,
    options: Optional[ConversionOptions] = None,
    file_path: Optional[str] = None,
) -> ConversionResult:
    """High-level entry point: converts source text in `language` to pseudocode."""
    pipeline = ConversionPipeline(source, language, options, file_path)
    pipeline.run()
    return pipeline.result()


def convert_java(source: str, options: Optional[ConversionOptions] = None) -> ConversionResult:
    return convert_code(source, "java", options)


def convert_typescript(source: str, options: Optional[ConversionOptions] = None) -> ConversionResult:
    return convert_code(source, "typescript", options)

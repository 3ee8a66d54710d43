from .compiler import ConversionPipeline, ConversionResult, convert_code, convert_java, convert_typescript
from .config.config import ConversionOptions
from .exceptions import Diagnostic, ErrorCode, InternalCompilerError, PseudocError, Severity
from .generator.pseudocode_generator import PseudocodeGenerator
from .parser.core.parser import parse_java, parse_typescript
from .transformer.java import JavaTransformer
from .transformer.typescript import TypeScriptTransformer
from .validator import validate_input

__all__ = [
    "ConversionOptions",
    "ConversionPipeline",
    "ConversionResult",
    "Diagnostic",
    "ErrorCode",
    "InternalCompilerError",
    "JavaTransformer",
    "PseudocError",
    "PseudocodeGenerator",
    "Severity",
    "TypeScriptTransformer",
    "convert_code",
    "convert_java",
    "convert_typescript",
    "parse_java",
    "parse_typescript",
    "validate_input",
]

import logging
from typing import Optional

from pseudoc.config.config import ConversionOptions

from .exceptions import ErrorCode, PseudocError

logger = logging.getLogger(__name__)

# Share of non-whitespace control characters above which text is treated as binary.
BINARY_CONTROL_RATIO = 0.1
TEXT_CONTROL_CHARACTERS = "\n\r\t\f\v"


def validate_input(source, options: Optional[ConversionOptions] = None, file_path: Optional[str] = None) -> str:
    """
    Checks raw input before it reaches the parser and returns it unchanged.
    Empty text is valid; anything that is not text, is too large, or looks
    like binary data raises a PseudocError.
    """
    options = options or ConversionOptions()

    if not isinstance(source, str):
        raise PseudocError(ErrorCode.INVALID_INPUT, file_path=file_path, type_name=type(source).__name__)

    try:
        size = len(source.encode("utf-8"))
    except UnicodeEncodeError:
        raise PseudocError(ErrorCode.BINARY_CONTENT, file_path=file_path)
    if size > options.max_input_size:
        raise PseudocError(ErrorCode.INPUT_TOO_LARGE, file_path=file_path, size=size, limit=options.max_input_size)

    if "\x00" in source:
        raise PseudocError(ErrorCode.BINARY_CONTENT, file_path=file_path)
    control = sum(1 for char in source if ord(char) < 32 and char not in TEXT_CONTROL_CHARACTERS)
    if source and control / len(source) > BINARY_CONTROL_RATIO:
        raise PseudocError(ErrorCode.BINARY_CONTENT, file_path=file_path)

    logger.debug("Validated %d bytes of input", size)
    return source

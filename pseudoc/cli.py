import argparse
import logging
import os
import sys
import time

from .compiler import ConversionPipeline, STAGES
from .config.config import FILE_EXTENSIONS, ConversionOptions
from .exceptions import InternalCompilerError, PseudocError, Severity
from .utils import TerminalColors


def _status(message: str) -> None:
    # Status lines go to stderr so stdout carries only pseudocode.
    print(message, file=sys.stderr)


def _language_for(args, parser: argparse.ArgumentParser) -> str:
    if args.language:
        return args.language
    if args.input_file:
        extension = os.path.splitext(args.input_file)[1].lower()
        if extension in FILE_EXTENSIONS:
            return FILE_EXTENSIONS[extension]
    parser.error("could not infer the source language; pass -l/--language.")


def main():
    start_time = time.perf_counter()

    parser = argparse.ArgumentParser(description="Convert Java or TypeScript source into IGCSE pseudocode.")
    parser.add_argument(
        "input_file",
        nargs="?",
        default=None,
        help="The path to the input source file. Omit to read from stdin.",
    )
    parser.add_argument("-l", "--language", help="Source language (java, typescript, ts, javascript, js). Defaults from the file extension.")
    parser.add_argument("-o", "--output", dest="output_file", help="Write the pseudocode to this file instead of stdout.")
    parser.add_argument("--indent", type=int, default=None, help="Spaces per indentation level (default 3).")
    parser.add_argument("--no-comments", action="store_true", help="Do not emit rewrite annotations as comments.")
    parser.add_argument("--strict", action="store_true", help="Also report undeclared identifiers, long lines and passed-through calls.")
    parser.add_argument(
        "-c",
        "--compile",
        choices=STAGES,
        help="Stop after a stage and save its artifact as JSON next to the input.",
    )
    parser.add_argument("--diagnostics", action="store_true", help="Print every diagnostic, not only errors.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.input_file and sys.stdin.isatty():
        parser.error("input_file is required when not reading from a pipe.")

    language = _language_for(args, parser)
    display_path = args.input_file or "stdin"
    _status(f"--- Converting {display_path} ---")

    option_values = {"strictness": "strict" if args.strict else "permissive"}
    if args.indent is not None:
        option_values["indent_width"] = args.indent
    if args.no_comments:
        option_values["include_annotation_comments"] = False
    options = ConversionOptions(**option_values)

    exit_code = 0
    try:
        if not args.input_file:
            source = sys.stdin.read()
            input_path = None
        else:
            input_path = os.path.abspath(args.input_file)
            with open(input_path, "r", encoding="utf-8") as f:
                source = f.read()

        stop_after_stage = args.compile
        pipeline = ConversionPipeline(
            source,
            language,
            options,
            file_path=input_path,
            dump_stages=[stop_after_stage] if stop_after_stage else [],
            stop_after_stage=stop_after_stage,
        )
        pipeline.run()

        if stop_after_stage:
            _status(f"\n{TerminalColors.GREEN}--- Conversion to stage '{stop_after_stage}' successful ---{TerminalColors.RESET}")
            return

        result = pipeline.result()
        for diagnostic in result.diagnostics:
            if diagnostic.severity == Severity.ERROR:
                _status(f"{TerminalColors.RED}{diagnostic}{TerminalColors.RESET}")
            elif args.diagnostics:
                colour = TerminalColors.YELLOW if diagnostic.severity == Severity.WARNING else TerminalColors.CYAN
                _status(f"{colour}{diagnostic}{TerminalColors.RESET}")

        if args.output_file:
            output_path = os.path.abspath(args.output_file)
            os.makedirs(os.path.dirname(output_path), exist_ok=True)
            with open(output_path, "w", encoding="utf-8") as f:
                f.write(result.pseudocode)
            _status(f"Pseudocode written to {output_path}")
        else:
            sys.stdout.write(result.pseudocode)

        if result.success:
            _status(f"\n{TerminalColors.GREEN}--- Conversion Successful ---{TerminalColors.RESET}")
        else:
            _status(f"\n{TerminalColors.RED}--- Conversion finished with errors ---{TerminalColors.RESET}")
            exit_code = 1

    except PseudocError as e:
        _status(f"\n{TerminalColors.RED}--- CONVERSION ERROR ---\n{e}{TerminalColors.RESET}")
        exit_code = 1
    except FileNotFoundError:
        _status(f"{TerminalColors.RED}ERROR: Source file '{display_path}' not found.{TerminalColors.RESET}")
        exit_code = 1
    except InternalCompilerError as e:
        _status(f"\n{TerminalColors.RED}--- UNEXPECTED CONVERTER ERROR ---{TerminalColors.RESET}")
        _status("This may be a bug in the converter. Please report it.")
        _status(f"{type(e).__name__}: {e}")
        exit_code = 1
    finally:
        duration = time.perf_counter() - start_time
        _status(f"\n{TerminalColors.CYAN}--- Total Execution Time: {duration:.4f} seconds ---{TerminalColors.RESET}")

    if exit_code:
        sys.exit(exit_code)


if __name__ == "__main__":
    main()

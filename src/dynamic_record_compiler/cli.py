"""Command line interface for dynamic record generation and rendering."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .cache import MAX_CACHE_ENTRIES
from .generator import (
    CompilationError,
    DescriptorValidationError,
    DocumentLoadError,
    InstantiationError,
    MarshallingError,
    OutputFormat,
    RecordGenerator,
    generated_type_payload,
    rendered_instance_payload,
)
from .loader import load_document, load_type_descriptor
from .verify import format_report
from .writer import WriteError, format_source_file, write_source_file


class CLIError(RuntimeError):
    """Raised when CLI execution fails."""


def build_parser() -> argparse.ArgumentParser:
    """Build the CLI parser."""
    parser = argparse.ArgumentParser(
        prog="dynamic-record-compiler",
        description="Generate, compile and render record types from type descriptors",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    parser.add_argument(
        "--max-cache-entries",
        type=int,
        default=MAX_CACHE_ENTRIES,
        help="Compiled artifacts kept before the cache is cleared",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate = subparsers.add_parser("generate", help="Validate a descriptor and compile its record")
    generate.add_argument("--input", required=True, help="Path to a descriptor (YAML or JSON)")
    generate.add_argument("--output", help="Write generated source to this file instead of stdout")
    generate.add_argument("--overwrite", action="store_true", help="Replace an existing output file")
    generate.add_argument(
        "--ruff-format",
        action="store_true",
        help="Run the Ruff formatter on the written output file",
    )
    generate.add_argument(
        "--verify",
        action="store_true",
        help="Check the compiled model schema against the descriptor",
    )
    generate.add_argument("--json", action="store_true", help="Print the response payload as JSON")

    render = subparsers.add_parser("render", help="Populate a record from a document and render it")
    render.add_argument("--descriptor", required=True, help="Path to a descriptor (YAML or JSON)")
    render.add_argument("--data", required=True, help="Path to a data document (YAML or JSON)")
    render.add_argument("--source", help="Use previously generated source instead of regenerating")
    render.add_argument("--compact", action="store_true", help="Render on a single line")
    render.add_argument(
        "--format",
        choices=[item.value for item in OutputFormat],
        default=OutputFormat.XML.value,
        help="Output format",
    )
    render.add_argument("--json", action="store_true", help="Print the response payload as JSON")
    return parser


def main(argv: list[str] | None = None) -> int:
    """Run CLI and return process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )
    if args.max_cache_entries < 1:
        parser.error("--max-cache-entries must be positive")

    generator = RecordGenerator(max_cache_entries=args.max_cache_entries)
    try:
        if args.command == "generate":
            return _run_generate(generator, args)
        return _run_render(generator, args)
    except (DescriptorValidationError, DocumentLoadError) as exc:
        parser.error(str(exc))
        return 2
    except (CompilationError, InstantiationError, MarshallingError, WriteError, CLIError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def _run_generate(generator: RecordGenerator, args: argparse.Namespace) -> int:
    descriptor = load_type_descriptor(Path(args.input))
    result = generator.generate_type(descriptor, verify=bool(args.verify))

    if args.output:
        output_path = Path(args.output)
        write_source_file(output_path, result.source_text, overwrite=bool(args.overwrite))
        if args.ruff_format:
            format_source_file(output_path)
    elif args.ruff_format:
        raise CLIError("--ruff-format requires --output")

    if args.json:
        print(json.dumps(generated_type_payload(result), indent=2))
    elif not args.output:
        print(result.source_text, end="")
    else:
        print(f"{result.identity.qualified_name} {result.identity.content_hash}")

    if result.verification_report is not None:
        print(format_report(result.verification_report), file=sys.stderr)
        if result.verification_report.mismatch_count > 0:
            return 1
    return 0


def _run_render(generator: RecordGenerator, args: argparse.Namespace) -> int:
    descriptor = load_type_descriptor(Path(args.descriptor))
    document = load_document(Path(args.data))

    if args.source:
        try:
            source_text = Path(args.source).read_text(encoding="utf-8")
        except OSError as exc:
            raise CLIError(f"Failed to read source file {args.source}: {exc}") from exc
    else:
        source_text = generator.generate_type(descriptor).source_text

    result = generator.materialize_and_render(
        descriptor.qualified_name,
        source_text,
        document,
        pretty=not args.compact,
        output_format=OutputFormat(args.format),
    )
    for skipped in result.binding.skipped:
        print(f"Warning: skipped {skipped.key!r}: {skipped.reason}", file=sys.stderr)

    if args.json:
        print(json.dumps(rendered_instance_payload(result), indent=2))
    else:
        print(result.text)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

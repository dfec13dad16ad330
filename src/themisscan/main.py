from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .analyzer import ContractAnalyzer
from .config import ThemisScanConfig, load_config
from .constants import ExitCode
from .errors import AnalysisError, ConfigError, InputError
from .ingest import SAMPLE_CONTRACT, extract_text
from .publish import render_report, write_report


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="themisscan",
        description="Contract risk analysis (Brazilian civil and consumer law) via generative AI.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a contract file or text")
    source = analyze.add_mutually_exclusive_group(required=True)
    source.add_argument("file", nargs="?", type=Path, help=".txt, .md, .pdf or .docx file")
    source.add_argument("--text", help="Contract text passed inline")
    source.add_argument("--sample", action="store_true", help="Analyze the bundled sample contract")
    analyze.add_argument("--context", default=None, help="Extra context about the parties or deal")
    analyze.add_argument("--format", choices=("json", "markdown"), default="json")
    analyze.add_argument(
        "--output", type=Path, default=None, help="Write the result to this file (or a dated file in this directory)"
    )

    extract = sub.add_parser("extract", help="Print the text extracted from a contract file")
    extract.add_argument("file", type=Path)

    serve = sub.add_parser("serve", help="Run the HTTP backend")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config()
    except ConfigError as exc:
        _fail(exc.message)
        return ExitCode.ERROR

    if args.command == "serve":
        import uvicorn

        from .api import create_app

        uvicorn.run(create_app(config), host=args.host, port=args.port)
        return ExitCode.SUCCESS

    if args.command == "extract":
        try:
            sys.stdout.write(extract_text(args.file) + "\n")
        except InputError as exc:
            _fail(exc.message)
            return ExitCode.INVALID_INPUT
        return ExitCode.SUCCESS

    return asyncio.run(async_main(args, config))


async def async_main(args: argparse.Namespace, config: ThemisScanConfig) -> int:
    """Run one analysis and print or save the result."""
    try:
        if args.sample:
            contract_text = SAMPLE_CONTRACT
        elif args.text is not None:
            contract_text = args.text
        else:
            contract_text = extract_text(args.file)
    except InputError as exc:
        _fail(exc.message)
        return ExitCode.INVALID_INPUT

    analyzer = ContractAnalyzer(config)
    try:
        result = await analyzer.analyze(contract_text, args.context)
    except AnalysisError as exc:
        _fail(exc.message)
        if exc.detail:
            _fail(f"Details: {exc.detail}")
        return ExitCode.INVALID_INPUT if exc.status_code in (400, 413) else ExitCode.ERROR
    finally:
        await analyzer.aclose()

    if args.output:
        path = write_report(result, args.output, fmt=args.format)
        sys.stderr.write(f"Report written to {path}\n")
    else:
        sys.stdout.write(render_report(result, args.format))
    return ExitCode.SUCCESS


def _fail(message: str) -> None:
    sys.stderr.write(f"Error: {message}\n")
    sys.stderr.flush()


if __name__ == "__main__":
    sys.exit(main())

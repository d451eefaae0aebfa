#!/usr/bin/env python3
"""
CLI script for exporting Ollama models into a portable archive.

Copies the manifests and blobs of the selected models into a staging tree
and packs it as a .tar.gz for transfer to another host.

Usage:
    python scripts/export_models.py                        # every installed model
    python scripts/export_models.py llama3:8b mistral      # selected models
    python scripts/export_models.py -o ~/.ollama/models -d /tmp/export llama3
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from ollama_export.config import DigestStrategy, ExportConfig, TagStrategy
from ollama_export.export.orchestrator import (
    EXIT_FATAL,
    ExportOrchestrator,
    FatalExportError,
    RunSummary,
)
from ollama_export.logging_config import get_logger, setup_logging

logger = get_logger(__name__)


def format_import_instructions(archive_path: Path) -> list[str]:
    """Steps for importing the archive on the destination host."""
    return [
        "=" * 51,
        f"Export completed: {archive_path}",
        "To import on the destination system:",
        f"1. Decompress with: tar -xzvf {archive_path.name} -C /destination/path",
        "2. Copy the files to the Ollama models directory, e.g. for Docker:",
        "   docker cp /destination/path/models/. [ollama-container]:/root/.ollama/models/",
        "3. Verify the models are listed: ollama ls",
        "=" * 51,
    ]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Export Ollama models (manifests + blobs) into a .tar.gz archive",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="If no models are given, every model listed by 'ollama ls' is exported.",
    )
    parser.add_argument(
        "models",
        nargs="*",
        metavar="MODEL[:TAG]",
        help="Models to export (default: all installed models)",
    )
    parser.add_argument(
        "-o",
        "--ollama-dir",
        type=Path,
        default=None,
        help="Ollama base directory (default: $OLLAMA_MODELS or /var/lib/ollama)",
    )
    parser.add_argument(
        "-d",
        "--output-dir",
        type=Path,
        default=None,
        help="Output directory for the export (default: $OLLAMA_EXPORT_DIR or ./ollama-export)",
    )
    parser.add_argument(
        "--tag-strategy",
        choices=[s.value for s in TagStrategy],
        default=None,
        help="How to pick a tag when none is given (default: lexicographic)",
    )
    parser.add_argument(
        "--digest-strategy",
        choices=[s.value for s in DigestStrategy],
        default=None,
        help="How to read blob digests from manifests (default: scan)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        default=None,
        help="Exit non-zero if any model or blob could not be exported",
    )
    parser.add_argument(
        "--deterministic",
        action="store_true",
        default=None,
        help="Normalise entry owner, mode and mtime and the gzip header timestamp",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug messages",
    )
    return parser


def report(summary: RunSummary) -> None:
    """Log the end-of-run summary and import instructions."""
    for result in summary.failed:
        logger.warning("Not exported: %s (%s)", result.model_ref, result.error or "no blobs copied")
    for warning in summary.warnings:
        logger.warning(warning)
    if summary.archive_path is not None:
        for line in format_import_instructions(summary.archive_path):
            logger.info(line)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(
        level=logging.DEBUG if args.debug else logging.INFO,
        json_format=args.json_logs,
    )

    try:
        config = ExportConfig.from_env(
            base_dir=args.ollama_dir,
            output_dir=args.output_dir,
            tag_strategy=args.tag_strategy,
            digest_strategy=args.digest_strategy,
            strict=args.strict,
            deterministic_archive=args.deterministic,
        )
    except ValidationError as e:
        logger.error("Invalid configuration: %s", e)
        return EXIT_FATAL

    logger.debug("OLLAMA_BASE_DIR: %s", config.base_dir)
    logger.debug("OUTPUT_DIR: %s", config.output_dir)

    orchestrator = ExportOrchestrator(config)
    try:
        summary = orchestrator.run(args.models)
    except FatalExportError as e:
        logger.error("ERROR: %s", e)
        return EXIT_FATAL

    report(summary)
    return summary.exit_code


if __name__ == "__main__":
    sys.exit(main())

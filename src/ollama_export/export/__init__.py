"""Selective export pipeline.

Plans, copies and packs the subset of the model store that a list of
selectors depends on.
"""

from ollama_export.export.executor import ExportExecutor, copy_file
from ollama_export.export.orchestrator import (
    EXIT_FATAL,
    EXIT_NOTHING_EXPORTED,
    EXIT_OK,
    ExportOrchestrator,
    FatalExportError,
    RunSummary,
)
from ollama_export.export.packager import Packager, PackageError, PackResult
from ollama_export.export.planner import plan_export
from ollama_export.export.progress import LoggingProgressSink, NullProgressSink, ProgressSink

__all__ = [
    "EXIT_FATAL",
    "EXIT_NOTHING_EXPORTED",
    "EXIT_OK",
    "ExportExecutor",
    "ExportOrchestrator",
    "FatalExportError",
    "LoggingProgressSink",
    "NullProgressSink",
    "PackResult",
    "PackageError",
    "Packager",
    "ProgressSink",
    "RunSummary",
    "copy_file",
    "plan_export",
]

"""Export orchestration.

Drives the pipeline over a list of selectors:
    selector -> locate -> read/parse -> plan -> execute
then packs the files this run wrote into one archive. Files left in the
destination tree by earlier runs are not packed.

One model's failure never aborts the batch. Only the errors below are
fatal (raised as FatalExportError):
- source store missing its manifests/ or blobs/ directory
- destination tree cannot be created
- no selectors given and installed models cannot be listed
- archive cannot be written
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from ollama_export.config import ExportConfig
from ollama_export.export.executor import ExportExecutor
from ollama_export.export.packager import PackageError, Packager, PackResult
from ollama_export.export.planner import plan_export
from ollama_export.export.progress import LoggingProgressSink, ProgressSink
from ollama_export.listing import ModelListingError, list_installed_models
from ollama_export.logging_config import get_logger
from ollama_export.registry.locator import LocatorError, ManifestLocator
from ollama_export.registry.manifest import ManifestParseError, extract_digests, read_manifest
from ollama_export.registry.models import ExportResult, ModelRef, ModelState, parse_selector

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_NOTHING_EXPORTED = 1
EXIT_FATAL = 2


class FatalExportError(Exception):
    """Raised when the whole run must stop."""


@dataclass
class RunSummary:
    """Aggregated outcome of a run.

    Attributes:
        results: One ExportResult per selector, in processing order.
        archive: Packed archive, if packaging ran.
        warnings: Run-level warnings.
        strict: Whether strict exit-status rules apply.
    """

    results: list[ExportResult] = field(default_factory=list)
    archive: PackResult | None = None
    warnings: list[str] = field(default_factory=list)
    strict: bool = False

    @property
    def copied_count(self) -> int:
        return sum(r.copied_count for r in self.results)

    @property
    def failed_count(self) -> int:
        return sum(r.failed_count for r in self.results)

    @property
    def exported(self) -> list[ExportResult]:
        return [r for r in self.results if r.exported]

    @property
    def failed(self) -> list[ExportResult]:
        return [r for r in self.results if not r.exported]

    @property
    def archive_path(self) -> Path | None:
        return self.archive.archive_path if self.archive else None

    @property
    def exit_code(self) -> int:
        """0 when at least one model was exported.

        Partially exported models (some blobs missing) still count. In
        strict mode every model must be exported with no failed blob.
        """
        if not self.exported:
            return EXIT_NOTHING_EXPORTED
        if self.strict and (self.failed or self.failed_count > 0):
            return EXIT_NOTHING_EXPORTED
        return EXIT_OK


class ExportOrchestrator:
    """Runs a full export for a list of selectors."""

    def __init__(
        self,
        config: ExportConfig,
        *,
        list_models: Callable[[], list[str]] = list_installed_models,
        progress: ProgressSink | None = None,
        packager: Packager | None = None,
    ) -> None:
        self._config = config
        self._list_models = list_models
        self._locator = ManifestLocator(config)
        self._progress = progress or LoggingProgressSink()
        self._executor = ExportExecutor(self._progress)
        self._packager = packager or Packager(deterministic=config.deterministic_archive)

    @property
    def config(self) -> ExportConfig:
        return self._config

    def run(self, selectors: Sequence[str | ModelRef] = ()) -> RunSummary:
        """Export the selected models and pack the result.

        Args:
            selectors: ``name[:tag]`` strings or ModelRefs. Empty means
                every installed model.

        Returns:
            RunSummary with per-model results and the archive.

        Raises:
            FatalExportError: On any fatal error (see module docstring).
        """
        self._check_source()
        self._prepare_destination()

        requested = [str(s) for s in selectors]
        if not requested:
            requested = self._installed_models()

        summary = RunSummary(strict=self._config.strict)
        for selector in requested:
            summary.results.append(self.export_model(selector))

        if summary.copied_count == 0:
            warning = "No blobs were exported; the archive will contain no model data"
            logger.warning(warning, extra={"selectors": requested})
            summary.warnings.append(warning)

        archive_path = self._config.archive_path(requested if selectors else ())
        try:
            summary.archive = self._packager.pack(
                self._config.output_dir,
                archive_path,
                include=[p for r in summary.results for p in r.written_paths],
            )
        except PackageError as e:
            raise FatalExportError(str(e)) from e

        logger.info(
            "Export finished: %d/%d models exported, %d blobs copied, %d failed",
            len(summary.exported),
            len(summary.results),
            summary.copied_count,
            summary.failed_count,
        )
        return summary

    def export_model(self, selector: str | ModelRef) -> ExportResult:
        """Export one model into the destination tree.

        Per-model errors are logged and returned as a FAILED result.
        """
        try:
            model_ref = selector if isinstance(selector, ModelRef) else parse_selector(selector)
        except ValueError as e:
            logger.error("%s", e)
            return self._failed(ModelRef(name=str(selector) or "<empty>"), str(e))

        try:
            handle = self._locator.locate(model_ref)
        except LocatorError as e:
            logger.error("%s", e)
            if e.available:
                logger.error("Available: %s", ", ".join(e.available))
            return self._failed(model_ref, str(e))

        try:
            digests = extract_digests(read_manifest(handle.path), self._config.digest_strategy)
        except ManifestParseError as e:
            logger.error("Manifest for %s unusable: %s", handle.model_ref, e)
            return self._failed(handle.model_ref, str(e))

        plan = plan_export(handle, digests, self._config)
        return self._executor.execute(plan)

    def _failed(self, model_ref: ModelRef, error: str) -> ExportResult:
        result = ExportResult(model_ref=model_ref, state=ModelState.FAILED, error=error)
        self._progress.model_started(model_ref)
        self._progress.model_finished(result)
        return result

    def _check_source(self) -> None:
        for required in (self._config.manifests_root, self._config.blobs_root):
            if not required.is_dir():
                msg = f"Directory {required} not found"
                raise FatalExportError(msg)
        logger.debug("Source directories verified: %s", self._config.base_dir)

    def _prepare_destination(self) -> None:
        try:
            self._config.dest_manifests_root.mkdir(parents=True, exist_ok=True)
            self._config.dest_blobs_root.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            msg = f"Failed to create destination directory {self._config.dest_root}: {e}"
            raise FatalExportError(msg) from e

    def _installed_models(self) -> list[str]:
        try:
            models = self._list_models()
        except ModelListingError as e:
            raise FatalExportError(str(e)) from e
        if not models:
            raise FatalExportError("No installed models to export")
        logger.info("Exporting all available models: %s", " ".join(models))
        return models

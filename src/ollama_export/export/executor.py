"""Export plan execution.

Copies one model's manifest and blobs into the destination tree.

Failure policy:
- Directory creation or manifest copy failure aborts the model
  (a model without its manifest cannot be imported).
- A missing or unreadable blob is counted and skipped.

Copies overwrite, so re-running an interrupted export is safe.
"""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING

from ollama_export.export.progress import NullProgressSink, ProgressSink
from ollama_export.logging_config import get_logger
from ollama_export.registry.models import ExportResult, ModelState

if TYPE_CHECKING:
    from pathlib import Path

    from ollama_export.registry.models import BlobPath, ExportPlan

logger = get_logger(__name__)


def copy_file(src: Path, dest: Path) -> int:
    """Copy src over dest, streaming the content.

    Returns:
        Number of bytes copied.

    Raises:
        OSError: If reading or writing fails.
    """
    shutil.copyfile(src, dest)
    return dest.stat().st_size


class ExportExecutor:
    """Materialises ExportPlans on disk."""

    def __init__(self, progress: ProgressSink | None = None) -> None:
        self._progress = progress or NullProgressSink()

    def execute(self, plan: ExportPlan) -> ExportResult:
        """Copy the manifest and blobs of one plan.

        Never raises for I/O failures; they are reported in the result.
        Afterwards ``copied_count + failed_count == len(plan.blobs)``:
        when the model aborts before copying blobs, every blob counts
        as failed.

        Args:
            plan: Plan built by plan_export.

        Returns:
            ExportResult for the model.
        """
        result = ExportResult(model_ref=plan.model_ref, state=ModelState.LOCATED)
        self._progress.model_started(plan.model_ref)

        try:
            plan.manifest_dest.parent.mkdir(parents=True, exist_ok=True)
            for blob in plan.blobs:
                blob.dest_path.parent.mkdir(parents=True, exist_ok=True)
            copy_file(plan.manifest_src, plan.manifest_dest)
        except OSError as e:
            logger.error("Failed to copy manifest for %s: %s", plan.model_ref, e)
            result.state = ModelState.FAILED
            result.error = f"failed to copy manifest: {e}"
            result.failed_count = len(plan.blobs)
            result.failed_digests = [blob.digest for blob in plan.blobs]
            self._progress.model_finished(result)
            return result

        result.manifest_copied = True
        result.written_paths.append(plan.manifest_dest)
        result.state = ModelState.MANIFEST_COPIED
        self._progress.manifest_copied(plan.model_ref)

        for blob in plan.blobs:
            logger.debug("Verifying blob: %s", blob.source_path)
            if not blob.source_path.is_file():
                self._record_failure(result, blob, "missing from source store")
                continue
            try:
                size_bytes = copy_file(blob.source_path, blob.dest_path)
            except OSError as e:
                self._record_failure(result, blob, f"copy failed: {e}")
                continue
            result.copied_count += 1
            result.written_paths.append(blob.dest_path)
            self._progress.blob_copied(blob, size_bytes)

        if result.copied_count == 0:
            result.state = ModelState.FAILED
            result.error = "no blobs could be copied"
        elif result.failed_count > 0:
            result.state = ModelState.BLOBS_COPIED
        else:
            result.state = ModelState.DONE

        self._progress.model_finished(result)
        return result

    def _record_failure(self, result: ExportResult, blob: BlobPath, reason: str) -> None:
        result.failed_count += 1
        result.failed_digests.append(blob.digest)
        self._progress.blob_failed(blob, reason)

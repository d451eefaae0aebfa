"""
Progress sinks.

Receive discrete export events for human-facing display. Sinks are
observational: the pipeline never reads anything back from them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ollama_export.logging_config import get_logger

if TYPE_CHECKING:
    from ollama_export.registry.models import BlobPath, ExportResult, ModelRef

logger = get_logger(__name__)


class ProgressSink(ABC):
    """Abstract base class for progress sinks."""

    @abstractmethod
    def model_started(self, model_ref: ModelRef) -> None:
        """A model's export began."""
        ...

    @abstractmethod
    def manifest_copied(self, model_ref: ModelRef) -> None:
        """The model's manifest was copied."""
        ...

    @abstractmethod
    def blob_copied(self, blob: BlobPath, size_bytes: int) -> None:
        """A blob was copied."""
        ...

    @abstractmethod
    def blob_failed(self, blob: BlobPath, reason: str) -> None:
        """A blob was missing or could not be copied."""
        ...

    @abstractmethod
    def model_finished(self, result: ExportResult) -> None:
        """A model's export ended (successfully or not)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class NullProgressSink(ProgressSink):
    """Discards every event."""

    def model_started(self, model_ref: ModelRef) -> None:
        pass

    def manifest_copied(self, model_ref: ModelRef) -> None:
        pass

    def blob_copied(self, blob: BlobPath, size_bytes: int) -> None:
        pass

    def blob_failed(self, blob: BlobPath, reason: str) -> None:
        pass

    def model_finished(self, result: ExportResult) -> None:
        pass


class LoggingProgressSink(ProgressSink):
    """Reports events through the standard logger."""

    def model_started(self, model_ref: ModelRef) -> None:
        logger.info("Exporting model %s", model_ref)

    def manifest_copied(self, model_ref: ModelRef) -> None:
        logger.debug("Manifest copied for %s", model_ref)

    def blob_copied(self, blob: BlobPath, size_bytes: int) -> None:
        logger.debug(
            "Blob copied: %s",
            blob.digest,
            extra={"size_bytes": size_bytes},
        )

    def blob_failed(self, blob: BlobPath, reason: str) -> None:
        logger.warning("Blob not exported: %s (%s)", blob.digest, reason)

    def model_finished(self, result: ExportResult) -> None:
        logger.info(
            "Copied %d blobs, failed to copy %d blobs for %s",
            result.copied_count,
            result.failed_count,
            result.model_ref,
        )
        if result.failed_count > 0:
            logger.warning("Some blobs were not copied for %s", result.model_ref)
        if result.exported:
            logger.info("Model %s exported successfully", result.model_ref)
        else:
            logger.error(
                "No blobs could be exported for %s%s",
                result.model_ref,
                f": {result.error}" if result.error else "",
            )

"""Export configuration.

ExportConfig is frozen (immutable) and carries every setting the pipeline
needs; it is passed explicitly instead of living in process-wide globals.
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_DIR = Path("/var/lib/ollama")
DEFAULT_OUTPUT_DIR = Path("./ollama-export")
DEFAULT_REGISTRY = "registry.ollama.ai"
DEFAULT_NAMESPACE = "library"

ARCHIVE_PREFIX = "ollama-export"
ARCHIVE_SUFFIX = ".tar.gz"

# Environment variables honoured by ExportConfig.from_env
ENV_BASE_DIR = "OLLAMA_MODELS"
ENV_OUTPUT_DIR = "OLLAMA_EXPORT_DIR"


class TagStrategy(str, Enum):
    """How a tag is chosen when the selector has none.

    LEXICOGRAPHIC: last entry name in sorted order (approximates "latest"
        when tags sort chronologically; no recency guarantee).
    MTIME: most recently modified manifest file.
    """

    LEXICOGRAPHIC = "lexicographic"
    MTIME = "mtime"


class DigestStrategy(str, Enum):
    """How blob digests are extracted from a manifest.

    STRUCTURED: JSON decode and read ``config``/``layers`` digests.
    SCAN: regex scan of the raw bytes, tolerant of schema drift.
    """

    STRUCTURED = "structured"
    SCAN = "scan"


class ExportConfig(BaseModel):
    """Export configuration (frozen)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    base_dir: Path = Field(
        default=DEFAULT_BASE_DIR,
        description="Ollama model store (contains manifests/ and blobs/)",
    )
    output_dir: Path = Field(
        default=DEFAULT_OUTPUT_DIR,
        description="Destination directory for the staged tree and archive",
    )
    registry: str = Field(default=DEFAULT_REGISTRY, description="Registry host directory")
    namespace: str = Field(default=DEFAULT_NAMESPACE, description="Namespace under the registry")
    tag_strategy: TagStrategy = Field(default=TagStrategy.LEXICOGRAPHIC)
    digest_strategy: DigestStrategy = Field(default=DigestStrategy.SCAN)
    strict: bool = Field(
        default=False,
        description="Fail the run when any model or blob could not be exported",
    )
    deterministic_archive: bool = Field(
        default=False,
        description="Normalise owner, mode and mtime of archive entries",
    )

    @field_validator("registry", "namespace")
    @classmethod
    def validate_segment(cls, v: str) -> str:
        """Reject blank or multi-segment registry/namespace values."""
        v = v.strip()
        if not v:
            raise ValueError("must not be empty")
        if "/" in v or "\\" in v or v in (".", ".."):
            raise ValueError(f"must be a single path segment, got {v!r}")
        return v

    @classmethod
    def from_env(cls, **overrides: Any) -> ExportConfig:
        """Build a config from environment variables plus explicit overrides.

        Overrides whose value is None are ignored so CLI defaults fall
        through to the environment.
        """
        values: dict[str, Any] = {}
        if os.environ.get(ENV_BASE_DIR):
            values["base_dir"] = Path(os.environ[ENV_BASE_DIR])
        if os.environ.get(ENV_OUTPUT_DIR):
            values["output_dir"] = Path(os.environ[ENV_OUTPUT_DIR])
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    # Source store

    @property
    def manifests_root(self) -> Path:
        return self.base_dir / "manifests"

    @property
    def blobs_root(self) -> Path:
        return self.base_dir / "blobs"

    @property
    def namespace_root(self) -> Path:
        """Directory holding one subdirectory per model name."""
        return self.manifests_root / self.registry / self.namespace

    # Destination tree

    @property
    def dest_root(self) -> Path:
        return self.output_dir / "models"

    @property
    def dest_manifests_root(self) -> Path:
        return self.dest_root / "manifests" / self.registry / self.namespace

    @property
    def dest_blobs_root(self) -> Path:
        return self.dest_root / "blobs"

    def archive_path(self, selectors: Sequence[str] = ()) -> Path:
        """Archive location for a run.

        A single selector names the archive after the model
        (``ollama-export-llama3-8b.tar.gz``); anything else uses the
        plain ``ollama-export.tar.gz``.
        """
        if len(selectors) == 1:
            safe_name = str(selectors[0]).replace(":", "-").replace("/", "-")
            return self.output_dir / f"{ARCHIVE_PREFIX}-{safe_name}{ARCHIVE_SUFFIX}"
        return self.output_dir / f"{ARCHIVE_PREFIX}{ARCHIVE_SUFFIX}"

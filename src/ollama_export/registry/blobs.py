"""Blob path resolution.

Blob store layout:
    <root>/blobs/{algorithm}-{hex}

Resolution is pure path arithmetic; existence is checked by the executor.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from ollama_export.registry.models import BlobPath, Digest

if TYPE_CHECKING:
    from pathlib import Path


def blob_path(blobs_root: Path, digest: Digest) -> Path:
    """Path of a blob under a blob store root."""
    return blobs_root / digest.blob_filename


def resolve_blob(digest: Digest, source_blobs: Path, dest_blobs: Path) -> BlobPath:
    """Map a digest to its source and destination blob files.

    Args:
        digest: Blob digest.
        source_blobs: Source store ``blobs`` directory.
        dest_blobs: Destination tree ``blobs`` directory.

    Returns:
        BlobPath for the digest.
    """
    return BlobPath(
        digest=digest,
        source_path=blob_path(source_blobs, digest),
        dest_path=blob_path(dest_blobs, digest),
    )

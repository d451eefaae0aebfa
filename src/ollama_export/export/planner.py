"""Per-model export planning.

Pure: computes every source and destination path without touching the
filesystem.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from ollama_export.registry.blobs import resolve_blob
from ollama_export.registry.locator import MODEL_PATH_SEPARATOR
from ollama_export.registry.models import Digest, ExportPlan, ManifestHandle

if TYPE_CHECKING:
    from ollama_export.config import ExportConfig


def plan_export(
    handle: ManifestHandle,
    digests: Iterable[Digest],
    config: ExportConfig,
) -> ExportPlan:
    """Build the export plan for a located model.

    The destination manifest mirrors the source layout: the handle's
    ``:``-joined model path becomes nested directories again, with the
    tag as the file name.

    Args:
        handle: Located manifest.
        digests: Digests referenced by the manifest.
        config: Export configuration (source and destination roots).

    Returns:
        ExportPlan with one BlobPath per unique digest, sorted.
    """
    manifest_dest = config.dest_manifests_root.joinpath(
        *handle.model_path.split(MODEL_PATH_SEPARATOR), handle.tag
    )
    blobs = tuple(
        resolve_blob(digest, config.blobs_root, config.dest_blobs_root)
        for digest in sorted(set(digests))
    )
    return ExportPlan(
        model_ref=handle.model_ref,
        manifest_src=handle.path,
        manifest_dest=manifest_dest,
        blobs=blobs,
    )

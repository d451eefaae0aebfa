"""Source store access: manifest lookup, digest extraction, blob paths.

Store layout:
- manifests/<registry>/<namespace>/<name>/<tag> (JSON manifest)
- blobs/<algorithm>-<hex> (content-addressed blob)
"""

from ollama_export.registry.blobs import blob_path, resolve_blob
from ollama_export.registry.locator import (
    LocatorError,
    ManifestLocator,
    ManifestNotFoundError,
    TagNotFoundError,
)
from ollama_export.registry.manifest import (
    ManifestParseError,
    extract_digests,
    extract_digests_scan,
    extract_digests_structured,
    read_manifest,
)
from ollama_export.registry.models import (
    BlobPath,
    Digest,
    ExportPlan,
    ExportResult,
    ManifestHandle,
    ModelRef,
    ModelState,
    parse_selector,
)

__all__ = [
    "BlobPath",
    "Digest",
    "ExportPlan",
    "ExportResult",
    "LocatorError",
    "ManifestHandle",
    "ManifestLocator",
    "ManifestNotFoundError",
    "ManifestParseError",
    "ModelRef",
    "ModelState",
    "TagNotFoundError",
    "blob_path",
    "extract_digests",
    "extract_digests_scan",
    "extract_digests_structured",
    "parse_selector",
    "read_manifest",
    "resolve_blob",
]

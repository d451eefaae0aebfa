"""Digest extraction from Ollama manifests.

Manifest format (OCI image manifest, as written by Ollama):
    {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "config": {"mediaType": "...", "digest": "sha256:abc...", "size": 485},
        "layers": [
            {"mediaType": "application/vnd.ollama.image.model",
             "digest": "sha256:def...", "size": 4661211424},
            ...
        ]
    }

Two extraction strategies are supported (see DigestStrategy). Both return
deduplicated digests in sorted order so copy order is deterministic.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any

import orjson

from ollama_export.config import DigestStrategy
from ollama_export.registry.models import Digest

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path


class ManifestParseError(Exception):
    """Raised when a manifest cannot be read or yields no blob references."""


SUPPORTED_ALGORITHMS = ("sha256", "sha384", "sha512")

# Matches algorithm-prefixed hex digests anywhere in the manifest text
DIGEST_SCAN_PATTERN = re.compile(
    rb"(?P<algorithm>" + b"|".join(a.encode() for a in SUPPORTED_ALGORITHMS) + rb"):"
    rb"(?P<value>[a-f0-9]+)"
)


def read_manifest(path: Path) -> bytes:
    """Read manifest bytes.

    Raises:
        ManifestParseError: If the file cannot be read.
    """
    try:
        return path.read_bytes()
    except OSError as e:
        msg = f"Failed to read manifest {path}: {e}"
        raise ManifestParseError(msg) from e


def _finalize(digests: Iterable[Digest]) -> tuple[Digest, ...]:
    unique = sorted(set(digests))
    if not unique:
        raise ManifestParseError("no blob references found in manifest")
    return tuple(unique)


def _digest_from_entry(entry: Any, where: str) -> Digest:
    if not isinstance(entry, dict):
        msg = f"{where} is not an object"
        raise ManifestParseError(msg)
    raw = entry.get("digest")
    if not isinstance(raw, str):
        msg = f"{where} has no string 'digest' field"
        raise ManifestParseError(msg)
    try:
        return Digest.parse(raw)
    except ValueError as e:
        msg = f"{where}: {e}"
        raise ManifestParseError(msg) from e


def extract_digests_structured(data: bytes) -> tuple[Digest, ...]:
    """Decode the manifest as JSON and collect config and layer digests.

    Raises:
        ManifestParseError: On malformed JSON, a missing or non-array
            ``layers`` field, a malformed layer, or zero digests.
    """
    try:
        manifest = orjson.loads(data)
    except orjson.JSONDecodeError as e:
        msg = f"Manifest is not valid JSON: {e}"
        raise ManifestParseError(msg) from e

    if not isinstance(manifest, dict):
        raise ManifestParseError("Manifest top level is not a JSON object")

    layers = manifest.get("layers")
    if not isinstance(layers, list):
        raise ManifestParseError("Manifest has no 'layers' array")

    digests = [_digest_from_entry(layer, f"layers[{i}]") for i, layer in enumerate(layers)]

    # The config blob is required to recreate the model on import
    config = manifest.get("config")
    if config is not None:
        digests.append(_digest_from_entry(config, "config"))

    return _finalize(digests)


def extract_digests_scan(data: bytes) -> tuple[Digest, ...]:
    """Regex-scan raw manifest bytes for algorithm-prefixed digests.

    Ignores JSON structure entirely.

    Raises:
        ManifestParseError: If no digest is found.
    """
    return _finalize(
        Digest(algorithm=m.group("algorithm").decode(), value=m.group("value").decode())
        for m in DIGEST_SCAN_PATTERN.finditer(data)
    )


def extract_digests(
    data: bytes,
    strategy: DigestStrategy = DigestStrategy.SCAN,
) -> tuple[Digest, ...]:
    """Extract the sorted, deduplicated blob digests a manifest references.

    Args:
        data: Raw manifest bytes.
        strategy: Extraction strategy.

    Returns:
        Tuple of unique digests in sorted order.

    Raises:
        ManifestParseError: If the manifest is unusable or references no blobs.
    """
    if strategy is DigestStrategy.STRUCTURED:
        return extract_digests_structured(data)
    return extract_digests_scan(data)

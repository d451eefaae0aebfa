"""Fake Ollama model stores for tests.

Builds the on-disk layout under a temp directory:
    <base>/manifests/registry.ollama.ai/library/<name>/<tag>
    <base>/blobs/sha256-<hex>
"""

from __future__ import annotations

import json
from collections.abc import Iterable
from pathlib import Path

REGISTRY = "registry.ollama.ai"
NAMESPACE = "library"

# 64-char digests, as Ollama writes them
DIGEST_A = "a" * 63 + "1"
DIGEST_B = "b" * 63 + "2"
DIGEST_C = "c" * 63 + "3"
DIGEST_CONFIG = "f" * 63 + "0"


def manifest_json(layers: Iterable[str], config: str | None = DIGEST_CONFIG) -> str:
    """Render an Ollama-style manifest referencing the given hex digests."""
    data: dict[str, object] = {
        "schemaVersion": 2,
        "mediaType": "application/vnd.docker.distribution.manifest.v2+json",
        "layers": [
            {
                "mediaType": "application/vnd.ollama.image.model",
                "digest": f"sha256:{digest}",
                "size": 16,
            }
            for digest in layers
        ],
    }
    if config is not None:
        data["config"] = {
            "mediaType": "application/vnd.docker.container.image.v1+json",
            "digest": f"sha256:{config}",
            "size": 8,
        }
    return json.dumps(data, indent=2)


def blob_content(digest: str) -> bytes:
    return f"blob-{digest}".encode()


def add_manifest(base: Path, name: str, tag: str, content: str) -> Path:
    """Write a manifest file and return its path."""
    path = base / "manifests" / REGISTRY / NAMESPACE / name / tag
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)
    return path


def add_blob(base: Path, digest: str, content: bytes | None = None) -> Path:
    """Write a blob file and return its path."""
    path = base / "blobs" / f"sha256-{digest}"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(blob_content(digest) if content is None else content)
    return path


def create_store(
    base: Path,
    models: dict[str, dict[str, list[str]]] | None = None,
    *,
    missing: Iterable[str] = (),
    with_config: bool = False,
) -> Path:
    """Create a store.

    Args:
        base: Store root (created).
        models: ``{name: {tag: [layer digests]}}``. Defaults to the
            ``demo:latest`` model referencing DIGEST_A and DIGEST_B.
        missing: Digests whose blob file is not written.
        with_config: Add DIGEST_CONFIG as the manifest's config blob.

    Returns:
        The store root.
    """
    if models is None:
        models = {"demo": {"latest": [DIGEST_A, DIGEST_B]}}
    skip = set(missing)
    (base / "manifests" / REGISTRY / NAMESPACE).mkdir(parents=True, exist_ok=True)
    (base / "blobs").mkdir(parents=True, exist_ok=True)

    for name, tags in models.items():
        for tag, layers in tags.items():
            config = DIGEST_CONFIG if with_config else None
            add_manifest(base, name, tag, manifest_json(layers, config=config))
            referenced = list(layers) + ([DIGEST_CONFIG] if with_config else [])
            for digest in referenced:
                if digest not in skip:
                    add_blob(base, digest)
    return base

"""Value types shared by the locator, parser and export pipeline.

Selector format:
    {name}[:{tag}]

Example:
    llama3:8b-instruct-q4_0
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pathlib import Path

# Digest format: {algorithm}:{hex}
DIGEST_PATTERN = re.compile(r"^(?P<algorithm>[a-z0-9]+):(?P<value>[a-f0-9]+)$")


@dataclass(frozen=True)
class ModelRef:
    """A model selector, optionally with a tag.

    Attributes:
        name: Model name (non-empty, may contain namespace prefixes).
        tag: Tag, or None to let the locator pick one.
    """

    name: str
    tag: str | None = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("model name must not be empty")
        if self.tag is not None and not self.tag:
            raise ValueError(f"tag for model {self.name!r} must not be empty")

    def __str__(self) -> str:
        return f"{self.name}:{self.tag}" if self.tag else self.name

    def with_tag(self, tag: str) -> ModelRef:
        """Return a copy with the tag resolved."""
        return replace(self, tag=tag)


def parse_selector(selector: str) -> ModelRef:
    """Parse a ``name[:tag]`` selector.

    Args:
        selector: User-supplied selector string.

    Returns:
        ModelRef with tag None when no ``:`` is present.

    Raises:
        ValueError: If the name or an explicit tag is empty.
    """
    selector = selector.strip()
    name, sep, tag = selector.partition(":")
    if not sep:
        return ModelRef(name=name)
    if not tag:
        msg = f"Invalid selector {selector!r}: empty tag after ':'"
        raise ValueError(msg)
    return ModelRef(name=name, tag=tag)


@dataclass(frozen=True, order=True)
class Digest:
    """Content address of a blob.

    Attributes:
        algorithm: Hash algorithm name (e.g. "sha256").
        value: Lowercase hex digest, without the algorithm prefix.
    """

    algorithm: str
    value: str

    def __str__(self) -> str:
        return f"{self.algorithm}:{self.value}"

    @property
    def blob_filename(self) -> str:
        """Blob store filename (``sha256-<hex>``)."""
        return f"{self.algorithm}-{self.value}"

    @classmethod
    def parse(cls, text: str) -> Digest:
        """Parse ``algorithm:hex``.

        Raises:
            ValueError: If the text is not a well-formed digest.
        """
        match = DIGEST_PATTERN.match(text.strip().lower())
        if not match:
            msg = f"Invalid digest: {text!r}. Expected format: {{algorithm}}:{{hex}}"
            raise ValueError(msg)
        return cls(algorithm=match.group("algorithm"), value=match.group("value"))


@dataclass(frozen=True)
class ManifestHandle:
    """A located manifest on the source store.

    Attributes:
        model_ref: Selector with the tag resolved.
        path: Absolute path of the manifest file.
        model_path: Matched directory relative to the namespace root, with
            path separators replaced by ``:`` (e.g. ``"llama3"`` or
            ``"hf.co:user:model"``).
    """

    model_ref: ModelRef
    path: Path
    model_path: str

    @property
    def tag(self) -> str:
        # Locator always resolves a tag before building a handle
        assert self.model_ref.tag is not None
        return self.model_ref.tag


@dataclass(frozen=True)
class BlobPath:
    """Source and destination of one blob."""

    digest: Digest
    source_path: Path
    dest_path: Path


@dataclass(frozen=True)
class ExportPlan:
    """Everything needed to export one model.

    Attributes:
        model_ref: Resolved selector.
        manifest_src: Manifest file on the source store.
        manifest_dest: Manifest file in the destination tree.
        blobs: Blobs to copy, sorted by digest.
    """

    model_ref: ModelRef
    manifest_src: Path
    manifest_dest: Path
    blobs: tuple[BlobPath, ...] = ()


class ModelState(str, Enum):
    """Per-model export state.

    PENDING -> LOCATED -> MANIFEST_COPIED -> BLOBS_COPIED -> DONE,
    or FAILED from any step. BLOBS_COPIED is terminal when some
    (but not all) blobs failed.
    """

    PENDING = "pending"
    LOCATED = "located"
    MANIFEST_COPIED = "manifest_copied"
    BLOBS_COPIED = "blobs_copied"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportResult:
    """Outcome of exporting one model.

    Attributes:
        model_ref: Selector (resolved when location succeeded).
        copied_count: Blobs copied.
        failed_count: Blobs missing or failed to copy.
        manifest_copied: Whether the manifest was copied.
        state: Final state.
        error: Reason for failure, if any.
        failed_digests: Digests counted in failed_count.
        written_paths: Destination files written by this export.
    """

    model_ref: ModelRef
    copied_count: int = 0
    failed_count: int = 0
    manifest_copied: bool = False
    state: ModelState = ModelState.PENDING
    error: str | None = None
    failed_digests: list[Digest] = field(default_factory=list)
    written_paths: list[Path] = field(default_factory=list)

    @property
    def total(self) -> int:
        return self.copied_count + self.failed_count

    @property
    def exported(self) -> bool:
        """Manifest copied and at least one blob copied."""
        return self.manifest_copied and self.copied_count > 0

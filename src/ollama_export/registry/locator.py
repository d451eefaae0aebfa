"""Manifest lookup on the source store.

Manifest tree layout:
    <base>/manifests/<registry>/<namespace>/<name...>/<tag>

Model directories are matched by substring against their path relative to
the namespace root, so nested names (``hf.co/user/model``) are found by any
fragment. When several directories match, the lexicographically first one
wins and the ambiguity is logged with every candidate. This is the
documented selection rule, not a best-match search.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING

from ollama_export.config import TagStrategy
from ollama_export.logging_config import get_logger
from ollama_export.registry.models import ManifestHandle, ModelRef

if TYPE_CHECKING:
    from ollama_export.config import ExportConfig

logger = get_logger(__name__)

# Separator used in ManifestHandle.model_path for nested directories
MODEL_PATH_SEPARATOR = ":"


class LocatorError(Exception):
    """Base exception for manifest lookup.

    Attributes:
        available: What was available instead (model names or tags), so
            the caller can show the user something to pick from.
    """

    def __init__(self, message: str, available: list[str] | None = None) -> None:
        super().__init__(message)
        self.available: list[str] = available or []


class ManifestNotFoundError(LocatorError):
    """No model directory matched, or the matched directory has no tags."""


class TagNotFoundError(LocatorError):
    """The requested tag has no manifest file in the model directory."""


def _tag_files(model_dir: Path) -> list[Path]:
    try:
        return sorted(p for p in model_dir.iterdir() if p.is_file())
    except OSError:
        return []


class ManifestLocator:
    """Finds the manifest file for a model selector."""

    def __init__(self, config: ExportConfig) -> None:
        self._root = config.namespace_root
        self._tag_strategy = config.tag_strategy

    @property
    def root(self) -> Path:
        return self._root

    def find_candidates(self, name: str) -> list[Path]:
        """All directories under the namespace root whose relative path contains name.

        Returns:
            Matching directories in lexicographic order.
        """
        if not self._root.is_dir():
            return []
        candidates: list[Path] = []
        for dirpath, dirnames, _filenames in os.walk(self._root):
            dirnames.sort()
            for dirname in dirnames:
                path = Path(dirpath) / dirname
                if name in path.relative_to(self._root).as_posix():
                    candidates.append(path)
        return sorted(candidates)

    def list_local_models(self) -> list[str]:
        """Every ``name:tag`` with a manifest under the namespace root, sorted."""
        if not self._root.is_dir():
            return []
        models = []
        for dirpath, _dirnames, filenames in os.walk(self._root):
            rel = Path(dirpath).relative_to(self._root).as_posix()
            if rel == ".":
                continue
            models.extend(f"{rel}:{filename}" for filename in filenames)
        return sorted(models)

    def resolve_tag(self, model_dir: Path) -> str | None:
        """Pick a tag for a selector without one.

        Returns:
            Tag name per the configured strategy, or None when the
            directory holds no manifest files.
        """
        tags = _tag_files(model_dir)
        if not tags:
            return None
        if self._tag_strategy is TagStrategy.MTIME:
            newest = max(tags, key=lambda p: (p.stat().st_mtime, p.name))
            return newest.name
        return tags[-1].name

    def locate(self, model_ref: ModelRef) -> ManifestHandle:
        """Locate the manifest for a selector.

        Args:
            model_ref: Selector; a missing tag is resolved per TagStrategy.

        Returns:
            ManifestHandle with the resolved tag.

        Raises:
            ManifestNotFoundError: No matching directory, or no tag to pick.
            TagNotFoundError: The tag file does not exist.
        """
        candidates = self.find_candidates(model_ref.name)
        if not candidates:
            msg = f"No model found matching {model_ref.name!r} in {self._root}"
            raise ManifestNotFoundError(msg, available=self.list_local_models())

        model_dir = candidates[0]
        matched = [c.relative_to(self._root).as_posix() for c in candidates]
        if len(candidates) > 1:
            logger.warning(
                "Selector %r matches %d model directories, using %s",
                model_ref.name,
                len(candidates),
                matched[0],
                extra={"candidates": matched},
            )

        model_path = model_dir.relative_to(self._root).as_posix().replace("/", MODEL_PATH_SEPARATOR)
        logger.debug("Model directory found: %s", model_dir)

        tag = model_ref.tag
        if tag is None:
            tag = self.resolve_tag(model_dir)
            if tag is None:
                msg = f"No tag found for model {model_path}"
                raise ManifestNotFoundError(msg, available=matched)
            logger.debug("No tag given for %s, resolved %s", model_path, tag)

        manifest_path = model_dir / tag
        if "/" in tag or tag in (".", "..") or not manifest_path.is_file():
            msg = f"Tag {tag!r} for model {model_path} does not exist"
            raise TagNotFoundError(msg, available=[p.name for p in _tag_files(model_dir)])

        return ManifestHandle(
            model_ref=model_ref.with_tag(tag),
            path=manifest_path,
            model_path=model_path,
        )

"""Tests for ManifestLocator."""

from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

import pytest

from ollama_export.config import ExportConfig, TagStrategy
from ollama_export.registry.locator import (
    ManifestLocator,
    ManifestNotFoundError,
    TagNotFoundError,
)
from ollama_export.registry.models import ModelRef
from tests.fixtures.ollama_store import DIGEST_A, add_manifest, create_store, manifest_json

if TYPE_CHECKING:
    from pathlib import Path


def make_locator(base: Path, **overrides: object) -> ManifestLocator:
    return ManifestLocator(ExportConfig(base_dir=base, output_dir=base / "out", **overrides))


class TestLocate:
    """Tests for ManifestLocator.locate."""

    def test_explicit_tag(self, tmp_path: Path) -> None:
        """Explicit tag is used exactly, with no fallback."""
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A], "v2": [DIGEST_A]}})

        handle = make_locator(tmp_path).locate(ModelRef("foo", "v1"))

        assert handle.model_ref == ModelRef("foo", "v1")
        assert handle.path == tmp_path / "manifests/registry.ollama.ai/library/foo/v1"
        assert handle.model_path == "foo"

    def test_missing_tag_resolves_lexicographic_last(self, tmp_path: Path) -> None:
        """Without a tag, the lexicographically last tag wins."""
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A], "v2": [DIGEST_A]}})

        handle = make_locator(tmp_path).locate(ModelRef("foo"))

        assert handle.tag == "v2"

    def test_mtime_strategy(self, tmp_path: Path) -> None:
        """MTIME strategy picks the most recently modified tag."""
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A], "v2": [DIGEST_A]}})
        model_dir = tmp_path / "manifests/registry.ollama.ai/library/foo"
        os.utime(model_dir / "v1", (2_000_000_000, 2_000_000_000))
        os.utime(model_dir / "v2", (1_000_000_000, 1_000_000_000))

        locator = make_locator(tmp_path, tag_strategy=TagStrategy.MTIME)

        assert locator.locate(ModelRef("foo")).tag == "v1"

    def test_explicit_tag_not_found(self, tmp_path: Path) -> None:
        """Missing tag file raises TagNotFoundError listing available tags."""
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A], "v2": [DIGEST_A]}})

        with pytest.raises(TagNotFoundError, match="v3") as exc_info:
            make_locator(tmp_path).locate(ModelRef("foo", "v3"))

        assert exc_info.value.available == ["v1", "v2"]

    def test_tag_with_path_separator_rejected(self, tmp_path: Path) -> None:
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A]}})

        with pytest.raises(TagNotFoundError):
            make_locator(tmp_path).locate(ModelRef("foo", "../foo/v1"))

    def test_no_matching_directory(self, tmp_path: Path) -> None:
        """Unknown model raises ManifestNotFoundError listing local models."""
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A]}})

        with pytest.raises(ManifestNotFoundError, match="bar") as exc_info:
            make_locator(tmp_path).locate(ModelRef("bar"))

        assert exc_info.value.available == ["foo:v1"]

    def test_empty_model_directory(self, tmp_path: Path) -> None:
        """A directory with no tags cannot resolve a tag."""
        create_store(tmp_path, {})
        (tmp_path / "manifests/registry.ollama.ai/library/foo").mkdir()

        with pytest.raises(ManifestNotFoundError, match="No tag found") as exc_info:
            make_locator(tmp_path).locate(ModelRef("foo"))

        assert exc_info.value.available == ["foo"]

    def test_missing_namespace_root(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestNotFoundError):
            make_locator(tmp_path).locate(ModelRef("foo"))

    def test_substring_match(self, tmp_path: Path) -> None:
        """Name fragments match directories by substring."""
        create_store(tmp_path, {"nomic-embed-text": {"latest": [DIGEST_A]}})

        handle = make_locator(tmp_path).locate(ModelRef("embed"))

        assert handle.model_path == "nomic-embed-text"
        assert handle.tag == "latest"

    def test_ambiguous_match_picks_first_sorted(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Several matches: first in sorted order wins, with a warning."""
        create_store(
            tmp_path,
            {"llama3.1": {"latest": [DIGEST_A]}, "llama3": {"latest": [DIGEST_A]}},
        )

        with caplog.at_level(logging.WARNING):
            handle = make_locator(tmp_path).locate(ModelRef("llama3"))

        assert handle.model_path == "llama3"
        assert "matches 2 model directories" in caplog.text

    def test_nested_namespace(self, tmp_path: Path) -> None:
        """Nested directories are joined with ':' in model_path."""
        create_store(tmp_path, {})
        add_manifest(tmp_path, "hf.co/user/model", "q4", manifest_json([DIGEST_A]))

        handle = make_locator(tmp_path).locate(ModelRef("user/model", "q4"))

        assert handle.model_path == "hf.co:user:model"
        assert handle.path.name == "q4"


class TestFindCandidates:
    def test_sorted(self, tmp_path: Path) -> None:
        create_store(
            tmp_path,
            {"b-model": {"v": [DIGEST_A]}, "a-model": {"v": [DIGEST_A]}, "other": {"v": [DIGEST_A]}},
        )

        candidates = make_locator(tmp_path).find_candidates("model")

        assert [c.name for c in candidates] == ["a-model", "b-model"]

    def test_matches_relative_path_only(self, tmp_path: Path) -> None:
        """The store's own location never causes a match."""
        base = tmp_path / "demo-store"
        create_store(base, {"foo": {"v1": [DIGEST_A]}})

        assert make_locator(base).find_candidates("demo") == []


class TestListLocalModels:
    def test_lists_name_tag(self, tmp_path: Path) -> None:
        create_store(tmp_path, {"foo": {"v1": [DIGEST_A], "v2": [DIGEST_A]}, "bar": {"x": [DIGEST_A]}})

        assert make_locator(tmp_path).list_local_models() == ["bar:x", "foo:v1", "foo:v2"]

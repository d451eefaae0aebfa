"""Tests for ExportConfig."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from ollama_export.config import (
    DEFAULT_BASE_DIR,
    DigestStrategy,
    ExportConfig,
    TagStrategy,
)


class TestDefaults:
    def test_defaults(self) -> None:
        config = ExportConfig()

        assert config.base_dir == DEFAULT_BASE_DIR
        assert config.output_dir == Path("./ollama-export")
        assert config.registry == "registry.ollama.ai"
        assert config.namespace == "library"
        assert config.tag_strategy is TagStrategy.LEXICOGRAPHIC
        assert config.digest_strategy is DigestStrategy.SCAN
        assert not config.strict

    def test_frozen(self) -> None:
        config = ExportConfig()
        with pytest.raises(ValidationError):
            config.strict = True  # type: ignore[misc]

    def test_extra_fields_forbidden(self) -> None:
        with pytest.raises(ValidationError):
            ExportConfig(debug=True)  # type: ignore[call-arg]

    def test_strategy_from_string(self) -> None:
        config = ExportConfig(tag_strategy="mtime", digest_strategy="structured")  # type: ignore[arg-type]

        assert config.tag_strategy is TagStrategy.MTIME
        assert config.digest_strategy is DigestStrategy.STRUCTURED


class TestValidation:
    @pytest.mark.parametrize("value", ["", "   ", "a/b", "..", "."])
    def test_invalid_namespace(self, value: str) -> None:
        with pytest.raises(ValidationError):
            ExportConfig(namespace=value)

    def test_registry_stripped(self) -> None:
        assert ExportConfig(registry=" example.com ").registry == "example.com"


class TestPaths:
    """Tests for derived path properties."""

    def test_source_paths(self) -> None:
        config = ExportConfig(base_dir=Path("/store"))

        assert config.manifests_root == Path("/store/manifests")
        assert config.blobs_root == Path("/store/blobs")
        assert config.namespace_root == Path("/store/manifests/registry.ollama.ai/library")

    def test_destination_paths(self) -> None:
        config = ExportConfig(output_dir=Path("/out"))

        assert config.dest_root == Path("/out/models")
        assert config.dest_blobs_root == Path("/out/models/blobs")
        assert config.dest_manifests_root == Path(
            "/out/models/manifests/registry.ollama.ai/library"
        )

    def test_archive_path_all_models(self) -> None:
        config = ExportConfig(output_dir=Path("/out"))

        assert config.archive_path() == Path("/out/ollama-export.tar.gz")
        assert config.archive_path(["a", "b"]) == Path("/out/ollama-export.tar.gz")

    def test_archive_path_single_model(self) -> None:
        """Colons in the selector become dashes."""
        config = ExportConfig(output_dir=Path("/out"))

        assert config.archive_path(["llama3:8b"]) == Path("/out/ollama-export-llama3-8b.tar.gz")


class TestFromEnv:
    def test_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OLLAMA_MODELS", "/models")
        monkeypatch.setenv("OLLAMA_EXPORT_DIR", "/exports")

        config = ExportConfig.from_env()

        assert config.base_dir == Path("/models")
        assert config.output_dir == Path("/exports")

    def test_overrides_win(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("OLLAMA_MODELS", "/models")

        config = ExportConfig.from_env(base_dir=Path("/explicit"), strict=True)

        assert config.base_dir == Path("/explicit")
        assert config.strict

    def test_none_overrides_ignored(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("OLLAMA_MODELS", raising=False)
        monkeypatch.delenv("OLLAMA_EXPORT_DIR", raising=False)

        config = ExportConfig.from_env(base_dir=None, tag_strategy=None)

        assert config.base_dir == DEFAULT_BASE_DIR
        assert config.tag_strategy is TagStrategy.LEXICOGRAPHIC

"""Unit tests for settings loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from conftest import make_settings_dict
from lexiclear.core.settings import Settings, SettingsError, load_settings, validate_settings


def test_load_repository_settings(config_dir: Path) -> None:
    settings = load_settings(config_dir / "settings.yaml")

    assert settings.llm.provider == "openai"
    assert settings.embedding.model == "text-embedding-3-small"
    assert settings.ingestion.target_tokens == 500
    assert settings.ingestion.overlap_tokens == 50
    assert settings.retrieval.top_k == 4
    assert settings.retrieval.batch_size == 16
    assert settings.storage.embedding_cache == "memory"
    assert settings.verification.legal_terms == []


def test_optional_sections_use_defaults() -> None:
    settings = Settings.from_dict(make_settings_dict())

    assert settings.ingestion.splitter == "sentence"
    assert settings.ingestion.min_document_chars == 10
    assert settings.retry.max_attempts == 3
    assert settings.retry.base_delay == 0.5
    assert settings.verification.normalized_match_min_len == 30
    assert settings.storage.bundles_directory == "data/bundles"


def test_missing_required_section() -> None:
    data = make_settings_dict()
    del data["retrieval"]

    with pytest.raises(SettingsError, match="settings.retrieval"):
        Settings.from_dict(data)


def test_wrong_type_names_field() -> None:
    data = make_settings_dict(retrieval={"top_k": "four"})

    with pytest.raises(SettingsError, match="retrieval.top_k"):
        Settings.from_dict(data)


def test_bool_is_not_an_integer() -> None:
    data = make_settings_dict(llm={"max_tokens": True})

    with pytest.raises(SettingsError, match="llm.max_tokens"):
        Settings.from_dict(data)


def test_legal_terms_are_lowercased() -> None:
    data = make_settings_dict(
        verification={"normalized_match_min_len": 20, "legal_terms": ["Indemnify", "LIEN"]}
    )

    settings = Settings.from_dict(data)

    assert settings.verification.legal_terms == ["indemnify", "lien"]
    assert settings.verification.normalized_match_min_len == 20


@pytest.mark.parametrize(
    "sections,message",
    [
        ({"ingestion": {"target_tokens": 50, "overlap_tokens": 50, "splitter": "sentence"}}, "overlap_tokens"),
        ({"retrieval": {"top_k": 0}}, "top_k"),
        ({"retrieval": {"max_concurrency": 0}}, "max_concurrency"),
        ({"retrieval": {"request_timeout": 0}}, "request_timeout"),
        (
            {
                "storage": {
                    "bundles_directory": "data/bundles",
                    "embedding_cache": "redis",
                }
            },
            "embedding_cache",
        ),
    ],
)
def test_validate_settings_rejects(sections: dict, message: str) -> None:
    settings = Settings.from_dict(make_settings_dict(**sections))

    with pytest.raises(SettingsError, match=message):
        validate_settings(settings)


def test_load_settings_missing_file(tmp_path: Path) -> None:
    with pytest.raises(SettingsError, match="not found"):
        load_settings(tmp_path / "missing.yaml")


def test_load_settings_from_yaml(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        yaml.safe_dump(make_settings_dict(retry={"max_attempts": 5, "base_delay": 0.1, "max_delay": 1.0})),
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.retry.max_attempts == 5
    assert settings.retry.jitter == 0.1

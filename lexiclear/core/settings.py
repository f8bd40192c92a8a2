"""Configuration loading and validation for LexiClear."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


class SettingsError(ValueError):
    """Raised when settings validation fails."""


def _require_mapping(data: Dict[str, Any], key: str, path: str) -> Dict[str, Any]:
    value = data.get(key)
    if value is None:
        raise SettingsError(f"Missing required field: {path}.{key}")
    if not isinstance(value, dict):
        raise SettingsError(f"Expected mapping for field: {path}.{key}")
    return value


def _optional_mapping(data: Dict[str, Any], key: str, path: str) -> Optional[Dict[str, Any]]:
    if data.get(key) is None:
        return None
    return _require_mapping(data, key, path)


def _require_value(data: Dict[str, Any], key: str, path: str) -> Any:
    if key not in data or data.get(key) is None:
        raise SettingsError(f"Missing required field: {path}.{key}")
    return data[key]


def _require_str(data: Dict[str, Any], key: str, path: str) -> str:
    value = _require_value(data, key, path)
    if not isinstance(value, str) or not value.strip():
        raise SettingsError(f"Expected non-empty string for field: {path}.{key}")
    return value


def _require_int(data: Dict[str, Any], key: str, path: str) -> int:
    value = _require_value(data, key, path)
    if isinstance(value, bool) or not isinstance(value, int):
        raise SettingsError(f"Expected integer for field: {path}.{key}")
    return value


def _require_number(data: Dict[str, Any], key: str, path: str) -> float:
    value = _require_value(data, key, path)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise SettingsError(f"Expected number for field: {path}.{key}")
    return float(value)


def _require_list(data: Dict[str, Any], key: str, path: str) -> List[Any]:
    value = _require_value(data, key, path)
    if not isinstance(value, list):
        raise SettingsError(f"Expected list for field: {path}.{key}")
    return value


def _with_default(data: Dict[str, Any], key: str, default: Any) -> Dict[str, Any]:
    """Return ``data`` where a missing ``key`` falls back to ``default``."""
    if data.get(key) is None:
        return {**data, key: default}
    return data


@dataclass(frozen=True)
class LLMSettings:
    provider: str
    model: str
    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class EmbeddingSettings:
    provider: str
    model: str
    dimensions: int


@dataclass(frozen=True)
class IngestionSettings:
    target_tokens: int = 500
    overlap_tokens: int = 50
    splitter: str = "sentence"
    min_document_chars: int = 10


@dataclass(frozen=True)
class RetrievalSettings:
    top_k: int
    batch_size: int
    max_concurrency: int
    request_timeout: float


@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int = 3
    base_delay: float = 0.5
    max_delay: float = 8.0
    jitter: float = 0.1


@dataclass(frozen=True)
class VerificationSettings:
    normalized_match_min_len: int = 30
    # Empty means "use the built-in legal trigger terms".
    legal_terms: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class StorageSettings:
    bundles_directory: str = "data/bundles"
    embedding_cache: str = "memory"
    chroma_directory: str = "data/db/chroma"
    collection_name: str = "lexiclear_segments"


@dataclass(frozen=True)
class ObservabilitySettings:
    log_level: str


@dataclass(frozen=True)
class Settings:
    llm: LLMSettings
    embedding: EmbeddingSettings
    retrieval: RetrievalSettings
    observability: ObservabilitySettings
    ingestion: IngestionSettings = field(default_factory=IngestionSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    verification: VerificationSettings = field(default_factory=VerificationSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        if not isinstance(data, dict):
            raise SettingsError("Settings root must be a mapping")

        llm = _require_mapping(data, "llm", "settings")
        embedding = _require_mapping(data, "embedding", "settings")
        retrieval = _require_mapping(data, "retrieval", "settings")
        observability = _require_mapping(data, "observability", "settings")

        ingestion_settings = IngestionSettings()
        ingestion = _optional_mapping(data, "ingestion", "settings")
        if ingestion is not None:
            defaults = IngestionSettings()
            ingestion = _with_default(ingestion, "min_document_chars", defaults.min_document_chars)
            ingestion_settings = IngestionSettings(
                target_tokens=_require_int(ingestion, "target_tokens", "ingestion"),
                overlap_tokens=_require_int(ingestion, "overlap_tokens", "ingestion"),
                splitter=_require_str(ingestion, "splitter", "ingestion"),
                min_document_chars=_require_int(ingestion, "min_document_chars", "ingestion"),
            )

        retry_settings = RetrySettings()
        retry = _optional_mapping(data, "retry", "settings")
        if retry is not None:
            retry_settings = RetrySettings(
                max_attempts=_require_int(retry, "max_attempts", "retry"),
                base_delay=_require_number(retry, "base_delay", "retry"),
                max_delay=_require_number(retry, "max_delay", "retry"),
                jitter=_require_number(
                    _with_default(retry, "jitter", RetrySettings().jitter), "jitter", "retry"
                ),
            )

        verification_settings = VerificationSettings()
        verification = _optional_mapping(data, "verification", "settings")
        if verification is not None:
            verification = _with_default(verification, "legal_terms", [])
            verification_settings = VerificationSettings(
                normalized_match_min_len=_require_int(
                    verification, "normalized_match_min_len", "verification"
                ),
                legal_terms=[
                    str(term).lower()
                    for term in _require_list(verification, "legal_terms", "verification")
                ],
            )

        storage_settings = StorageSettings()
        storage = _optional_mapping(data, "storage", "settings")
        if storage is not None:
            defaults = StorageSettings()
            for key in ("chroma_directory", "collection_name"):
                storage = _with_default(storage, key, getattr(defaults, key))
            storage_settings = StorageSettings(
                bundles_directory=_require_str(storage, "bundles_directory", "storage"),
                embedding_cache=_require_str(storage, "embedding_cache", "storage"),
                chroma_directory=_require_str(storage, "chroma_directory", "storage"),
                collection_name=_require_str(storage, "collection_name", "storage"),
            )

        settings = cls(
            llm=LLMSettings(
                provider=_require_str(llm, "provider", "llm"),
                model=_require_str(llm, "model", "llm"),
                temperature=_require_number(llm, "temperature", "llm"),
                max_tokens=_require_int(llm, "max_tokens", "llm"),
            ),
            embedding=EmbeddingSettings(
                provider=_require_str(embedding, "provider", "embedding"),
                model=_require_str(embedding, "model", "embedding"),
                dimensions=_require_int(embedding, "dimensions", "embedding"),
            ),
            retrieval=RetrievalSettings(
                top_k=_require_int(retrieval, "top_k", "retrieval"),
                batch_size=_require_int(retrieval, "batch_size", "retrieval"),
                max_concurrency=_require_int(retrieval, "max_concurrency", "retrieval"),
                request_timeout=_require_number(retrieval, "request_timeout", "retrieval"),
            ),
            observability=ObservabilitySettings(
                log_level=_require_str(observability, "log_level", "observability"),
            ),
            ingestion=ingestion_settings,
            retry=retry_settings,
            verification=verification_settings,
            storage=storage_settings,
        )

        return settings


def validate_settings(settings: Settings) -> None:
    """Validate cross-field rules and raise SettingsError if invalid."""

    ingestion = settings.ingestion
    if ingestion.target_tokens <= 0:
        raise SettingsError("ingestion.target_tokens must be positive")
    if ingestion.overlap_tokens < 0:
        raise SettingsError("ingestion.overlap_tokens must not be negative")
    if ingestion.overlap_tokens >= ingestion.target_tokens:
        raise SettingsError(
            f"ingestion.overlap_tokens ({ingestion.overlap_tokens}) must be less than "
            f"ingestion.target_tokens ({ingestion.target_tokens})"
        )
    if settings.retrieval.top_k < 1:
        raise SettingsError("retrieval.top_k must be at least 1")
    if settings.retrieval.batch_size < 1:
        raise SettingsError("retrieval.batch_size must be at least 1")
    if settings.retrieval.max_concurrency < 1:
        raise SettingsError("retrieval.max_concurrency must be at least 1")
    if settings.retrieval.request_timeout <= 0:
        raise SettingsError("retrieval.request_timeout must be positive")
    if settings.retry.max_attempts < 1:
        raise SettingsError("retry.max_attempts must be at least 1")
    if settings.storage.embedding_cache.lower() not in {"memory", "chroma"}:
        raise SettingsError(
            f"Unsupported storage.embedding_cache: '{settings.storage.embedding_cache}'"
        )


def load_settings(path: str | Path) -> Settings:
    """Load settings from a YAML file and validate required fields."""

    settings_path = Path(path)
    if not settings_path.exists():
        raise SettingsError(f"Settings file not found: {settings_path}")

    with settings_path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle)

    settings = Settings.from_dict(data or {})
    validate_settings(settings)
    return settings

"""Tests for the command line entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

import main as cli
from lexiclear.core.retry import RetryPolicy
from lexiclear.retrieval.retriever import Retriever
from lexiclear.services.grounded_qa import GroundedQAService

from lexiclear.storage.bundle_store import BundleStore

from conftest import SAMPLE_CONTRACT, KeywordEmbedding, ScriptedLLM, make_settings_dict


@pytest.fixture
def config_path(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.delenv("LEXICLEAR_BUNDLE_DIR", raising=False)
    data = make_settings_dict(
        storage={
            "bundles_directory": str(tmp_path / "bundles"),
            "embedding_cache": "memory",
        }
    )
    path = tmp_path / "settings.yaml"
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


@pytest.fixture
def contract_file(tmp_path: Path) -> Path:
    path = tmp_path / "contract.txt"
    path.write_text(SAMPLE_CONTRACT, encoding="utf-8")
    return path


def _ingest(config_path: Path, contract_file: Path, capsys: pytest.CaptureFixture) -> str:
    assert cli.main(["--config", str(config_path), "ingest", str(contract_file), "--title", "MSA"]) == 0
    return json.loads(capsys.readouterr().out)["bundle_id"]


def test_ingest_then_list(config_path: Path, contract_file: Path, capsys) -> None:
    bundle_id = _ingest(config_path, contract_file, capsys)

    assert cli.main(["--config", str(config_path), "list"]) == 0
    listing = json.loads(capsys.readouterr().out)

    assert [item["bundle_id"] for item in listing] == [bundle_id]
    assert listing[0]["doc_title"] == "MSA"


def test_verify_answer_file(config_path: Path, contract_file: Path, tmp_path: Path, capsys) -> None:
    bundle_id = _ingest(config_path, contract_file, capsys)
    answer = tmp_path / "answer.txt"
    answer.write_text("It may be terminated at once.", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "verify", bundle_id, str(answer)]) == 0
    report = json.loads(capsys.readouterr().out)

    assert report["ok"] is False
    assert report["potential_hallucinations"][0]["term"] == "terminated"


def test_ask_persists_embeddings(
    config_path: Path, contract_file: Path, tmp_path: Path, capsys, monkeypatch: pytest.MonkeyPatch
) -> None:
    bundle_id = _ingest(config_path, contract_file, capsys)
    policy = RetryPolicy(base_delay=0.0, jitter=0.0)
    service = GroundedQAService(
        Retriever(KeywordEmbedding(), retry_policy=policy),
        ScriptedLLM("Not in document"),
        retry_policy=policy,
    )
    monkeypatch.setattr(GroundedQAService, "from_settings", classmethod(lambda cls, settings: service))

    assert cli.main(["--config", str(config_path), "ask", bundle_id, "Who pays?", "--top-k", "2"]) == 0
    payload = json.loads(capsys.readouterr().out)

    assert 1 <= len(payload["retrieved_chunk_ids"]) <= 2
    assert payload["review_note"] is not None

    stored = BundleStore(tmp_path / "bundles").load(bundle_id)
    assert all(segment.has_embedding for segment in stored.segments)


def test_show_prints_stored_bundle(config_path: Path, contract_file: Path, tmp_path: Path, capsys) -> None:
    bundle_id = _ingest(config_path, contract_file, capsys)
    store = BundleStore(tmp_path / "bundles")
    bundle = store.load(bundle_id)
    bundle.segments[0].embedding = [0.5, 0.25]
    store.save(bundle)

    assert cli.main(["--config", str(config_path), "show", bundle_id]) == 0
    shown = json.loads(capsys.readouterr().out)

    assert shown == bundle.to_dict()
    assert shown["segments"][0]["embedding"] == [0.5, 0.25]

    assert cli.main(["--config", str(config_path), "show", bundle_id, "--strip-embeddings"]) == 0
    stripped = json.loads(capsys.readouterr().out)

    assert all(segment["embedding"] is None for segment in stripped["segments"])
    assert [s["text"] for s in stripped["segments"]] == [s.text for s in bundle.segments]


def test_show_missing_bundle_exit_code(config_path: Path, capsys) -> None:
    assert cli.main(["--config", str(config_path), "show", "bundle-nope"]) == 2
    assert "Bundle not found" in capsys.readouterr().err


def test_missing_bundle_exit_code(config_path: Path, capsys) -> None:
    assert cli.main(["--config", str(config_path), "verify", "bundle-nope", "missing.txt"]) == 2
    assert "Bundle not found" in capsys.readouterr().err


def test_blank_document_exit_code(config_path: Path, tmp_path: Path, capsys) -> None:
    empty = tmp_path / "empty.txt"
    empty.write_text("   \n", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "ingest", str(empty)]) == 2


def test_missing_config_exit_code(tmp_path: Path, capsys) -> None:
    assert cli.main(["--config", str(tmp_path / "nope.yaml"), "list"]) == 1
    assert "Configuration error" in capsys.readouterr().err

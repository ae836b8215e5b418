"""Tests for settings helpers."""

from pathlib import Path

from delorean.config import Settings, parse_allowed_origins


def test_parse_allowed_origins_splits_and_trims() -> None:
    origins = parse_allowed_origins(" http://a.test , http://b.test,, ")

    assert origins == ["http://a.test", "http://b.test"]


def test_parse_allowed_origins_handles_missing_value() -> None:
    assert parse_allowed_origins(None) == []


def test_manifest_path_defaults_to_upload_dir(tmp_path: Path) -> None:
    settings = Settings(upload_dir=tmp_path / "up")

    assert settings.resolved_manifest_path == tmp_path / "up" / "manifest.json"


def test_provider_key_is_optional(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    settings = Settings(_env_file=None, upload_dir=tmp_path)

    assert settings.openai_api_key is None
    assert settings.max_upload_files == 20
    assert settings.max_upload_bytes == 10 * 1024 * 1024

"""設定の読み込みと正規化を検証するテスト群。"""

import pytest
from pydantic import ValidationError

from learncurve.config import Settings


def test_settings_reads_cors_origins_from_env(monkeypatch: pytest.MonkeyPatch):
    """`CORS_ALLOWED_ORIGINS` から値を読み込み、トリムと重複排除を行う。"""

    monkeypatch.setenv(
        "CORS_ALLOWED_ORIGINS",
        " https://app.example.com ,https://admin.example.com,https://app.example.com ",
    )

    config = Settings(_env_file=None)

    assert config.allowed_cors_origins == (
        "https://app.example.com",
        "https://admin.example.com",
    )


def test_empty_cors_origins_become_empty_tuple(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("ALLOWED_CORS_ORIGINS", " , ")
    assert Settings(_env_file=None).allowed_cors_origins == ()


def test_embedding_provider_is_normalised(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EMBEDDING_PROVIDER", " Simple ")
    assert Settings(_env_file=None).embedding_provider == "simple"


def test_unknown_embedding_provider_is_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("EMBEDDING_PROVIDER", "voyage")
    with pytest.raises(ValidationError, match="EMBEDDING_PROVIDER"):
        Settings(_env_file=None)


def test_db_path_alias(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.delenv("LEARNCURVE_DB_PATH", raising=False)
    monkeypatch.setenv("DB_PATH", "/tmp/other.sqlite3")
    assert Settings(_env_file=None).learncurve_db_path == "/tmp/other.sqlite3"


def test_scheduling_defaults(monkeypatch: pytest.MonkeyPatch):
    for name in ("NEW_CARDS_PER_DAY", "REVIEW_DEFAULT_LIMIT", "DAY_BOUNDARY_UTC_OFFSET_HOURS"):
        monkeypatch.delenv(name, raising=False)
    config = Settings(_env_file=None)
    assert config.new_cards_per_day == 20
    assert config.review_default_limit == 1
    assert config.review_max_limit == 100
    assert config.day_boundary_utc_offset_hours == 9


def test_negative_new_card_limit_is_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("NEW_CARDS_PER_DAY", "-1")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)

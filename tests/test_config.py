import pytest

from apps.feedback_api.config import DEFAULT_BODY_LIMIT_BYTES, Settings, parse_origins, parse_size


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("10mb", 10 * 1024 * 1024),
        ("512kb", 512 * 1024),
        ("1.5MB", int(1.5 * 1024 * 1024)),
        ("2048", 2048),
        ("lots", DEFAULT_BODY_LIMIT_BYTES),
        (None, DEFAULT_BODY_LIMIT_BYTES),
    ],
)
def test_parse_size(raw, expected):
    assert parse_size(raw) == expected


def test_parse_origins_splits_and_trims():
    assert parse_origins("https://a.com, https://b.com ,") == ["https://a.com", "https://b.com"]
    assert parse_origins(None) == ["*"]
    assert parse_origins(" , ") == ["*"]


def test_defaults_match_documented_configuration():
    s = Settings()

    assert s.port == 8080
    assert s.cors_origins == ["*"]
    assert s.body_limit_bytes == 10 * 1024 * 1024
    assert s.rate_limit == "100 per 900 second"
    assert s.db_pool_max_size == 10
    assert s.is_dev


def test_from_env_reads_variables(monkeypatch):
    monkeypatch.setenv("PORT", "3000")
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("DATABASE_URL", "postgresql://u:p@db:5432/feedback")
    monkeypatch.setenv("CORS_ORIGIN", "https://bot.example.com")
    monkeypatch.setenv("BODY_LIMIT", "1mb")
    monkeypatch.setenv("ENABLE_RATE_LIMITING", "false")
    monkeypatch.setenv("RATE_LIMIT_WINDOW_MS", "60000")
    monkeypatch.setenv("RATE_LIMIT_MAX_REQUESTS", "5")
    monkeypatch.setenv("REQUIRE_USER_NAME", "yes")
    monkeypatch.setenv("STORE_TIMEOUT_S", "not-a-number")

    s = Settings.from_env()

    assert s.port == 3000
    assert not s.is_dev
    assert s.database_url == "postgresql://u:p@db:5432/feedback"
    assert s.cors_origins == ["https://bot.example.com"]
    assert s.body_limit_bytes == 1024 * 1024
    assert s.enable_rate_limiting is False
    assert s.rate_limit == "5 per 60 second"
    assert s.require_user_name is True
    assert s.store_timeout_s == 5.0

import pytest

from governor.config import BanExpiry, RateLimiterConfig, Settings, get_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "GOVERNOR_MAX_REQUESTS",
        "GOVERNOR_WINDOW_SECONDS",
        "GOVERNOR_BAN_DURATION_SECONDS",
        "GOVERNOR_BAN_EXPIRY",
        "GOVERNOR_IDENTIFY",
        "GOVERNOR_SHARDS",
    ):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def test_config_defaults():
    config = RateLimiterConfig()

    assert config.max_requests == 100
    assert config.window == 60.0
    assert config.ban_duration == 1800.0
    assert config.ban_expiry is BanExpiry.BAN_DURATION


def test_non_positive_values_fall_back_to_defaults():
    config = RateLimiterConfig(max_requests=-5, window=-1, ban_duration=0)

    assert (config.max_requests, config.window, config.ban_duration) == (100, 60.0, 1800.0)


def test_fractional_max_requests_below_one_falls_back():
    assert RateLimiterConfig(max_requests=0.5).max_requests == 100
    assert RateLimiterConfig(max_requests=2.7).max_requests == 2


def test_valid_values_are_kept():
    config = RateLimiterConfig(max_requests=3, window=0.5, ban_duration=10)

    assert (config.max_requests, config.window, config.ban_duration) == (3, 0.5, 10.0)


def test_ban_span_follows_expiry_mode():
    assert RateLimiterConfig(window=2, ban_duration=20).ban_span == 20.0
    assert RateLimiterConfig(window=2, ban_duration=20, ban_expiry="window").ban_span == 2.0


def test_unknown_ban_expiry_falls_back():
    assert BanExpiry.parse("forever") is BanExpiry.BAN_DURATION
    assert BanExpiry.parse(" WINDOW ") is BanExpiry.WINDOW


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("GOVERNOR_MAX_REQUESTS", "10")
    monkeypatch.setenv("GOVERNOR_WINDOW_SECONDS", "1.5")
    monkeypatch.setenv("GOVERNOR_BAN_DURATION_SECONDS", "90")
    monkeypatch.setenv("GOVERNOR_BAN_EXPIRY", "window")
    monkeypatch.setenv("GOVERNOR_IDENTIFY", "header:X-Api-Key")

    settings = get_settings()
    config = settings.limiter_config()

    assert settings.identify == "header:X-Api-Key"
    assert config.max_requests == 10
    assert config.window == 1.5
    assert config.ban_duration == 90.0
    assert config.ban_span == 1.5


def test_settings_invalid_env_values_use_defaults(monkeypatch):
    monkeypatch.setenv("GOVERNOR_MAX_REQUESTS", "lots")
    monkeypatch.setenv("GOVERNOR_WINDOW_SECONDS", "0")

    config = Settings.from_env().limiter_config()

    assert config.max_requests == 100
    assert config.window == 60.0


def test_get_settings_is_cached():
    assert get_settings() is get_settings()

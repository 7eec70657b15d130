"""Tests for settings parsing and validation."""
import pytest
from pydantic import ValidationError

from survey_backend.config import DEFAULT_TRUSTED_PROXIES, Settings

REQUIRED = {
    "admin_username": "admin",
    "admin_password": "secret",
    "jwt_secret": "jwt-secret",
}


def _settings(**overrides) -> Settings:
    values = dict(REQUIRED)
    values.update(overrides)
    return Settings(_env_file=None, **values)


def test_defaults():
    settings = _settings()

    assert settings.jwt_algorithm == "HS256"
    assert settings.access_token_exp_hours == 24
    assert settings.global_rate_limit == 60
    assert settings.survey_rate_limit == 5
    assert settings.login_rate_limit == 3
    assert settings.rate_limit_window_seconds == 60
    assert (settings.global_rate_burst, settings.survey_rate_burst, settings.login_rate_burst) == (60, 5, 3)
    assert settings.results_cache_ttl_seconds == 300.0
    assert settings.trusted_proxy_list == DEFAULT_TRUSTED_PROXIES


def test_trusted_proxies_parsed_from_comma_separated_string():
    settings = _settings(trusted_proxies=" 10.1.0.0/16, 203.0.113.9 ,,")

    assert settings.trusted_proxy_list == ["10.1.0.0/16", "203.0.113.9"]


def test_trusted_proxies_accept_a_list():
    settings = _settings(trusted_proxies=["10.1.0.0/16", "::1"])

    assert settings.trusted_proxy_list == ["10.1.0.0/16", "::1"]


def test_trusted_proxies_from_environment(monkeypatch):
    monkeypatch.setenv("TRUSTED_PROXIES", "192.0.2.1,198.51.100.0/24")

    assert _settings().trusted_proxy_list == ["192.0.2.1", "198.51.100.0/24"]


@pytest.mark.parametrize("proxy", ["not-an-ip", "10.0.0.0/33", "300.1.1.1"])
def test_invalid_trusted_proxy_is_rejected(proxy):
    with pytest.raises(ValidationError, match="invalid proxy address"):
        _settings(trusted_proxies=f"127.0.0.1,{proxy}")


@pytest.mark.parametrize("field", ["admin_username", "admin_password", "jwt_secret"])
def test_required_values_must_not_be_empty(field):
    with pytest.raises(ValidationError, match=field.upper()):
        _settings(**{field: ""})


def test_unsupported_jwt_algorithm_is_rejected():
    with pytest.raises(ValidationError, match="Unsupported JWT algorithm"):
        _settings(jwt_algorithm="none")


def test_allowed_origins_parsed():
    settings = _settings(allowed_origins="https://a.example, https://b.example")

    assert settings.allowed_origin_list == ["https://a.example", "https://b.example"]


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://user:pw@db:5432/survey", "postgresql+asyncpg://user:pw@db:5432/survey"),
        ("postgresql://user:pw@db/survey", "postgresql+asyncpg://user:pw@db/survey"),
        ("sqlite:///./data/app.db", "sqlite+aiosqlite:///./data/app.db"),
        ("sqlite+aiosqlite:///./data/app.db", "sqlite+aiosqlite:///./data/app.db"),
    ],
)
def test_database_url_driver_is_normalized(url, expected):
    assert _settings(database_url=url).database_url == expected


def test_empty_database_url_falls_back_to_sqlite():
    assert _settings(database_url="").database_url.startswith("sqlite+aiosqlite:///")

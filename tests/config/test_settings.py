from __future__ import annotations

import logging

import pytest
from httpx_retries import Retry

from vaultsync.config import (
    KEYVAULT_API_VERSION,
    ConfigurationError,
    MissingConfigurationError,
    RetryPolicy,
    configure_logging,
    default_keyvault_resilience,
    get_keyvault_config,
    get_sync_config,
    require_env_vars,
)


def test_require_env_vars_returns_values(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("EXAMPLE_VAR", "value")

    assert require_env_vars(["EXAMPLE_VAR"]) == {"EXAMPLE_VAR": "value"}


def test_require_env_vars_lists_every_missing_or_blank(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MISSING_VAR", raising=False)
    monkeypatch.setenv("BLANK_VAR", "   ")

    with pytest.raises(MissingConfigurationError) as exc:
        require_env_vars(["MISSING_VAR", "BLANK_VAR"])

    assert "BLANK_VAR, MISSING_VAR" in str(exc.value)


def test_keyvault_config_reads_token_and_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYVAULT_ACCESS_TOKEN", " abc ")
    monkeypatch.delenv("KEYVAULT_API_VERSION", raising=False)

    config = get_keyvault_config()

    assert config.access_token == "abc"
    assert config.api_version == KEYVAULT_API_VERSION
    assert config.resilience.ratelimit is not None
    assert config.resilience.ratelimit.max_calls == 200


def test_keyvault_config_requires_token(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("KEYVAULT_ACCESS_TOKEN", raising=False)

    with pytest.raises(MissingConfigurationError, match="KEYVAULT_ACCESS_TOKEN"):
        get_keyvault_config()


def test_keyvault_config_api_version_override(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("KEYVAULT_ACCESS_TOKEN", "abc")
    monkeypatch.setenv("KEYVAULT_API_VERSION", "7.4")

    assert get_keyvault_config().api_version == "7.4"


def test_sync_config_defaults_and_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("VAULTSYNC_FETCH_CONCURRENCY", raising=False)
    monkeypatch.delenv("VAULTSYNC_VALUE_TTL_SECONDS", raising=False)
    defaults = get_sync_config()
    assert (defaults.fetch_concurrency, defaults.value_ttl_seconds) == (8, 300.0)

    monkeypatch.setenv("VAULTSYNC_FETCH_CONCURRENCY", "2")
    monkeypatch.setenv("VAULTSYNC_VALUE_TTL_SECONDS", "12.5")
    overridden = get_sync_config()
    assert (overridden.fetch_concurrency, overridden.value_ttl_seconds) == (2, 12.5)


@pytest.mark.parametrize(
    ("name", "raw"),
    [
        ("VAULTSYNC_FETCH_CONCURRENCY", "many"),
        ("VAULTSYNC_FETCH_CONCURRENCY", "0"),
        ("VAULTSYNC_VALUE_TTL_SECONDS", "-1"),
    ],
)
def test_sync_config_rejects_invalid_numbers(
    monkeypatch: pytest.MonkeyPatch, name: str, raw: str
) -> None:
    monkeypatch.setenv(name, raw)

    with pytest.raises(ConfigurationError, match=name):
        get_sync_config()


def test_retry_policy_builds_retry() -> None:
    policy = RetryPolicy(total=2)
    retry = policy.build()

    assert isinstance(retry, Retry)
    assert retry.total == 2
    assert {429, 503} <= policy.status_forcelist
    assert "PUT" in policy.allowed_methods


def test_default_resilience_has_timeout() -> None:
    assert default_keyvault_resilience().timeout_seconds == 30.0


def test_configure_logging_quiets_httpx() -> None:
    configure_logging(level=logging.DEBUG, force=True)
    assert logging.getLogger("httpx").level == logging.WARNING

    configure_logging(level=logging.ERROR, force=True)
    assert logging.getLogger("httpx").level == logging.ERROR

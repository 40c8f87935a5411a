"""
Unit tests for config.py.
"""

import pytest
from pydantic import ValidationError

from config import Config, has_credentials, load_config

_ENV_VARS = (
    "MAGENTO_ORIGIN",
    "MAGENTO_STORE_CODE",
    "MAGENTO_CONSUMER_KEY",
    "MAGENTO_CONSUMER_SECRET",
    "MAGENTO_ACCESS_TOKEN",
    "MAGENTO_ACCESS_TOKEN_SECRET",
    "MAGENTO_ENCODE_SIGNING_KEY",
    "MAGENTO_TIMEOUT_SEC",
    "LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def _full(**overrides) -> Config:
    values = dict(
        magento_origin="https://shop.test",
        magento_consumer_key="ck",
        magento_consumer_secret="cs",
        magento_access_token="at",
        magento_access_token_secret="ats",
    )
    values.update(overrides)
    return Config(_env_file=None, **values)


class TestConfig:
    def test_defaults(self):
        cfg = Config(_env_file=None)
        assert cfg.magento_origin == ""
        assert cfg.magento_store_code == "all"
        assert cfg.magento_consumer_key == ""
        assert cfg.magento_encode_signing_key is True
        assert cfg.magento_timeout_sec == 10.0
        assert cfg.log_level == "INFO"

    def test_custom_values(self):
        cfg = _full(magento_timeout_sec=3.5, magento_encode_signing_key=False, log_level="DEBUG")
        assert cfg.magento_origin == "https://shop.test"
        assert cfg.magento_timeout_sec == 3.5
        assert cfg.magento_encode_signing_key is False
        assert cfg.log_level == "DEBUG"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MAGENTO_ORIGIN", "https://env.test")
        monkeypatch.setenv("MAGENTO_CONSUMER_KEY", "env-key")
        monkeypatch.setenv("MAGENTO_ENCODE_SIGNING_KEY", "false")
        monkeypatch.setenv("MAGENTO_TIMEOUT_SEC", "2.5")
        cfg = Config(_env_file=None)
        assert cfg.magento_origin == "https://env.test"
        assert cfg.magento_consumer_key == "env-key"
        assert cfg.magento_encode_signing_key is False
        assert cfg.magento_timeout_sec == 2.5

    def test_zero_timeout_raises(self):
        with pytest.raises(ValidationError):
            Config(_env_file=None, magento_timeout_sec=0)

    def test_frozen(self):
        cfg = Config(_env_file=None)
        with pytest.raises(ValidationError):
            cfg.magento_origin = "https://other.test"

    def test_load_config(self, monkeypatch):
        monkeypatch.setenv("MAGENTO_STORE_CODE", "default")
        assert load_config().magento_store_code == "default"


class TestHasCredentials:
    def test_complete(self):
        assert has_credentials(_full()) is True

    @pytest.mark.parametrize("field", [
        "magento_origin",
        "magento_consumer_key",
        "magento_consumer_secret",
        "magento_access_token",
        "magento_access_token_secret",
    ])
    def test_missing_field(self, field):
        assert has_credentials(_full(**{field: ""})) is False

"""
Configuration loaded from environment variables (and .env). Frozen once built.
"""

from pydantic_settings import BaseSettings
from pydantic import Field


class Config(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "frozen": True, "extra": "ignore"}

    # API origin, e.g. "https://shop.example.com". Paths are appended verbatim.
    magento_origin: str = ""
    # Store view segment in /rest/<store_code>/V1/... paths
    magento_store_code: str = "all"

    # Integration credentials (System > Extensions > Integrations in the admin)
    magento_consumer_key: str = ""
    magento_consumer_secret: str = ""
    magento_access_token: str = ""
    magento_access_token_secret: str = ""

    # Percent-encode consumer/token secrets before joining them into the HMAC key.
    # Only matters for secrets with reserved characters; Magento-issued secrets are
    # alphanumeric. Turn off for servers that concatenate raw secrets.
    magento_encode_signing_key: bool = True

    magento_timeout_sec: float = Field(default=10.0, gt=0)

    log_level: str = "INFO"


def has_credentials(cfg: Config) -> bool:
    """True when the origin and all four OAuth credentials are set."""
    return all((
        cfg.magento_origin,
        cfg.magento_consumer_key,
        cfg.magento_consumer_secret,
        cfg.magento_access_token,
        cfg.magento_access_token_secret,
    ))


def load_config() -> Config:
    """Load and validate config from environment. Raises on invalid values."""
    return Config()

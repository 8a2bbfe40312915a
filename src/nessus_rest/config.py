"""Configuration management for nessus-rest using Pydantic Settings.

Configuration is loaded from keyword arguments, environment variables
and/or .env files. Explicit arguments take precedence over environment
variables, which take precedence over .env file values.
"""

from functools import lru_cache
from typing import Literal

import httpx
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class NessusSettings(BaseSettings):
    """Nessus scanner connection settings.

    Settings are frozen: a client built from them never sees its
    endpoint, retry policy or credentials change underneath it.
    """

    model_config = SettingsConfigDict(
        env_prefix="NESSUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    url: str = Field(
        default="https://127.0.0.1:8834/",
        description="Nessus scanner URL",
    )
    ssl_verify: bool = Field(
        default=False,
        description="Whether to verify TLS certificates (scanners usually run self-signed)",
    )
    ssl_use: bool = Field(
        default=True,
        description="Whether to talk TLS to the scanner at all",
    )
    http_retry: int = Field(
        default=3,
        ge=0,
        description="Number of retries after a transient network failure",
    )
    http_sleep: float = Field(
        default=1,
        ge=0,
        description="Seconds to sleep between retries",
    )
    timeout: float = Field(
        default=30,
        gt=0,
        description="Per-request timeout in seconds",
    )
    username: str = Field(
        default="nessus",
        description="Nessus username",
    )
    password: SecretStr = Field(
        default=SecretStr("nessus"),
        description="Nessus password",
    )
    autologin: bool = Field(
        default=True,
        description="Log in when the client is constructed",
    )
    poll_sleep: float = Field(
        default=1,
        ge=0,
        description="Seconds to sleep between scan/export status polls",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    @property
    def base_url(self) -> str:
        """Endpoint URL with the scheme forced by ``ssl_use``.

        Only host and port are taken from ``url``; the scheme follows the
        TLS flag.
        """
        url = httpx.URL(self.url)
        scheme = "https" if self.ssl_use else "http"
        port = url.port or (443 if url.scheme == "https" else 80)
        # IPv6 literals come back from httpx without their brackets.
        host = f"[{url.host}]" if ":" in url.host else url.host
        return f"{scheme}://{host}:{port}/"


@lru_cache
def get_settings() -> NessusSettings:
    """Get cached application settings.

    Returns:
        Settings instance, cached for reuse.
    """
    return NessusSettings()

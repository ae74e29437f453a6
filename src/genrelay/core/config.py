"""Configuration management for the generation relay.

All configuration is loaded through Pydantic Settings, so every field can be
set from the process environment without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (no prefix, matching field names case-insensitively)
2. .env file in the working directory
3. Default values defined in RelayConfig

Example .env file:
    MODEL_ACCESS_KEY=sk-do-...
    PORT=3000
    MAX_POLL_ATTEMPTS=120

Global Configuration Instance
------------------------------
A global ``config`` instance is created at module import time.  It is loaded
once per process and frozen thereafter.  Code that needs a different
configuration (tests, embedding) constructs its own ``RelayConfig`` and hands
it to :func:`genrelay.api.main.create_app` or
:class:`genrelay.core.relay.GenerationRelay` directly.

Usage Example
-------------
    from genrelay.core.config import config

    print(config.api_base_url)
    print(config.max_poll_attempts)

Timing
------
The relay enforces its timeout by attempt count, not by wall clock.  The
effective upper bound on a generation is roughly
``max_poll_attempts * (poll_interval_seconds + poll_jitter_seconds)`` plus the
per-call HTTP timeout of the submit and fetch calls.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "https://inference.do-ai.run/v1"


class RelayConfig(BaseSettings):
    """Main configuration for the generation relay.

    Attributes
    ----------
    Upstream Settings:
        model_access_key : str | None
            Bearer credential for the inference API.  Generation is refused
            with a misconfiguration error while this is unset.
        api_base_url : str
            Base URL of the asynchronous inference API.
        model_id : str
            Upstream model identifier sent with every submit.
        output_format : str
            Fixed ``output_format`` input sent with every submit.
        enable_safety_checker : bool
            Fixed ``enable_safety_checker`` input sent with every submit.
        request_timeout_seconds : float
            Per-call HTTP timeout for upstream requests.

    Polling Settings:
        poll_interval_seconds : float
            Delay before each status check.
        poll_jitter_seconds : float
            Upper bound of a uniform random delay added to each interval.
        max_poll_attempts : int
            Attempt ceiling; reaching it without a terminal status is a
            timeout.

    Server Settings:
        server_host : str
            Bind address for uvicorn.
        port : int
            Listen port.
        public_dir : Path
            Directory of static files served at ``/`` when it exists.
        log_level : str
            Root logging level applied by the CLI entry point.

    Notes
    -----
    - Instances are frozen; set environment variables and restart to change
      values.
    - No env prefix is used so ``MODEL_ACCESS_KEY`` and ``PORT`` keep the
      names operators already deploy with.

    Examples
    --------
        >>> cfg = RelayConfig(model_access_key="secret", max_poll_attempts=60)
        >>> cfg.poll_interval_seconds
        1.0
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Upstream settings
    model_access_key: str | None = Field(
        default=None,
        description="Bearer credential for the inference API",
    )
    api_base_url: str = Field(
        default=DEFAULT_API_BASE_URL,
        description="Base URL of the asynchronous inference API",
    )
    model_id: str = Field(
        default="fal-ai/fast-sdxl",
        description="Upstream model identifier",
    )
    output_format: str = Field(
        default="landscape_4_3",
        description="Output format sent with every submit",
    )
    enable_safety_checker: bool = Field(
        default=True,
        description="Ask upstream to run its safety checker",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        description="Per-call HTTP timeout for upstream requests",
        gt=0,
    )

    # Polling settings
    poll_interval_seconds: float = Field(
        default=1.0,
        description="Delay before each status check",
        ge=0,
    )
    poll_jitter_seconds: float = Field(
        default=0.0,
        description="Maximum random delay added to each poll interval",
        ge=0,
    )
    max_poll_attempts: int = Field(
        default=120,
        description="Status checks allowed before the request times out",
        ge=1,
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    port: int = Field(
        default=3000,
        description="Server port",
        ge=1,
        le=65535,
    )
    public_dir: Path = Field(
        default=Path("public"),
        description="Static files served at / when the directory exists",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Root logging level",
    )

    @field_validator("model_access_key")
    @classmethod
    def _strip_access_key(cls, value: str | None) -> str | None:
        # The key is sent verbatim in the Authorization header.
        if value is None:
            return None
        return value.strip() or None

    @property
    def has_credential(self) -> bool:
        """Whether a non-empty access key is configured."""
        return bool(self.model_access_key)


# Global configuration instance, loaded once from the environment and .env.
config = RelayConfig()

from __future__ import annotations

from pydantic_settings import BaseSettings

from vitals.health.probe import RetryPolicy


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Probe endpoints (kubernetes liveness / readiness + verbose report)
    liveness_path: str = "/liveness"
    readiness_path: str = "/readiness"
    health_path: str = "/health"

    # Components to register at startup (YAML, relative to CWD)
    components_file: str = "components.yaml"

    # Per-request deadline for a check, seconds
    check_timeout: float = 5.0

    # Retry of FAIL results within one check
    retry_max_attempts: int = 10  # 0 = retry until the deadline
    retry_delay: float = 0.02  # seconds before the first retry
    retry_backoff: float = 2.0
    retry_max_delay: float = 0.5

    # Logging
    log_level: str = "INFO"

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.retry_max_attempts or None,
            delay=self.retry_delay,
            backoff=self.retry_backoff,
            max_delay=self.retry_max_delay,
        )


settings = Settings()

"""Application configuration model using pydantic-settings."""

from __future__ import annotations

from pathlib import Path

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.models.retry_policy import RetryPolicy


class Config(BaseSettings):
    """Application configuration loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    graph_access_token: str
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    log_level: str = "INFO"
    log_json: bool = False
    max_retry_attempts: int = 4
    retry_base_delay: float = 1.0
    retry_max_delay: float = 30.0
    page_size: int = 100
    request_timeout: int = 30
    report_dir: str = "reports"
    deadline_seconds: float | None = None

    @field_validator("graph_access_token")
    @classmethod
    def validate_graph_access_token(cls, value: str) -> str:
        """Graph access token must be non-empty."""
        if not value.strip():
            msg = "graph_access_token must not be empty"
            raise ValueError(msg)
        return value.strip()

    @field_validator("graph_base_url")
    @classmethod
    def validate_graph_base_url(cls, value: str) -> str:
        """Base URL must be https and is stored without a trailing slash."""
        if not value.startswith("https://"):
            msg = "graph_base_url must start with https://"
            raise ValueError(msg)
        return value.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value

    @field_validator("max_retry_attempts")
    @classmethod
    def validate_max_retry_attempts(cls, value: int) -> int:
        """Max retry attempts must be between 1 and 10."""
        if value < 1 or value > 10:
            msg = "max_retry_attempts must be between 1 and 10"
            raise ValueError(msg)
        return value

    @field_validator("page_size")
    @classmethod
    def validate_page_size(cls, value: int) -> int:
        """Graph accepts $top between 1 and 999."""
        if value < 1 or value > 999:
            msg = "page_size must be between 1 and 999"
            raise ValueError(msg)
        return value

    @field_validator("report_dir")
    @classmethod
    def validate_report_dir(cls, value: str) -> str:
        """Ensure the report directory exists, creating it if necessary."""
        Path(value).mkdir(parents=True, exist_ok=True)
        return value

    @field_validator("deadline_seconds")
    @classmethod
    def validate_deadline_seconds(cls, value: float | None) -> float | None:
        if value is not None and value <= 0:
            msg = "deadline_seconds must be positive"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_retry_delays(self) -> Config:
        """Backoff delays must be non-negative and base must not exceed max."""
        if self.retry_base_delay < 0 or self.retry_max_delay < 0:
            msg = "retry delays must not be negative"
            raise ValueError(msg)
        if self.retry_base_delay > self.retry_max_delay:
            msg = "retry_base_delay must be less than or equal to retry_max_delay"
            raise ValueError(msg)
        return self

    def retry_policy(self) -> RetryPolicy:
        """Build the retry policy for Graph calls."""
        return RetryPolicy(
            max_attempts=self.max_retry_attempts,
            base_delay=self.retry_base_delay,
            max_delay=self.retry_max_delay,
        )

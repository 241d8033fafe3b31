"""Runtime configuration for the report Lambda.

Settings are read from the environment once per container and then passed
explicitly to the handler and dispatcher.
"""

from __future__ import annotations

import logging
import os
from typing import Literal, Mapping

import boto3
from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

logger = logging.getLogger(__name__)

Provider = Literal["openai", "bedrock"]


def parse_origins(raw: str) -> tuple[str, ...]:
    """Split a comma-separated CORS allow-list, skipping blanks."""
    return tuple(origin.strip() for origin in raw.split(",") if origin.strip())


class Settings(BaseModel):
    """Process-wide static configuration."""

    model_config = ConfigDict(frozen=True)

    provider: Provider = "openai"
    openai_api_key: SecretStr | None = None
    aws_region: str = "us-east-1"
    allowed_origins: tuple[str, ...] = ()

    @field_validator("provider", mode="before")
    @classmethod
    def lower_provider(cls, value):
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @field_validator("openai_api_key", mode="before")
    @classmethod
    def strip_key(cls, value):
        # Keys pasted into consoles often carry a trailing newline
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            provider=env.get("REPORT_PROVIDER", "openai"),
            openai_api_key=env.get("OPENAI_API_KEY"),
            aws_region=env.get("AWS_REGION", "us-east-1"),
            allowed_origins=parse_origins(env.get("ALLOWED_ORIGINS", "")),
        )

    def has_credentials(self) -> bool:
        """Whether the configured provider has something to authenticate with."""
        if self.provider == "bedrock":
            return boto3.Session(region_name=self.aws_region).get_credentials() is not None
        return self.openai_api_key is not None

    def credential_name(self) -> str:
        if self.provider == "bedrock":
            return "AWS credentials"
        return "OPENAI_API_KEY"

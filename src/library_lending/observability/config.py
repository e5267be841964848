"""Logfire settings for the lending service, read from the environment."""

import os

from pydantic import BaseModel, Field


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class ObservabilityConfig(BaseModel):
    """
    Where lending traces go and how much of each call they carry.

    Nothing leaves the process unless ``LOGFIRE_SEND`` is set, so a
    development checkout needs no token.
    """

    token: str = Field(default_factory=lambda: os.getenv("LOGFIRE_TOKEN", ""))
    service_name: str = "library-lending"
    environment: str = Field(default_factory=lambda: os.getenv("ENVIRONMENT", "development"))

    enabled: bool = Field(default_factory=lambda: _flag("LOGFIRE_ENABLED", "true"))
    console_output: bool = Field(default_factory=lambda: _flag("LOGFIRE_CONSOLE", "false"))
    send_to_logfire: bool = Field(default_factory=lambda: _flag("LOGFIRE_SEND", "false"))

    # Scalar tool arguments (actor id, book id, dates) become span attributes
    record_tool_arguments: bool = Field(
        default_factory=lambda: _flag("LOGFIRE_RECORD_ARGUMENTS", "true")
    )
    # CPU and memory of the host; off outside production unless asked for
    system_metrics: bool = Field(
        default_factory=lambda: _flag(
            "LOGFIRE_SYSTEM_METRICS",
            "true" if os.getenv("ENVIRONMENT") == "production" else "false",
        )
    )

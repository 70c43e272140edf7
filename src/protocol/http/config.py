from __future__ import annotations

import logging
import os
from typing import List, Mapping, Optional

from pydantic import BaseModel, Field, field_validator


ENV_PREFIX = "CHESSBOARD_"


class ServerConfig(BaseModel):
    """Settings for the board API server.

    Values come from ``CHESSBOARD_*`` environment variables; the launcher's
    command-line flags take precedence over them.
    """

    host: str = "127.0.0.1"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"
    cors_origins: List[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level: {value!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}
        if f"{ENV_PREFIX}HOST" in env:
            values["host"] = env[f"{ENV_PREFIX}HOST"]
        if f"{ENV_PREFIX}PORT" in env:
            values["port"] = env[f"{ENV_PREFIX}PORT"]
        if f"{ENV_PREFIX}LOG_LEVEL" in env:
            values["log_level"] = env[f"{ENV_PREFIX}LOG_LEVEL"]
        if f"{ENV_PREFIX}CORS_ORIGINS" in env:
            raw = env[f"{ENV_PREFIX}CORS_ORIGINS"]
            values["cors_origins"] = [o.strip() for o in raw.split(",") if o.strip()]
        return cls(**values)

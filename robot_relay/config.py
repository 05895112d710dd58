import os
from typing import Literal, Tuple

from pydantic import BaseModel, Field, field_validator


DEFAULT_BROWSER_SIGNATURES = ("Mozilla", "Chrome", "Safari", "Firefox", "Edge", "Opera")


class RelaySettings(BaseModel):
    """Runtime configuration, read from the environment at startup."""

    address: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    mode: Literal["single", "multi"] = Field(
        default="single",
        description="'single' pairs one robot with one web client; 'multi' keeps many robots.",
    )
    heartbeat_interval: float = Field(default=30.0, gt=0, description="Seconds between heartbeat ticks.")
    browser_signatures: Tuple[str, ...] = DEFAULT_BROWSER_SIGNATURES
    log_level: str = "INFO"

    @field_validator("browser_signatures", mode="before")
    @classmethod
    def split_signatures(cls, value):
        if isinstance(value, str):
            return tuple(part.strip() for part in value.split(",") if part.strip())
        return value

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value):
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @classmethod
    def from_env(cls) -> "RelaySettings":
        values = {
            "address": os.getenv("ADDRESS"),
            "port": os.getenv("PORT"),
            "mode": os.getenv("RELAY_MODE"),
            "heartbeat_interval": os.getenv("HEARTBEAT_INTERVAL"),
            "browser_signatures": os.getenv("BROWSER_SIGNATURES"),
            "log_level": os.getenv("LOG_LEVEL"),
        }
        return cls(**{key: value for key, value in values.items() if value is not None})

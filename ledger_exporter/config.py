"""Exporter configuration loading via Pydantic settings."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsError

from ledger_exporter.ingest.identities import parse_address_entry

_ALL_INTERFACES = "0.0.0.0"


class ConfigurationError(Exception):
    """Raised when required options are missing or malformed."""


@dataclass(frozen=True)
class ListenAddress:
    host: str
    port: int

    def __str__(self) -> str:
        if ":" in self.host:
            return f"[{self.host}]:{self.port}"
        return f"{self.host}:{self.port}"


def parse_listen_addr(value: str) -> ListenAddress:
    """Parse ``host:port``, ``:port`` or ``[ipv6]:port``."""

    text = value.strip()
    if text.startswith("["):
        host, sep, port_text = text[1:].partition("]:")
        if not sep:
            raise ValueError(f"invalid listen address '{value}', expected [host]:port")
    else:
        host, sep, port_text = text.rpartition(":")
        if not sep or ":" in host:
            raise ValueError(f"invalid listen address '{value}', expected host:port")
        host = host or _ALL_INTERFACES

    if not host or not port_text.isdigit():
        raise ValueError(f"invalid listen address '{value}', expected host:port")
    port = int(port_text)
    if port > 65535:
        raise ValueError(f"invalid listen address '{value}', port out of range")
    return ListenAddress(host=host, port=port)


class Settings(BaseSettings):
    """Runtime configuration sourced from CLI overrides, environment variables and .env."""

    listen_addr: str = Field(..., alias="LISTEN_ADDR")
    our_addresses: list[str] = Field(default_factory=list, alias="OUR_ADDRESSES")
    ledger_tail_bin: str | None = Field(default=None, alias="LEDGER_TAIL_BIN")
    ledger_tail_args: str = Field(default="", alias="LEDGER_TAIL_ARGS")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("listen_addr")
    @classmethod
    def validate_listen_addr(cls, value: str) -> str:
        parse_listen_addr(value)
        return value.strip()

    @field_validator("our_addresses")
    @classmethod
    def validate_our_addresses(cls, value: list[str]) -> list[str]:
        for entry in value:
            parse_address_entry(entry)
        return value

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value

    @property
    def listen_address(self) -> ListenAddress:
        return parse_listen_addr(self.listen_addr)


def load_settings(**overrides: Any) -> Settings:
    """Build settings, letting non-None overrides win over the environment."""

    fields = Settings.model_fields
    values = {
        (fields[key].alias or key) if key in fields else key: value
        for key, value in overrides.items()
        if value is not None
    }
    try:
        return Settings(**values)
    except (ValidationError, SettingsError) as exc:
        raise ConfigurationError(str(exc)) from exc

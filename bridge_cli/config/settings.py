"""CLI configuration loading and validation."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, ClassVar, Dict, Iterable, Literal

import yaml
from pydantic import Field, PositiveInt, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_LOCATIONS: tuple[Path, ...] = (
    Path("./config/cli.yaml"),
    Path("./config/cli.yml"),
    Path("~/.config/mesh-bridge/cli.yaml").expanduser(),
    Path("~/.config/mesh-bridge/cli.yml").expanduser(),
)


class ClientSettings(BaseSettings):
    """Validated settings for the interactive bridge client."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_prefix="MESH_BRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Connection + identity
    host: str = Field(
        default="localhost",
        description="Bridge WebSocket host.",
    )
    port: PositiveInt = Field(
        default=9999,
        description="Bridge WebSocket port.",
    )
    path: str = Field(
        default="/",
        description="Request path of the bridge WebSocket endpoint.",
    )
    client_name: str = Field(
        default="mesh-bridge-cli",
        description="Client identifier announced in the connect frame.",
    )
    client_version: str = Field(
        default="0.1.0",
        description="Client version announced in the connect frame.",
    )
    domain: str = Field(
        default="cli",
        description="Domain the CLI connects for.",
    )
    capabilities: list[str] = Field(
        default_factory=lambda: ["text", "monitor"],
        description="Capabilities advertised in the connect frame.",
    )
    transport: Literal["websocket", "memory"] = Field(
        default="websocket",
        description="Transport implementation to use.",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for the transport-level opening handshake.",
    )

    # Reconnect & keepalive
    reconnect_initial_delay_ms: float = Field(
        default=1000.0,
        gt=0,
        description="Delay before the first reconnect attempt.",
    )
    reconnect_multiplier: float = Field(
        default=2.0,
        gt=1,
        description="Growth factor applied per failed attempt.",
    )
    reconnect_max_delay_ms: float = Field(
        default=30000.0,
        gt=0,
        description="Upper bound for the reconnect delay.",
    )
    reconnect_jitter: float = Field(
        default=0.0,
        ge=0,
        lt=1,
        description="Downward jitter factor applied to reconnect delays (0 disables).",
    )
    keepalive_interval_seconds: float = Field(
        default=25.0,
        ge=0,
        description="Interval between ping frames while connected (0 disables).",
    )

    # Terminal + diagnostics
    monitor: bool = Field(
        default=False,
        description="Show unrecognized frames as they arrive.",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Minimum log level for the client process.",
    )
    log_file: Path | None = Field(
        default=None,
        description="Write log records to this file instead of the terminal.",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        if isinstance(value, str):
            return value.upper()
        return value

    @field_validator("path")
    @classmethod
    def _normalize_path(cls, value: str) -> str:
        if not value.startswith("/"):
            return "/" + value
        return value

    @model_validator(mode="after")
    def _check_backoff_bounds(self) -> "ClientSettings":
        if self.reconnect_max_delay_ms < self.reconnect_initial_delay_ms:
            raise ValueError("reconnect_max_delay_ms must be >= reconnect_initial_delay_ms")
        return self

    config_path: Path | None = Field(
        default=None,
        description="Resolved path to the on-disk config that seeded the settings.",
        exclude=True,
    )

    @property
    def server_url(self) -> str:
        return f"ws://{self.host}:{self.port}{self.path}"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[ClientSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            cls._yaml_settings_source,
            file_secret_settings,
        )

    @staticmethod
    def _yaml_settings_source(settings_cls: type[ClientSettings] | None = None) -> Dict[str, Any]:
        candidates: Iterable[Path] = ClientSettings._resolve_candidate_paths()

        for path in candidates:
            data = ClientSettings._load_file(path)
            if data is not None:
                data.setdefault("config_path", path)
                return data
        return {}

    @staticmethod
    def _resolve_candidate_paths() -> Iterable[Path]:
        explicit = os.getenv("MESH_BRIDGE_CONFIG_FILE")
        if explicit:
            yield Path(explicit).expanduser()
        yield from DEFAULT_CONFIG_LOCATIONS

    @staticmethod
    def _load_file(path: Path) -> Dict[str, Any] | None:
        if not path.is_file():
            return None
        suffix = path.suffix.lower()
        try:
            with path.open("r", encoding="utf-8") as handle:
                if suffix in {".yaml", ".yml"}:
                    raw = yaml.safe_load(handle)
                elif suffix == ".json":
                    raw = json.load(handle)
                else:
                    return None
        except OSError as exc:
            raise RuntimeError(f"Failed to read CLI config file {path}") from exc
        except (yaml.YAMLError, json.JSONDecodeError) as exc:
            raise ValueError(f"Invalid CLI config file {path}") from exc

        if raw is None:
            return {}
        if not isinstance(raw, dict):
            raise ValueError(f"CLI config file {path} must contain a mapping at top level.")
        return raw


def load_settings(**overrides: Any) -> ClientSettings:
    """Build settings with command-line overrides; ``None`` values are ignored."""

    return ClientSettings(**{key: value for key, value in overrides.items() if value is not None})


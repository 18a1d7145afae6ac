"""Settings module with unified configuration precedence: CLI > ENV > CONFIG FILE."""

from __future__ import annotations

import os
import tomllib
from enum import Enum
from pathlib import Path
from typing import Any

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

from .constants import (
    BASE_ENDPOINTS,
    DEFAULT_CHART_PADDING_DAYS,
    DEFAULT_CHART_SAMPLES,
    MAINNET_ENDPOINTS,
    SEPOLIA_ENDPOINTS,
    NetworkEndpoints,
)

load_dotenv()

SECRET_FIELDS = {"indexer_api_key"}


class Network(str, Enum):
    SEPOLIA = "sepolia"
    MAINNET = "mainnet"
    BASE = "base"


class TomlConfigSource(PydanticBaseSettingsSource):
    """Lowest-precedence source reading a TOML config file.

    Search order: ``STAK_METRICS_CONFIG``, ``./stak-metrics.toml``,
    ``~/.config/stak-metrics/config.toml``. Settings may sit at the top
    level or under a ``[stak_metrics]`` table.
    """

    def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
        super().__init__(settings_cls)
        self._path = path

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        return None, "", False

    def _resolve_path(self) -> Path | None:
        if self._path:
            return self._path
        local_config = Path("stak-metrics.toml")
        user_config = Path.home() / ".config" / "stak-metrics" / "config.toml"
        if local_config.exists():
            return local_config
        if user_config.exists():
            return user_config
        return None

    def __call__(self) -> dict[str, Any]:
        path = self._resolve_path()
        if path is None or not path.exists():
            return {}

        with path.open("rb") as f:
            data = tomllib.load(f)
        body = data.get("stak_metrics", data)
        if not isinstance(body, dict):
            return {}

        for key in SECRET_FIELDS:
            if key in body:
                raise ValueError(
                    f"Security violation: '{key}' found in TOML config file. "
                    f"Secrets must only be provided via environment variables or CLI flags."
                )

        return body


class MetricsSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with STAK_METRICS_)
    - Config file (TOML), lowest precedence
    """

    # --- indexer ---
    network: Network = Network.SEPOLIA
    indexer_url: str | None = None
    indexer_api_key: SecretStr | None = None
    request_timeout: float = Field(default=15.0, gt=0)
    max_retries: int = Field(default=5, ge=1)

    # --- charting ---
    chart_samples: int = Field(
        default=DEFAULT_CHART_SAMPLES,
        ge=2,
        description="Number of points in the vesting schedule, both ends included.",
    )
    chart_padding_days: int = Field(default=DEFAULT_CHART_PADDING_DAYS, ge=0)

    # --- reporting ---
    strict: bool = False

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="STAK_METRICS_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("indexer_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> str:
        return str(v).upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Custom config-file source with explicit precedence: CLI > ENV > FILE."""
        env_cfg = os.environ.get("STAK_METRICS_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a JSON-safe dict with secrets redacted."""
        data = self.model_dump(mode="json")
        if self.indexer_api_key:
            data["indexer_api_key"] = "***redacted***"
        return data

    @property
    def endpoints(self) -> NetworkEndpoints:
        network_endpoints_map = {
            Network.SEPOLIA: SEPOLIA_ENDPOINTS,
            Network.MAINNET: MAINNET_ENDPOINTS,
            Network.BASE: BASE_ENDPOINTS,
        }
        return network_endpoints_map[self.network]

    @property
    def indexer_url_required(self) -> str:
        """Configured indexer URL, or the network default; raises if neither exists."""
        url = self.indexer_url or self.endpoints["indexer"]
        if url is None:
            raise ValueError(
                f"indexer_url must be configured for network {self.network.value}"
            )
        return url

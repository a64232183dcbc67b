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
    DEFAULT_COINBASE_ENDPOINT,
    DEFAULT_COINGECKO_ENDPOINT,
    DEFAULT_POLL_INTERVAL_SECONDS,
    NETWORKS,
    NetworkInfo,
)

load_dotenv()

SECRET_FIELDS = {"private_key", "coingecko_api_key"}


class Network(str, Enum):
    ETHEREUM = "ethereum"
    GNOSIS = "gnosis"
    POLYGON = "polygon"
    OPTIMISM = "optimism"
    ARBITRUM = "arbitrum"


class StakingSettings(BaseSettings):
    """Single source of truth for configuration. Values may come from:
    - CLI (init kwargs)
    - ENV / .env (prefixed with LP_STAKING_)
    - Config file (TOML), lowest precedence

    Do not read os.environ or files elsewhere in the codebase.
    """

    # --- network / contracts ---
    network: Network = Network.POLYGON
    rpc_url: str | None = None
    staking_rewards_address: str | None = None
    amm_address: str | None = None

    # --- account / signing ---
    account_address: str | None = None
    private_key: SecretStr | None = None

    # --- polling ---
    poll_interval_seconds: float = Field(default=DEFAULT_POLL_INTERVAL_SECONDS, gt=0)

    # --- prices ---
    staking_token_symbol: str | None = None
    reward_token_symbol: str | None = None
    price_cache_ttl_seconds: float = Field(default=300.0, ge=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    coingecko_endpoint: str = DEFAULT_COINGECKO_ENDPOINT
    coingecko_api_key: SecretStr | None = None
    coinbase_endpoint: str = DEFAULT_COINBASE_ENDPOINT

    # --- transactions ---
    tx_timeout_seconds: float = Field(default=300.0, gt=0)
    tx_poll_latency_seconds: float = Field(default=2.0, gt=0)

    # --- logging ---
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="LP_STAKING_",
        env_file=".env",
        extra="ignore",
    )

    @field_validator("private_key", "coingecko_api_key", mode="before")
    @classmethod
    def wrap_secrets(cls, v: Any) -> SecretStr | None:
        """Wrap string secrets in SecretStr."""
        if v is None or isinstance(v, SecretStr):
            return v
        return SecretStr(v)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

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
        env_cfg = os.environ.get("LP_STAKING_CONFIG")
        cfg_path = Path(env_cfg) if env_cfg else None

        class TomlConfigSource(PydanticBaseSettingsSource):
            def __init__(self, settings_cls: type[BaseSettings], path: Path | None):
                super().__init__(settings_cls)
                self._path = path

            def get_field_value(
                self, field: Any, field_name: str
            ) -> tuple[Any, str, bool]:
                return None, "", False

            def __call__(self) -> dict[str, Any]:
                if not self._path:
                    local_config = Path("lp-staking.toml")
                    user_config = Path.home() / ".config" / "lp-staking" / "config.toml"
                    if local_config.exists():
                        self._path = local_config
                    elif user_config.exists():
                        self._path = user_config
                    else:
                        return {}

                if not self._path.exists():
                    return {}

                with self._path.open("rb") as f:
                    data = tomllib.load(f)  # supports top-level or [lp_staking]
                body = data.get("lp_staking", data)
                if not isinstance(body, dict):
                    return {}

                for key in SECRET_FIELDS:
                    if key in body:
                        raise ValueError(
                            f"Security violation: '{key}' found in TOML config file. "
                            f"Secrets must only be provided via environment variables or CLI flags."
                        )

                return body

        return (
            init_settings,  # CLI (highest)
            env_settings,  # ENV
            dotenv_settings,  # .env
            TomlConfigSource(settings_cls, cfg_path),  # CONFIG (lowest)
            file_secret_settings,
        )

    def as_safe_dict(self) -> dict[str, Any]:
        """Return the config as a dict with secrets redacted."""
        data = self.model_dump(mode="json")
        for key in SECRET_FIELDS:
            if getattr(self, key):
                data[key] = "***redacted***"
        return data

    @property
    def network_info(self) -> NetworkInfo:
        return NETWORKS[self.network.value]

    @property
    def chain_id(self) -> int:
        return self.network_info["chain_id"]

    @property
    def effective_rpc_url(self) -> str:
        """The configured RPC URL, or the network default."""
        return self.rpc_url or self.network_info["rpc_url"]

    @property
    def effective_reward_token_symbol(self) -> str:
        return self.reward_token_symbol or self.network_info["reward_token_symbol"]

    @property
    def staking_rewards_address_required(self) -> str:
        """Get staking_rewards_address, raising ValueError if not set."""
        if self.staking_rewards_address is None:
            raise ValueError("staking_rewards_address must be configured")
        return self.staking_rewards_address

    @property
    def amm_address_required(self) -> str:
        """Get amm_address, raising ValueError if not set."""
        if self.amm_address is None:
            raise ValueError("amm_address must be configured")
        return self.amm_address

    @property
    def private_key_required(self) -> str:
        """Get the private key value, raising ValueError if not set."""
        if self.private_key is None:
            raise ValueError("private_key must be configured for write actions")
        return self.private_key.get_secret_value()

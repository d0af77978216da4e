"""
Runtime Configuration

Configuration for protocol parameters, network selection and fixture
data. A BridgeConfig is always passed explicitly to the entry points
that need it; nothing in the verification core reads the environment.
"""

from __future__ import annotations

import copy
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml
from dotenv import load_dotenv

from bridge_core.merkle.enabled_tree import is_power_of_two
from bridge_core.schemas.errors import ConfigException


ENV_PREFIX = "BRIDGE_"


@dataclass
class ProtocolParams:
    """Thresholds and circuit-facing bounds."""
    threshold_numerator: int = 2
    threshold_denominator: int = 3
    trust_numerator: int = 1
    trust_denominator: int = 3
    max_validator_set_size: int = 128
    commitment_capacity: int = 256
    max_message_bytes: int = 124

    def __post_init__(self) -> None:
        for name in ("threshold", "trust"):
            num = getattr(self, f"{name}_numerator")
            den = getattr(self, f"{name}_denominator")
            if den <= 0 or not 0 < num <= den:
                raise ConfigException(
                    f"Invalid {name} fraction {num}/{den}",
                    details={"numerator": num, "denominator": den},
                )
        for name in ("max_validator_set_size", "commitment_capacity"):
            if not is_power_of_two(getattr(self, name)):
                raise ConfigException(
                    f"{name} must be a power of two, got {getattr(self, name)}"
                )
        if self.max_message_bytes <= 0:
            raise ConfigException("max_message_bytes must be positive")


@dataclass
class NetworkConfig:
    """Chain the bridge follows. rpc_url is informational for the fetch layer."""
    name: str = "mocha-4"
    chain_id: str = "mocha-4"
    rpc_url: Optional[str] = None


@dataclass
class FixtureConfig:
    """Directory holding <height>/signed_block.json files."""
    path: str = "fixtures"


@dataclass
class BridgeConfig:
    """
    Complete configuration for the bridge tooling.

    Can be loaded from:
    - Environment variables (BRIDGE_*, with .env support)
    - YAML file
    - Programmatic construction
    """
    protocol: ProtocolParams = field(default_factory=ProtocolParams)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    fixtures: FixtureConfig = field(default_factory=FixtureConfig)
    log_level: str = "INFO"
    log_file: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @staticmethod
    def _get_env_overrides(environ: Optional[dict[str, str]] = None) -> dict[str, Any]:
        """
        Collect configuration overrides from environment variables.

        This is the SINGLE place environment variables are read.

        Supported variables:
        - BRIDGE_NETWORK: network name
        - BRIDGE_CHAIN_ID: expected chain id
        - BRIDGE_RPC_URL: RPC endpoint for the external fetch layer
        - BRIDGE_FIXTURE_PATH: fixture directory
        - BRIDGE_COMMITMENT_CAPACITY: data commitment leaf capacity
        - BRIDGE_MAX_VALIDATOR_SET_SIZE: validator slot bound
        - BRIDGE_LOG_LEVEL / BRIDGE_LOG_FILE: logging setup
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, Any] = {}

        def get(name: str) -> Optional[str]:
            return env.get(ENV_PREFIX + name) or None

        if get("NETWORK"):
            overrides.setdefault("network", {})["name"] = get("NETWORK")
        if get("CHAIN_ID"):
            overrides.setdefault("network", {})["chain_id"] = get("CHAIN_ID")
        if get("RPC_URL"):
            overrides.setdefault("network", {})["rpc_url"] = get("RPC_URL")

        if get("FIXTURE_PATH"):
            overrides.setdefault("fixtures", {})["path"] = get("FIXTURE_PATH")

        for name, key in (
            ("COMMITMENT_CAPACITY", "commitment_capacity"),
            ("MAX_VALIDATOR_SET_SIZE", "max_validator_set_size"),
        ):
            raw = get(name)
            if raw:
                try:
                    overrides.setdefault("protocol", {})[key] = int(raw)
                except ValueError as e:
                    raise ConfigException(
                        f"{ENV_PREFIX}{name} must be an integer, got {raw!r}"
                    ) from e

        if get("LOG_LEVEL"):
            overrides["log_level"] = get("LOG_LEVEL")
        if get("LOG_FILE"):
            overrides["log_file"] = get("LOG_FILE")

        return overrides

    @classmethod
    def from_env(cls, dotenv_path: str | Path | None = None) -> "BridgeConfig":
        """
        Load configuration from environment variables (after reading .env).

        Uses defaults for any values not specified.
        """
        load_dotenv(dotenv_path)
        return cls.from_dict(cls._get_env_overrides())

    @classmethod
    def from_yaml(cls, path: str | Path) -> "BridgeConfig":
        """Load configuration from a YAML file."""
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")

        with open(path) as f:
            data = yaml.safe_load(f)

        return cls.from_dict(data or {})

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BridgeConfig":
        """Load configuration from a dictionary (supports partial data)."""
        try:
            protocol = ProtocolParams(**data.get("protocol", {}))
            network = NetworkConfig(**data.get("network", {}))
            fixtures = FixtureConfig(**data.get("fixtures", {}))
        except TypeError as e:
            raise ConfigException(f"Unknown configuration key: {e}") from e

        return cls(
            protocol=protocol,
            network=network,
            fixtures=fixtures,
            log_level=data.get("log_level", "INFO"),
            log_file=data.get("log_file"),
            extra=data.get("extra", {}),
        )

    def with_env_overrides(self, environ: Optional[dict[str, str]] = None) -> "BridgeConfig":
        """
        Return a new config with environment variable overrides applied.

        This allows loading from a config file first, then overlaying env vars.
        """
        overrides = self._get_env_overrides(environ)
        if not overrides:
            return self

        new_config = copy.deepcopy(self)
        for section in ("protocol", "network", "fixtures"):
            for key, value in overrides.get(section, {}).items():
                setattr(getattr(new_config, section), key, value)
        if "protocol" in overrides:
            # re-run validation on the merged values
            new_config.protocol = ProtocolParams(**asdict(new_config.protocol))
        if "log_level" in overrides:
            new_config.log_level = overrides["log_level"]
        if "log_file" in overrides:
            new_config.log_file = overrides["log_file"]
        return new_config

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to a dictionary."""
        return {
            "protocol": asdict(self.protocol),
            "network": asdict(self.network),
            "fixtures": asdict(self.fixtures),
            "log_level": self.log_level,
            "log_file": self.log_file,
            "extra": self.extra,
        }

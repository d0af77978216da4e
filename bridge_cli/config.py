"""
CLI Configuration

Resolves the BridgeConfig the CLI runs with. Precedence, lowest first:
defaults, YAML file, environment (BRIDGE_*, .env included), command-line
flags.
"""

from __future__ import annotations

from pathlib import Path

from bridge_core.config.runtime import BridgeConfig


DEFAULT_CONFIG_PATHS = (
    Path("bridge.yaml"),
    Path(".bridge.yaml"),
)


def find_config_file(config_path: Path | None = None) -> Path | None:
    """Explicit path if given, else the first default location that exists."""
    if config_path is not None:
        return config_path
    for candidate in DEFAULT_CONFIG_PATHS:
        path = Path.cwd() / candidate
        if path.exists():
            return path
    return None


def load_config(config_path: Path | None = None) -> BridgeConfig:
    """
    Load configuration from file and/or environment.

    Environment variables override file settings.

    Raises:
        FileNotFoundError: An explicit config path does not exist
        ConfigException: A value is invalid
    """
    # from_env reads .env into the process environment first
    config = BridgeConfig.from_env()
    path = find_config_file(config_path)
    if path is not None:
        config = BridgeConfig.from_yaml(path).with_env_overrides()
    return config


def get_default_config_template() -> str:
    return """\
# Tendermint bridge configuration
network:
  name: mocha-4
  chain_id: mocha-4
fixtures:
  path: fixtures
protocol:
  threshold_numerator: 2
  threshold_denominator: 3
  trust_numerator: 1
  trust_denominator: 3
  max_validator_set_size: 128
  commitment_capacity: 256
  max_message_bytes: 124
log_level: INFO
"""

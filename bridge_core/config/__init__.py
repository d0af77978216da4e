"""
Runtime Configuration Module

Provides configuration loading and management for the bridge tooling.
"""

from .runtime import BridgeConfig, FixtureConfig, NetworkConfig, ProtocolParams

__all__ = [
    "BridgeConfig",
    "FixtureConfig",
    "NetworkConfig",
    "ProtocolParams",
]

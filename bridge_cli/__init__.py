"""
Tendermint Bridge CLI

Command-line interface for the bridge verification core.

Usage:
    python -m bridge_cli step --trusted 11000 --target 11001
    python -m bridge_cli skip --trusted 11000 --target 11010
    python -m bridge_cli commitment --start 11000 --end 11004
    python -m bridge_cli validator-hash --height 11000
"""

__version__ = "0.1.0"

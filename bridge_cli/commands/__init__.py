"""
CLI Commands

Each command module exposes *_cmd functions that take parsed arguments
and return an exit code.
"""

from bridge_cli.commands import prove, validators

__all__ = ["prove", "validators"]

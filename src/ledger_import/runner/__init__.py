"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- check: Validate config and test the ledger connection
- review: Flag duplicates and suggest accounts
- import: Stage, map and post to the ledger
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]

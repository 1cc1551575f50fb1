# SPDX-License-Identifier: MIT
"""CLI command implementations."""

from . import pack, ls, validate, inspect

__all__ = ["pack", "ls", "validate", "inspect"]

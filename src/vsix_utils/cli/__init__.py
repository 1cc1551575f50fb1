# SPDX-License-Identifier: MIT
"""Command line interface for packaging VS Code extensions."""

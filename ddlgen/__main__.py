# File: ddlgen/__main__.py
"""
ddlgen — Module entry point.

Allows running the generator directly via::

    python -m ddlgen --schema schema.sql --output ./generated_models

This module simply delegates to the CLI entry point defined in ``ddlgen.cli``.
"""

from __future__ import annotations


def main() -> None:
    """Delegate to the CLI main function."""
    from ddlgen.cli import cli_main
    cli_main()


if __name__ == "__main__":
    main()

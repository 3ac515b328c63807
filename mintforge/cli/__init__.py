"""Mintforge CLI — Typer-based command-line interface.

Provides the ``mintforge`` command with subcommands for key generation,
funding a local wallet, creating Factories and Products, and reading
Product state back.

All output uses Rich for formatted terminal display.
"""

"""Indigoforge CLI: Typer-based command-line interface.

Provides the ``indigoforge`` command with subcommands for previewing,
executing, and inspecting blueprint builds, and for storing location
credentials.

All output uses Rich for formatted terminal display.
"""

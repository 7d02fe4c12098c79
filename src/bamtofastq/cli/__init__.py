"""Command line interface for bamtofastq."""

from bamtofastq.cli.main import cli, main

__all__ = ["cli", "main"]

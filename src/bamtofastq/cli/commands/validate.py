"""Installation validation command."""

from __future__ import annotations

import sys

import click

from bamtofastq import __version__
from bamtofastq.cli.exit_codes import EXIT_ERROR


@click.command()
@click.option(
    "--skip-read-qc",
    is_flag=True,
    help="Do not require FastQC",
)
@click.option(
    "--skip-all-stats",
    is_flag=True,
    help="Do not require FastQC or MultiQC",
)
def validate(skip_read_qc: bool, skip_all_stats: bool) -> None:
    """Validate the bamtofastq installation and its external tools."""
    from bamtofastq.utils.dependency_checker import DependencyChecker

    click.echo("Validating bamtofastq installation...")
    skip = set()
    if skip_read_qc or skip_all_stats:
        skip.add("fastqc")
    if skip_all_stats:
        skip.add("multiqc")

    checker = DependencyChecker()
    ok = checker.check_all(skip_tools=skip)
    click.echo(checker.format_report())

    if not ok:
        sys.exit(EXIT_ERROR)
    click.echo(f"  bamtofastq version: {__version__}")

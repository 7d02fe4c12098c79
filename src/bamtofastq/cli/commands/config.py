"""Configuration-related CLI commands."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from bamtofastq.cli.exit_codes import EXIT_USAGE


@click.command(name="init-config")
@click.option(
    "--output-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=Path("config.yaml"),
    help="Where to write the run configuration (BAM inputs, regions, stage skips, e-mail)",
)
@click.option(
    "--stdout",
    is_flag=True,
    help="Print the configuration template to stdout instead of writing a file",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite an existing configuration file",
)
def init_config(output_file: Path, stdout: bool, force: bool) -> None:
    """Write a bamtofastq run configuration template.

    The template lists every setting with its default: the BAM inputs, the
    region filter, collation mode, stage skips, e-mail recipients and the
    runtime, performance and execution sections.
    """
    from bamtofastq.resources import get_default_config

    config_text = get_default_config()
    if stdout:
        click.echo(config_text)
        return

    if output_file.exists() and not force:
        click.echo(
            f"Error: {output_file} already exists; use --force to overwrite it",
            err=True,
        )
        sys.exit(EXIT_USAGE)

    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(config_text)
    click.echo(f"Run configuration template saved to: {output_file}")
    click.echo("List your BAM files under 'inputs:' (globs allowed), then run:")
    click.echo(f"  bamtofastq -c {output_file}")

"""Click application entrypoint for bamtofastq."""

from __future__ import annotations

import signal
import sys
from pathlib import Path
from types import FrameType
from typing import Optional

import click

from bamtofastq import __version__
from bamtofastq.cli.exit_codes import (
    EXIT_ERROR,
    EXIT_SIGINT,
    EXIT_SIGTERM,
    EXIT_SUCCESS,
)
from bamtofastq.exceptions import BamToFastqError
from bamtofastq.utils.logging import get_logger, level_from_verbosity, setup_logging

from .commands.config import init_config
from .commands.validate import validate
from .common_options import (
    config_option,
    conversion_options,
    input_option,
    keep_tmp_option,
    log_file_option,
    max_workers_option,
    notification_options,
    output_option,
    profile_option,
    region_option,
    threads_option,
    verbose_option,
)
from .pipeline import PipelineOptions, execute_pipeline


class Interrupted(KeyboardInterrupt):
    """KeyboardInterrupt carrying the exit code of the signal that caused it."""

    def __init__(self, exit_code: int, message: str = ""):
        super().__init__(message)
        self.exit_code = exit_code


def _handle_signal(signum: int, frame: Optional[FrameType]) -> None:
    """Handle interrupt signals for graceful shutdown."""
    sig_name = "SIGINT" if signum == signal.SIGINT else "SIGTERM"
    click.echo(f"\n{sig_name} received, initiating graceful shutdown...", err=True)
    exit_code = EXIT_SIGINT if signum == signal.SIGINT else EXIT_SIGTERM
    raise Interrupted(exit_code, f"{sig_name} received")


def _print_version(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
    if value and not ctx.resilient_parsing:
        click.echo(f"bamtofastq {__version__}")
        ctx.exit()


@click.group(
    context_settings=dict(help_option_names=["-h", "--help"]),
    invoke_without_command=True,
)
# Version option (use -V to avoid conflict with -v/--verbose)
@click.option(
    "-V",
    "--version",
    is_flag=True,
    is_eager=True,
    expose_value=False,
    callback=_print_version,
    help="Show the version and exit.",
)
@input_option
@output_option
@config_option
@threads_option
@max_workers_option
@region_option
@conversion_options
@notification_options
@profile_option
@keep_tmp_option
@click.option(
    "--allow-sample-failures",
    is_flag=True,
    help="Exit 0 even if some samples failed",
)
@verbose_option
@log_file_option
@click.option("--dry-run", is_flag=True, help="Show actions without executing")
@click.option("--show-steps", is_flag=True, help="Show pipeline steps and exit")
@click.pass_context
def cli(
    ctx: click.Context,
    inputs: tuple[str, ...],
    output: Optional[Path],
    config: Optional[Path],
    threads: Optional[int],
    max_workers: Optional[int],
    regions: tuple[str, ...],
    index_provided: bool,
    collate_fast: bool,
    reads_in_memory: Optional[int],
    skip_read_qc: bool,
    skip_all_stats: bool,
    email: tuple[str, ...],
    email_on_fail: tuple[str, ...],
    profile: Optional[str],
    keep_tmp: bool,
    allow_sample_failures: bool,
    verbose: int,
    log_file: Optional[Path],
    dry_run: bool,
    show_steps: bool,
) -> None:
    """bamtofastq: convert BAM files to FASTQ, keeping mates paired.

    Run directly as: bamtofastq -i <sample.bam> [-i <other.bam>] [options]
    """
    # If a subcommand was invoked, do not run the pipeline here
    if ctx.invoked_subcommand:
        return

    setup_logging(level=level_from_verbosity(verbose), log_file=log_file)
    logger = get_logger("cli")

    opts = PipelineOptions(
        inputs=inputs,
        output=output,
        config_path=config,
        threads=threads,
        max_workers=max_workers,
        regions=regions,
        index_provided=index_provided,
        collate_fast=collate_fast,
        reads_in_memory=reads_in_memory,
        skip_read_qc=skip_read_qc,
        skip_all_stats=skip_all_stats,
        email=email,
        email_on_fail=email_on_fail,
        profile=profile,
        keep_tmp=keep_tmp,
        allow_sample_failures=allow_sample_failures,
        show_steps=show_steps,
        dry_run=dry_run,
        log_file=log_file,
        verbose=verbose,
    )

    try:
        exit_code = execute_pipeline(opts, logger)
    except Interrupted as exc:
        logger.info("Pipeline interrupted")
        sys.exit(exc.exit_code)
    except KeyboardInterrupt:
        logger.info("Pipeline interrupted by user")
        sys.exit(EXIT_SIGINT)
    except BamToFastqError as exc:
        logger.error(f"Pipeline error: {exc}")
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)
    except Exception as exc:
        logger.exception(f"Unexpected error: {exc}")
        sys.exit(EXIT_ERROR)

    sys.exit(exit_code)


cli.add_command(init_config)
cli.add_command(validate)


def main(argv: list[str] | None = None) -> int:
    """Main entry point with signal handling."""
    signal.signal(signal.SIGINT, _handle_signal)
    signal.signal(signal.SIGTERM, _handle_signal)

    try:
        cli(argv)
        return EXIT_SUCCESS
    except Interrupted as exc:
        return exc.exit_code
    except KeyboardInterrupt:
        return EXIT_SIGINT
    except SystemExit as exc:
        # Preserve explicit exit codes from cli()
        if exc.code is None:
            return EXIT_SUCCESS
        return exc.code if isinstance(exc.code, int) else EXIT_ERROR
    except Exception as exc:
        click.echo(f"Error: {exc}", err=True)
        return EXIT_ERROR


if __name__ == "__main__":
    sys.exit(main())

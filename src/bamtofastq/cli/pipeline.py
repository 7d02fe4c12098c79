"""Shared pipeline execution helpers for the CLI."""

from __future__ import annotations

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Tuple

import click

from bamtofastq.cli.exit_codes import EXIT_ERROR, EXIT_SUCCESS
from bamtofastq.config import Config, load_config, save_config
from bamtofastq.exceptions import ConfigurationError
from bamtofastq.utils.logging import setup_logging

LEVEL_MAP = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
}


@dataclass
class PipelineOptions:
    """Container for pipeline execution options.

    `None` (or an empty tuple / False flag) means "not given on the command
    line": the config file value or the default applies.
    """

    inputs: Tuple[str, ...] = ()
    output: Optional[Path] = None
    config_path: Optional[Path] = None
    threads: Optional[int] = None
    max_workers: Optional[int] = None
    regions: Tuple[str, ...] = ()
    index_provided: bool = False
    collate_fast: bool = False
    reads_in_memory: Optional[int] = None
    skip_read_qc: bool = False
    skip_all_stats: bool = False
    email: Tuple[str, ...] = ()
    email_on_fail: Tuple[str, ...] = ()
    profile: Optional[str] = None
    keep_tmp: bool = False
    allow_sample_failures: bool = False
    show_steps: bool = False
    dry_run: bool = False
    log_file: Optional[Path] = None
    verbose: int = 0
    command_line: str = field(default_factory=lambda: " ".join(sys.argv))


def show_pipeline_steps() -> None:
    """Show pipeline steps without creating directories."""
    from bamtofastq.core.pipeline import Pipeline

    click.echo("\nbamtofastq per-sample steps:")
    click.echo("-" * 60)
    for line in Pipeline.describe_steps():
        click.echo(f"  {line}")
    click.echo("-" * 60)
    click.echo(f"Total: {len(Pipeline.STEPS)} steps\n")


def build_config(opts: PipelineOptions) -> Config:
    """Resolve the effective configuration: CLI > config file > default."""
    cfg = load_config(opts.config_path) if opts.config_path else Config()

    if opts.inputs:
        cfg.inputs = list(opts.inputs)
    if opts.output is not None:
        cfg.output_dir = opts.output
    if opts.threads is not None:
        cfg.threads = opts.threads
    if opts.max_workers is not None:
        cfg.performance.max_workers = opts.max_workers
    if opts.regions:
        cfg.regions = list(opts.regions)
    if opts.reads_in_memory is not None:
        cfg.reads_in_memory = opts.reads_in_memory
    if opts.email:
        cfg.email = list(opts.email)
    if opts.email_on_fail:
        cfg.email_on_fail = list(opts.email_on_fail)
    if opts.profile is not None:
        cfg.execution.profile = opts.profile
    if opts.log_file is not None:
        cfg.runtime.log_file = opts.log_file

    # Flags only switch features on; the config file may already have done so
    for flag in ("index_provided", "collate_fast", "skip_read_qc", "skip_all_stats"):
        if getattr(opts, flag):
            setattr(cfg, flag, True)
    if opts.keep_tmp:
        cfg.keep_tmp = True
    if opts.allow_sample_failures:
        cfg.runtime.allow_sample_failures = True
    return cfg


def _configure_logging(opts: PipelineOptions, cfg: Config) -> None:
    # CLI verbosity wins; otherwise the config file's log level applies
    if opts.verbose:
        return
    level = LEVEL_MAP.get(str(cfg.runtime.log_level).upper(), logging.WARNING)
    setup_logging(level=level, log_file=cfg.runtime.log_file)


def execute_pipeline(opts: PipelineOptions, logger: logging.Logger) -> int:
    """Execute the pipeline with given options and return the exit code."""
    if opts.show_steps:
        show_pipeline_steps()
        return EXIT_SUCCESS

    cfg = build_config(opts)
    _configure_logging(opts, cfg)

    if not cfg.inputs:
        click.echo("Error: at least one --input BAM (or `inputs:` in the config) is required", err=True)
        click.echo("Use --show-steps to see pipeline steps without running", err=True)
        return EXIT_ERROR

    try:
        cfg.validate()
    except ConfigurationError as exc:
        click.echo(f"Error: {exc}", err=True)
        return EXIT_ERROR

    if opts.dry_run:
        from bamtofastq.core.sample import discover_samples

        samples = discover_samples(cfg)
        logger.info("Dry run mode - showing what would be executed:")
        show_pipeline_steps()
        click.echo(f"Would process {len(samples)} sample(s):")
        for sample in samples:
            label = sample.derive(cfg.regions).output_name
            click.echo(f"  - {sample.name}: {sample.bam} -> {label}")
        click.echo(f"Output to: {Path(cfg.output_dir).absolute()}")
        click.echo(f"Profile: {cfg.execution.profile}")
        click.echo(
            f"Using {cfg.performance.tool_threads} threads per tool, "
            f"{cfg.performance.max_workers} sample(s) at a time"
        )
        return EXIT_SUCCESS

    from bamtofastq.core.pipeline import Pipeline

    pipeline = Pipeline(cfg, command_line=opts.command_line)
    try:
        save_config(cfg, cfg.pipeline_info_dir / "config.yaml")
    except OSError as exc:
        logger.warning(f"Could not save config: {exc}")

    outcome = pipeline.run()

    click.echo(
        f"Processed {len(outcome.results)} sample(s): "
        f"{len(outcome.succeeded)} succeeded, {len(outcome.failed)} failed"
    )
    for result in outcome.failed:
        click.echo(f"  ✗ {result.name} failed at {result.failed_stage}: {result.error}", err=True)
    click.echo(f"Reads written to: {cfg.reads_dir}")

    if outcome.failed and not cfg.runtime.allow_sample_failures:
        return EXIT_ERROR
    return EXIT_SUCCESS

"""Shared Click options for the bamtofastq CLI."""

from __future__ import annotations

from pathlib import Path
from typing import Callable, TypeVar

import click

from bamtofastq.config import KNOWN_PROFILES

F = TypeVar("F", bound=Callable[..., None])


def input_option(func: F) -> F:
    """Input BAM files or glob patterns."""
    return click.option(
        "-i",
        "--input",
        "inputs",
        multiple=True,
        help="Input BAM file or glob pattern (repeatable)",
    )(func)


def output_option(func: F) -> F:
    """Output directory option."""
    return click.option(
        "-o",
        "--output",
        type=click.Path(path_type=Path),
        default=None,
        help="Output directory [default: results]",
    )(func)


def config_option(func: F) -> F:
    """Configuration file option."""
    return click.option(
        "-c",
        "--config",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        help="Configuration file (YAML)",
    )(func)


def threads_option(func: F) -> F:
    """Threads per tool invocation."""
    return click.option(
        "-t",
        "--threads",
        type=click.IntRange(min=1),
        default=None,
        help="Threads per tool invocation [default: 4]",
    )(func)


def max_workers_option(func: F) -> F:
    """Samples processed concurrently."""
    return click.option(
        "-j",
        "--max-workers",
        type=click.IntRange(min=1),
        default=None,
        help="Samples processed concurrently [default: 2]",
    )(func)


def region_option(func: F) -> F:
    """Region restriction."""
    return click.option(
        "--region",
        "regions",
        multiple=True,
        help="Only convert records in this region, e.g. chr1 or chr1:100-200 (repeatable)",
    )(func)


def conversion_options(func: F) -> F:
    """Index, collate and skip flags."""
    decorators = [
        click.option(
            "--index-provided",
            is_flag=True,
            help="Use existing .bai files instead of indexing",
        ),
        click.option(
            "--collate-fast",
            is_flag=True,
            help="Use samtools collate fast mode",
        ),
        click.option(
            "--reads-in-memory",
            type=click.IntRange(min=1),
            default=None,
            help="Records kept in memory in fast collate mode [default: 100000]",
        ),
        click.option(
            "--skip-read-qc",
            is_flag=True,
            help="Do not run FastQC on the output reads",
        ),
        click.option(
            "--skip-all-stats",
            is_flag=True,
            help="Skip samtools statistics, FastQC and MultiQC",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def notification_options(func: F) -> F:
    """Completion e-mail recipients."""
    func = click.option(
        "--email-on-fail",
        multiple=True,
        help="E-mail the completion report only when a sample failed (repeatable)",
    )(func)
    func = click.option(
        "--email",
        multiple=True,
        help="E-mail the completion report (repeatable)",
    )(func)
    return func


def profile_option(func: F) -> F:
    """Execution profile."""
    return click.option(
        "--profile",
        type=click.Choice(list(KNOWN_PROFILES)),
        default=None,
        help="Execution profile [default: local]",
    )(func)


def keep_tmp_option(func: F) -> F:
    """Keep temporary files option."""
    return click.option(
        "--keep-tmp",
        is_flag=True,
        help="Retain temporary working directory (default: remove)",
    )(func)


def verbose_option(func: F) -> F:
    """Verbosity option."""
    return click.option(
        "-v",
        "--verbose",
        count=True,
        help="Increase log verbosity (-v for INFO, -vv for DEBUG)",
    )(func)


def log_file_option(func: F) -> F:
    """Log file option."""
    return click.option(
        "--log-file",
        type=click.Path(path_type=Path),
        help="Path for log file output",
    )(func)

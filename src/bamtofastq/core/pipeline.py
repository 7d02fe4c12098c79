"""Main pipeline orchestrator for bamtofastq."""

from __future__ import annotations

import os
import platform
import shutil
import socket
import sys
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence

import pandas as pd
import pysam
import yaml

from bamtofastq.__version__ import __version__
from bamtofastq.config import Config
from bamtofastq.core.joiner import ReadSetJoiner
from bamtofastq.core.notification import (
    Notifier,
    render_completion_report,
    write_completion_report,
)
from bamtofastq.core.pipeline_types import (
    PipelineStep,
    RunSummary,
    SampleResult,
    SampleState,
    StageContext,
)
from bamtofastq.core.qc import ReportAggregator
from bamtofastq.core.sample import Sample, discover_samples
from bamtofastq.core.steps.definitions import SAMPLE_STEPS
from bamtofastq.core.steps.sample_steps import EXECUTORS
from bamtofastq.exceptions import BamToFastqError, ExternalToolError, PipelineError
from bamtofastq.external import FastQC, MultiQC, Samtools, Sendmail
from bamtofastq.utils.dependency_checker import DependencyChecker
from bamtofastq.utils.logging import LogTemplates, get_logger
from bamtofastq.utils.progress import iter_progress

RUN_SUMMARY_FILE = "run_summary.yaml"
RUN_REPORT_FILE = "run_report.tsv"
REPORT_COLUMNS = [
    "sample",
    "output_name",
    "status",
    "layout",
    "paired_ratio",
    "outputs",
    "failed_stage",
    "error",
    "duration_s",
    "dropped_records",
]


@dataclass
class Toolbox:
    """External tool capabilities handed to the stages."""

    samtools: Samtools
    fastqc: Optional[FastQC] = None
    multiqc: Optional[MultiQC] = None
    sendmail: Optional[Sendmail] = None

    @classmethod
    def from_config(cls, config: Config) -> "Toolbox":
        """Check dependencies and build the wrappers this run needs.

        Raises:
            DependencyError: if a required tool is missing.
        """
        logger = get_logger("Toolbox")
        skip: set[str] = set()
        if config.skip_read_qc_effective:
            skip.add("fastqc")
        if config.skip_all_stats:
            skip.add("multiqc")
        wants_mail = bool(config.email or config.email_on_fail)
        if not wants_mail:
            skip.add("sendmail")

        checker = DependencyChecker(logger=logger.getChild("dependency_checker"))
        if not checker.check_all(skip_tools=skip):
            logger.error(checker.format_report())
        checker.raise_if_missing_required()

        threads = config.performance.tool_threads
        timeout = config.performance.max_time
        sendmail = None
        if wants_mail:
            try:
                sendmail = Sendmail(timeout=60)
            except ExternalToolError as exc:
                logger.warning(f"E-mail notification disabled: {exc}")

        return cls(
            samtools=Samtools(threads=threads, timeout=timeout),
            fastqc=None if "fastqc" in skip else FastQC(threads=threads, timeout=timeout),
            multiqc=None if "multiqc" in skip else MultiQC(timeout=timeout),
            sendmail=sendmail,
        )

    def versions(self) -> dict[str, Optional[str]]:
        """Collect versions of every available tool plus the Python stack."""
        versions: dict[str, Optional[str]] = {
            "bamtofastq": __version__,
            "python": platform.python_version(),
            "pysam": pysam.__version__,
        }
        for tool in (self.samtools, self.fastqc, self.multiqc):
            if tool is not None:
                versions[tool.tool_name] = tool.get_tool_version(tool.tool_name)
        return versions


@dataclass
class RunOutcome:
    """Results of a complete run."""

    summary: RunSummary
    results: list[SampleResult] = field(default_factory=list)
    report_text: str = ""
    multiqc_report: Optional[Path] = None

    @property
    def succeeded(self) -> list[SampleResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failed(self) -> list[SampleResult]:
        return [r for r in self.results if not r.succeeded]


class SampleRunner:
    """Run the per-sample step chain for one sample.

    A failing step stops the rest of this sample's chain and is recorded in
    the returned `SampleResult`; it never raises to the caller.
    """

    STEPS = SAMPLE_STEPS

    def __init__(
        self,
        sample: Sample,
        context: StageContext,
        tools: Toolbox,
        joiner: ReadSetJoiner,
    ):
        self.context = context
        self.tools = tools
        self.joiner = joiner
        self.state = SampleState(sample=sample)
        self.logger = get_logger(f"Pipeline.{sample.name}")
        self.work_dir = context.sample_work_dir(sample)

    def run(self) -> SampleResult:
        name = self.state.sample.name
        self.work_dir.mkdir(parents=True, exist_ok=True)

        for step in self.STEPS:
            if not step.applies_to(self.state.layout):
                continue
            if step.skip_condition and getattr(self.context, step.skip_condition, False):
                self.state.skipped_steps.append(step.name)
                self.logger.debug(
                    LogTemplates.STAGE_SKIPPED.format(
                        sample=name, stage_name=step.name, reason=step.skip_condition
                    )
                )
                continue

            self.state.current_step = step.name
            self.logger.info(LogTemplates.STAGE_START.format(sample=name, stage_name=step.name))
            step_start = time.time()
            try:
                self._execute_step(step)
            except (BamToFastqError, OSError, ValueError) as exc:
                self.logger.error(
                    LogTemplates.STAGE_FAILURE.format(sample=name, stage_name=step.name, error=exc)
                )
                if isinstance(exc, ExternalToolError) and exc.stderr:
                    self.logger.error(f"[{name}] stderr: {exc.stderr.strip()[:1000]}")
                return SampleResult.from_state(
                    self.state, failed_stage=step.name, error=str(exc) or type(exc).__name__
                )

            self.state.completed_steps.append(step.name)
            self.state.current_step = None
            self.logger.info(
                LogTemplates.STAGE_SUCCESS.format(
                    sample=name, stage_name=step.name, duration=time.time() - step_start
                )
            )

        return SampleResult.from_state(self.state)

    def _execute_step(self, step: PipelineStep) -> None:
        executor = EXECUTORS.get(step.name)
        if executor is None:
            raise PipelineError(f"Step implementation not found: {step.name}")
        executor(self)


class Pipeline:
    """Process every input sample concurrently and write the run reports."""

    STEPS = SAMPLE_STEPS

    def __init__(
        self,
        config: Config,
        tools: Optional[Toolbox] = None,
        command_line: Optional[str] = None,
    ):
        self.config = config
        self.logger = get_logger(self.__class__.__name__)
        self._tools = tools
        self.command_line = command_line or " ".join(sys.argv)

        self.final_output_dir = Path(config.output_dir)
        configured_tmp = Path(config.runtime.tmp_dir or ".tmp_work")
        if configured_tmp.is_absolute():
            self.temp_dir = configured_tmp
            # Absolute temp directories are never auto-deleted
            self._temp_dir_safe_to_delete = False
        else:
            self.temp_dir = self.final_output_dir / configured_tmp
            self._temp_dir_safe_to_delete = True

        self.context = StageContext(
            work_dir=self.temp_dir,
            reads_dir=config.reads_dir,
            reports_dir=config.reports_dir,
            regions=tuple(config.regions),
            index_provided=config.index_provided,
            collate_fast=config.collate_fast,
            reads_in_memory=config.reads_in_memory,
            skip_read_qc=config.skip_read_qc_effective,
            skip_all_stats=config.skip_all_stats,
            max_memory=config.performance.max_memory,
            fastqc_args=tuple(str(a) for a in config.tools.fastqc.get("extra_args") or ()),
        )
        self.joiner = ReadSetJoiner(config.reads_dir, logger=self.logger.getChild("joiner"))

    @property
    def tools(self) -> Toolbox:
        if self._tools is None:
            self._tools = Toolbox.from_config(self.config)
        return self._tools

    @classmethod
    def describe_steps(cls) -> list[str]:
        """One line per step, for --show-steps and --dry-run."""
        width = max(len(step.name) for step in cls.STEPS)
        lines = []
        for i, step in enumerate(cls.STEPS, 1):
            route = f" ({step.layout.value}-end only)" if step.layout else ""
            lines.append(f"{i:2d}. {step.name:<{width}} - {step.description}{route}")
        return lines

    def build_summary(self) -> RunSummary:
        started = datetime.now()
        return RunSummary(
            run_name=f"bamtofastq_{started:%Y%m%d_%H%M%S}",
            started=started.isoformat(timespec="seconds"),
            command_line=self.command_line,
            version=__version__,
            output_dir=str(self.final_output_dir),
            profile=self.config.execution.profile,
            config=self.config.to_dict(),
            environment={
                "hostname": socket.gethostname(),
                "user": os.environ.get("USER", ""),
                "platform": platform.platform(),
                "python": sys.version.split()[0],
                "cwd": os.getcwd(),
            },
            software_versions=self.tools.versions(),
        )

    def run(self) -> RunOutcome:
        """Run every sample, then aggregate reports, write summaries and notify.

        Raises:
            ConfigurationError: on input discovery problems.
            DependencyError: if a required tool is missing.
            PipelineError: if the execution profile cannot run locally.
        """
        if self.config.is_cloud_profile:
            raise PipelineError(
                f"The '{self.config.execution.profile}' profile is validated only; "
                "submit the run through your batch scheduler or use --dry-run"
            )

        samples = discover_samples(self.config)
        summary = self.build_summary()
        self.final_output_dir.mkdir(parents=True, exist_ok=True)
        self.temp_dir.mkdir(parents=True, exist_ok=True)

        self.logger.info(
            f"Processing {len(samples)} sample(s) with up to "
            f"{self.config.performance.max_workers} worker(s)"
        )
        results = self._run_samples(samples)
        outcome = RunOutcome(summary=summary, results=results)

        if not self.config.skip_all_stats and self.tools.multiqc is not None:
            outcome.multiqc_report = self._aggregate_reports(summary)

        self._write_run_summary(summary)
        self._write_run_report(results)
        outcome.report_text = render_completion_report(summary, results)
        write_completion_report(outcome.report_text, self.config.pipeline_info_dir)

        Notifier(
            self.tools.sendmail,
            email=self.config.email,
            email_on_fail=self.config.email_on_fail,
            logger=self.logger.getChild("notifier"),
        ).notify(summary, outcome.report_text, failed=bool(outcome.failed))

        self._finalize(failed=bool(outcome.failed))
        return outcome

    def _run_samples(self, samples: Sequence[Sample]) -> list[SampleResult]:
        results: dict[str, SampleResult] = {}
        tools = self.tools
        with ThreadPoolExecutor(max_workers=self.config.performance.max_workers) as executor:
            futures = {
                executor.submit(
                    SampleRunner(sample, self.context, tools, self.joiner).run
                ): sample
                for sample in samples
            }
            for future in iter_progress(
                as_completed(futures),
                total=len(futures),
                desc="Samples",
                enabled=self.config.runtime.enable_progress,
            ):
                sample = futures[future]
                result = future.result()
                results[sample.name] = result
                if result.succeeded:
                    self.logger.info(f"[{sample.name}] Done ({result.duration:.1f}s)")
                else:
                    self.logger.error(
                        f"[{sample.name}] Failed at {result.failed_stage}: {result.error}"
                    )

        # Report in input order
        return [results[sample.name] for sample in samples]

    def _aggregate_reports(self, summary: RunSummary) -> Optional[Path]:
        aggregator = ReportAggregator(
            self.tools.multiqc,
            title=self.config.tools.multiqc.get("title"),
            logger=self.logger.getChild("multiqc"),
        )
        try:
            return aggregator.run(self.config.reports_dir, versions=summary.software_versions)
        except ExternalToolError as exc:
            self.logger.error(f"Report aggregation failed: {exc}")
            return None

    def _write_run_summary(self, summary: RunSummary) -> Path:
        path = self.config.pipeline_info_dir / RUN_SUMMARY_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as handle:
            yaml.safe_dump(summary.to_dict(), handle, default_flow_style=False, sort_keys=False)
        return path

    def _write_run_report(self, results: Sequence[SampleResult]) -> Path:
        path = self.config.pipeline_info_dir / RUN_REPORT_FILE
        path.parent.mkdir(parents=True, exist_ok=True)
        frame = pd.DataFrame([r.to_row() for r in results], columns=REPORT_COLUMNS)
        frame.to_csv(path, sep="\t", index=False)
        return path

    def _finalize(self, failed: bool) -> None:
        """Remove the temporary work directory unless it is kept."""
        if self.config.keep_tmp:
            self.logger.info(f"Temporary files retained in: {self.temp_dir}")
            return
        if failed:
            self.logger.info(f"Sample failures; temporary files retained in: {self.temp_dir}")
            return
        if not self._temp_dir_safe_to_delete:
            self.logger.info(
                f"Temporary files in absolute path retained for safety: {self.temp_dir}"
            )
            return

        self.logger.info(f"Cleaning up temporary directory: {self.temp_dir}")
        try:
            shutil.rmtree(self.temp_dir)
        except OSError as exc:
            self.logger.warning(f"Could not completely remove temp directory: {exc}")

"""Shared pipeline types.

This module intentionally contains only lightweight dataclasses so it can be
imported by step definitions and executors without pulling in the full
pipeline implementation.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from bamtofastq.core.categories import MergeResult, SplitResult
from bamtofastq.core.extractor import PairedReads
from bamtofastq.core.pairing import Layout, PairingDecision
from bamtofastq.core.sample import Sample


@dataclass
class PipelineStep:
    """Represents a per-sample pipeline step."""

    name: str
    description: str
    # None runs for both layouts; otherwise only for samples routed that way
    layout: Optional[Layout] = None
    skip_condition: Optional[str] = None
    depends_on: List[str] = field(default_factory=list)

    def applies_to(self, layout: Optional[Layout]) -> bool:
        return self.layout is None or layout is None or self.layout is layout


@dataclass(frozen=True)
class StageContext:
    """Read-only settings every stage of a run sees."""

    work_dir: Path
    reads_dir: Path
    reports_dir: Path
    regions: Tuple[str, ...] = ()
    index_provided: bool = False
    collate_fast: bool = False
    reads_in_memory: int = 100000
    skip_read_qc: bool = False
    skip_all_stats: bool = False
    max_memory: Optional[str] = None
    fastqc_args: Tuple[str, ...] = ()

    @property
    def skip_region_filter(self) -> bool:
        return not self.regions

    def sample_work_dir(self, sample: Sample) -> Path:
        return self.work_dir / sample.name


@dataclass
class SampleState:
    """Mutable state of one sample's chain; owned by a single worker."""

    sample: Sample
    pairing: Optional[PairingDecision] = None
    split: Optional[SplitResult] = None
    unmapped: Optional[MergeResult] = None
    mapped_reads: Optional[PairedReads] = None
    unmapped_reads: Optional[PairedReads] = None
    single_reads: Optional[Path] = None
    outputs: List[Path] = field(default_factory=list)
    reports: List[Path] = field(default_factory=list)
    completed_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    current_step: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def layout(self) -> Optional[Layout]:
        return self.pairing.layout if self.pairing else None


@dataclass(frozen=True)
class SampleResult:
    """Outcome of one sample's chain."""

    name: str
    output_name: str
    succeeded: bool
    layout: Optional[Layout] = None
    paired_ratio: Optional[float] = None
    outputs: Tuple[Path, ...] = ()
    failed_stage: Optional[str] = None
    error: Optional[str] = None
    duration: float = 0.0
    category_counts: Dict[str, int] = field(default_factory=dict)
    dropped_records: int = 0

    @classmethod
    def from_state(
        cls,
        state: SampleState,
        failed_stage: Optional[str] = None,
        error: Optional[str] = None,
    ) -> "SampleResult":
        counts: Dict[str, int] = {}
        dropped = 0
        if state.split is not None:
            counts = {c.label: n for c, n in state.split.counts.items()}
            dropped = state.split.dropped
        return cls(
            name=state.sample.name,
            output_name=state.sample.output_name,
            succeeded=error is None,
            layout=state.layout,
            paired_ratio=state.pairing.ratio if state.pairing else None,
            outputs=tuple(state.outputs),
            failed_stage=failed_stage,
            error=error,
            duration=time.time() - state.start_time,
            category_counts=counts,
            dropped_records=dropped,
        )

    def to_row(self) -> Dict[str, Any]:
        """Flatten into one run-report row."""
        return {
            "sample": self.name,
            "output_name": self.output_name,
            "status": "succeeded" if self.succeeded else "failed",
            "layout": self.layout.value if self.layout else "",
            "paired_ratio": self.paired_ratio,
            "outputs": ",".join(p.name for p in self.outputs),
            "failed_stage": self.failed_stage or "",
            "error": self.error or "",
            "duration_s": round(self.duration, 2),
            "dropped_records": self.dropped_records,
        }


@dataclass(frozen=True)
class RunSummary:
    """Run metadata built once from the resolved configuration."""

    run_name: str
    started: str
    command_line: str
    version: str
    output_dir: str
    profile: str
    config: Dict[str, Any] = field(default_factory=dict)
    environment: Dict[str, str] = field(default_factory=dict)
    software_versions: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run_name": self.run_name,
            "started": self.started,
            "command_line": self.command_line,
            "version": self.version,
            "output_dir": self.output_dir,
            "profile": self.profile,
            "software_versions": dict(self.software_versions),
            "environment": dict(self.environment),
            "config": self.config,
        }


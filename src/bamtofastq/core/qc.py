"""QC and statistics collaborators.

These stages only produce reports; nothing downstream of them reads their
output except the report aggregator.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import yaml

from bamtofastq.core.sample import Sample
from bamtofastq.external.fastqc import FastQC
from bamtofastq.external.multiqc import MultiQC
from bamtofastq.external.samtools import Samtools
from bamtofastq.utils.logging import get_logger

SAMTOOLS_STATS_SUBDIR = "samtools_stats"
FASTQC_SUBDIR = "fastqc"
MULTIQC_SUBDIR = "multiqc"
SOFTWARE_VERSIONS_FILE = "software_versions_mqc.yaml"


class AlignmentStats:
    """Run samtools idxstats, flagstat and stats on a sample's collection."""

    def __init__(self, samtools: Samtools, logger: Optional[logging.Logger] = None):
        self.samtools = samtools
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, sample: Sample, reports_dir: Path) -> list[Path]:
        output_dir = reports_dir / SAMTOOLS_STATS_SUBDIR
        reports: list[Path] = []

        # idxstats reads the index; an unindexed collection only gets the other two
        if sample.index is not None:
            idxstats = output_dir / f"{sample.output_name}.idxstats"
            self.samtools.idxstats(sample.bam, idxstats)
            reports.append(idxstats)
        else:
            self.logger.debug(f"[{sample.name}] No index; skipping idxstats")

        flagstat = output_dir / f"{sample.output_name}.flagstat"
        self.samtools.flagstat(sample.bam, flagstat)
        reports.append(flagstat)

        stats = output_dir / f"{sample.output_name}.stats"
        self.samtools.stats(sample.bam, stats)
        reports.append(stats)
        return reports


class ReadQC:
    """Run FastQC over a sample's final FASTQ files."""

    def __init__(
        self,
        fastqc: FastQC,
        max_memory: Optional[str] = None,
        extra_args: Optional[Sequence[str]] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.fastqc = fastqc
        self.max_memory = max_memory
        self.extra_args = list(extra_args or [])
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, sample: Sample, fastq_files: Sequence[Path], reports_dir: Path) -> Path:
        output_dir = reports_dir / FASTQC_SUBDIR
        if not fastq_files:
            self.logger.warning(f"[{sample.name}] No FASTQ files to check")
            return output_dir
        self.fastqc.run_qc(
            fastq_files,
            output_dir,
            max_memory=self.max_memory,
            extra_args=self.extra_args,
        )
        return output_dir


def write_software_versions(versions: Dict[str, Optional[str]], path: Path) -> Path:
    """Write tool versions as a MultiQC custom-content section."""
    content: Dict[str, Any] = {
        "id": "software_versions",
        "section_name": "Software versions",
        "plot_type": "html",
        "data": "<dl class='dl-horizontal'>"
        + "".join(
            f"<dt>{tool}</dt><dd><samp>{ver or 'unknown'}</samp></dd>"
            for tool, ver in sorted(versions.items())
        )
        + "</dl>",
    }
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        yaml.safe_dump(content, handle, sort_keys=False)
    return path


class ReportAggregator:
    """Aggregate every QC/stats artifact into one MultiQC report."""

    def __init__(
        self,
        multiqc: MultiQC,
        title: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.multiqc = multiqc
        self.title = title
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, reports_dir: Path, versions: Optional[Dict[str, Optional[str]]] = None) -> Path:
        if versions:
            write_software_versions(versions, reports_dir / SOFTWARE_VERSIONS_FILE)

        search_dirs = [
            d for d in (reports_dir / SAMTOOLS_STATS_SUBDIR, reports_dir / FASTQC_SUBDIR)
            if d.exists()
        ]
        if versions:
            search_dirs.append(reports_dir / SOFTWARE_VERSIONS_FILE)
        if not search_dirs:
            self.logger.warning(f"No reports found under {reports_dir}")

        return self.multiqc.aggregate(
            search_dirs, reports_dir / MULTIQC_SUBDIR, title=self.title
        )

"""Sequence extraction: collate a collection and convert it to FASTQ."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from bamtofastq.constants import DEFAULT_READS_IN_MEMORY, FASTQ_EXTENSION
from bamtofastq.external.samtools import Samtools
from bamtofastq.utils.logging import get_logger


class MateSlot(str, enum.Enum):
    """Output slot of a converted record."""

    MATE1 = "1"
    MATE2 = "2"
    SINGLETON = "singleton"
    # Records flagged as neither or both of READ1/READ2
    OTHER = "other"


@dataclass(frozen=True)
class PairedReads:
    """FASTQ files produced from one paired-end collection."""

    files: Dict[MateSlot, Path]

    @property
    def mate1(self) -> Path:
        return self.files[MateSlot.MATE1]

    @property
    def mate2(self) -> Path:
        return self.files[MateSlot.MATE2]


class SequenceExtractor:
    """Collate records so mates are adjacent, then write FASTQ.

    Args:
        samtools: Samtools capability used for both steps
        collate_fast: Use `samtools collate -f`
        reads_in_memory: Records held in memory in fast mode
    """

    def __init__(
        self,
        samtools: Samtools,
        collate_fast: bool = False,
        reads_in_memory: int = DEFAULT_READS_IN_MEMORY,
        logger: Optional[logging.Logger] = None,
    ):
        self.samtools = samtools
        self.collate_fast = collate_fast
        self.reads_in_memory = reads_in_memory
        self.logger = logger or get_logger(self.__class__.__name__)

    def collate(self, bam: Path, work_dir: Path, stem: str) -> Path:
        collated = work_dir / f"{stem}.collated.bam"
        self.samtools.collate(
            bam,
            collated,
            fast=self.collate_fast,
            reads_in_memory=self.reads_in_memory if self.collate_fast else None,
            tmp_prefix=work_dir / f"{stem}.collate_tmp",
        )
        return collated

    def extract_paired(self, bam: Path, work_dir: Path, stem: str) -> PairedReads:
        """Convert `bam` into mate-1/mate-2 files named `<stem>.<slot>.fq.gz`."""
        collated = self.collate(bam, work_dir, stem)
        files = {
            slot: work_dir / f"{stem}.{slot.value}.{FASTQ_EXTENSION}" for slot in MateSlot
        }
        self.samtools.fastq_paired(
            collated,
            mate1=files[MateSlot.MATE1],
            mate2=files[MateSlot.MATE2],
            singleton=files[MateSlot.SINGLETON],
            other=files[MateSlot.OTHER],
        )
        return PairedReads(files=files)

    def extract_single(self, bam: Path, work_dir: Path, stem: str) -> Path:
        """Convert every primary record of `bam` into `<stem>.fq.gz`."""
        collated = self.collate(bam, work_dir, stem)
        output = work_dir / f"{stem}.{FASTQ_EXTENSION}"
        self.samtools.fastq_single(collated, output)
        return output

"""Read-set joiner: outer join of mapped and unmapped FASTQ by sample name.

Each sample gets a slot record with one entry per producer. A producer either
registers its files or declares itself absent (no records), and the final
files are only written once every producer has reported. Absent sources count
as empty, so a sample with no mapped records still gets its unmapped reads and
vice versa.
"""

from __future__ import annotations

import enum
import gzip
import logging
import shutil
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Sequence

from bamtofastq.constants import FASTQ_EXTENSION
from bamtofastq.core.extractor import MateSlot, PairedReads
from bamtofastq.exceptions import PipelineError
from bamtofastq.utils.logging import LogTemplates, get_logger

# Mates written to the final read set, in order
FINAL_MATES = (MateSlot.MATE1, MateSlot.MATE2)


class Source(str, enum.Enum):
    """Producers feeding a paired-end read set, in concatenation order."""

    MAPPED = "mapped"
    UNMAPPED = "unmapped"


@dataclass
class ReadSetSlots:
    """Join state of one sample."""

    reads: Dict[Source, Optional[PairedReads]] = field(default_factory=dict)

    def reported(self, source: Source) -> bool:
        return source in self.reads

    @property
    def is_complete(self) -> bool:
        return all(self.reported(source) for source in Source)

    @property
    def pending(self) -> list[Source]:
        return [source for source in Source if not self.reported(source)]


def concatenate_files(sources: Sequence[Path], destination: Path) -> Path:
    """Byte-concatenate gzip files into `destination`.

    Concatenated gzip members form a valid gzip stream. With no sources an
    empty gzip file is written.
    """
    destination.parent.mkdir(parents=True, exist_ok=True)
    if not sources:
        with gzip.open(destination, "wb"):
            pass
        return destination

    with open(destination, "wb") as out_handle:
        for source in sources:
            with open(source, "rb") as in_handle:
                shutil.copyfileobj(in_handle, out_handle)
    return destination


def final_paired_names(output_name: str) -> Dict[MateSlot, str]:
    return {mate: f"{output_name}.{mate.value}.{FASTQ_EXTENSION}" for mate in FINAL_MATES}


def final_single_name(output_name: str) -> str:
    return f"{output_name}.{MateSlot.SINGLETON.value}.{FASTQ_EXTENSION}"


class ReadSetJoiner:
    """Keyed outer join of mapped and unmapped read sets.

    Safe to share between sample workers; each sample only touches its own
    entry.
    """

    def __init__(self, output_dir: Path, logger: Optional[logging.Logger] = None):
        self.output_dir = Path(output_dir)
        self.logger = logger or get_logger(self.__class__.__name__)
        self._slots: Dict[str, ReadSetSlots] = {}
        self._lock = threading.Lock()

    def _entry(self, name: str) -> ReadSetSlots:
        with self._lock:
            return self._slots.setdefault(name, ReadSetSlots())

    def register(self, name: str, source: Source, reads: PairedReads) -> None:
        """Record the files `source` produced for sample `name`."""
        entry = self._entry(name)
        if entry.reported(source):
            raise PipelineError(f"[{name}] {source.value} reads reported twice")
        entry.reads[source] = reads

    def declare_absent(self, name: str, source: Source) -> None:
        """Record that `source` has no records for sample `name`."""
        entry = self._entry(name)
        if entry.reported(source):
            raise PipelineError(f"[{name}] {source.value} reads reported twice")
        entry.reads[source] = None
        self.logger.info(f"[{name}] No {source.value} reads; treated as empty")

    def is_complete(self, name: str) -> bool:
        with self._lock:
            entry = self._slots.get(name)
        return entry is not None and entry.is_complete

    def join(self, name: str, output_name: str) -> Dict[MateSlot, Path]:
        """Write the final mate files for `name`: mapped reads, then unmapped.

        Raises:
            PipelineError: if a producer has not reported yet.
        """
        with self._lock:
            entry = self._slots.get(name)
        if entry is None or not entry.is_complete:
            pending = entry.pending if entry else list(Source)
            raise PipelineError(
                f"[{name}] Cannot join read sets; waiting for: "
                + ", ".join(source.value for source in pending)
            )

        outputs: Dict[MateSlot, Path] = {}
        for mate, filename in final_paired_names(output_name).items():
            parts = [
                reads.files[mate]
                for source in Source
                if (reads := entry.reads[source]) is not None
            ]
            destination = concatenate_files(parts, self.output_dir / filename)
            outputs[mate] = destination
            self.logger.info(
                LogTemplates.FILE_CREATED.format(
                    path=destination, size=destination.stat().st_size
                )
            )
        return outputs

    def place_single(self, name: str, output_name: str, fastq: Path) -> Path:
        """Move a single-end sample's FASTQ to its final name."""
        destination = self.output_dir / final_single_name(output_name)
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.move(str(fastq), str(destination))
        self.logger.info(
            f"[{name}] "
            + LogTemplates.FILE_CREATED.format(path=destination, size=destination.stat().st_size)
        )
        return destination

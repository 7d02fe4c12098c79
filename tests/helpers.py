"""Synthetic BAM builders and a pysam-backed Samtools for tests.

`PysamSamtools` runs the very same command lines as `Samtools`, but through
the samtools code bundled with pysam instead of a `samtools` executable, so
the stages can be exercised end to end without external tools.
"""

from __future__ import annotations

import gzip
import os
import shutil
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional, Sequence

import pysam

from bamtofastq.constants import (
    FLAG_MATE_REVERSE,
    FLAG_MATE_UNMAPPED,
    FLAG_PAIRED,
    FLAG_READ1,
    FLAG_READ2,
    FLAG_UNMAPPED,
)
from bamtofastq.exceptions import ExternalToolError
from bamtofastq.external.samtools import Samtools

DEFAULT_CONTIGS = (("chr1", 10000), ("chr2", 10000))
READ_LENGTH = 20


@dataclass
class Read:
    """One synthetic alignment record."""

    name: str
    flag: int
    contig: Optional[str] = None
    pos: int = -1
    mate_contig: Optional[str] = None
    mate_pos: int = -1
    seq: str = "ACGT" * (READ_LENGTH // 4)


def make_header(contigs: Sequence[tuple[str, int]] = DEFAULT_CONTIGS) -> dict:
    return {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": name, "LN": length} for name, length in contigs],
    }


def write_bam(
    path: Path,
    reads: Iterable[Read],
    contigs: Sequence[tuple[str, int]] = DEFAULT_CONTIGS,
    index: bool = False,
) -> Path:
    """Write `reads` as a coordinate-sorted BAM; unplaced records go last."""
    header = pysam.AlignmentHeader.from_dict(make_header(contigs))
    names = [name for name, _ in contigs]

    def sort_key(read: Read):
        if read.contig is None:
            return (len(names), 0)
        return (names.index(read.contig), read.pos)

    path.parent.mkdir(parents=True, exist_ok=True)
    with pysam.AlignmentFile(str(path), "wb", header=header) as handle:
        for read in sorted(reads, key=sort_key):
            segment = pysam.AlignedSegment(header)
            segment.query_name = read.name
            segment.query_sequence = read.seq
            segment.query_qualities = pysam.qualitystring_to_array("I" * len(read.seq))
            segment.flag = read.flag
            segment.reference_id = names.index(read.contig) if read.contig else -1
            segment.reference_start = read.pos
            if read.contig is not None and not read.flag & FLAG_UNMAPPED:
                segment.cigarstring = f"{len(read.seq)}M"
                segment.mapping_quality = 60
            segment.next_reference_id = names.index(read.mate_contig) if read.mate_contig else -1
            segment.next_reference_start = read.mate_pos
            handle.write(segment)
    if index:
        pysam.index(str(path))
    return path


def mapped_pair(name: str, contig: str = "chr1", pos: int = 100) -> list[Read]:
    r1 = FLAG_PAIRED | FLAG_READ1 | FLAG_MATE_REVERSE
    r2 = FLAG_PAIRED | FLAG_READ2
    return [
        Read(name, r1, contig, pos, contig, pos + 200),
        Read(name, r2, contig, pos + 200, contig, pos),
    ]


def unmapped_pair(name: str) -> list[Read]:
    base = FLAG_PAIRED | FLAG_UNMAPPED | FLAG_MATE_UNMAPPED
    return [Read(name, base | FLAG_READ1), Read(name, base | FLAG_READ2)]


def half_mapped_pair(name: str, contig: str = "chr1", pos: int = 500) -> list[Read]:
    """Mate 1 mapped, mate 2 unmapped (placed at its mate's position)."""
    return [
        Read(name, FLAG_PAIRED | FLAG_READ1 | FLAG_MATE_UNMAPPED, contig, pos, contig, pos),
        Read(name, FLAG_PAIRED | FLAG_READ2 | FLAG_UNMAPPED, contig, pos, contig, pos),
    ]


def single_reads(count: int, contig: str = "chr1") -> list[Read]:
    return [Read(f"single{i}", 0, contig, 100 + 50 * i) for i in range(count)]


def read_fastq_names(path: Path) -> list[str]:
    """Return the read names of a (possibly multi-member) gzip FASTQ file."""
    with gzip.open(path, "rt") as handle:
        lines = [line.rstrip("\n") for line in handle]
    return [lines[i][1:] for i in range(0, len(lines), 4)]


def bam_names(path: Path) -> list[str]:
    with pysam.AlignmentFile(str(path), "rb", check_sq=False) as handle:
        return [record.query_name for record in handle.fetch(until_eof=True)]


class PysamSamtools(Samtools):
    """Samtools wrapper that executes commands with pysam's bundled samtools.

    Commands that name their own output files run with ``catch_stdout=False``
    so pysam does not append a second ``-o``. Commands that stream records
    to stdout have file descriptor 1 redirected into a temporary file.
    """

    OUTPUT_OPTIONS = frozenset({"-o", "-1", "-2", "-s", "-0"})
    FILE_WRITERS = frozenset({"merge", "index"})

    def __init__(self, threads: int = 1):
        super().__init__(threads=threads)
        self.commands: list[list[str]] = []

    def _check_installation(self) -> None:
        pass

    def get_tool_version(self, tool_name: str) -> Optional[str]:
        return pysam.__samtools_version__

    def _writes_own_output(self, subcommand: str, args: Sequence[str]) -> bool:
        return subcommand in self.FILE_WRITERS or bool(self.OUTPUT_OPTIONS.intersection(args))

    def _dispatch(self, cmd: Sequence[str], catch_stdout: Optional[bool] = None) -> str:
        cmd = [str(c) for c in cmd]
        self.commands.append(cmd)
        subcommand, args = cmd[1], cmd[2:]
        if catch_stdout is None:
            catch_stdout = not self._writes_own_output(subcommand, args)
        try:
            result = getattr(pysam, subcommand)(*args, catch_stdout=catch_stdout)
        except pysam.utils.SamtoolsError as exc:
            raise ExternalToolError(
                f"{self.tool_name} failed", command=cmd, returncode=1, stderr=str(exc)
            ) from exc
        if isinstance(result, bytes):
            return result.decode(errors="replace")
        return result or ""

    def run(self, cmd, cwd=None, check=True, capture_output=True, timeout=None, input_text=None):
        return self._dispatch(cmd), ""

    def stream_to_gzip(self, cmd, output, timeout=None):
        output.parent.mkdir(parents=True, exist_ok=True)
        sys.stdout.flush()
        with tempfile.TemporaryFile() as captured:
            saved_fd = os.dup(1)
            os.dup2(captured.fileno(), 1)
            try:
                self._dispatch(cmd, catch_stdout=False)
            finally:
                os.dup2(saved_fd, 1)
                os.close(saved_fd)
            captured.seek(0)
            with gzip.open(output, "wb") as handle:
                shutil.copyfileobj(captured, handle)

"""Region filter: restrict a sample's records to named genomic regions.

Tokens are validated against the contigs in the BAM header before samtools is
invoked, so a token naming an absent contig fails loudly instead of producing
an empty collection.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import pysam

from bamtofastq.core.sample import Sample
from bamtofastq.exceptions import DataError, RegionError
from bamtofastq.external.samtools import Samtools
from bamtofastq.utils.logging import get_logger

_REGION_RE = re.compile(r"^(?P<contig>[^:]+?)(?::(?P<start>[\d,]+)(?:-(?P<end>[\d,]+))?)?$")


@dataclass(frozen=True)
class Region:
    """A parsed region token (1-based, inclusive coordinates)."""

    token: str
    contig: str
    start: Optional[int] = None
    end: Optional[int] = None


def parse_region_token(token: str) -> Region:
    """Parse `contig`, `contig:start` or `contig:start-end`.

    Raises:
        RegionError: if the token is empty or malformed.
    """
    token = str(token).strip()
    if not token:
        raise RegionError("Empty region token", token=token)

    # A contig name that itself contains ':' (e.g. HLA alleles) is taken whole
    match = _REGION_RE.match(token)
    if match is None:
        return Region(token=token, contig=token)

    contig = match.group("contig")
    start = match.group("start")
    end = match.group("end")
    start_i = int(start.replace(",", "")) if start else None
    end_i = int(end.replace(",", "")) if end else None

    if start_i is not None and start_i < 1:
        raise RegionError(f"Region start must be >= 1: {token}", token=token)
    if start_i is not None and end_i is not None and start_i > end_i:
        raise RegionError(f"Region start is after its end: {token}", token=token)
    return Region(token=token, contig=contig, start=start_i, end=end_i)


def read_contigs(bam: Path) -> dict[str, int]:
    """Return contig name -> length from the BAM header."""
    try:
        with pysam.AlignmentFile(str(bam), "rb", check_sq=False) as handle:
            return dict(zip(handle.references, handle.lengths))
    except (OSError, ValueError) as exc:
        raise DataError(f"Cannot read alignment header of {bam}: {exc}") from exc


def validate_regions(bam: Path, tokens: Sequence[str]) -> list[Region]:
    """Parse `tokens` and check each against the contigs of `bam`.

    Raises:
        RegionError: if a token names an absent contig or exceeds its length.
    """
    contigs = read_contigs(bam)
    regions: list[Region] = []
    for token in tokens:
        region = parse_region_token(token)
        if region.contig not in contigs:
            if token in contigs:
                # Whole-token contig names containing ':'
                region = Region(token=token, contig=token)
            else:
                raise RegionError(
                    f"Region '{token}' names contig '{region.contig}', which is not "
                    f"present in {bam.name} ({len(contigs)} contigs in header)",
                    token=token,
                    available=contigs.keys(),
                )
        length = contigs[region.contig]
        if region.start is not None and region.start > length:
            raise RegionError(
                f"Region '{token}' starts beyond the end of {region.contig} ({length:,} bp)",
                token=token,
                available=contigs.keys(),
            )
        if region.end is not None and region.end > length:
            raise RegionError(
                f"Region '{token}' ends beyond the end of {region.contig} ({length:,} bp)",
                token=token,
                available=contigs.keys(),
            )
        regions.append(region)
    return regions


class RegionFilter:
    """Produce a new indexed collection holding only records overlapping the regions."""

    def __init__(self, samtools: Samtools, logger: Optional[logging.Logger] = None):
        self.samtools = samtools
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, sample: Sample, tokens: Sequence[str], work_dir: Path) -> Sample:
        """Filter `sample` to `tokens` and return its derived identity.

        The returned sample keeps `name` as its key; its `output_name` carries
        the region label and its collection is the filtered, re-indexed BAM.
        """
        if sample.index is None:
            raise DataError(f"Region filtering needs an indexed BAM: {sample.bam}")

        regions = validate_regions(sample.bam, tokens)
        derived = sample.derive([r.token for r in regions])
        output_bam = work_dir / f"{derived.output_name}.bam"

        self.logger.info(
            f"[{sample.name}] Restricting to {len(regions)} region(s): "
            + ", ".join(r.token for r in regions)
        )
        self.samtools.view_regions(sample.bam, [r.token for r in regions], output_bam)
        index = self.samtools.index(output_bam)
        return derived.with_collection(output_bam, index)

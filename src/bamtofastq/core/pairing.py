"""Pairing classifier: decide whether a sample is paired-end or single-end.

The decision looks at the header and the first PAIRING_SAMPLE_SIZE body
records only. A sample is paired-end when *every* sampled record carries the
paired flag; a single unpaired record routes the whole sample down the
single-end path. Mixed samples are not split further.
"""

from __future__ import annotations

import enum
import itertools
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

import pysam

from bamtofastq.constants import FLAG_PAIRED, PAIRING_SAMPLE_SIZE
from bamtofastq.exceptions import DataError
from bamtofastq.utils.logging import get_logger


class Layout(str, enum.Enum):
    """Routing label attached to a sample."""

    PAIRED = "paired"
    SINGLE = "single"


@dataclass(frozen=True)
class PairingDecision:
    """Outcome of pairing classification; fixed once computed."""

    layout: Layout
    paired_count: int
    sampled: int

    @property
    def ratio(self) -> float:
        if self.sampled == 0:
            return 0.0
        return self.paired_count / self.sampled

    @property
    def is_paired(self) -> bool:
        return self.layout is Layout.PAIRED


def paired_fraction(flags: Iterable[int], sample_size: int = PAIRING_SAMPLE_SIZE) -> PairingDecision:
    """Classify from an iterable of SAM flags, considering at most `sample_size`."""
    sampled = 0
    paired = 0
    for flag in itertools.islice(flags, sample_size):
        sampled += 1
        if flag & FLAG_PAIRED:
            paired += 1

    # Exact equality: any unpaired record forces single-end routing
    layout = Layout.PAIRED if sampled > 0 and paired == sampled else Layout.SINGLE
    return PairingDecision(layout=layout, paired_count=paired, sampled=sampled)


def classify_pairing(
    bam: Path,
    sample_size: int = PAIRING_SAMPLE_SIZE,
    logger: Optional[logging.Logger] = None,
) -> PairingDecision:
    """Read the first `sample_size` records of `bam` and classify the sample.

    Records are read in file order (`until_eof`), so unaligned and unindexed
    BAMs are supported.

    Raises:
        DataError: if the BAM cannot be opened or parsed.
    """
    logger = logger or get_logger("pairing")
    try:
        with pysam.AlignmentFile(str(bam), "rb", check_sq=False) as handle:
            flags = (record.flag for record in handle.fetch(until_eof=True))
            decision = paired_fraction(flags, sample_size=sample_size)
    except (OSError, ValueError) as exc:
        raise DataError(f"Cannot read alignment records from {bam}: {exc}") from exc

    logger.info(
        f"{bam.name}: {decision.paired_count}/{decision.sampled} sampled records paired "
        f"(ratio {decision.ratio:.3f}) -> {decision.layout.value}-end"
    )
    if decision.layout is Layout.SINGLE and decision.paired_count > 0:
        logger.warning(
            f"{bam.name}: mixed paired/unpaired records; the whole sample is "
            "processed as single-end"
        )
    return decision

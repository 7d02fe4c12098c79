"""Flag category split and unmapped merge for paired-end samples."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from bamtofastq.constants import (
    FLAG_MATE_UNMAPPED,
    FLAG_NON_PRIMARY,
    FLAG_PAIRED,
    FLAG_UNMAPPED,
)
from bamtofastq.core.sample import Sample
from bamtofastq.external.samtools import Samtools
from bamtofastq.utils.logging import LogTemplates, get_logger


class Category(enum.Enum):
    """Mapping-state categories of primary paired records.

    Each value is `(label, require, exclude)`: a record belongs to the category
    when every `require` bit is set and no `exclude` bit is set.
    """

    BOTH_MAPPED = (
        "both_mapped",
        FLAG_PAIRED,
        FLAG_UNMAPPED | FLAG_MATE_UNMAPPED | FLAG_NON_PRIMARY,
    )
    BOTH_UNMAPPED = (
        "both_unmapped",
        FLAG_PAIRED | FLAG_UNMAPPED | FLAG_MATE_UNMAPPED,
        FLAG_NON_PRIMARY,
    )
    SELF_UNMAPPED_MATE_MAPPED = (
        "self_unmapped_mate_mapped",
        FLAG_PAIRED | FLAG_UNMAPPED,
        FLAG_MATE_UNMAPPED | FLAG_NON_PRIMARY,
    )
    SELF_MAPPED_MATE_UNMAPPED = (
        "self_mapped_mate_unmapped",
        FLAG_PAIRED | FLAG_MATE_UNMAPPED,
        FLAG_UNMAPPED | FLAG_NON_PRIMARY,
    )

    def __init__(self, label: str, require: int, exclude: int):
        self.label = label
        self.require = require
        self.exclude = exclude

    def matches(self, flag: int) -> bool:
        return (flag & self.require) == self.require and not (flag & self.exclude)


# Categories whose records end up in the unmapped read set
UNMAPPED_CATEGORIES = (
    Category.BOTH_UNMAPPED,
    Category.SELF_UNMAPPED_MATE_MAPPED,
    Category.SELF_MAPPED_MATE_UNMAPPED,
)


def classify_flag(flag: int) -> Optional[Category]:
    """Return the single category a record belongs to, or None if excluded.

    Secondary, supplementary and unpaired records belong to no category.
    """
    for category in Category:
        if category.matches(flag):
            return category
    return None


@dataclass
class SplitResult:
    """Category collections of one sample plus record accounting."""

    bams: Dict[Category, Path] = field(default_factory=dict)
    counts: Dict[Category, int] = field(default_factory=dict)
    primary_records: int = 0

    @property
    def categorised(self) -> int:
        return sum(self.counts.values())

    @property
    def dropped(self) -> int:
        return max(0, self.primary_records - self.categorised)

    def count(self, category: Category) -> int:
        return self.counts.get(category, 0)


@dataclass
class MergeResult:
    """Merged unmapped collection of one sample."""

    bam: Path
    records: int

    @property
    def is_empty(self) -> bool:
        return self.records == 0


class CategorySplitter:
    """Split a paired-end collection into the four mapping-state categories."""

    def __init__(self, samtools: Samtools, logger: Optional[logging.Logger] = None):
        self.samtools = samtools
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, sample: Sample, work_dir: Path) -> SplitResult:
        result = SplitResult()
        for category in Category:
            output_bam = work_dir / f"{sample.output_name}.{category.label}.bam"
            self.samtools.view_flags(
                sample.bam,
                output_bam,
                require=category.require,
                exclude=category.exclude,
            )
            result.bams[category] = output_bam
            result.counts[category] = self.samtools.count(output_bam)
            self.logger.info(
                LogTemplates.SPLIT_STATS.format(
                    sample=sample.name,
                    category=category.label,
                    count=result.counts[category],
                )
            )

        result.primary_records = self.samtools.count(sample.bam, exclude=FLAG_NON_PRIMARY)
        if result.dropped:
            self.logger.warning(
                LogTemplates.DROPPED_STATS.format(sample=sample.name, count=result.dropped)
            )
        return result


class UnmappedMerger:
    """Merge the three categories holding unmapped records into one collection."""

    def __init__(self, samtools: Samtools, logger: Optional[logging.Logger] = None):
        self.samtools = samtools
        self.logger = logger or get_logger(self.__class__.__name__)

    def run(self, sample: Sample, split: SplitResult, work_dir: Path) -> MergeResult:
        output_bam = work_dir / f"{sample.output_name}.unmapped.bam"
        # Empty category collections are valid merge inputs
        self.samtools.merge([split.bams[c] for c in UNMAPPED_CATEGORIES], output_bam)
        records = sum(split.count(c) for c in UNMAPPED_CATEGORIES)
        if records == 0:
            self.logger.info(f"[{sample.name}] No unmapped records")
        return MergeResult(bam=output_bam, records=records)

"""Sample identity and input discovery."""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional, Sequence

from bamtofastq.config import Config
from bamtofastq.exceptions import ConfigurationError

ALIGNMENT_SUFFIXES = (".bam",)


def sample_name_from_path(path: Path) -> str:
    """Strip the alignment suffix from a file name."""
    name = path.name
    for suffix in ALIGNMENT_SUFFIXES:
        if name.lower().endswith(suffix):
            return name[: -len(suffix)]
    return path.stem


def find_index(bam: Path) -> Optional[Path]:
    """Return an existing index for `bam` (`x.bam.bai` or `x.bai`), if any."""
    for candidate in (Path(f"{bam}.bai"), bam.with_suffix(".bai"), Path(f"{bam}.csi")):
        if candidate.exists():
            return candidate
    return None


def region_label(regions: Sequence[str]) -> str:
    """Turn region tokens into a file-name-safe label."""
    return "+".join(str(r).strip().replace(":", "_").replace(",", "") for r in regions)


@dataclass(frozen=True)
class Sample:
    """One input BAM.

    `name` is the join key for every stage and never changes. `output_name`
    is the label used for output files; it is augmented with the region label
    when a region filter is applied.
    """

    name: str
    bam: Path
    index: Optional[Path] = None
    output_name: str = ""

    def __post_init__(self) -> None:
        if not self.output_name:
            object.__setattr__(self, "output_name", self.name)

    def with_index(self, index: Path) -> "Sample":
        return replace(self, index=index)

    def with_collection(self, bam: Path, index: Optional[Path]) -> "Sample":
        """Return the same sample backed by a new record collection."""
        return replace(self, bam=bam, index=index)

    def derive(self, regions: Sequence[str]) -> "Sample":
        """Return the region-scoped identity of this sample."""
        if not regions:
            return self
        return replace(self, output_name=f"{self.name}.{region_label(regions)}")


def discover_samples(config: Config) -> list[Sample]:
    """Build one `Sample` per input BAM, pairing pre-existing indices.

    Raises:
        ConfigurationError: on duplicate sample names, or on a missing index
            when `index_provided` is set.
    """
    samples: list[Sample] = []
    seen: dict[str, Path] = {}
    for bam in config.expand_inputs():
        name = sample_name_from_path(bam)
        if name in seen:
            raise ConfigurationError(
                f"Duplicate sample name '{name}' for inputs {seen[name]} and {bam}"
            )
        seen[name] = bam

        index = find_index(bam)
        if config.index_provided and index is None:
            raise ConfigurationError(
                f"index_provided is set but no index was found for {bam} "
                f"(expected {bam}.bai or {bam.with_suffix('.bai')})"
            )
        samples.append(Sample(name=name, bam=bam, index=index))

    if not samples:
        raise ConfigurationError("No input BAM files found")
    return samples

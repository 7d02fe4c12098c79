"""Step executors for one sample's chain."""

from __future__ import annotations

from typing import TYPE_CHECKING

from bamtofastq.core.categories import Category, CategorySplitter, UnmappedMerger
from bamtofastq.core.extractor import MateSlot, SequenceExtractor
from bamtofastq.core.joiner import Source
from bamtofastq.core.pairing import Layout, classify_pairing
from bamtofastq.core.qc import AlignmentStats, ReadQC
from bamtofastq.core.region_filter import RegionFilter
from bamtofastq.exceptions import PipelineError

if TYPE_CHECKING:
    from bamtofastq.core.pipeline import SampleRunner


def _extractor(runner: SampleRunner) -> SequenceExtractor:
    return SequenceExtractor(
        runner.tools.samtools,
        collate_fast=runner.context.collate_fast,
        reads_in_memory=runner.context.reads_in_memory,
        logger=runner.logger.getChild("extractor"),
    )


def index_input(runner: SampleRunner) -> None:
    """Step 1: (Re)build the index of the input BAM."""
    sample = runner.state.sample
    index = runner.tools.samtools.index(sample.bam)
    runner.state.sample = sample.with_index(index)


def region_filter(runner: SampleRunner) -> None:
    """Step 2: Restrict the collection to the configured regions."""
    stage = RegionFilter(runner.tools.samtools, logger=runner.logger.getChild("region_filter"))
    runner.state.sample = stage.run(runner.state.sample, runner.context.regions, runner.work_dir)


def alignment_stats(runner: SampleRunner) -> None:
    """Step 3: samtools statistics on the (filtered) input collection."""
    stage = AlignmentStats(runner.tools.samtools, logger=runner.logger.getChild("stats"))
    runner.state.reports.extend(stage.run(runner.state.sample, runner.context.reports_dir))


def classify_pairing_step(runner: SampleRunner) -> None:
    """Step 4: Decide paired-end or single-end routing, once."""
    if runner.state.pairing is not None:
        raise PipelineError(f"[{runner.state.sample.name}] Pairing already decided")
    runner.state.pairing = classify_pairing(
        runner.state.sample.bam, logger=runner.logger.getChild("pairing")
    )


def split_categories(runner: SampleRunner) -> None:
    """Step 5: Four-way split by mate mapping state."""
    stage = CategorySplitter(runner.tools.samtools, logger=runner.logger.getChild("split"))
    runner.state.split = stage.run(runner.state.sample, runner.work_dir)


def merge_unmapped(runner: SampleRunner) -> None:
    """Step 6: Merge the three categories that hold unmapped records."""
    split = runner.state.split
    if split is None:
        raise PipelineError("Category split not found in state")
    stage = UnmappedMerger(runner.tools.samtools, logger=runner.logger.getChild("merge"))
    runner.state.unmapped = stage.run(runner.state.sample, split, runner.work_dir)


def extract_mapped(runner: SampleRunner) -> None:
    """Step 7: Convert both-mapped records, or declare the source absent."""
    split = runner.state.split
    if split is None:
        raise PipelineError("Category split not found in state")
    name = runner.state.sample.name
    if split.count(Category.BOTH_MAPPED) == 0:
        runner.joiner.declare_absent(name, Source.MAPPED)
        return

    reads = _extractor(runner).extract_paired(
        split.bams[Category.BOTH_MAPPED],
        runner.work_dir,
        f"{runner.state.sample.output_name}.mapped",
    )
    runner.state.mapped_reads = reads
    runner.joiner.register(name, Source.MAPPED, reads)


def extract_unmapped(runner: SampleRunner) -> None:
    """Step 8: Convert merged unmapped records, or declare the source absent."""
    merged = runner.state.unmapped
    if merged is None:
        raise PipelineError("Merged unmapped collection not found in state")
    name = runner.state.sample.name
    if merged.is_empty:
        runner.joiner.declare_absent(name, Source.UNMAPPED)
        return

    reads = _extractor(runner).extract_paired(
        merged.bam,
        runner.work_dir,
        f"{runner.state.sample.output_name}.unmapped",
    )
    runner.state.unmapped_reads = reads
    runner.joiner.register(name, Source.UNMAPPED, reads)


def extract_single(runner: SampleRunner) -> None:
    """Step 9: Convert every primary record of a single-end sample."""
    runner.state.single_reads = _extractor(runner).extract_single(
        runner.state.sample.bam,
        runner.work_dir,
        f"{runner.state.sample.output_name}.single",
    )


def join_read_sets(runner: SampleRunner) -> None:
    """Step 10: Write the final read set to the reads directory."""
    sample = runner.state.sample
    if runner.state.layout is Layout.SINGLE:
        if runner.state.single_reads is None:
            raise PipelineError("Single-end reads not found in state")
        runner.state.outputs.append(
            runner.joiner.place_single(sample.name, sample.output_name, runner.state.single_reads)
        )
        return

    outputs = runner.joiner.join(sample.name, sample.output_name)
    runner.state.outputs.extend([outputs[MateSlot.MATE1], outputs[MateSlot.MATE2]])


def read_qc(runner: SampleRunner) -> None:
    """Step 11: FastQC on the final reads."""
    if runner.tools.fastqc is None:
        raise PipelineError("FastQC is required for read QC")
    stage = ReadQC(
        runner.tools.fastqc,
        max_memory=runner.context.max_memory,
        extra_args=runner.context.fastqc_args,
        logger=runner.logger.getChild("fastqc"),
    )
    stage.run(runner.state.sample, runner.state.outputs, runner.context.reports_dir)


EXECUTORS = {
    "index_input": index_input,
    "region_filter": region_filter,
    "alignment_stats": alignment_stats,
    "classify_pairing": classify_pairing_step,
    "split_categories": split_categories,
    "merge_unmapped": merge_unmapped,
    "extract_mapped": extract_mapped,
    "extract_unmapped": extract_unmapped,
    "extract_single": extract_single,
    "join_read_sets": join_read_sets,
    "read_qc": read_qc,
}

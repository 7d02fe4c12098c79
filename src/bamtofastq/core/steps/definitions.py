"""Canonical per-sample step ordering and user-facing metadata."""

from __future__ import annotations

from bamtofastq.core.pairing import Layout
from bamtofastq.core.pipeline_types import PipelineStep


# `skip_condition` names a StageContext attribute; `layout` restricts a step
# to samples routed down the paired-end or single-end path.
SAMPLE_STEPS: list[PipelineStep] = [
    PipelineStep(
        "index_input",
        "Build the BAM index",
        skip_condition="index_provided",
    ),
    PipelineStep(
        "region_filter",
        "Restrict records to the requested regions",
        skip_condition="skip_region_filter",
        depends_on=["index_input"],
    ),
    PipelineStep(
        "alignment_stats",
        "samtools idxstats / flagstat / stats",
        skip_condition="skip_all_stats",
        depends_on=["region_filter"],
    ),
    PipelineStep(
        "classify_pairing",
        "Decide paired-end or single-end from the first records",
        depends_on=["region_filter"],
    ),
    PipelineStep(
        "split_categories",
        "Split records by mate mapping state",
        layout=Layout.PAIRED,
        depends_on=["classify_pairing"],
    ),
    PipelineStep(
        "merge_unmapped",
        "Merge the categories holding unmapped records",
        layout=Layout.PAIRED,
        depends_on=["split_categories"],
    ),
    PipelineStep(
        "extract_mapped",
        "Collate and convert both-mapped records",
        layout=Layout.PAIRED,
        depends_on=["split_categories"],
    ),
    PipelineStep(
        "extract_unmapped",
        "Collate and convert unmapped records",
        layout=Layout.PAIRED,
        depends_on=["merge_unmapped"],
    ),
    PipelineStep(
        "extract_single",
        "Collate and convert all records",
        layout=Layout.SINGLE,
        depends_on=["classify_pairing"],
    ),
    PipelineStep(
        "join_read_sets",
        "Write the final read set",
        depends_on=["extract_mapped", "extract_unmapped", "extract_single"],
    ),
    PipelineStep(
        "read_qc",
        "FastQC on the final reads",
        skip_condition="skip_read_qc",
        depends_on=["join_read_sets"],
    ),
]

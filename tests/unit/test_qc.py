"""Tests for statistics, read QC and report aggregation collaborators."""

from pathlib import Path
import sys
from unittest.mock import MagicMock

import yaml

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bamtofastq.core.qc import (
    FASTQC_SUBDIR,
    MULTIQC_SUBDIR,
    SAMTOOLS_STATS_SUBDIR,
    SOFTWARE_VERSIONS_FILE,
    AlignmentStats,
    ReadQC,
    ReportAggregator,
    write_software_versions,
)
from bamtofastq.core.sample import Sample


class TestAlignmentStats:
    """Test AlignmentStats.run."""

    def test_indexed_sample_gets_three_reports(self, tmp_path):
        samtools = MagicMock()
        sample = Sample(name="s1", bam=tmp_path / "s1.bam", index=tmp_path / "s1.bam.bai")

        reports = AlignmentStats(samtools).run(sample, tmp_path)

        out = tmp_path / SAMTOOLS_STATS_SUBDIR
        assert reports == [out / "s1.idxstats", out / "s1.flagstat", out / "s1.stats"]
        samtools.idxstats.assert_called_once_with(sample.bam, out / "s1.idxstats")

    def test_unindexed_sample_skips_idxstats(self, tmp_path):
        samtools = MagicMock()
        sample = Sample(name="s1", bam=tmp_path / "s1.bam")

        reports = AlignmentStats(samtools).run(sample, tmp_path)

        samtools.idxstats.assert_not_called()
        assert [p.suffix for p in reports] == [".flagstat", ".stats"]

    def test_derived_sample_uses_output_name(self, tmp_path):
        samtools = MagicMock()
        sample = Sample(name="s1", bam=tmp_path / "s1.bam").derive(["chr1"])

        reports = AlignmentStats(samtools).run(sample, tmp_path)

        assert reports[0].name == "s1.chr1.flagstat"


class TestReadQC:
    """Test ReadQC.run."""

    def test_runs_fastqc_on_files(self, tmp_path):
        fastqc = MagicMock()
        files = [tmp_path / "s1.1.fq.gz", tmp_path / "s1.2.fq.gz"]

        output = ReadQC(fastqc, max_memory="2G", extra_args=["--nogroup"]).run(
            Sample(name="s1", bam=tmp_path / "s1.bam"), files, tmp_path
        )

        assert output == tmp_path / FASTQC_SUBDIR
        fastqc.run_qc.assert_called_once_with(
            files, tmp_path / FASTQC_SUBDIR, max_memory="2G", extra_args=["--nogroup"]
        )

    def test_no_files_is_a_no_op(self, tmp_path):
        fastqc = MagicMock()
        ReadQC(fastqc).run(Sample(name="s1", bam=tmp_path / "s1.bam"), [], tmp_path)
        fastqc.run_qc.assert_not_called()


class TestSoftwareVersions:
    """Test the MultiQC custom-content section."""

    def test_yaml_content(self, tmp_path):
        path = write_software_versions(
            {"samtools": "1.17", "fastqc": None}, tmp_path / SOFTWARE_VERSIONS_FILE
        )

        data = yaml.safe_load(path.read_text())
        assert data["id"] == "software_versions"
        assert data["plot_type"] == "html"
        assert "<dt>samtools</dt><dd><samp>1.17</samp></dd>" in data["data"]
        assert "<dd><samp>unknown</samp></dd>" in data["data"]
        # sorted by tool name
        assert data["data"].index("fastqc") < data["data"].index("samtools")


class TestReportAggregator:
    """Test ReportAggregator.run."""

    def test_only_existing_dirs_are_searched(self, tmp_path):
        (tmp_path / SAMTOOLS_STATS_SUBDIR).mkdir()
        multiqc = MagicMock()
        multiqc.aggregate.return_value = tmp_path / MULTIQC_SUBDIR / "multiqc_report.html"

        report = ReportAggregator(multiqc, title="run1").run(tmp_path)

        assert report.name == "multiqc_report.html"
        multiqc.aggregate.assert_called_once_with(
            [tmp_path / SAMTOOLS_STATS_SUBDIR], tmp_path / MULTIQC_SUBDIR, title="run1"
        )

    def test_versions_file_is_included(self, tmp_path):
        multiqc = MagicMock()

        ReportAggregator(multiqc).run(tmp_path, versions={"samtools": "1.17"})

        search_dirs = multiqc.aggregate.call_args.args[0]
        assert tmp_path / SOFTWARE_VERSIONS_FILE in search_dirs
        assert (tmp_path / SOFTWARE_VERSIONS_FILE).exists()

"""Tests for region token parsing, validation and filtering."""

from pathlib import Path
import sys

import pytest

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bamtofastq.core.region_filter import (
    Region,
    RegionFilter,
    parse_region_token,
    read_contigs,
    validate_regions,
)
from bamtofastq.core.sample import Sample
from bamtofastq.exceptions import DataError, RegionError

from helpers import PysamSamtools, bam_names, mapped_pair, write_bam


@pytest.fixture
def two_contig_bam(tmp_path):
    reads = (
        mapped_pair("c1a", "chr1", 100)
        + mapped_pair("c1b", "chr1", 2000)
        + mapped_pair("c2a", "chr2", 300)
    )
    return write_bam(tmp_path / "sample.bam", reads, index=True)


class TestParseRegionToken:
    """Test parse_region_token."""

    def test_contig_only(self):
        assert parse_region_token("chr1") == Region(token="chr1", contig="chr1")

    def test_contig_with_range(self):
        region = parse_region_token("chr1:100-200")
        assert region.contig == "chr1"
        assert region.start == 100
        assert region.end == 200

    def test_contig_with_start_only(self):
        region = parse_region_token("chrX:5000")
        assert region.start == 5000
        assert region.end is None

    def test_commas_in_coordinates(self):
        region = parse_region_token("chr2:1,000-2,500")
        assert (region.start, region.end) == (1000, 2500)

    def test_whitespace_is_stripped(self):
        assert parse_region_token("  chr1 ").token == "chr1"

    def test_colon_in_contig_name_taken_whole(self):
        region = parse_region_token("HLA-A*01:01:01:01")
        assert region.contig == "HLA-A*01:01:01:01"
        assert region.start is None

    def test_empty_token_rejected(self):
        with pytest.raises(RegionError):
            parse_region_token("   ")

    def test_start_after_end_rejected(self):
        with pytest.raises(RegionError) as excinfo:
            parse_region_token("chr1:500-100")
        assert excinfo.value.token == "chr1:500-100"

    def test_zero_start_rejected(self):
        with pytest.raises(RegionError):
            parse_region_token("chr1:0-100")


class TestValidateRegions:
    """Test validate_regions against a BAM header."""

    def test_read_contigs(self, two_contig_bam):
        assert read_contigs(two_contig_bam) == {"chr1": 10000, "chr2": 10000}

    def test_present_contig_accepted(self, two_contig_bam):
        regions = validate_regions(two_contig_bam, ["chr1", "chr2:1-500"])
        assert [r.contig for r in regions] == ["chr1", "chr2"]

    def test_absent_contig_raises(self, two_contig_bam):
        with pytest.raises(RegionError) as excinfo:
            validate_regions(two_contig_bam, ["chr3"])
        assert excinfo.value.token == "chr3"
        assert set(excinfo.value.available) == {"chr1", "chr2"}
        assert "chr3" in str(excinfo.value)

    def test_region_error_is_data_error(self, two_contig_bam):
        with pytest.raises(DataError):
            validate_regions(two_contig_bam, ["chrUn"])

    def test_start_beyond_contig_length_raises(self, two_contig_bam):
        with pytest.raises(RegionError):
            validate_regions(two_contig_bam, ["chr1:20000-30000"])

    def test_end_beyond_contig_length_raises(self, two_contig_bam):
        with pytest.raises(RegionError, match="ends beyond the end of chr1"):
            validate_regions(two_contig_bam, ["chr1:1-99999999"])

    def test_region_ending_at_contig_end_accepted(self, two_contig_bam):
        regions = validate_regions(two_contig_bam, ["chr2:9000-10000"])
        assert regions[0].end == 10000

    def test_missing_bam_raises_data_error(self, tmp_path):
        with pytest.raises(DataError):
            read_contigs(tmp_path / "missing.bam")


class TestRegionFilter:
    """Test RegionFilter.run with pysam's bundled samtools."""

    def test_filter_keeps_only_overlapping_records(self, two_contig_bam, tmp_path):
        sample = Sample(name="sample", bam=two_contig_bam, index=Path(f"{two_contig_bam}.bai"))
        work_dir = tmp_path / "work"

        derived = RegionFilter(PysamSamtools()).run(sample, ["chr1"], work_dir)

        assert derived.name == "sample"
        assert derived.output_name == "sample.chr1"
        assert derived.bam == work_dir / "sample.chr1.bam"
        assert derived.index is not None
        names = bam_names(derived.bam)
        assert sorted(set(names)) == ["c1a", "c1b"]
        assert len(names) == 4

    def test_filtered_records_are_a_subset(self, two_contig_bam, tmp_path):
        import pysam

        sample = Sample(name="sample", bam=two_contig_bam, index=Path(f"{two_contig_bam}.bai"))
        derived = RegionFilter(PysamSamtools()).run(sample, ["chr1:1-500"], tmp_path / "work")

        with pysam.AlignmentFile(str(two_contig_bam), "rb") as original:
            source = {rec.to_string() for rec in original.fetch(until_eof=True)}
        with pysam.AlignmentFile(str(derived.bam), "rb") as filtered:
            kept = [rec for rec in filtered.fetch(until_eof=True)]

        assert kept
        for record in kept:
            assert record.to_string() in source
            assert record.reference_name == "chr1"
            assert record.reference_start < 500

    def test_absent_contig_fails_before_running_samtools(self, two_contig_bam, tmp_path):
        samtools = PysamSamtools()
        sample = Sample(name="sample", bam=two_contig_bam, index=Path(f"{two_contig_bam}.bai"))

        with pytest.raises(RegionError):
            RegionFilter(samtools).run(sample, ["chr3"], tmp_path / "work")
        assert samtools.commands == []

    def test_unindexed_sample_rejected(self, two_contig_bam, tmp_path):
        sample = Sample(name="sample", bam=two_contig_bam)
        with pytest.raises(DataError):
            RegionFilter(PysamSamtools()).run(sample, ["chr1"], tmp_path / "work")

"""Tests for configuration loading and validation."""

from pathlib import Path
import sys

import pytest
import yaml

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bamtofastq.config import Config, load_config, save_config
from bamtofastq.exceptions import ConfigurationError
from bamtofastq.resources import get_default_config


@pytest.fixture
def bam(tmp_path):
    path = tmp_path / "s.bam"
    path.write_bytes(b"")
    return path


class TestConfigDefaults:
    """Test default values and derived properties."""

    def test_defaults(self):
        cfg = Config()
        assert cfg.output_dir == Path("results")
        assert cfg.threads == 4
        assert cfg.performance.max_workers == 2
        assert cfg.reads_in_memory == 100000
        assert cfg.execution.profile == "local"
        assert not cfg.keep_tmp

    def test_output_subdirs(self):
        cfg = Config(output_dir=Path("/out"))
        assert cfg.reads_dir == Path("/out/reads")
        assert cfg.reports_dir == Path("/out/reports")
        assert cfg.pipeline_info_dir == Path("/out/pipeline_info")

    def test_skip_all_stats_implies_skip_read_qc(self):
        cfg = Config(skip_all_stats=True)
        assert cfg.skip_read_qc_effective

    def test_tool_threads_capped_by_max_cpus(self):
        cfg = Config()
        cfg.performance.threads = 8
        cfg.performance.max_cpus = 2
        assert cfg.performance.tool_threads == 2


class TestExpandInputs:
    """Test glob expansion of inputs."""

    def test_literal_paths_kept_in_order(self, tmp_path):
        cfg = Config(inputs=["b.bam", "a.bam", "b.bam"])
        assert cfg.expand_inputs() == [Path("b.bam"), Path("a.bam")]

    def test_glob_without_match(self, tmp_path):
        cfg = Config(inputs=[str(tmp_path / "*.bam")])
        with pytest.raises(ConfigurationError, match="matched no files"):
            cfg.expand_inputs()


class TestValidate:
    """Test Config.validate."""

    def test_valid(self, bam):
        Config(inputs=[str(bam)]).validate()

    def test_missing_input(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Config(inputs=[str(tmp_path / "nope.bam")]).validate()

    def test_no_inputs(self):
        with pytest.raises(ConfigurationError):
            Config().validate()

    def test_bad_threads(self, bam):
        cfg = Config(inputs=[str(bam)])
        cfg.threads = 0
        with pytest.raises(ConfigurationError, match="Threads"):
            cfg.validate()

    def test_empty_region_token(self, bam):
        with pytest.raises(ConfigurationError, match="region"):
            Config(inputs=[str(bam)], regions=[" "]).validate()

    def test_tmp_dir_must_not_escape_output(self, bam):
        cfg = Config(inputs=[str(bam)])
        cfg.runtime.tmp_dir = Path("../elsewhere")
        with pytest.raises(ConfigurationError, match=r"\.\."):
            cfg.validate()

    def test_unknown_profile(self, bam):
        cfg = Config(inputs=[str(bam)])
        cfg.execution.profile = "slurm"
        with pytest.raises(ConfigurationError, match="Unknown execution profile"):
            cfg.validate()

    def test_awsbatch_needs_queue(self, bam):
        cfg = Config(inputs=[str(bam)], output_dir=Path("s3://bucket/out"))
        cfg.execution.profile = "awsbatch"
        cfg.execution.work_dir = "s3://bucket/work"
        with pytest.raises(ConfigurationError, match="job queue"):
            cfg.validate()

    def test_awsbatch_needs_s3_output(self, bam):
        cfg = Config(inputs=[str(bam)], output_dir=Path("/local/out"))
        cfg.execution.profile = "awsbatch"
        cfg.execution.aws_queue = "q"
        cfg.execution.work_dir = "s3://bucket/work"
        with pytest.raises(ConfigurationError, match="S3"):
            cfg.validate()

    def test_awsbatch_valid(self, bam):
        cfg = Config(inputs=[str(bam)], output_dir=Path("s3://bucket/out"))
        cfg.execution.profile = "awsbatch"
        cfg.execution.aws_queue = "q"
        cfg.execution.work_dir = "s3://bucket/work"
        cfg.validate()
        assert cfg.is_cloud_profile


class TestLoadSave:
    """Test YAML round trip."""

    def test_load_nested(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            yaml.safe_dump(
                {
                    "inputs": "a.bam",
                    "regions": ["chr1"],
                    "skip_read_qc": True,
                    "threads": 2,
                    "runtime": {"keep_tmp": True, "tmp_dir": "scratch"},
                    "performance": {"max_workers": 3, "max_memory": "4G"},
                    "tools": {"multiqc": {"title": "My run"}},
                }
            )
        )

        cfg = load_config(path)

        assert cfg.inputs == ["a.bam"]
        assert cfg.regions == ["chr1"]
        assert cfg.skip_read_qc
        assert cfg.threads == 2
        assert cfg.keep_tmp
        assert cfg.runtime.tmp_dir == Path("scratch")
        assert cfg.performance.max_workers == 3
        assert cfg.tools.multiqc["title"] == "My run"

    def test_non_mapping_rejected(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_save_then_load(self, tmp_path):
        cfg = Config(inputs=["a.bam"], regions=["chr2"], collate_fast=True)
        path = tmp_path / "saved.yaml"

        save_config(cfg, path)
        loaded = load_config(path)

        assert loaded.inputs == ["a.bam"]
        assert loaded.regions == ["chr2"]
        assert loaded.collate_fast

    def test_default_template_loads(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(get_default_config())

        cfg = load_config(path)

        assert cfg.inputs == []
        assert cfg.output_dir == Path("results")
        assert cfg.execution.profile == "local"

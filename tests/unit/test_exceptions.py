"""Tests for the exception hierarchy, exit codes and constants."""

from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[2]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from bamtofastq import constants
from bamtofastq.cli import exit_codes
from bamtofastq.exceptions import (
    BamToFastqError,
    ConfigurationError,
    DataError,
    DependencyError,
    ExternalToolError,
    NotificationError,
    PipelineError,
    RegionError,
)


def test_everything_derives_from_base():
    for exc in (
        ConfigurationError,
        DataError,
        DependencyError,
        ExternalToolError,
        NotificationError,
        PipelineError,
        RegionError,
    ):
        assert issubclass(exc, BamToFastqError)


def test_region_error_is_a_data_error():
    error = RegionError("Region 'chr3' not found", token="chr3", available=("chr1",))
    assert isinstance(error, DataError)
    assert error.available == ["chr1"]


def test_external_tool_error_details():
    error = ExternalToolError("samtools failed", command=["samtools", "view"], returncode=1, stderr="x")
    assert str(error) == "samtools failed"
    assert error.command == ["samtools", "view"]
    assert error.returncode == 1


def test_exit_codes():
    assert exit_codes.EXIT_SUCCESS == 0
    assert exit_codes.EXIT_ERROR == 1
    assert exit_codes.EXIT_USAGE == 2
    assert exit_codes.EXIT_SIGINT == 128 + 2
    assert exit_codes.EXIT_SIGTERM == 128 + 15


def test_flag_constants():
    assert constants.FLAG_NON_PRIMARY == 0x900
    assert constants.PAIRING_SAMPLE_SIZE == 1000
    assert constants.DEFAULT_READS_IN_MEMORY == 100000

"""Configuration management for bamtofastq."""

from __future__ import annotations

import glob
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml

from bamtofastq.constants import (
    DEFAULT_READS_IN_MEMORY,
    PIPELINE_INFO_SUBDIR,
    READS_SUBDIR,
    REPORTS_SUBDIR,
)
from bamtofastq.exceptions import ConfigurationError

# Execution profiles whose work and output directories must live on S3
CLOUD_PROFILES = ("awsbatch",)
KNOWN_PROFILES = ("local",) + CLOUD_PROFILES


@dataclass
class RuntimeConfig:
    """Runtime configuration."""

    log_level: str = "WARNING"
    log_file: Optional[Path] = None
    tmp_dir: Path = Path(".tmp_work")
    keep_tmp: bool = False
    # Exit 0 even when individual samples failed
    allow_sample_failures: bool = False
    # Enable tqdm progress where available
    enable_progress: bool = True


@dataclass
class PerformanceConfig:
    """Performance and per-unit resource ceilings."""

    # Threads handed to each external tool invocation
    threads: int = 4
    # Samples processed concurrently
    max_workers: int = 2
    # Upper bound on threads for any one invocation (None = no cap)
    max_cpus: Optional[int] = None
    # Memory hint for tools that accept one, e.g. "8G" (None = tool default)
    max_memory: Optional[str] = None
    # Timeout in seconds for each external tool invocation (None = no timeout)
    max_time: Optional[int] = None

    @property
    def tool_threads(self) -> int:
        if self.max_cpus is not None:
            return max(1, min(self.threads, self.max_cpus))
        return self.threads


@dataclass
class ExecutionConfig:
    """Execution profile settings."""

    profile: str = "local"
    aws_queue: Optional[str] = None
    aws_region: str = "eu-west-1"
    work_dir: Optional[str] = None


@dataclass
class ToolConfig:
    """External tool configuration."""

    fastqc: Dict[str, Any] = field(default_factory=dict)
    multiqc: Dict[str, Any] = field(default_factory=lambda: {"title": None})


@dataclass
class Config:
    """Main configuration class."""

    # Input BAM paths or glob patterns
    inputs: List[str] = field(default_factory=list)
    output_dir: Path = Path("results")

    # Region restriction: contig or contig:start-end tokens
    regions: List[str] = field(default_factory=list)
    # Indices are expected next to each BAM instead of being built
    index_provided: bool = False

    # samtools collate fast mode
    collate_fast: bool = False
    reads_in_memory: int = DEFAULT_READS_IN_MEMORY

    # Stage skip flags
    skip_read_qc: bool = False
    skip_all_stats: bool = False

    # Notification recipients
    email: List[str] = field(default_factory=list)
    email_on_fail: List[str] = field(default_factory=list)

    # Sub-configurations
    runtime: RuntimeConfig = field(default_factory=RuntimeConfig)
    performance: PerformanceConfig = field(default_factory=PerformanceConfig)
    execution: ExecutionConfig = field(default_factory=ExecutionConfig)
    tools: ToolConfig = field(default_factory=ToolConfig)

    # Convenience properties
    @property
    def threads(self) -> int:
        return self.performance.threads

    @threads.setter
    def threads(self, value: int):
        self.performance.threads = value

    @property
    def keep_tmp(self) -> bool:
        return self.runtime.keep_tmp

    @keep_tmp.setter
    def keep_tmp(self, value: bool):
        self.runtime.keep_tmp = value

    @property
    def skip_read_qc_effective(self) -> bool:
        """Read QC is skipped on request or when all statistics are skipped."""
        return self.skip_read_qc or self.skip_all_stats

    @property
    def reads_dir(self) -> Path:
        return Path(self.output_dir) / READS_SUBDIR

    @property
    def reports_dir(self) -> Path:
        return Path(self.output_dir) / REPORTS_SUBDIR

    @property
    def pipeline_info_dir(self) -> Path:
        return Path(self.output_dir) / PIPELINE_INFO_SUBDIR

    def expand_inputs(self) -> List[Path]:
        """Expand glob patterns in `inputs` into a sorted, de-duplicated path list."""
        paths: List[Path] = []
        seen: set[Path] = set()
        for entry in self.inputs:
            entry = str(entry)
            if glob.has_magic(entry):
                matches = sorted(glob.glob(entry))
                if not matches:
                    raise ConfigurationError(f"Input pattern matched no files: {entry}")
            else:
                matches = [entry]
            for match in matches:
                path = Path(match)
                if path not in seen:
                    seen.add(path)
                    paths.append(path)
        return paths

    def validate(self) -> None:
        """Validate configuration."""
        if not self.inputs:
            raise ConfigurationError("At least one input BAM file is required")
        for path in self.expand_inputs():
            if not path.exists():
                raise ConfigurationError(f"Input file not found: {path}")
            if not path.is_file():
                raise ConfigurationError(f"Input is not a file: {path}")

        # Validate numeric ranges
        if self.performance.threads < 1:
            raise ConfigurationError("Threads must be >= 1")
        if self.performance.max_workers < 1:
            raise ConfigurationError("max_workers must be >= 1")
        if self.performance.max_cpus is not None and self.performance.max_cpus < 1:
            raise ConfigurationError("max_cpus must be >= 1")
        if self.performance.max_time is not None and self.performance.max_time <= 0:
            raise ConfigurationError("max_time must be a positive number of seconds")
        if self.reads_in_memory < 1:
            raise ConfigurationError("reads_in_memory must be >= 1")

        for token in self.regions:
            if not str(token).strip():
                raise ConfigurationError("Empty region token")

        self._validate_execution()

        # Validate runtime tmp_dir safety.
        tmp_dir = Path(self.runtime.tmp_dir)
        if not tmp_dir.is_absolute():
            if tmp_dir == Path(".") or str(tmp_dir).strip() in {"", "."}:
                raise ConfigurationError(
                    "Invalid runtime.tmp_dir: must be a subdirectory (not '.'). "
                    "Use an absolute path if you want an external temp directory."
                )
            if ".." in tmp_dir.parts:
                raise ConfigurationError(
                    "Invalid runtime.tmp_dir: must not contain '..'. "
                    "Use an absolute path if you want an external temp directory."
                )

    def _validate_execution(self) -> None:
        profile = self.execution.profile
        if profile not in KNOWN_PROFILES:
            raise ConfigurationError(
                f"Unknown execution profile '{profile}'. "
                f"Choose one of: {', '.join(KNOWN_PROFILES)}"
            )
        if profile not in CLOUD_PROFILES:
            return

        if not self.execution.aws_queue:
            raise ConfigurationError("Specify an AWS Batch job queue (execution.aws_queue)")
        if not self.execution.aws_region:
            raise ConfigurationError("Specify an AWS region (execution.aws_region)")
        if not str(self.output_dir).startswith("s3:/"):
            raise ConfigurationError(
                f"Output directory must be an S3 path for the {profile} profile: {self.output_dir}"
            )
        work_dir = self.execution.work_dir
        if not work_dir or not work_dir.startswith("s3:/"):
            raise ConfigurationError(
                f"Work directory must be an S3 path for the {profile} profile: {work_dir}"
            )

    @property
    def is_cloud_profile(self) -> bool:
        return self.execution.profile in CLOUD_PROFILES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""

        def path_to_str(obj):
            if isinstance(obj, Path):
                return str(obj)
            elif isinstance(obj, dict):
                return {k: path_to_str(v) for k, v in obj.items()}
            elif isinstance(obj, (list, tuple)):
                return [path_to_str(item) for item in obj]
            return obj

        return path_to_str(asdict(self))


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [str(value)]


def load_config(path: Path) -> Config:
    """Load configuration from YAML file."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file must contain a mapping: {path}")

    def build_config(data: Dict[str, Any]) -> Config:
        cfg = Config()

        # Direct attributes
        if "inputs" in data:
            cfg.inputs = _as_list(data["inputs"])
        if "output_dir" in data and data["output_dir"] is not None:
            cfg.output_dir = Path(data["output_dir"])
        if "regions" in data:
            cfg.regions = _as_list(data["regions"])
        if "email" in data:
            cfg.email = _as_list(data["email"])
        if "email_on_fail" in data:
            cfg.email_on_fail = _as_list(data["email_on_fail"])
        if "reads_in_memory" in data and data["reads_in_memory"] is not None:
            cfg.reads_in_memory = int(data["reads_in_memory"])
        if "threads" in data and data["threads"] is not None:
            cfg.performance.threads = data["threads"]

        for flag in ["index_provided", "collate_fast", "skip_read_qc", "skip_all_stats"]:
            if flag in data:
                setattr(cfg, flag, bool(data[flag]))

        # Runtime config
        if "runtime" in data:
            for key, value in (data["runtime"] or {}).items():
                if hasattr(cfg.runtime, key):
                    if key in ["log_file", "tmp_dir"] and value:
                        value = Path(value)
                    setattr(cfg.runtime, key, value)

        # Performance config
        if "performance" in data:
            for key, value in (data["performance"] or {}).items():
                if hasattr(cfg.performance, key):
                    setattr(cfg.performance, key, value)

        # Execution config
        if "execution" in data:
            for key, value in (data["execution"] or {}).items():
                if hasattr(cfg.execution, key):
                    setattr(cfg.execution, key, value)

        # Tool config
        if "tools" in data:
            for tool, params in (data["tools"] or {}).items():
                if hasattr(cfg.tools, tool):
                    if params is None:
                        continue
                    setattr(cfg.tools, tool, params)

        return cfg

    return build_config(data)


def save_config(cfg: Config, path: Path) -> None:
    """Save configuration to YAML file."""
    data = cfg.to_dict()
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False)

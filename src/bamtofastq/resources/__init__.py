"""Resource files and configuration templates."""


def get_default_config() -> str:
    """Return default configuration YAML content."""
    return """# bamtofastq Configuration File

# Input BAM files or glob patterns (can be overridden by --input)
inputs: []
output_dir: "results"

# Restrict conversion to these regions (contig or contig:start-end)
regions: []
# Expect an existing index next to every BAM instead of building one
index_provided: false

# samtools collate fast mode and its in-memory record count
collate_fast: false
reads_in_memory: 100000

# Stage skip flags
skip_read_qc: false
skip_all_stats: false

# Completion e-mail: `email` always, `email_on_fail` only on failures
email: []
email_on_fail: []

# Runtime settings
runtime:
  log_level: "WARNING"
  log_file: ~
  tmp_dir: ".tmp_work"
  keep_tmp: false
  allow_sample_failures: false
  enable_progress: true

# Performance settings
performance:
  threads: 4
  max_workers: 2
  max_cpus: ~
  max_memory: ~
  max_time: ~

# Execution profile: local or awsbatch
execution:
  profile: "local"
  aws_queue: ~
  aws_region: "eu-west-1"
  work_dir: ~

# External tool parameters
tools:
  fastqc:
    extra_args: []
  multiqc:
    title: ~
"""

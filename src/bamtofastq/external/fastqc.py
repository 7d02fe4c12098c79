"""FastQC wrapper."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Optional, Sequence

from bamtofastq.external.base import ExternalTool


def memory_to_megabytes(memory: str) -> int:
    """Convert a memory string such as '8G' or '512M' into megabytes."""
    match = re.fullmatch(r"\s*(\d+(?:\.\d+)?)\s*([KMGT]?)B?\s*", memory, flags=re.IGNORECASE)
    if not match:
        raise ValueError(f"Unrecognised memory value: {memory!r}")
    amount = float(match.group(1))
    unit = match.group(2).upper()
    factors = {"K": 1 / 1024, "": 1, "M": 1, "G": 1024, "T": 1024 * 1024}
    return max(1, int(amount * factors[unit]))


class FastQC(ExternalTool):
    """FastQC read quality reports."""

    tool_name = "fastqc"

    def run_qc(
        self,
        fastq_files: Sequence[Path],
        output_dir: Path,
        max_memory: Optional[str] = None,
        extra_args: Optional[Sequence[str]] = None,
    ) -> None:
        """Run FastQC on `fastq_files`, writing HTML/zip reports to `output_dir`."""
        cmd = [
            self.tool_name,
            "--quiet",
            "--threads", str(self.threads),
            "--outdir", str(output_dir),
        ]
        if max_memory:
            cmd.extend(["--memory", str(memory_to_megabytes(max_memory))])
        if extra_args:
            cmd.extend(str(a) for a in extra_args)
        cmd.extend(str(f) for f in fastq_files)

        output_dir.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        self.logger.info(f"FastQC reports for {len(fastq_files)} file(s) saved to: {output_dir}")

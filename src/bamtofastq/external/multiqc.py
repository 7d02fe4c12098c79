"""MultiQC wrapper."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from bamtofastq.external.base import ExternalTool


class MultiQC(ExternalTool):
    """MultiQC report aggregation."""

    tool_name = "multiqc"

    def aggregate(
        self,
        search_dirs: Sequence[Path],
        output_dir: Path,
        title: Optional[str] = None,
        filename: str = "multiqc_report.html",
    ) -> Path:
        """Aggregate every recognised report under `search_dirs` into one HTML report."""
        cmd = [
            self.tool_name,
            "--force",
            "--outdir", str(output_dir),
            "--filename", filename,
        ]
        if title:
            cmd.extend(["--title", title])
        cmd.extend(str(d) for d in search_dirs)

        output_dir.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        report = output_dir / filename
        self.logger.info(f"MultiQC report saved to: {report}")
        return report

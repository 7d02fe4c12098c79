"""Samtools wrapper."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Sequence

from bamtofastq.constants import FLAG_NON_PRIMARY
from bamtofastq.external.base import ExternalTool


class Samtools(ExternalTool):
    """Samtools BAM manipulation, conversion and statistics."""

    tool_name = "samtools"
    required_version = "1.10"

    def index(self, bam_file: Path) -> Path:
        """Index BAM file and return the index path."""
        cmd = [
            self.tool_name, "index",
            "-@", str(self.threads),
            str(bam_file),
        ]

        stdout, stderr = self.run(cmd, capture_output=True)
        if stdout:
            self.logger.debug(f"samtools index output: {stdout[:500]}")
        index_path = Path(f"{bam_file}.bai")
        self.logger.info(f"BAM index created: {index_path}")
        return index_path

    def view_regions(self, bam_file: Path, regions: Sequence[str], output_bam: Path) -> None:
        """Write records overlapping any of `regions` to a new BAM.

        `-M` uses the multi-region iterator so a record overlapping several
        regions is written only once.
        """
        cmd = [
            self.tool_name, "view",
            "-@", str(self.threads),
            "-b", "-M",
            "-o", str(output_bam),
            str(bam_file),
            *[str(r) for r in regions],
        ]

        output_bam.parent.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        self.logger.info(f"Region-filtered BAM saved to: {output_bam}")

    def view_flags(
        self,
        bam_file: Path,
        output_bam: Path,
        require: int = 0,
        exclude: int = 0,
    ) -> None:
        """Write records with all `require` bits set and no `exclude` bits set."""
        cmd = [
            self.tool_name, "view",
            "-@", str(self.threads),
            "-b",
            "-f", str(require),
            "-F", str(exclude),
            "-o", str(output_bam),
            str(bam_file),
        ]

        output_bam.parent.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        self.logger.debug(f"Flag-filtered BAM (-f {require} -F {exclude}) saved to: {output_bam}")

    def count(self, bam_file: Path, require: int = 0, exclude: int = 0) -> int:
        """Count records with all `require` bits set and no `exclude` bits set."""
        cmd = [
            self.tool_name, "view",
            "-@", str(self.threads),
            "-c",
            "-f", str(require),
            "-F", str(exclude),
            str(bam_file),
        ]

        stdout, _ = self.run(cmd, capture_output=True)
        return int(stdout.strip() or 0)

    def merge(self, input_bams: Sequence[Path], output_bam: Path) -> None:
        """Merge BAM files into one; empty inputs are accepted."""
        cmd = [
            self.tool_name, "merge",
            "-@", str(self.threads),
            "-f",
            str(output_bam),
            *[str(b) for b in input_bams],
        ]

        output_bam.parent.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        self.logger.info(f"Merged {len(input_bams)} BAM files into: {output_bam}")

    def collate(
        self,
        bam_file: Path,
        output_bam: Path,
        fast: bool = False,
        reads_in_memory: Optional[int] = None,
        tmp_prefix: Optional[Path] = None,
    ) -> None:
        """Group records so mates are adjacent.

        Fast mode (`-f`) keeps up to `reads_in_memory` records in memory and
        only outputs primary alignments.
        """
        cmd = [
            self.tool_name, "collate",
            "-@", str(self.threads),
        ]
        if fast:
            cmd.append("-f")
            if reads_in_memory:
                cmd.extend(["-r", str(reads_in_memory)])
        cmd.extend(["-o", str(output_bam), str(bam_file)])
        if tmp_prefix is not None:
            cmd.append(str(tmp_prefix))

        output_bam.parent.mkdir(parents=True, exist_ok=True)
        self.run(cmd, capture_output=True)
        self.logger.info(f"Collated BAM saved to: {output_bam}")

    def fastq_paired(
        self,
        bam_file: Path,
        mate1: Path,
        mate2: Path,
        singleton: Path,
        other: Path,
    ) -> None:
        """Convert a collated BAM into mate-1, mate-2 and singleton FASTQ files.

        Records flagged as neither or both of READ1/READ2 are routed to `other`.
        """
        cmd = [
            self.tool_name, "fastq",
            "-@", str(self.threads),
            "-n",
            "-F", str(FLAG_NON_PRIMARY),
            "-1", str(mate1),
            "-2", str(mate2),
            "-s", str(singleton),
            "-0", str(other),
            str(bam_file),
        ]

        mate1.parent.mkdir(parents=True, exist_ok=True)
        stdout, stderr = self.run(cmd, capture_output=True)
        if stderr:
            self.logger.debug(f"samtools fastq: {stderr.strip()[:500]}")

    def fastq_single(self, bam_file: Path, output_fastq: Path) -> None:
        """Convert every primary record of a BAM into one gzip FASTQ file."""
        cmd = [
            self.tool_name, "fastq",
            "-@", str(self.threads),
            "-n",
            "-F", str(FLAG_NON_PRIMARY),
            str(bam_file),
        ]

        self.stream_to_gzip(cmd, output_fastq)
        self.logger.info(f"Single-end FASTQ saved to: {output_fastq}")

    def idxstats(self, bam_file: Path, output_file: Path) -> None:
        """Write per-contig mapped/unmapped counts."""
        self._write_report("idxstats", bam_file, output_file)

    def flagstat(self, bam_file: Path, output_file: Path) -> None:
        """Write FLAG summary statistics."""
        self._write_report("flagstat", bam_file, output_file)

    def stats(self, bam_file: Path, output_file: Path) -> None:
        """Write comprehensive alignment statistics."""
        self._write_report("stats", bam_file, output_file)

    def _write_report(self, subcommand: str, bam_file: Path, output_file: Path) -> None:
        cmd = [self.tool_name, subcommand]
        # idxstats reads only the index and takes no thread option
        if subcommand != "idxstats":
            cmd.extend(["-@", str(self.threads)])
        cmd.append(str(bam_file))

        stdout, _ = self.run(cmd, capture_output=True)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_text(stdout)
        self.logger.info(f"samtools {subcommand} report saved to: {output_file}")

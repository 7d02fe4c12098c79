"""Shared constants for bamtofastq.

SAM FLAG bits, classifier parameters and output naming live here so the
stages and the tests agree on a single definition.
"""

# ================== SAM FLAG bits ==================
FLAG_PAIRED: int = 0x1
FLAG_PROPER_PAIR: int = 0x2
FLAG_UNMAPPED: int = 0x4
FLAG_MATE_UNMAPPED: int = 0x8
FLAG_REVERSE: int = 0x10
FLAG_MATE_REVERSE: int = 0x20
FLAG_READ1: int = 0x40
FLAG_READ2: int = 0x80
FLAG_SECONDARY: int = 0x100
FLAG_QCFAIL: int = 0x200
FLAG_DUPLICATE: int = 0x400
FLAG_SUPPLEMENTARY: int = 0x800

# Secondary and supplementary alignments duplicate a primary record's sequence
FLAG_NON_PRIMARY: int = FLAG_SECONDARY | FLAG_SUPPLEMENTARY


# ================== Pairing classifier ==================
# Number of body records inspected to decide paired vs single-end
PAIRING_SAMPLE_SIZE: int = 1000


# ================== Collation ==================
# Records kept in memory by `samtools collate -f`
DEFAULT_READS_IN_MEMORY: int = 100000


# ================== Output naming ==================
FASTQ_EXTENSION: str = "fq.gz"
READS_SUBDIR: str = "reads"
REPORTS_SUBDIR: str = "reports"
PIPELINE_INFO_SUBDIR: str = "pipeline_info"

"""Version information for bamtofastq."""

__version__ = "0.1.0"
__author__ = "bamtofastq developers"
__license__ = "MIT"
__description__ = "Convert aligned or unaligned BAM files into paired or single-end FASTQ files"

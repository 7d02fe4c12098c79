"""External tool wrappers."""

from bamtofastq.external.base import ExternalTool
from bamtofastq.external.samtools import Samtools
from bamtofastq.external.fastqc import FastQC
from bamtofastq.external.multiqc import MultiQC
from bamtofastq.external.sendmail import Sendmail

__all__ = ["ExternalTool", "Samtools", "FastQC", "MultiQC", "Sendmail"]

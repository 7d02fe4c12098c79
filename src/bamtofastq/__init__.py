"""bamtofastq: regenerate paired or single-end FASTQ files from BAM alignments.

Every primary read is written exactly once; mapped and unmapped read sets are
rejoined per sample so mate pairing is preserved.
"""

from bamtofastq.__version__ import (
    __version__,
    __author__,
    __license__,
    __description__,
)

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "__description__",
]

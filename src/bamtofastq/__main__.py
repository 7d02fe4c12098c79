"""Allow `python -m bamtofastq`."""

import sys

from bamtofastq.cli.main import main

if __name__ == "__main__":
    sys.exit(main())

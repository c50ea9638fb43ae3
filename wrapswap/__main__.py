"""Entry point: python -m wrapswap TRACE.yaml [...]"""

import sys

from .framework.runner import main


if __name__ == "__main__":
    sys.exit(main())

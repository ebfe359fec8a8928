"""Allow ``python -m ddmerge``."""

import sys

from ddmerge.main import main


if __name__ == '__main__':
    sys.exit(main())

"""
Worker entrypoint.

Run:
  python -m instance <nine encoded arguments>
"""

import sys

from .program import main


if __name__ == "__main__":
    sys.exit(main())

"""dexbridge swap CLI entry point: python -m dexbridge.swap"""

from __future__ import annotations

import sys

from dexbridge.swap.cli import main


if __name__ == "__main__":
    sys.exit(main())

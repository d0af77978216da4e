"""
Module execution entry point.

Allows running with: python -m bridge_cli
"""

import sys
from bridge_cli.main import main

if __name__ == "__main__":
    sys.exit(main())

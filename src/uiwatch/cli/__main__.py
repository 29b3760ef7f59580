"""
Allow running uiwatchctl as a module: python -m uiwatch.cli
"""

import sys
from .uiwatchctl import main

if __name__ == "__main__":
    sys.exit(main())

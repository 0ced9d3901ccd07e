"""
bytecode_cfg/__main__.py
========================

Entry point for ``python -m bytecode_cfg``.  See :mod:`bytecode_cfg.main`.
"""

import sys

from bytecode_cfg.main import main

if __name__ == "__main__":
    sys.exit(main())

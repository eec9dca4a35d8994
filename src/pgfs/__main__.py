"""Entry point for ``python -m pgfs``."""

import sys

from pgfs.cli import main

sys.exit(main())

"""Entry point for `python -m nomenklatura.interface`."""

import sys

from .audit import main

sys.exit(main())

"""Module entry point: python -m confluence_signals."""

import sys

from .cli import main

sys.exit(main())

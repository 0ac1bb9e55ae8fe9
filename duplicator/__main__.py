"""Allow running the build tool with ``python -m duplicator``."""

import sys

from duplicator.build.cli import main

sys.exit(main())

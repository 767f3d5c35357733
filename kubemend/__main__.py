"""Allow ``python -m kubemend``."""

import sys

from kubemend.cli import main

sys.exit(main())

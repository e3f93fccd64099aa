"""Allow ``python -m tcswitch``."""

import sys

from .cli import main

sys.exit(main())

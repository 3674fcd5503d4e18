"""Allow ``python -m secureclone``."""

import sys

from .cli import main

sys.exit(main())

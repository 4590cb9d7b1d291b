"""Allow ``python -m kaleido``."""

import sys

from .cli import main

sys.exit(main())

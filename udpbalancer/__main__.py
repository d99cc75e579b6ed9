"""Allow ``python -m udpbalancer``."""

import sys

from udpbalancer.cli import main

sys.exit(main())

"""Allow `python -m kubedrop`."""

import sys

from kubedrop.main import main

sys.exit(main())

"""Allow `python -m spdmfuzz`."""

import sys

from .main import main

sys.exit(main())

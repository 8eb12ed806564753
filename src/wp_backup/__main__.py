"""Allow ``python -m wp_backup``."""

import sys

from wp_backup.cli import main

sys.exit(main())

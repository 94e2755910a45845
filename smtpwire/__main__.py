"""Allow ``python -m smtpwire``."""

import sys

from smtpwire.cli import main

sys.exit(main())

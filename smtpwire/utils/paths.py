"""Centralised path definitions for smtpwire.

The only files smtpwire writes are its logs. The base directory can be
moved with the ``SMTPWIRE_HOME`` environment variable.
"""

import os
from pathlib import Path

# Base application directory
SMTPWIRE_DIR = Path(os.environ.get("SMTPWIRE_HOME", Path.home() / ".smtpwire"))

# Subdirectories
LOGS_DIR = SMTPWIRE_DIR / "logs"

# Specific files
LOG_FILE_PATH = LOGS_DIR / "smtpwire.log"

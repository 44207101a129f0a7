"""Centralized path definitions for courier.

Every location courier writes to lives under a single base directory,
which defaults to ``~/.courier`` and can be moved with ``COURIER_HOME``.
"""

import os
from pathlib import Path

# Base application directory
COURIER_DIR = Path(os.environ.get("COURIER_HOME") or Path.home() / ".courier")

# Subdirectories
LOGS_DIR = COURIER_DIR / "logs"

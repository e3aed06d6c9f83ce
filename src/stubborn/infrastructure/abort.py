"""Default abort handler for the must-run policy"""

from __future__ import annotations

import logging
import sys
from typing import NoReturn

logger = logging.getLogger(__name__)


def fatal_abort(message: str) -> NoReturn:
    """Log a fatal diagnostic and terminate the process with status 1"""
    logger.critical(message)
    sys.exit(1)

"""Logging helpers for the dashboard.

Avoids configuring global logging in tests.
"""

from __future__ import annotations

import logging

logger = logging.getLogger("portal.dashboard")


def get_logger(name: str) -> logging.Logger:
    """Child logger under the dashboard namespace."""
    return logger.getChild(name.rsplit(".", 1)[-1])

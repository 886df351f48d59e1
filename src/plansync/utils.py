"""Common utility functions and helpers."""

from __future__ import annotations

import time


def epoch_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return int(time.time() * 1000)

"""
Helpers shared by the route modules.
"""

from __future__ import annotations

from typing import Optional

DEFAULT_COUNT = 10
DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


def positive_int(value: Optional[str], default: int) -> int:
    """Parse a query parameter, falling back to ``default`` on junk or non-positive values."""
    try:
        number = int(value) if value is not None else default
    except ValueError:
        return default
    return number if number > 0 else default

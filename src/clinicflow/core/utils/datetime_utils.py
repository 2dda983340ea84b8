"""
Date and time utility functions.
"""

from datetime import datetime, timezone


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(timezone.utc)


def format_duration(seconds: float) -> str:
    """Render a wait time the way queue cards show it (``12m``, ``1h 5m``)."""
    total_minutes = max(0, int(seconds // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours:
        return f"{hours}h {minutes}m"
    return f"{minutes}m"

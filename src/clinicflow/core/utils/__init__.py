from .datetime_utils import format_duration, get_current_timestamp

__all__ = ["get_current_timestamp", "format_duration"]

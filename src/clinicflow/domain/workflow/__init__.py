"""
Pure workflow policies: routing, billing, stage queues and timing.
"""

from . import billing, queue, routing, timing

__all__ = ["billing", "queue", "routing", "timing"]

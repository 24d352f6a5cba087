"""Domain primitives shared by projection handlers and version stores.

- Event: Envelope for events delivered to projections
- utc_now: UTC timestamp factory used for event timestamps
"""

from .event import Event, utc_now

__all__ = [
    "Event",
    "utc_now",
]

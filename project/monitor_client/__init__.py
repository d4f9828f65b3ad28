"""
Client for the machine monitoring API: an explicit session, one typed call
per endpoint and the pollers behind the live dashboard views.
"""
from .exceptions import ApiError, StoreError
from .poller import Poller, control_poller, format_elapsed, surveillance_poller
from .session import Session

__all__ = [
    "ApiError",
    "Poller",
    "Session",
    "StoreError",
    "control_poller",
    "format_elapsed",
    "surveillance_poller",
]

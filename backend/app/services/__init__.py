"""
Backend services for PR Pulse.
"""

from . import pull_request_service, realtime_service

__all__ = [
    "pull_request_service",
    "realtime_service",
]

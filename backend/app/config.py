"""
Application configuration using Pydantic settings.

The backend reads the same settings as the library; import from here inside
backend/app so routers do not reach into prpulse directly for configuration.
"""

from prpulse.config import Settings, get_settings

__all__ = ["Settings", "get_settings"]

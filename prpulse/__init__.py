"""
PR Pulse Core Library.

Webhook-driven cache invalidation and realtime fan-out for the pull request
dashboard: a two-tier cache, GitHub webhook validation and routing, and a
topic-based realtime hub.

Usage:
    # Config
    from prpulse.config import get_settings

    # Logging
    from prpulse.logging import get_logger, configure_logging

    # Cache
    from prpulse.cache import TieredCache, SqlCacheStore

    # Webhooks / realtime
    from prpulse.webhooks import WebhookRouter, WebhookValidator
    from prpulse.realtime import RealtimeHub
"""

__version__ = "1.0.0"

# Import directly from submodules; this package does not re-export them
# to keep `prpulse.config` importable without the database stack.

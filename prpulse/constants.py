"""
Application constants for PR Pulse.

Contains webhook header names, event kinds, realtime event names and the
actions that trigger cache invalidation.
"""

# =============================================================================
# Webhook Headers
# =============================================================================

SIGNATURE_HEADER = "X-Hub-Signature-256"
EVENT_HEADER = "X-GitHub-Event"
DELIVERY_HEADER = "X-GitHub-Delivery"

SIGNATURE_PREFIX = "sha256="

# =============================================================================
# Cache Invalidation
# =============================================================================

# pull_request actions that change what a PR listing returns.
# Every pull_request_review action invalidates regardless of this set.
WEBHOOK_INVALIDATING_PR_ACTIONS = frozenset(
    {"opened", "closed", "reopened", "edited", "synchronize"}
)

# =============================================================================
# Realtime Events (server -> client)
# =============================================================================

EVENT_PR_UPDATED = "pr:updated"
EVENT_PR_CREATED = "pr:created"
EVENT_PR_DELETED = "pr:deleted"
EVENT_WEBHOOK_PR = "webhook:pr"
EVENT_WEBHOOK_ISSUE = "webhook:issue"
EVENT_WEBHOOK_EVENT = "webhook:event"
EVENT_DEPLOYMENT_UPDATE = "deployment:update"
EVENT_NOTIFICATION = "notification"
EVENT_SYSTEM_MESSAGE = "system:message"
EVENT_ERROR = "error"

# =============================================================================
# Realtime Events (client -> server)
# =============================================================================

CLIENT_SUBSCRIBE_REPOSITORY = "subscribe:repository"
CLIENT_UNSUBSCRIBE_REPOSITORY = "unsubscribe:repository"
CLIENT_SUBSCRIBE_USER = "subscribe:user"
CLIENT_UNSUBSCRIBE_USER = "unsubscribe:user"
CLIENT_PR_UPDATE_STATUS = "pr:update_status"

PR_STATUSES = ("draft", "open", "closed", "merged")
SYSTEM_MESSAGE_TYPES = ("info", "warning", "error")

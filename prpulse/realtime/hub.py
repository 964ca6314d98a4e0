"""
Realtime fan-out hub.

Tracks which connections belong to which topics (`repo:<owner/name>`,
`user:<id>`) and delivers events to them. Membership changes and broadcasts
are synchronous: they only touch in-process maps and enqueue frames, so a
broadcast can never interleave with a subscribe.

Usage:
    hub = RealtimeHub()
    connection = hub.connect(ClientConnection(websocket.send_json))
    hub.subscribe(connection.id, repo_topic("acme/widgets"))
    hub.broadcast(repo_topic("acme/widgets"), "webhook:pr", {"action": "opened", ...})
"""

from collections.abc import Mapping
from typing import Any, Optional

from prpulse.constants import (
    EVENT_DEPLOYMENT_UPDATE,
    EVENT_NOTIFICATION,
    EVENT_PR_CREATED,
    EVENT_PR_DELETED,
    EVENT_PR_UPDATED,
    EVENT_SYSTEM_MESSAGE,
    SYSTEM_MESSAGE_TYPES,
)
from prpulse.logging import get_logger
from prpulse.timeutils import iso_timestamp

from .connection import ClientConnection
from .topics import repo_topic, repository_from_pr_id, user_topic

logger = get_logger("realtime")


class RealtimeHub:
    """
    Subscription table plus broadcast.

    Delivery is best-effort: a full outbox or dead connection only affects
    that connection. Per topic, frames reach each subscriber in the order
    they were broadcast.
    """

    def __init__(self, queue_size: int = 256):
        self.queue_size = queue_size
        self._connections: dict[str, ClientConnection] = {}
        self._topics: dict[str, set[str]] = {}

    # =========================================================================
    # Membership
    # =========================================================================

    def connect(self, connection: ClientConnection) -> ClientConnection:
        """Register a connection and start its pump. Requires a running loop."""
        self._connections[connection.id] = connection
        connection.start(on_dead=self.on_disconnect)
        logger.info("realtime_connected", connection_id=connection.id)
        return connection

    def subscribe(self, connection_id: str, topic: str) -> bool:
        """Join topic. Idempotent; False for unknown connections."""
        connection = self._connections.get(connection_id)
        if connection is None:
            return False
        if topic not in connection.topics:
            connection.topics.add(topic)
            self._topics.setdefault(topic, set()).add(connection_id)
            logger.debug("realtime_subscribed", connection_id=connection_id, topic=topic)
        return True

    def unsubscribe(self, connection_id: str, topic: str) -> None:
        """Leave topic. Leaving a topic never joined is a no-op."""
        connection = self._connections.get(connection_id)
        if connection is not None:
            connection.topics.discard(topic)
        self._leave(connection_id, topic)

    def on_disconnect(self, connection_id: str) -> None:
        """Drop the connection from every topic and stop its delivery."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return
        for topic in list(connection.topics):
            self._leave(connection_id, topic)
        connection.topics.clear()
        connection.close()
        logger.info("realtime_disconnected", connection_id=connection_id)

    def _leave(self, connection_id: str, topic: str) -> None:
        members = self._topics.get(topic)
        if members is None:
            return
        members.discard(connection_id)
        if not members:
            del self._topics[topic]

    def subscribers(self, topic: str) -> frozenset[str]:
        return frozenset(self._topics.get(topic, ()))

    def connected_clients_count(self) -> int:
        return len(self._connections)

    # =========================================================================
    # Delivery
    # =========================================================================

    @staticmethod
    def _stamp(payload: Optional[Mapping[str, Any]]) -> dict[str, Any]:
        data = dict(payload or {})
        data["timestamp"] = iso_timestamp()
        return data

    def broadcast(self, topic: str, event: str, payload: Optional[Mapping[str, Any]] = None) -> int:
        """Deliver to every subscriber of topic; returns how many frames were queued."""
        data = self._stamp(payload)
        delivered = 0
        for connection_id in list(self._topics.get(topic, ())):
            connection = self._connections.get(connection_id)
            if connection is not None and connection.enqueue(event, data):
                delivered += 1
        logger.debug("realtime_broadcast", topic=topic, event_name=event, delivered=delivered)
        return delivered

    def broadcast_global(self, event: str, payload: Optional[Mapping[str, Any]] = None) -> int:
        """Deliver to every connected client regardless of subscriptions."""
        data = self._stamp(payload)
        delivered = 0
        for connection in list(self._connections.values()):
            if connection.enqueue(event, data):
                delivered += 1
        return delivered

    # =========================================================================
    # Dashboard events
    # =========================================================================

    def broadcast_pr_update(self, pr_id: str, update: Mapping[str, Any]) -> int:
        """`pr:updated` to the repository encoded in pr_id; ignored if pr_id is unparseable."""
        repository = repository_from_pr_id(pr_id)
        if repository is None:
            logger.info("realtime_pr_id_unparseable", pr_id=pr_id)
            return 0
        return self.broadcast(
            repo_topic(repository), EVENT_PR_UPDATED, {"prId": pr_id, "update": dict(update)}
        )

    def broadcast_new_pr(self, pull_request: Mapping[str, Any]) -> int:
        repository = pull_request.get("repository")
        if not isinstance(repository, str) or not repository:
            return 0
        return self.broadcast(
            repo_topic(repository), EVENT_PR_CREATED, {"pullRequest": dict(pull_request)}
        )

    def broadcast_pr_deleted(self, pr_id: str, repository: str) -> int:
        return self.broadcast(repo_topic(repository), EVENT_PR_DELETED, {"prId": pr_id})

    def broadcast_deployment(self, repository: str, deployment: Mapping[str, Any]) -> int:
        return self.broadcast(
            repo_topic(repository),
            EVENT_DEPLOYMENT_UPDATE,
            {**deployment, "repository": repository},
        )

    def notify_user(self, user_id: str, notification: Mapping[str, Any]) -> int:
        return self.broadcast(user_topic(user_id), EVENT_NOTIFICATION, notification)

    def broadcast_system_message(self, message: str, type: str = "info") -> int:
        if type not in SYSTEM_MESSAGE_TYPES:
            raise ValueError(f"system message type must be one of {SYSTEM_MESSAGE_TYPES}")
        return self.broadcast_global(EVENT_SYSTEM_MESSAGE, {"message": message, "type": type})

    def close(self) -> None:
        """Disconnect every client. Used at shutdown."""
        for connection_id in list(self._connections):
            self.on_disconnect(connection_id)


__all__ = ["RealtimeHub"]

"""
Dispatch of client frames received over the realtime socket.
"""

from pydantic import ValidationError

from prpulse.constants import (
    CLIENT_PR_UPDATE_STATUS,
    CLIENT_SUBSCRIBE_REPOSITORY,
    CLIENT_SUBSCRIBE_USER,
    CLIENT_UNSUBSCRIBE_REPOSITORY,
    CLIENT_UNSUBSCRIBE_USER,
    EVENT_ERROR,
)
from prpulse.logging import get_logger
from prpulse.realtime import ClientConnection, RealtimeHub, repo_topic, user_topic

from ..schemas import ClientFrame, PrStatusUpdate

logger = get_logger("realtime")


def _name(data) -> str | None:
    """Repository names and user ids arrive as strings (ids sometimes as ints)."""
    if isinstance(data, bool):
        return None
    if isinstance(data, int):
        return str(data)
    if isinstance(data, str) and data.strip():
        return data.strip()
    return None


def reject(connection: ClientConnection, message: str) -> None:
    connection.enqueue(EVENT_ERROR, {"message": message})


def handle_frame(hub: RealtimeHub, connection: ClientConnection, raw: str) -> None:
    """Apply one client frame. Bad frames answer with an `error` event."""
    try:
        frame = ClientFrame.model_validate_json(raw)
    except ValidationError:
        reject(connection, "Frames must be JSON objects with an 'event' field")
        return

    topics = {
        CLIENT_SUBSCRIBE_REPOSITORY: (repo_topic, True),
        CLIENT_UNSUBSCRIBE_REPOSITORY: (repo_topic, False),
        CLIENT_SUBSCRIBE_USER: (user_topic, True),
        CLIENT_UNSUBSCRIBE_USER: (user_topic, False),
    }

    if frame.event in topics:
        to_topic, join = topics[frame.event]
        name = _name(frame.data)
        if name is None:
            reject(connection, f"{frame.event} requires a non-empty name")
            return
        if join:
            hub.subscribe(connection.id, to_topic(name))
        else:
            hub.unsubscribe(connection.id, to_topic(name))
        return

    if frame.event == CLIENT_PR_UPDATE_STATUS:
        try:
            update = PrStatusUpdate.model_validate(frame.data)
        except ValidationError:
            reject(connection, f"{CLIENT_PR_UPDATE_STATUS} requires prId and a valid status")
            return
        hub.broadcast_pr_update(update.pr_id, {"status": update.status})
        return

    logger.debug("realtime_unknown_event", connection_id=connection.id, event_name=frame.event)
    reject(connection, f"Unknown event '{frame.event}'")

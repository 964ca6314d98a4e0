"""
Realtime WebSocket endpoint.

Frames in both directions are JSON objects `{"event": name, "data": ...}`.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from prpulse.realtime import ClientConnection

from ..dependencies import get_app_settings, get_hub
from ..services import realtime_service

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    hub = get_hub(websocket)
    settings = get_app_settings(websocket)

    await websocket.accept()
    connection = hub.connect(
        ClientConnection(websocket.send_json, queue_size=settings.realtime_queue_size)
    )
    try:
        while True:
            raw = await websocket.receive_text()
            realtime_service.handle_frame(hub, connection, raw)
    except WebSocketDisconnect:
        pass
    finally:
        hub.on_disconnect(connection.id)

"""
WebSocket endpoint for realtime contact notifications.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from contact_manager.realtime.manager import ConnectionManager, get_connection_manager
from contact_manager.shared.correlation import correlation_id_context
from contact_manager.shared.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    manager: Annotated[ConnectionManager, Depends(get_connection_manager)],
) -> None:
    """
    Realtime channel for contact change notifications.

    Connection Lifecycle:
        1. Client connects to /ws and the connection is registered
        2. Server pings every interval, client answers {"Type": "Pong"}
        3. Client may send {"Type": "Ping"} and gets {"Type": "Pong"} back
        4. Other envelopes are rebroadcast, plain text is echoed as Info
        5. Connection is removed on disconnect, error or liveness timeout
    """
    await websocket.accept()
    connection_id = await manager.add_connection(websocket)

    with correlation_id_context(connection_id):
        try:
            await _receive_loop(websocket, manager, connection_id)
        except WebSocketDisconnect:
            logger.info(
                "WebSocket client disconnected",
                extra={"connection_id": connection_id},
            )
        except Exception:
            logger.exception(
                "Error handling WebSocket connection",
                extra={"connection_id": connection_id},
            )
        finally:
            await manager.remove_connection(connection_id)


async def _receive_loop(
    websocket: WebSocket,
    manager: ConnectionManager,
    connection_id: str,
) -> None:
    while True:
        frame = await websocket.receive()
        if frame["type"] == "websocket.disconnect":
            logger.info(
                "WebSocket client disconnected",
                extra={"connection_id": connection_id, "code": frame.get("code")},
            )
            return

        text = frame.get("text")
        if text is not None:
            await manager.handle_incoming(connection_id, text)
            continue

        data = frame.get("bytes")
        if data is not None:
            logger.info(
                "Binary WebSocket frame ignored",
                extra={"connection_id": connection_id, "size": len(data)},
            )

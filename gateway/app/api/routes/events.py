"""Push-socket endpoint streaming ledger block events."""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from gateway.app.streaming.broadcast import EventBroadcastGateway

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
@router.websocket("/")
async def block_events(websocket: WebSocket) -> None:
    """Send a liveness frame, then block events once streaming has started.

    Inbound frames are logged and otherwise ignored.
    """
    broadcaster: EventBroadcastGateway = websocket.app.state.broadcaster
    greeting: str = websocket.app.state.settings.ws_greeting

    await websocket.accept()
    logger.info("Websocket server received connection")
    await websocket.send_text(greeting)
    broadcaster.connect(websocket)

    try:
        while True:
            message = await websocket.receive_text()
            logger.info("Websocket server received message: %s", message)
    except WebSocketDisconnect as e:
        logger.info("Websocket closed by client (code %s)", e.code)
    finally:
        broadcaster.disconnect(websocket)

"""WebSocket transport and endpoint feeding connection sessions."""
import asyncio
from typing import Any, Dict

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect, status
from starlette.websockets import WebSocketState

from ..shared.events import decode_frame, encode_frame
from .auth import resolve_token
from .logging_config import configure_logging

router = APIRouter(tags=["realtime"])
logger = configure_logging()


class WebSocketTransport:
    """Adapts a Starlette WebSocket to the session transport contract."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket

    async def send(self, event: str, payload: Dict[str, Any]) -> None:
        await self.websocket.send_text(encode_frame(event, payload))

    async def close(self) -> None:
        if self.websocket.application_state == WebSocketState.CONNECTED:
            await self.websocket.close()


async def _receive_text(websocket: WebSocket) -> str | None:
    """Next text frame, or None for a binary frame."""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE), message.get("reason"))
    return message.get("text")


@router.websocket("/ws")
async def chat_socket(websocket: WebSocket):
    try:
        username = resolve_token(websocket.query_params.get("token"))
    except HTTPException as exc:
        logger.warning("SOCKET_REJECTED reason=%s", exc.detail)
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=exc.detail)
        return

    await websocket.accept()
    hub = websocket.app.state.hub
    session = hub.open_session(WebSocketTransport(websocket), authenticated_as=username)
    worker = asyncio.create_task(session.run())
    try:
        while True:
            raw = await _receive_text(websocket)
            if raw is None:
                session.report_error("Binary frames are not supported")
                continue
            try:
                event, payload = decode_frame(raw)
            except ValueError as exc:
                session.report_error(f"Malformed frame: {exc}")
                continue
            session.submit(event, payload)
    except (WebSocketDisconnect, RuntimeError):
        logger.info("SOCKET_DISCONNECTED session=%s username=%s", session.session_id, session.username)
    finally:
        await session.close()
        worker.cancel()

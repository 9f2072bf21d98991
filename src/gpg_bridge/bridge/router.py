from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from loguru import logger

from src.gpg_bridge.config import Config
from src.gpg_bridge.context import BridgeContext
from src.gpg_bridge.errors import TransportRejection
from .services import ProtocolDispatcher


router = APIRouter(tags=["GPG Bridge"])


def check_admission(websocket: WebSocket, cfg: Config) -> None:
    """
    升级前的传输层准入：必须是 TLS 连接，且来源为回环地址。
    :raises TransportRejection
    """
    if cfg.require_tls and websocket.url.scheme != "wss":
        raise TransportRejection(f"非 TLS 连接 (scheme={websocket.url.scheme})")
    host = websocket.client.host if websocket.client else None
    if host not in cfg.allowed_hosts:
        raise TransportRejection(f"非回环来源地址: {host}")


@router.websocket("/")
async def bridge_socket(websocket: WebSocket):
    ctx: BridgeContext = websocket.app.state.context
    try:
        check_admission(websocket, ctx.config)
    except TransportRejection as e:
        # 在 accept 之前关闭，即拒绝升级，不读取任何消息
        logger.warning(f"拒绝 WebSocket 升级: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("WebSocket connection opened.")
    dispatcher = ProtocolDispatcher(ctx, websocket.send_text)
    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                logger.info(f"WebSocket connection closed. Code: {message.get('code')}")
                break
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            # 同一连接内按到达顺序逐条处理
            await dispatcher.handle(raw)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket connection closed. Code: {e.code}")

"""
FastAPI 应用入口点。
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from src.gpg_bridge.bridge.router import router as bridge_router
from src.gpg_bridge.config import config
from src.gpg_bridge.context import BridgeContext
from src.gpg_bridge.notifier import LOG_FORMAT, SERVER_STATUS
from src.gpg_bridge.static.router import router as static_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    ctx: BridgeContext | None = getattr(app.state, "context", None)
    owns_context = ctx is None
    if ctx is None:
        ctx = BridgeContext.create(config)
        app.state.context = ctx

    # 日志同时转发给 UI
    sink_id = logger.add(ctx.notifier.log_sink, level="INFO", format=LOG_FORMAT)
    cfg = ctx.config
    logger.info(f"WebSocket server running at wss://{cfg.host}:{cfg.port}")
    logger.warning(f"Passcode generated. Enter it in the web client: {ctx.passcode}")
    ctx.notifier.emit(SERVER_STATUS, {"running": True, "port": cfg.port, "passCode": ctx.passcode})
    try:
        yield
    finally:
        logger.info("应用关闭，正在清理临时文件...")
        ctx.notifier.emit(SERVER_STATUS, {"running": False})
        logger.remove(sink_id)
        if owns_context:
            ctx.close()


def create_app(context: BridgeContext | None = None) -> FastAPI:
    """创建应用；传入 context 时使用调用方提供的组件（测试用）。"""
    app = FastAPI(
        title="GPG Bridge",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    if context is not None:
        app.state.context = context

    app.include_router(bridge_router)
    # 静态路由包含兜底路径，必须最后注册
    app.include_router(static_router)
    return app


app = create_app()

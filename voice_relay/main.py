"""
voice_relay.main
~~~~~~~~~~~~~~~~

应用入口 —— 组装 Socket.IO 信令服务与 FastAPI 诊断接口。

ASGI 入口为 ``asgi_app``：``/socket.io/`` 下的请求交给 Socket.IO，
其余请求（含 lifespan）转交 FastAPI。
"""
from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from voice_relay.api import rooms
from voice_relay.api.signaling import create_socket_server, register_signaling_handlers
from voice_relay.core.config import settings
from voice_relay.core.logging import get_logger, setup_logging
from voice_relay.schemas import ApiResponse
from voice_relay.services.finalizer import SessionFinalizer
from voice_relay.services.relay_controller import RelayController

# 初始化日志系统（必须在其他模块之前）
setup_logging()
logger = get_logger(__name__)


# ── 信令核心 ──────────────────────────────────────────────────────────

sio: socketio.AsyncServer = create_socket_server(settings)
finalizer = SessionFinalizer(
    base_url=settings.RESUME_BASE,
    timeout=settings.FINALIZE_TIMEOUT,
)
relay_controller = RelayController(transport=sio, finalizer=finalizer)
register_signaling_handlers(sio, relay_controller)


# ── 生命周期 ──────────────────────────────────────────────────────────

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """应用生命周期钩子，仅在 worker 启动/关闭时各执行一次。"""
    # ── 启动 ──
    if settings.PORT == 0:
        logger.info("🚀 语音信令服务已启动 | %s", settings.public_origin)
    else:
        logger.info("🚀 语音信令服务已启动 | %s:%d", settings.public_origin, settings.PORT)
    logger.info(
        "env=%s | origins=%s | finalize=%s",
        settings.ENVIRONMENT,
        settings.allowed_origins,
        "on" if finalizer.enabled else "off",
    )
    yield
    # ── 关闭 ──
    await finalizer.aclose()
    logger.info("👋 语音信令服务已关闭")


# ── 创建 FastAPI 实例 ─────────────────────────────────────────────────

app: FastAPI = FastAPI(
    title=settings.PROJECT_NAME,
    description="WebRTC 语音房间信令中继服务",
    version=settings.VERSION,
    debug=settings.debug,
    lifespan=lifespan,
)
app.state.relay_controller = relay_controller

_origins = settings.allowed_origins
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if _origins == "*" else _origins,
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(rooms.router, prefix="/api", tags=["Rooms"])


# ── 全局异常处理器 ────────────────────────────────────────────────────

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """捕获所有未处理异常，返回统一的 ApiResponse.error() 格式。"""
    logger.error("未捕获异常: %s %s -> %s", request.method, request.url, exc, exc_info=True)
    # 非 prod 环境返回详细错误信息，prod 环境隐藏内部细节
    detail = str(exc) if not settings.is_prod else "服务器内部错误"
    response = ApiResponse.error(500, detail)
    return JSONResponse(
        status_code=500,
        content=response.model_dump(),
    )


@app.get("/health", tags=["System"])
async def health_check() -> JSONResponse:
    """验证服务是否正常运行。"""
    registry = relay_controller.registry
    return JSONResponse(
        content={
            "status": "ok",
            "environment": settings.ENVIRONMENT,
            "rooms": len(registry),
            "finalize": finalizer.enabled,
        },
    )


# Socket.IO 挂在最外层，未命中 Socket.IO 路径的请求交给 FastAPI
asgi_app = socketio.ASGIApp(
    sio,
    other_asgi_app=app,
    socketio_path=settings.SOCKETIO_PATH,
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "voice_relay.main:asgi_app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.reload,  # 仅 dev 环境开启热重载
        log_level=settings.effective_log_level.lower(),
    )

"""
voice_relay.api.signaling
~~~~~~~~~~~~~~~~~~~~~~~~~

Socket.IO 信令接口 —— 把客户端事件绑定到 ``RelayController``。

入站事件:
  - ``join-voice-room``  ``roomId``
  - ``leave-voice-room`` ``roomId``
  - ``voice-offer``      ``{roomId, offer, to}``
  - ``voice-answer``     ``{roomId, answer, to}``
  - ``ice-candidate``    ``{candidate, to}``

出站事件见 ``voice_relay.services.relay_controller``。
"""
from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any

import socketio

from voice_relay.core.config import Settings
from voice_relay.core.logging import get_logger, sid_ctx_var
from voice_relay.services.relay_controller import RelayController

logger = get_logger(__name__)

Handler = Callable[..., Awaitable[Any]]


def create_socket_server(settings: Settings) -> socketio.AsyncServer:
    """创建 ASGI 模式的 Socket.IO 服务端。"""
    return socketio.AsyncServer(
        async_mode="asgi",
        cors_allowed_origins=settings.allowed_origins,
        logger=False,
        engineio_logger=False,
    )


def _guarded(event: str, handler: Handler) -> Handler:
    """为事件处理函数绑定日志上下文，并吞掉单个事件的异常。

    某个连接的事件处理失败不能影响其他连接或房间。
    """

    @functools.wraps(handler)
    async def wrapper(sid: str, *args: Any) -> Any:
        token = sid_ctx_var.set(sid)
        try:
            return await handler(sid, *args)
        except Exception as e:
            logger.error("信令事件处理异常: %s | event=%s", e, event, exc_info=True)
            return None
        finally:
            sid_ctx_var.reset(token)

    return wrapper


def register_signaling_handlers(sio: socketio.AsyncServer, controller: RelayController) -> None:
    """在 Socket.IO 服务端上注册全部信令事件。"""

    async def on_connect(sid: str, environ: dict[str, Any], auth: Any = None) -> None:
        controller.connect(sid)

    async def on_disconnect(sid: str, reason: Any = None) -> None:
        logger.debug("断开原因: %s", reason)
        await controller.disconnect(sid)

    async def on_join_voice_room(sid: str, room_id: Any = None) -> None:
        await controller.join_room(sid, room_id)

    async def on_leave_voice_room(sid: str, room_id: Any = None) -> None:
        await controller.leave_room(sid, room_id)

    async def on_voice_offer(sid: str, data: Any = None) -> None:
        await controller.relay_offer(sid, data)

    async def on_voice_answer(sid: str, data: Any = None) -> None:
        await controller.relay_answer(sid, data)

    async def on_ice_candidate(sid: str, data: Any = None) -> None:
        await controller.relay_candidate(sid, data)

    handlers: dict[str, Handler] = {
        "connect": on_connect,
        "disconnect": on_disconnect,
        "join-voice-room": on_join_voice_room,
        "leave-voice-room": on_leave_voice_room,
        "voice-offer": on_voice_offer,
        "voice-answer": on_voice_answer,
        "ice-candidate": on_ice_candidate,
    }
    for event, handler in handlers.items():
        sio.on(event, handler=_guarded(event, handler))

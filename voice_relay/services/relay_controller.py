"""
voice_relay.services.relay_controller
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

信令中继控制器 —— 把房间注册表的纯状态变更绑定为可观察的信令事件。

- 成员变更：``join_room`` / ``leave_room`` / ``disconnect``
- 点对点转发：``relay_offer`` / ``relay_answer`` / ``relay_candidate``
- 房间清空时派发收尾钩子（``SessionFinalizer``，后台执行，不等待）

每个服务进程只有一个实例，且它持有注册表的唯一可变引用。
"""
from __future__ import annotations

import asyncio
from typing import Any, Protocol

from voice_relay.core.logging import get_logger
from voice_relay.services.finalizer import SessionFinalizer
from voice_relay.services.room_registry import JoinStatus, RoomRegistry

logger = get_logger(__name__)

# ── 出站事件名 ────────────────────────────────────────────────────────
ROOM_FULL: str = "room-full"
USER_JOINED: str = "user-joined"
USER_LEFT: str = "user-left"
VOICE_OFFER: str = "voice-offer"
VOICE_ANSWER: str = "voice-answer"
ICE_CANDIDATE: str = "ice-candidate"


class SignalTransport(Protocol):
    """控制器依赖的传输层接口（与 ``socketio.AsyncServer`` 的签名一致）。"""

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        room: str | None = None,
        skip_sid: str | None = None,
    ) -> None: ...

    async def enter_room(self, sid: str, room: str) -> None: ...

    async def leave_room(self, sid: str, room: str) -> None: ...


class RelayController:
    """信令中继控制器。

    所有注册表变更及其触发的广播都在 ``_lock`` 内完成，保证同一房间内的事件
    按变更完成的顺序被观察到；收尾请求在锁外以后台任务派发。

    Attributes:
        registry: 房间注册表（只应通过本控制器变更）。
        transport: 信令传输层。
        finalizer: 房间清空时的收尾钩子。
    """

    def __init__(
        self,
        transport: SignalTransport,
        finalizer: SessionFinalizer,
        registry: RoomRegistry | None = None,
    ) -> None:
        self.transport = transport
        self.finalizer = finalizer
        self.registry = registry or RoomRegistry()
        self._connections: set[str] = set()
        self._lock = asyncio.Lock()

    # ── 连接生命周期 ──────────────────────────────────────────────────

    def connect(self, sid: str) -> None:
        """登记一个新建立的连接。"""
        self._connections.add(sid)
        logger.info("连接建立 | 当前连接数: %d", len(self._connections))

    def is_connected(self, sid: str) -> bool:
        return sid in self._connections

    async def disconnect(self, sid: str) -> None:
        """连接断开（终态）：退出所在的全部房间，通知各房间并收尾已清空的房间。"""
        emptied: list[str] = []
        async with self._lock:
            self._connections.discard(sid)
            departures = self.registry.remove_everywhere(sid)
            for room_id, room_now_empty in departures:
                await self.transport.emit(USER_LEFT, sid, room=room_id, skip_sid=sid)
                if room_now_empty:
                    emptied.append(room_id)

        logger.info(
            "连接断开 | 退出 %d 个房间 | 当前连接数: %d",
            len(departures), len(self._connections),
        )
        for room_id in emptied:
            self._finalize(room_id)

    # ── 房间成员变更 ──────────────────────────────────────────────────

    async def join_room(self, sid: str, room_id: str | None) -> JoinStatus | None:
        """处理 ``join-voice-room``。

        Returns:
            加入结果；连接已断开或缺少房间 ID 时返回 ``None``（事件被忽略）。
        """
        if room_id is None:
            # 传输层会把 room=None 当作全体广播
            logger.debug("缺少房间 ID，忽略加入请求")
            return None

        async with self._lock:
            if sid not in self._connections:
                logger.debug("忽略已断开连接的加入请求 | room=%s", room_id)
                return None

            result = self.registry.join(room_id, sid)
            if result.status is JoinStatus.ROOM_FULL:
                await self.transport.emit(
                    ROOM_FULL,
                    {"roomId": room_id, "max": result.max_size},
                    to=sid,
                )
                logger.info("房间已满，拒绝加入 | room=%s | max=%d", room_id, result.max_size)
            elif result.status is JoinStatus.ALREADY_MEMBER:
                logger.debug("重复加入已忽略 | room=%s", room_id)
            else:
                await self.transport.enter_room(sid, room_id)
                await self.transport.emit(USER_JOINED, sid, room=room_id, skip_sid=sid)
                logger.info(
                    "加入语音房间 | room=%s | 人数: %d",
                    room_id, self.registry.size(room_id),
                )
        return result.status

    async def leave_room(self, sid: str, room_id: str | None) -> bool:
        """处理 ``leave-voice-room``。不在房间内时为空操作。

        Returns:
            是否真的离开了房间。
        """
        if room_id is None:
            return False

        async with self._lock:
            result = self.registry.leave(room_id, sid)
            if not result.left:
                logger.debug("不在房间内，忽略离开请求 | room=%s", room_id)
                return False

            await self.transport.leave_room(sid, room_id)
            await self.transport.emit(USER_LEFT, sid, room=room_id)
            logger.info(
                "离开语音房间 | room=%s | 人数: %d",
                room_id, self.registry.size(room_id),
            )

        if result.room_now_empty:
            self._finalize(room_id)
        return True

    def _finalize(self, room_id: str) -> None:
        logger.info("房间已清空 | room=%s", room_id)
        self.finalizer.schedule(room_id)

    # ── 点对点信令转发 ────────────────────────────────────────────────

    async def relay_offer(self, sid: str, data: Any) -> bool:
        """转发 SDP offer：``{roomId, offer, to}`` → ``{from, offer, roomId}``。"""
        return await self._relay(VOICE_OFFER, sid, data, "offer", with_room=True)

    async def relay_answer(self, sid: str, data: Any) -> bool:
        """转发 SDP answer：``{roomId, answer, to}`` → ``{from, answer, roomId}``。"""
        return await self._relay(VOICE_ANSWER, sid, data, "answer", with_room=True)

    async def relay_candidate(self, sid: str, data: Any) -> bool:
        """转发 ICE candidate：``{candidate, to}`` → ``{from, candidate}``。"""
        return await self._relay(ICE_CANDIDATE, sid, data, "candidate", with_room=False)

    async def _relay(
        self,
        event: str,
        sid: str,
        data: Any,
        field: str,
        *,
        with_room: bool,
    ) -> bool:
        """把载荷原样转发给 ``to`` 指向的连接，并附加发送方 ``from``。

        不校验双方是否在房间内，也不校验目标是否在线：目标不存在时传输层
        自然不会投递。缺少可用 ``to`` 的载荷直接丢弃，避免被传输层当作全体广播。

        Returns:
            是否交给了传输层投递。
        """
        if sid not in self._connections:
            return False

        target = data.get("to") if isinstance(data, dict) else None
        if not target or not isinstance(target, str):
            logger.debug("%s 缺少有效的 to 字段，已丢弃", event)
            return False

        # 只复制发送方实际携带的字段
        payload: dict[str, Any] = {"from": sid}
        if field in data:
            payload[field] = data[field]
        if with_room and "roomId" in data:
            payload["roomId"] = data["roomId"]

        await self.transport.emit(event, payload, to=target)
        logger.debug("%s 已转发 | to=%s", event, target)
        return True

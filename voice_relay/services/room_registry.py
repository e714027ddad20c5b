"""
voice_relay.services.room_registry
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

语音房间注册表 —— 维护 ``room_id → 成员集合`` 的内存映射以及容量策略。

纯数据结构，不做任何 I/O；所有变更操作都在 ``RelayController`` 的锁内串行调用。

- 房间在第一次成功加入时隐式创建，成员清空的瞬间隐式删除（不存在空房间）。
- 同一连接在同一房间内最多出现一次；同一连接可以同时属于多个房间。
- 额外维护 ``sid → 房间集合`` 的反向索引，断线清理只需遍历该连接所在的房间。
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple

from voice_relay.schemas.rooms import RoomInfoData

# 单个房间的人数上限
MAX_ROOM_SIZE: int = 10


class JoinStatus(str, Enum):
    """``RoomRegistry.join`` 的三种结果。"""

    JOINED = "joined"
    ALREADY_MEMBER = "already_member"
    ROOM_FULL = "room_full"


@dataclass(frozen=True)
class JoinResult:
    """加入房间的结果。

    Attributes:
        status: 加入结果。
        room_id: 目标房间。
        max_size: 房间容量上限（``ROOM_FULL`` 时回传给请求方）。
    """

    status: JoinStatus
    room_id: str
    max_size: int = MAX_ROOM_SIZE

    @property
    def joined(self) -> bool:
        return self.status is JoinStatus.JOINED


@dataclass(frozen=True)
class LeaveResult:
    """离开房间的结果。``left=False`` 表示该连接本就不在房间内（空操作）。"""

    left: bool
    room_now_empty: bool = False


class Departure(NamedTuple):
    """断线清理时，连接被移出的单个房间。"""

    room_id: str
    room_now_empty: bool


class RoomRegistry:
    """内存中的语音房间注册表。

    成员集合使用 ``dict`` 充当有序集合，保留加入顺序仅用于诊断展示，
    顺序本身没有业务含义。
    """

    def __init__(self, max_room_size: int = MAX_ROOM_SIZE) -> None:
        self.max_room_size = max_room_size
        self._rooms: dict[str, dict[str, None]] = {}
        self._memberships: dict[str, dict[str, None]] = {}

    # ── 变更操作 ──────────────────────────────────────────────────────

    def join(self, room_id: str, sid: str) -> JoinResult:
        """把连接加入房间。

        先检查容量再检查是否已在房间内：房间已满时，即使是现有成员重复加入
        也返回 ``ROOM_FULL``。被拒绝的加入不会留下空房间。
        """
        members = self._rooms.get(room_id, {})
        if len(members) >= self.max_room_size:
            return JoinResult(JoinStatus.ROOM_FULL, room_id, self.max_room_size)
        if sid in members:
            return JoinResult(JoinStatus.ALREADY_MEMBER, room_id, self.max_room_size)

        self._rooms.setdefault(room_id, members)[sid] = None
        self._memberships.setdefault(sid, {})[room_id] = None
        return JoinResult(JoinStatus.JOINED, room_id, self.max_room_size)

    def leave(self, room_id: str, sid: str) -> LeaveResult:
        """把连接移出房间。房间不存在或连接不在房间内时为空操作，从不抛错。"""
        members = self._rooms.get(room_id)
        if members is None or sid not in members:
            return LeaveResult(left=False)
        return LeaveResult(left=True, room_now_empty=self._discard(room_id, sid))

    def remove_everywhere(self, sid: str) -> list[Departure]:
        """把连接移出它所在的全部房间（断线时调用）。

        Returns:
            每个被移出的房间一条 ``Departure``；未加入任何房间时返回空列表。
        """
        rooms = self._memberships.get(sid)
        if not rooms:
            return []
        return [Departure(room_id, self._discard(room_id, sid)) for room_id in list(rooms)]

    def _discard(self, room_id: str, sid: str) -> bool:
        """同步移除正向与反向索引中的成员关系，返回房间是否因此被删除。"""
        members = self._rooms[room_id]
        del members[sid]

        rooms = self._memberships[sid]
        del rooms[room_id]
        if not rooms:
            del self._memberships[sid]

        if members:
            return False
        del self._rooms[room_id]
        return True

    # ── 只读查询 ──────────────────────────────────────────────────────

    def size(self, room_id: str) -> int:
        """房间当前人数，未知房间返回 0。"""
        return len(self._rooms.get(room_id, ()))

    def members(self, room_id: str) -> list[str]:
        """房间成员（按加入顺序）。"""
        return list(self._rooms.get(room_id, ()))

    def rooms_of(self, sid: str) -> list[str]:
        """连接当前所在的房间（按加入顺序）。"""
        return list(self._memberships.get(sid, ()))

    def snapshot(self) -> list[RoomInfoData]:
        """所有活跃房间的摘要信息。房间 ID 以字符串形式展示。"""
        return [
            RoomInfoData(room_id=str(room_id), size=len(members), max_size=self.max_room_size)
            for room_id, members in self._rooms.items()
        ]

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

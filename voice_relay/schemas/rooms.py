"""
voice_relay.schemas.rooms
~~~~~~~~~~~~~~~~~~~~~~~~~

语音房间相关的 Pydantic 响应模型（仅供只读诊断接口使用）。
"""
from __future__ import annotations

from pydantic import BaseModel, Field


class RoomInfoData(BaseModel):
    """房间摘要信息。"""

    room_id: str = Field(..., description="房间唯一标识（非字符串键以字符串形式展示）")
    size: int = Field(..., ge=0, description="当前房间内的连接数")
    max_size: int = Field(..., description="房间容量上限")


class RoomListData(BaseModel):
    """活跃房间列表。"""

    rooms: list[RoomInfoData] = Field(..., description="所有非空房间")
    total_rooms: int = Field(..., ge=0, description="活跃房间数")
    total_members: int = Field(..., ge=0, description="各房间人数之和（同一连接在多个房间时重复计数）")

    @classmethod
    def from_rooms(cls, rooms: list[RoomInfoData]) -> RoomListData:
        return cls(
            rooms=rooms,
            total_rooms=len(rooms),
            total_members=sum(room.size for room in rooms),
        )

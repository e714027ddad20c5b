"""
voice_relay.api.rooms
~~~~~~~~~~~~~~~~~~~~~

语音房间只读诊断接口。

端点:
  - ``GET /rooms``             → 获取活跃房间列表
  - ``GET /rooms/{room_id}``   → 获取单个房间人数（未知房间人数为 0）
"""
from __future__ import annotations

from fastapi import APIRouter, Depends

from voice_relay.api.deps import get_relay_controller
from voice_relay.schemas import ApiResponse, RoomInfoData, RoomListData
from voice_relay.services.relay_controller import RelayController

router: APIRouter = APIRouter()


@router.get(
    "/rooms",
    summary="获取活跃房间列表",
    response_model=ApiResponse[RoomListData],
)
async def list_rooms(
    controller: RelayController = Depends(get_relay_controller),
) -> ApiResponse[RoomListData]:
    """返回当前所有非空语音房间及其人数。"""
    return ApiResponse.ok(data=RoomListData.from_rooms(controller.registry.snapshot()))


@router.get(
    "/rooms/{room_id}",
    summary="获取房间详情",
    response_model=ApiResponse[RoomInfoData],
)
async def room_info(
    room_id: str,
    controller: RelayController = Depends(get_relay_controller),
) -> ApiResponse[RoomInfoData]:
    """返回指定房间的人数。不会创建房间。

    Args:
        room_id: 房间唯一标识。
    """
    registry = controller.registry
    return ApiResponse.ok(
        data=RoomInfoData(
            room_id=room_id,
            size=registry.size(room_id),
            max_size=registry.max_room_size,
        ),
    )

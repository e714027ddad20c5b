"""
voice_relay.schemas
~~~~~~~~~~~~~~~~~~~
Pydantic schemas and models for the API.
"""
from voice_relay.schemas.envelope import ApiResponse
from voice_relay.schemas.rooms import RoomInfoData, RoomListData

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()

__all__ = ["ApiResponse", "RoomInfoData", "RoomListData"]

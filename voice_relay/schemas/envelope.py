"""
voice_relay.schemas.envelope
~~~~~~~~~~~~~~~~~~~~~~~~~~~~

诊断接口的 JSON 外层结构：``{"code": ..., "data": ..., "msg": ...}``。

成功时 ``code`` 与 HTTP 状态码一致（200）；全局异常处理器用 ``error()`` 包装 500。
"""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class ApiResponse(BaseModel, Generic[DataT]):
    """带状态码的诊断响应。"""

    code: int = Field(default=200, description="与 HTTP 状态码一致的结果码")
    data: DataT = Field(..., description="房间诊断数据，出错时为 null")
    msg: str = Field(default="ok", description="结果说明")

    @classmethod
    def ok(cls, data: DataT) -> ApiResponse[DataT]:
        return cls(data=data)

    @classmethod
    def error(cls, status: int, msg: str) -> ApiResponse[Any]:
        """出错时没有数据，只回传状态码和说明。"""
        return cls(code=status, data=None, msg=msg)

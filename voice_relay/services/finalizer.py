"""
voice_relay.services.finalizer
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

会话收尾钩子 —— 房间人数归零时通知外部收尾服务（语音纪要等）。

调用方式为 fire-and-forget：``schedule()`` 只创建后台任务并立即返回，
请求失败只记录日志，不重试，也不会影响信令处理流程。
"""
from __future__ import annotations

import asyncio
from urllib.parse import quote

import httpx

from voice_relay.core.logging import get_logger

logger = get_logger(__name__)

FINALIZE_PATH: str = "/api/audio/finalize"

# 与 JavaScript encodeURIComponent 保持一致的保留字符
_URI_COMPONENT_SAFE: str = "!~*'()"


class SessionFinalizer:
    """房间清空后的收尾请求派发器。

    Attributes:
        base_url: 收尾服务根地址；为空时 ``schedule()`` 直接跳过。
        timeout: 单次请求超时时间（秒）。
    """

    def __init__(
        self,
        base_url: str | None,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.base_url = base_url.strip() if base_url else None
        self.timeout = timeout
        self._client = client
        self._owns_client = client is None
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    @property
    def pending_count(self) -> int:
        """尚未完成的收尾请求数。"""
        return len(self._pending)

    def build_url(self, room_id: str) -> str:
        """拼接收尾请求地址：``{base}/api/audio/finalize?roomId={room_id}``。

        非字符串的房间 ID（如客户端发来的数字）按其字符串形式编码。
        """
        if not self.base_url:
            raise ValueError("未配置收尾服务地址")
        base = self.base_url.rstrip("/")
        return f"{base}{FINALIZE_PATH}?roomId={quote(str(room_id), safe=_URI_COMPONENT_SAFE)}"

    def schedule(self, room_id: str) -> asyncio.Task[None] | None:
        """在后台派发一次收尾请求，不等待其完成。

        必须在事件循环内调用。未配置收尾服务时静默跳过并返回 ``None``。
        """
        if not self.enabled:
            logger.debug("未配置 RESUME_BASE，跳过收尾 | room=%s", room_id)
            return None

        task = asyncio.create_task(self._finalize(room_id), name=f"finalize:{room_id}")
        # 持有引用，避免任务在完成前被回收
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def _finalize(self, room_id: str) -> None:
        try:
            url = self.build_url(room_id)
            response = await self._get_client().post(url, timeout=self.timeout)
        except Exception as e:
            # 收尾失败不应影响信令流程
            logger.warning("收尾请求失败: %s | room=%s", e, room_id)
            return

        if response.is_success:
            logger.info("收尾请求完成 | room=%s | status=%d", room_id, response.status_code)
        else:
            logger.warning("收尾服务返回异常状态 | room=%s | status=%d", room_id, response.status_code)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def aclose(self) -> None:
        """等待进行中的收尾请求结束（各自受超时约束），然后关闭 HTTP 客户端。"""
        if self._pending:
            logger.info("等待 %d 个收尾请求完成", len(self._pending))
            await asyncio.gather(*self._pending, return_exceptions=True)
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

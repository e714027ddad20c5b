"""
voice_relay.core.logging
~~~~~~~~~~~~~~~~~~~~~~~~

统一日志配置，根据环境自动设置日志级别和格式。

所有模块应通过 ``get_logger(__name__)`` 获取 logger 实例，
不要直接使用 ``print()`` 输出调试信息。

Socket.IO 事件处理期间会把当前连接的 ``sid`` 写入 ``sid_ctx_var``，
日志记录自动带上该字段，便于按连接排查信令流程。
"""
from __future__ import annotations

import logging
import sys
from contextvars import ContextVar

from voice_relay.core.config import settings

# 日志格式：时间 | 级别 | 连接 | 模块名 | 消息
_LOG_FORMAT: str = "%(asctime)s | %(levelname)-7s | %(sid)s | %(name)s | %(message)s"
_DATE_FORMAT: str = "%Y-%m-%d %H:%M:%S"

# 当前正在处理的 Socket.IO 连接 ID，非连接上下文中为 "-"
sid_ctx_var: ContextVar[str] = ContextVar("sid", default="-")


class SidFilter(logging.Filter):
    """把 ``sid_ctx_var`` 注入到每条日志记录。"""

    def filter(self, record: logging.LogRecord) -> bool:
        record.sid = sid_ctx_var.get()
        return True


def setup_logging() -> None:
    """根据当前环境配置全局日志。应在应用启动时调用一次。"""
    level = getattr(logging, settings.effective_log_level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(SidFilter())

    logging.basicConfig(
        level=level,
        format=_LOG_FORMAT,
        datefmt=_DATE_FORMAT,
        handlers=[handler],
        force=True,  # 覆盖可能已有的 basicConfig
    )

    # 降低第三方库的日志噪音
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("engineio").setLevel(logging.WARNING)
    logging.getLogger("socketio").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """获取指定模块的 logger 实例。

    Args:
        name: 模块名，通常传 ``__name__``。

    Returns:
        配置好的 ``logging.Logger`` 实例。
    """
    return logging.getLogger(name)

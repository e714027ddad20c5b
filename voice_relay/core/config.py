"""
voice_relay.core.config
~~~~~~~~~~~~~~~~~~~~~~~

集中式配置管理，基于 pydantic-settings 自动从 ``.env`` 文件加载。

支持多环境配置（dev / test / prod），加载顺序为:
  1. 环境变量（最高优先级）
  2. ``.env.{ENVIRONMENT}`` 环境专属文件
  3. ``.env`` 基础文件
  4. 字段默认值（最低优先级）

环境变量名沿用旧版 Node 信令服务（``PORT`` / ``ORIGIN`` / ``DIR`` / ``RESUME_BASE``），
部署时无需改动现有 ``.env``。
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# 读取当前环境标识（在 Settings 类定义之前，用于决定加载哪个 .env 文件）
_CURRENT_ENV: str = os.getenv("ENVIRONMENT", "dev")


def _split_csv(raw: str) -> list[str]:
    """拆分逗号分隔的配置值，去除首尾空白并丢弃空项。"""
    return [item.strip() for item in raw.split(",") if item.strip()]


class Settings(BaseSettings):
    """全局配置对象，字段值按如下优先级加载：环境变量 > .env.{env} > .env > 默认值。"""

    # ── 基础 ──────────────────────────────────────────────────────────
    PROJECT_NAME: str = Field(default="Voice Relay", description="项目名称")
    VERSION: str = Field(default="0.2.0", description="版本号")
    ENVIRONMENT: Literal["dev", "test", "prod"] = Field(
        default="dev",
        description="运行环境：dev / test / prod",
    )

    # ── 服务 ──────────────────────────────────────────────────────────
    HOST: str = Field(default="0.0.0.0", description="服务监听地址")
    PORT: int = Field(default=4000, description="服务监听端口（0 表示由平台分配）")
    LOG_LEVEL: str = Field(default="INFO", description="日志级别（可被环境属性覆盖）")
    SOCKETIO_PATH: str = Field(default="socket.io", description="Socket.IO 挂载路径")

    # ── CORS / 对外地址 ───────────────────────────────────────────────
    ORIGIN: str = Field(
        default="",
        description="允许跨域的来源，多个来源以逗号分隔",
    )
    DIR: str = Field(
        default="",
        description="服务对外地址（逗号分隔时取第一个），仅用于启动日志",
    )

    # ── 会话收尾服务 ──────────────────────────────────────────────────
    RESUME_BASE: str | None = Field(
        default=None,
        description="房间清空时调用的收尾服务根地址，未配置则跳过收尾",
    )
    FINALIZE_TIMEOUT: float = Field(
        default=10.0,
        gt=0,
        description="单次收尾请求的超时时间（秒）",
    )

    # ── Pydantic Settings ─────────────────────────────────────────────
    # 先加载 .env.{env} 再加载 .env，前者优先级更高
    model_config = SettingsConfigDict(
        env_file=(f".env.{_CURRENT_ENV}", ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── 环境判断 ──────────────────────────────────────────────────────

    @property
    def is_prod(self) -> bool:
        """当前是否为生产环境。"""
        return self.ENVIRONMENT == "prod"

    @property
    def is_test(self) -> bool:
        """当前是否为测试环境。"""
        return self.ENVIRONMENT == "test"

    @property
    def is_dev(self) -> bool:
        """当前是否为开发环境。"""
        return self.ENVIRONMENT == "dev"

    # ── 环境差异化行为 ────────────────────────────────────────────────

    @property
    def debug(self) -> bool:
        """是否开启 debug 模式。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def reload(self) -> bool:
        """是否开启热重载。仅 dev 环境开启。"""
        return self.is_dev

    @property
    def effective_log_level(self) -> str:
        """根据环境自动推断日志级别。

        - dev  → INFO
        - test → DEBUG（方便排查测试失败）
        - prod → WARNING（减少噪音）

        显式设置了 LOG_LEVEL（环境变量、.env 文件或构造参数）时，以其为准。
        """
        if "LOG_LEVEL" in self.model_fields_set and self.LOG_LEVEL:
            return self.LOG_LEVEL
        return {
            "dev": "INFO",
            "test": "DEBUG",
            "prod": "WARNING",
        }.get(self.ENVIRONMENT, "INFO")

    @property
    def allowed_origins(self) -> list[str] | str:
        """Socket.IO / HTTP 允许的跨域来源。

        显式配置了 ``ORIGIN`` 时按配置返回列表；未配置时非 prod 环境放开所有来源
        （``"*"``），prod 环境返回空列表（拒绝跨域）。
        """
        origins = _split_csv(self.ORIGIN)
        if origins:
            return origins
        return [] if self.is_prod else "*"

    @property
    def public_origin(self) -> str:
        """启动日志中展示的对外地址。"""
        origins = _split_csv(self.DIR)
        return origins[0] if origins else "http://localhost"


@lru_cache
def get_settings() -> Settings:
    """获取全局 Settings 单例（带缓存，避免重复解析 .env）。"""
    return Settings()


settings: Settings = get_settings()

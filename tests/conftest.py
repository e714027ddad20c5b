"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 用内存中的记录型传输层替代 Socket.IO，
使信令控制器可以在没有真实连接的情况下测试。
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any
from unittest.mock import MagicMock

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.pop("RESUME_BASE", None)

from voice_relay.services.finalizer import SessionFinalizer  # noqa: E402
from voice_relay.services.relay_controller import RelayController  # noqa: E402


@dataclass
class Emitted:
    """一次 ``emit`` 调用的记录，``recipients`` 为 emit 当时实际会送达的连接。"""

    event: str
    data: Any
    to: str | None = None
    room: str | None = None
    skip_sid: str | None = None
    recipients: frozenset[str] = frozenset()


class RecordingTransport:
    """模拟 ``socketio.AsyncServer`` 的房间与投递语义。

    - ``to=sid``：只投递给该连接（不在线则不投递）。
    - ``room=R``：投递给传输层房间 R 内的所有连接，``skip_sid`` 除外。
    """

    def __init__(self) -> None:
        self.emitted: list[Emitted] = []
        self.rooms: dict[str, set[str]] = {}
        self.online: set[str] = set()

    async def emit(
        self,
        event: str,
        data: Any = None,
        to: str | None = None,
        room: str | None = None,
        skip_sid: str | None = None,
    ) -> None:
        if to is not None:
            targets = {to}
        else:
            targets = set(self.rooms.get(room, set()))
            targets.discard(skip_sid)
        self.emitted.append(
            Emitted(
                event, data, to=to, room=room, skip_sid=skip_sid,
                recipients=frozenset(targets & self.online),
            ),
        )

    async def enter_room(self, sid: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(sid)

    async def leave_room(self, sid: str, room: str) -> None:
        self.rooms.get(room, set()).discard(sid)

    def received_by(self, sid: str) -> list[tuple[str, Any]]:
        """某个连接收到的全部事件（事件名, 载荷）。"""
        return [(e.event, e.data) for e in self.emitted if sid in e.recipients]

    def events(self, name: str) -> list[Emitted]:
        return [e for e in self.emitted if e.event == name]


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def finalizer() -> MagicMock:
    """不发真实请求的收尾钩子，只记录 ``schedule`` 调用。"""
    mock = MagicMock(spec=SessionFinalizer)
    mock.enabled = True
    return mock


@pytest.fixture()
def controller(transport: RecordingTransport, finalizer: MagicMock) -> RelayController:
    return RelayController(transport=transport, finalizer=finalizer)


@pytest.fixture()
def connect(controller: RelayController, transport: RecordingTransport):
    """建立若干连接：``connect("a", "b")``。"""

    def _connect(*sids: str) -> None:
        for sid in sids:
            transport.online.add(sid)
            controller.connect(sid)

    return _connect

"""
tests.test_api
~~~~~~~~~~~~~~

HTTP 诊断接口测试 —— 通过 FastAPI TestClient 读取控制器持有的房间注册表。
"""
from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from voice_relay.main import app, relay_controller
from voice_relay.schemas import ApiResponse
from voice_relay.services.room_registry import MAX_ROOM_SIZE


@pytest.fixture()
def client() -> Iterator[TestClient]:
    registry = relay_controller.registry
    registry.join("star", "a")
    registry.join("star", "b")
    registry.join("moon", "a")
    yield TestClient(app)
    registry.remove_everywhere("a")
    registry.remove_everywhere("b")


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["rooms"] == 2


def test_list_rooms(client: TestClient) -> None:
    response = client.get("/api/rooms")

    assert response.status_code == 200
    body = response.json()
    assert body["code"] == 200
    sizes = {room["room_id"]: room["size"] for room in body["data"]["rooms"]}
    assert sizes == {"star": 2, "moon": 1}
    assert body["data"]["total_rooms"] == 2
    assert body["data"]["total_members"] == 3


def test_room_info_known_and_unknown(client: TestClient) -> None:
    known = client.get("/api/rooms/star").json()["data"]
    unknown = client.get("/api/rooms/nowhere").json()["data"]

    assert known == {"room_id": "star", "size": 2, "max_size": MAX_ROOM_SIZE}
    assert unknown["size"] == 0
    assert "nowhere" not in relay_controller.registry


def test_list_rooms_with_numeric_room_id(client: TestClient) -> None:
    registry = relay_controller.registry
    registry.join(42, "c")
    try:
        response = client.get("/api/rooms")
    finally:
        registry.remove_everywhere("c")

    assert response.status_code == 200
    sizes = {room["room_id"]: room["size"] for room in response.json()["data"]["rooms"]}
    assert sizes["42"] == 1


def test_error_envelope() -> None:
    body = ApiResponse.error(500, "boom").model_dump()

    assert body == {"code": 500, "data": None, "msg": "boom"}

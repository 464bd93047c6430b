"""Tests for HTTP-based adapters."""

import asyncio
import json
from uuid import uuid4

import httpx
import pytest

from instructor_portal.adapters.badge_award_client import HttpxBadgeAwardClient
from instructor_portal.domain.badges import BadgeCandidate


def test_badge_award_client_posts_candidates() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(202, json={"accepted": 1})

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxBadgeAwardClient(
        base_url="https://badges.test",
        token="badge-token",
        http_client=async_client,
    )
    session_id = uuid4()

    asyncio.run(
        client.award(session_id, [BadgeCandidate("ana", "debug-detective")])
    )

    request = seen[0]
    assert request.url.path == "/awards"
    assert request.headers["Authorization"] == "Bearer badge-token"
    payload = json.loads(request.content.decode())
    assert payload == {
        "session_id": str(session_id),
        "awards": [{"student_id": "ana", "badge_id": "debug-detective"}],
    }


def test_badge_award_client_raises_on_error_status() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "Authorization" not in request.headers
        return httpx.Response(503)

    transport = httpx.MockTransport(handler)
    async_client = httpx.AsyncClient(transport=transport)
    client = HttpxBadgeAwardClient(
        base_url="https://badges.test", token=None, http_client=async_client
    )

    with pytest.raises(httpx.HTTPStatusError):
        asyncio.run(client.award(uuid4(), [BadgeCandidate("ana", "debug-detective")]))


def test_badge_award_client_create_and_close() -> None:
    client = HttpxBadgeAwardClient.create("https://badges.test/", "token")

    assert client.base_url == "https://badges.test"
    asyncio.run(client.close())

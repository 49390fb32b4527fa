"""HTTP tests for /applyAdReward, /awardGamePoints and /health."""

import asyncio
from unittest.mock import AsyncMock, patch

import pytest

from points_service.errors import TransactionContention
from tests.conftest import USER_ID, auth_header


@pytest.mark.asyncio
async def test_apply_ad_reward_first_call_awards_100(client, memory_store):
    response = await client.post("/applyAdReward", json={"userId": USER_ID}, headers=auth_header())

    assert response.status_code == 200
    assert response.json() == {"ok": True, "added": 100, "points": 100}
    assert len(await memory_store.list_activities(USER_ID)) == 1


@pytest.mark.asyncio
async def test_apply_ad_reward_second_call_same_day_is_already_claimed(client, memory_store):
    with patch("points_service.services.reward_policies.day_key", return_value="2026-10-17"):
        await client.post("/applyAdReward", json={"userId": USER_ID}, headers=auth_header())
        response = await client.post("/applyAdReward", json={"userId": USER_ID}, headers=auth_header())

    assert response.status_code == 200
    assert response.json() == {"ok": False, "error": "Already claimed today"}
    assert (await memory_store.get_user(USER_ID))["points"] == 100
    assert len(await memory_store.list_activities(USER_ID)) == 1


@pytest.mark.asyncio
async def test_apply_ad_reward_user_mismatch(client, memory_store):
    response = await client.post("/applyAdReward", json={"userId": "someone_else"}, headers=auth_header())

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "userId mismatch"}
    assert memory_store.users == {}


@pytest.mark.asyncio
async def test_apply_ad_reward_missing_user_id(client):
    response = await client.post("/applyAdReward", json={}, headers=auth_header())
    assert response.status_code == 400
    assert response.json()["error"] == "userId mismatch"


@pytest.mark.asyncio
async def test_missing_authorization_is_401(client, memory_store):
    response = await client.post("/applyAdReward", json={"userId": USER_ID})

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Missing or invalid Authorization header"}
    assert memory_store.users == {}


@pytest.mark.asyncio
async def test_expired_token_is_401(client):
    response = await client.post(
        "/awardGamePoints",
        json={"userId": USER_ID, "points": 10},
        headers=auth_header(expires_in=-60),
    )
    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Invalid ID token"}


@pytest.mark.asyncio
async def test_award_game_points_new_user_scenario(client, memory_store):
    response = await client.post(
        "/awardGamePoints",
        json={"userId": USER_ID, "points": 50, "level": 3, "totalScore": 4200},
        headers=auth_header(),
    )

    assert response.status_code == 200
    assert response.json() == {"ok": True, "added": 50, "points": 50}
    activities = await memory_store.list_activities(USER_ID)
    assert len(activities) == 1
    assert "level 3" in activities[0]["text"]
    assert activities[0]["totalScore"] == 4200


@pytest.mark.asyncio
@pytest.mark.parametrize("body,error", [
    ({"userId": "someone_else", "points": 10}, "userId mismatch"),
    ({"userId": USER_ID, "points": 0}, "invalid points"),
    ({"userId": USER_ID, "points": -10}, "invalid points"),
    ({"userId": USER_ID, "points": 12.5}, "invalid points"),
    ({"userId": USER_ID, "points": "12"}, "invalid points"),
    ({"userId": USER_ID}, "invalid points"),
    ({"userId": USER_ID, "points": 1001}, "points_too_large"),
    ({"userId": USER_ID, "points": 10, "level": 501}, "invalid level"),
    ({"userId": USER_ID, "points": 10, "level": -2}, "invalid level"),
    ({"userId": USER_ID, "points": 10, "level": "high"}, "invalid level"),
])
async def test_award_game_points_rejections(client, memory_store, body, error):
    response = await client.post("/awardGamePoints", json=body, headers=auth_header())

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": error}
    assert memory_store.users == {}
    assert memory_store.activities == {}


@pytest.mark.asyncio
async def test_malformed_body_is_400(client):
    response = await client.post(
        "/awardGamePoints",
        content=b"{not json",
        headers={**auth_header(), "Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "invalid request body"}


@pytest.mark.asyncio
async def test_store_contention_is_500(client, memory_store):
    memory_store.run_transaction = AsyncMock(side_effect=TransactionContention(5))

    response = await client.post("/applyAdReward", json={"userId": USER_ID}, headers=auth_header())

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "server_error"}


@pytest.mark.asyncio
async def test_unexpected_store_failure_is_500(client, memory_store):
    memory_store.run_transaction = AsyncMock(side_effect=OSError("disk gone"))

    response = await client.post(
        "/awardGamePoints", json={"userId": USER_ID, "points": 10}, headers=auth_header()
    )

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "server_error"}


@pytest.mark.asyncio
async def test_api_prefix_routes(client):
    response = await client.post(
        "/api/awardGamePoints", json={"userId": USER_ID, "points": 5}, headers=auth_header()
    )
    assert response.status_code == 200
    assert response.json()["points"] == 5


@pytest.mark.asyncio
async def test_response_headers(client):
    response = await client.post(
        "/applyAdReward",
        json={"userId": USER_ID},
        headers={**auth_header(), "X-Request-ID": "req-42"},
    )
    assert response.headers["X-Request-ID"] == "req-42"
    assert "X-Process-Time" in response.headers
    assert response.headers["X-Content-Type-Options"] == "nosniff"


@pytest.mark.asyncio
async def test_health(client, memory_store):
    from points_service.app import app

    app.state.store = memory_store
    try:
        response = await client.get("/health")
    finally:
        del app.state.store

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "service": "Points Award Service", "store": "connected"}


@pytest.mark.asyncio
@pytest.mark.parametrize("path,kwargs", [
    ("/applyAdReward", {}),
    ("/applyAdReward", {"content": b"{not json", "headers": {"Content-Type": "application/json"}}),
    ("/awardGamePoints", {"json": {"userId": 123}}),
    ("/awardGamePoints", {"json": [1, 2, 3]}),
])
async def test_token_is_checked_before_body(client, memory_store, path, kwargs):
    response = await client.post(path, **kwargs)

    assert response.status_code == 401
    assert response.json() == {"ok": False, "error": "Missing or invalid Authorization header"}
    assert memory_store.users == {}


@pytest.mark.asyncio
@pytest.mark.parametrize("path,body", [
    ("/applyAdReward", {"userId": 123}),
    ("/awardGamePoints", [1, 2, 3]),
    ("/awardGamePoints", {"userId": USER_ID, "points": 10, "totalScore": "lots"}),
])
async def test_authenticated_bad_body_is_400(client, memory_store, path, body):
    response = await client.post(path, json=body, headers=auth_header())

    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "invalid request body"}
    assert memory_store.users == {}


@pytest.mark.asyncio
async def test_authenticated_empty_body_is_400(client):
    response = await client.post("/applyAdReward", headers=auth_header())
    assert response.status_code == 400
    assert response.json() == {"ok": False, "error": "invalid request body"}


@pytest.mark.asyncio
async def test_request_over_time_budget_does_not_commit(client, memory_store):
    original_commit = memory_store._commit

    async def slow_commit(tx):
        await asyncio.sleep(0.2)
        await original_commit(tx)

    memory_store._commit = slow_commit

    with patch("points_service.routers.reward_router._request_timeout", return_value=0.05):
        response = await client.post("/applyAdReward", json={"userId": USER_ID}, headers=auth_header())
    await asyncio.sleep(0.3)

    assert response.status_code == 500
    assert response.json() == {"ok": False, "error": "server_error"}
    assert memory_store.users == {}
    assert memory_store.activities == {}


@pytest.mark.asyncio
async def test_request_within_time_budget_commits(client, memory_store):
    with patch("points_service.routers.reward_router._request_timeout", return_value=5):
        response = await client.post(
            "/awardGamePoints", json={"userId": USER_ID, "points": 10}, headers=auth_header()
        )

    assert response.status_code == 200
    assert (await memory_store.get_user(USER_ID))["points"] == 10

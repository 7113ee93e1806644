"""Tests for the Admin GraphQL client: throttle retry, fatal errors, cost telemetry."""

import httpx
import pytest

from app.services.shopify_client import (
    ShopifyClient,
    ShopifyGraphQLError,
    ShopifyUserError,
    ThrottleExhaustedError,
    raise_for_user_errors,
)

URL = "https://test-shop.myshopify.com/admin/api/2025-07/graphql.json"

COST = {
    "requestedQueryCost": 12,
    "actualQueryCost": 7,
    "throttleStatus": {"maximumAvailable": 2000.0, "currentlyAvailable": 1990, "restoreRate": 100.0},
}
THROTTLED = {"errors": [{"message": "Throttled", "extensions": {"code": "THROTTLED"}}], "extensions": {"cost": COST}}


def _client(responses: list, sleeps: list[float], max_attempts: int = 8) -> tuple[ShopifyClient, list]:
    seen: list[httpx.Request] = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        status, body = queue.pop(0)
        return httpx.Response(status, json=body)

    async def fake_sleep(seconds: float) -> None:
        sleeps.append(seconds)

    client = ShopifyClient(
        URL,
        "shpat_test",
        throttle_backoff=1.5,
        http_429_backoff=2.0,
        max_attempts=max_attempts,
        transport=httpx.MockTransport(handler),
        sleep=fake_sleep,
    )
    return client, seen


@pytest.mark.asyncio
async def test_execute_returns_data_and_records_cost():
    sleeps: list[float] = []
    client, seen = _client([(200, {"data": {"shop": {"name": "FI"}}, "extensions": {"cost": COST}})], sleeps)

    data = await client.execute("{ shop { name } }", {"a": 1})

    assert data == {"shop": {"name": "FI"}}
    assert seen[0].headers["X-Shopify-Access-Token"] == "shpat_test"
    assert client.stats.calls == 1
    assert client.stats.requested == 12
    assert client.stats.actual == 7
    assert client.stats.last["currentlyAvailable"] == 1990
    assert "calls=1" in client.stats.summary()
    assert sleeps == []
    await client.close()


@pytest.mark.asyncio
async def test_throttled_response_is_retried_with_growing_backoff():
    sleeps: list[float] = []
    client, seen = _client([(200, THROTTLED), (200, THROTTLED), (200, {"data": {"ok": True}})], sleeps)

    data = await client.execute("query")

    assert data == {"ok": True}
    assert len(seen) == 3
    assert sleeps == [1.5, 3.0]
    assert client.stats.throttled == 2
    await client.close()


@pytest.mark.asyncio
async def test_http_429_is_retried():
    sleeps: list[float] = []
    client, seen = _client([(429, {}), (200, {"data": {"ok": True}})], sleeps)

    assert await client.execute("query") == {"ok": True}
    assert sleeps == [2.0]
    await client.close()


@pytest.mark.asyncio
async def test_throttle_gives_up_after_max_attempts():
    sleeps: list[float] = []
    client, seen = _client([(200, THROTTLED)] * 3, sleeps, max_attempts=3)

    with pytest.raises(ThrottleExhaustedError):
        await client.execute("query")

    assert len(seen) == 3
    # No sleep after the final attempt.
    assert sleeps == [1.5, 3.0]
    await client.close()


@pytest.mark.asyncio
async def test_final_throttled_attempt_logs_giving_up(caplog):
    sleeps: list[float] = []
    client, _ = _client([(200, THROTTLED)] * 2, sleeps, max_attempts=2)

    with caplog.at_level("WARNING", logger="uvicorn.error"):
        with pytest.raises(ThrottleExhaustedError):
            await client.execute("query")

    messages = [r.getMessage() for r in caplog.records if r.name == "uvicorn.error"]
    assert sleeps == [1.5]
    assert len([m for m in messages if "sleeping" in m]) == 1
    assert messages[-1].endswith("giving up")
    await client.close()


def test_backoff_is_capped():
    client = ShopifyClient(URL, "t", max_attempts=10)
    assert client._backoff(1.5, 1) == 1.5
    assert client._backoff(1.5, 10) == 30.0


@pytest.mark.asyncio
async def test_other_graphql_errors_are_fatal():
    sleeps: list[float] = []
    client, seen = _client([(200, {"errors": [{"message": "Field 'x' doesn't exist"}]})], sleeps)

    with pytest.raises(ShopifyGraphQLError) as exc_info:
        await client.execute("query")

    assert exc_info.value.errors[0]["message"] == "Field 'x' doesn't exist"
    assert len(seen) == 1
    assert sleeps == []
    await client.close()


@pytest.mark.asyncio
async def test_non_429_http_error_raises():
    sleeps: list[float] = []
    client, _ = _client([(500, {"error": "boom"})], sleeps)

    with pytest.raises(httpx.HTTPStatusError):
        await client.execute("query")
    await client.close()


def test_raise_for_user_errors():
    raise_for_user_errors("productUpdate", {"product": {"id": "1"}, "userErrors": []})
    raise_for_user_errors("productUpdate", None)

    with pytest.raises(ShopifyUserError) as exc_info:
        raise_for_user_errors("productUpdate", {"userErrors": [{"field": ["status"], "message": "bad"}]})
    assert exc_info.value.operation == "productUpdate"
    assert exc_info.value.messages == ["bad"]

"""Shopify Admin GraphQL client with cost telemetry and throttle handling.

Throttle rules:
- A GraphQL error with extensions.code == "THROTTLED" waits ~1.5s and retries
- An HTTP 429 waits ~2s and retries
- Delays double on each consecutive retry (capped), and after
  `throttle_max_attempts` attempts the call fails with ThrottleExhaustedError
- Any other GraphQL error is fatal and raised as ShopifyGraphQLError

Cost telemetry (ApiCostBudget) is observability only; it never changes control flow.
"""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

import httpx

from app.settings import get_settings

logger = logging.getLogger("uvicorn.error")

MAX_BACKOFF_SECONDS = 30.0


class ShopifyError(RuntimeError):
    """Base error for Shopify API failures."""

    def __init__(self, message: str, errors: Any = None):
        super().__init__(message)
        self.errors = errors


class ShopifyGraphQLError(ShopifyError):
    """Top-level GraphQL errors other than throttling."""


class ShopifyUserError(ShopifyError):
    """A mutation returned userErrors."""

    def __init__(self, operation: str, user_errors: list[dict[str, Any]]):
        super().__init__(f"{operation}: {json.dumps(user_errors)}", errors=user_errors)
        self.operation = operation

    @property
    def messages(self) -> list[str]:
        return [str(e.get("message", "")) for e in self.errors or []]


class ThrottleExhaustedError(ShopifyError):
    """Still throttled after the configured number of attempts."""


@dataclass
class ApiCostBudget:
    """Process-lifetime query cost counters."""

    calls: int = 0
    requested: float = 0.0
    actual: float = 0.0
    throttled: int = 0
    last: dict[str, Any] = field(default_factory=dict)

    def record(self, cost: dict[str, Any]) -> None:
        self.calls += 1
        self.requested += float(cost.get("requestedQueryCost") or 0)
        self.actual += float(cost.get("actualQueryCost") or 0)
        throttle_status = cost.get("throttleStatus")
        if throttle_status:
            self.last = throttle_status

    def summary(self) -> str:
        last = self.last or {}
        return (
            f"Shopify API usage: calls={self.calls}; requested_cost={self.requested:g}; "
            f"actual_cost={self.actual:g}; "
            f"last_available={last.get('currentlyAvailable', 'n/a')}/{last.get('maximumAvailable', 'n/a')}; "
            f"restore_rate={last.get('restoreRate', 'n/a')}/s"
        )


def raise_for_user_errors(operation: str, payload: dict[str, Any] | None) -> None:
    """Raise ShopifyUserError if a mutation payload carries userErrors."""
    errs = (payload or {}).get("userErrors") or []
    if errs:
        raise ShopifyUserError(operation, errs)


class ShopifyClient:
    """Single-request GraphQL executor for the Admin API."""

    def __init__(
        self,
        graphql_url: str | None = None,
        access_token: str | None = None,
        *,
        timeout: float | None = None,
        throttle_backoff: float | None = None,
        http_429_backoff: float | None = None,
        max_attempts: int | None = None,
        log_every_call: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        settings = get_settings()
        self.graphql_url = graphql_url or settings.shopify_graphql_url
        self.access_token = access_token if access_token is not None else settings.shopify_admin_access_token
        self.timeout = timeout if timeout is not None else settings.shopify_timeout_seconds
        self.throttle_backoff = (
            throttle_backoff if throttle_backoff is not None else settings.throttle_backoff_seconds
        )
        self.http_429_backoff = (
            http_429_backoff if http_429_backoff is not None else settings.http_429_backoff_seconds
        )
        self.max_attempts = max_attempts if max_attempts is not None else settings.throttle_max_attempts
        self.log_every_call = (
            log_every_call if log_every_call is not None else settings.shopify_log_graphql_costs
        )
        self.stats = ApiCostBudget()
        self._transport = transport
        self._sleep = sleep
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
                headers={
                    "X-Shopify-Access-Token": self.access_token,
                    "Content-Type": "application/json",
                },
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    def _backoff(self, base: float, attempt: int) -> float:
        return min(base * (2 ** (attempt - 1)), MAX_BACKOFF_SECONDS)

    async def _wait_before_retry(self, signal: str, base: float, attempt: int) -> None:
        if attempt >= self.max_attempts:
            logger.warning(f"Shopify {signal} (attempt {attempt}/{self.max_attempts}), giving up")
            return
        delay = self._backoff(base, attempt)
        logger.warning(f"Shopify {signal} (attempt {attempt}/{self.max_attempts}), sleeping {delay}s")
        await self._sleep(delay)

    async def execute(self, query: str, variables: dict[str, Any] | None = None) -> dict[str, Any]:
        """Run one GraphQL operation and return its `data` object.

        Raises:
            ThrottleExhaustedError: still throttled after max_attempts.
            ShopifyGraphQLError: any other GraphQL-level error.
            httpx.HTTPStatusError: non-429 HTTP failure.
        """
        client = await self._get_client()
        body = {"query": query, "variables": variables or {}}

        for attempt in range(1, self.max_attempts + 1):
            response = await client.post(self.graphql_url, json=body)

            if response.status_code == 429:
                self.stats.throttled += 1
                await self._wait_before_retry("HTTP 429", self.http_429_backoff, attempt)
                continue
            response.raise_for_status()

            payload = response.json()
            cost = (payload.get("extensions") or {}).get("cost")
            if cost:
                self.stats.record(cost)
                if self.log_every_call:
                    ts = cost.get("throttleStatus") or {}
                    logger.info(
                        f"[Shopify GQL] requested={cost.get('requestedQueryCost')} "
                        f"actual={cost.get('actualQueryCost')} "
                        f"avail={ts.get('currentlyAvailable')}/{ts.get('maximumAvailable')} "
                        f"restore={ts.get('restoreRate')}/s"
                    )

            errors = payload.get("errors")
            if errors:
                throttled = any((e.get("extensions") or {}).get("code") == "THROTTLED" for e in errors)
                if not throttled:
                    raise ShopifyGraphQLError(json.dumps(errors), errors=errors)
                self.stats.throttled += 1
                await self._wait_before_retry("THROTTLED", self.throttle_backoff, attempt)
                continue

            return payload.get("data") or {}

        raise ThrottleExhaustedError(f"Shopify still throttled after {self.max_attempts} attempts")

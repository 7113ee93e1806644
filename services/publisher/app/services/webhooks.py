"""Outbound automation webhooks (fire-and-forget HTTP POSTs).

Three endpoints:
- field changed: title / price / HSN / tax updates, keyed by product id
- unit price: recompute unit prices for a product
- confirm items: one structured payload per SKU group

Failures never raise: every call returns a WebhookResult and the caller
decides whether the related change label may be removed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import httpx

from app.schemas.webhooks import ConfirmItemsPayload
from app.settings import get_settings

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class WebhookResult:
    ok: bool
    status: int | None = None
    skipped: bool = False

    def failure_suffix(self) -> str:
        return f" (HTTP {self.status})" if self.status else ""


class WebhookClient:
    """Client for the automation webhook endpoints."""

    def __init__(
        self,
        *,
        field_change_url: str | None = None,
        unit_price_url: str | None = None,
        confirm_items_url: str | None = None,
        store_code: str = "FI",
        dry_run: bool = True,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.field_change_url = field_change_url if field_change_url is not None else settings.field_change_webhook_url
        self.unit_price_url = unit_price_url if unit_price_url is not None else settings.unit_price_webhook_url
        self.confirm_items_url = (
            confirm_items_url if confirm_items_url is not None else settings.sku_confirm_webhook_url
        )
        self.store_code = store_code
        self.dry_run = dry_run
        self.timeout = timeout if timeout is not None else settings.webhook_timeout_seconds
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _post(
        self,
        name: str,
        url: str,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> WebhookResult:
        if self.dry_run:
            logger.info(f"DRY RUN: would POST {name} webhook: {payload}")
            return WebhookResult(ok=True, skipped=True)
        if not url:
            logger.warning(f"{name} webhook URL not configured")
            return WebhookResult(ok=False)

        client = await self._get_client()
        try:
            response = await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"{name} webhook request failed: {e!r}")
            return WebhookResult(ok=False)
        if response.status_code != 200:
            logger.warning(f"{name} webhook returned {response.status_code}: {response.text[:200]}")
        return WebhookResult(ok=response.status_code == 200, status=response.status_code)

    async def field_changed(self, product_id: str, change: str, **fields: Any) -> WebhookResult:
        """Notify a field change, e.g. change='title' sends title_modified=True."""
        payload: dict[str, Any] = {"store": self.store_code, f"{change}_modified": True}
        payload.update(fields)
        payload["product_id"] = product_id
        return await self._post("field-change", self.field_change_url, payload)

    async def unit_price_update(self, product_id: str) -> WebhookResult:
        return await self._post(
            "unit-price",
            self.unit_price_url,
            {"store": self.store_code},
            headers={"store": self.store_code, "productid": product_id},
        )

    async def confirm_items(self, payload: ConfirmItemsPayload) -> WebhookResult:
        return await self._post("confirm-items", self.confirm_items_url, payload.model_dump())

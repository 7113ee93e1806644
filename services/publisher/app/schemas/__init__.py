"""Pydantic schemas for Shopify nodes, webhook payloads and API errors."""

from app.schemas.catalog import Collection, Product, Variant
from app.schemas.common import ErrorDetail, ErrorResponse
from app.schemas.webhooks import ConfirmItem, ConfirmItemsPayload

__all__ = [
    "Collection",
    "ConfirmItem",
    "ConfirmItemsPayload",
    "ErrorDetail",
    "ErrorResponse",
    "Product",
    "Variant",
]

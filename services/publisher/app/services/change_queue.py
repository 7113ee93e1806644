"""Pending-change labels: the per-product work record.

The custom.product_changes list metafield is the only persisted work state.
Each run takes an immutable snapshot of it, records which labels were
acknowledged (their action succeeded), and writes the reduced list back once
at the end of the product. Unacknowledged labels stay for the next run, which
gives at-least-once delivery until acknowledged.

The write is a full-list overwrite with no concurrency check: a label added
upstream between our read and our write is lost.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.schemas.catalog import Product, Variant
from app.services.catalog import CatalogGateway
from app.services.compliance import split_tax
from app.services.webhooks import WebhookClient, WebhookResult
from app.tenants import TenantConfig

logger = logging.getLogger("uvicorn.error")


@dataclass(frozen=True)
class ChangeQueue:
    """Snapshot of one product's pending-change labels, in upstream order."""

    product_id: str
    labels: tuple[str, ...] = ()

    @classmethod
    def from_product(cls, product: Product) -> ChangeQueue:
        return cls(product_id=product.id, labels=tuple(product.pending_changes))

    def __contains__(self, label: object) -> bool:
        return label in self.labels

    @property
    def is_empty(self) -> bool:
        return not self.labels

    def simple_labels(self, tenant: TenantConfig) -> list[str]:
        """Field-change labels present, first occurrence order, no repeats."""
        out: list[str] = []
        for label in self.labels:
            if label in tenant.simple_labels and label not in out:
                out.append(label)
        return out


@dataclass
class LabelOutcomes:
    """Labels whose actions succeeded during this run."""

    acknowledged: set[str] = field(default_factory=set)

    def ack(self, label: str) -> None:
        self.acknowledged.add(label)

    def reduce(self, queue: ChangeQueue) -> list[str]:
        """The list to persist: the snapshot minus every acknowledged label."""
        return [label for label in queue.labels if label not in self.acknowledged]

    def changed(self, queue: ChangeQueue) -> bool:
        return any(label in self.acknowledged for label in queue.labels)


async def persist_outcomes(catalog: CatalogGateway, queue: ChangeQueue, outcomes: LabelOutcomes) -> list[str]:
    """Write the reduced label list if anything was acknowledged. Returns the remaining labels."""
    remaining = outcomes.reduce(queue)
    if outcomes.changed(queue):
        await catalog.set_pending_changes(queue.product_id, remaining)
        logger.info(f"{queue.product_id}: product_changes {list(queue.labels)} -> {remaining}")
    return remaining


def _single_hs_code(variants: list[Variant]) -> tuple[str | None, int]:
    codes = {v.hs_code for v in variants if v.hs_code}
    if len(codes) == 1:
        return next(iter(codes)), 1
    return None, len(codes)


class SimpleLabelProcessor:
    """Runs the field-changed webhook for title / price / HSN / tax labels."""

    def __init__(self, catalog: CatalogGateway, webhooks: WebhookClient, tenant: TenantConfig):
        self.catalog = catalog
        self.webhooks = webhooks
        self.tenant = tenant

    async def process(self, product: Product, queue: ChangeQueue, outcomes: LabelOutcomes) -> list[str]:
        """Process every simple label in the queue. Returns report lines."""
        lines: list[str] = []
        for label in queue.simple_labels(self.tenant):
            lines.append(await self._process_one(product, label, outcomes))
        return lines

    async def _process_one(self, product: Product, label: str, outcomes: LabelOutcomes) -> str:
        t = self.tenant
        if label == t.label_title_updated:
            kind, result = "Title", await self.webhooks.field_changed(product.id, "title")
        elif label == t.label_price_updated:
            kind, result = "Price", await self.webhooks.field_changed(product.id, "price")
        elif label == t.label_hsn_updated:
            variants = await self.catalog.load_variants(product)
            hs_code, distinct = _single_hs_code(variants)
            if hs_code is None:
                if distinct == 0:
                    return "HSN update not sent: HS code missing on all variants."
                return "HSN update not sent: variants have inconsistent HS codes."
            kind, result = "HSN", await self.webhooks.field_changed(product.id, "hsn", hsn_value=hs_code)
        else:
            percent, code = split_tax(product.tax_rate, t.tax_codes)
            kind, result = "Tax", await self.webhooks.field_changed(
                product.id, "tax", tax_percentage=percent, tax_id=code
            )
        return self._outcome_line(kind, label, result, outcomes)

    def _outcome_line(self, kind: str, label: str, result: WebhookResult, outcomes: LabelOutcomes) -> str:
        if result.ok:
            outcomes.ack(label)
            return f"{kind} update information sent."
        return f"{kind} update failed{result.failure_suffix()}."

"""Tests for pending-change label handling."""

import pytest

from app.services.change_queue import ChangeQueue, LabelOutcomes, SimpleLabelProcessor, persist_outcomes
from app.services.webhooks import WebhookResult


def test_reduce_removes_only_acknowledged(make_product):
    queue = ChangeQueue.from_product(make_product(labels=["Title Updated", "New Product Checks", "Price Updated"]))
    outcomes = LabelOutcomes()
    outcomes.ack("Title Updated")

    assert outcomes.reduce(queue) == ["New Product Checks", "Price Updated"]
    assert outcomes.changed(queue)
    assert not LabelOutcomes().changed(queue)


def test_simple_labels_keep_order_without_repeats(make_product, tenant):
    queue = ChangeQueue.from_product(
        make_product(labels=["Tax Updated", "New Product Checks", "Title Updated", "Tax Updated", "Unknown"])
    )
    assert queue.simple_labels(tenant) == ["Tax Updated", "Title Updated"]
    assert "New Product Checks" in queue
    assert not queue.is_empty


@pytest.mark.asyncio
async def test_persist_skips_write_when_nothing_acknowledged(catalog, make_product):
    queue = ChangeQueue.from_product(make_product(labels=["New Product Checks"]))

    remaining = await persist_outcomes(catalog, queue, LabelOutcomes())

    assert remaining == ["New Product Checks"]
    assert catalog.writes_of("pending_changes") == []


@pytest.mark.asyncio
async def test_title_and_price_webhooks(catalog, webhooks, tenant, make_product):
    product = make_product(labels=["Title Updated", "Price Updated"])
    queue = ChangeQueue.from_product(product)
    outcomes = LabelOutcomes()
    webhooks.results["price"] = WebhookResult(ok=False, status=500)

    lines = await SimpleLabelProcessor(catalog, webhooks, tenant).process(product, queue, outcomes)

    assert lines == ["Title update information sent.", "Price update failed (HTTP 500)."]
    assert outcomes.reduce(queue) == ["Price Updated"]
    assert webhooks.calls[0] == ("field_changed", product.id, "title", {})


@pytest.mark.asyncio
async def test_hsn_requires_a_single_code(catalog, webhooks, tenant, make_product, make_variant):
    product = make_product(labels=["HSN Updated"])
    catalog.add(product, [make_variant("v1", "A-1", hs="3304"), make_variant("v2", "A-2", hs="3305")])
    queue = ChangeQueue.from_product(product)
    outcomes = LabelOutcomes()

    lines = await SimpleLabelProcessor(catalog, webhooks, tenant).process(product, queue, outcomes)

    assert lines == ["HSN update not sent: variants have inconsistent HS codes."]
    assert webhooks.calls == []
    assert outcomes.reduce(queue) == ["HSN Updated"]


@pytest.mark.asyncio
async def test_hsn_sent_with_value(catalog, webhooks, tenant, make_product, make_variant):
    product = make_product(labels=["HSN Updated"])
    catalog.add(product, [make_variant("v1", "A-1", hs="3304"), make_variant("v2", "A-2", hs=None)])
    queue = ChangeQueue.from_product(product)
    outcomes = LabelOutcomes()

    lines = await SimpleLabelProcessor(catalog, webhooks, tenant).process(product, queue, outcomes)

    assert lines == ["HSN update information sent."]
    assert webhooks.calls == [("field_changed", product.id, "hsn", {"hsn_value": "3304"})]


@pytest.mark.asyncio
async def test_tax_webhook_uses_tax_code_table(catalog, webhooks, tenant, make_product):
    product = make_product(labels=["Tax Updated"], tax="18%")
    queue = ChangeQueue.from_product(product)

    await SimpleLabelProcessor(catalog, webhooks, tenant).process(product, queue, LabelOutcomes())

    assert webhooks.calls == [
        ("field_changed", product.id, "tax", {"tax_percentage": "18", "tax_id": "TX-18"})
    ]

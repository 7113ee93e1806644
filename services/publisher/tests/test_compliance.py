"""Tests for the compliance evaluator and its helpers."""

import pytest

from app.schemas.catalog import Collection
from app.services.compliance import (
    ComplianceEvaluator,
    has_tax_collection,
    split_tax,
    strip_html_to_text,
    unit_link_failed,
)
from app.services.report import build_variant_issue_table

LINKED_SIZE = [{"name": "Size", "linkedMetafield": {"namespace": "custom", "key": "variant_quantities"}}]


def test_split_tax():
    assert split_tax("5%") == ("5", "")
    assert split_tax("5%", {"5": "TX-5"}) == ("5", "TX-5")
    assert split_tax("18% GST-18", {"18": "TX-18"}) == ("18", "GST-18")
    assert split_tax("12.5%") == ("12.5", "")
    assert split_tax("") == ("", "")
    assert split_tax("GST") == ("", "")


def test_has_tax_collection():
    cols = [Collection(title="Shopify (India | Tax Rate 5%)")]
    assert has_tax_collection(cols, "5")
    assert not has_tax_collection(cols, "18")
    assert not has_tax_collection([Collection(title="Tax Rate 5%")], "5")
    assert not has_tax_collection(cols, None)


def test_strip_html_to_text():
    assert strip_html_to_text("<p>Hello&nbsp;<b>world</b></p>") == "Hello world"
    assert strip_html_to_text(None) == ""


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "description, passes",
    [("<p>&nbsp;<b>abcdefghij</b>&nbsp;</p>", True), ("<p>&nbsp;<b>abcdefghi</b>&nbsp;</p>", False)],
)
async def test_description_needs_ten_visible_chars(
    catalog, tenant, make_product, make_variant, make_tax_collection, description, passes
):
    product = make_product(description=description)
    catalog.add(product, [make_variant("v0", "OIL-0")], [make_tax_collection("5")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert result.passed is passes
    assert ("Product description is empty." in result.reasons) is not passes


def test_unit_link_check(make_product, make_variant):
    variants = [make_variant("v1", "A-1", options={"Size": "500 g"})]
    assert unit_link_failed(make_product(), variants)
    assert not unit_link_failed(make_product(options=LINKED_SIZE), variants)
    # One linked unit-bearing option is enough even when another is unlinked.
    mixed = [make_variant("v3", "A-3", options={"Size": "500 g", "Pack": "Pack Of 6"})]
    assert unit_link_failed(make_product(), mixed)
    assert not unit_link_failed(make_product(options=LINKED_SIZE), mixed)
    # Options without unit terms never need a link.
    assert not unit_link_failed(make_product(), [make_variant("v2", "A-2", options={"Color": "Red"})])


@pytest.mark.asyncio
async def test_passing_product(catalog, tenant, make_product, make_variant, make_tax_collection):
    product = make_product()
    variants = [make_variant("v0", "OIL-0")]
    catalog.add(product, variants, [make_tax_collection("5")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert result.passed
    assert result.reasons == []
    assert result.issue_rows == []
    assert result.is_main_item_holder


@pytest.mark.asyncio
async def test_empty_tax_always_fails(catalog, tenant, make_product, make_variant, make_tax_collection):
    product = make_product(tax="")
    catalog.add(product, [make_variant("v0", "OIL-0")], [make_tax_collection("5")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert not result.passed
    assert result.reasons[0] == "Indian tax rate is empty."
    assert "Tax collection not assigned." in result.reasons


@pytest.mark.asyncio
async def test_tax_present_collection_missing_and_hs_empty(catalog, tenant, make_product, make_variant):
    product = make_product(tax="5%")
    catalog.add(product, [make_variant("v0", "OIL-0", hs=None, options={"Color": "Amber"})])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert not result.passed
    assert "Indian tax rate is empty." not in result.reasons
    assert result.reasons[0] == "Assign product to collection: Shopify (India | Tax Rate 5%)."
    assert len(result.issue_rows) == 1
    assert result.issue_rows[0].hs == "Fill in"
    table = build_variant_issue_table(result.issue_rows, result.country_of_origin)
    assert "* Fill in *" in table


@pytest.mark.asyncio
async def test_failure_reason_order(catalog, tenant, make_product, make_variant, make_tax_collection):
    other = make_product("gid://shopify/Product/2")
    catalog.add(other, [make_variant("o1", "DUP-1", product_id=other.id)])
    product = make_product(pre_order="", origin="", description="<p>short</p>", has_image=False)
    variants = [
        make_variant("v1", "DUP-1", options={"Size": "1 L"}),
        make_variant("v2", "ROSE-2"),
    ]
    catalog.add(product, variants, [make_tax_collection("5")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert result.reasons == [
        'None of the variant options which require bundling are linked to the "Variant Quantities" metaobject.',
        "Duplicate SKUs found: DUP-1",
        "Main item missing for pattern 'dup': expected 'DUP-0'.",
        "Main item missing for pattern 'rose': expected 'ROSE-0'.",
        "Pre-order setting is empty.",
        "Country of origin metafield is empty.",
        "Product description is empty.",
        "No product images.",
    ]
    assert [r.main_exists for r in result.issue_rows] == ["No", "No"]


@pytest.mark.asyncio
async def test_zero_on_hand_runs_regardless_of_verdict(catalog, tenant, make_product, make_variant):
    product = make_product(tax="")
    catalog.add(product, [make_variant("v0", "OIL-0"), make_variant("v1", "OIL-1")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert not result.passed
    assert catalog.writes_of("zero_on_hand") == [("zero_on_hand", ("v0-inv", "v1-inv"))]


@pytest.mark.asyncio
async def test_cosmetics_side_check(catalog, make_product, make_variant, make_tax_collection):
    from app.tenants import TenantConfig

    tenant = TenantConfig(cosmetics_check=True)
    product = make_product(title="Rose Cosmetic Clay")
    catalog.add(product, [make_variant("v0", "CLAY-0")], [make_tax_collection("5")])

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert result.passed
    assert catalog.writes_of("collection_add") == [
        ("collection_add", product.id, "cosmetic-supplies-missing-metafield")
    ]
    assert result.notes == [
        "Note: Cosmetic supplies metafield missing; added to 'Cosmetic Supplies Missing Metafield'."
    ]


@pytest.mark.asyncio
async def test_origin_sync(catalog, make_product, make_variant, make_tax_collection):
    from app.tenants import TenantConfig

    tenant = TenantConfig(cosmetics_check=False, sync_origin_to_inventory=True)
    product = make_product(origin="in")
    catalog.add(
        product,
        [make_variant("v0", "OIL-0"), make_variant("v1", "OIL-1", country="FR")],
        [make_tax_collection("5")],
    )

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)

    assert catalog.writes_of("origin") == [("origin", "v0-inv", "IN")]
    assert "Note: Country of origin IN copied to 1 inventory item(s)." in result.notes

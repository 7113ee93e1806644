"""Admin endpoints for previewing the publish gate.

These endpoints are intended for manual checks before a live run. They always
use a dry-run gateway: nothing is written to the store and no webhooks fire.
In production, consider adding authentication (API key or admin token).
"""

import logging
from collections.abc import AsyncGenerator

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from app.services.catalog import CatalogGateway
from app.services.compliance import ComplianceEvaluator
from app.services.report import build_report
from app.services.shopify_client import ShopifyClient
from app.services.workflow import WorkflowOutcome, decide
from app.tenants import TenantConfig

router = APIRouter()
logger = logging.getLogger("uvicorn.error")

PRODUCT_GID_PREFIX = "gid://shopify/Product/"


async def get_catalog() -> AsyncGenerator[CatalogGateway, None]:
    """Dry-run gateway for one request."""
    client = ShopifyClient()
    try:
        yield CatalogGateway(client, dry_run=True)
    finally:
        await client.close()


def get_tenant() -> TenantConfig:
    return TenantConfig.from_settings()


def to_product_gid(product_id: str) -> str:
    """Accept a numeric id or a full product gid."""
    product_id = product_id.strip()
    if product_id.startswith("gid://"):
        return product_id
    if not product_id.isdigit():
        raise HTTPException(status_code=400, detail=f"Invalid product id: {product_id}")
    return f"{PRODUCT_GID_PREFIX}{product_id}"


class IssueRowOut(BaseModel):
    variant: str
    sku: str
    main_item_exists: str
    hs_code: str


class CompliancePreviewResponse(BaseModel):
    """Verdict and planned transition for one product."""

    product_id: str
    title: str
    status: str
    pending_changes: list[str]
    passed: bool
    reasons: list[str]
    issue_rows: list[IssueRowOut]
    next_status: str
    actions: list[str]
    report: str | None


@router.get("/products/{product_id}/compliance", response_model=CompliancePreviewResponse)
async def preview_compliance(
    product_id: str,
    catalog: CatalogGateway = Depends(get_catalog),
    tenant: TenantConfig = Depends(get_tenant),
) -> CompliancePreviewResponse:
    """Run the compliance checks for one product and show what a live run would do.

    Args:
        product_id: Numeric Shopify product id or product gid.

    Returns:
        Verdict, failure reasons, issue table rows and the planned transition.
    """
    gid = to_product_gid(product_id)
    product = await catalog.get_product(gid)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product not found: {gid}")

    result = await ComplianceEvaluator(catalog, tenant).evaluate(product)
    transition = decide(
        passed=result.passed,
        status=product.status,
        is_main_item_holder=result.is_main_item_holder,
        has_unit_link=product.variant_quantities_option is not None,
        main_item_confirmed=product.main_item_confirmed,
        tenant=tenant,
    )
    report = build_report(
        tenant,
        product.title,
        webhook_lines=[],
        result=result,
        outcome=WorkflowOutcome(transition=transition, label_done=False),
        dry_run=True,
    )
    logger.info(f"Compliance preview {gid}: passed={result.passed} next={transition.next_status}")

    return CompliancePreviewResponse(
        product_id=product.id,
        title=product.title,
        status=product.status,
        pending_changes=list(product.pending_changes),
        passed=result.passed,
        reasons=result.reasons,
        issue_rows=[
            IssueRowOut(variant=r.label, sku=r.sku, main_item_exists=r.main_exists, hs_code=r.hs)
            for r in result.issue_rows
        ],
        next_status=transition.next_status,
        actions=[a.value for a in transition.actions],
        report=report,
    )

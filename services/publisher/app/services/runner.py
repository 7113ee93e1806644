"""Top-level scan: flagged products -> labels, checks, workflow, report.

Products are processed strictly one at a time, page by page, in the order the
catalog returns them.

Error isolation:
- ThrottleExhaustedError skips the current product (its labels stay queued)
- Any other exception (rejected status or metafield write, GraphQL error)
  aborts the whole run
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from app.schemas.catalog import Product
from app.services.catalog import CatalogGateway
from app.services.change_queue import ChangeQueue, LabelOutcomes, SimpleLabelProcessor, persist_outcomes
from app.services.compliance import ComplianceEvaluator, ComplianceResult
from app.services.notifier import SlackNotifier
from app.services.report import build_report, build_throttled_report
from app.services.shopify_client import ThrottleExhaustedError
from app.services.webhooks import WebhookClient
from app.services.workflow import WorkflowExecutor, WorkflowOutcome
from app.tenants import TenantConfig

logger = logging.getLogger("uvicorn.error")


@dataclass
class RunStats:
    """Statistics from one scan."""

    scanned: int = 0
    with_product_changes: int = 0
    passed: int = 0
    failed: int = 0
    throttled: int = 0
    notify_failures: int = 0

    def summary(self, dry_run: bool) -> str:
        mode = "DRY RUN" if dry_run else "LIVE"
        return (
            f"Summary: scanned={self.scanned}; with_product_changes={self.with_product_changes}; "
            f"passed={self.passed}; failed={self.failed}; throttled={self.throttled}; mode={mode}"
        )


@dataclass
class ProductRun:
    """What happened to one flagged product."""

    product_id: str
    title: str
    webhook_lines: list[str] = field(default_factory=list)
    result: ComplianceResult | None = None
    outcome: WorkflowOutcome | None = None
    remaining_labels: list[str] = field(default_factory=list)
    report: str | None = None
    notified: bool = False

    @property
    def passed(self) -> bool | None:
        return None if self.result is None else self.result.passed


class PublishGateRunner:
    def __init__(
        self,
        catalog: CatalogGateway,
        webhooks: WebhookClient,
        notifier: SlackNotifier,
        tenant: TenantConfig,
        *,
        dry_run: bool = True,
    ):
        self.catalog = catalog
        self.notifier = notifier
        self.tenant = tenant
        self.dry_run = dry_run
        self.evaluator = ComplianceEvaluator(catalog, tenant)
        self.labels = SimpleLabelProcessor(catalog, webhooks, tenant)
        self.workflow = WorkflowExecutor(catalog, webhooks, tenant)

    async def process_product(self, product: Product) -> ProductRun | None:
        """Run one flagged product end to end. None when it has no pending labels."""
        queue = ChangeQueue.from_product(product)
        if queue.is_empty:
            return None

        run = ProductRun(product_id=product.id, title=product.title)
        await self.catalog.ensure_in_market_catalog(product.id, self.tenant.market_catalog_title)

        outcomes = LabelOutcomes()
        run.webhook_lines = await self.labels.process(product, queue, outcomes)

        if self.tenant.label_full_check in queue:
            run.result = await self.evaluator.evaluate(product)
            run.outcome = await self.workflow.apply(product, run.result)
            if run.outcome.label_done:
                outcomes.ack(self.tenant.label_full_check)

        run.remaining_labels = await persist_outcomes(self.catalog, queue, outcomes)

        run.report = build_report(
            self.tenant,
            product.title,
            webhook_lines=run.webhook_lines,
            result=run.result,
            outcome=run.outcome,
            dry_run=self.dry_run,
        )
        if run.report:
            run.notified = await self.notifier.send(run.report, success=bool(run.passed))
        return run

    async def run(self) -> RunStats:
        stats = RunStats()
        async for page in self.catalog.iter_flagged_product_pages():
            for product in page:
                stats.scanned += 1
                try:
                    run = await self.process_product(product)
                except ThrottleExhaustedError as e:
                    stats.throttled += 1
                    logger.warning(f"Skipping {product.id} ({product.title!r}): {e}")
                    if not await self.notifier.send(build_throttled_report(self.tenant, product.title)):
                        stats.notify_failures += 1
                    continue
                if run is None:
                    continue
                stats.with_product_changes += 1
                if run.passed is True:
                    stats.passed += 1
                elif run.passed is False:
                    stats.failed += 1
                if run.report and not run.notified:
                    stats.notify_failures += 1

        logger.info(stats.summary(self.dry_run))
        logger.info(self.catalog.client.stats.summary())
        return stats

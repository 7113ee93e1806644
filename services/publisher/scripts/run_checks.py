#!/usr/bin/env python3
"""Publish gate scan for cron.

Schedule:
- Run on a fixed interval (e.g. every 15 minutes) from a cron job.
- Runs must not overlap; set REDIS_URL to enforce that with a lock.

Behavior:
- Page through every product with a pending-changes metafield
- Send field-change webhooks for title/price/HSN/tax labels
- Run the compliance checks for "New Product Checks" and move the product
  between DRAFT and ACTIVE
- Post one Slack report per product

Run (local / cron):
  cd services/publisher
  python -m scripts.run_checks

Exit codes:
  0  normal completion (whatever the verdicts), or another run holds the lock
  1  missing required configuration or a fatal error
"""

import asyncio
import logging
import os
import sys

# Ensure imports work when executed as a script/module
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from app.services.catalog import CatalogGateway  # noqa: E402
from app.services.notifier import SlackNotifier  # noqa: E402
from app.services.runner import PublishGateRunner, RunStats  # noqa: E402
from app.services.shopify_client import ShopifyClient  # noqa: E402
from app.services.webhooks import WebhookClient  # noqa: E402
from app.settings import get_settings  # noqa: E402
from app.stores.redis import RUN_LOCK_KEY, acquire_lock, close_redis, init_redis, release_lock  # noqa: E402
from app.tenants import TenantConfig  # noqa: E402

logger = logging.getLogger("uvicorn.error")


async def run_once() -> RunStats:
    settings = get_settings()
    tenant = TenantConfig.from_settings(settings)

    client = ShopifyClient()
    webhooks = WebhookClient(store_code=tenant.store_code, dry_run=settings.dry_run)
    notifier = SlackNotifier(dry_run=settings.dry_run)
    try:
        catalog = CatalogGateway(client, dry_run=settings.dry_run)
        runner = PublishGateRunner(catalog, webhooks, notifier, tenant, dry_run=settings.dry_run)
        return await runner.run()
    finally:
        await notifier.close()
        await webhooks.close()
        await client.close()


async def main() -> int:
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    missing = settings.missing_required()
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        return 1

    locked = False
    if settings.redis_url:
        try:
            await init_redis()
            if not await acquire_lock(RUN_LOCK_KEY, ttl=settings.run_lock_ttl_seconds):
                logger.info("Another run holds the lock; exiting")
                await close_redis()
                return 0
            locked = True
        except Exception:
            # Cron can still run without Redis (overlapping runs are then not prevented).
            logger.exception("Redis unavailable; running without the run lock")
            await close_redis()

    logger.info(f"Starting publish gate scan (mode={'DRY RUN' if settings.dry_run else 'LIVE'})")
    try:
        await run_once()
    except Exception:
        logger.exception("Publish gate run aborted")
        return 1
    finally:
        if locked:
            await release_lock(RUN_LOCK_KEY)
            await close_redis()
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))

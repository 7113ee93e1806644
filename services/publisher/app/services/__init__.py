"""Business logic services.

Services contain all publish-gate logic and are called by the cron script and
the admin routes. Dependencies (Shopify client, webhook client, notifier,
tenant config) are passed in explicitly.
"""

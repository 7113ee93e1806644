"""Data stores.

Shopify itself holds all persistent state (statuses, pending-change labels,
confirmation flags). Redis is only used for the optional cron run lock.
"""

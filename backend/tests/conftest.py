"""Root conftest — shared test configuration."""

import os

# Ensure tests never reach a real store
os.environ.setdefault("SHOPIFY_ACCESS_TOKEN", "shpat-test-fake-token")
os.environ.setdefault("SHOPIFY_STORE_DOMAIN", "test-shop.myshopify.com")
os.environ.setdefault(
    "DATABASE_URL",
    "sqlite+aiosqlite:///test.db",
)

"""Infrastructure Layer — database session manager, Shopify gateway, logging.

Invariants:
    - Infrastructure never imports from services/ or api/
    - All external calls wrapped with retry/timeout/error mapping
"""

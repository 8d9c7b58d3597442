"""Services Layer — submission, batch dispatch, retry/delete and polling.

Invariants:
    - Services own transactions; routes only translate HTTP to service calls
    - Shopify is reached only through the DiscountGateway protocol
"""

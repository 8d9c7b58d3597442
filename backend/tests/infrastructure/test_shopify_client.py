"""Shopify Discount Gateway — GraphQL transport, retries and result mapping.

Invariants:
    - userErrors map to CodeRejected / DeletionOutcome, never raise
    - 429 and THROTTLED are retried up to max_retries for every operation
    - 5xx and connection errors are retried for queries, never for mutations
    - Every wait is clamped to max_delay_ms; total wait per call stays under
      max_retry_wait_ms
    - 4xx and non-throttling GraphQL errors fail immediately
    - Retry-After is honored (seconds → ms)

Design Decisions:
    - httpx.MockTransport injected through the constructor; base_delay_ms=0 keeps
      retries instant
"""

import asyncio
import json

import httpx
import pytest

from app.core.discount_template import PercentageValue, ProductScope
from app.core.errors import ShopifyAPIError
from app.core.repository_protocols import CodeCreated, CodeRejected
from app.infrastructure.shopify_client import ShopifyDiscountGateway

REF = "gid://shopify/DiscountCodeNode/123"


def _gateway(handler, max_retries=3, max_delay_ms=0, max_retry_wait_ms=30_000):
    return ShopifyDiscountGateway(
        store_domain="test-shop.myshopify.com",
        access_token="shpat-test",
        api_version="2025-01",
        max_retries=max_retries,
        base_delay_ms=0,
        max_delay_ms=max_delay_ms,
        max_retry_wait_ms=max_retry_wait_ms,
        transport=httpx.MockTransport(handler),
    )


def _sequence(*responses):
    """Handler returning the given responses in order, recording requests."""
    requests = []
    queue = list(responses)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    return handler, requests


def _data(payload: dict) -> httpx.Response:
    return httpx.Response(200, json={"data": payload})


async def test_fetch_template_parses_payload():
    handler, requests = _sequence(_data({"discountNode": {"id": REF, "discount": {
        "title": "Product promo",
        "customerGets": {
            "value": {"percentage": 0.15},
            "items": {"products": {"edges": [{"node": {"id": "gid://shopify/Product/1"}}]}},
        },
        "context": {"all": "ALL"},
    }}}))
    gateway = _gateway(handler)

    template = await gateway.fetch_template(REF)

    assert template.value == PercentageValue(percentage=0.15)
    assert template.items == ProductScope(product_ids=("gid://shopify/Product/1",))
    request = requests[0]
    assert str(request.url) == "https://test-shop.myshopify.com/admin/api/2025-01/graphql.json"
    assert request.headers["X-Shopify-Access-Token"] == "shpat-test"
    assert json.loads(request.content)["variables"] == {"id": REF}
    await gateway.aclose()


async def test_fetch_missing_template_returns_none():
    handler, _ = _sequence(_data({"discountNode": None}))
    assert await _gateway(handler).fetch_template(REF) is None


async def test_create_code_success():
    handler, requests = _sequence(_data({"discountCodeBasicCreate": {
        "codeDiscountNode": {"id": "gid://shopify/DiscountCodeNode/999"},
        "userErrors": [],
    }}))

    result = await _gateway(handler).create_code({"code": "SAVE1", "usageLimit": 1})

    assert result == CodeCreated(remote_id="gid://shopify/DiscountCodeNode/999")
    body = json.loads(requests[0].content)
    assert body["variables"]["basicCodeDiscount"]["code"] == "SAVE1"


async def test_create_code_user_errors_are_rejection():
    errors = [{"field": ["basicCodeDiscount", "code"], "message": "Code must be unique"}]
    handler, _ = _sequence(_data({"discountCodeBasicCreate": {
        "codeDiscountNode": None, "userErrors": errors,
    }}))

    result = await _gateway(handler).create_code({"code": "DUP"})

    assert result == CodeRejected(field_errors=errors)


async def test_create_code_unexpected_shape_raises():
    handler, _ = _sequence(_data({"discountCodeBasicCreate": None}))
    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).create_code({"code": "X"})
    assert exc_info.value.api_error_type == "unexpected_response"


async def test_rate_limit_is_retried():
    handler, requests = _sequence(
        httpx.Response(429, headers={"Retry-After": "0"}),
        _data({"discountNode": None}),
    )
    assert await _gateway(handler).fetch_template(REF) is None
    assert len(requests) == 2


async def test_throttled_graphql_error_is_retried():
    handler, requests = _sequence(
        httpx.Response(200, json={"errors": [
            {"message": "Throttled", "extensions": {"code": "THROTTLED"}},
        ]}),
        _data({"discountNode": None}),
    )
    await _gateway(handler).fetch_template(REF)
    assert len(requests) == 2


async def test_server_errors_exhaust_retries():
    handler, requests = _sequence(*[httpx.Response(503) for _ in range(3)])

    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler, max_retries=2).fetch_template(REF)

    assert len(requests) == 3
    assert exc_info.value.api_error_type == "server_error"
    assert "after 2 retries" in exc_info.value.message


async def test_connection_error_is_retried():
    handler, requests = _sequence(
        httpx.ConnectError("connection reset"),
        _data({"discountNode": None}),
    )
    await _gateway(handler).fetch_template(REF)
    assert len(requests) == 2


async def test_timeout_fails_immediately():
    handler, requests = _sequence(httpx.ReadTimeout("slow"))
    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).fetch_template(REF)
    assert exc_info.value.api_error_type == "timeout"
    assert len(requests) == 1


async def test_client_error_fails_immediately():
    handler, requests = _sequence(httpx.Response(401, text="Invalid API key"))
    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).fetch_template(REF)
    assert exc_info.value.api_error_type == "client_error"
    assert len(requests) == 1


async def test_graphql_error_fails_immediately():
    handler, requests = _sequence(httpx.Response(200, json={"errors": [
        {"message": "Invalid global id 'abc'"},
    ]}))
    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).fetch_template("abc")
    assert exc_info.value.api_error_type == "graphql_error"
    assert exc_info.value.message == "GraphQL Error: Invalid global id 'abc'"
    assert len(requests) == 1


async def test_delete_code():
    handler, _ = _sequence(_data({"discountCodeDelete": {
        "deletedCodeDiscountId": "gid://shopify/DiscountCodeNode/5", "userErrors": [],
    }}))
    outcome = await _gateway(handler).delete_code("gid://shopify/DiscountCodeNode/5")
    assert outcome.deleted
    assert outcome.errors == []


async def test_delete_code_user_errors():
    errors = [{"field": ["id"], "message": "Discount does not exist"}]
    handler, _ = _sequence(_data({"discountCodeDelete": {
        "deletedCodeDiscountId": None, "userErrors": errors,
    }}))
    outcome = await _gateway(handler).delete_code("gid://shopify/DiscountCodeNode/5")
    assert not outcome.deleted
    assert outcome.errors == errors


async def test_list_templates_skips_non_code_discounts():
    handler, requests = _sequence(_data({"discountNodes": {"edges": [
        {"node": {"id": REF, "discount": {
            "title": "Summer", "status": "ACTIVE",
            "codes": {"edges": [{"node": {"code": "SUMMER"}}]},
        }}},
        {"node": {"id": "gid://shopify/DiscountAutomaticNode/1", "discount": {}}},
    ]}}))

    summaries = await _gateway(handler).list_templates(10)

    assert [s.ref for s in summaries] == [REF]
    assert summaries[0].code == "SUMMER"
    assert json.loads(requests[0].content)["variables"] == {"first": 10}


async def test_server_error_on_create_is_not_retried():
    handler, requests = _sequence(
        httpx.Response(502),
        _data({"discountCodeBasicCreate": {
            "codeDiscountNode": {"id": "gid://shopify/DiscountCodeNode/9"}, "userErrors": [],
        }}),
    )

    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).create_code({"code": "SAVE10-A"})

    assert len(requests) == 1
    assert exc_info.value.api_error_type == "server_error"
    assert exc_info.value.context.code == "SAVE10-A"


async def test_connection_error_on_delete_is_not_retried():
    handler, requests = _sequence(
        httpx.ConnectError("connection reset"),
        _data({"discountCodeDelete": {"deletedCodeDiscountId": "x", "userErrors": []}}),
    )

    with pytest.raises(ShopifyAPIError) as exc_info:
        await _gateway(handler).delete_code("gid://shopify/DiscountCodeNode/5")

    assert len(requests) == 1
    assert exc_info.value.api_error_type == "connection_error"


async def test_rate_limit_on_create_is_retried():
    handler, requests = _sequence(
        httpx.Response(429, headers={"Retry-After": "0"}),
        _data({"discountCodeBasicCreate": {
            "codeDiscountNode": {"id": "gid://shopify/DiscountCodeNode/9"}, "userErrors": [],
        }}),
    )
    result = await _gateway(handler).create_code({"code": "SAVE10-A"})
    assert result == CodeCreated(remote_id="gid://shopify/DiscountCodeNode/9")
    assert len(requests) == 2


async def test_long_retry_after_is_clamped_and_bounded(monkeypatch):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    monkeypatch.setattr(asyncio, "sleep", fake_sleep)
    handler, requests = _sequence(
        *[httpx.Response(429, headers={"Retry-After": "120"}) for _ in range(4)],
    )
    gateway = _gateway(handler, max_delay_ms=1000, max_retry_wait_ms=2500)

    with pytest.raises(ShopifyAPIError) as exc_info:
        await gateway.fetch_template(REF)

    assert sleeps == [1.0, 1.0]
    assert len(requests) == 3
    assert exc_info.value.api_error_type == "rate_limit"
    assert exc_info.value.context.retry_after_ms == 120_000

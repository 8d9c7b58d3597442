"""Shopify Discount Gateway — Admin GraphQL client with retry, backoff, and error mapping.

Invariants:
    - Rate limits (HTTP 429, GraphQL THROTTLED): exponential backoff with jitter,
      respects Retry-After header, retried for queries and mutations alike
    - Transient errors (5xx, connection): retried for queries only; a mutation
      fails on the first one so a code is never created or deleted twice
    - Each wait is capped at max_delay_ms; the waits of one call never exceed
      max_retry_wait_ms, past that the call fails carrying retry_after_ms
    - Timeouts and client errors (4xx except 429, other GraphQL errors): immediate failure
    - All failures mapped to ShopifyAPIError (core/errors.py)
    - userErrors are NOT failures of the call: create_code returns CodeRejected,
      delete_code returns DeletionOutcome(deleted=False, errors=...)

Design Decisions:
    - One httpx.AsyncClient per gateway instance, created at startup and closed on shutdown
    - transport injectable so tests use httpx.MockTransport instead of patching
    - ±25% jitter on backoff: overlapping pollers do not retry in lockstep
"""

import asyncio
import logging
import random

import httpx

from app.core.discount_template import (
    DiscountTemplate, TemplateSummary, parse_template, parse_template_summary,
)
from app.core.errors import ShopifyAPIError, ErrorContext
from app.core.repository_protocols import (
    CodeCreated, CodeRejected, CreateResult, DeletionOutcome,
)

logger = logging.getLogger(__name__)

ACCESS_TOKEN_HEADER = "X-Shopify-Access-Token"

FETCH_TEMPLATE_QUERY = """
query getDiscount($id: ID!) {
  discountNode(id: $id) {
    id
    discount {
      ... on DiscountCodeBasic {
        title
        status
        minimumRequirement {
          ... on DiscountMinimumSubtotal {
            greaterThanOrEqualToSubtotal { amount currencyCode }
          }
          ... on DiscountMinimumQuantity {
            greaterThanOrEqualToQuantity
          }
        }
        customerGets {
          value {
            ... on DiscountPercentage { percentage }
            ... on DiscountAmount {
              amount { amount currencyCode }
              appliesOnEachItem
            }
          }
          items {
            ... on AllDiscountItems { allItems }
            ... on DiscountProducts {
              products(first: 250) { edges { node { id } } }
            }
            ... on DiscountCollections {
              collections(first: 250) { edges { node { id } } }
            }
          }
        }
        context {
          ... on DiscountBuyerSelectionAll { all }
          ... on DiscountCustomers { customers { id } }
        }
        usageLimit
        appliesOncePerCustomer
        startsAt
        endsAt
      }
    }
  }
}
"""

CREATE_CODE_MUTATION = """
mutation discountCodeBasicCreate($basicCodeDiscount: DiscountCodeBasicInput!) {
  discountCodeBasicCreate(basicCodeDiscount: $basicCodeDiscount) {
    codeDiscountNode { id }
    userErrors { field message }
  }
}
"""

DELETE_CODE_MUTATION = """
mutation discountCodeDelete($id: ID!) {
  discountCodeDelete(id: $id) {
    deletedCodeDiscountId
    userErrors { field message }
  }
}
"""

LIST_TEMPLATES_QUERY = """
query getDiscounts($first: Int!) {
  discountNodes(first: $first) {
    edges {
      node {
        id
        discount {
          ... on DiscountCodeBasic {
            title
            status
            summary
            codes(first: 1) { edges { node { code } } }
            startsAt
            endsAt
            usageLimit
            asyncUsageCount
            appliesOncePerCustomer
          }
        }
      }
    }
  }
}
"""


class _Retryable(Exception):
    """Internal signal: the attempt failed in a way worth retrying."""

    def __init__(self, message: str, kind: str, retry_after_ms: int | None = None):
        super().__init__(message)
        self.kind = kind
        self.retry_after_ms = retry_after_ms


class ShopifyDiscountGateway:
    """Implements the DiscountGateway protocol against the Shopify Admin GraphQL API."""

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2025-01",
        max_retries: int = 3,
        base_delay_ms: int = 1000,
        max_delay_ms: int = 10_000,
        max_retry_wait_ms: int = 30_000,
        timeout_seconds: int = 30,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.endpoint = f"https://{store_domain}/admin/api/{api_version}/graphql.json"
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms
        self.max_retry_wait_ms = max_retry_wait_ms
        self.client = httpx.AsyncClient(
            headers={
                ACCESS_TOKEN_HEADER: access_token,
                "Content-Type": "application/json",
            },
            timeout=timeout_seconds,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self.client.aclose()

    # ─── DiscountGateway protocol ────────────────────────────────

    async def fetch_template(self, template_ref: str) -> DiscountTemplate | None:
        """Fetch and parse the master discount; None if absent or not replicable."""
        data = await self.execute(
            FETCH_TEMPLATE_QUERY, {"id": template_ref},
        )
        node = data.get("discountNode")
        if not node:
            return None
        return parse_template(template_ref, node.get("discount"))

    async def create_code(self, request: dict) -> CreateResult:
        context = ErrorContext(code=request.get("code"))
        data = await self.execute(
            CREATE_CODE_MUTATION, {"basicCodeDiscount": request}, context=context,
            retry_transient=False,
        )
        payload = data.get("discountCodeBasicCreate") or {}
        user_errors = payload.get("userErrors") or []
        if user_errors:
            return CodeRejected(field_errors=user_errors)
        node = payload.get("codeDiscountNode")
        if node and node.get("id"):
            return CodeCreated(remote_id=node["id"])
        raise ShopifyAPIError(
            "Unexpected API response", "unexpected_response", context=context,
        )

    async def delete_code(self, remote_id: str) -> DeletionOutcome:
        data = await self.execute(
            DELETE_CODE_MUTATION, {"id": remote_id}, retry_transient=False,
        )
        payload = data.get("discountCodeDelete") or {}
        user_errors = payload.get("userErrors") or []
        deleted = bool(payload.get("deletedCodeDiscountId")) and not user_errors
        return DeletionOutcome(deleted=deleted, errors=user_errors)

    async def list_templates(self, limit: int) -> list[TemplateSummary]:
        data = await self.execute(LIST_TEMPLATES_QUERY, {"first": limit})
        edges = (data.get("discountNodes") or {}).get("edges") or []
        summaries = (parse_template_summary(edge["node"]) for edge in edges)
        return [s for s in summaries if s is not None]

    # ─── Transport ───────────────────────────────────────────────

    async def execute(
        self, query: str, variables: dict, context: ErrorContext | None = None,
        retry_transient: bool = True,
    ) -> dict:
        """POST one GraphQL operation; returns `data`.

        Throttling is always retried. 5xx and connection errors are retried only
        when `retry_transient` is set: a mutation that failed that way may have
        been applied. Waiting stops once `max_retry_wait_ms` would be exceeded.
        """
        waited_ms = 0
        for attempt in range(self.max_retries + 1):
            try:
                data = await self._post(query, variables, context)
                if attempt:
                    logger.info(
                        "Shopify API success after retry",
                        extra={"attempt": attempt + 1},
                    )
                return data
            except _Retryable as e:
                if e.kind != "rate_limit" and not retry_transient:
                    raise ShopifyAPIError(str(e), e.kind, context=context)
                if attempt >= self.max_retries:
                    raise ShopifyAPIError(
                        f"{e} (after {self.max_retries} retries)",
                        e.kind,
                        retry_after_ms=e.retry_after_ms,
                        context=context,
                    )
                delay = min(
                    e.retry_after_ms if e.retry_after_ms is not None else self._backoff(attempt),
                    self.max_delay_ms,
                )
                if waited_ms + delay > self.max_retry_wait_ms:
                    raise ShopifyAPIError(
                        f"{e} (retry wait budget of {self.max_retry_wait_ms}ms spent)",
                        e.kind,
                        retry_after_ms=e.retry_after_ms or delay,
                        context=context,
                    )
                logger.warning(
                    f"Shopify {e.kind}, retry after {delay}ms: {e}",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
                waited_ms += delay
        raise ShopifyAPIError("Retries exhausted", "unknown", context=context)

    async def _post(
        self, query: str, variables: dict, context: ErrorContext | None,
    ) -> dict:
        try:
            response = await self.client.post(
                self.endpoint, json={"query": query, "variables": variables},
            )
        except httpx.TimeoutException:
            raise ShopifyAPIError("API timeout", "timeout", context=context)
        except httpx.TransportError as e:
            raise _Retryable(f"Connection error: {e}", "connection_error")

        if response.status_code == 429:
            raise _Retryable(
                "Rate limit exceeded", "rate_limit",
                retry_after_ms=self._extract_retry_after(response),
            )
        if response.status_code >= 500:
            raise _Retryable(
                f"Server error {response.status_code}", "server_error",
            )
        if response.status_code >= 400:
            raise ShopifyAPIError(
                f"HTTP {response.status_code}: {response.text[:200]}",
                "client_error", context=context,
            )

        try:
            body = response.json()
        except ValueError:
            raise ShopifyAPIError(
                "Response is not valid JSON", "unexpected_response", context=context,
            )

        errors = body.get("errors")
        if errors:
            if _is_throttled(errors):
                raise _Retryable(
                    "Throttled", "rate_limit",
                    retry_after_ms=self._extract_retry_after(response),
                )
            raise ShopifyAPIError(
                f"GraphQL Error: {_first_message(errors)}",
                "graphql_error", context=context,
            )
        return body.get("data") or {}

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311

    def _extract_retry_after(self, response: httpx.Response) -> int | None:
        """Extract Retry-After header (returns milliseconds)."""
        val = response.headers.get("retry-after")
        if not val:
            return None
        try:
            return int(float(val) * 1000)
        except ValueError:
            return None


def _is_throttled(errors) -> bool:
    if not isinstance(errors, list):
        return False
    return any(
        (e.get("extensions") or {}).get("code") == "THROTTLED"
        for e in errors if isinstance(e, dict)
    )


def _first_message(errors) -> str:
    if isinstance(errors, list) and errors and isinstance(errors[0], dict):
        return errors[0].get("message", "Unknown error")
    return str(errors)


# Singleton (initialized on startup)
gateway: ShopifyDiscountGateway | None = None


def init_gateway(**kwargs) -> ShopifyDiscountGateway:
    global gateway
    gateway = ShopifyDiscountGateway(**kwargs)
    return gateway


def get_gateway() -> ShopifyDiscountGateway:
    """FastAPI dependency for the discount gateway."""
    if not gateway:
        raise RuntimeError("Shopify gateway not initialized")
    return gateway

"""Fake Discount Gateway — in-memory stand-in for the Shopify Admin API.

Invariants:
    - Implements the DiscountGateway protocol structurally (no inheritance)
    - Every call is recorded so tests can assert on requests and ordering
    - Behavior per code is configured through `rejections` and `failures`

Design Decisions:
    - Returns real CodeCreated/CodeRejected values: the dispatcher's match
      statement is exercised exactly as in production
"""

from app.core.discount_template import (
    DiscountTemplate, PercentageValue, AllItems, AllCustomers, NoMinimum,
    TemplateSummary,
)
from app.core.repository_protocols import CodeCreated, CodeRejected, DeletionOutcome

TEMPLATE_REF = "gid://shopify/DiscountCodeNode/123"


def make_template(ref: str = TEMPLATE_REF, **overrides) -> DiscountTemplate:
    fields = dict(
        ref=ref,
        title="10% off",
        value=PercentageValue(percentage=0.1),
        items=AllItems(),
        audience=AllCustomers(),
        minimum=NoMinimum(),
        starts_at="2026-01-01T00:00:00Z",
        ends_at=None,
        usage_limit=None,
        applies_once_per_customer=False,
    )
    fields.update(overrides)
    return DiscountTemplate(**fields)


class FakeGateway:
    """Configurable DiscountGateway double."""

    def __init__(self, template: DiscountTemplate | None = None):
        self.templates: dict[str, DiscountTemplate] = {}
        if template is not None:
            self.templates[template.ref] = template
        self.template_error: Exception | None = None
        self.rejections: dict[str, list[dict]] = {}
        self.failures: dict[str, BaseException] = {}
        self.delete_failures: dict[str, Exception | list[dict]] = {}
        self.fetch_calls: list[str] = []
        self.create_requests: list[dict] = []
        self.deleted: list[str] = []
        self.summaries: list[TemplateSummary] = []
        self._next_id = 1000

    async def fetch_template(self, template_ref: str) -> DiscountTemplate | None:
        self.fetch_calls.append(template_ref)
        if self.template_error is not None:
            raise self.template_error
        return self.templates.get(template_ref)

    async def create_code(self, request: dict):
        self.create_requests.append(request)
        code = request["code"]
        if code in self.failures:
            raise self.failures[code]
        if code in self.rejections:
            return CodeRejected(field_errors=self.rejections[code])
        self._next_id += 1
        return CodeCreated(remote_id=f"gid://shopify/DiscountCodeNode/{self._next_id}")

    async def delete_code(self, remote_id: str) -> DeletionOutcome:
        failure = self.delete_failures.get(remote_id)
        if isinstance(failure, Exception):
            raise failure
        if failure:
            return DeletionOutcome(deleted=False, errors=failure)
        self.deleted.append(remote_id)
        return DeletionOutcome(deleted=True)

    async def list_templates(self, limit: int) -> list[TemplateSummary]:
        return self.summaries[:limit]

    @property
    def created_codes(self) -> list[str]:
        return [r["code"] for r in self.create_requests]

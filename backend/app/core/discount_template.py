"""Discount Template — tagged variants for the polymorphic fields of a master discount.

Invariants:
    - Each polymorphic field is exactly one variant of a closed set:
        value:    PercentageValue | FixedAmountValue
        items:    AllItems | ProductScope | CollectionScope
        audience: AllCustomers | CustomerScope
        minimum:  NoMinimum | MinimumSubtotal | MinimumQuantity
    - Parsing never fails on a missing item/audience scope: it falls back to
      AllItems / AllCustomers
    - A template with no recognizable value is not a template (parse returns None)
    - Pure: no IO, payload dicts in, frozen dataclasses out

Design Decisions:
    - Frozen dataclasses + match statements over "maybe present" dict keys:
      the replicator's resolution becomes an exhaustive match
    - Parser accepts the Admin GraphQL `discountNode.discount` shape verbatim
"""

from dataclasses import dataclass, field

from app.core.domain_types import TemplateRef, TEMPLATE_GID_PREFIX


# ─── Value ───────────────────────────────────────────────────────

@dataclass(frozen=True)
class PercentageValue:
    percentage: float          # as the Admin API returns it, copied verbatim


@dataclass(frozen=True)
class FixedAmountValue:
    amount: str                # decimal string, e.g. "10.00"
    currency_code: str | None = None
    applies_on_each_item: bool = False


DiscountValue = PercentageValue | FixedAmountValue


# ─── Item scope ──────────────────────────────────────────────────

@dataclass(frozen=True)
class AllItems:
    pass


@dataclass(frozen=True)
class ProductScope:
    product_ids: tuple[str, ...]


@dataclass(frozen=True)
class CollectionScope:
    collection_ids: tuple[str, ...]


ItemScope = AllItems | ProductScope | CollectionScope


# ─── Audience scope ──────────────────────────────────────────────

@dataclass(frozen=True)
class AllCustomers:
    pass


@dataclass(frozen=True)
class CustomerScope:
    customer_ids: tuple[str, ...]


AudienceScope = AllCustomers | CustomerScope


# ─── Minimum requirement ─────────────────────────────────────────

@dataclass(frozen=True)
class NoMinimum:
    pass


@dataclass(frozen=True)
class MinimumSubtotal:
    amount: str
    currency_code: str | None = None


@dataclass(frozen=True)
class MinimumQuantity:
    quantity: str              # Admin API returns UnsignedInt64 as string


MinimumRequirement = NoMinimum | MinimumSubtotal | MinimumQuantity


# ─── Template ────────────────────────────────────────────────────

@dataclass(frozen=True)
class DiscountTemplate:
    """A master discount, reduced to what replication needs."""
    ref: str
    title: str
    value: DiscountValue
    items: ItemScope = field(default_factory=AllItems)
    audience: AudienceScope = field(default_factory=AllCustomers)
    minimum: MinimumRequirement = field(default_factory=NoMinimum)
    starts_at: str | None = None
    ends_at: str | None = None
    status: str | None = None
    usage_limit: int | None = None
    applies_once_per_customer: bool = False


@dataclass(frozen=True)
class TemplateSummary:
    """Discovery listing entry for a code discount that can serve as a template."""
    ref: str
    title: str
    status: str | None = None
    summary: str | None = None
    code: str | None = None
    starts_at: str | None = None
    ends_at: str | None = None
    usage_limit: int | None = None
    async_usage_count: int | None = None
    applies_once_per_customer: bool = False


def normalize_template_ref(raw: str) -> TemplateRef:
    """Accept a bare numeric id (from the admin URL) or a full GraphQL id.

    Raises ValueError for blank input.
    """
    ref = (raw or "").strip()
    if not ref:
        raise ValueError("template reference cannot be empty")
    if ref.startswith("gid://"):
        return TemplateRef(ref)
    return TemplateRef(f"{TEMPLATE_GID_PREFIX}{ref}")


# ─── Parsing (GraphQL payload → variants) ────────────────────────

def parse_template(ref: str, discount: dict | None) -> DiscountTemplate | None:
    """Parse `discountNode.discount` into a DiscountTemplate.

    Returns None when the node is not a basic code discount (no title or no
    customerGets value): such a node cannot be replicated.
    """
    if not discount or not discount.get("title"):
        return None
    customer_gets = discount.get("customerGets") or {}
    value = parse_value(customer_gets.get("value"))
    if value is None:
        return None
    return DiscountTemplate(
        ref=ref,
        title=discount["title"],
        value=value,
        items=parse_item_scope(customer_gets.get("items")),
        audience=parse_audience(discount.get("context")),
        minimum=parse_minimum(discount.get("minimumRequirement")),
        starts_at=discount.get("startsAt"),
        ends_at=discount.get("endsAt"),
        status=discount.get("status"),
        usage_limit=discount.get("usageLimit"),
        applies_once_per_customer=bool(discount.get("appliesOncePerCustomer")),
    )


def parse_value(payload: dict | None) -> DiscountValue | None:
    if not payload:
        return None
    if payload.get("percentage") is not None:
        return PercentageValue(percentage=float(payload["percentage"]))
    money = payload.get("amount")
    if isinstance(money, dict) and money.get("amount") is not None:
        return FixedAmountValue(
            amount=str(money["amount"]),
            currency_code=money.get("currencyCode"),
            applies_on_each_item=bool(payload.get("appliesOnEachItem", False)),
        )
    return None


def parse_item_scope(payload: dict | None) -> ItemScope:
    if not payload:
        return AllItems()
    if payload.get("allItems"):
        return AllItems()
    if "products" in payload:
        return ProductScope(product_ids=_edge_ids(payload["products"]))
    if "collections" in payload:
        return CollectionScope(collection_ids=_edge_ids(payload["collections"]))
    return AllItems()


def parse_audience(payload: dict | None) -> AudienceScope:
    if not payload:
        return AllCustomers()
    if payload.get("all"):
        return AllCustomers()
    customers = payload.get("customers")
    if customers is not None:
        return CustomerScope(
            customer_ids=tuple(c["id"] for c in customers if c.get("id")),
        )
    return AllCustomers()


def parse_minimum(payload: dict | None) -> MinimumRequirement:
    if not payload:
        return NoMinimum()
    subtotal = payload.get("greaterThanOrEqualToSubtotal")
    if subtotal:
        return MinimumSubtotal(
            amount=str(subtotal["amount"]),
            currency_code=subtotal.get("currencyCode"),
        )
    quantity = payload.get("greaterThanOrEqualToQuantity")
    if quantity is not None:
        return MinimumQuantity(quantity=str(quantity))
    return NoMinimum()


def parse_template_summary(node: dict) -> TemplateSummary | None:
    """Parse one `discountNodes` edge node; non-code discounts are skipped."""
    discount = node.get("discount") or {}
    if not discount.get("title"):
        return None
    code_edges = ((discount.get("codes") or {}).get("edges")) or []
    first_code = code_edges[0]["node"]["code"] if code_edges else None
    return TemplateSummary(
        ref=node["id"],
        title=discount["title"],
        status=discount.get("status"),
        summary=discount.get("summary"),
        code=first_code,
        starts_at=discount.get("startsAt"),
        ends_at=discount.get("endsAt"),
        usage_limit=discount.get("usageLimit"),
        async_usage_count=discount.get("asyncUsageCount"),
        applies_once_per_customer=bool(discount.get("appliesOncePerCustomer")),
    )


def _edge_ids(connection: dict | None) -> tuple[str, ...]:
    edges = (connection or {}).get("edges") or []
    return tuple(e["node"]["id"] for e in edges if e.get("node"))

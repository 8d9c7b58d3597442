"""Template Replicator — derives a per-code creation request from one master template.

Invariants:
    - The code is the only field that differs between requests built from the same template
    - value, item scope and audience are replicated with the same variant and the same ids
    - usageLimit is forced to 1 and appliesOncePerCustomer to True, whatever the template says
    - title, startsAt, endsAt and the minimum requirement are copied from the template
    - Pure: no IO; output is the Admin API `DiscountCodeBasicInput` dict

Design Decisions:
    - Shared part computed once per TemplateReplicator (one per processed batch),
      each per-code request is a deep copy of that part plus the code
"""

import copy
from typing import assert_never

from app.core.discount_template import (
    DiscountTemplate, DiscountValue, ItemScope, AudienceScope, MinimumRequirement,
    PercentageValue, FixedAmountValue,
    AllItems, ProductScope, CollectionScope,
    AllCustomers, CustomerScope,
    NoMinimum, MinimumSubtotal, MinimumQuantity,
)
from app.core.domain_types import FORCED_USAGE_LIMIT


class TemplateReplicator:
    """Builds creation requests for many codes from one master template."""

    def __init__(self, template: DiscountTemplate):
        self.template = template
        self._shared = build_shared_input(template)

    def request_for(self, code: str) -> dict:
        """Creation request for a single code."""
        request = copy.deepcopy(self._shared)
        request["code"] = code
        return request


def build_create_request(template: DiscountTemplate, code: str) -> dict:
    """One-off helper: creation request for `code` from `template`."""
    return TemplateReplicator(template).request_for(code)


def build_shared_input(template: DiscountTemplate) -> dict:
    """Every field of the creation request except the code."""
    return {
        "title": template.title,
        "startsAt": template.starts_at,
        "endsAt": template.ends_at,
        "context": audience_input(template.audience),
        "customerGets": {
            "value": value_input(template.value),
            "items": items_input(template.items),
        },
        "minimumRequirement": minimum_input(template.minimum),
        # single-use codes: business rule, not a copy of the template
        "usageLimit": FORCED_USAGE_LIMIT,
        "appliesOncePerCustomer": True,
    }


def value_input(value: DiscountValue) -> dict:
    match value:
        case PercentageValue(percentage=percentage):
            return {"percentage": percentage}
        case FixedAmountValue(amount=amount, applies_on_each_item=each):
            return {"discountAmount": {"amount": amount, "appliesOnEachItem": each}}
        case _:
            assert_never(value)


def items_input(items: ItemScope) -> dict:
    match items:
        case AllItems():
            return {"all": True}
        case ProductScope(product_ids=ids):
            return {"products": {"productsToAdd": list(ids)}}
        case CollectionScope(collection_ids=ids):
            return {"collections": {"add": list(ids)}}
        case _:
            assert_never(items)


def audience_input(audience: AudienceScope) -> dict:
    match audience:
        case AllCustomers():
            return {"all": "ALL"}
        case CustomerScope(customer_ids=ids):
            return {"customers": {"add": list(ids)}}
        case _:
            assert_never(audience)


def minimum_input(minimum: MinimumRequirement) -> dict | None:
    match minimum:
        case NoMinimum():
            return None
        case MinimumSubtotal(amount=amount):
            return {"subtotal": {"greaterThanOrEqualToSubtotal": amount}}
        case MinimumQuantity(quantity=quantity):
            return {"quantity": {"greaterThanOrEqualToQuantity": quantity}}
        case _:
            assert_never(minimum)

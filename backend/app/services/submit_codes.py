"""Submit Codes — validates the master template and queues a discount set.

Invariants:
    - Template existence is checked before anything is written
    - On any rejection nothing is persisted (single transaction, committed last)
    - Persisted (shop, code) pairs are unique: input duplicates and codes the
      shop already has are dropped before insert
    - Every queued Discount starts PENDING and carries the set's template ref
"""

import logging
from dataclasses import dataclass, field

from app.core.code_list import normalize_codes, split_existing
from app.core.discount_template import normalize_template_ref
from app.core.domain_types import DiscountSetId
from app.core.errors import (
    SubmissionValidationError, TemplateNotFoundError, EmptyCodeListError,
    CodeListTooLargeError, ShopifyAPIError, ErrorContext,
)
from app.core.repository_protocols import DiscountGateway
from app.services.discount_store import DiscountStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SubmissionResult:
    discount_set_id: DiscountSetId
    total_codes: int
    skipped_codes: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        message = (
            f"Queued {self.total_codes} discount codes. "
            "Processing will begin automatically..."
        )
        if self.skipped_codes:
            message += f" Skipped {len(self.skipped_codes)} code(s) that already exist."
        return message


async def submit_codes(
    store: DiscountStore,
    gateway: DiscountGateway,
    *,
    shop: str,
    template_ref: str,
    codes: list[str],
    set_name: str,
    max_codes: int | None = None,
) -> SubmissionResult:
    """Create a PENDING discount set for `codes` against `template_ref`."""
    # ── PURE: input validation ──
    name = (set_name or "").strip()
    if not name:
        raise SubmissionValidationError("Discount set name is required", "set_name")
    try:
        ref = normalize_template_ref(template_ref)
    except ValueError as e:
        raise SubmissionValidationError(str(e), "template_ref")

    unique_codes = normalize_codes(codes)
    if max_codes is not None and len(unique_codes) > max_codes:
        raise CodeListTooLargeError(len(unique_codes), max_codes)
    if not unique_codes:
        raise EmptyCodeListError()

    # ── IMPURE: template must resolve before anything is written ──
    try:
        template = await gateway.fetch_template(ref)
    except ShopifyAPIError as e:
        if e.api_error_type != "graphql_error":
            raise
        logger.warning(f"Template lookup rejected for {ref}: {e.message}", extra={"shop": shop})
        raise TemplateNotFoundError(ref, ErrorContext(user_message=f"{e.message}. Using ID: {ref}"))
    if template is None:
        raise TemplateNotFoundError(ref)

    existing = await store.existing_codes(shop, unique_codes)
    fresh, skipped = split_existing(unique_codes, existing)
    if not fresh:
        raise EmptyCodeListError(skipped=len(skipped))

    set_id = await store.create_set(name, shop, ref)
    await store.create_items(set_id, shop, ref, fresh)
    await store.db.commit()

    logger.info(
        f"Queued {len(fresh)} codes for set '{name}'",
        extra={"discount_set_id": set_id, "shop": shop},
    )
    return SubmissionResult(
        discount_set_id=set_id, total_codes=len(fresh), skipped_codes=skipped,
    )

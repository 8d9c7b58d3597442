"""Submit Codes — template validation and queuing of a discount set.

Invariants:
    - Unknown template → TemplateNotFoundError, nothing persisted
    - Codes are normalized and deduplicated against the shop's existing codes
    - Every queued discount is PENDING and carries the template ref
"""

import pytest
from sqlalchemy import select

from app.core.errors import (
    TemplateNotFoundError, EmptyCodeListError, CodeListTooLargeError,
    SubmissionValidationError, ShopifyAPIError,
)
from app.models.discount import Discount
from app.models.discount_set import DiscountSet
from app.services.submit_codes import submit_codes
from tests.services.conftest import SHOP
from tests.services.fake_gateway import TEMPLATE_REF


async def _submit(store, gateway, codes, template_ref=TEMPLATE_REF, **kwargs):
    return await submit_codes(
        store, gateway,
        shop=SHOP, template_ref=template_ref, codes=codes,
        set_name=kwargs.pop("set_name", "Black Friday"), **kwargs,
    )


async def test_submission_queues_pending_codes(store, gateway):
    result = await _submit(store, gateway, ["SAVE1", " SAVE2 ", "SAVE1", ""])

    assert result.total_codes == 2
    assert result.skipped_codes == []
    assert result.message.startswith("Queued 2 discount codes.")

    rows = (await store.db.execute(select(Discount))).scalars().all()
    assert sorted(r.code for r in rows) == ["SAVE1", "SAVE2"]
    assert {r.status for r in rows} == {"PENDING"}
    assert {r.master_discount_id for r in rows} == {TEMPLATE_REF}
    assert {r.discount_set_id for r in rows} == {result.discount_set_id}


async def test_numeric_template_ref_is_normalized(store, gateway):
    result = await _submit(store, gateway, ["A"], template_ref="123")
    discount_set = await store.get_set(result.discount_set_id)
    assert discount_set.master_discount_id == TEMPLATE_REF
    assert gateway.fetch_calls == [TEMPLATE_REF]


async def test_unknown_template_persists_nothing(store, gateway):
    gateway.templates.clear()

    with pytest.raises(TemplateNotFoundError):
        await _submit(store, gateway, ["A", "B"])

    assert (await store.db.execute(select(DiscountSet))).scalars().all() == []
    assert (await store.db.execute(select(Discount))).scalars().all() == []


async def test_graphql_error_on_lookup_is_template_not_found(store, gateway):
    gateway.template_error = ShopifyAPIError("GraphQL Error: Invalid id", "graphql_error")

    with pytest.raises(TemplateNotFoundError) as exc_info:
        await _submit(store, gateway, ["A"])

    assert "Invalid id" in exc_info.value.to_response()["error"]["message"]


async def test_transport_error_on_lookup_propagates(store, gateway):
    gateway.template_error = ShopifyAPIError("API timeout", "timeout")
    with pytest.raises(ShopifyAPIError):
        await _submit(store, gateway, ["A"])


async def test_existing_codes_are_skipped(store, gateway):
    await _submit(store, gateway, ["A", "B"])
    result = await _submit(store, gateway, ["B", "C"], set_name="Second run")

    assert result.total_codes == 1
    assert result.skipped_codes == ["B"]
    assert "Skipped 1 code(s)" in result.message


async def test_all_codes_existing_is_rejected(store, gateway):
    await _submit(store, gateway, ["A"])
    with pytest.raises(EmptyCodeListError) as exc_info:
        await _submit(store, gateway, ["A"], set_name="Again")
    assert exc_info.value.skipped == 1


async def test_empty_code_list_rejected_before_lookup(store, gateway):
    with pytest.raises(EmptyCodeListError):
        await _submit(store, gateway, ["  ", ""])
    assert gateway.fetch_calls == []


async def test_too_many_codes_rejected(store, gateway):
    with pytest.raises(CodeListTooLargeError):
        await _submit(store, gateway, ["A", "B", "C"], max_codes=2)


async def test_blank_name_rejected(store, gateway):
    with pytest.raises(SubmissionValidationError) as exc_info:
        await _submit(store, gateway, ["A"], set_name="   ")
    assert exc_info.value.field == "set_name"

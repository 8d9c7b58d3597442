"""DiscountSetCreate — request validation at the API boundary.

Tests:
    - set_name and template_ref are stripped and must not be blank
    - codes and/or codes_text required; all_codes concatenates both
"""

import pytest
from pydantic import ValidationError

from app.schemas.discount_set import DiscountSetCreate


def test_strips_name_and_ref():
    body = DiscountSetCreate(template_ref=" 123 ", set_name="  Sale ", codes=["A"])
    assert body.template_ref == "123"
    assert body.set_name == "Sale"


def test_blank_name_rejected():
    with pytest.raises(ValidationError):
        DiscountSetCreate(template_ref="123", set_name="   ", codes=["A"])


def test_codes_required():
    with pytest.raises(ValidationError):
        DiscountSetCreate(template_ref="123", set_name="Sale")
    with pytest.raises(ValidationError):
        DiscountSetCreate(template_ref="123", set_name="Sale", codes_text=" \n ")


def test_all_codes_merges_list_and_text():
    body = DiscountSetCreate(
        template_ref="123", set_name="Sale", codes=["A"], codes_text="B,C\nD",
    )
    assert body.all_codes() == ["A", "B", "C", "D"]

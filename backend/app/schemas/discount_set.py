"""Discount Set Schemas — Pydantic models for the bulk discount API boundary.

Invariants:
    - DiscountSetCreate: set_name 1-255 chars (stripped), template_ref non-blank,
      codes given as a list and/or as raw text (newline/comma separated)
    - Responses are snake_case JSON, ids serialized as strings

Design Decisions:
    - codes_text accepted alongside codes: pasted CSV content is split server-side
      by core/code_list.parse_code_text
    - from_attributes on read models: built directly from ORM rows
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.core.code_list import parse_code_text


class DiscountSetCreate(BaseModel):
    """Submission — master template ref, set name, and the codes to create."""
    template_ref: str = Field(min_length=1, max_length=255)
    set_name: str = Field(min_length=1, max_length=255)
    codes: list[str] = Field(default_factory=list)
    codes_text: str | None = None

    @field_validator("set_name", "template_ref")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty or whitespace")
        return v

    @model_validator(mode="after")
    def require_codes(self):
        if not self.codes and not (self.codes_text and self.codes_text.strip()):
            raise ValueError("codes or codes_text is required")
        return self

    def all_codes(self) -> list[str]:
        """Listed codes followed by codes parsed from codes_text."""
        return list(self.codes) + parse_code_text(self.codes_text or "")


class SubmissionResponse(BaseModel):
    discount_set_id: UUID
    total_codes: int
    skipped_codes: list[str] = Field(default_factory=list)
    needs_processing: bool = True
    message: str


class StatusCountsResponse(BaseModel):
    pending: int = 0
    in_progress: int = 0
    created: int = 0
    failed: int = 0
    total: int = 0


class ProcessBatchResponse(BaseModel):
    """One processBatch call — the client polls again while complete is false."""
    processed: int
    remaining: int
    complete: bool
    message: str
    created: int = 0
    failed: int = 0
    counts: StatusCountsResponse | None = None


class RetryResponse(BaseModel):
    discount_set_id: UUID
    pending_count: int
    needs_processing: bool
    message: str


class DeletionResponse(BaseModel):
    """Ack — local deletion always happened; remote fields are diagnostics."""
    success: bool = True
    message: str
    local_deleted: int
    remote_attempted: int
    remote_deleted: int
    remote_failures: list[dict] = Field(default_factory=list)


class DiscountResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    status: str
    remote_id: str | None = None
    error_message: str | None = None
    created_at: datetime
    updated_at: datetime


class DiscountSetResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    shop: str
    master_discount_id: str
    created_at: datetime
    counts: StatusCountsResponse
    discounts: list[DiscountResponse] = Field(default_factory=list)


class TemplateSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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

"""Error Hierarchy — typed, categorized exceptions for all BulkCode failure modes.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are recoverable; infrastructure errors (500-level) are critical
    - to_response() produces the REST envelope
    - Per-item creation failures are NOT exceptions here: they are absorbed into
      Discount.status/error_message by the batch dispatcher
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with BulkCodeError base: FastAPI global handler catches all
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    FORBIDDEN = "forbidden"
    DATABASE = "database"
    EXTERNAL_API = "external_api"
    INTERNAL = "internal"
    CONFLICT = "conflict"
    TIMEOUT = "timeout"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    discount_set_id: str | None = None
    discount_id: str | None = None
    code: str | None = None
    user_message: str | None = None
    debug_info: dict[str, Any] | None = None
    retry_after_ms: int | None = None


class BulkCodeError(Exception):
    """Base exception for all BulkCode errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.context.user_message or self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "discount_set_id": self.context.discount_set_id,
                    "discount_id": self.context.discount_id,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class SubmissionValidationError(BulkCodeError):
    """Submission input rejected before anything was persisted."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class TemplateNotFoundError(BulkCodeError):
    """Master template reference does not resolve at submission time."""
    def __init__(self, template_ref: str, context: ErrorContext | None = None):
        super().__init__(
            f"Master discount not found with ID: {template_ref}. "
            "Please check if the discount exists.",
            "TEMPLATE_NOT_FOUND", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.template_ref = template_ref


class EmptyCodeListError(BulkCodeError):
    """No usable codes left after normalization and per-shop dedup."""
    def __init__(self, skipped: int = 0, context: ErrorContext | None = None):
        message = "No discount codes to create."
        if skipped:
            message += f" {skipped} code(s) already exist for this shop."
        super().__init__(
            message, "EMPTY_CODE_LIST", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.skipped = skipped


class CodeListTooLargeError(BulkCodeError):
    """Submission exceeds the configured per-submission code limit."""
    def __init__(self, count: int, limit: int, context: ErrorContext | None = None):
        super().__init__(
            f"Too many codes in one submission ({count} > {limit}).",
            "CODE_LIST_TOO_LARGE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.count = count
        self.limit = limit


class ResourceNotFoundError(BulkCodeError):
    """Requested resource does not exist."""
    def __init__(
        self, resource_type: str, resource_id: str, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{resource_type} '{resource_id}' not found",
            "RESOURCE_NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )


class TemplateUnavailableError(BulkCodeError):
    """Master template vanished or could not be fetched while processing a batch.

    Batch-level: no item status changes; the client retries processBatch later.
    """
    def __init__(self, template_ref: str, reason: str, context: ErrorContext | None = None):
        super().__init__(
            f"Master discount {template_ref} unavailable: {reason}",
            "TEMPLATE_UNAVAILABLE", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.template_ref = template_ref
        self.reason = reason


class ShopMismatchError(BulkCodeError):
    """Request names a shop this deployment holds no credentials for."""
    def __init__(self, shop: str, configured: str, context: ErrorContext | None = None):
        super().__init__(
            f"Shop {shop} is not served here; this deployment manages {configured}",
            "SHOP_MISMATCH", ErrorCategory.FORBIDDEN,
            ErrorSeverity.WARNING, context, 403,
        )
        self.shop = shop


# ─── Infrastructure Errors (500-level) ──────────────────────────

class DatabaseError(BulkCodeError):
    """Database operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class ShopifyAPIError(BulkCodeError):
    """Shopify Admin API call failed (transport, throttling, or unexpected shape)."""
    def __init__(
        self,
        message: str,
        api_error_type: str,
        retry_after_ms: int | None = None,
        context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.retry_after_ms = retry_after_ms
        super().__init__(
            message, "SHOPIFY_API_ERROR", ErrorCategory.EXTERNAL_API,
            ErrorSeverity.CRITICAL, ctx, 502,
        )
        self.api_error_type = api_error_type

"""Polling Coordinator — client-side driver that repeatedly invokes processBatch.

Invariants:
    - One processBatch call at a time per coordinator; the next call is issued
      poll_interval_ms after the previous response, never concurrently
    - A snapshot is yielded after every response, so callers can stop at any
      point (cancellation = stop iterating); remaining items stay PENDING in the store
    - A BulkCodeError from processBatch moves the state to FAILED, is yielded
      as a final snapshot, and ends the run; the set stays resumable
    - max_calls bounds a single run (None = until complete)

Design Decisions:
    - process_batch injected as an async callable: BatchDispatcher.process_batch
      in-process, http_process_batch(client) from a CLI or admin job talking
      to a deployed API
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from uuid import UUID

import httpx

from app.core.batch_progress import BatchOutcome, StatusCounts
from app.core.domain_types import DEFAULT_POLL_INTERVAL_MS
from app.core.errors import BulkCodeError, ErrorCategory, ErrorContext, ErrorSeverity
from app.core.polling_state import PollingState

logger = logging.getLogger(__name__)

ProcessBatch = Callable[[UUID], Awaitable[BatchOutcome]]


class PollingCoordinator:
    """Drives one discount set from SUBMITTED (or a resume point) to COMPLETE."""

    def __init__(
        self,
        process_batch: ProcessBatch,
        poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS,
        max_calls: int | None = None,
    ):
        self.process_batch = process_batch
        self.poll_interval_ms = poll_interval_ms
        self.max_calls = max_calls
        self.state = PollingState()

    async def run(self, discount_set_id: UUID, total: int) -> AsyncIterator[dict]:
        """Start polling a freshly submitted set."""
        self.state.submitted(discount_set_id, total)
        self.state.start()
        async for snapshot in self._poll():
            yield snapshot

    async def resume(self, discount_set_id: UUID, pending: int) -> AsyncIterator[dict]:
        """Continue a partially processed set (after navigation away or retry)."""
        self.state.resume(discount_set_id, pending)
        async for snapshot in self._poll():
            yield snapshot

    async def run_to_completion(self, discount_set_id: UUID, total: int) -> PollingState:
        async for _ in self.run(discount_set_id, total):
            pass
        return self.state

    async def _poll(self) -> AsyncIterator[dict]:
        calls = 0
        set_id = self.state.discount_set_id
        while self.state.should_poll:
            if calls:
                await asyncio.sleep(self.poll_interval_ms / 1000)
            calls += 1
            try:
                outcome = await self.process_batch(set_id)
            except BulkCodeError as e:
                logger.error(
                    f"processBatch failed: {e.message}",
                    extra={"discount_set_id": set_id, "error_code": e.code},
                )
                self.state.batch_failed(e.message)
                yield self.state.snapshot()
                return
            self.state.record(outcome)
            yield self.state.snapshot()
            if self.max_calls is not None and calls >= self.max_calls:
                return


def http_process_batch(
    client: httpx.AsyncClient, base_path: str = "/api/v1/discount-sets",
) -> ProcessBatch:
    """processBatch over the HTTP API, for callers outside this process.

    This is how an admin script or CLI finishes a set submitted through
    POST /discount-sets:

        async with httpx.AsyncClient(base_url=api_url, headers=shop_header) as client:
            coordinator = PollingCoordinator(http_process_batch(client))
            async for snapshot in coordinator.run(set_id, total):
                print(snapshot["message"])

    Error envelopes come back as BulkCodeError with the server's code, status
    and retry_after_ms, so PollingCoordinator ends the run in FAILED just as
    it does in-process.
    """

    async def process_batch(discount_set_id: UUID) -> BatchOutcome:
        try:
            response = await client.post(f"{base_path}/{discount_set_id}/process")
        except httpx.TransportError as e:
            raise BulkCodeError(
                f"BulkCode API unreachable: {e}", "API_UNREACHABLE",
                ErrorCategory.EXTERNAL_API, ErrorSeverity.CRITICAL,
                ErrorContext(discount_set_id=str(discount_set_id)), 503,
            ) from e
        if response.is_error:
            raise _error_from_envelope(response, discount_set_id)

        body = response.json()
        counts = body.get("counts")
        return BatchOutcome(
            processed=body["processed"],
            remaining=body["remaining"],
            message=body["message"],
            created=body.get("created", 0),
            failed=body.get("failed", 0),
            counts=_counts_from_response(counts) if counts else None,
        )

    return process_batch


def _counts_from_response(counts: dict) -> StatusCounts:
    return StatusCounts(
        pending=counts.get("pending", 0),
        in_progress=counts.get("in_progress", 0),
        created=counts.get("created", 0),
        failed=counts.get("failed", 0),
    )


def _error_from_envelope(response: httpx.Response, discount_set_id: UUID) -> BulkCodeError:
    try:
        error = response.json().get("error") or {}
    except ValueError:
        error = {}
    retry_after_ms = (error.get("context") or {}).get("retry_after_ms")
    try:
        category = ErrorCategory(error.get("category"))
    except ValueError:
        category = ErrorCategory.INTERNAL
    return BulkCodeError(
        error.get("message") or f"HTTP {response.status_code}",
        error.get("code") or "HTTP_ERROR",
        category,
        context=ErrorContext(
            discount_set_id=str(discount_set_id), retry_after_ms=retry_after_ms,
        ),
        http_status=response.status_code,
    )

"""Code List — normalization of user-supplied discount codes before queuing.

Invariants:
    - Output codes are stripped, non-empty, and unique (first occurrence wins)
    - Input order is preserved
    - Pure: no IO (per-shop dedup against persisted codes happens in submit_codes)
"""

import re

_SEPARATORS = re.compile(r"[\r\n,]+")


def parse_code_text(text: str) -> list[str]:
    """Split pasted/uploaded text on newlines and commas, then normalize."""
    return normalize_codes(_SEPARATORS.split(text or ""))


def normalize_codes(codes: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for raw in codes:
        code = (raw or "").strip()
        if not code or code in seen:
            continue
        seen.add(code)
        result.append(code)
    return result


def split_existing(codes: list[str], existing: set[str]) -> tuple[list[str], list[str]]:
    """Partition codes into (new, already persisted for the shop)."""
    fresh = [c for c in codes if c not in existing]
    skipped = [c for c in codes if c in existing]
    return fresh, skipped

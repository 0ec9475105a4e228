"""Decision and fallback policies for the sliding-window limiter.

Fallbacks are fail-open: when the store cannot tell us the count, the
limiter assumes the smallest plausible value rather than denying traffic.
"""

from __future__ import annotations


def evaluate(total: int, limit: int) -> bool:
    """Allow when ``total`` does not exceed ``limit`` (boundary inclusive)."""
    return total <= limit


def parse_count(raw: str | None) -> int:
    """Parse a stored bucket value.

    Missing, blank, non-numeric and negative values all count as 0: a
    missing key just means the bucket was never written or has expired.
    """
    if raw is None:
        return 0
    try:
        value = int(raw.strip())
    except (AttributeError, ValueError):
        return 0
    return max(0, value)


class FallbackPolicy:
    """Substitute values used when a store call fails."""

    def on_current_read_failure(self) -> int:
        # Fail-open: a flaky store must not inflate the count.
        return 0

    def on_scan_failure(self, current_value: int) -> int:
        """Total to use when any window read failed.

        Partial sums are discarded; only the just-incremented current bucket
        is trusted.
        """
        return current_value

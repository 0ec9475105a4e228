"""Rate limiting adapters.

The API layer depends on ``AbstractRateLimiter`` only; the sliding-window
implementation counts in per-second buckets held by any store that
implements ``AbstractKVStore``.
"""

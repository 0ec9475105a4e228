"""Pydantic schemas for the rate limit endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field

from app.adapters.rate_limit.base import RateLimitConfig, RateLimitDecision


class RateLimitHitRequest(BaseModel):
    """Record one event for ``scope``; omitted settings use the service defaults."""

    scope: str = Field(
        ...,
        min_length=1,
        max_length=256,
        description="Counter partition, e.g. 'ip:203.0.113.7' or 'user:42'.",
    )
    window_sec: int | None = Field(
        default=None, ge=1, le=3600, description="Sliding window width in seconds."
    )
    limit: int | None = Field(
        default=None, ge=0, description="Max events permitted in the window."
    )
    bucket_key_prefix: str | None = Field(
        default=None,
        min_length=1,
        max_length=64,
        pattern=r"^[A-Za-z0-9_.-]+$",
        description="Bucket key namespace (no colons, so keys cannot alias).",
    )
    bucket_ttl: int | None = Field(
        default=None, ge=1, description="Bucket TTL in seconds (default 2 x window_sec)."
    )

    def to_config(self, defaults: RateLimitConfig) -> RateLimitConfig:
        """Overlay the request's overrides on ``defaults``."""
        bucket_ttl = self.bucket_ttl
        # A custom window without a custom TTL gets 2 x its own width.
        if bucket_ttl is None and self.window_sec is None:
            bucket_ttl = defaults.bucket_ttl

        return RateLimitConfig(
            window_sec=self.window_sec or defaults.window_sec,
            limit=defaults.limit if self.limit is None else self.limit,
            bucket_key_prefix=self.bucket_key_prefix or defaults.bucket_key_prefix,
            bucket_ttl=bucket_ttl,
        )


class RateLimitDecisionResponse(BaseModel):
    """Verdict for the recorded event."""

    allowed: bool = Field(..., description="Whether the event is within the limit.")
    total: int = Field(
        ..., description="Approximate events in the window, including this one."
    )
    limit: int = Field(..., description="Configured threshold.")
    remaining: int = Field(..., description="max(0, limit - total).")

    @classmethod
    def from_decision(cls, decision: RateLimitDecision) -> "RateLimitDecisionResponse":
        return cls(
            allowed=decision.allowed,
            total=decision.total,
            limit=decision.limit,
            remaining=decision.remaining,
        )

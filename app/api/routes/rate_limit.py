from fastapi import APIRouter, Depends

from app.core.auth import verify_api_key
from app.core.rate_limit import (
    build_client_scope,
    enforce_rate_limit,
    get_rate_limit_config,
    get_rate_limiter,
)
from app.schemas.rate_limit import RateLimitDecisionResponse, RateLimitHitRequest

router = APIRouter(tags=["Rate Limit"])


@router.post(
    "/rate-limit/hits",
    response_model=RateLimitDecisionResponse,
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit)],
)
async def record_hit(payload: RateLimitHitRequest) -> RateLimitDecisionResponse:
    """Record one event for a caller-chosen scope.

    Lets other services share this limiter: each call counts one event
    against ``payload.scope`` and returns the window verdict. A denied
    verdict is still a 200 response; acting on it is the caller's job.
    Caller scopes live under their own ``client:`` namespace, so they never
    touch the buckets ``enforce_rate_limit`` keeps for requesters.

    Args:
        payload: Scope plus optional window/limit overrides.

    Returns:
        RateLimitDecisionResponse: allowed, total, limit and remaining.
    """
    config = payload.to_config(get_rate_limit_config())
    limiter = await get_rate_limiter()
    decision = await limiter.record_and_evaluate(build_client_scope(payload.scope), config)
    return RateLimitDecisionResponse.from_decision(decision)

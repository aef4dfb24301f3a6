from __future__ import annotations

import json
import logging
from typing import Callable

from fastapi import Depends, HTTPException, Request, status

from interview_engine.core.config import settings
from interview_engine.dependencies.auth import get_current_user
from interview_engine.models.user import User
from interview_engine.services.rate_limiter import RateLimiter, RateLimitResult, build_rate_limiter

logger = logging.getLogger(__name__)


def get_rate_limiter(request: Request) -> RateLimiter:
    limiter = getattr(request.app.state, "rate_limiter", None)
    if limiter is None:
        limiter = build_rate_limiter()
        request.app.state.rate_limiter = limiter
    return limiter


def require_rate_limit(
    route_key: str,
    *,
    limit: int | None = None,
    window_seconds: int | None = None,
) -> Callable:
    resolved_limit = max(1, limit or settings.RATE_LIMIT_DEFAULT_MAX_REQUESTS)
    resolved_window = max(1, window_seconds or settings.RATE_LIMIT_DEFAULT_WINDOW_SECONDS)

    def dependency(
        request: Request,
        user: User = Depends(get_current_user),
        limiter: RateLimiter = Depends(get_rate_limiter),
    ) -> None:
        result = limiter.check(
            identifier=f"user:{user.id}",
            route_key=route_key,
            limit=resolved_limit,
            window_seconds=resolved_window,
        )
        _log_decision(request=request, user_id=user.id, result=result, route_key=route_key)
        if not result.allowed:
            retry_after = max(1, result.retry_after_seconds)
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail={
                    "message": "Too many requests",
                    "details": {
                        "retry_after_seconds": retry_after,
                        "limit": result.limit,
                        "remaining": result.remaining,
                    },
                },
                headers={"Retry-After": str(retry_after)},
            )

    return dependency


def _log_decision(*, request: Request, user_id: int, result: RateLimitResult, route_key: str) -> None:
    payload = {
        "user_id": user_id,
        "route": request.url.path,
        "http_method": request.method,
        "route_key": route_key,
        "limiter_key": result.limiter_key,
        "window_seconds": result.window_seconds,
        "limit": result.limit,
        "current_count": result.count,
        "remaining": result.remaining,
        "reset_epoch": result.window_reset_epoch,
        "decision": "allow" if result.allowed else "block",
    }
    logger.info(json.dumps(payload, separators=(",", ":")))

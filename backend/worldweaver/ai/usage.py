"""
AI usage accounting: monthly quotas, per-call usage rows and stats.
"""
import hashlib
import logging
import time
import uuid
from collections import Counter
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from sqlmodel import Session, select

from worldweaver.ai.artifacts import TokenUsage
from worldweaver.ai.pricing import calculate_image_cost, calculate_text_cost
from worldweaver.core.config import settings
from worldweaver.models import AIQuota, AIQuotaPublic, AIUsage, AIUsageStats, get_datetime_utc
from worldweaver.services.errors import AIServiceError, RateLimitedError, ServiceError

logger = logging.getLogger(__name__)

T = TypeVar("T")

QUOTA_EXCEEDED_MESSAGE = "AI quota exceeded. Please wait for quota reset or upgrade your plan."


def current_period(now: datetime | None = None) -> tuple[datetime, datetime]:
    now = now or get_datetime_utc()
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def get_or_create_quota(session: Session, user_id: uuid.UUID) -> AIQuota:
    period_start, period_end = current_period()
    quota = session.exec(
        select(AIQuota).where(AIQuota.user_id == user_id, AIQuota.period_start == period_start)
    ).first()
    if quota:
        return quota
    quota = AIQuota(
        user_id=user_id,
        period_start=period_start,
        period_end=period_end,
        token_limit=settings.AI_QUOTA_TOKEN_LIMIT,
        usd_limit=settings.AI_QUOTA_USD_LIMIT,
    )
    session.add(quota)
    session.commit()
    session.refresh(quota)
    logger.info("Created AI quota for user %s starting %s", user_id, period_start.date())
    return quota


def is_over_quota(quota: AIQuota) -> bool:
    if quota.token_limit is not None and quota.used_tokens >= quota.token_limit:
        return True
    if quota.usd_limit is not None and quota.used_usd >= quota.usd_limit:
        return True
    return False


def check_quota(session: Session, user_id: uuid.UUID) -> bool:
    """True when the user may still run AI generations this period."""
    return not is_over_quota(get_or_create_quota(session, user_id))


def hash_prompt(prompt: str | None) -> str | None:
    if not prompt:
        return None
    return hashlib.sha256(prompt.encode("utf-8")).hexdigest()


def track_usage(
    session: Session,
    *,
    user_id: uuid.UUID,
    operation: str,
    usage: TokenUsage | None = None,
    model: str | None = None,
    cost_usd: float = 0.0,
    success: bool = True,
    error_message: str | None = None,
    world_id: uuid.UUID | None = None,
    prompt: str | None = None,
    response_time_ms: int | None = None,
    attributes: dict[str, Any] | None = None,
) -> AIUsage:
    usage = usage or TokenUsage(model=model or settings.MODEL_DEFAULT)
    record = AIUsage(
        user_id=user_id,
        world_id=world_id,
        operation=operation,
        model=model or usage.model,
        prompt_tokens=usage.prompt_tokens,
        completion_tokens=usage.completion_tokens,
        total_tokens=usage.total_tokens or usage.prompt_tokens + usage.completion_tokens,
        cost_usd=cost_usd,
        success=success,
        error_message=error_message[:2000] if error_message else None,
        response_time_ms=response_time_ms,
        prompt_hash=hash_prompt(prompt),
        attributes=attributes or {},
    )
    session.add(record)

    if success:
        quota = get_or_create_quota(session, user_id)
        quota.used_tokens += record.total_tokens
        quota.used_usd = round(quota.used_usd + cost_usd, 6)
        quota.updated_at = get_datetime_utc()
        session.add(quota)

    session.commit()
    session.refresh(record)
    return record


def usage_cost(usage: TokenUsage, image_quality: str | None = None) -> float:
    if image_quality is not None:
        return calculate_image_cost(image_quality)
    try:
        return calculate_text_cost(usage.model, usage.prompt_tokens, usage.completion_tokens).total_cost
    except ValueError as e:
        logger.warning("Cannot price usage for %s: %s", usage.model, e)
        return 0.0


async def run_tracked(
    session: Session,
    *,
    user_id: uuid.UUID,
    operation: str,
    call: Callable[[], Awaitable[T]],
    get_usage: Callable[[], TokenUsage],
    world_id: uuid.UUID | None = None,
    prompt: str | None = None,
    image_quality: str | None = None,
    attributes: dict[str, Any] | None = None,
) -> T:
    """Run one AI call behind the quota check and record its usage either way."""
    if not check_quota(session, user_id):
        logger.warning("AI quota exceeded for user %s (%s)", user_id, operation)
        track_usage(
            session,
            user_id=user_id,
            operation=operation,
            success=False,
            error_message="AI quota exceeded",
            world_id=world_id,
            prompt=prompt,
            attributes=attributes,
        )
        raise RateLimitedError(QUOTA_EXCEEDED_MESSAGE)

    started = time.monotonic()
    try:
        result = await call()
    except Exception as e:
        elapsed_ms = int((time.monotonic() - started) * 1000)
        logger.error("AI operation %s failed for user %s: %s", operation, user_id, e)
        track_usage(
            session,
            user_id=user_id,
            operation=operation,
            success=False,
            error_message=str(e),
            world_id=world_id,
            prompt=prompt,
            response_time_ms=elapsed_ms,
            attributes=attributes,
        )
        if isinstance(e, ServiceError):
            raise
        raise AIServiceError(f"Failed to run {operation}: {e}") from e

    elapsed_ms = int((time.monotonic() - started) * 1000)
    usage = get_usage()
    track_usage(
        session,
        user_id=user_id,
        operation=operation,
        usage=usage,
        model=settings.IMAGE_MODEL if image_quality else usage.model,
        cost_usd=usage_cost(usage, image_quality),
        world_id=world_id,
        prompt=prompt,
        response_time_ms=elapsed_ms,
        attributes=attributes,
    )
    return result


def get_usage_stats(session: Session, user_id: uuid.UUID) -> AIUsageStats:
    records = session.exec(select(AIUsage).where(AIUsage.user_id == user_id)).all()
    quota = get_or_create_quota(session, user_id)
    by_operation = Counter(record.operation for record in records)
    return AIUsageStats(
        total_requests=len(records),
        successful_requests=sum(1 for r in records if r.success),
        failed_requests=sum(1 for r in records if not r.success),
        total_tokens=sum(r.prompt_tokens + r.completion_tokens for r in records),
        total_cost_usd=round(sum(r.cost_usd for r in records), 6),
        by_operation=dict(by_operation),
        quota=AIQuotaPublic.model_validate(quota),
    )

from unittest.mock import AsyncMock

import pytest
from sqlmodel import select

from worldweaver.ai.artifacts import TokenUsage
from worldweaver.ai.usage import (
    QUOTA_EXCEEDED_MESSAGE,
    check_quota,
    get_or_create_quota,
    get_usage_stats,
    hash_prompt,
    run_tracked,
    usage_cost,
)
from worldweaver.core.config import settings
from worldweaver.models import AIUsage
from worldweaver.services.errors import AIServiceError, RateLimitedError, ValidationError


def _usage() -> TokenUsage:
    return TokenUsage(model="gpt-4o-mini", prompt_tokens=1000, completion_tokens=500, total_tokens=1500)


def test_quota_is_created_with_settings_defaults(session, owner):
    quota = get_or_create_quota(session, owner.id)

    assert quota.token_limit == settings.AI_QUOTA_TOKEN_LIMIT
    assert quota.usd_limit == settings.AI_QUOTA_USD_LIMIT
    assert quota.used_tokens == 0
    assert quota.period_start < quota.period_end
    assert get_or_create_quota(session, owner.id).id == quota.id
    assert check_quota(session, owner.id) is True


@pytest.mark.asyncio
async def test_run_tracked_records_successful_usage(session, owner):
    call = AsyncMock(return_value="generated")

    result = await run_tracked(
        session,
        user_id=owner.id,
        operation="template",
        call=call,
        get_usage=_usage,
        prompt="a starship",
    )

    assert result == "generated"
    record = session.exec(select(AIUsage)).one()
    assert record.success is True
    assert record.model == "gpt-4o-mini"
    assert record.total_tokens == 1500
    assert record.cost_usd == pytest.approx(0.00045)
    assert record.prompt_hash == hash_prompt("a starship")
    quota = get_or_create_quota(session, owner.id)
    assert quota.used_tokens == 1500
    assert quota.used_usd == pytest.approx(0.00045)


@pytest.mark.asyncio
async def test_run_tracked_rejects_calls_over_quota(session, owner):
    quota = get_or_create_quota(session, owner.id)
    quota.used_tokens = quota.token_limit
    session.add(quota)
    session.commit()
    call = AsyncMock(return_value="never")

    with pytest.raises(RateLimitedError) as exc_info:
        await run_tracked(session, user_id=owner.id, operation="template", call=call, get_usage=_usage)

    assert exc_info.value.message == QUOTA_EXCEEDED_MESSAGE
    assert exc_info.value.status_code == 429
    call.assert_not_called()
    record = session.exec(select(AIUsage)).one()
    assert record.success is False


@pytest.mark.asyncio
async def test_run_tracked_wraps_unexpected_failures(session, owner):
    call = AsyncMock(side_effect=RuntimeError("provider exploded"))

    with pytest.raises(AIServiceError, match="provider exploded"):
        await run_tracked(session, user_id=owner.id, operation="entity_fields", call=call, get_usage=_usage)

    record = session.exec(select(AIUsage)).one()
    assert record.success is False
    assert record.error_message == "provider exploded"
    assert get_or_create_quota(session, owner.id).used_tokens == 0


@pytest.mark.asyncio
async def test_run_tracked_keeps_service_errors(session, owner):
    call = AsyncMock(side_effect=ValidationError("prompt", "too vague"))

    with pytest.raises(ValidationError):
        await run_tracked(session, user_id=owner.id, operation="template", call=call, get_usage=_usage)


@pytest.mark.asyncio
async def test_run_tracked_prices_images_by_quality(session, owner):
    await run_tracked(
        session,
        user_id=owner.id,
        operation="image",
        call=AsyncMock(return_value="b64"),
        get_usage=lambda: TokenUsage(model=settings.IMAGE_MODEL),
        image_quality="medium",
    )

    record = session.exec(select(AIUsage)).one()
    assert record.model == settings.IMAGE_MODEL
    assert record.cost_usd == pytest.approx(0.04)


def test_usage_cost_for_unknown_model_is_zero():
    assert usage_cost(TokenUsage(model="mystery", prompt_tokens=10, completion_tokens=10)) == 0.0


@pytest.mark.asyncio
async def test_usage_stats(session, owner):
    await run_tracked(
        session, user_id=owner.id, operation="template", call=AsyncMock(return_value=1), get_usage=_usage
    )
    with pytest.raises(AIServiceError):
        await run_tracked(
            session,
            user_id=owner.id,
            operation="entity_summary",
            call=AsyncMock(side_effect=RuntimeError("x")),
            get_usage=_usage,
        )

    stats = get_usage_stats(session, owner.id)

    assert stats.total_requests == 2
    assert stats.successful_requests == 1
    assert stats.failed_requests == 1
    assert stats.total_tokens == 1500
    assert stats.by_operation == {"template": 1, "entity_summary": 1}
    assert stats.quota is not None
    assert stats.quota.used_tokens == 1500

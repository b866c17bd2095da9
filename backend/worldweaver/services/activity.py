import logging
import uuid
from typing import Any

from sqlmodel import Session, col, select

from worldweaver.models import ActivityLog

logger = logging.getLogger(__name__)


def log_activity(
    session: Session,
    *,
    user_id: uuid.UUID,
    action: str,
    description: str,
    world_id: uuid.UUID | None = None,
    resource_type: str | None = None,
    resource_id: Any = None,
    resource_name: str | None = None,
    attributes: dict[str, Any] | None = None,
    commit: bool = True,
) -> ActivityLog:
    entry = ActivityLog(
        user_id=user_id,
        world_id=world_id,
        action=action,
        description=description,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        resource_name=resource_name,
        attributes=attributes or {},
    )
    session.add(entry)
    if commit:
        session.commit()
    logger.info("Activity %s by %s: %s", action, user_id, description)
    return entry


def list_activity(session: Session, user_id: uuid.UUID, limit: int = 20) -> list[ActivityLog]:
    statement = (
        select(ActivityLog)
        .where(ActivityLog.user_id == user_id)
        .order_by(col(ActivityLog.created_at).desc())
        .limit(limit)
    )
    return list(session.exec(statement).all())

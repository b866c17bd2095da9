import logging

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

from worldweaver.api.deps import SessionDep
from worldweaver.services.errors import DatabaseError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/utils", tags=["utils"])


@router.get("/health-check/")
async def health_check() -> bool:
    return True


@router.get("/health/db")
def health_db(session: SessionDep) -> dict[str, str]:
    try:
        session.exec(select(1))
    except SQLAlchemyError as e:
        logger.error("Database health check failed: %s", e)
        raise DatabaseError("health check", e) from e
    return {"status": "ok", "database": "reachable"}

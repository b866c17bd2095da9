import uuid
from typing import Any

from fastapi import APIRouter

from worldweaver.api.deps import CurrentUser, SessionDep, StorageDep
from worldweaver.models import Message, WorldArchive, WorldCreate, WorldPublic, WorldsPublic, WorldUpdate
from worldweaver.services import worlds as world_service
from worldweaver.services.permissions import require_world_access

router = APIRouter(prefix="/worlds", tags=["worlds"])


@router.get("/", response_model=WorldsPublic)
def read_worlds(
    session: SessionDep, current_user: CurrentUser, include_archived: bool = False
) -> Any:
    worlds = world_service.list_worlds(
        session=session, user_id=current_user.id, include_archived=include_archived
    )
    return WorldsPublic(data=worlds, count=len(worlds))


@router.post("/", response_model=WorldPublic, status_code=201)
def create_world(*, session: SessionDep, current_user: CurrentUser, world_in: WorldCreate) -> Any:
    world = world_service.create_world(session=session, world_in=world_in, owner_id=current_user.id)
    return world_service.to_world_public(session, world, "owner")


@router.get("/{world_id}", response_model=WorldPublic)
def read_world(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    world, role = require_world_access(session, world_id, current_user.id)
    return world_service.to_world_public(session, world, role)


@router.put("/{world_id}", response_model=WorldPublic)
def update_world(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, world_in: WorldUpdate
) -> Any:
    world, role = require_world_access(session, world_id, current_user.id, "change_world_settings")
    world = world_service.update_world(session=session, world=world, world_in=world_in)
    return world_service.to_world_public(session, world, role)


@router.post("/{world_id}/archive", response_model=WorldPublic)
def archive_world(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, body: WorldArchive
) -> Any:
    world, role = require_world_access(session, world_id, current_user.id, "change_world_settings")
    world = world_service.set_archived(session=session, world=world, archived=body.archived)
    return world_service.to_world_public(session, world, role)


@router.delete("/{world_id}", response_model=Message)
def delete_world(
    world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, storage: StorageDep
) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id, "delete_world")
    world_service.delete_world(session=session, world=world, user_id=current_user.id, storage=storage)
    return Message(message="World deleted successfully")

import uuid
from typing import Any

from fastapi import APIRouter

from worldweaver.api.deps import CurrentUser, SessionDep
from worldweaver.models import EntityCreate, EntityPreview, EntityPublic, EntityUpdate, Message
from worldweaver.services import entities as entity_service
from worldweaver.services.activity import log_activity
from worldweaver.services.permissions import require_world_access
from worldweaver.services.relationship_context import EntityNetwork, get_entity_network

router = APIRouter(tags=["entities"])


@router.get("/worlds/{world_id}/entities", response_model=list[EntityPublic])
def read_entities(
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    folder_id: uuid.UUID | None = None,
    template_id: uuid.UUID | None = None,
    q: str | None = None,
) -> Any:
    require_world_access(session, world_id, current_user.id)
    return entity_service.list_entities(
        session, world_id, folder_id=folder_id, template_id=template_id, query=q
    )


@router.post("/worlds/{world_id}/entities", response_model=EntityPublic, status_code=201)
def create_entity(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, entity_in: EntityCreate
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    entity = entity_service.create_entity(session=session, world_id=world_id, entity_in=entity_in)
    log_activity(
        session,
        user_id=current_user.id,
        world_id=world_id,
        action="entity_created",
        description=f'Created entity "{entity.name}"',
        resource_type="entity",
        resource_id=entity.id,
        resource_name=entity.name,
    )
    return entity


@router.get("/entities/{entity_id}", response_model=EntityPublic)
def read_entity(entity_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    entity = entity_service.get_entity(session, entity_id)
    require_world_access(session, entity.world_id, current_user.id)
    return entity


@router.get("/entities/{entity_id}/preview", response_model=EntityPreview)
def read_entity_preview(entity_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    entity = entity_service.get_entity(session, entity_id)
    require_world_access(session, entity.world_id, current_user.id)
    return entity_service.get_entity_preview(session, entity)


@router.get("/entities/{entity_id}/network", response_model=EntityNetwork)
def read_entity_network(entity_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    entity = entity_service.get_entity(session, entity_id)
    require_world_access(session, entity.world_id, current_user.id)
    return get_entity_network(session, entity.world_id, entity.id)


@router.put("/entities/{entity_id}", response_model=EntityPublic)
def update_entity(
    *, entity_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, entity_in: EntityUpdate
) -> Any:
    entity = entity_service.get_entity(session, entity_id)
    require_world_access(session, entity.world_id, current_user.id, "edit_any_card")
    return entity_service.update_entity(session=session, entity=entity, entity_in=entity_in)


@router.delete("/entities/{entity_id}", response_model=Message)
def delete_entity(entity_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    entity = entity_service.get_entity(session, entity_id)
    world_id, name = entity.world_id, entity.name
    require_world_access(session, world_id, current_user.id, "delete_any_card")
    entity_service.delete_entity(session=session, entity=entity)
    log_activity(
        session,
        user_id=current_user.id,
        world_id=world_id,
        action="entity_deleted",
        description=f'Deleted entity "{name}"',
        resource_type="entity",
        resource_id=entity_id,
        resource_name=name,
    )
    return Message(message="Entity deleted successfully")

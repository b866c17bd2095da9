import uuid
from typing import Any

from fastapi import APIRouter, Query, Response

from worldweaver.api.deps import CurrentUser, SessionDep
from worldweaver.models import Message, RelationshipCreated, RelationshipPublic
from worldweaver.services import relationships as relationship_service
from worldweaver.services.permissions import require_world_access
from worldweaver.services.relationship_context import (
    RelationshipContext,
    RelationshipHub,
    build_relationship_prompt_context,
    get_relationship_hubs,
    get_world_relationship_context,
)
from worldweaver.services.relationships import RelationshipCreate, RelationshipUpdate

router = APIRouter(tags=["relationships"])


class RelationshipContextPublic(RelationshipContext):
    prompt_context: str


@router.get("/worlds/{world_id}/relationships", response_model=list[RelationshipPublic])
def read_relationships(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    require_world_access(session, world_id, current_user.id)
    return relationship_service.list_relationships(session, world_id)


@router.post("/worlds/{world_id}/relationships", response_model=RelationshipCreated)
def create_relationship(
    *,
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    relationship_in: RelationshipCreate,
    response: Response,
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    relationship, created = relationship_service.create_relationship(
        session=session, world_id=world_id, relationship_in=relationship_in, user_id=current_user.id
    )
    response.status_code = 201 if created else 200
    names = relationship_service.entity_names(session, world_id)
    return RelationshipCreated(
        relationship=relationship_service.to_relationship_public(relationship, names),
        created=created,
    )


@router.get("/worlds/{world_id}/relationships/context", response_model=RelationshipContextPublic)
def read_relationship_context(
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    focus: list[uuid.UUID] = Query(default=[]),
    max_connections: int = Query(default=10, ge=1, le=100),
) -> Any:
    require_world_access(session, world_id, current_user.id)
    context = get_world_relationship_context(session, world_id, focus or None)
    return RelationshipContextPublic(
        **context.model_dump(),
        prompt_context=build_relationship_prompt_context(context, max_connections),
    )


@router.get("/worlds/{world_id}/relationships/hubs", response_model=list[RelationshipHub])
def read_relationship_hubs(
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    limit: int = Query(default=5, ge=1, le=50),
) -> Any:
    require_world_access(session, world_id, current_user.id)
    return get_relationship_hubs(session, world_id, limit)


@router.put("/relationships/{relationship_id}", response_model=RelationshipPublic)
def update_relationship(
    *,
    relationship_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    relationship_in: RelationshipUpdate,
) -> Any:
    relationship = relationship_service.get_relationship(session, relationship_id)
    require_world_access(session, relationship.world_id, current_user.id, "edit_any_card")
    relationship = relationship_service.update_relationship(
        session=session, relationship=relationship, relationship_in=relationship_in
    )
    return relationship_service.to_relationship_public(
        relationship, relationship_service.entity_names(session, relationship.world_id)
    )


@router.delete("/relationships/{relationship_id}", response_model=Message)
def delete_relationship(relationship_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    relationship = relationship_service.get_relationship(session, relationship_id)
    require_world_access(session, relationship.world_id, current_user.id, "delete_any_card")
    relationship_service.delete_relationship(session=session, relationship=relationship)
    return Message(message="Relationship deleted successfully")

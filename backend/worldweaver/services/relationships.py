import logging
import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlmodel import Session, col, select

from worldweaver.models import Entity, EntityRelationship, RelationshipPublic, get_datetime_utc
from worldweaver.services.errors import NotFoundError, ValidationError
from worldweaver.services.worlds import touch_world

logger = logging.getLogger(__name__)


class RelationshipCreate(BaseModel):
    # Unknown keys are kept and stored alongside metadata
    model_config = ConfigDict(extra="allow", alias_generator=to_camel, populate_by_name=True)

    from_entity_id: uuid.UUID
    to_entity_id: uuid.UUID
    label: str = Field(default="related", min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    strength: int | None = Field(default=None, ge=1, le=10)
    is_bidirectional: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class RelationshipUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    label: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    strength: int | None = Field(default=None, ge=1, le=10)
    is_bidirectional: bool | None = None
    metadata: dict[str, Any] | None = None


def entity_names(session: Session, world_id: uuid.UUID) -> dict[uuid.UUID, str]:
    rows = session.exec(select(Entity.id, Entity.name).where(Entity.world_id == world_id)).all()
    return {entity_id: name for entity_id, name in rows}


def to_relationship_public(
    relationship: EntityRelationship, names: dict[uuid.UUID, str] | None = None
) -> RelationshipPublic:
    names = names or {}
    return RelationshipPublic.model_validate(
        relationship,
        update={
            "from_name": names.get(relationship.from_entity_id),
            "to_name": names.get(relationship.to_entity_id),
        },
    )


def list_relationships(session: Session, world_id: uuid.UUID) -> list[RelationshipPublic]:
    statement = (
        select(EntityRelationship)
        .where(EntityRelationship.world_id == world_id)
        .order_by(col(EntityRelationship.created_at).desc())
    )
    names = entity_names(session, world_id)
    return [to_relationship_public(r, names) for r in session.exec(statement).all()]


def get_relationship(session: Session, relationship_id: uuid.UUID) -> EntityRelationship:
    relationship = session.get(EntityRelationship, relationship_id)
    if not relationship:
        raise NotFoundError("Relationship", relationship_id)
    return relationship


def create_relationship(
    *,
    session: Session,
    world_id: uuid.UUID,
    relationship_in: RelationshipCreate,
    user_id: uuid.UUID | None = None,
) -> tuple[EntityRelationship, bool]:
    """Create a relationship, or return the identical one that already exists.

    The second element of the result is True only when a row was inserted.
    """
    if relationship_in.from_entity_id == relationship_in.to_entity_id:
        raise ValidationError("to_entity_id", "an entity cannot be related to itself")

    wanted = {relationship_in.from_entity_id, relationship_in.to_entity_id}
    found = set(
        session.exec(
            select(Entity.id).where(col(Entity.id).in_(wanted), Entity.world_id == world_id)
        ).all()
    )
    missing = sorted(str(entity_id) for entity_id in wanted - found)
    if missing:
        raise NotFoundError(
            "Entity", message=f"Entity not found in this world: {', '.join(missing)}"
        )

    label = relationship_in.label.strip()
    existing = session.exec(
        select(EntityRelationship).where(
            EntityRelationship.world_id == world_id,
            EntityRelationship.from_entity_id == relationship_in.from_entity_id,
            EntityRelationship.to_entity_id == relationship_in.to_entity_id,
            EntityRelationship.relationship_type == label,
        )
    ).first()
    if existing:
        return existing, False

    attributes = dict(relationship_in.metadata)
    attributes.update(relationship_in.model_extra or {})
    relationship = EntityRelationship(
        world_id=world_id,
        from_entity_id=relationship_in.from_entity_id,
        to_entity_id=relationship_in.to_entity_id,
        relationship_type=label,
        description=relationship_in.description,
        strength=relationship_in.strength,
        is_bidirectional=relationship_in.is_bidirectional,
        attributes=attributes,
        created_by=user_id,
    )
    session.add(relationship)
    touch_world(session, world_id)
    session.commit()
    session.refresh(relationship)
    logger.info(
        "Created relationship %s -> %s (%s) in world %s",
        relationship.from_entity_id,
        relationship.to_entity_id,
        label,
        world_id,
    )
    return relationship, True


def update_relationship(
    *, session: Session, relationship: EntityRelationship, relationship_in: RelationshipUpdate
) -> EntityRelationship:
    update_data = relationship_in.model_dump(exclude_unset=True)
    if "label" in update_data:
        label = update_data.pop("label")
        if label is not None:
            update_data["relationship_type"] = label.strip()
    if "metadata" in update_data:
        update_data["attributes"] = update_data.pop("metadata") or {}
    relationship.sqlmodel_update(update_data, update={"updated_at": get_datetime_utc()})
    session.add(relationship)
    touch_world(session, relationship.world_id)
    session.commit()
    session.refresh(relationship)
    return relationship


def delete_relationship(*, session: Session, relationship: EntityRelationship) -> None:
    world_id = relationship.world_id
    session.delete(relationship)
    touch_world(session, world_id)
    session.commit()

import uuid

from sqlmodel import Session, col, func, or_, select

from worldweaver.models import (
    Entity,
    EntityCreate,
    EntityPreview,
    EntityPublic,
    EntityRelationship,
    EntityUpdate,
    Folder,
    MapMarker,
    Template,
    get_datetime_utc,
)
from worldweaver.services.errors import NotFoundError, ValidationError
from worldweaver.services.templates import is_visible_to_world
from worldweaver.services.worlds import touch_world


def _check_template(session: Session, template_id: uuid.UUID | None, world_id: uuid.UUID) -> None:
    if template_id is None:
        return
    template = session.get(Template, template_id)
    if not template or not is_visible_to_world(template, world_id):
        raise NotFoundError("Template", template_id)


def _check_folder(session: Session, folder_id: uuid.UUID | None, world_id: uuid.UUID) -> None:
    if folder_id is None:
        return
    folder = session.get(Folder, folder_id)
    if not folder or folder.world_id != world_id:
        raise NotFoundError("Folder", folder_id)
    if folder.kind != "entities":
        raise ValidationError("folder_id", "folder does not hold entities", str(folder_id))


def list_entities(
    session: Session,
    world_id: uuid.UUID,
    *,
    folder_id: uuid.UUID | None = None,
    template_id: uuid.UUID | None = None,
    query: str | None = None,
) -> list[Entity]:
    statement = select(Entity).where(Entity.world_id == world_id)
    if folder_id is not None:
        statement = statement.where(Entity.folder_id == folder_id)
    if template_id is not None:
        statement = statement.where(Entity.template_id == template_id)
    if query:
        pattern = f"%{query.strip()}%"
        statement = statement.where(
            or_(col(Entity.name).ilike(pattern), col(Entity.summary).ilike(pattern))
        )
    statement = statement.order_by(col(Entity.updated_at).desc())
    return list(session.exec(statement).all())


def get_entity(session: Session, entity_id: uuid.UUID) -> Entity:
    entity = session.get(Entity, entity_id)
    if not entity:
        raise NotFoundError("Entity", entity_id)
    return entity


def create_entity(*, session: Session, world_id: uuid.UUID, entity_in: EntityCreate) -> Entity:
    _check_template(session, entity_in.template_id, world_id)
    _check_folder(session, entity_in.folder_id, world_id)
    entity = Entity.model_validate(entity_in, update={"world_id": world_id})
    session.add(entity)
    touch_world(session, world_id)
    session.commit()
    session.refresh(entity)
    return entity


def update_entity(*, session: Session, entity: Entity, entity_in: EntityUpdate) -> Entity:
    update_data = entity_in.model_dump(exclude_unset=True)
    if "template_id" in update_data:
        _check_template(session, update_data["template_id"], entity.world_id)
    if "folder_id" in update_data:
        _check_folder(session, update_data["folder_id"], entity.world_id)
    entity.sqlmodel_update(update_data, update={"updated_at": get_datetime_utc()})
    session.add(entity)
    touch_world(session, entity.world_id)
    session.commit()
    session.refresh(entity)
    return entity


def delete_entity(*, session: Session, entity: Entity) -> None:
    relationships = session.exec(
        select(EntityRelationship).where(
            or_(
                EntityRelationship.from_entity_id == entity.id,
                EntityRelationship.to_entity_id == entity.id,
            )
        )
    ).all()
    for relationship in relationships:
        session.delete(relationship)
    for marker in session.exec(select(MapMarker).where(MapMarker.entity_id == entity.id)).all():
        marker.entity_id = None
        session.add(marker)
    session.flush()
    session.delete(entity)
    touch_world(session, entity.world_id)
    session.commit()


def get_entity_preview(session: Session, entity: Entity) -> EntityPreview:
    template = session.get(Template, entity.template_id) if entity.template_id else None
    relationship_count = session.exec(
        select(func.count())
        .select_from(EntityRelationship)
        .where(
            or_(
                EntityRelationship.from_entity_id == entity.id,
                EntityRelationship.to_entity_id == entity.id,
            )
        )
    ).one()
    return EntityPreview(
        entity=EntityPublic.model_validate(entity),
        template_name=template.name if template else None,
        relationship_count=relationship_count,
    )

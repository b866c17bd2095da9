import copy
import logging
import uuid

from sqlmodel import Session, col, func, or_, select

from worldweaver.core.storage import ImageStorage
from worldweaver.core_templates import CORE_FOLDER_NAME, CORE_TEMPLATES
from worldweaver.models import (
    Entity,
    EntityRelationship,
    Folder,
    Map,
    MapLayer,
    MapMarker,
    Template,
    UserStats,
    World,
    WorldCreate,
    WorldInvite,
    WorldMember,
    WorldPublic,
    WorldUpdate,
    get_datetime_utc,
)
from worldweaver.services.activity import log_activity

logger = logging.getLogger(__name__)


def _count(session: Session, model, *criteria) -> int:
    statement = select(func.count()).select_from(model)
    for criterion in criteria:
        statement = statement.where(criterion)
    return session.exec(statement).one()


def to_world_public(session: Session, world: World, role: str | None = None) -> WorldPublic:
    return WorldPublic.model_validate(
        world,
        update={
            "entity_count": _count(session, Entity, Entity.world_id == world.id),
            # Owner is an implicit member
            "member_count": _count(session, WorldMember, WorldMember.world_id == world.id) + 1,
            "role": role,
        },
    )


def create_world(*, session: Session, world_in: WorldCreate, owner_id: uuid.UUID) -> World:
    extra = {"owner_id": owner_id}
    if not world_in.description and world_in.logline:
        extra["description"] = world_in.logline
    world = World.model_validate(world_in, update=extra)
    session.add(world)
    session.flush()

    core_folder = Folder(
        world_id=world.id,
        name=CORE_FOLDER_NAME,
        description="Built-in templates available in every world",
        kind="templates",
    )
    session.add(core_folder)
    session.flush()
    for core in CORE_TEMPLATES:
        session.add(
            Template(
                world_id=world.id,
                folder_id=core_folder.id,
                name=core["name"],
                category=core["category"],
                icon=core["icon"],
                fields=copy.deepcopy(core["fields"]),
            )
        )

    log_activity(
        session,
        user_id=owner_id,
        world_id=world.id,
        action="world_created",
        description=f'Created world "{world.name}"',
        resource_type="world",
        resource_id=world.id,
        resource_name=world.name,
        commit=False,
    )
    session.commit()
    session.refresh(world)
    return world


def list_worlds(
    *, session: Session, user_id: uuid.UUID, include_archived: bool = False
) -> list[WorldPublic]:
    member_world_ids = select(WorldMember.world_id).where(WorldMember.user_id == user_id)
    statement = select(World).where(
        or_(World.owner_id == user_id, col(World.id).in_(member_world_ids))
    )
    if not include_archived:
        statement = statement.where(World.is_archived == False)  # noqa: E712
    statement = statement.order_by(col(World.updated_at).desc())
    worlds = session.exec(statement).all()

    roles = {
        member.world_id: member.role
        for member in session.exec(
            select(WorldMember).where(WorldMember.user_id == user_id)
        ).all()
    }
    return [
        to_world_public(
            session, world, "owner" if world.owner_id == user_id else roles.get(world.id)
        )
        for world in worlds
    ]


def update_world(*, session: Session, world: World, world_in: WorldUpdate) -> World:
    world_data = world_in.model_dump(exclude_unset=True)
    world.sqlmodel_update(world_data, update={"updated_at": get_datetime_utc()})
    session.add(world)
    session.commit()
    session.refresh(world)
    return world


def set_archived(*, session: Session, world: World, archived: bool) -> World:
    world.is_archived = archived
    world.archived_at = get_datetime_utc() if archived else None
    world.updated_at = get_datetime_utc()
    session.add(world)
    session.commit()
    session.refresh(world)
    return world


def touch_world(session: Session, world_id: uuid.UUID) -> None:
    world = session.get(World, world_id)
    if world:
        world.updated_at = get_datetime_utc()
        session.add(world)


def delete_world(
    *, session: Session, world: World, user_id: uuid.UUID, storage: ImageStorage | None = None
) -> None:
    map_ids = select(Map.id).where(Map.world_id == world.id)
    # Children first so the delete order holds without database-level cascades
    doomed = [
        select(MapMarker).where(col(MapMarker.map_id).in_(map_ids)),
        select(MapLayer).where(col(MapLayer.map_id).in_(map_ids)),
        select(Map).where(Map.world_id == world.id),
        select(EntityRelationship).where(EntityRelationship.world_id == world.id),
        select(Entity).where(Entity.world_id == world.id),
        select(Template).where(Template.world_id == world.id),
        select(Folder).where(Folder.world_id == world.id),
        select(WorldInvite).where(WorldInvite.world_id == world.id),
        select(WorldMember).where(WorldMember.world_id == world.id),
    ]
    for statement in doomed:
        for row in session.exec(statement).all():
            session.delete(row)
        session.flush()

    log_activity(
        session,
        user_id=user_id,
        world_id=world.id,
        action="world_deleted",
        description=f'Deleted world "{world.name}"',
        resource_type="world",
        resource_id=world.id,
        resource_name=world.name,
        commit=False,
    )
    world_id, world_name = world.id, world.name
    session.delete(world)
    session.commit()
    if storage is not None:
        for prefix in ("maps", "images"):
            storage.delete_prefix(f"{prefix}/{world_id}")
    logger.info("Deleted world %s (%s)", world_id, world_name)


def get_user_stats(*, session: Session, user_id: uuid.UUID) -> UserStats:
    owned_ids = select(World.id).where(World.owner_id == user_id)
    return UserStats(
        worlds=_count(session, World, World.owner_id == user_id),
        shared_worlds=_count(session, WorldMember, WorldMember.user_id == user_id),
        entities=_count(session, Entity, col(Entity.world_id).in_(owned_ids)),
        templates=_count(session, Template, col(Template.world_id).in_(owned_ids)),
        relationships=_count(
            session, EntityRelationship, col(EntityRelationship.world_id).in_(owned_ids)
        ),
        maps=_count(session, Map, col(Map.world_id).in_(owned_ids)),
    )

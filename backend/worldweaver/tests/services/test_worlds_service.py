import pytest
from sqlmodel import select

from worldweaver.core_templates import CORE_FOLDER_NAME, CORE_TEMPLATES
from worldweaver.models import (
    ActivityLog,
    Entity,
    EntityCreate,
    Folder,
    MapCreate,
    Template,
    World,
    WorldCreate,
    WorldMember,
    WorldUpdate,
)
from worldweaver.services.entities import create_entity
from worldweaver.services.errors import AccessDeniedError, NotFoundError
from worldweaver.services.maps import create_map
from worldweaver.services.permissions import has_permission, require_world_access
from worldweaver.services.worlds import (
    create_world,
    delete_world,
    get_user_stats,
    list_worlds,
    set_archived,
    to_world_public,
    update_world,
)
from worldweaver.tests.utils import make_user


def test_create_world_copies_core_templates(session, world):
    folder = session.exec(select(Folder).where(Folder.world_id == world.id)).one()
    templates = session.exec(select(Template).where(Template.world_id == world.id)).all()

    assert folder.name == CORE_FOLDER_NAME
    assert folder.kind == "templates"
    assert sorted(t.name for t in templates) == sorted(t["name"] for t in CORE_TEMPLATES)
    assert all(t.folder_id == folder.id for t in templates)
    assert all(not t.is_system for t in templates)
    logged = session.exec(select(ActivityLog).where(ActivityLog.world_id == world.id)).one()
    assert logged.action == "world_created"


def test_core_template_fields_are_copied_per_world(session, owner, world):
    other = create_world(session=session, world_in=WorldCreate(name="Second"), owner_id=owner.id)
    first = session.exec(
        select(Template).where(Template.world_id == world.id, Template.name == "Character")
    ).one()
    first.fields = [{"id": "tf-x", "name": "Only", "type": "shortText"}]
    session.add(first)
    session.commit()

    second = session.exec(
        select(Template).where(Template.world_id == other.id, Template.name == "Character")
    ).one()
    assert len(second.fields) > 1


def test_description_falls_back_to_logline(session, owner):
    world = create_world(
        session=session, world_in=WorldCreate(name="Vell", logline="A city of bells"), owner_id=owner.id
    )
    assert world.description == "A city of bells"


def test_world_public_counts_owner_as_member(session, owner, world):
    public = to_world_public(session, world, "owner")
    assert public.member_count == 1
    assert public.entity_count == 0
    assert public.role == "owner"


def test_list_worlds_includes_shared_and_hides_archived(session, owner, outsider, world):
    mine = create_world(session=session, world_in=WorldCreate(name="Mine"), owner_id=outsider.id)
    session.add(WorldMember(world_id=world.id, user_id=outsider.id, role="editor"))
    session.commit()

    roles = {w.name: w.role for w in list_worlds(session=session, user_id=outsider.id)}
    assert roles == {"Aerth": "editor", "Mine": "owner"}

    set_archived(session=session, world=mine, archived=True)
    assert [w.name for w in list_worlds(session=session, user_id=outsider.id)] == ["Aerth"]
    assert len(list_worlds(session=session, user_id=outsider.id, include_archived=True)) == 2


def test_update_world_only_touches_given_fields(session, world):
    updated = update_world(session=session, world=world, world_in=WorldUpdate(overall_tone="Grim"))
    assert updated.overall_tone == "Grim"
    assert updated.name == "Aerth"
    assert updated.genre_blend == ["High Fantasy"]


def test_set_archived_round_trip(session, world):
    archived = set_archived(session=session, world=world, archived=True)
    assert archived.is_archived is True
    assert archived.archived_at is not None
    restored = set_archived(session=session, world=world, archived=False)
    assert restored.is_archived is False
    assert restored.archived_at is None


def test_delete_world_removes_children(session, owner, world):
    world_id = world.id
    create_entity(session=session, world_id=world_id, entity_in=EntityCreate(name="Kael"))
    create_map(session=session, world_id=world_id, map_in=MapCreate(name="Atlas"), user_id=owner.id)

    delete_world(session=session, world=world, user_id=owner.id)

    assert session.get(World, world_id) is None
    assert session.exec(select(Entity).where(Entity.world_id == world_id)).all() == []
    assert session.exec(select(Template).where(Template.world_id == world_id)).all() == []
    assert session.exec(select(Folder).where(Folder.world_id == world_id)).all() == []
    actions = [a.action for a in session.exec(select(ActivityLog)).all()]
    assert "world_deleted" in actions


def test_user_stats(session, owner, world):
    create_entity(session=session, world_id=world.id, entity_in=EntityCreate(name="Kael"))
    stats = get_user_stats(session=session, user_id=owner.id)
    assert stats.worlds == 1
    assert stats.entities == 1
    assert stats.templates == len(CORE_TEMPLATES)
    assert stats.shared_worlds == 0


def test_require_world_access_roles(session, owner, outsider, world):
    assert require_world_access(session, world.id, owner.id, "delete_world")[1] == "owner"

    with pytest.raises(NotFoundError):
        require_world_access(session, world.id, outsider.id)

    session.add(WorldMember(world_id=world.id, user_id=outsider.id, role="viewer"))
    session.commit()
    assert require_world_access(session, world.id, outsider.id)[1] == "viewer"
    with pytest.raises(AccessDeniedError):
        require_world_access(session, world.id, outsider.id, "create_cards")


def test_public_worlds_are_readable_by_anyone(session, world):
    stranger = make_user(session, "stranger@example.com")
    world.is_public = True
    session.add(world)
    session.commit()

    assert require_world_access(session, world.id, stranger.id) == (world, "viewer")
    with pytest.raises(NotFoundError):
        require_world_access(session, world.id, stranger.id, "create_cards")


@pytest.mark.parametrize(
    "role, permission, allowed",
    [
        ("viewer", "read_world", True),
        ("viewer", "run_ai_generations", False),
        ("editor", "edit_any_card", True),
        ("editor", "delete_any_card", False),
        ("admin", "manage_members", True),
        ("admin", "delete_world", False),
        ("owner", "change_world_settings", True),
        (None, "read_world", False),
        ("ghost", "read_world", False),
    ],
)
def test_has_permission(role, permission, allowed):
    assert has_permission(role, permission) is allowed


def test_delete_world_removes_stored_images(session, storage, owner, world):
    atlas = create_map(session=session, world_id=world.id, map_in=MapCreate(name="Atlas"), user_id=owner.id)
    map_path = storage.save(f"maps/{world.id}", b"png-bytes")
    atlas.image_path = map_path
    session.add(atlas)
    session.commit()
    cover_path = storage.save(f"images/{world.id}", b"cover-bytes")
    other_path = storage.save("maps/another-world", b"kept")

    delete_world(session=session, world=world, user_id=owner.id, storage=storage)

    assert not (storage.root / map_path).exists()
    assert not (storage.root / cover_path).exists()
    assert (storage.root / other_path).exists()

import uuid

import pytest
from sqlmodel import select

from worldweaver.models import EntityCreate, MapCreate, MapLayer, MapMarker, MapUpdate, MarkerCreate
from worldweaver.services.entities import create_entity
from worldweaver.services.errors import NotFoundError, ValidationError
from worldweaver.services.maps import (
    DEFAULT_LAYERS,
    create_map,
    create_marker,
    delete_map,
    get_map,
    get_map_detail,
    list_layers,
    list_maps,
    update_map,
)


@pytest.fixture
def atlas(session, owner, world):
    return create_map(
        session=session,
        world_id=world.id,
        map_in=MapCreate(name="Atlas", width_px=800, height_px=600),
        user_id=owner.id,
    )


def test_create_map_adds_default_layers(session, atlas):
    layers = list_layers(session, atlas.id)
    assert len(layers) == len(DEFAULT_LAYERS)
    assert [layer.z_index for layer in layers] == sorted(layer["z_index"] for layer in DEFAULT_LAYERS)


def test_create_map_without_layers(session, owner, world):
    bare = create_map(
        session=session,
        world_id=world.id,
        map_in=MapCreate(name="Bare", create_default_layers=False),
        user_id=owner.id,
    )
    assert list_layers(session, bare.id) == []


def test_create_map_with_explicit_layers_and_options(session, owner, world):
    generated = create_map(
        session=session,
        world_id=world.id,
        map_in=MapCreate(name="Generated"),
        user_id=owner.id,
        layers=[{"name": "Base", "kind": "regions", "z_index": 1}],
        generation_options={"visual_style": "hex_map"},
    )
    assert [layer.name for layer in list_layers(session, generated.id)] == ["Base"]
    assert generated.generation_options == {"visual_style": "hex_map"}


def test_get_map_is_scoped_to_world(session, atlas):
    with pytest.raises(NotFoundError):
        get_map(session, uuid.uuid4(), atlas.id)
    assert get_map(session, atlas.world_id, atlas.id).id == atlas.id


def test_marker_must_fit_map(session, owner, atlas):
    with pytest.raises(ValidationError) as exc_info:
        create_marker(
            session=session, map_obj=atlas, marker_in=MarkerCreate(x=801, y=10, title="Edge"), user_id=owner.id
        )
    assert exc_info.value.field == "x"
    with pytest.raises(ValidationError):
        create_marker(
            session=session, map_obj=atlas, marker_in=MarkerCreate(x=10, y=-1, title="Edge"), user_id=owner.id
        )


def test_marker_lands_on_top_markers_layer(session, owner, atlas):
    marker = create_marker(
        session=session, map_obj=atlas, marker_in=MarkerCreate(x=800, y=600, title="Corner"), user_id=owner.id
    )
    layer = session.get(MapLayer, marker.layer_id)
    assert layer.kind == "markers"
    assert marker.created_by == owner.id


def test_marker_rejects_non_marker_layer(session, owner, atlas):
    regions = session.exec(
        select(MapLayer).where(MapLayer.map_id == atlas.id, MapLayer.kind == "regions")
    ).first()
    with pytest.raises(ValidationError):
        create_marker(
            session=session,
            map_obj=atlas,
            marker_in=MarkerCreate(x=1, y=1, title="Wrong", layer_id=regions.id),
            user_id=owner.id,
        )


def test_marker_creates_layer_when_map_has_none(session, owner, world):
    bare = create_map(
        session=session, world_id=world.id, map_in=MapCreate(name="Bare", create_default_layers=False), user_id=owner.id
    )
    create_marker(session=session, map_obj=bare, marker_in=MarkerCreate(x=1, y=1, title="First"), user_id=owner.id)
    assert [layer.kind for layer in list_layers(session, bare.id)] == ["markers"]


def test_marker_entity_must_be_in_world(session, owner, world, atlas):
    with pytest.raises(NotFoundError):
        create_marker(
            session=session,
            map_obj=atlas,
            marker_in=MarkerCreate(x=1, y=1, title="Ghost", entity_id=uuid.uuid4()),
            user_id=owner.id,
        )
    vell = create_entity(session=session, world_id=world.id, entity_in=EntityCreate(name="Port Vell"))
    marker = create_marker(
        session=session,
        map_obj=atlas,
        marker_in=MarkerCreate(x=1, y=1, title="Port Vell", entity_id=vell.id),
        user_id=owner.id,
    )
    assert marker.entity_id == vell.id


def test_map_detail_and_image_url(session, storage, owner, atlas):
    create_marker(session=session, map_obj=atlas, marker_in=MarkerCreate(x=5, y=5, title="Keep"), user_id=owner.id)
    update_map(session=session, map_obj=atlas, map_in={"image_path": "maps/atlas.png"})

    detail = get_map_detail(session, atlas, storage)

    assert detail.image_url == "/static/maps/atlas.png"
    assert len(detail.layers) == len(DEFAULT_LAYERS)
    assert [m.title for m in detail.markers] == ["Keep"]


def test_update_map(session, atlas):
    updated = update_map(session=session, map_obj=atlas, map_in=MapUpdate(description="The known world"))
    assert updated.description == "The known world"
    assert updated.width_px == 800


def test_delete_map_removes_children_and_image(session, storage, owner, world, atlas):
    path = storage.save(f"maps/{world.id}", b"\x89PNG", "image/png")
    update_map(session=session, map_obj=atlas, map_in={"image_path": path})
    create_marker(session=session, map_obj=atlas, marker_in=MarkerCreate(x=5, y=5, title="Keep"), user_id=owner.id)
    atlas_id = atlas.id

    delete_map(session=session, map_obj=atlas, storage=storage)

    assert list_maps(session, world.id) == []
    assert session.exec(select(MapMarker).where(MapMarker.map_id == atlas_id)).all() == []
    assert list_layers(session, atlas_id) == []
    assert not (storage.root / path).exists()

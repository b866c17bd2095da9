import copy
import logging
import uuid
from typing import Any

from sqlmodel import Session, col, select

from worldweaver.core.storage import ImageStorage
from worldweaver.models import (
    Entity,
    Map,
    MapCreate,
    MapDetail,
    MapLayer,
    MapLayerPublic,
    MapMarker,
    MapPublic,
    MapUpdate,
    MarkerCreate,
    MarkerPublic,
    get_datetime_utc,
)
from worldweaver.services.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_LAYERS: list[dict[str, Any]] = [
    {"name": "Markers", "kind": "markers", "z_index": 10},
    {"name": "Regions", "kind": "regions", "z_index": 5},
    {"name": "Paths", "kind": "paths", "z_index": 8},
    {"name": "Labels", "kind": "labels", "z_index": 15},
]

UPLOAD_LAYERS: list[dict[str, Any]] = [
    {"name": "Terrain", "kind": "regions", "z_index": 1, "style": {"opacity": 0.7, "color": "#228B22"}},
    {
        "name": "Political Boundaries",
        "kind": "regions",
        "z_index": 2,
        "style": {"opacity": 0.8, "color": "#FF6347", "strokeWidth": 2},
    },
    {"name": "Markers", "kind": "markers", "z_index": 3, "style": {"defaultColor": "#3B82F6", "size": 6}},
]

GENERATED_LAYERS: list[dict[str, Any]] = [
    {"name": "Base Terrain", "kind": "regions", "z_index": 1, "style": {"opacity": 0.8, "color": "#90EE90"}},
    {
        "name": "Generated Features",
        "kind": "markers",
        "z_index": 2,
        "style": {"defaultColor": "#FF4500", "size": 8},
    },
]


def to_map_public(map_obj: Map, storage: ImageStorage) -> MapPublic:
    return MapPublic.model_validate(map_obj, update={"image_url": storage.public_url(map_obj.image_path)})


def list_maps(session: Session, world_id: uuid.UUID) -> list[Map]:
    statement = select(Map).where(Map.world_id == world_id).order_by(col(Map.updated_at).desc())
    return list(session.exec(statement).all())


def get_map(session: Session, world_id: uuid.UUID, map_id: uuid.UUID) -> Map:
    map_obj = session.get(Map, map_id)
    if not map_obj or map_obj.world_id != world_id:
        raise NotFoundError("Map", map_id)
    return map_obj


def list_layers(session: Session, map_id: uuid.UUID) -> list[MapLayer]:
    statement = select(MapLayer).where(MapLayer.map_id == map_id).order_by(col(MapLayer.z_index))
    return list(session.exec(statement).all())


def list_markers(session: Session, map_id: uuid.UUID) -> list[MapMarker]:
    statement = select(MapMarker).where(MapMarker.map_id == map_id).order_by(col(MapMarker.created_at))
    return list(session.exec(statement).all())


def get_map_detail(session: Session, map_obj: Map, storage: ImageStorage) -> MapDetail:
    return MapDetail.model_validate(
        to_map_public(map_obj, storage),
        update={
            "layers": [MapLayerPublic.model_validate(layer) for layer in list_layers(session, map_obj.id)],
            "markers": [MarkerPublic.model_validate(marker) for marker in list_markers(session, map_obj.id)],
        },
    )


def add_layers(session: Session, map_id: uuid.UUID, layers: list[dict[str, Any]]) -> list[MapLayer]:
    created = [MapLayer(map_id=map_id, **copy.deepcopy(layer)) for layer in layers]
    for layer in created:
        session.add(layer)
    return created


def create_map(
    *,
    session: Session,
    world_id: uuid.UUID,
    map_in: MapCreate,
    user_id: uuid.UUID,
    layers: list[dict[str, Any]] | None = None,
    generation_options: dict[str, Any] | None = None,
) -> Map:
    map_obj = Map.model_validate(
        map_in.model_dump(exclude={"create_default_layers"}),
        update={
            "world_id": world_id,
            "created_by": user_id,
            "generation_options": generation_options or {},
        },
    )
    session.add(map_obj)
    session.flush()
    if layers is None and map_in.create_default_layers:
        layers = DEFAULT_LAYERS
    if layers:
        add_layers(session, map_obj.id, layers)
    session.commit()
    session.refresh(map_obj)
    return map_obj


def update_map(*, session: Session, map_obj: Map, map_in: MapUpdate | dict[str, Any]) -> Map:
    update_data = map_in if isinstance(map_in, dict) else map_in.model_dump(exclude_unset=True)
    map_obj.sqlmodel_update(update_data, update={"updated_at": get_datetime_utc()})
    session.add(map_obj)
    session.commit()
    session.refresh(map_obj)
    return map_obj


def delete_map(*, session: Session, map_obj: Map, storage: ImageStorage | None = None) -> None:
    for marker in list_markers(session, map_obj.id):
        session.delete(marker)
    session.flush()
    for layer in list_layers(session, map_obj.id):
        session.delete(layer)
    session.flush()
    image_path = map_obj.image_path
    session.delete(map_obj)
    session.commit()
    if storage is not None and image_path:
        storage.delete(image_path)


def _marker_layer(session: Session, map_obj: Map, layer_id: uuid.UUID | None) -> MapLayer:
    if layer_id is not None:
        layer = session.get(MapLayer, layer_id)
        if not layer or layer.map_id != map_obj.id:
            raise NotFoundError("Layer", layer_id)
        if layer.kind != "markers":
            raise ValidationError("layer_id", "markers can only be placed on a markers layer", str(layer_id))
        return layer
    layer = session.exec(
        select(MapLayer)
        .where(MapLayer.map_id == map_obj.id, MapLayer.kind == "markers")
        .order_by(col(MapLayer.z_index).desc())
    ).first()
    if layer is None:
        layer = MapLayer(map_id=map_obj.id, name="Markers", kind="markers", z_index=10)
        session.add(layer)
        session.flush()
    return layer


def create_marker(
    *, session: Session, map_obj: Map, marker_in: MarkerCreate, user_id: uuid.UUID
) -> MapMarker:
    if not (0 <= marker_in.x <= map_obj.width_px):
        raise ValidationError("x", f"must be between 0 and {map_obj.width_px}", marker_in.x)
    if not (0 <= marker_in.y <= map_obj.height_px):
        raise ValidationError("y", f"must be between 0 and {map_obj.height_px}", marker_in.y)
    if marker_in.entity_id is not None:
        entity = session.get(Entity, marker_in.entity_id)
        if not entity or entity.world_id != map_obj.world_id:
            raise NotFoundError("Entity", marker_in.entity_id)

    layer = _marker_layer(session, map_obj, marker_in.layer_id)
    marker = MapMarker.model_validate(
        marker_in,
        update={"map_id": map_obj.id, "layer_id": layer.id, "created_by": user_id},
    )
    session.add(marker)
    map_obj.updated_at = get_datetime_utc()
    session.add(map_obj)
    session.commit()
    session.refresh(marker)
    return marker

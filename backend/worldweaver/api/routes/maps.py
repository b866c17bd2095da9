import logging
import uuid
from typing import Any

from fastapi import APIRouter, File, Form, UploadFile
from pydantic import BaseModel, Field
from sqlmodel import Session, col, select

from worldweaver.ai.artifacts import ImageQuality, ImageRequest, MapGenerationOptions
from worldweaver.ai.image_generator import MAP_IMAGE_SIZE, ImageGenerator
from worldweaver.ai.prompts.images import build_map_prompt
from worldweaver.ai.usage import run_tracked
from worldweaver.api.deps import CurrentUser, SessionDep, StorageDep
from worldweaver.core.config import settings
from worldweaver.core.storage import ImageStorage, StorageError
from worldweaver.models import (
    Entity,
    MapCreate,
    MapDetail,
    MapPublic,
    MapUpdate,
    MarkerCreate,
    MarkerPublic,
    Message,
    World,
)
from worldweaver.services import maps as map_service
from worldweaver.services.errors import ServiceError, ValidationError
from worldweaver.services.permissions import require_world_access

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/worlds/{world_id}/maps", tags=["maps"])


class MapGenerateRequest(MapGenerationOptions):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    quality: ImageQuality = "medium"
    create_layers: bool = True


class MapPromptGenerateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    prompt: str = Field(min_length=1, max_length=4000)
    quality: ImageQuality = "medium"
    create_layers: bool = True


class MapPrompt(BaseModel):
    prompt: str


def _context_entity_names(session: Session, world_id: uuid.UUID, entity_ids: list[uuid.UUID]) -> list[str]:
    if not entity_ids:
        return []
    rows = session.exec(
        select(Entity.name).where(col(Entity.id).in_(entity_ids), Entity.world_id == world_id)
    ).all()
    return list(rows)


def _map_prompt(session: Session, world: World, options: MapGenerationOptions) -> str:
    return build_map_prompt(
        options,
        world=world if options.include_world_context else None,
        entity_names=_context_entity_names(session, world.id, options.context_entity_ids),
    )


@router.get("/", response_model=list[MapPublic])
def read_maps(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, storage: StorageDep) -> Any:
    require_world_access(session, world_id, current_user.id)
    return [map_service.to_map_public(m, storage) for m in map_service.list_maps(session, world_id)]


@router.post("/", response_model=MapDetail, status_code=201)
def create_map(
    *,
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    storage: StorageDep,
    map_in: MapCreate,
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    map_obj = map_service.create_map(
        session=session, world_id=world_id, map_in=map_in, user_id=current_user.id
    )
    return map_service.get_map_detail(session, map_obj, storage)


@router.post("/upload", response_model=MapDetail, status_code=201)
async def upload_map(
    *,
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    storage: StorageDep,
    file: UploadFile = File(...),
    name: str = Form(..., min_length=1, max_length=100),
    description: str | None = Form(None, max_length=2000),
    width_px: int = Form(1024, ge=1, le=20000),
    height_px: int = Form(1024, ge=1, le=20000),
) -> Any:
    """
    Upload an image as the base of a new map.
    """
    require_world_access(session, world_id, current_user.id, "create_cards")
    content_type = file.content_type or ""
    if not content_type.startswith("image/"):
        raise ValidationError("file", "only image uploads are allowed", content_type)

    content = await file.read()
    if not content:
        raise ValidationError("file", "uploaded file is empty")
    if len(content) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError("file", f"file exceeds {settings.MAX_UPLOAD_BYTES} bytes", len(content))

    map_in = MapCreate(
        name=name,
        description=description,
        width_px=width_px,
        height_px=height_px,
        create_default_layers=False,
    )
    try:
        image_path = storage.save(f"maps/{world_id}", content, content_type)
    except StorageError as e:
        raise ValidationError("file", str(e), content_type) from e

    map_obj = map_service.create_map(
        session=session,
        world_id=world_id,
        map_in=map_in,
        user_id=current_user.id,
        layers=map_service.UPLOAD_LAYERS,
    )
    map_obj = map_service.update_map(session=session, map_obj=map_obj, map_in={"image_path": image_path})
    logger.info("Uploaded map %s (%s bytes) to world %s", map_obj.id, len(content), world_id)
    return map_service.get_map_detail(session, map_obj, storage)


@router.post("/generate-prompt", response_model=MapPrompt)
def generate_map_prompt(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, options: MapGenerationOptions
) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id, "run_ai_generations")
    return MapPrompt(prompt=_map_prompt(session, world, options))


async def _generate_map(
    *,
    session: Session,
    storage: ImageStorage,
    world_id: uuid.UUID,
    user_id: uuid.UUID,
    prompt: str,
    name: str,
    description: str | None,
    quality: ImageQuality,
    layers: list[dict[str, Any]],
    generation_options: dict[str, Any],
) -> MapDetail:
    generator = ImageGenerator()
    image = await run_tracked(
        session,
        user_id=user_id,
        operation="map",
        call=lambda: generator.run(ImageRequest(prompt=prompt, quality=quality, size=MAP_IMAGE_SIZE)),
        get_usage=lambda: generator.llm.last_usage,
        world_id=world_id,
        prompt=prompt,
        image_quality=quality,
        attributes={
            key: generation_options[key] for key in ("map_purpose", "visual_style") if key in generation_options
        },
    )

    width, height = (int(v) for v in MAP_IMAGE_SIZE.split("x"))
    map_obj = map_service.create_map(
        session=session,
        world_id=world_id,
        map_in=MapCreate(
            name=name,
            description=description,
            width_px=width,
            height_px=height,
            create_default_layers=False,
        ),
        user_id=user_id,
        layers=layers,
        generation_options=generation_options,
    )
    try:
        image_path = storage.save_base64(f"maps/{world_id}", image.b64_data)
    except StorageError as e:
        logger.error("Storing generated map %s failed: %s", map_obj.id, e)
        map_service.delete_map(session=session, map_obj=map_obj)
        raise ServiceError("Failed to store the generated map image") from e

    map_obj = map_service.update_map(session=session, map_obj=map_obj, map_in={"image_path": image_path})
    return map_service.get_map_detail(session, map_obj, storage)


@router.post("/generate", response_model=MapDetail, status_code=201)
async def generate_map(
    *,
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    storage: StorageDep,
    request: MapGenerateRequest,
) -> Any:
    """
    Generate a map image from the generation options and save it as a new map.
    """
    world, _ = require_world_access(session, world_id, current_user.id, "run_ai_generations")
    return await _generate_map(
        session=session,
        storage=storage,
        world_id=world_id,
        user_id=current_user.id,
        prompt=_map_prompt(session, world, request),
        name=request.name,
        description=request.description,
        quality=request.quality,
        layers=map_service.GENERATED_LAYERS if request.create_layers else [],
        generation_options=request.model_dump(
            mode="json", exclude={"name", "description", "quality", "create_layers"}
        ),
    )


@router.post("/generate-with-prompt", response_model=MapDetail, status_code=201)
async def generate_map_with_prompt(
    *,
    world_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    storage: StorageDep,
    request: MapPromptGenerateRequest,
) -> Any:
    """
    Generate a map from a prompt the caller already has, usually one returned
    by generate-prompt and then edited.
    """
    require_world_access(session, world_id, current_user.id, "run_ai_generations")
    return await _generate_map(
        session=session,
        storage=storage,
        world_id=world_id,
        user_id=current_user.id,
        prompt=request.prompt,
        name=request.name,
        description=request.description or "AI-generated map",
        quality=request.quality,
        layers=map_service.GENERATED_LAYERS if request.create_layers else [],
        generation_options={"custom_prompt": request.prompt},
    )


@router.get("/{map_id}", response_model=MapDetail)
def read_map(
    world_id: uuid.UUID, map_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, storage: StorageDep
) -> Any:
    require_world_access(session, world_id, current_user.id)
    map_obj = map_service.get_map(session, world_id, map_id)
    return map_service.get_map_detail(session, map_obj, storage)


@router.put("/{map_id}", response_model=MapPublic)
def update_map(
    *,
    world_id: uuid.UUID,
    map_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    storage: StorageDep,
    map_in: MapUpdate,
) -> Any:
    require_world_access(session, world_id, current_user.id, "edit_any_card")
    map_obj = map_service.get_map(session, world_id, map_id)
    map_obj = map_service.update_map(session=session, map_obj=map_obj, map_in=map_in)
    return map_service.to_map_public(map_obj, storage)


@router.delete("/{map_id}", response_model=Message)
def delete_map(
    world_id: uuid.UUID, map_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, storage: StorageDep
) -> Any:
    require_world_access(session, world_id, current_user.id, "delete_any_card")
    map_obj = map_service.get_map(session, world_id, map_id)
    map_service.delete_map(session=session, map_obj=map_obj, storage=storage)
    return Message(message="Map deleted successfully")


@router.get("/{map_id}/markers", response_model=list[MarkerPublic])
def read_markers(world_id: uuid.UUID, map_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    require_world_access(session, world_id, current_user.id)
    map_obj = map_service.get_map(session, world_id, map_id)
    return map_service.list_markers(session, map_obj.id)


@router.post("/{map_id}/markers", response_model=MarkerPublic, status_code=201)
def create_marker(
    *,
    world_id: uuid.UUID,
    map_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    marker_in: MarkerCreate,
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    map_obj = map_service.get_map(session, world_id, map_id)
    return map_service.create_marker(
        session=session, map_obj=map_obj, marker_in=marker_in, user_id=current_user.id
    )

import logging
import uuid
from typing import Any, Literal

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlmodel import Session

from worldweaver.ai.artifacts import (
    EntityFieldsRequest,
    EntityFieldsResult,
    EntitySummaryRequest,
    EntitySummaryResult,
    GeneratedTemplate,
    ImageQuality,
    ImageRequest,
    TemplateGenerationRequest,
    WorldFieldsRequest,
    WorldFieldsResult,
)
from worldweaver.ai.entity_fields_generator import EntityFieldsGenerator
from worldweaver.ai.image_generator import ImageGenerator
from worldweaver.ai.prompts.images import build_entity_image_prompt, build_world_cover_prompt
from worldweaver.ai.prompts.world import WORLD_FIELD_DESCRIPTIONS
from worldweaver.ai.summary_generator import EntitySummaryGenerator
from worldweaver.ai.template_generator import TemplateGenerator
from worldweaver.ai.usage import get_usage_stats, run_tracked
from worldweaver.ai.world_fields_generator import WorldFieldsGenerator
from worldweaver.api.deps import CurrentUser, SessionDep, StorageDep
from worldweaver.core.storage import StorageError
from worldweaver.models import (
    AIUsageStats,
    Entity,
    EntityPublic,
    Template,
    TemplateField,
    World,
    get_datetime_utc,
)
from worldweaver.services import entities as entity_service
from worldweaver.services import templates as template_service
from worldweaver.services.errors import ServiceError, ValidationError
from worldweaver.services.permissions import require_world_access
from worldweaver.services.relationship_context import (
    build_relationship_prompt_context,
    get_world_relationship_context,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["ai"])


class GenerateTemplateIn(BaseModel):
    world_id: uuid.UUID
    prompt: str = Field(min_length=1, max_length=1000)


class GenerateEntityFieldsIn(BaseModel):
    world_id: uuid.UUID
    template_id: uuid.UUID | None = None
    # Used when the template has not been saved yet
    template_fields: list[TemplateField] = Field(default_factory=list)
    entity_name: str | None = Field(default=None, max_length=200)
    existing_fields: dict[str, Any] = Field(default_factory=dict)
    prompt: str | None = Field(default=None, max_length=1000)
    generate_all_fields: bool = False
    specific_field: str | None = None


class GenerateWorldFieldsIn(BaseModel):
    world_id: uuid.UUID | None = None
    fields_to_generate: list[str] = Field(min_length=1)
    prompt: str | None = Field(default=None, max_length=1000)
    existing_data: dict[str, Any] = Field(default_factory=dict)


class GenerateEntitySummaryIn(BaseModel):
    entity_id: uuid.UUID
    custom_prompt: str | None = Field(default=None, max_length=500)
    max_connections: int = Field(default=10, ge=1, le=50)


class GenerateImageIn(BaseModel):
    world_id: uuid.UUID
    kind: Literal["entity", "world_cover", "prompt"] = "prompt"
    entity_id: uuid.UUID | None = None
    prompt: str | None = Field(default=None, max_length=1000)
    quality: ImageQuality = "medium"


class GeneratedImagePublic(BaseModel):
    prompt: str
    image_path: str
    image_url: str | None = None
    quality: ImageQuality


class EntitySummaryPublic(EntitySummaryResult):
    entity: EntityPublic | None = None


def _world_data(world: World) -> dict[str, Any]:
    return world.model_dump(include=set(WORLD_FIELD_DESCRIPTIONS))


def _entity_with_world(session: Session, entity_id: uuid.UUID, user_id: uuid.UUID) -> tuple[Entity, World]:
    entity = entity_service.get_entity(session, entity_id)
    world, _ = require_world_access(session, entity.world_id, user_id, "run_ai_generations")
    return entity, world


async def _summarize_entity(
    session: Session, entity: Entity, world: World, user_id: uuid.UUID, body: GenerateEntitySummaryIn
) -> EntitySummaryResult:
    template = session.get(Template, entity.template_id) if entity.template_id else None
    context = get_world_relationship_context(session, world.id, [entity.id])
    request = EntitySummaryRequest(
        entity_name=entity.name,
        template_name=template.name if template else None,
        template_fields=template_service.template_fields(template),
        data=entity.data or {},
        relationship_context=build_relationship_prompt_context(context, body.max_connections),
        custom_prompt=body.custom_prompt,
        world=world,
    )
    generator = EntitySummaryGenerator()
    return await run_tracked(
        session,
        user_id=user_id,
        operation=generator.operation,
        call=lambda: generator.run(request),
        get_usage=lambda: generator.llm.last_usage,
        world_id=world.id,
        prompt=body.custom_prompt or entity.name,
        attributes={"entity_id": str(entity.id)},
    )


@router.post("/generate-template", response_model=GeneratedTemplate)
async def generate_template(*, session: SessionDep, current_user: CurrentUser, body: GenerateTemplateIn) -> Any:
    """
    Generate a template (name, description and 3-8 typed fields) from a prompt.
    """
    world, _ = require_world_access(session, body.world_id, current_user.id, "run_ai_generations")
    generator = TemplateGenerator()
    return await run_tracked(
        session,
        user_id=current_user.id,
        operation=generator.operation,
        call=lambda: generator.run(TemplateGenerationRequest(prompt=body.prompt, world=world)),
        get_usage=lambda: generator.llm.last_usage,
        world_id=world.id,
        prompt=body.prompt,
    )


@router.post("/generate-entity-fields", response_model=EntityFieldsResult)
async def generate_entity_fields(
    *, session: SessionDep, current_user: CurrentUser, body: GenerateEntityFieldsIn
) -> Any:
    """
    Fill entity field values. Returned keys are template field ids.
    """
    world, _ = require_world_access(session, body.world_id, current_user.id, "run_ai_generations")
    template_name = None
    fields = body.template_fields
    if body.template_id is not None:
        template = template_service.get_template(
            session=session, template_id=body.template_id, user_id=current_user.id
        )
        if not template_service.is_visible_to_world(template, world.id):
            raise ValidationError("template_id", "template does not belong to this world", str(body.template_id))
        template_name = template.name
        fields = template_service.template_fields(template)
    if not fields:
        raise ValidationError("template_fields", "a template or its fields are required")

    request = EntityFieldsRequest(
        template_fields=fields,
        prompt=body.prompt,
        entity_name=body.entity_name,
        template_name=template_name,
        existing_fields=body.existing_fields,
        world=world,
        generate_all_fields=body.generate_all_fields,
        specific_field=body.specific_field,
    )
    generator = EntityFieldsGenerator()
    return await run_tracked(
        session,
        user_id=current_user.id,
        operation=generator.operation,
        call=lambda: generator.run(request),
        get_usage=lambda: generator.llm.last_usage,
        world_id=world.id,
        prompt=body.prompt,
    )


@router.post("/generate-world-fields", response_model=WorldFieldsResult)
async def generate_world_fields(
    *, session: SessionDep, current_user: CurrentUser, body: GenerateWorldFieldsIn
) -> Any:
    """
    Generate world-level fields. Without a world_id this drafts fields for a world
    that has not been created yet.
    """
    existing_data = dict(body.existing_data)
    if body.world_id is not None:
        world, _ = require_world_access(session, body.world_id, current_user.id, "run_ai_generations")
        existing_data = {**_world_data(world), **existing_data}

    generator = WorldFieldsGenerator()
    return await run_tracked(
        session,
        user_id=current_user.id,
        operation=generator.operation,
        call=lambda: generator.run(
            WorldFieldsRequest(
                fields_to_generate=body.fields_to_generate,
                prompt=body.prompt,
                existing_data=existing_data,
            )
        ),
        get_usage=lambda: generator.llm.last_usage,
        world_id=body.world_id,
        prompt=body.prompt,
        attributes={"fields": body.fields_to_generate},
    )


@router.post("/generate-entity-summary", response_model=EntitySummaryPublic)
async def generate_entity_summary(
    *, session: SessionDep, current_user: CurrentUser, body: GenerateEntitySummaryIn
) -> Any:
    """
    Generate a summary for an entity and save it on the entity.
    """
    entity, world = _entity_with_world(session, body.entity_id, current_user.id)
    result = await _summarize_entity(session, entity, world, current_user.id, body)
    entity.summary = result.summary
    entity.updated_at = get_datetime_utc()
    session.add(entity)
    session.commit()
    session.refresh(entity)
    return EntitySummaryPublic(summary=result.summary, entity=EntityPublic.model_validate(entity))


@router.post("/generate-entity-summary-preview", response_model=EntitySummaryPublic)
async def preview_entity_summary(
    *, session: SessionDep, current_user: CurrentUser, body: GenerateEntitySummaryIn
) -> Any:
    entity, world = _entity_with_world(session, body.entity_id, current_user.id)
    result = await _summarize_entity(session, entity, world, current_user.id, body)
    return EntitySummaryPublic(summary=result.summary)


@router.post("/generate-image", response_model=GeneratedImagePublic)
async def generate_image(
    *, session: SessionDep, current_user: CurrentUser, storage: StorageDep, body: GenerateImageIn
) -> Any:
    """
    Generate an entity portrait, a world cover or a free-prompt image and store it.
    Entity and world cover images are saved as their image_url.
    """
    world, _ = require_world_access(session, body.world_id, current_user.id, "run_ai_generations")

    entity = None
    if body.kind == "entity":
        if body.entity_id is None:
            raise ValidationError("entity_id", "required for entity images")
        entity = entity_service.get_entity(session, body.entity_id)
        if entity.world_id != world.id:
            raise ValidationError("entity_id", "entity does not belong to this world", str(body.entity_id))
        template = session.get(Template, entity.template_id) if entity.template_id else None
        names = {f.id: f.name for f in template_service.template_fields(template) if f.id}
        prompt = build_entity_image_prompt(
            entity.name,
            template_name=template.name if template else None,
            details={names.get(k, k): v for k, v in (entity.data or {}).items()},
            world=world,
            custom_prompt=body.prompt,
        )
    elif body.kind == "world_cover":
        prompt = build_world_cover_prompt(world, custom_prompt=body.prompt)
    else:
        if not body.prompt or not body.prompt.strip():
            raise ValidationError("prompt", "required for free-prompt images")
        prompt = body.prompt.strip()

    generator = ImageGenerator()
    image = await run_tracked(
        session,
        user_id=current_user.id,
        operation=generator.operation,
        call=lambda: generator.run(ImageRequest(prompt=prompt, quality=body.quality)),
        get_usage=lambda: generator.llm.last_usage,
        world_id=world.id,
        prompt=prompt,
        image_quality=body.quality,
        attributes={"kind": body.kind},
    )

    try:
        image_path = storage.save_base64(f"images/{world.id}", image.b64_data)
    except StorageError as e:
        logger.error("Storing generated image for world %s failed: %s", world.id, e)
        raise ServiceError("Failed to store the generated image") from e
    image_url = storage.public_url(image_path)

    if entity is not None:
        entity.image_url = image_url
        entity.updated_at = get_datetime_utc()
        session.add(entity)
        session.commit()
    elif body.kind == "world_cover":
        world.image_url = image_url
        world.updated_at = get_datetime_utc()
        session.add(world)
        session.commit()

    return GeneratedImagePublic(prompt=prompt, image_path=image_path, image_url=image_url, quality=body.quality)


@router.get("/usage", response_model=AIUsageStats)
def read_usage(session: SessionDep, current_user: CurrentUser) -> Any:
    return get_usage_stats(session, current_user.id)

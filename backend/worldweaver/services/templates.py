import logging
import uuid
from typing import Any

from sqlmodel import Session, col, or_, select

from worldweaver.models import (
    Entity,
    Folder,
    Template,
    TemplateCreate,
    TemplateField,
    TemplateUpdate,
    get_datetime_utc,
)
from worldweaver.services.errors import AccessDeniedError, NotFoundError, ValidationError
from worldweaver.services.permissions import require_world_access

logger = logging.getLogger(__name__)


def new_field_id() -> str:
    return f"tf-{uuid.uuid4().hex[:12]}"


def normalize_fields(fields: list[TemplateField]) -> list[dict[str, Any]]:
    """Assign missing field ids and reject duplicate names or ids."""
    seen_names: set[str] = set()
    seen_ids: set[str] = set()
    normalized: list[dict[str, Any]] = []
    for field in fields:
        name_key = field.name.strip().lower()
        if name_key in seen_names:
            raise ValidationError("fields", f"duplicate field name '{field.name}'")
        seen_names.add(name_key)

        data = field.model_dump()
        data["name"] = field.name.strip()
        if not data.get("id"):
            data["id"] = new_field_id()
        if data["id"] in seen_ids:
            raise ValidationError("fields", f"duplicate field id '{data['id']}'")
        seen_ids.add(data["id"])
        normalized.append(data)
    return normalized


def _check_folder(session: Session, folder_id: uuid.UUID | None, world_id: uuid.UUID) -> None:
    if folder_id is None:
        return
    folder = session.get(Folder, folder_id)
    if not folder or folder.world_id != world_id:
        raise NotFoundError("Folder", folder_id)
    if folder.kind != "templates":
        raise ValidationError("folder_id", "folder does not hold templates", str(folder_id))


def list_templates(session: Session, world_id: uuid.UUID) -> list[Template]:
    """World templates plus system templates the world has not overridden."""
    statement = (
        select(Template)
        .where(or_(Template.world_id == world_id, Template.is_system == True))  # noqa: E712
        .order_by(col(Template.name))
    )
    templates = session.exec(statement).all()
    overridden = {t.source_template_id for t in templates if t.world_id == world_id and t.source_template_id}
    return [t for t in templates if not (t.is_system and t.id in overridden)]


def is_visible_to_world(template: Template, world_id: uuid.UUID) -> bool:
    return template.is_system or template.world_id == world_id


def create_template(*, session: Session, world_id: uuid.UUID, template_in: TemplateCreate) -> Template:
    _check_folder(session, template_in.folder_id, world_id)
    template = Template.model_validate(
        template_in,
        update={"world_id": world_id, "fields": normalize_fields(template_in.fields)},
    )
    session.add(template)
    session.commit()
    session.refresh(template)
    return template


def create_system_template(*, session: Session, template_in: TemplateCreate) -> Template:
    template = Template.model_validate(
        template_in,
        update={
            "world_id": None,
            "is_system": True,
            "folder_id": None,
            "fields": normalize_fields(template_in.fields),
        },
    )
    session.add(template)
    session.commit()
    session.refresh(template)
    return template


def get_template(
    *,
    session: Session,
    template_id: uuid.UUID,
    user_id: uuid.UUID,
    permission: str = "read_world",
) -> Template:
    template = session.get(Template, template_id)
    if not template:
        raise NotFoundError("Template", template_id)
    if template.world_id is not None:
        require_world_access(session, template.world_id, user_id, permission)
    return template


def _apply_update(template: Template, template_in: TemplateUpdate) -> None:
    update_data = template_in.model_dump(exclude_unset=True, exclude={"world_id", "fields"})
    if template_in.fields is not None:
        update_data["fields"] = normalize_fields(template_in.fields)
    template.sqlmodel_update(update_data, update={"updated_at": get_datetime_utc()})


def update_template(
    *, session: Session, template: Template, template_in: TemplateUpdate, user_id: uuid.UUID
) -> Template:
    if not template.is_system:
        if template_in.folder_id is not None:
            _check_folder(session, template_in.folder_id, template.world_id)
        _apply_update(template, template_in)
        session.add(template)
        session.commit()
        session.refresh(template)
        return template

    # System templates are copy-on-write per world
    if template_in.world_id is None:
        raise ValidationError("world_id", "required when editing a system template")
    world, _ = require_world_access(session, template_in.world_id, user_id, "edit_any_card")
    if template_in.folder_id is not None:
        _check_folder(session, template_in.folder_id, world.id)

    override = session.exec(
        select(Template).where(
            Template.world_id == world.id, Template.source_template_id == template.id
        )
    ).first()
    if override is None:
        override = Template(
            world_id=world.id,
            source_template_id=template.id,
            name=template.name,
            description=template.description,
            icon=template.icon,
            category=template.category,
            fields=[dict(field) for field in template.fields],
        )
        logger.info("Creating world %s override of system template %s", world.id, template.id)
    _apply_update(override, template_in)
    session.add(override)
    session.commit()
    session.refresh(override)
    return override


def delete_template(*, session: Session, template: Template, user_id: uuid.UUID) -> None:
    if template.is_system:
        raise AccessDeniedError("system template", "delete", user_id)
    for entity in session.exec(select(Entity).where(Entity.template_id == template.id)).all():
        entity.template_id = None
        session.add(entity)
    session.delete(template)
    session.commit()


def template_fields(template: Template | None) -> list[TemplateField]:
    if template is None:
        return []
    return [TemplateField.model_validate(field) for field in template.fields or []]

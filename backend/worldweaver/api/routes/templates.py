import uuid
from typing import Any

from fastapi import APIRouter, Depends

from worldweaver.api.deps import CurrentUser, SessionDep, get_current_active_superuser
from worldweaver.models import Message, TemplateCreate, TemplatePublic, TemplateUpdate
from worldweaver.services import templates as template_service
from worldweaver.services.permissions import require_world_access

router = APIRouter(tags=["templates"])


@router.get("/worlds/{world_id}/templates", response_model=list[TemplatePublic])
def read_world_templates(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    require_world_access(session, world_id, current_user.id)
    return template_service.list_templates(session, world_id)


@router.post("/worlds/{world_id}/templates", response_model=TemplatePublic, status_code=201)
def create_template(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, template_in: TemplateCreate
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    return template_service.create_template(session=session, world_id=world_id, template_in=template_in)


@router.post(
    "/templates/system",
    response_model=TemplatePublic,
    status_code=201,
    dependencies=[Depends(get_current_active_superuser)],
)
def create_system_template(*, session: SessionDep, template_in: TemplateCreate) -> Any:
    return template_service.create_system_template(session=session, template_in=template_in)


@router.get("/templates/{template_id}", response_model=TemplatePublic)
def read_template(template_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    return template_service.get_template(session=session, template_id=template_id, user_id=current_user.id)


@router.put("/templates/{template_id}", response_model=TemplatePublic)
def update_template(
    *, template_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, template_in: TemplateUpdate
) -> Any:
    template = template_service.get_template(
        session=session, template_id=template_id, user_id=current_user.id, permission="edit_any_card"
    )
    return template_service.update_template(
        session=session, template=template, template_in=template_in, user_id=current_user.id
    )


@router.delete("/templates/{template_id}", response_model=Message)
def delete_template(template_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    template = template_service.get_template(
        session=session, template_id=template_id, user_id=current_user.id, permission="delete_any_card"
    )
    template_service.delete_template(session=session, template=template, user_id=current_user.id)
    return Message(message="Template deleted successfully")

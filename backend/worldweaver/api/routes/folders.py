import uuid
from typing import Any

from fastapi import APIRouter

from worldweaver.api.deps import CurrentUser, SessionDep
from worldweaver.models import FolderCreate, FolderKind, FolderPublic, FolderUpdate, Message
from worldweaver.services import folders as folder_service
from worldweaver.services.permissions import require_world_access

router = APIRouter(tags=["folders"])


@router.get("/worlds/{world_id}/folders", response_model=list[FolderPublic])
def read_folders(
    world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, kind: FolderKind | None = None
) -> Any:
    require_world_access(session, world_id, current_user.id)
    return folder_service.list_folders(session, world_id, kind)


@router.post("/worlds/{world_id}/folders", response_model=FolderPublic, status_code=201)
def create_folder(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, folder_in: FolderCreate
) -> Any:
    require_world_access(session, world_id, current_user.id, "create_cards")
    folder = folder_service.create_folder(session=session, world_id=world_id, folder_in=folder_in)
    return folder_service.to_folder_public(session, folder)


@router.get("/folders/{folder_id}", response_model=FolderPublic)
def read_folder(folder_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    folder = folder_service.get_folder(session, folder_id)
    require_world_access(session, folder.world_id, current_user.id)
    return folder_service.to_folder_public(session, folder)


@router.put("/folders/{folder_id}", response_model=FolderPublic)
def update_folder(
    *, folder_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, folder_in: FolderUpdate
) -> Any:
    folder = folder_service.get_folder(session, folder_id)
    require_world_access(session, folder.world_id, current_user.id, "edit_any_card")
    folder = folder_service.update_folder(session=session, folder=folder, folder_in=folder_in)
    return folder_service.to_folder_public(session, folder)


@router.delete("/folders/{folder_id}", response_model=Message)
def delete_folder(folder_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    folder = folder_service.get_folder(session, folder_id)
    require_world_access(session, folder.world_id, current_user.id, "delete_any_card")
    folder_service.delete_folder(session=session, folder=folder)
    return Message(message="Folder deleted successfully")

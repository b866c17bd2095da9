import uuid

from sqlmodel import Session, col, func, select

from worldweaver.models import (
    Entity,
    Folder,
    FolderCreate,
    FolderPublic,
    FolderUpdate,
    Template,
    get_datetime_utc,
)
from worldweaver.services.errors import NotFoundError, ValidationError


def _item_model(kind: str):
    return Template if kind == "templates" else Entity


def to_folder_public(session: Session, folder: Folder) -> FolderPublic:
    model = _item_model(folder.kind)
    count = session.exec(
        select(func.count()).select_from(model).where(model.folder_id == folder.id)
    ).one()
    return FolderPublic.model_validate(folder, update={"count": count})


def list_folders(session: Session, world_id: uuid.UUID, kind: str | None = None) -> list[FolderPublic]:
    statement = select(Folder).where(Folder.world_id == world_id)
    if kind:
        statement = statement.where(Folder.kind == kind)
    statement = statement.order_by(col(Folder.name))
    return [to_folder_public(session, folder) for folder in session.exec(statement).all()]


def get_folder(session: Session, folder_id: uuid.UUID) -> Folder:
    folder = session.get(Folder, folder_id)
    if not folder:
        raise NotFoundError("Folder", folder_id)
    return folder


def _check_parent(session: Session, folder: Folder, parent_id: uuid.UUID | None) -> None:
    if parent_id is None:
        return
    if parent_id == folder.id:
        raise ValidationError("parent_folder_id", "a folder cannot be its own parent", str(parent_id))
    parent = session.get(Folder, parent_id)
    if not parent or parent.world_id != folder.world_id:
        raise NotFoundError("Folder", parent_id)
    if parent.kind != folder.kind:
        raise ValidationError("parent_folder_id", "parent folder holds a different kind", str(parent_id))
    # Walk up to make sure the move does not create a cycle
    seen = {folder.id}
    current = parent
    while current is not None:
        if current.id in seen:
            raise ValidationError("parent_folder_id", "folder hierarchy would contain a cycle", str(parent_id))
        seen.add(current.id)
        current = session.get(Folder, current.parent_folder_id) if current.parent_folder_id else None


def create_folder(*, session: Session, world_id: uuid.UUID, folder_in: FolderCreate) -> Folder:
    folder = Folder.model_validate(folder_in, update={"world_id": world_id})
    _check_parent(session, folder, folder.parent_folder_id)
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return folder


def update_folder(*, session: Session, folder: Folder, folder_in: FolderUpdate) -> Folder:
    update_data = folder_in.model_dump(exclude_unset=True)
    if "parent_folder_id" in update_data:
        _check_parent(session, folder, update_data["parent_folder_id"])
    folder.sqlmodel_update(update_data, update={"updated_at": get_datetime_utc()})
    session.add(folder)
    session.commit()
    session.refresh(folder)
    return folder


def delete_folder(*, session: Session, folder: Folder) -> None:
    """Delete a folder; its items and subfolders move up to the folder's parent."""
    model = _item_model(folder.kind)
    for item in session.exec(select(model).where(model.folder_id == folder.id)).all():
        item.folder_id = folder.parent_folder_id
        session.add(item)
    for child in session.exec(select(Folder).where(Folder.parent_folder_id == folder.id)).all():
        child.parent_folder_id = folder.parent_folder_id
        session.add(child)
    session.delete(folder)
    session.commit()

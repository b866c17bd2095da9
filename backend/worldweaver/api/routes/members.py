import uuid
from typing import Any

from fastapi import APIRouter

from worldweaver.api.deps import CurrentUser, SessionDep
from worldweaver.models import (
    InviteAccept,
    InviteCreate,
    InviteLinkUpdate,
    InvitePublic,
    JoinInfo,
    MemberPublic,
    MemberRoleUpdate,
    Message,
    WorldPublic,
)
from worldweaver.services import members as member_service
from worldweaver.services.permissions import require_world_access
from worldweaver.services.worlds import to_world_public

router = APIRouter(tags=["members"])


@router.get("/worlds/{world_id}/members", response_model=list[MemberPublic])
def read_members(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id)
    return member_service.list_members(session, world)


@router.patch("/worlds/{world_id}/members/{member_id}", response_model=Message)
def update_member_role(
    *,
    world_id: uuid.UUID,
    member_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
    body: MemberRoleUpdate,
) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id, "manage_members")
    member_service.update_member_role(
        session=session, world=world, member_id=member_id, role=body.role, actor_id=current_user.id
    )
    return Message(message="Member role updated successfully")


@router.delete("/worlds/{world_id}/members/{member_id}", response_model=Message)
def remove_member(
    world_id: uuid.UUID, member_id: uuid.UUID, session: SessionDep, current_user: CurrentUser
) -> Any:
    # Any member may remove themselves; removing others is checked in the service
    world, role = require_world_access(session, world_id, current_user.id)
    member_service.remove_member(
        session=session,
        world=world,
        member_id=member_id,
        actor_id=current_user.id,
        actor_role=role,
    )
    return Message(message="Member removed successfully")


@router.post("/worlds/{world_id}/invites", response_model=InvitePublic, status_code=201)
def create_invite(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, invite_in: InviteCreate
) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id, "manage_members")
    return member_service.create_invite(
        session=session, world=world, invite_in=invite_in, invited_by=current_user.id
    )


@router.get("/worlds/{world_id}/invites", response_model=list[InvitePublic])
def read_invites(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    world, role = require_world_access(session, world_id, current_user.id)
    return member_service.list_invites(session, world, current_user, role)


@router.delete("/worlds/{world_id}/invites/{invite_id}", response_model=InvitePublic)
def revoke_invite(
    world_id: uuid.UUID, invite_id: uuid.UUID, session: SessionDep, current_user: CurrentUser
) -> Any:
    world, _ = require_world_access(session, world_id, current_user.id, "manage_members")
    return member_service.revoke_invite(session=session, world=world, invite_id=invite_id)


@router.post("/invites/accept", response_model=WorldPublic)
def accept_invite(*, session: SessionDep, current_user: CurrentUser, body: InviteAccept) -> Any:
    world = member_service.accept_invite(session=session, token=body.token, user=current_user)
    _, role = require_world_access(session, world.id, current_user.id)
    return to_world_public(session, world, role)


@router.put("/worlds/{world_id}/invite-link", response_model=WorldPublic)
def update_invite_link(
    *, world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser, link_in: InviteLinkUpdate
) -> Any:
    world, role = require_world_access(session, world_id, current_user.id, "manage_members")
    world = member_service.update_invite_link(session=session, world=world, link_in=link_in)
    return to_world_public(session, world, role)


@router.get("/worlds/{world_id}/join-info", response_model=JoinInfo)
def read_join_info(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    return member_service.get_join_info(session, world_id, current_user)


@router.post("/worlds/{world_id}/join", response_model=WorldPublic)
def join_world(world_id: uuid.UUID, session: SessionDep, current_user: CurrentUser) -> Any:
    world = member_service.join_world(session=session, world_id=world_id, user=current_user)
    _, role = require_world_access(session, world.id, current_user.id)
    return to_world_public(session, world, role)

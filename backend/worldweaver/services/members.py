import logging
import secrets
import uuid
from datetime import timedelta

from sqlmodel import Session, col, func, select

from worldweaver.models import (
    InviteCreate,
    InviteLinkUpdate,
    JoinInfo,
    MemberPublic,
    User,
    World,
    WorldInvite,
    WorldMember,
    as_utc,
    get_datetime_utc,
)
from worldweaver.services.activity import log_activity
from worldweaver.services.errors import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from worldweaver.services.permissions import ASSIGNABLE_ROLES, get_member_role, has_permission

logger = logging.getLogger(__name__)

INVITE_TOKEN_BYTES = 24


def _member_count(session: Session, world_id: uuid.UUID) -> int:
    return session.exec(
        select(func.count()).select_from(WorldMember).where(WorldMember.world_id == world_id)
    ).one()


def _check_seat_available(session: Session, world: World) -> None:
    if world.seat_limit is None:
        return
    # Owner takes one seat
    if _member_count(session, world.id) + 1 >= world.seat_limit:
        raise ConflictError(
            "This world has reached its member limit", {"seat_limit": world.seat_limit}
        )


def list_members(session: Session, world: World) -> list[MemberPublic]:
    owner = session.get(User, world.owner_id)
    members = [
        MemberPublic(
            id=world.owner_id,
            user_id=world.owner_id,
            email=owner.email if owner else "",
            full_name=owner.full_name if owner else None,
            avatar_url=owner.avatar_url if owner else None,
            role="owner",
            is_owner=True,
            joined_at=world.created_at,
        )
    ]
    rows = session.exec(
        select(WorldMember, User)
        .join(User, col(User.id) == col(WorldMember.user_id))
        .where(WorldMember.world_id == world.id)
        .order_by(col(WorldMember.joined_at))
    ).all()
    for member, user in rows:
        members.append(
            MemberPublic(
                id=member.id,
                user_id=user.id,
                email=user.email,
                full_name=user.full_name,
                avatar_url=user.avatar_url,
                role=member.role,
                joined_at=member.joined_at,
            )
        )
    return members


def _get_member(session: Session, world: World, member_id: uuid.UUID) -> WorldMember:
    member = session.get(WorldMember, member_id)
    if not member or member.world_id != world.id:
        raise NotFoundError("Member", member_id)
    return member


def update_member_role(
    *, session: Session, world: World, member_id: uuid.UUID, role: str, actor_id: uuid.UUID
) -> WorldMember:
    if member_id == world.owner_id:
        raise AccessDeniedError("world owner", "change the role of")
    if role not in ASSIGNABLE_ROLES:
        raise ValidationError("role", f"must be one of {', '.join(ASSIGNABLE_ROLES)}", role)
    member = _get_member(session, world, member_id)
    previous = member.role
    member.role = role
    session.add(member)
    log_activity(
        session,
        user_id=actor_id,
        world_id=world.id,
        action="member_role_changed",
        description=f"Changed member role from {previous} to {role}",
        resource_type="member",
        resource_id=member.user_id,
        commit=False,
    )
    session.commit()
    session.refresh(member)
    return member


def remove_member(
    *, session: Session, world: World, member_id: uuid.UUID, actor_id: uuid.UUID, actor_role: str
) -> None:
    if member_id == world.owner_id:
        raise AccessDeniedError("world owner", "remove")
    member = _get_member(session, world, member_id)
    leaving = member.user_id == actor_id
    if not leaving and not has_permission(actor_role, "manage_members"):
        raise AccessDeniedError("world members", "remove", actor_id)
    session.delete(member)
    log_activity(
        session,
        user_id=actor_id,
        world_id=world.id,
        action="member_left" if leaving else "member_removed",
        description=f'Left world "{world.name}"' if leaving else "Removed a member from the world",
        resource_type="member",
        resource_id=member.user_id,
        commit=False,
    )
    session.commit()


def _invite_state(invite: WorldInvite) -> str | None:
    if invite.revoked_at is not None:
        return "revoked"
    if invite.accepted_at is not None:
        return "accepted"
    if as_utc(invite.expires_at) < get_datetime_utc():
        return "expired"
    return None


def create_invite(
    *, session: Session, world: World, invite_in: InviteCreate, invited_by: uuid.UUID
) -> WorldInvite:
    email = invite_in.email.lower()
    existing_user = session.exec(select(User).where(func.lower(User.email) == email)).first()
    if existing_user and get_member_role(session, world, existing_user.id):
        raise ConflictError(f"{email} is already a member of this world")
    _check_seat_available(session, world)

    invite = WorldInvite(
        world_id=world.id,
        email=email,
        role=invite_in.role,
        invited_by=invited_by,
        token=secrets.token_hex(INVITE_TOKEN_BYTES),
        expires_at=get_datetime_utc() + timedelta(days=invite_in.expires_in_days),
    )
    session.add(invite)
    session.commit()
    session.refresh(invite)
    logger.info("Invited %s to world %s as %s", email, world.id, invite.role)
    return invite


def list_invites(session: Session, world: World, user: User, role: str) -> list[WorldInvite]:
    statement = select(WorldInvite).where(WorldInvite.world_id == world.id)
    if not has_permission(role, "manage_members"):
        statement = statement.where(func.lower(WorldInvite.email) == user.email.lower())
    statement = statement.order_by(col(WorldInvite.created_at).desc())
    return list(session.exec(statement).all())


def revoke_invite(*, session: Session, world: World, invite_id: uuid.UUID) -> WorldInvite:
    invite = session.get(WorldInvite, invite_id)
    if not invite or invite.world_id != world.id:
        raise NotFoundError("Invite", invite_id)
    if invite.accepted_at is not None:
        raise ConflictError("Invite has already been accepted")
    if invite.revoked_at is None:
        invite.revoked_at = get_datetime_utc()
        session.add(invite)
        session.commit()
        session.refresh(invite)
    return invite


def accept_invite(*, session: Session, token: str, user: User) -> World:
    invite = session.exec(select(WorldInvite).where(WorldInvite.token == token)).first()
    if not invite:
        raise NotFoundError("Invite", message="Invite not found")
    state = _invite_state(invite)
    if state is not None:
        raise ValidationError("token", f"invite has been {state}" if state != "expired" else "invite has expired")
    if invite.email.lower() != user.email.lower():
        raise AccessDeniedError("invite", "accept", user.id)

    world = session.get(World, invite.world_id)
    if not world:
        raise NotFoundError("World", invite.world_id)

    if get_member_role(session, world, user.id) is None:
        _check_seat_available(session, world)
        session.add(WorldMember(world_id=world.id, user_id=user.id, role=invite.role))
    invite.accepted_at = get_datetime_utc()
    session.add(invite)
    log_activity(
        session,
        user_id=user.id,
        world_id=world.id,
        action="invite_accepted",
        description=f'Accepted invite to join "{world.name}"',
        resource_type="world",
        resource_id=world.id,
        resource_name=world.name,
        commit=False,
    )
    session.commit()
    session.refresh(world)
    return world


def update_invite_link(*, session: Session, world: World, link_in: InviteLinkUpdate) -> World:
    # The use counter restarts only when the link is re-enabled or given a new limit
    if link_in.enabled and (not world.invite_link_enabled or link_in.max_uses != world.invite_link_max_uses):
        world.invite_link_uses = 0
    world.invite_link_enabled = link_in.enabled
    world.invite_link_role = link_in.role
    world.invite_link_expires = link_in.expires_at
    world.invite_link_max_uses = link_in.max_uses
    world.updated_at = get_datetime_utc()
    session.add(world)
    session.commit()
    session.refresh(world)
    return world


def _invite_link_problem(world: World) -> str | None:
    if not world.invite_link_enabled:
        return "invite link is disabled"
    expires = as_utc(world.invite_link_expires)
    if expires is not None and expires < get_datetime_utc():
        return "invite link has expired"
    if world.invite_link_max_uses is not None and world.invite_link_uses >= world.invite_link_max_uses:
        return "invite link has no uses left"
    return None


def get_join_info(session: Session, world_id: uuid.UUID, user: User) -> JoinInfo:
    world = session.get(World, world_id)
    if not world:
        raise NotFoundError("World", world_id)
    is_member = get_member_role(session, world, user.id) is not None
    if not is_member and _invite_link_problem(world) is not None:
        # Worlds without a usable link stay hidden from non-members
        raise NotFoundError("World", world_id)
    owner = session.get(User, world.owner_id)
    return JoinInfo(
        world_id=world.id,
        name=world.name,
        description=world.description,
        image_url=world.image_url,
        owner_name=(owner.full_name or owner.email) if owner else None,
        member_count=_member_count(session, world.id) + 1,
        role=world.invite_link_role,
        link_enabled=world.invite_link_enabled,
        is_member=is_member,
    )


def join_world(*, session: Session, world_id: uuid.UUID, user: User) -> World:
    world = session.get(World, world_id)
    if not world:
        raise NotFoundError("World", world_id)
    if get_member_role(session, world, user.id) is not None:
        return world
    problem = _invite_link_problem(world)
    if problem is not None:
        raise AccessDeniedError("world", "join", user.id)
    _check_seat_available(session, world)

    session.add(WorldMember(world_id=world.id, user_id=user.id, role=world.invite_link_role))
    world.invite_link_uses += 1
    session.add(world)
    log_activity(
        session,
        user_id=user.id,
        world_id=world.id,
        action="world_joined",
        description=f'Joined "{world.name}" via invite link',
        resource_type="world",
        resource_id=world.id,
        resource_name=world.name,
        commit=False,
    )
    session.commit()
    session.refresh(world)
    return world

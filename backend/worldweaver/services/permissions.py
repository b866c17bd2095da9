import uuid

from sqlmodel import Session, select

from worldweaver.models import World, WorldMember
from worldweaver.services.errors import AccessDeniedError, NotFoundError

ROLE_PERMISSIONS: dict[str, frozenset[str]] = {
    "viewer": frozenset({"read_world"}),
    "editor": frozenset({"read_world", "create_cards", "edit_any_card", "run_ai_generations"}),
    "admin": frozenset(
        {
            "read_world",
            "create_cards",
            "edit_any_card",
            "run_ai_generations",
            "delete_any_card",
            "manage_members",
            "export_import",
        }
    ),
}
ROLE_PERMISSIONS["owner"] = ROLE_PERMISSIONS["admin"] | {"change_world_settings", "delete_world"}

ASSIGNABLE_ROLES = ("admin", "editor", "viewer")


def has_permission(role: str | None, permission: str) -> bool:
    if role is None:
        return False
    return permission in ROLE_PERMISSIONS.get(role, frozenset())


def get_member_role(session: Session, world: World, user_id: uuid.UUID) -> str | None:
    if world.owner_id == user_id:
        return "owner"
    member = session.exec(
        select(WorldMember).where(
            WorldMember.world_id == world.id, WorldMember.user_id == user_id
        )
    ).first()
    return member.role if member else None


def require_world_access(
    session: Session,
    world_id: uuid.UUID,
    user_id: uuid.UUID,
    permission: str = "read_world",
) -> tuple[World, str]:
    """Load a world and check the caller's permission on it.

    Worlds the caller cannot see at all are reported as missing. Public worlds
    are readable by any authenticated user.
    """
    world = session.get(World, world_id)
    if not world:
        raise NotFoundError("World", world_id)
    role = get_member_role(session, world, user_id)
    if role is None:
        if world.is_public and permission == "read_world":
            return world, "viewer"
        raise NotFoundError("World", world_id)
    if not has_permission(role, permission):
        raise AccessDeniedError("world", permission.replace("_", " "), user_id)
    return world, role

import uuid
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import EmailStr
from sqlalchemy import JSON, CheckConstraint, DateTime, UniqueConstraint
from sqlmodel import Field, SQLModel


def get_datetime_utc() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops tzinfo on the way back; treat naive values as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


MemberRole = Literal["admin", "editor", "viewer"]
FolderKind = Literal["entities", "templates"]
FieldType = Literal[
    "shortText",
    "longText",
    "richText",
    "number",
    "select",
    "multiSelect",
    "image",
    "reference",
]
LayerKind = Literal["markers", "regions", "paths", "labels", "fog", "gm"]


# Shared properties
class UserBase(SQLModel):
    email: EmailStr = Field(unique=True, index=True, max_length=255)
    is_active: bool = True
    is_superuser: bool = False
    full_name: str | None = Field(default=None, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)
    bio: str | None = Field(default=None, max_length=2000)


# Properties to receive via API on creation
class UserCreate(UserBase):
    password: str = Field(min_length=8, max_length=128)


class UserRegister(SQLModel):
    email: EmailStr = Field(max_length=255)
    password: str = Field(min_length=8, max_length=128)
    full_name: str | None = Field(default=None, max_length=255)


# Properties to receive via API on update, all are optional
class UserUpdate(UserBase):
    email: EmailStr | None = Field(default=None, max_length=255)  # type: ignore
    password: str | None = Field(default=None, min_length=8, max_length=128)


class UserUpdateMe(SQLModel):
    full_name: str | None = Field(default=None, max_length=255)
    email: EmailStr | None = Field(default=None, max_length=255)
    avatar_url: str | None = Field(default=None, max_length=1024)
    bio: str | None = Field(default=None, max_length=2000)


class UpdatePassword(SQLModel):
    current_password: str = Field(min_length=8, max_length=128)
    new_password: str = Field(min_length=8, max_length=128)


# Database model, database table inferred from class name
class User(UserBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    hashed_password: str
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


# Properties to return via API, id is always required
class UserPublic(UserBase):
    id: uuid.UUID
    created_at: datetime | None = None


class UserStats(SQLModel):
    worlds: int = 0
    shared_worlds: int = 0
    entities: int = 0
    templates: int = 0
    relationships: int = 0
    maps: int = 0


# Generic message
class Message(SQLModel):
    message: str


# JSON payload containing access token
class Token(SQLModel):
    access_token: str
    token_type: str = "bearer"


# Contents of JWT token
class TokenPayload(SQLModel):
    sub: uuid.UUID | None = None


# Worlds

class WorldBase(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=5000)
    summary: str | None = Field(default=None, max_length=5000)
    image_url: str | None = Field(default=None, max_length=1024)
    is_public: bool = False
    settings: dict = Field(default_factory=dict, sa_type=JSON)
    logline: str | None = Field(default=None, max_length=500)
    genre_blend: list[str] = Field(default_factory=list, sa_type=JSON)
    overall_tone: str | None = Field(default=None, max_length=200)
    key_themes: list[str] = Field(default_factory=list, sa_type=JSON)
    audience_rating: str | None = Field(default=None, max_length=50)
    scope_scale: str | None = Field(default=None, max_length=200)
    technology_level: list[str] = Field(default_factory=list, sa_type=JSON)
    magic_level: list[str] = Field(default_factory=list, sa_type=JSON)
    cosmology_model: str | None = Field(default=None, max_length=2000)
    climate_biomes: list[str] = Field(default_factory=list, sa_type=JSON)
    calendar_timekeeping: str | None = Field(default=None, max_length=5000)
    societal_overview: str | None = Field(default=None, max_length=5000)
    conflict_drivers: list[str] = Field(default_factory=list, sa_type=JSON)
    rules_constraints: str | None = Field(default=None, max_length=5000)
    aesthetic_direction: str | None = Field(default=None, max_length=5000)


class WorldCreate(WorldBase):
    pass


class WorldUpdate(WorldBase):
    name: str | None = Field(default=None, min_length=1, max_length=200)  # type: ignore


class World(WorldBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    owner_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    is_archived: bool = False
    archived_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    invite_link_enabled: bool = False
    invite_link_role: str = Field(default="viewer", max_length=20)
    invite_link_expires: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    invite_link_max_uses: int | None = None
    invite_link_uses: int = 0
    seat_limit: int | None = None
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class WorldPublic(WorldBase):
    id: uuid.UUID
    owner_id: uuid.UUID
    is_archived: bool = False
    archived_at: datetime | None = None
    seat_limit: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    entity_count: int = 0
    member_count: int = 0
    role: str | None = None


class WorldsPublic(SQLModel):
    data: list[WorldPublic]
    count: int


class WorldArchive(SQLModel):
    archived: bool = True


# Membership and invites

class WorldMember(SQLModel, table=True):
    __tablename__ = "world_member"
    __table_args__ = (UniqueConstraint("world_id", "user_id"),)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    role: str = Field(default="viewer", max_length=20)
    joined_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MemberPublic(SQLModel):
    id: uuid.UUID
    user_id: uuid.UUID
    email: str
    full_name: str | None = None
    avatar_url: str | None = None
    role: str
    is_owner: bool = False
    joined_at: datetime | None = None


class MemberRoleUpdate(SQLModel):
    role: MemberRole


class WorldInvite(SQLModel, table=True):
    __tablename__ = "world_invite"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    email: str = Field(max_length=255, index=True)
    role: str = Field(default="viewer", max_length=20)
    invited_by: uuid.UUID = Field(foreign_key="user.id", nullable=False, ondelete="CASCADE")
    token: str = Field(unique=True, index=True, max_length=64)
    expires_at: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore
    accepted_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    revoked_at: datetime | None = Field(
        default=None,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class InviteCreate(SQLModel):
    email: EmailStr = Field(max_length=255)
    role: MemberRole = "viewer"
    expires_in_days: int = Field(default=7, ge=1, le=30)


class InvitePublic(SQLModel):
    id: uuid.UUID
    world_id: uuid.UUID
    email: str
    role: str
    invited_by: uuid.UUID
    token: str | None = None
    expires_at: datetime
    accepted_at: datetime | None = None
    revoked_at: datetime | None = None
    created_at: datetime | None = None


class InviteAccept(SQLModel):
    token: str = Field(min_length=1, max_length=64)


class InviteLinkUpdate(SQLModel):
    enabled: bool
    role: MemberRole = "viewer"
    expires_at: datetime | None = None
    max_uses: int | None = Field(default=None, ge=1)


class JoinInfo(SQLModel):
    world_id: uuid.UUID
    name: str
    description: str | None = None
    image_url: str | None = None
    owner_name: str | None = None
    member_count: int = 0
    role: str
    link_enabled: bool
    is_member: bool = False


# Folders

class FolderBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    color: str = Field(default="#6B7280", max_length=20)
    kind: str = Field(default="entities", max_length=20)
    parent_folder_id: uuid.UUID | None = None


class FolderCreate(FolderBase):
    kind: FolderKind = "entities"


class FolderUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=1000)
    color: str | None = Field(default=None, max_length=20)
    parent_folder_id: uuid.UUID | None = None


class Folder(FolderBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class FolderPublic(FolderBase):
    id: uuid.UUID
    world_id: uuid.UUID
    count: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Templates

class TemplateField(SQLModel):
    id: str | None = Field(default=None, max_length=100)
    name: str = Field(min_length=1, max_length=200)
    type: FieldType = "shortText"
    prompt: str | None = Field(default=None, max_length=1000)
    required: bool = False
    options: list[str] | None = None
    reference_type: str | None = Field(default=None, max_length=100)


class TemplateBase(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    icon: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    folder_id: uuid.UUID | None = None


class TemplateCreate(TemplateBase):
    fields: list[TemplateField] = Field(default_factory=list)


class TemplateUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    icon: str | None = Field(default=None, max_length=100)
    category: str | None = Field(default=None, max_length=100)
    folder_id: uuid.UUID | None = None
    fields: list[TemplateField] | None = None
    # Required when editing a system template: the override is stored per world
    world_id: uuid.UUID | None = None


class Template(TemplateBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID | None = Field(
        default=None, foreign_key="world.id", ondelete="CASCADE", index=True
    )
    is_system: bool = False
    source_template_id: uuid.UUID | None = None
    fields: list[dict[str, Any]] = Field(default_factory=list, sa_type=JSON)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class TemplatePublic(TemplateBase):
    id: uuid.UUID
    world_id: uuid.UUID | None = None
    is_system: bool = False
    source_template_id: uuid.UUID | None = None
    fields: list[TemplateField] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None


# Entities

class EntityBase(SQLModel):
    name: str = Field(min_length=1, max_length=200)
    summary: str | None = Field(default=None, max_length=5000)
    image_url: str | None = Field(default=None, max_length=1024)
    template_id: uuid.UUID | None = None
    folder_id: uuid.UUID | None = None
    data: dict = Field(default_factory=dict, sa_type=JSON)
    tags: list[str] = Field(default_factory=list, sa_type=JSON)


class EntityCreate(EntityBase):
    pass


class EntityUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=200)
    summary: str | None = Field(default=None, max_length=5000)
    image_url: str | None = Field(default=None, max_length=1024)
    template_id: uuid.UUID | None = None
    folder_id: uuid.UUID | None = None
    data: dict | None = None
    tags: list[str] | None = None


class Entity(EntityBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class EntityPublic(EntityBase):
    id: uuid.UUID
    world_id: uuid.UUID
    created_at: datetime | None = None
    updated_at: datetime | None = None


class EntityPreview(SQLModel):
    entity: EntityPublic
    template_name: str | None = None
    relationship_count: int = 0


# Relationships

class RelationshipBase(SQLModel):
    relationship_type: str = Field(default="related", min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=1000)
    strength: int | None = Field(default=None, ge=1, le=10)
    is_bidirectional: bool = False
    # Free-form extra fields; "metadata" is reserved on SQLModel tables
    attributes: dict = Field(default_factory=dict, sa_type=JSON)


class EntityRelationship(RelationshipBase, table=True):
    __tablename__ = "relationship"
    __table_args__ = (
        CheckConstraint("from_entity_id <> to_entity_id", name="relationship_not_self"),
    )

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    from_entity_id: uuid.UUID = Field(
        foreign_key="entity.id", nullable=False, ondelete="CASCADE", index=True
    )
    to_entity_id: uuid.UUID = Field(
        foreign_key="entity.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_by: uuid.UUID | None = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class RelationshipPublic(RelationshipBase):
    id: uuid.UUID
    world_id: uuid.UUID
    from_entity_id: uuid.UUID
    to_entity_id: uuid.UUID
    from_name: str | None = None
    to_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class RelationshipCreated(SQLModel):
    relationship: RelationshipPublic
    created: bool


# Maps

class MapBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    width_px: int = Field(default=1024, ge=1, le=20000)
    height_px: int = Field(default=1024, ge=1, le=20000)
    pixels_per_unit: float = Field(default=50, gt=0)
    default_zoom: float = Field(default=1.0, gt=0)
    is_public: bool = False


class MapCreate(MapBase):
    create_default_layers: bool = True


class MapUpdate(SQLModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    width_px: int | None = Field(default=None, ge=1, le=20000)
    height_px: int | None = Field(default=None, ge=1, le=20000)
    pixels_per_unit: float | None = Field(default=None, gt=0)
    default_zoom: float | None = Field(default=None, gt=0)
    is_public: bool | None = None


class Map(MapBase, table=True):
    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    world_id: uuid.UUID = Field(
        foreign_key="world.id", nullable=False, ondelete="CASCADE", index=True
    )
    image_path: str | None = Field(default=None, max_length=1024)
    generation_options: dict = Field(default_factory=dict, sa_type=JSON)
    created_by: uuid.UUID | None = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MapLayerBase(SQLModel):
    name: str = Field(min_length=1, max_length=100)
    kind: str = Field(default="markers", max_length=20)
    z_index: int = 0
    visible: bool = True
    style: dict = Field(default_factory=dict, sa_type=JSON)


class MapLayerCreate(MapLayerBase):
    kind: LayerKind = "markers"


class MapLayer(MapLayerBase, table=True):
    __tablename__ = "map_layer"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    map_id: uuid.UUID = Field(
        foreign_key="map.id", nullable=False, ondelete="CASCADE", index=True
    )
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MapLayerPublic(MapLayerBase):
    id: uuid.UUID
    map_id: uuid.UUID


class MarkerBase(SQLModel):
    x: float
    y: float
    title: str = Field(min_length=1, max_length=200)
    subtitle: str | None = Field(default=None, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    icon: str | None = Field(default=None, max_length=100)
    color: str = Field(default="#ef4444", max_length=20)
    entity_id: uuid.UUID | None = None


class MarkerCreate(MarkerBase):
    layer_id: uuid.UUID | None = None


class MapMarker(MarkerBase, table=True):
    __tablename__ = "map_marker"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    map_id: uuid.UUID = Field(
        foreign_key="map.id", nullable=False, ondelete="CASCADE", index=True
    )
    layer_id: uuid.UUID = Field(
        foreign_key="map_layer.id", nullable=False, ondelete="CASCADE", index=True
    )
    attributes: dict = Field(default_factory=dict, sa_type=JSON)
    created_by: uuid.UUID | None = Field(default=None, foreign_key="user.id", ondelete="SET NULL")
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class MarkerPublic(MarkerBase):
    id: uuid.UUID
    map_id: uuid.UUID
    layer_id: uuid.UUID
    created_at: datetime | None = None


class MapPublic(MapBase):
    id: uuid.UUID
    world_id: uuid.UUID
    image_path: str | None = None
    image_url: str | None = None
    generation_options: dict = Field(default_factory=dict)
    created_by: uuid.UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class MapDetail(MapPublic):
    layers: list[MapLayerPublic] = Field(default_factory=list)
    markers: list[MarkerPublic] = Field(default_factory=list)


# Activity

class ActivityLog(SQLModel, table=True):
    __tablename__ = "activity_log"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    world_id: uuid.UUID | None = Field(default=None, index=True)
    action: str = Field(max_length=100)
    description: str = Field(max_length=1000)
    resource_type: str | None = Field(default=None, max_length=50)
    resource_id: str | None = Field(default=None, max_length=100)
    resource_name: str | None = Field(default=None, max_length=255)
    attributes: dict = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class ActivityPublic(SQLModel):
    id: uuid.UUID
    world_id: uuid.UUID | None = None
    action: str
    description: str
    resource_type: str | None = None
    resource_id: str | None = None
    resource_name: str | None = None
    created_at: datetime | None = None


# AI usage accounting

class AIUsage(SQLModel, table=True):
    __tablename__ = "ai_usage"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    world_id: uuid.UUID | None = Field(default=None, index=True)
    operation: str = Field(max_length=50)
    model: str = Field(max_length=100)
    provider: str = Field(default="openai", max_length=50)
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cost_usd: float = 0.0
    currency: str = Field(default="USD", max_length=3)
    success: bool = True
    error_message: str | None = Field(default=None, max_length=2000)
    response_time_ms: int | None = None
    prompt_hash: str | None = Field(default=None, max_length=64)
    attributes: dict = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class AIQuota(SQLModel, table=True):
    __tablename__ = "ai_quota"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    user_id: uuid.UUID = Field(
        foreign_key="user.id", nullable=False, ondelete="CASCADE", index=True
    )
    period_start: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore
    period_end: datetime = Field(sa_type=DateTime(timezone=True))  # type: ignore
    token_limit: int | None = None
    usd_limit: float | None = None
    used_tokens: int = 0
    used_usd: float = 0.0
    updated_at: datetime | None = Field(
        default_factory=get_datetime_utc,
        sa_type=DateTime(timezone=True),  # type: ignore
    )


class AIQuotaPublic(SQLModel):
    period_start: datetime
    period_end: datetime
    token_limit: int | None = None
    usd_limit: float | None = None
    used_tokens: int = 0
    used_usd: float = 0.0


class AIUsageStats(SQLModel):
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_tokens: int = 0
    total_cost_usd: float = 0.0
    by_operation: dict[str, int] = Field(default_factory=dict)
    quota: AIQuotaPublic | None = None

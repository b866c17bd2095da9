"""
Relationship context for AI prompts.

Scores a world's relationship graph, picks the connections most relevant to
the entities in focus and renders them as a markdown block that the AI
generators prepend to their prompts.
"""
import uuid
from collections import Counter
from collections.abc import Iterable, Sequence
from typing import Protocol

from pydantic import BaseModel, Field
from sqlmodel import Session, select

from worldweaver.models import Entity, EntityRelationship
from worldweaver.services.errors import NotFoundError

DEFAULT_STRENGTH = 5
FOCUS_BONUS = 0.3
STRONG_THRESHOLD = 7
KEY_ENTITY_MIN_CONNECTIONS = 3
NO_RELATIONSHIPS = "No relationships exist between entities in this world."


class EntityLike(Protocol):
    id: uuid.UUID
    name: str


class RelationshipLike(Protocol):
    id: uuid.UUID
    from_entity_id: uuid.UUID
    to_entity_id: uuid.UUID
    relationship_type: str
    description: str | None
    strength: int | None
    is_bidirectional: bool


class EntityRef(BaseModel):
    id: uuid.UUID
    name: str


class RelationshipConnection(BaseModel):
    relationship_id: uuid.UUID
    from_entity: EntityRef
    to_entity: EntityRef
    relationship_type: str
    description: str | None = None
    strength: int = DEFAULT_STRENGTH
    is_bidirectional: bool = False
    relevance: float


class RelationshipContext(BaseModel):
    entity_count: int
    relationship_count: int
    connections: list[RelationshipConnection] = Field(default_factory=list)
    summary: str


class NetworkConnection(BaseModel):
    entity: EntityRef
    relationship_type: str
    strength: int
    is_bidirectional: bool
    description: str | None = None


class EntityNetwork(BaseModel):
    entity: EntityRef
    connections: list[NetworkConnection] = Field(default_factory=list)
    centrality: float = 0.0


class RelationshipHub(BaseModel):
    entity: EntityRef
    connection_count: int
    average_strength: float


def _strength(relationship: RelationshipLike) -> int:
    return relationship.strength or DEFAULT_STRENGTH


def _plural(count: int, word: str) -> str:
    return f"{count} {word}{'' if count == 1 else 's'}"


def strength_description(strength: int) -> str:
    if strength >= 9:
        return "Very Strong"
    if strength >= 7:
        return "Strong"
    if strength >= 5:
        return "Medium"
    if strength >= 3:
        return "Weak"
    return "Very Weak"


def summarize_connections(connections: Sequence[RelationshipConnection]) -> str:
    if not connections:
        return "No significant relationships to consider."

    total = len(connections)
    parts = [f"This world contains {_plural(total, 'significant relationship')}."]

    strong = sum(1 for c in connections if c.strength >= STRONG_THRESHOLD)
    if strong:
        parts.append(f"{strong} of these are strong connections (7+ strength).")

    bidirectional = sum(1 for c in connections if c.is_bidirectional)
    if bidirectional:
        verb = "works" if bidirectional == 1 else "work"
        parts.append(f"{_plural(bidirectional, 'relationship')} {verb} both ways.")

    # Counter.most_common keeps first-seen order on ties
    type_counts = Counter(c.relationship_type.lower() for c in connections)
    common_type, occurrences = type_counts.most_common(1)[0]
    parts.append(
        f'The most common relationship type is "{common_type}" ({_plural(occurrences, "occurrence")}).'
    )

    per_entity: Counter[uuid.UUID] = Counter()
    names: dict[uuid.UUID, str] = {}
    for c in connections:
        for ref in (c.from_entity, c.to_entity):
            per_entity[ref.id] += 1
            names[ref.id] = ref.name
    key_entities = [
        f"{names[entity_id]} ({count} connections)"
        for entity_id, count in per_entity.most_common()
        if count >= KEY_ENTITY_MIN_CONNECTIONS
    ][:3]
    if key_entities:
        parts.append(f"Key central figures include: {', '.join(key_entities)}.")

    return " ".join(parts)


def build_relationship_context(
    entities: Iterable[EntityLike],
    relationships: Iterable[RelationshipLike],
    focus_entity_ids: Iterable[uuid.UUID] | None = None,
) -> RelationshipContext:
    entity_map = {e.id: EntityRef(id=e.id, name=e.name) for e in entities}
    focus = set(focus_entity_ids or [])
    relationships = list(relationships)

    if not relationships:
        return RelationshipContext(
            entity_count=len(entity_map), relationship_count=0, summary=NO_RELATIONSHIPS
        )

    if focus:
        relationships = [
            r for r in relationships if r.from_entity_id in focus or r.to_entity_id in focus
        ]

    connections: list[RelationshipConnection] = []
    for relationship in relationships:
        from_entity = entity_map.get(relationship.from_entity_id)
        to_entity = entity_map.get(relationship.to_entity_id)
        if from_entity is None or to_entity is None:
            continue
        strength = _strength(relationship)
        bonus = FOCUS_BONUS if (from_entity.id in focus or to_entity.id in focus) else 0.0
        connections.append(
            RelationshipConnection(
                relationship_id=relationship.id,
                from_entity=from_entity,
                to_entity=to_entity,
                relationship_type=relationship.relationship_type,
                description=relationship.description,
                strength=strength,
                is_bidirectional=bool(relationship.is_bidirectional),
                relevance=min(1.0, strength / 10 + bonus),
            )
        )
    connections.sort(key=lambda c: c.relevance, reverse=True)

    return RelationshipContext(
        entity_count=len(entity_map),
        relationship_count=len(relationships),
        connections=connections,
        summary=summarize_connections(connections),
    )


def build_relationship_prompt_context(context: RelationshipContext, max_connections: int = 10) -> str:
    if not context.relationship_count:
        return NO_RELATIONSHIPS

    lines = [
        "## Entity Relationships Context",
        "",
        f"Total entities: {context.entity_count}",
        f"Total relationships: {context.relationship_count}",
        "",
        "### Key Relationships:",
    ]
    for index, connection in enumerate(context.connections[:max_connections], start=1):
        arrow = "↔" if connection.is_bidirectional else "→"
        lines.append(f"{index}. {connection.from_entity.name} {arrow} {connection.to_entity.name}")
        lines.append(f'   Relationship: "{connection.relationship_type}"')
        lines.append(
            f"   Strength: {strength_description(connection.strength)} ({connection.strength}/10)"
        )
        if connection.description:
            lines.append(f"   Details: {connection.description}")
        lines.append("")

    remaining = len(context.connections) - max_connections
    if remaining > 0:
        lines.append(f"... and {remaining} more relationships.")

    lines.extend(["", context.summary])
    return "\n".join(lines)


def build_entity_network(
    entity_id: uuid.UUID,
    entities: Iterable[EntityLike],
    relationships: Iterable[RelationshipLike],
) -> EntityNetwork:
    entity_map = {e.id: EntityRef(id=e.id, name=e.name) for e in entities}
    target = entity_map.get(entity_id)
    if target is None:
        raise NotFoundError("Entity", entity_id)

    connections: list[NetworkConnection] = []
    for relationship in relationships:
        if entity_id not in (relationship.from_entity_id, relationship.to_entity_id):
            continue
        other_id = (
            relationship.to_entity_id
            if relationship.from_entity_id == entity_id
            else relationship.from_entity_id
        )
        other = entity_map.get(other_id)
        if other is None:
            continue
        connections.append(
            NetworkConnection(
                entity=other,
                relationship_type=relationship.relationship_type,
                strength=_strength(relationship),
                is_bidirectional=bool(relationship.is_bidirectional),
                description=relationship.description,
            )
        )

    return EntityNetwork(
        entity=target,
        connections=connections,
        centrality=sum(c.strength / 10 for c in connections),
    )


def find_relationship_hubs(
    entities: Iterable[EntityLike],
    relationships: Iterable[RelationshipLike],
    limit: int = 5,
) -> list[RelationshipHub]:
    entity_map = {e.id: EntityRef(id=e.id, name=e.name) for e in entities}
    counts: Counter[uuid.UUID] = Counter()
    totals: Counter[uuid.UUID] = Counter()
    for relationship in relationships:
        strength = _strength(relationship)
        for endpoint in (relationship.from_entity_id, relationship.to_entity_id):
            counts[endpoint] += 1
            totals[endpoint] += strength

    hubs = [
        RelationshipHub(
            entity=entity_map[entity_id],
            connection_count=count,
            average_strength=totals[entity_id] / count,
        )
        for entity_id, count in counts.most_common()
        if entity_id in entity_map
    ]
    return hubs[:limit]


def _load_world_graph(
    session: Session, world_id: uuid.UUID
) -> tuple[list[Entity], list[EntityRelationship]]:
    entities = list(session.exec(select(Entity).where(Entity.world_id == world_id)).all())
    relationships = list(
        session.exec(
            select(EntityRelationship).where(EntityRelationship.world_id == world_id)
        ).all()
    )
    return entities, relationships


def get_world_relationship_context(
    session: Session, world_id: uuid.UUID, focus_entity_ids: Iterable[uuid.UUID] | None = None
) -> RelationshipContext:
    entities, relationships = _load_world_graph(session, world_id)
    return build_relationship_context(entities, relationships, focus_entity_ids)


def get_entity_network(session: Session, world_id: uuid.UUID, entity_id: uuid.UUID) -> EntityNetwork:
    entities, relationships = _load_world_graph(session, world_id)
    return build_entity_network(entity_id, entities, relationships)


def get_relationship_hubs(session: Session, world_id: uuid.UUID, limit: int = 5) -> list[RelationshipHub]:
    entities, relationships = _load_world_graph(session, world_id)
    return find_relationship_hubs(entities, relationships, limit)

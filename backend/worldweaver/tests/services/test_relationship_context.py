import uuid
from types import SimpleNamespace

import pytest

from worldweaver.services.errors import NotFoundError
from worldweaver.services.relationship_context import (
    NO_RELATIONSHIPS,
    build_entity_network,
    build_relationship_context,
    build_relationship_prompt_context,
    find_relationship_hubs,
    strength_description,
)


def _entity(name: str) -> SimpleNamespace:
    return SimpleNamespace(id=uuid.uuid4(), name=name)


def _rel(source, target, label, strength=None, bidirectional=False, description=None) -> SimpleNamespace:
    return SimpleNamespace(
        id=uuid.uuid4(),
        from_entity_id=source.id,
        to_entity_id=target.id,
        relationship_type=label,
        description=description,
        strength=strength,
        is_bidirectional=bidirectional,
    )


@pytest.fixture
def graph():
    a, b, c, d = _entity("Aria"), _entity("Bram"), _entity("Cato"), _entity("Dara")
    relationships = [
        _rel(a, b, "ally", 8, bidirectional=True, description="Sworn in blood"),
        _rel(a, c, "rival"),
        _rel(a, d, "Ally", 3),
        _rel(b, c, "ally", 9),
    ]
    return SimpleNamespace(a=a, b=b, c=c, d=d, entities=[a, b, c, d], relationships=relationships)


@pytest.mark.parametrize(
    "strength, label",
    [(10, "Very Strong"), (9, "Very Strong"), (7, "Strong"), (5, "Medium"), (3, "Weak"), (1, "Very Weak")],
)
def test_strength_description(strength, label):
    assert strength_description(strength) == label


def test_context_orders_connections_by_relevance(graph):
    context = build_relationship_context(graph.entities, graph.relationships)

    assert context.entity_count == 4
    assert context.relationship_count == 4
    pairs = [(c.from_entity.name, c.to_entity.name) for c in context.connections]
    assert pairs == [("Bram", "Cato"), ("Aria", "Bram"), ("Aria", "Cato"), ("Aria", "Dara")]
    # Missing strength counts as medium
    assert context.connections[2].strength == 5
    assert context.connections[2].relevance == pytest.approx(0.5)


def test_context_summary(graph):
    summary = build_relationship_context(graph.entities, graph.relationships).summary

    assert summary.startswith("This world contains 4 significant relationships.")
    assert "2 of these are strong connections (7+ strength)." in summary
    assert "1 relationship works both ways." in summary
    assert 'The most common relationship type is "ally" (3 occurrences).' in summary
    assert "Key central figures include: Aria (3 connections)." in summary


def test_focus_filters_and_boosts_relevance(graph):
    context = build_relationship_context(graph.entities, graph.relationships, [graph.d.id])

    assert context.relationship_count == 1
    assert len(context.connections) == 1
    assert context.connections[0].relevance == pytest.approx(0.6)


def test_focus_bonus_is_capped(graph):
    context = build_relationship_context(graph.entities, graph.relationships, [graph.b.id])
    assert max(c.relevance for c in context.connections) == 1.0


def test_context_without_relationships(graph):
    context = build_relationship_context(graph.entities, [])
    assert context.relationship_count == 0
    assert context.summary == NO_RELATIONSHIPS
    assert build_relationship_prompt_context(context) == NO_RELATIONSHIPS


def test_prompt_context_rendering(graph):
    context = build_relationship_context(graph.entities, graph.relationships)

    text = build_relationship_prompt_context(context, max_connections=2)

    assert text.startswith("## Entity Relationships Context\n\nTotal entities: 4\nTotal relationships: 4")
    assert "1. Bram → Cato" in text
    assert "   Strength: Very Strong (9/10)" in text
    assert "2. Aria ↔ Bram" in text
    assert "   Details: Sworn in blood" in text
    assert "Cato → Aria" not in text
    assert "... and 2 more relationships." in text
    assert text.endswith(context.summary)


def test_prompt_context_omits_empty_details(graph):
    context = build_relationship_context(graph.entities, graph.relationships, [graph.d.id])
    text = build_relationship_prompt_context(context)
    assert "Details:" not in text
    assert "more relationships" not in text


def test_entity_network(graph):
    network = build_entity_network(graph.a.id, graph.entities, graph.relationships)

    assert network.entity.name == "Aria"
    assert sorted(c.entity.name for c in network.connections) == ["Bram", "Cato", "Dara"]
    assert network.centrality == pytest.approx(1.6)


def test_entity_network_for_unknown_entity(graph):
    with pytest.raises(NotFoundError):
        build_entity_network(uuid.uuid4(), graph.entities, graph.relationships)


def test_relationship_hubs(graph):
    hubs = find_relationship_hubs(graph.entities, graph.relationships, limit=2)

    assert [h.entity.name for h in hubs] == ["Aria", "Bram"]
    assert hubs[0].connection_count == 3
    assert hubs[0].average_strength == pytest.approx(16 / 3)
    assert hubs[1].average_strength == pytest.approx(8.5)

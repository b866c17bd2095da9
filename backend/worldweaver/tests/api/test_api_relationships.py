import pytest

from worldweaver.core.config import settings
from worldweaver.models import EntityCreate
from worldweaver.services.entities import create_entity
from worldweaver.tests.utils import auth_headers

API = settings.API_V1_STR


@pytest.fixture
def cast(session, world):
    return [
        create_entity(session=session, world_id=world.id, entity_in=EntityCreate(name=name))
        for name in ("Kael", "Port Vell", "Mira")
    ]


def test_create_relationship_is_idempotent(client, owner, world, cast):
    kael, vell, _ = cast
    payload = {"fromEntityId": str(kael.id), "toEntityId": str(vell.id), "label": "lives in", "strength": 7}
    url = f"{API}/worlds/{world.id}/relationships"

    first = client.post(url, headers=auth_headers(owner), json=payload)
    assert first.status_code == 201
    body = first.json()
    assert body["created"] is True
    assert body["relationship"]["relationship_type"] == "lives in"
    assert body["relationship"]["from_name"] == "Kael"

    second = client.post(url, headers=auth_headers(owner), json=payload)
    assert second.status_code == 200
    assert second.json()["created"] is False
    assert second.json()["relationship"]["id"] == body["relationship"]["id"]

    listed = client.get(url, headers=auth_headers(owner)).json()
    assert len(listed) == 1


def test_self_relationship_returns_validation_envelope(client, owner, world, cast):
    kael = cast[0]
    response = client.post(
        f"{API}/worlds/{world.id}/relationships",
        headers=auth_headers(owner),
        json={"from_entity_id": str(kael.id), "to_entity_id": str(kael.id)},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_relationship_context_and_hubs(client, owner, world, cast):
    kael, vell, mira = cast
    url = f"{API}/worlds/{world.id}/relationships"
    headers = auth_headers(owner)
    client.post(url, headers=headers, json={"from_entity_id": str(kael.id), "to_entity_id": str(vell.id)})
    client.post(
        url,
        headers=headers,
        json={"from_entity_id": str(kael.id), "to_entity_id": str(mira.id), "label": "mentor", "strength": 9},
    )

    context = client.get(f"{url}/context", headers=headers)
    assert context.status_code == 200
    assert context.json()["relationship_count"] == 2

    hubs = client.get(f"{url}/hubs", headers=headers)
    assert hubs.status_code == 200
    assert hubs.json()[0]["entity"]["name"] == "Kael"

    network = client.get(f"{API}/entities/{kael.id}/network", headers=headers)
    assert network.status_code == 200
    assert len(network.json()["connections"]) == 2


def test_outsider_cannot_see_relationships(client, outsider, world):
    response = client.get(f"{API}/worlds/{world.id}/relationships", headers=auth_headers(outsider))
    assert response.status_code == 404

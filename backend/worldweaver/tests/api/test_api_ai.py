import json
from unittest.mock import AsyncMock, MagicMock, patch

from sqlmodel import select

from worldweaver.core.config import settings
from worldweaver.models import AIUsage, Entity, EntityCreate
from worldweaver.services.entities import create_entity
from worldweaver.tests.utils import auth_headers

API = settings.API_V1_STR


def _chat_client(content: str) -> AsyncMock:
    mock_message = MagicMock()
    mock_message.content = content
    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]
    mock_response.usage.prompt_tokens = 200
    mock_response.usage.completion_tokens = 100
    mock_response.usage.total_tokens = 300

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(return_value=mock_response)
    mock_chat = MagicMock()
    mock_chat.completions = mock_completions

    mock_client_instance = AsyncMock()
    mock_client_instance.chat = mock_chat
    return mock_client_instance


def test_generate_template_records_usage(client, session, owner, world):
    content = json.dumps(
        {
            "name": "Starship",
            "description": "A vessel",
            "fields": [{"name": "Class", "type": "select", "options": ["Frigate", "Cruiser"]}],
        }
    )
    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=_chat_client(content)):
        with patch("worldweaver.ai.llm_client.settings.LLM_API_KEY", "dummy_key"):
            response = client.post(
                f"{API}/ai/generate-template",
                headers=auth_headers(owner),
                json={"world_id": str(world.id), "prompt": "a starship"},
            )

    assert response.status_code == 200
    assert [f["name"] for f in response.json()["fields"]] == ["Name", "Class"]
    record = session.exec(select(AIUsage)).one()
    assert record.operation == "template"
    assert record.total_tokens == 300
    assert record.success is True

    usage = client.get(f"{API}/ai/usage", headers=auth_headers(owner)).json()
    assert usage["total_requests"] == 1
    assert usage["quota"]["used_tokens"] == 300


def test_generate_entity_summary_saves_summary(client, session, owner, world):
    entity = create_entity(session=session, world_id=world.id, entity_in=EntityCreate(name="Kael"))

    with patch(
        "worldweaver.ai.llm_client.AsyncOpenAI", return_value=_chat_client("A knight without a banner.")
    ):
        response = client.post(
            f"{API}/ai/generate-entity-summary",
            headers=auth_headers(owner),
            json={"entity_id": str(entity.id)},
        )

    assert response.status_code == 200
    assert response.json()["summary"] == "A knight without a banner."
    assert session.get(Entity, entity.id).summary == "A knight without a banner."


def test_generate_image_stores_world_cover(client, session, storage, owner, world):
    mock_image = MagicMock()
    mock_image.b64_json = "aGVsbG8="
    mock_image_response = MagicMock()
    mock_image_response.data = [mock_image]
    mock_client_instance = AsyncMock()
    mock_client_instance.images.generate = AsyncMock(return_value=mock_image_response)

    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        response = client.post(
            f"{API}/ai/generate-image",
            headers=auth_headers(owner),
            json={"world_id": str(world.id), "kind": "world_cover", "quality": "low"},
        )

    assert response.status_code == 200
    body = response.json()
    assert body["prompt"].startswith('Epic landscape artwork for "Aerth"')
    assert (storage.root / body["image_path"]).read_bytes() == b"hello"
    session.refresh(world)
    assert world.image_url == body["image_url"]


def test_ai_requires_generation_permission(client, outsider, world):
    response = client.post(
        f"{API}/ai/generate-template",
        headers=auth_headers(outsider),
        json={"world_id": str(world.id), "prompt": "a starship"},
    )
    assert response.status_code == 404

from unittest.mock import AsyncMock, MagicMock, patch

from sqlmodel import select

from worldweaver.core.config import settings
from worldweaver.core.storage import StorageError
from worldweaver.models import AIUsage, Map, WorldMember
from worldweaver.services.maps import UPLOAD_LAYERS
from worldweaver.tests.utils import auth_headers

API = settings.API_V1_STR

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

MAP_OPTIONS = {
    "map_purpose": "campaign_overview",
    "map_scale": "world_continent",
    "visual_style": "inked_atlas",
    "terrain_emphasis": ["mountains", "coasts"],
}


def _image_client() -> AsyncMock:
    mock_image = MagicMock()
    mock_image.b64_json = "aGVsbG8="
    mock_image_response = MagicMock()
    mock_image_response.data = [mock_image]
    mock_client_instance = AsyncMock()
    mock_client_instance.images.generate = AsyncMock(return_value=mock_image_response)
    return mock_client_instance


def test_create_map_and_markers(client, owner, world):
    headers = auth_headers(owner)
    url = f"{API}/worlds/{world.id}/maps"

    created = client.post(f"{url}/", headers=headers, json={"name": "Atlas", "width_px": 500, "height_px": 400})
    assert created.status_code == 201
    atlas = created.json()
    assert len(atlas["layers"]) == 4
    assert atlas["markers"] == []

    marker = client.post(
        f"{url}/{atlas['id']}/markers", headers=headers, json={"x": 250, "y": 200, "title": "Keep"}
    )
    assert marker.status_code == 201

    outside = client.post(
        f"{url}/{atlas['id']}/markers", headers=headers, json={"x": 501, "y": 200, "title": "Sea"}
    )
    assert outside.status_code == 400
    assert outside.json()["error"]["details"]["field"] == "x"

    detail = client.get(f"{url}/{atlas['id']}", headers=headers).json()
    assert [m["title"] for m in detail["markers"]] == ["Keep"]


def test_upload_map_image(client, storage, owner, world):
    response = client.post(
        f"{API}/worlds/{world.id}/maps/upload",
        headers=auth_headers(owner),
        files={"file": ("atlas.png", PNG_BYTES, "image/png")},
        data={"name": "Uploaded", "width_px": "2048", "height_px": "1536"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["width_px"] == 2048
    assert [layer["name"] for layer in body["layers"]] == [layer["name"] for layer in UPLOAD_LAYERS]
    assert body["image_path"].startswith(f"maps/{world.id}/")
    assert body["image_url"] == f"/static/{body['image_path']}"
    assert (storage.root / body["image_path"]).read_bytes() == PNG_BYTES


def test_upload_rejects_non_images(client, owner, world):
    response = client.post(
        f"{API}/worlds/{world.id}/maps/upload",
        headers=auth_headers(owner),
        files={"file": ("notes.txt", b"hello", "text/plain")},
        data={"name": "Notes"},
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


def test_delete_map(client, storage, owner, world):
    headers = auth_headers(owner)
    uploaded = client.post(
        f"{API}/worlds/{world.id}/maps/upload",
        headers=headers,
        files={"file": ("atlas.png", PNG_BYTES, "image/png")},
        data={"name": "Doomed"},
    ).json()

    response = client.delete(f"{API}/worlds/{world.id}/maps/{uploaded['id']}", headers=headers)

    assert response.status_code == 200
    assert client.get(f"{API}/worlds/{world.id}/maps/", headers=headers).json() == []
    assert not (storage.root / uploaded["image_path"]).exists()


def test_viewers_cannot_create_maps(client, session, outsider, world):
    session.add(WorldMember(world_id=world.id, user_id=outsider.id, role="viewer"))
    session.commit()

    response = client.post(f"{API}/worlds/{world.id}/maps/", headers=auth_headers(outsider), json={"name": "Mine"})
    assert response.status_code == 403


def test_upload_rejects_out_of_range_dimensions(client, session, owner, world):
    response = client.post(
        f"{API}/worlds/{world.id}/maps/upload",
        headers=auth_headers(owner),
        files={"file": ("atlas.png", PNG_BYTES, "image/png")},
        data={"name": "Flat", "width_px": "0"},
    )
    assert response.status_code == 422

    too_long = client.post(
        f"{API}/worlds/{world.id}/maps/upload",
        headers=auth_headers(owner),
        files={"file": ("atlas.png", PNG_BYTES, "image/png")},
        data={"name": "x" * 101},
    )
    assert too_long.status_code == 422
    assert session.exec(select(Map)).all() == []


def test_generate_map_prompt(client, owner, world):
    response = client.post(
        f"{API}/worlds/{world.id}/maps/generate-prompt", headers=auth_headers(owner), json=MAP_OPTIONS
    )
    assert response.status_code == 200
    assert "Aerth" in response.json()["prompt"]


def test_generate_map(client, session, storage, owner, world):
    mock_client_instance = _image_client()
    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        response = client.post(
            f"{API}/worlds/{world.id}/maps/generate",
            headers=auth_headers(owner),
            json={**MAP_OPTIONS, "name": "Known World", "quality": "low"},
        )

    assert response.status_code == 201
    body = response.json()
    assert (body["width_px"], body["height_px"]) == (1024, 1024)
    assert [layer["name"] for layer in body["layers"]] == ["Base Terrain", "Generated Features"]
    assert (storage.root / body["image_path"]).read_bytes() == b"hello"
    assert mock_client_instance.images.generate.call_args.kwargs["size"] == "1024x1024"

    options = session.get(Map, body["id"]).generation_options
    assert options["map_purpose"] == "campaign_overview"
    assert options["terrain_emphasis"] == ["mountains", "coasts"]
    assert not {"name", "description", "quality", "create_layers"} & options.keys()
    assert session.exec(select(AIUsage)).one().operation == "map"


def test_generated_map_is_removed_when_storage_fails(client, session, storage, owner, world):
    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=_image_client()):
        with patch.object(storage, "save_base64", side_effect=StorageError("disk full")):
            response = client.post(
                f"{API}/worlds/{world.id}/maps/generate",
                headers=auth_headers(owner),
                json={**MAP_OPTIONS, "name": "Lost World"},
            )

    assert response.status_code == 500
    assert response.json()["error"]["code"] == "INTERNAL_ERROR"
    assert session.exec(select(Map)).all() == []


def test_generate_map_with_edited_prompt(client, session, storage, owner, world):
    mock_client_instance = _image_client()
    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        response = client.post(
            f"{API}/worlds/{world.id}/maps/generate-with-prompt",
            headers=auth_headers(owner),
            json={"name": "Hand Drawn", "prompt": "An inked atlas of a river delta", "create_layers": False},
        )

    assert response.status_code == 201
    body = response.json()
    assert body["description"] == "AI-generated map"
    assert body["layers"] == []
    assert (storage.root / body["image_path"]).read_bytes() == b"hello"
    assert mock_client_instance.images.generate.call_args.kwargs["prompt"] == "An inked atlas of a river delta"
    assert session.get(Map, body["id"]).generation_options == {"custom_prompt": "An inked atlas of a river delta"}


def test_generate_map_with_prompt_rolls_back_on_storage_failure(client, session, storage, owner, world):
    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=_image_client()):
        with patch.object(storage, "save_base64", side_effect=StorageError("disk full")):
            response = client.post(
                f"{API}/worlds/{world.id}/maps/generate-with-prompt",
                headers=auth_headers(owner),
                json={"name": "Hand Drawn", "prompt": "A coastline"},
            )

    assert response.status_code == 500
    assert session.exec(select(Map)).all() == []


def test_generate_map_with_prompt_requires_a_prompt(client, owner, world):
    response = client.post(
        f"{API}/worlds/{world.id}/maps/generate-with-prompt",
        headers=auth_headers(owner),
        json={"name": "Hand Drawn", "prompt": ""},
    )
    assert response.status_code == 422

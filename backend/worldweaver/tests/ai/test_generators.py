import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from worldweaver.ai.artifacts import (
    EntityFieldsRequest,
    EntitySummaryRequest,
    GeneratedTemplate,
    ImageRequest,
    TemplateGenerationRequest,
    TokenUsage,
    WorldFieldsRequest,
)
from worldweaver.ai.entity_fields_generator import EntityFieldsGenerator, select_fields_to_generate
from worldweaver.ai.image_generator import ImageGenerator
from worldweaver.ai.summary_generator import EntitySummaryGenerator
from worldweaver.ai.template_generator import TemplateGenerator
from worldweaver.ai.world_fields_generator import WorldFieldsGenerator
from worldweaver.models import TemplateField

FIELDS = [
    TemplateField(id="f_name", name="Name", type="shortText"),
    TemplateField(id="f_role", name="Role", type="select", options=["Captain", "Pilot"]),
    TemplateField(id="f_bio", name="Biography", type="longText"),
]


def _fake_llm(**methods) -> MagicMock:
    llm = MagicMock()
    llm.last_usage = TokenUsage(model="test-model")
    for name, value in methods.items():
        setattr(llm, name, AsyncMock(return_value=value))
    return llm


@pytest.mark.asyncio
async def test_template_generator():
    mock_message = MagicMock()
    mock_message.content = json.dumps(
        {
            "name": "Starship",
            "description": "A vessel that crosses the void.",
            "fields": [
                {"name": "Class", "type": "select", "options": ["Frigate", "Cruiser"]},
                {"name": "Crew Size", "type": "number", "options": ["ignored"]},
            ],
        }
    )

    mock_choice = MagicMock()
    mock_choice.message = mock_message
    mock_response = MagicMock()
    mock_response.choices = [mock_choice]

    mock_completions = MagicMock()
    mock_completions.create = AsyncMock(return_value=mock_response)

    mock_chat = MagicMock()
    mock_chat.completions = mock_completions

    mock_client_instance = AsyncMock()
    mock_client_instance.chat = mock_chat

    with patch("worldweaver.ai.llm_client.AsyncOpenAI", return_value=mock_client_instance):
        with patch("worldweaver.ai.llm_client.settings.LLM_API_KEY", "dummy_key"):
            generator = TemplateGenerator()

            template = await generator.run(
                TemplateGenerationRequest(prompt="a starship", world={"name": "Aerth"})
            )

            assert isinstance(template, GeneratedTemplate)
            assert template.name == "Starship"
            assert [f.name for f in template.fields] == ["Name", "Class", "Crew Size"]
            assert template.fields[0].type == "shortText"
            assert template.fields[0].required is True
            assert template.fields[1].options == ["Frigate", "Cruiser"]
            assert template.fields[2].options is None
            system_prompt = mock_completions.create.call_args.kwargs["messages"][0]["content"]
            assert "World: Aerth" in system_prompt
            mock_completions.create.assert_called_once()


@pytest.mark.asyncio
async def test_template_generator_moves_name_first_and_caps_fields():
    fields = [{"name": f"Field {i}", "type": "shortText"} for i in range(9)]
    fields.insert(4, {"name": "name", "type": "shortText"})
    llm = _fake_llm(
        generate_structured=GeneratedTemplate.model_validate({"name": "Big", "fields": fields})
    )

    template = await TemplateGenerator(llm=llm).run(TemplateGenerationRequest(prompt="big"))

    assert len(template.fields) == 8
    assert template.fields[0].name == "name"
    assert template.fields[1].name == "Field 0"


@pytest.mark.asyncio
async def test_template_generator_rejects_empty_templates():
    llm = _fake_llm(generate_structured=GeneratedTemplate(name="Empty", fields=[]))
    with pytest.raises(ValueError):
        await TemplateGenerator(llm=llm).run(TemplateGenerationRequest(prompt="nothing"))


def test_select_fields_to_generate_modes():
    base = {"template_fields": FIELDS, "existing_fields": {"f_name": "Vex", "Role": "Pilot"}}

    assert [f.id for f in select_fields_to_generate(EntityFieldsRequest(**base))] == ["f_bio"]
    assert len(select_fields_to_generate(EntityFieldsRequest(**base, generate_all_fields=True))) == 3
    assert [f.id for f in select_fields_to_generate(EntityFieldsRequest(**base, specific_field="role"))] == [
        "f_role"
    ]
    assert [f.id for f in select_fields_to_generate(EntityFieldsRequest(**base, specific_field="f_name"))] == [
        "f_name"
    ]


@pytest.mark.asyncio
async def test_entity_fields_generator_skips_model_when_nothing_to_fill():
    llm = _fake_llm(generate_json={})
    request = EntityFieldsRequest(
        template_fields=FIELDS,
        existing_fields={"f_name": "Vex", "f_role": "Pilot", "f_bio": "Born on a moon."},
    )

    result = await EntityFieldsGenerator(llm=llm).run(request)

    assert result.fields == {}
    llm.generate_json.assert_not_called()


@pytest.mark.asyncio
async def test_entity_fields_generator_remaps_generated_keys():
    llm = _fake_llm(generate_json={"role": "captain", "Bio": "Raised by smugglers.", "Mood": "dour"})
    request = EntityFieldsRequest(
        template_fields=FIELDS,
        entity_name="Vex",
        template_name="Character",
        existing_fields={"f_name": "Vex"},
        prompt="make her ruthless",
    )

    result = await EntityFieldsGenerator(llm=llm).run(request)

    assert result.fields == {"f_role": "Captain", "f_bio": "Raised by smugglers."}
    assert result.unmatched == ["Mood"]
    kwargs = llm.generate_json.call_args.kwargs
    assert "Name: Vex" in kwargs["system_prompt"]
    assert "- Role (select) [options: Captain, Pilot]" in kwargs["system_prompt"]
    assert "make her ruthless" in kwargs["user_prompt"]


@pytest.mark.asyncio
async def test_world_fields_generator_filters_and_coerces():
    llm = _fake_llm(
        generate_json={
            "genreBlend": "Fantasy, Noir",
            "overall_tone": "Bleak",
            "magic_level": ["Rare"],
            "unrequested": "x",
        }
    )
    request = WorldFieldsRequest(
        fields_to_generate=["genre_blend", "overall_tone", "logline"],
        existing_data={"name": "Aerth"},
    )

    result = await WorldFieldsGenerator(llm=llm).run(request)

    assert result.fields == {"genre_blend": ["Fantasy", "Noir"], "overall_tone": "Bleak"}
    system_prompt = llm.generate_json.call_args.kwargs["system_prompt"]
    assert "Existing World Data:\nname: Aerth" in system_prompt
    assert "- logline:" in system_prompt


@pytest.mark.asyncio
async def test_summary_generator_uses_field_names_and_relationships():
    llm = _fake_llm(generate_text="  A pilot with a price on her head.  ")
    request = EntitySummaryRequest(
        entity_name="Vex",
        template_name="Character",
        template_fields=FIELDS,
        data={"f_role": "Pilot", "f_bio": ""},
        relationship_context="## Entity Relationships Context",
        world={"name": "Aerth"},
    )

    result = await EntitySummaryGenerator(llm=llm).run(request)

    assert result.summary == "A pilot with a price on her head."
    kwargs = llm.generate_text.call_args.kwargs
    assert "Role: Pilot" in kwargs["system_prompt"]
    assert "Biography" not in kwargs["system_prompt"]
    assert "## Entity Relationships Context" in kwargs["system_prompt"]
    assert kwargs["user_prompt"] == "Write the summary."


@pytest.mark.asyncio
async def test_image_generator_passes_quality_and_size():
    llm = _fake_llm(generate_image="aGVsbG8=")

    image = await ImageGenerator(llm=llm).run(ImageRequest(prompt="a harbor", quality="high"))

    assert image.b64_data == "aGVsbG8="
    assert image.quality == "high"
    llm.generate_image.assert_called_once_with("a harbor", size="1024x1024", quality="high")

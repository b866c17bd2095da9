import logging
from typing import Any

from worldweaver.ai.artifacts import WorldFieldsRequest, WorldFieldsResult
from worldweaver.ai.base import BaseGenerator
from worldweaver.ai.field_mapping import normalize_field_name
from worldweaver.ai.prompts.context import build_world_context, format_value
from worldweaver.ai.prompts.world import (
    DEFAULT_FIELD_DESCRIPTION,
    WORLD_FIELD_DESCRIPTIONS,
    WORLD_FIELDS_DEFAULT_USER_PROMPT,
    WORLD_FIELDS_SYSTEM_PROMPT,
    WORLD_FIELDS_USER_PROMPT,
    WORLD_LIST_FIELDS,
)

logger = logging.getLogger(__name__)


def _as_list(value: Any) -> list[str]:
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, (list, tuple)):
        return [str(item).strip() for item in value if str(item).strip()]
    return [str(value)]


def _as_text(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    return str(value)


def render_existing_data(existing_data: dict[str, Any]) -> str:
    lines = [
        f"{key}: {format_value(value)}"
        for key, value in existing_data.items()
        if value and not (isinstance(value, (list, tuple)) and len(value) == 0)
    ]
    if not lines:
        return ""
    return "Existing World Data:\n" + "\n".join(lines) + "\n\n"


class WorldFieldsGenerator(BaseGenerator[WorldFieldsRequest, WorldFieldsResult]):
    """Generates values for the requested world fields, consistent with the existing ones."""

    operation = "world_fields"

    async def run(self, input_data: WorldFieldsRequest) -> WorldFieldsResult:
        fields_desc = "\n".join(
            f"- {field}: {WORLD_FIELD_DESCRIPTIONS.get(field, DEFAULT_FIELD_DESCRIPTION)}"
            for field in input_data.fields_to_generate
        )
        system_prompt = WORLD_FIELDS_SYSTEM_PROMPT.format(
            world_context=build_world_context(input_data.existing_data),
            existing_data=render_existing_data(input_data.existing_data),
            fields_to_generate=fields_desc,
        )
        user_prompt = (
            WORLD_FIELDS_USER_PROMPT.format(prompt=input_data.prompt)
            if input_data.prompt
            else WORLD_FIELDS_DEFAULT_USER_PROMPT
        )

        generated = await self.llm.generate_json(system_prompt=system_prompt, user_prompt=user_prompt)

        # Models sometimes answer in camelCase; match keys loosely
        requested = {normalize_field_name(f): f for f in input_data.fields_to_generate}
        fields: dict[str, Any] = {}
        for key, value in generated.items():
            field = requested.get(normalize_field_name(key))
            if field is None or value in (None, ""):
                continue
            fields[field] = _as_list(value) if field in WORLD_LIST_FIELDS else _as_text(value)

        missing = [f for f in input_data.fields_to_generate if f not in fields]
        if missing:
            logger.warning("World field generation did not return: %s", ", ".join(missing))
        return WorldFieldsResult(fields=fields)

import logging
from typing import Any

from worldweaver.ai.artifacts import EntityFieldsRequest, EntityFieldsResult
from worldweaver.ai.base import BaseGenerator
from worldweaver.ai.field_mapping import normalize_field_name, remap_generated_fields
from worldweaver.ai.prompts.context import build_world_context, format_value
from worldweaver.ai.prompts.entity import (
    ENTITY_FIELDS_DEFAULT_USER_PROMPT,
    ENTITY_FIELDS_SYSTEM_PROMPT,
    ENTITY_FIELDS_USER_PROMPT,
)
from worldweaver.models import TemplateField

logger = logging.getLogger(__name__)


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple)):
        return len(value) == 0
    return False


def _existing_value(field: TemplateField, existing: dict[str, Any]) -> Any:
    if field.id and field.id in existing:
        return existing[field.id]
    return existing.get(field.name)


def select_fields_to_generate(request: EntityFieldsRequest) -> list[TemplateField]:
    """All fields, one named field, or the fields that have no value yet."""
    if request.generate_all_fields:
        return list(request.template_fields)
    if request.specific_field:
        wanted = request.specific_field
        for field in request.template_fields:
            if field.id == wanted or field.name == wanted:
                return [field]
        norm = normalize_field_name(wanted)
        return [f for f in request.template_fields if normalize_field_name(f.name) == norm][:1]
    return [f for f in request.template_fields if _is_empty(_existing_value(f, request.existing_fields))]


def render_existing_fields(request: EntityFieldsRequest) -> str:
    lines = []
    for field in request.template_fields:
        value = _existing_value(field, request.existing_fields)
        if not _is_empty(value):
            lines.append(f"{field.name}: {format_value(value)}")
    return "\n".join(lines) or "(none)"


def render_fields_to_generate(fields: list[TemplateField]) -> str:
    lines = []
    for field in fields:
        line = f"- {field.name} ({field.type})"
        if field.prompt:
            line += f": {field.prompt}"
        if field.options:
            line += f" [options: {', '.join(field.options)}]"
        lines.append(line)
    return "\n".join(lines)


class EntityFieldsGenerator(BaseGenerator[EntityFieldsRequest, EntityFieldsResult]):
    """
    Fills entity field values for a template. Generated keys are remapped onto
    template field ids before they are returned.
    """

    operation = "entity_fields"

    async def run(self, input_data: EntityFieldsRequest) -> EntityFieldsResult:
        fields_to_generate = select_fields_to_generate(input_data)
        if not fields_to_generate:
            logger.info("No entity fields to generate for %s", input_data.entity_name or "unnamed entity")
            return EntityFieldsResult()

        system_prompt = ENTITY_FIELDS_SYSTEM_PROMPT.format(
            world_context=build_world_context(input_data.world),
            entity_name=input_data.entity_name or "Unnamed",
            template_name=input_data.template_name or "Unknown",
            existing_fields=render_existing_fields(input_data),
            fields_to_generate=render_fields_to_generate(fields_to_generate),
        )
        user_prompt = (
            ENTITY_FIELDS_USER_PROMPT.format(prompt=input_data.prompt)
            if input_data.prompt
            else ENTITY_FIELDS_DEFAULT_USER_PROMPT
        )

        generated = await self.llm.generate_json(system_prompt=system_prompt, user_prompt=user_prompt)
        fields, unmatched = remap_generated_fields(generated, fields_to_generate)
        return EntityFieldsResult(fields=fields, unmatched=unmatched)

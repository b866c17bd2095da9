from worldweaver.ai.artifacts import EntitySummaryRequest, EntitySummaryResult
from worldweaver.ai.base import BaseGenerator
from worldweaver.ai.prompts.context import build_world_context, format_value
from worldweaver.ai.prompts.entity import (
    ENTITY_SUMMARY_CUSTOM_USER_PROMPT,
    ENTITY_SUMMARY_SYSTEM_PROMPT,
    ENTITY_SUMMARY_USER_PROMPT,
)

MAX_SUMMARY_CHARS = 5000


def render_details(request: EntitySummaryRequest) -> str:
    names = {f.id: f.name for f in request.template_fields if f.id}
    lines = []
    for key, value in request.data.items():
        if value in (None, "", [], {}):
            continue
        lines.append(f"{names.get(key, key)}: {format_value(value)}")
    return "\n".join(lines) or "(none)"


class EntitySummaryGenerator(BaseGenerator[EntitySummaryRequest, EntitySummaryResult]):
    """Writes a short prose summary of an entity from its fields and relationships."""

    operation = "entity_summary"

    async def run(self, input_data: EntitySummaryRequest) -> EntitySummaryResult:
        system_prompt = ENTITY_SUMMARY_SYSTEM_PROMPT.format(
            world_context=build_world_context(input_data.world),
            entity_name=input_data.entity_name,
            template_name=input_data.template_name or "Unknown",
            details=render_details(input_data),
            relationships=input_data.relationship_context or "",
        )
        user_prompt = (
            ENTITY_SUMMARY_CUSTOM_USER_PROMPT.format(prompt=input_data.custom_prompt)
            if input_data.custom_prompt
            else ENTITY_SUMMARY_USER_PROMPT
        )
        summary = await self.llm.generate_text(system_prompt=system_prompt, user_prompt=user_prompt)
        return EntitySummaryResult(summary=summary.strip()[:MAX_SUMMARY_CHARS])

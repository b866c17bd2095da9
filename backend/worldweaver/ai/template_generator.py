import logging

from worldweaver.ai.artifacts import GeneratedTemplate, GeneratedTemplateField, TemplateGenerationRequest
from worldweaver.ai.base import BaseGenerator
from worldweaver.ai.prompts.context import build_world_context
from worldweaver.ai.prompts.template import TEMPLATE_SYSTEM_PROMPT, TEMPLATE_USER_PROMPT

logger = logging.getLogger(__name__)

MAX_TEMPLATE_FIELDS = 8
OPTION_TYPES = {"select", "multiSelect"}


class TemplateGenerator(BaseGenerator[TemplateGenerationRequest, GeneratedTemplate]):
    """
    Generates a template (name, description, typed fields) from a short
    description, grounded in the world's context.
    """

    operation = "template"

    async def run(self, input_data: TemplateGenerationRequest) -> GeneratedTemplate:
        system_prompt = TEMPLATE_SYSTEM_PROMPT.format(world_context=build_world_context(input_data.world))
        template = await self.llm.generate_structured(
            system_prompt=system_prompt,
            user_prompt=TEMPLATE_USER_PROMPT.format(prompt=input_data.prompt),
            response_schema=GeneratedTemplate,
        )

        if not template.fields:
            raise ValueError("TemplateGenerator returned a template without fields.")

        # Name must come first, exactly once
        name_fields = [f for f in template.fields if f.name.strip().lower() == "name"]
        others = [f for f in template.fields if f.name.strip().lower() != "name"]
        name_field = name_fields[0] if name_fields else GeneratedTemplateField(
            name="Name", type="shortText", required=True
        )
        fields = [name_field, *others][:MAX_TEMPLATE_FIELDS]

        for field in fields:
            if field.type not in OPTION_TYPES:
                field.options = None

        if len(fields) != len(template.fields):
            logger.info("Normalized generated template fields from %s to %s", len(template.fields), len(fields))
        template.fields = fields
        return template

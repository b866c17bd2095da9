WORLD_FIELD_DESCRIPTIONS = {
    "name": "A creative and memorable name for the world",
    "summary": "A brief overview of the world, its key characteristics, and what makes it unique",
    "logline": "A compelling one-sentence description that captures the essence of the world",
    "genre_blend": "Array of relevant genre tags that define this world's style",
    "overall_tone": "The emotional atmosphere and mood of the world",
    "key_themes": "Array of central thematic elements that drive stories in this world",
    "audience_rating": "Appropriate audience rating based on content and themes",
    "scope_scale": "The geographic or dimensional scope of the world",
    "technology_level": "Array of technology levels present in the world",
    "magic_level": "Array of magic system types and prevalence levels",
    "cosmology_model": "The structure and nature of reality in this world",
    "climate_biomes": "Array of climate types and biomes present",
    "calendar_timekeeping": (
        "Detailed description of how time is measured, including day/year length, seasons, "
        "celestial bodies, and significant cycles"
    ),
    "societal_overview": (
        "Overview of civilizations, cultures, social structures, institutions, and economic patterns"
    ),
    "conflict_drivers": "Array of forces and factors that create tension and drive stories",
    "rules_constraints": (
        "Physical laws, magical rules, technological limitations, taboos, and other constraints "
        "that define what can and cannot happen"
    ),
    "aesthetic_direction": (
        "Visual style, architecture, fashion, art direction, textures, soundscape, and color palette"
    ),
}

WORLD_LIST_FIELDS = {
    "genre_blend",
    "key_themes",
    "technology_level",
    "magic_level",
    "climate_biomes",
    "conflict_drivers",
}

DEFAULT_FIELD_DESCRIPTION = "Generate appropriate content for this field"

WORLD_FIELDS_SYSTEM_PROMPT = """
You are a worldbuilding assistant for tabletop RPGs and creative writing. Generate world field values that are creative, consistent, and thematically coherent.

{world_context}{existing_data}Generate values for these fields:
{fields_to_generate}

Return a JSON object with field names as keys and generated values as values.

For array fields (genre_blend, key_themes, technology_level, magic_level, climate_biomes, conflict_drivers), provide arrays of strings.
For string fields, provide descriptive text appropriate to the field type.
For calendar_timekeeping, societal_overview, rules_constraints, and aesthetic_direction, provide rich, detailed descriptions.

Ensure all generated content is consistent with existing data and maintains thematic coherence.

Example format:
{{
  "name": "Generated World Name",
  "logline": "A compelling description...",
  "genre_blend": ["Fantasy", "Mystery"],
  "calendar_timekeeping": "Detailed time system description...",
  "societal_overview": "Rich societal description..."
}}
"""

WORLD_FIELDS_USER_PROMPT = "Additional guidance: {prompt}\n\nGenerate the requested world fields."
WORLD_FIELDS_DEFAULT_USER_PROMPT = "Generate creative and consistent values for the requested world fields."

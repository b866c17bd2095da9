from typing import Any

# (attribute, label) in the order they appear in prompts
WORLD_CONTEXT_FIELDS = [
    ("name", "World"),
    ("description", "Description"),
    ("summary", "Summary"),
    ("logline", "Logline"),
    ("genre_blend", "Genre"),
    ("overall_tone", "Tone"),
    ("key_themes", "Key Themes"),
    ("audience_rating", "Audience Rating"),
    ("scope_scale", "Scope & Scale"),
    ("technology_level", "Technology Level"),
    ("magic_level", "Magic Level"),
    ("cosmology_model", "Cosmology"),
    ("climate_biomes", "Climate & Biomes"),
    ("calendar_timekeeping", "Calendar & Timekeeping"),
    ("societal_overview", "Societal Overview"),
    ("conflict_drivers", "Conflict Drivers"),
    ("rules_constraints", "Rules & Constraints"),
    ("aesthetic_direction", "Aesthetic Direction"),
]


def world_value(world: Any, key: str) -> Any:
    if world is None:
        return None
    if isinstance(world, dict):
        return world.get(key)
    return getattr(world, key, None)


def format_value(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v) for v in value)
    return str(value)


def build_world_context(world: Any) -> str:
    """Render the populated world fields as a "World Context:" block, or "" when none are set."""
    lines = []
    for key, label in WORLD_CONTEXT_FIELDS:
        value = world_value(world, key)
        if not value:
            continue
        lines.append(f"{label}: {format_value(value)}")
    if not lines:
        return ""
    return "World Context:\n" + "\n".join(lines) + "\n\n"

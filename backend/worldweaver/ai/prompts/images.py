from typing import Any

from worldweaver.ai.prompts.context import world_value

# Field names whose values describe how an entity looks
VISUAL_FIELD_NAMES = ("appearance", "description", "look", "physical", "clothing", "equipment")
MAX_VISUAL_DETAILS = 3

MAP_PURPOSE_LABELS = {
    "campaign_overview": "Campaign overview / world atlas",
    "regional_adventuring": "Regional adventuring (quests & travel)",
    "local_exploration": "Local exploration (hex crawl)",
    "political_boundaries": "Political boundaries & factions",
    "trade_logistics": "Trade & logistics",
    "war_operations": "War & military operations",
}
MAP_SCALE_LABELS = {
    "world_continent": "World / continent",
    "large_region": "Large region (500–1500 km)",
    "province_kingdom": "Province / kingdom (150–500 km)",
    "local_area": "Local area (25–150 km)",
    "town_surroundings": "Town + surroundings (1–25 km)",
}
GENRE_TAG_LABELS = {
    "high_fantasy": "High fantasy",
    "low_grim_fantasy": "Low/grim fantasy",
    "post_apocalyptic": "Post-apocalyptic",
    "sword_sorcery": "Sword & sorcery",
    "historical_alt_history": "Historical/alt-history",
    "science_fantasy": "Science-fantasy",
}
TERRAIN_LABELS = {
    "mountains": "Mountain chains & highlands",
    "rivers": "River systems & wetlands",
    "forests": "Forests & jungles",
    "deserts": "Deserts & badlands",
    "coasts": "Coasts & archipelagos",
    "grasslands": "Grasslands & steppes",
}
CLIMATE_LABELS = {
    "tropical": "Tropical/humid",
    "subtropical": "Subtropical/savanna",
    "temperate": "Temperate (four seasons)",
    "arid": "Arid/desert",
    "boreal": "Boreal/taiga",
    "polar": "Polar/tundra",
}
SETTLEMENT_LABELS = {
    "sparse_nomadic": "Sparse nomadic / pre-agrarian",
    "rural_agrarian": "Rural agrarian with few towns",
    "feudal_kingdoms": "Feudal kingdoms with walled cities",
    "late_medieval": "Late-medieval / early gunpowder",
    "early_industrial": "Early industrial / steampunk",
}
POLITICAL_LABELS = {
    "minimal": "Minimal (1–2 realms)",
    "moderate": "Moderate (3–6 realms)",
    "high": "High (7+ realms, enclaves, vassals)",
}
TRAVEL_LABELS = {
    "overland_roads": "Overland roads & caravans",
    "river_travel": "River travel & ferries",
    "coastal_shipping": "Coastal shipping/sea lanes",
    "wilderness_treks": "Wilderness treks/off-road",
    "air_arcane": "Air/arcane travel corridors",
}
SIGNATURE_FEATURE_LABELS = {
    "great_wall": "Great wall/pass choke point",
    "world_scar": "World-scar canyon/fault",
    "volcano_chain": "Active volcano chain",
    "inland_sea": "Giant inland sea/delta",
    "floating_isles": "Floating/levitating isles",
    "megadungeon": "Megadungeon/ancient ruin zone",
}
VISUAL_STYLE_LABELS = {
    "inked_atlas": "Inked atlas (lines & hatching)",
    "painterly": "Painterly/illustrated",
    "hex_map": "Hex map (grid & symbols)",
    "minimal_modern": "Minimal modern",
    "nautical_chart": "Nautical chart",
}


def _labels(values: list[str] | None, labels: dict[str, str]) -> str:
    return ", ".join(labels.get(v, v) for v in values or [])


def build_entity_image_prompt(
    entity_name: str,
    template_name: str | None = None,
    details: dict[str, Any] | None = None,
    world: Any = None,
    custom_prompt: str | None = None,
) -> str:
    """``details`` maps field names to values; only visual ones are used."""
    prompt = custom_prompt or f"A {template_name or 'character'} named {entity_name}"

    genres = world_value(world, "genre_blend")
    if genres:
        prompt += f" in a {'/'.join(genres)} setting"
    tone = world_value(world, "overall_tone")
    if tone:
        prompt += f" with a {tone} tone"

    descriptions = []
    for name, value in (details or {}).items():
        if not value or not isinstance(value, str):
            continue
        if any(word in name.lower() for word in VISUAL_FIELD_NAMES):
            descriptions.append(value.strip())
    if descriptions:
        prompt += ". " + ". ".join(descriptions[:MAX_VISUAL_DETAILS])

    return prompt + ". High quality, detailed artwork."


def build_world_cover_prompt(world: Any, custom_prompt: str | None = None) -> str:
    prompt = custom_prompt or f'Epic landscape artwork for "{world_value(world, "name")}"'

    description = world_value(world, "description")
    if description:
        prompt += f". {description}"
    genres = world_value(world, "genre_blend")
    if genres:
        prompt += f" in {'/'.join(genres)} style"
    tone = world_value(world, "overall_tone")
    if tone:
        prompt += f" with {tone} atmosphere"
    scope = world_value(world, "scope_scale")
    if scope:
        prompt += f" showing {scope} scale"
    aesthetic = world_value(world, "aesthetic_direction")
    if aesthetic:
        prompt += f". {aesthetic}"

    return prompt + ". Cinematic, high quality, detailed environment art."


def build_map_prompt(options: Any, world: Any = None, entity_names: list[str] | None = None) -> str:
    """Build the image prompt for a generated map from its generation options."""
    lines = [
        f"A fantasy world map in the style of: {VISUAL_STYLE_LABELS[options.visual_style]}.",
        f"Purpose: {MAP_PURPOSE_LABELS[options.map_purpose]}.",
        f"Scale: {MAP_SCALE_LABELS[options.map_scale]}.",
    ]
    if options.genre_tags:
        lines.append(f"Genre: {_labels(options.genre_tags, GENRE_TAG_LABELS)}.")
    if options.terrain_emphasis:
        lines.append(f"Terrain emphasis: {_labels(options.terrain_emphasis, TERRAIN_LABELS)}.")
    if options.climate_zones:
        lines.append(f"Climate zones: {_labels(options.climate_zones, CLIMATE_LABELS)}.")
    if options.settlement_density:
        lines.append(f"Settlement density: {SETTLEMENT_LABELS[options.settlement_density]}.")
    if options.political_complexity:
        lines.append(f"Political complexity: {POLITICAL_LABELS[options.political_complexity]}.")
    if options.travel_focus:
        lines.append(f"Travel routes: {_labels(options.travel_focus, TRAVEL_LABELS)}.")
    if options.signature_features:
        lines.append(
            f"Signature features: {_labels(options.signature_features, SIGNATURE_FEATURE_LABELS)}."
        )

    if world is not None:
        name = world_value(world, "name")
        if name:
            lines.append(f'This is a map of the world "{name}".')
        description = world_value(world, "description")
        if description:
            lines.append(f"World description: {description}")
        genres = world_value(world, "genre_blend")
        if genres:
            lines.append(f"World genres: {', '.join(genres)}.")
        tone = world_value(world, "overall_tone")
        if tone:
            lines.append(f"Overall tone: {tone}.")
        themes = world_value(world, "key_themes")
        if themes:
            lines.append(f"Key themes: {', '.join(themes)}.")

    if entity_names:
        lines.append(f"Include places associated with: {', '.join(entity_names)}.")
    if options.custom_prompt:
        lines.append(options.custom_prompt.strip())

    lines.append("Top-down view, clearly readable terrain, no text labels, no legend, no border decorations.")
    return " ".join(lines)

import uuid
from typing import Any, Literal

from pydantic import BaseModel, Field

from worldweaver.models import FieldType, TemplateField

MapPurpose = Literal[
    "campaign_overview",
    "regional_adventuring",
    "local_exploration",
    "political_boundaries",
    "trade_logistics",
    "war_operations",
]
MapScale = Literal["world_continent", "large_region", "province_kingdom", "local_area", "town_surroundings"]
GenreTag = Literal[
    "high_fantasy",
    "low_grim_fantasy",
    "post_apocalyptic",
    "sword_sorcery",
    "historical_alt_history",
    "science_fantasy",
]
TerrainEmphasis = Literal["mountains", "rivers", "forests", "deserts", "coasts", "grasslands"]
ClimateZone = Literal["tropical", "subtropical", "temperate", "arid", "boreal", "polar"]
SettlementDensity = Literal[
    "sparse_nomadic", "rural_agrarian", "feudal_kingdoms", "late_medieval", "early_industrial"
]
PoliticalComplexity = Literal["minimal", "moderate", "high"]
TravelFocus = Literal["overland_roads", "river_travel", "coastal_shipping", "wilderness_treks", "air_arcane"]
SignatureFeature = Literal[
    "great_wall", "world_scar", "volcano_chain", "inland_sea", "floating_isles", "megadungeon"
]
MapVisualStyle = Literal["inked_atlas", "painterly", "hex_map", "minimal_modern", "nautical_chart"]
ImageQuality = Literal["low", "medium", "high"]


class TokenUsage(BaseModel):
    model: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class GeneratedTemplateField(BaseModel):
    name: str = Field(description="Human readable field name (e.g., 'Name', 'Appearance')")
    type: FieldType = Field(description="One of shortText, longText, richText, number, select, multiSelect, image, reference")
    prompt: str | None = Field(default=None, description="Guidance used when AI fills this field later")
    required: bool = False
    options: list[str] | None = Field(default=None, description="Choices, only for select and multiSelect fields")


class GeneratedTemplate(BaseModel):
    """Artifact produced by the template generator."""
    name: str = Field(description="Name of the template (e.g., 'Starship', 'Noble House')")
    description: str = Field(default="", description="Brief description of what the template represents")
    fields: list[GeneratedTemplateField] = Field(description="3-8 fields, the first one named 'Name'")


class TemplateGenerationRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=1000)
    world: Any = None


class EntityFieldsRequest(BaseModel):
    template_fields: list[TemplateField]
    prompt: str | None = None
    entity_name: str | None = None
    template_name: str | None = None
    existing_fields: dict[str, Any] = Field(default_factory=dict)
    world: Any = None
    generate_all_fields: bool = False
    specific_field: str | None = None


class EntityFieldsResult(BaseModel):
    """Generated values keyed by template field id."""
    fields: dict[str, Any] = Field(default_factory=dict)
    unmatched: list[str] = Field(default_factory=list)


class WorldFieldsRequest(BaseModel):
    fields_to_generate: list[str] = Field(min_length=1)
    prompt: str | None = Field(default=None, max_length=1000)
    existing_data: dict[str, Any] = Field(default_factory=dict)


class WorldFieldsResult(BaseModel):
    fields: dict[str, Any] = Field(default_factory=dict)


class EntitySummaryRequest(BaseModel):
    entity_name: str
    template_name: str | None = None
    template_fields: list[TemplateField] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)
    relationship_context: str | None = None
    custom_prompt: str | None = Field(default=None, max_length=500)
    world: Any = None


class EntitySummaryResult(BaseModel):
    summary: str


class ImageRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=4000)
    quality: ImageQuality = "medium"
    size: str = "1024x1024"


class GeneratedImage(BaseModel):
    prompt: str
    b64_data: str
    quality: ImageQuality


class MapGenerationOptions(BaseModel):
    map_purpose: MapPurpose
    map_scale: MapScale
    visual_style: MapVisualStyle
    genre_tags: list[GenreTag] = Field(default_factory=list)
    terrain_emphasis: list[TerrainEmphasis] = Field(default_factory=list)
    climate_zones: list[ClimateZone] = Field(default_factory=list)
    settlement_density: SettlementDensity | None = None
    political_complexity: PoliticalComplexity | None = None
    travel_focus: list[TravelFocus] = Field(default_factory=list)
    signature_features: list[SignatureFeature] = Field(default_factory=list)
    include_world_context: bool = True
    context_entity_ids: list[uuid.UUID] = Field(default_factory=list)
    custom_prompt: str | None = Field(default=None, max_length=1000)

"""Built-in templates copied into the "Core" folder of every new world."""
from typing import Any

CORE_FOLDER_NAME = "Core"

CHARACTER_FIELDS: list[dict[str, Any]] = [
    {"id": "tf-char-name", "name": "Character Name", "type": "shortText",
     "prompt": "Enter the character's full name", "required": True},
    {"id": "tf-char-concept", "name": "One-Line Concept", "type": "shortText",
     "prompt": 'The hook (e.g., "grizzled courier hiding a royal secret")', "required": True},
    {"id": "tf-char-role", "name": "Role / Archetype", "type": "select",
     "options": ["Protagonist", "Antagonist", "Ally", "Mentor", "Rival", "Foil", "Background"],
     "prompt": "Select the character's narrative role", "required": True},
    {"id": "tf-char-species", "name": "Species / Origin", "type": "shortText",
     "prompt": "Keep generic (e.g., Human, Elf, Android)"},
    {"id": "tf-char-age-appearance", "name": "Age & Appearance Snapshot", "type": "shortText",
     "prompt": "Age range, build, notable features"},
    {"id": "tf-char-personality", "name": "Personality Traits", "type": "multiSelect",
     "options": ["Stoic", "Compassionate", "Impulsive", "Calculating", "Loyal", "Suspicious",
                 "Optimistic", "Cynical", "Brave", "Cautious", "Charming", "Blunt", "Curious", "Secretive"],
     "prompt": "Choose 3-5 core personality traits"},
    {"id": "tf-char-motivations", "name": "Motivations & Goals", "type": "longText",
     "prompt": "Primary and secondary motivations; what drives them forward"},
    {"id": "tf-char-flaws", "name": "Flaws & Vulnerabilities", "type": "longText",
     "prompt": "Blind spots, fears, limitations, and character weaknesses"},
    {"id": "tf-char-relationships", "name": "Relationships Overview", "type": "longText",
     "prompt": 'Role-based relationships: "estranged parent," "old rival," "secret patron"'},
    {"id": "tf-char-secrets", "name": "Secrets & GM Notes", "type": "longText",
     "prompt": "Private field for twists, hidden agendas, and GM-only information"},
]

LOCATION_FIELDS: list[dict[str, Any]] = [
    {"id": "tf-loc-name", "name": "Location Name", "type": "shortText",
     "prompt": "Enter the location's name", "required": True},
    {"id": "tf-loc-description", "name": "One-Line Description", "type": "shortText",
     "prompt": "What makes this location distinct and memorable", "required": True},
    {"id": "tf-loc-category", "name": "Category / Type", "type": "select",
     "options": ["Natural Feature", "Settlement", "District/Neighborhood", "Structure",
                 "Facility/Outpost", "Ruin", "Wilderness Site", "Other"],
     "prompt": "Select the location's primary category", "required": True},
    {"id": "tf-loc-climate", "name": "Climate & Biome Snapshot", "type": "multiSelect",
     "options": ["Temperate", "Arid", "Tropical", "Alpine", "Swamp", "Taiga", "Tundra",
                 "Steppe", "Oceanic", "Mediterranean", "Continental", "Volcanic"],
     "prompt": "Select climate and biome characteristics"},
    {"id": "tf-loc-atmosphere", "name": "Atmosphere & Mood", "type": "multiSelect",
     "options": ["Serene", "Ominous", "Festive", "Gritty", "Sacred", "Haunted", "Lawless",
                 "Orderly", "Melancholic", "Vibrant", "Mysterious", "Welcoming", "Hostile", "Ancient"],
     "prompt": "Select atmospheric and emotional qualities"},
    {"id": "tf-loc-safety", "name": "Safety Level", "type": "select",
     "options": ["Very Safe", "Safe", "Uncertain", "Risky", "Dangerous", "Lethal"],
     "prompt": "Overall safety level for typical visitors"},
    {"id": "tf-loc-access", "name": "Access & Travel", "type": "longText",
     "prompt": "Routes in/out, travel conditions, typical travel times, checkpoints"},
    {"id": "tf-loc-points-of-interest", "name": "Points of Interest", "type": "longText",
     "prompt": "Notable features, landmarks, districts, or areas within the location"},
    {"id": "tf-loc-secrets", "name": "Secrets & GM Notes", "type": "longText",
     "prompt": "Private field for hidden dangers, secret agendas, plot hooks, and reveal triggers"},
]

OBJECT_FIELDS: list[dict[str, Any]] = [
    {"id": "tf-obj-name", "name": "Object Name", "type": "shortText",
     "prompt": "Enter the object's name", "required": True},
    {"id": "tf-obj-description", "name": "One-Line Description", "type": "shortText",
     "prompt": "What makes this object distinct and memorable", "required": True},
    {"id": "tf-obj-category", "name": "Category / Type", "type": "select",
     "options": ["Tool", "Weapon", "Apparel", "Accessory", "Container", "Furniture", "Vehicle",
                 "Device", "Artifact", "Consumable", "Document", "Currency", "Instrument",
                 "Relic", "Resource", "Other"],
     "prompt": "Select the object's primary category", "required": True},
    {"id": "tf-obj-materials", "name": "Materials & Construction", "type": "multiSelect",
     "options": ["Iron", "Steel", "Bronze", "Silver", "Gold", "Hardwood", "Leather", "Bone",
                 "Stone", "Crystal", "Glass", "Ceramic", "Fabric", "Parchment"],
     "prompt": "Select materials used in construction"},
    {"id": "tf-obj-quality", "name": "Craftsmanship / Quality", "type": "select",
     "options": ["Crude", "Common", "Fine", "Masterwork", "Exotic"],
     "prompt": "Overall quality and craftsmanship level"},
    {"id": "tf-obj-condition", "name": "Condition", "type": "select",
     "options": ["Pristine", "Good", "Worn", "Damaged", "Ruined"],
     "prompt": "Current physical condition"},
    {"id": "tf-obj-capabilities", "name": "Capabilities & Limits", "type": "longText",
     "prompt": "What it can and can't do; range, capacity, limitations, durability"},
    {"id": "tf-obj-value", "name": "Value & Rarity", "type": "longText",
     "prompt": "Perceived worth, trade value, scarcity descriptors"},
    {"id": "tf-obj-secrets", "name": "Secrets & GM Notes", "type": "longText",
     "prompt": "Private field for hidden functions, twists, and reveal triggers"},
]

ORGANIZATION_FIELDS: list[dict[str, Any]] = [
    {"id": "tf-org-name", "name": "Organization Name", "type": "shortText",
     "prompt": "Enter the organization's name", "required": True},
    {"id": "tf-org-summary", "name": "One-Line Summary", "type": "shortText",
     "prompt": "What this organization does at a glance", "required": True},
    {"id": "tf-org-type", "name": "Organization Type", "type": "select",
     "options": ["Guild", "Clan", "Government Agency", "Religious Order", "Academic",
                 "Mercantile", "Criminal Syndicate", "Paramilitary", "Cult", "Corporation",
                 "Secret Society", "Other"],
     "prompt": "Select the organization's primary type", "required": True},
    {"id": "tf-org-purpose", "name": "Purpose / Mandate", "type": "longText",
     "prompt": "Mission, raison d'etre"},
    {"id": "tf-org-scope", "name": "Scope & Reach", "type": "select",
     "options": ["Local", "Regional", "Continental", "Planetary", "Multi-world/Planar", "Galactic"],
     "prompt": "Geographic or dimensional scope of operations"},
    {"id": "tf-org-methods", "name": "Operating Methods", "type": "multiSelect",
     "options": ["Diplomacy", "Propaganda", "Espionage", "Trade", "Legal Action", "Violence",
                 "Research", "Charity", "Smuggling", "Sabotage"],
     "prompt": "Select primary methods of operation"},
    {"id": "tf-org-resources", "name": "Resources & Assets", "type": "longText",
     "prompt": "Funding, equipment, facilities, leverage"},
    {"id": "tf-org-secrets", "name": "Secrets & GM Notes", "type": "longText",
     "prompt": "Hidden agendas, internal fractures, reveal triggers (GM only)"},
]

CULTURE_FIELDS: list[dict[str, Any]] = [
    {"id": "tf-cult-name", "name": "Culture Name", "type": "shortText",
     "prompt": "Enter the culture's name", "required": True},
    {"id": "tf-cult-identity", "name": "One-Line Identity", "type": "shortText",
     "prompt": "What defines them at a glance", "required": True},
    {"id": "tf-cult-values", "name": "Core Values & Virtues", "type": "multiSelect",
     "options": ["Honor", "Hospitality", "Thrift", "Ingenuity", "Loyalty", "Independence",
                 "Wisdom", "Courage", "Compassion", "Justice", "Order", "Freedom", "Tradition",
                 "Innovation"],
     "prompt": "Select core cultural values and virtues"},
    {"id": "tf-cult-social-structure", "name": "Social Structure", "type": "longText",
     "prompt": "Describe social strata, roles, mobility patterns, and kinship ties"},
    {"id": "tf-cult-customs-taboos", "name": "Customs & Taboos", "type": "longText",
     "prompt": "Cultural do's and don'ts; what is considered sacred versus profane"},
    {"id": "tf-cult-tech-magic-attitude", "name": "Attitude to Technology/Magic", "type": "select",
     "options": ["Embracing", "Pragmatic", "Cautious", "Restrictive", "Taboo", "Sacred/Initiatory"],
     "prompt": "How does the culture view and interact with technology or magic?", "required": True},
    {"id": "tf-cult-festivals-rites", "name": "Festivals & Rites of Passage", "type": "longText",
     "prompt": "Seasonal celebrations, coming-of-age ceremonies, mourning practices"},
]

CORE_TEMPLATES: list[dict[str, Any]] = [
    {"name": "Character", "category": "People", "icon": "user", "fields": CHARACTER_FIELDS},
    {"name": "Location", "category": "Places", "icon": "map-pin", "fields": LOCATION_FIELDS},
    {"name": "Object", "category": "Things", "icon": "box", "fields": OBJECT_FIELDS},
    {"name": "Organization", "category": "Groups", "icon": "users", "fields": ORGANIZATION_FIELDS},
    {"name": "Culture", "category": "Groups", "icon": "globe", "fields": CULTURE_FIELDS},
]

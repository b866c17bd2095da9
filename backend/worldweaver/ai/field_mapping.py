"""
Map keys produced by the model back onto template field ids.

Models answer with whatever key they see in the prompt (usually the field
name, sometimes re-cased or abbreviated). Entity data is keyed by field id,
so each generated key is resolved in passes of decreasing strictness:
exact id, exact name, normalized name, containment, then fuzzy similarity.
A template field is claimed by at most one key.
"""
import difflib
import json
import logging
import re
from collections.abc import Sequence
from typing import Any

from worldweaver.models import TemplateField

logger = logging.getLogger(__name__)

SIMILARITY_THRESHOLD = 0.6
TEXT_TYPES = {"shortText", "longText", "richText", "image", "reference"}


def normalize_field_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", (name or "").lower())


def _match_exact_id(key: str, field: TemplateField) -> bool:
    return field.id is not None and key == field.id


def _match_exact_name(key: str, field: TemplateField) -> bool:
    return key == field.name


def _match_normalized(key: str, field: TemplateField) -> bool:
    norm_key = normalize_field_name(key)
    return bool(norm_key) and norm_key == normalize_field_name(field.name)


def _match_containment(key: str, field: TemplateField) -> bool:
    norm_key = normalize_field_name(key)
    norm_name = normalize_field_name(field.name)
    if not norm_key or not norm_name:
        return False
    return norm_key in norm_name or norm_name in norm_key


def _similarity(key: str, field: TemplateField) -> float:
    return difflib.SequenceMatcher(
        None, normalize_field_name(key), normalize_field_name(field.name)
    ).ratio()


def _field_key(field: TemplateField) -> str:
    return field.id or field.name


def _resolve_keys(
    keys: Sequence[str], template_fields: Sequence[TemplateField]
) -> dict[str, TemplateField]:
    resolved: dict[str, TemplateField] = {}
    claimed: set[int] = set()

    for matcher in (_match_exact_id, _match_exact_name, _match_normalized, _match_containment):
        for key in keys:
            if key in resolved:
                continue
            for idx, field in enumerate(template_fields):
                if idx not in claimed and matcher(key, field):
                    resolved[key] = field
                    claimed.add(idx)
                    break

    for key in keys:
        if key in resolved:
            continue
        best_idx, best_score = None, 0.0
        for idx, field in enumerate(template_fields):
            if idx in claimed:
                continue
            score = _similarity(key, field)
            if score > best_score:
                best_idx, best_score = idx, score
        if best_idx is not None and best_score >= SIMILARITY_THRESHOLD:
            resolved[key] = template_fields[best_idx]
            claimed.add(best_idx)

    return resolved


def _match_option(value: str, options: Sequence[str]) -> str | None:
    lowered = value.strip().lower()
    for option in options:
        if option.lower() == lowered:
            return option
    return None


def coerce_field_value(field: TemplateField, value: Any) -> Any:
    """Convert a generated value to the shape the field type stores.

    Returns None when the value cannot be used for this field.
    """
    if value is None:
        return None

    if field.type == "number":
        if isinstance(value, bool):
            return None
        if isinstance(value, (int, float)):
            return value
        try:
            number = float(str(value).strip().replace(",", ""))
        except ValueError:
            return None
        return int(number) if number.is_integer() else number

    if field.type == "multiSelect":
        if isinstance(value, str):
            items = [part.strip() for part in value.split(",")]
        elif isinstance(value, (list, tuple)):
            items = [str(item).strip() for item in value]
        else:
            items = [str(value).strip()]
        items = [item for item in items if item]
        if field.options:
            items = [m for m in (_match_option(item, field.options) for item in items) if m]
        return items

    if field.type == "select":
        if isinstance(value, (list, tuple)):
            value = value[0] if value else ""
        text = str(value).strip()
        if field.options:
            return _match_option(text, field.options) or text
        return text

    if isinstance(value, (list, tuple)):
        return ", ".join(str(item) for item in value)
    if isinstance(value, dict):
        return json.dumps(value)
    return str(value)


def remap_generated_fields(
    generated: dict[str, Any], template_fields: Sequence[TemplateField]
) -> tuple[dict[str, Any], list[str]]:
    """Return (values keyed by template field id, generated keys that matched nothing)."""
    keys = list(generated.keys())
    resolved = _resolve_keys(keys, template_fields)

    mapped: dict[str, Any] = {}
    unmatched: list[str] = []
    for key in keys:
        field = resolved.get(key)
        if field is None:
            unmatched.append(key)
            continue
        value = coerce_field_value(field, generated[key])
        if value is None:
            logger.warning("Dropping value for field %s: cannot coerce %r to %s", field.name, generated[key], field.type)
            continue
        mapped[_field_key(field)] = value

    if unmatched:
        logger.info("Generated keys without a matching template field: %s", ", ".join(unmatched))
    return mapped, unmatched

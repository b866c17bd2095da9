from pydantic import BaseModel

PER_MILLION = 1_000_000

# USD per 1M tokens: input, cached input, output
TEXT_PRICING: dict[str, dict[str, float]] = {
    "gpt-5": {"input": 0.25, "cached_input": 0.025, "output": 2.00},
    "gpt-5-2025-08-07": {"input": 0.25, "cached_input": 0.025, "output": 2.00},
    "gpt-5-mini": {"input": 0.15, "cached_input": 0.015, "output": 0.75},
    "gpt-4o-mini": {"input": 0.15, "cached_input": 0.075, "output": 0.60},
}

# USD per square image generated with gpt-image-1
IMAGE_PRICING: dict[str, float] = {
    "low": 0.01,
    "medium": 0.04,
    "high": 0.17,
}


class CostBreakdown(BaseModel):
    model: str
    input_cost: float
    output_cost: float
    total_cost: float
    currency: str = "USD"


def round_cost(value: float) -> float:
    return round(value, 6)


def text_model_rates(model: str) -> dict[str, float]:
    """Rates for a text model; dated snapshots fall back to their base model."""
    if model in TEXT_PRICING:
        return TEXT_PRICING[model]
    candidates = [name for name in TEXT_PRICING if model.startswith(f"{name}-")]
    if not candidates:
        raise ValueError(f"Unsupported text model: {model}")
    return TEXT_PRICING[max(candidates, key=len)]


def calculate_text_cost(
    model: str, prompt_tokens: int, completion_tokens: int, use_cached_pricing: bool = False
) -> CostBreakdown:
    rates = text_model_rates(model)
    input_rate = rates["cached_input"] if use_cached_pricing else rates["input"]
    input_cost = prompt_tokens * input_rate / PER_MILLION
    output_cost = completion_tokens * rates["output"] / PER_MILLION
    return CostBreakdown(
        model=model,
        input_cost=round_cost(input_cost),
        output_cost=round_cost(output_cost),
        total_cost=round_cost(input_cost + output_cost),
    )


def calculate_image_cost(quality: str) -> float:
    if quality not in IMAGE_PRICING:
        raise ValueError(f"Unsupported image quality: {quality}")
    return IMAGE_PRICING[quality]


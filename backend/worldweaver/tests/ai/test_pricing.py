import pytest

from worldweaver.ai.pricing import (
    calculate_image_cost,
    calculate_text_cost,
    text_model_rates,
)


def test_text_cost_for_gpt5_mini():
    cost = calculate_text_cost("gpt-5-mini", prompt_tokens=1000, completion_tokens=500)
    assert cost.input_cost == pytest.approx(0.00015)
    assert cost.output_cost == pytest.approx(0.000375)
    assert cost.total_cost == pytest.approx(0.000525)
    assert cost.currency == "USD"


def test_cached_input_pricing():
    cost = calculate_text_cost("gpt-4o-mini", 1_000_000, 0, use_cached_pricing=True)
    assert cost.total_cost == pytest.approx(0.075)


def test_dated_model_names_use_their_base_rates():
    assert text_model_rates("gpt-5-2025-08-07") == text_model_rates("gpt-5")
    assert text_model_rates("gpt-5-mini-2025-08-07") == text_model_rates("gpt-5-mini")


def test_unknown_text_model_is_rejected():
    with pytest.raises(ValueError, match="Unsupported text model"):
        calculate_text_cost("mystery-model", 10, 10)


def test_costs_are_rounded_to_six_decimals():
    cost = calculate_text_cost("gpt-5", prompt_tokens=1, completion_tokens=1)
    assert cost.total_cost == round(cost.total_cost, 6)
    assert cost.input_cost == 0.0


@pytest.mark.parametrize("quality, expected", [("low", 0.01), ("medium", 0.04), ("high", 0.17)])
def test_image_cost(quality, expected):
    assert calculate_image_cost(quality) == expected


def test_unknown_image_quality_is_rejected():
    with pytest.raises(ValueError):
        calculate_image_cost("ultra")

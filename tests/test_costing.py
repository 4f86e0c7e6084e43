"""Tests for cost estimation."""

import itertools

import pytest

from chatrelay.ai.costing import calculate_cost, estimate_cost, format_cost_usd
from chatrelay.domain.config import ModelConfig

SONNET = ModelConfig(
    provider="anthropic",
    model="claude-sonnet-4-20250514",
    display_name="Claude Sonnet",
    input_cost=3.0,
    output_cost=15.0,
)


# ---------------------------------------------------------------------------
# estimate_cost / calculate_cost
# ---------------------------------------------------------------------------


def test_estimate_cost_per_million_pricing():
    """Prices are USD per million tokens."""
    est = estimate_cost(SONNET, 1000, 500)
    assert est.input_cost == pytest.approx(0.003)
    assert est.output_cost == pytest.approx(0.0075)
    assert est.total_cost == pytest.approx(0.0105)


def test_calculate_cost_matches_total():
    assert calculate_cost(SONNET, 1_000_000, 1_000_000) == pytest.approx(18.0)


def test_zero_tokens_cost_nothing():
    assert calculate_cost(SONNET, 0, 0) == 0.0


def test_unpriced_model_costs_nothing():
    """Models without configured prices default to zero cost."""
    free = ModelConfig(provider="google", model="gemini-local", display_name="Local")
    assert calculate_cost(free, 123_456, 7_890) == 0.0


def test_cost_is_monotonic_in_both_token_counts():
    counts = [0, 1, 999, 1000, 250_000, 2_000_000]
    for i, o in itertools.product(counts, counts):
        base = calculate_cost(SONNET, i, o)
        assert base >= 0
        assert calculate_cost(SONNET, i + 1, o) >= base
        assert calculate_cost(SONNET, i, o + 1) >= base


# ---------------------------------------------------------------------------
# format_cost_usd
# ---------------------------------------------------------------------------


def test_format_cost_usd_zero():
    assert format_cost_usd(0.0) == "$0.00"


def test_format_cost_usd_whole_dollars():
    assert format_cost_usd(3.0) == "$3.00"


def test_format_cost_usd_two_integer_digits():
    assert format_cost_usd(25.75) == "$25.75"


def test_format_cost_usd_keeps_two_significant_digits():
    """Sub-cent values keep enough precision to show two non-zero digits."""
    assert format_cost_usd(0.0105) == "$0.0105"
    assert format_cost_usd(0.00042) == "$0.00042"


def test_format_cost_usd_single_leading_decimal_digit():
    assert format_cost_usd(0.5) == "$0.50"

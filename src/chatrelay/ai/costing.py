"""Cost estimation utilities."""

from __future__ import annotations

from dataclasses import dataclass

from ..domain.config import ModelConfig

TOKENS_PER_PRICE_UNIT = 1_000_000


@dataclass(frozen=True, slots=True)
class CostEstimate:
    """Breakdown of an estimated API call cost in USD."""

    input_cost: float
    output_cost: float
    total_cost: float


def estimate_cost(
    model_config: ModelConfig,
    input_tokens: int,
    output_tokens: int,
) -> CostEstimate:
    """Estimate USD cost for a single call from per-million-token prices."""
    input_cost = input_tokens / TOKENS_PER_PRICE_UNIT * model_config.input_cost
    output_cost = output_tokens / TOKENS_PER_PRICE_UNIT * model_config.output_cost
    return CostEstimate(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


def calculate_cost(
    model_config: ModelConfig,
    input_tokens: int,
    output_tokens: int,
) -> float:
    """Total USD cost of a call."""
    return estimate_cost(model_config, input_tokens, output_tokens).total_cost


def format_cost_usd(value: float) -> str:
    """Format a USD cost with adaptive decimal precision.

    Shows at least two significant digits for sub-cent values, e.g.
    ``$0.0012`` rather than ``$0.00``.
    """
    max_scan = 10
    scanned = f"{abs(value):.{max_scan}f}"
    integer_str, decimal_str = scanned.split(".")

    nz_in_int = sum(1 for c in integer_str if c != "0")
    if nz_in_int >= 2:
        return f"${value:.2f}"

    nz_needed = 2 - nz_in_int
    first_decimal_nz_pos = 0
    second_nz_decimal_pos = 0
    nz_count = 0

    for i, c in enumerate(decimal_str, start=1):
        if c != "0":
            nz_count += 1
            if nz_count == 1:
                first_decimal_nz_pos = i
            if nz_count == nz_needed:
                second_nz_decimal_pos = i
                break

    if second_nz_decimal_pos >= 3:
        precision = second_nz_decimal_pos
    elif first_decimal_nz_pos > 0:
        precision = max(2, first_decimal_nz_pos)
    else:
        precision = 2

    return f"${value:.{precision}f}"

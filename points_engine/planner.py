"""
Amount conversion on top of the routing engine.
Combines the direct edge and two-step routes for a concrete point amount.
"""

import math
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

from points_engine.catalog import Catalog
from points_engine.models import Conversion
from points_engine.routing import (
    effective_rate,
    find_direct_conversion,
    find_multi_step_conversions,
)


STATUS_DIRECT = "direct"
STATUS_MULTI_STEP_ONLY = "multi_step_only"
STATUS_NO_PATH = "no_path"


@dataclass(frozen=True)
class ConversionOption:
    """
    One way of moving an amount from source to destination.

    Fields:
    - steps: the conversions used, in order (1 or 2)
    - rate: effective rate of the whole option
    - converted_amount: floor(amount * rate)
    - step_amounts: floored amount after each step
    - dollar_value: estimated value of converted_amount, if known
    - warnings: min/max transfer warnings for the amount
    """
    steps: tuple[Conversion, ...]
    rate: float
    converted_amount: int
    step_amounts: list[int]
    dollar_value: Optional[float] = None
    warnings: list[str] = field(default_factory=list)

    @property
    def is_direct(self) -> bool:
        return len(self.steps) == 1

    @property
    def has_bonus(self) -> bool:
        return any(step.bonus for step in self.steps)


@dataclass(frozen=True)
class ConversionPlan:
    """
    Direct and multi-step options for converting an amount.

    Fields:
    - status: 'direct' | 'multi_step_only' | 'no_path'
    - direct: option built from the direct edge, if any
    - routes: two-step options in engine order
    - best: option with the highest converted amount
    """
    from_id: str
    to_id: str
    amount: float
    status: str
    direct: Optional[ConversionOption] = None
    routes: list[ConversionOption] = field(default_factory=list)
    best: Optional[ConversionOption] = None


def convert_amount(amount: float, rate: float) -> int:
    """
    Convert a point amount at a rate, rounding down.

    Example:
        >>> convert_amount(10000, 1.3)
        13000
    """
    return math.floor(amount * rate)


def step_amounts(amount: float, steps: Sequence[Conversion]) -> list[int]:
    """
    Return the floored amount held after each step of a route.

    Each step converts the previous step's floored result.

    Example:
        >>> step_amounts(1000, [a_to_b_at_1_0, b_to_c_at_0_33])
        [1000, 330]
    """
    amounts = []
    current = amount
    for step in steps:
        current = convert_amount(current, effective_rate(step))
        amounts.append(current)
    return amounts


def transfer_limit_warnings(amount: float, steps: Sequence[Conversion]) -> list[str]:
    """Warn when an amount falls outside a step's min/max transfer bounds."""
    warnings = []
    current = amount
    for step in steps:
        if step.min_amount is not None and current < step.min_amount:
            warnings.append(
                f"{step.from_id} -> {step.to_id}: minimum transfer amount is {step.min_amount:g} points"
            )
        if step.max_amount is not None and current > step.max_amount:
            warnings.append(
                f"{step.from_id} -> {step.to_id}: maximum transfer amount is {step.max_amount:g} points"
            )
        current = convert_amount(current, effective_rate(step))
    return warnings


def estimate_dollar_value(
    catalog: Catalog,
    program_id: str,
    points: float,
    dollar_values: Optional[Mapping[str, float]] = None,
) -> Optional[float]:
    """
    Estimate the USD value of `points` in a program.

    A custom per-program value in `dollar_values` overrides the catalog's.
    Returns None when no positive value is known.
    """
    if dollar_values and program_id in dollar_values:
        per_point = dollar_values[program_id]
    else:
        program = catalog.get_program(program_id)
        per_point = program.dollar_value if program else None
    if not per_point:
        return None
    return points * per_point


def _build_option(
    catalog: Catalog,
    amount: float,
    steps: tuple[Conversion, ...],
    rate: float,
    dollar_values: Optional[Mapping[str, float]],
) -> ConversionOption:
    converted = convert_amount(amount, rate)
    return ConversionOption(
        steps=steps,
        rate=rate,
        converted_amount=converted,
        step_amounts=step_amounts(amount, steps),
        dollar_value=estimate_dollar_value(catalog, steps[-1].to_id, converted, dollar_values),
        warnings=transfer_limit_warnings(amount, steps),
    )


def plan_conversion(
    catalog: Optional[Catalog],
    from_id: str,
    to_id: str,
    amount: float,
    include_multi_step: bool = True,
    dollar_values: Optional[Mapping[str, float]] = None,
) -> ConversionPlan:
    """
    Build every option for converting `amount` points from one program to another.

    Args:
        catalog: Loaded catalog (None yields a 'no_path' plan)
        from_id: Source program id
        to_id: Destination program id
        amount: Points to convert (must be > 0)
        include_multi_step: Whether two-step routes are considered
        dollar_values: Optional custom USD-per-point overrides by program id

    Returns:
        ConversionPlan; `best` prefers the direct option on ties

    Raises:
        ValueError: If amount is not positive and finite, or both programs are the same
    """
    if not math.isfinite(amount) or amount <= 0:
        raise ValueError(f"Amount must be greater than 0. Got: {amount}")
    if from_id == to_id:
        raise ValueError("Please select different programs")

    if catalog is None:
        return ConversionPlan(from_id=from_id, to_id=to_id, amount=amount, status=STATUS_NO_PATH)

    direct_option = None
    direct = find_direct_conversion(catalog, from_id, to_id)
    if direct is not None:
        direct_option = _build_option(catalog, amount, (direct,), effective_rate(direct), dollar_values)

    route_options = []
    if include_multi_step:
        for route in find_multi_step_conversions(catalog, from_id, to_id):
            route_options.append(
                _build_option(catalog, amount, route.steps, route.total_rate, dollar_values)
            )

    if direct_option is not None:
        status = STATUS_DIRECT
    elif route_options:
        status = STATUS_MULTI_STEP_ONLY
    else:
        status = STATUS_NO_PATH

    candidates = ([direct_option] if direct_option else []) + route_options
    best = None
    for option in candidates:
        if best is None or option.converted_amount > best.converted_amount:
            best = option

    return ConversionPlan(
        from_id=from_id,
        to_id=to_id,
        amount=amount,
        status=status,
        direct=direct_option,
        routes=route_options,
        best=best,
    )

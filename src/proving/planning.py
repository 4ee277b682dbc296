"""Tray-level demand and shortfall planning for the next lunch and dinner."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
import math

from .batches import Batch, Stage
from .config import DEFAULT_CONFIG, ProvingConfig
from .transitions import elapsed_hours


@dataclass(frozen=True)
class PlanInputs:
    forecast_lunch: float
    forecast_dinner: float
    safety_pct: float = 0.0
    min_tray_buffer: int = 0

    def __post_init__(self) -> None:
        if self.forecast_lunch < 0 or self.forecast_dinner < 0:
            raise ValueError("Forecasts must be non-negative.")
        if self.safety_pct < 0:
            raise ValueError("Safety percentage must be non-negative.")
        if self.min_tray_buffer < 0:
            raise ValueError("Minimum tray buffer must be non-negative.")


@dataclass(frozen=True)
class DemandPlan:
    demand_lunch: int
    demand_dinner: int
    lunch_shortfall: int
    dinner_shortfall: int
    total_trays_to_start: int
    trays_ready: int
    inbound_ready_by_50h: int


def _units_to_trays(units: int, config: ProvingConfig) -> int:
    return units // config.tray_capacity


def trays_ready(
    batches: Iterable[Batch], config: ProvingConfig = DEFAULT_CONFIG
) -> int:
    units = sum(batch.quantity for batch in batches if batch.stage == Stage.READY)
    return _units_to_trays(units, config)


def inbound_ready_within(
    batches: Iterable[Batch],
    now: datetime,
    config: ProvingConfig = DEFAULT_CONFIG,
    horizon_hours: float | None = None,
) -> int:
    """Trays of proving stock that reach the minimum prove time within the horizon.

    The horizon defaults to the full lead time (defrost plus minimum prove), so
    every batch that is currently proving qualifies.
    """
    horizon = config.lead_time_hours if horizon_hours is None else horizon_hours
    units = sum(
        batch.quantity
        for batch in batches
        if batch.stage == Stage.PROVING
        and elapsed_hours(batch, now) + horizon >= config.min_prove_hours
    )
    return _units_to_trays(units, config)


def tray_demand(
    forecast: float,
    *,
    safety_pct: float,
    min_tray_buffer: int,
    config: ProvingConfig = DEFAULT_CONFIG,
) -> int:
    units = forecast * (1 + safety_pct / 100) + min_tray_buffer * config.tray_capacity
    return math.ceil(units / config.tray_capacity)


def shortfalls(
    *,
    demand_lunch: int,
    demand_dinner: int,
    trays_ready: int,
    inbound_trays: int,
) -> tuple[int, int]:
    """Lunch and dinner shortfalls in trays.

    Dinner only sees ready stock left over after lunch demand. Inbound stock
    counts towards both periods in full.
    """
    lunch = max(0, demand_lunch - trays_ready - inbound_trays)
    leftover_ready = max(0, trays_ready - demand_lunch)
    dinner = max(0, demand_dinner - leftover_ready - inbound_trays)
    return lunch, dinner


def compute_plan(
    batches: Iterable[Batch],
    *,
    forecast_lunch: float,
    forecast_dinner: float,
    safety_pct: float,
    min_tray_buffer: int,
    now: datetime,
    config: ProvingConfig = DEFAULT_CONFIG,
) -> DemandPlan:
    inputs = PlanInputs(
        forecast_lunch=forecast_lunch,
        forecast_dinner=forecast_dinner,
        safety_pct=safety_pct,
        min_tray_buffer=min_tray_buffer,
    )
    return compute_plan_for(batches, inputs, now=now, config=config)


def compute_plan_for(
    batches: Iterable[Batch],
    inputs: PlanInputs,
    *,
    now: datetime,
    config: ProvingConfig = DEFAULT_CONFIG,
) -> DemandPlan:
    snapshot = list(batches)
    ready = trays_ready(snapshot, config)
    inbound = inbound_ready_within(snapshot, now, config)
    demand_lunch = tray_demand(
        inputs.forecast_lunch,
        safety_pct=inputs.safety_pct,
        min_tray_buffer=inputs.min_tray_buffer,
        config=config,
    )
    demand_dinner = tray_demand(
        inputs.forecast_dinner,
        safety_pct=inputs.safety_pct,
        min_tray_buffer=inputs.min_tray_buffer,
        config=config,
    )
    lunch_shortfall, dinner_shortfall = shortfalls(
        demand_lunch=demand_lunch,
        demand_dinner=demand_dinner,
        trays_ready=ready,
        inbound_trays=inbound,
    )
    return DemandPlan(
        demand_lunch=demand_lunch,
        demand_dinner=demand_dinner,
        lunch_shortfall=lunch_shortfall,
        dinner_shortfall=dinner_shortfall,
        total_trays_to_start=lunch_shortfall + dinner_shortfall,
        trays_ready=ready,
        inbound_ready_by_50h=inbound,
    )

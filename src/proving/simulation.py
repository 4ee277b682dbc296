"""Step an inventory through time, planning, releasing and serving each period."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
import logging

from .batches import Stage
from .inventory import ProvingInventory
from .planning import DemandPlan, PlanInputs

logger = logging.getLogger(__name__)

ConsumptionModel = Callable[[int], int]


@dataclass(frozen=True)
class PlanningSnapshot:
    period: int
    now: datetime
    plan: DemandPlan
    trays_released: int
    restock_units: int
    trays_requested: int
    units_consumed: int
    units_unfulfilled: int
    frozen_units: int
    defrosting_units: int
    proving_units: int
    ready_units: int
    expired_units: int


@dataclass(frozen=True)
class PlanningSummary:
    total_units_requested: int
    total_units_consumed: int
    total_units_unfulfilled: int
    fill_rate: float
    total_trays_released: int
    total_restock_units: int
    ending_expired_units: int


@dataclass(frozen=True)
class PlanningSimulationResult:
    snapshots: Sequence[PlanningSnapshot]
    summary: PlanningSummary

    def to_dataframe(self):
        """One row per period with the plan fields flattened in."""
        import pandas as pd

        records = []
        for snapshot in self.snapshots:
            record = {
                key: value
                for key, value in asdict(snapshot).items()
                if key != "plan"
            }
            record.update(asdict(snapshot.plan))
            records.append(record)
        return pd.DataFrame(records)


def _normalize_consumption(
    consumption: Iterable[int] | ConsumptionModel,
) -> ConsumptionModel:
    if callable(consumption):
        return consumption

    consumption_list = list(consumption)

    def consumption_model(period: int) -> int:
        if period < 0 or period >= len(consumption_list):
            raise IndexError("Consumption period out of range.")
        return consumption_list[period]

    return consumption_model


def simulate_planning(
    inventory: ProvingInventory,
    *,
    start: datetime,
    periods: int,
    inputs: PlanInputs,
    consumption: Iterable[int] | ConsumptionModel,
    step_hours: float = 1.0,
    release_every: int | None = None,
    auto_advance_defrost: bool = True,
) -> PlanningSimulationResult:
    """Run ``periods`` planning cycles against ``inventory``.

    Each period advances stages, moves finished defrosts into proving, starts
    the recommended trays on every ``release_every``-th period and then serves
    ``consumption(period)`` trays from the ready pool.
    """
    if periods <= 0:
        raise ValueError("Periods must be positive.")
    if step_hours <= 0:
        raise ValueError("Step hours must be positive.")
    if release_every is not None and release_every <= 0:
        raise ValueError("Release interval must be positive.")

    consumption_model = _normalize_consumption(consumption)
    snapshots: list[PlanningSnapshot] = []

    for period in range(periods):
        now = start + timedelta(hours=period * step_hours)
        plan = inventory.planning_cycle(now, inputs)

        if auto_advance_defrost:
            for batch in inventory.snapshot():
                if batch.stage != Stage.DEFROSTING:
                    continue
                if inventory.is_defrost_complete(batch.id, now):
                    inventory.advance_defrost_to_prove(batch.id, now=now)

        trays_released = 0
        restock_units = 0
        if (
            release_every is not None
            and period % release_every == 0
            and plan.total_trays_to_start > 0
        ):
            release = inventory.release_from_frozen(plan.total_trays_to_start, now=now)
            trays_released = plan.total_trays_to_start
            restock_units = release.restock_units

        trays_requested = max(0, consumption_model(period))
        consumed = inventory.consume_ready(trays_requested)

        units = inventory.summary(now).units_by_stage
        snapshots.append(
            PlanningSnapshot(
                period=period,
                now=now,
                plan=plan,
                trays_released=trays_released,
                restock_units=restock_units,
                trays_requested=trays_requested,
                units_consumed=consumed.units_consumed,
                units_unfulfilled=consumed.units_unfulfilled,
                frozen_units=units[Stage.FROZEN],
                defrosting_units=units[Stage.DEFROSTING],
                proving_units=units[Stage.PROVING],
                ready_units=units[Stage.READY],
                expired_units=units[Stage.EXPIRED],
            )
        )

    total_requested = sum(
        snapshot.trays_requested for snapshot in snapshots
    ) * inventory.config.tray_capacity
    total_consumed = sum(snapshot.units_consumed for snapshot in snapshots)
    total_unfulfilled = sum(snapshot.units_unfulfilled for snapshot in snapshots)
    fill_rate = total_consumed / total_requested if total_requested else 1.0
    summary = PlanningSummary(
        total_units_requested=total_requested,
        total_units_consumed=total_consumed,
        total_units_unfulfilled=total_unfulfilled,
        fill_rate=fill_rate,
        total_trays_released=sum(snapshot.trays_released for snapshot in snapshots),
        total_restock_units=sum(snapshot.restock_units for snapshot in snapshots),
        ending_expired_units=snapshots[-1].expired_units,
    )
    logger.info(
        "Simulated %d periods: fill rate %.3f, %d trays released",
        periods,
        fill_rate,
        summary.total_trays_released,
    )
    return PlanningSimulationResult(snapshots=snapshots, summary=summary)

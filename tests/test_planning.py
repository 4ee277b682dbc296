from datetime import datetime, timedelta

import pytest

from proving import (
    Batch,
    PlanInputs,
    ProvingConfig,
    ProvingInventory,
    Stage,
    compute_plan,
    inbound_ready_within,
    tray_demand,
    trays_ready,
)

NOW = datetime(2024, 5, 1, 12, 0)


def _hours_ago(hours):
    return NOW - timedelta(hours=hours)


def _plan(batches, **overrides):
    inputs = {
        "forecast_lunch": 180,
        "forecast_dinner": 220,
        "safety_pct": 10,
        "min_tray_buffer": 2,
    }
    inputs.update(overrides)
    return compute_plan(batches, now=NOW, **inputs)


def test_plan_without_stock_starts_full_demand():
    plan = _plan([])

    assert plan.demand_lunch == 19
    assert plan.demand_dinner == 23
    assert plan.lunch_shortfall == 19
    assert plan.dinner_shortfall == 23
    assert plan.total_trays_to_start == 42
    assert plan.trays_ready == 0
    assert plan.inbound_ready_by_50h == 0


def test_tray_demand_adds_safety_and_buffer():
    assert tray_demand(180, safety_pct=10, min_tray_buffer=2) == 19
    assert tray_demand(0, safety_pct=10, min_tray_buffer=0) == 0
    assert tray_demand(13, safety_pct=0, min_tray_buffer=0) == 2
    config = ProvingConfig(tray_capacity=10)
    assert tray_demand(100, safety_pct=0, min_tray_buffer=1, config=config) == 11


def test_trays_ready_floors_partial_trays():
    batches = [
        Batch("R1", 120, Stage.READY, _hours_ago(60)),
        Batch("R2", 11, Stage.READY, _hours_ago(50)),
        Batch("P1", 500, Stage.PROVING, _hours_ago(10)),
    ]

    assert trays_ready(batches) == 10


def test_inbound_counts_every_proving_batch_within_lead_time():
    batches = [
        Batch("P46", 24, Stage.PROVING, _hours_ago(46)),
        Batch("P0", 12, Stage.PROVING, NOW),
        Batch("D1", 48, Stage.DEFROSTING, _hours_ago(1)),
        Batch("R1", 60, Stage.READY, _hours_ago(50)),
    ]

    assert inbound_ready_within(batches, NOW) == 3
    assert inbound_ready_within(batches, NOW, horizon_hours=10) == 2


def test_dinner_sees_ready_left_after_lunch_demand():
    batches = [Batch("R1", 300, Stage.READY, _hours_ago(50))]

    plan = _plan(batches)

    assert plan.trays_ready == 25
    assert plan.lunch_shortfall == 0
    assert plan.dinner_shortfall == 17
    assert plan.total_trays_to_start == 17


def test_inbound_supply_counts_for_both_periods():
    batches = [
        Batch("R1", 300, Stage.READY, _hours_ago(50)),
        Batch("P1", 60, Stage.PROVING, _hours_ago(5)),
    ]

    plan = _plan(batches)

    assert plan.inbound_ready_by_50h == 5
    assert plan.lunch_shortfall == 0
    assert plan.dinner_shortfall == 12


def test_plan_inputs_reject_negative_values():
    with pytest.raises(ValueError, match="Forecasts"):
        PlanInputs(forecast_lunch=-1, forecast_dinner=0)
    with pytest.raises(ValueError, match="Safety"):
        _plan([], safety_pct=-5)
    with pytest.raises(ValueError, match="buffer"):
        PlanInputs(forecast_lunch=1, forecast_dinner=1, min_tray_buffer=-1)


def test_planning_cycle_advances_stages_before_planning():
    inventory = ProvingInventory()
    inventory.initialize(
        [
            Batch("R1", 120, Stage.READY, _hours_ago(60)),
            Batch("P1", 84, Stage.PROVING, _hours_ago(20)),
        ]
    )
    inputs = PlanInputs(forecast_lunch=180, forecast_dinner=220, safety_pct=10, min_tray_buffer=2)

    plan = inventory.planning_cycle(NOW + timedelta(hours=30), inputs)

    assert plan.trays_ready == 17
    assert plan.inbound_ready_by_50h == 0
    assert plan.lunch_shortfall == 2
    assert plan.dinner_shortfall == 23
    assert inventory.get("P1").stage == Stage.READY

from datetime import datetime, timedelta

import pytest

from proving import (
    Batch,
    PlanInputs,
    ProvingInventory,
    Stage,
    default_seed_batches,
    simulate_planning,
)

NOW = datetime(2024, 5, 1, 12, 0)
INPUTS = PlanInputs(
    forecast_lunch=180, forecast_dinner=220, safety_pct=10, min_tray_buffer=2
)


def _seeded_inventory():
    inventory = ProvingInventory()
    inventory.initialize(default_seed_batches(NOW))
    return inventory


def test_simulation_moves_finished_defrosts_into_proving():
    inventory = _seeded_inventory()

    result = simulate_planning(
        inventory,
        start=NOW,
        periods=4,
        inputs=INPUTS,
        consumption=[0, 0, 0, 0],
    )

    first, second = result.snapshots[0], result.snapshots[1]
    assert first.defrosting_units == 48
    assert first.plan.total_trays_to_start == 18
    assert second.defrosting_units == 0
    assert second.proving_units == 132
    assert inventory.get("B-1003").stage == Stage.PROVING
    assert result.summary.total_trays_released == 0
    assert result.summary.fill_rate == 1.0


def test_simulation_releases_recommended_trays():
    inventory = _seeded_inventory()

    result = simulate_planning(
        inventory,
        start=NOW,
        periods=1,
        inputs=INPUTS,
        consumption=[0],
        release_every=24,
    )

    snapshot = result.snapshots[0]
    assert snapshot.trays_released == 18
    assert snapshot.frozen_units == 0
    assert snapshot.defrosting_units == 48 + 18 * 12
    assert snapshot.restock_units == 0
    assert result.summary.total_trays_released == 18


def test_simulation_tracks_unfulfilled_consumption():
    inventory = _seeded_inventory()

    result = simulate_planning(
        inventory,
        start=NOW,
        periods=3,
        inputs=INPUTS,
        consumption=[5, 5, 5],
        auto_advance_defrost=False,
    )

    assert [snapshot.ready_units for snapshot in result.snapshots] == [60, 0, 0]
    assert [snapshot.units_unfulfilled for snapshot in result.snapshots] == [0, 0, 60]
    summary = result.summary
    assert summary.total_units_requested == 180
    assert summary.total_units_consumed == 120
    assert summary.total_units_unfulfilled == 60
    assert summary.fill_rate == pytest.approx(120 / 180)
    assert result.snapshots[-1].defrosting_units == 48


def test_simulation_accepts_consumption_model():
    inventory = _seeded_inventory()

    result = simulate_planning(
        inventory,
        start=NOW,
        periods=2,
        step_hours=12,
        inputs=INPUTS,
        consumption=lambda period: 1,
    )

    assert [snapshot.now.hour for snapshot in result.snapshots] == [12, 0]
    assert result.summary.total_units_consumed == 24


def test_simulation_validates_inputs():
    inventory = _seeded_inventory()

    with pytest.raises(ValueError, match="Periods must be positive"):
        simulate_planning(inventory, start=NOW, periods=0, inputs=INPUTS, consumption=[])
    with pytest.raises(ValueError, match="Release interval"):
        simulate_planning(
            inventory,
            start=NOW,
            periods=1,
            inputs=INPUTS,
            consumption=[0],
            release_every=0,
        )
    with pytest.raises(IndexError, match="Consumption period out of range"):
        simulate_planning(inventory, start=NOW, periods=2, inputs=INPUTS, consumption=[0])


def test_simulation_result_to_dataframe():
    pytest.importorskip("pandas")
    inventory = _seeded_inventory()

    result = simulate_planning(
        inventory, start=NOW, periods=3, inputs=INPUTS, consumption=[1, 1, 1]
    )
    df = result.to_dataframe()

    assert len(df) == 3
    assert "plan" not in df.columns
    assert df["demand_lunch"].tolist() == [19, 19, 19]
    assert df["ready_units"].tolist() == [108, 96, 84]


def test_plotting_helpers_draw_board_and_simulation():
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    from proving.plotting import plot_planning_simulation, plot_proving_board

    inventory = _seeded_inventory()
    ax = plot_proving_board(inventory, now=NOW)
    assert ax.get_title() == "Proving Board"
    assert len(ax.patches) == 10
    heights = [patch.get_height() for patch in ax.patches]
    assert sum(heights) == 204

    result = simulate_planning(
        inventory, start=NOW, periods=3, inputs=INPUTS, consumption=[0, 0, 0]
    )
    ax = plot_planning_simulation(result, title="Three hours")
    assert ax.get_title() == "Three hours"
    assert len(ax.get_lines()) == 5
    plt.close("all")


def test_proving_board_plot_leaves_out_future_batches():
    matplotlib = pytest.importorskip("matplotlib")
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    from proving.plotting import plot_proving_board

    batches = [
        Batch("P", 24, Stage.PROVING, NOW + timedelta(hours=5)),
        Batch("R", 12, Stage.READY, NOW - timedelta(hours=50)),
    ]
    ax = plot_proving_board(batches, now=NOW)

    assert sum(patch.get_height() for patch in ax.patches) == 12
    plt.close("all")

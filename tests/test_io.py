import csv
from datetime import datetime

import pytest

from proving import (
    Batch,
    ProvingInventory,
    Stage,
    batches_from_dataframe,
    batches_to_dataframe,
    batches_to_dicts,
    compute_plan,
    default_seed_batches,
    iter_seed_batches_from_csv,
    plan_to_dict,
    proving_board_to_dataframe,
    write_batches_to_csv,
)

NOW = datetime(2024, 5, 1, 12, 0)


def _write_csv(path, header, rows):
    with open(path, "w", newline="") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerows(rows)


def test_default_seed_batches_cover_each_stage():
    seeds = default_seed_batches(NOW)

    assert [(batch.id, batch.quantity, batch.stage) for batch in seeds] == [
        ("B-1001", 120, Stage.READY),
        ("B-1002", 84, Stage.PROVING),
        ("B-1003", 48, Stage.DEFROSTING),
        ("B-1004", 140, Stage.FROZEN),
    ]
    assert seeds[0].stage_entered_at == datetime(2024, 4, 29, 0, 0)
    assert seeds[2].stage_entered_at == datetime(2024, 5, 1, 10, 48)
    assert seeds[3].stage_entered_at is None


def test_csv_written_batches_load_back_as_seeds(tmp_path):
    path = tmp_path / "batches.csv"
    seeds = default_seed_batches(NOW)

    write_batches_to_csv(str(path), seeds)
    loaded = list(iter_seed_batches_from_csv(str(path)))

    assert loaded == seeds
    with open(path, newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert rows[3]["stage_entered_at"] == ""
    assert rows[0]["stage"] == "ready"


def test_seed_csv_accepts_custom_columns_and_uppercase_stages(tmp_path):
    path = tmp_path / "seed.csv"
    _write_csv(
        path,
        ["batch", "balls", "state", "started"],
        [
            ["X-1", 36, "PROVING", "2024-05-01T00:00:00"],
            ["X-2", 70, "FROZEN", ""],
        ],
    )

    loaded = list(
        iter_seed_batches_from_csv(
            str(path),
            id_field="batch",
            quantity_field="balls",
            stage_field="state",
            stage_entered_at_field="started",
        )
    )

    inventory = ProvingInventory()
    inventory.initialize(loaded)
    assert [batch.stage for batch in inventory.snapshot()] == [
        Stage.PROVING,
        Stage.FROZEN,
    ]
    assert loaded[0].stage_entered_at == datetime(2024, 5, 1, 0, 0)


def test_seed_csv_missing_columns_warns_and_raises(tmp_path):
    path = tmp_path / "seed.csv"
    _write_csv(path, ["id", "quantity"], [["A", 10]])

    with pytest.warns(UserWarning, match="Missing required columns"):
        with pytest.raises(ValueError, match="missing required columns: stage"):
            list(iter_seed_batches_from_csv(str(path)))


def test_seed_csv_warns_when_timed_batch_has_no_timestamp(tmp_path):
    path = tmp_path / "seed.csv"
    _write_csv(
        path,
        ["id", "quantity", "stage", "stage_entered_at"],
        [["A", 12, "ready", ""]],
    )

    with pytest.warns(UserWarning, match="age counts as zero"):
        loaded = list(iter_seed_batches_from_csv(str(path)))

    assert loaded == [Batch("A", 12, Stage.READY)]


def test_batches_to_dicts_serializes_stage_and_timestamp():
    entries = batches_to_dicts(default_seed_batches(NOW)[1:2])

    assert entries == [
        {
            "id": "B-1002",
            "quantity": 84,
            "stage": "proving",
            "stage_entered_at": "2024-04-30T16:00:00",
        }
    ]


def test_batches_dataframe_round_trip():
    pytest.importorskip("pandas")
    seeds = default_seed_batches(NOW)

    df = batches_to_dataframe(seeds)

    assert list(df.columns) == ["id", "quantity", "stage", "stage_entered_at"]
    assert df["quantity"].sum() == 392
    assert batches_from_dataframe(df) == seeds


def test_batches_polars_dataframe_round_trip():
    pytest.importorskip("polars")
    seeds = default_seed_batches(NOW)

    df = batches_to_dataframe(seeds, library="polars")

    assert df.columns == ["id", "quantity", "stage", "stage_entered_at"]
    assert df["quantity"].sum() == 392
    assert df["stage_entered_at"].to_list()[3] is None
    assert batches_from_dataframe(df) == seeds


def test_batches_from_dataframe_requires_columns():
    pd = pytest.importorskip("pandas")
    df = pd.DataFrame({"id": ["A"], "stage": ["frozen"]})

    with pytest.warns(UserWarning, match="quantity"):
        with pytest.raises(ValueError, match="batch DataFrame"):
            batches_from_dataframe(df)


def test_dataframe_export_rejects_unknown_library():
    with pytest.raises(ValueError, match="library must be"):
        batches_to_dataframe([], library="arrow")


def test_proving_board_dataframe_lists_timed_batches():
    pytest.importorskip("pandas")
    inventory = ProvingInventory()
    inventory.initialize(default_seed_batches(NOW))

    df = proving_board_to_dataframe(inventory.summary(NOW))

    assert df["batch_id"].tolist() == ["B-1002", "B-1001"]
    assert df["bucket"].tolist() == ["0-24h", "48-72h"]
    assert df["badge"].tolist() == ["Proving", "Ready"]


def test_plan_to_dict_uses_field_names():
    plan = compute_plan(
        [],
        forecast_lunch=180,
        forecast_dinner=220,
        safety_pct=10,
        min_tray_buffer=2,
        now=NOW,
    )

    assert plan_to_dict(plan) == {
        "demand_lunch": 19,
        "demand_dinner": 23,
        "lunch_shortfall": 19,
        "dinner_shortfall": 23,
        "total_trays_to_start": 42,
        "trays_ready": 0,
        "inbound_ready_by_50h": 0,
    }

"""Helpers for loading seed batches and exporting inventory snapshots."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
import csv
from dataclasses import asdict
from datetime import datetime, timedelta
import warnings

from .batches import Batch, Stage, parse_timestamp
from .inventory import InventorySummary
from .planning import DemandPlan

BATCH_FIELDS = ["id", "quantity", "stage", "stage_entered_at"]
BOARD_FIELDS = [
    "batch_id",
    "quantity",
    "stage",
    "elapsed_hours",
    "bucket",
    "badge",
    "age_label",
]


def default_seed_batches(now: datetime) -> list[Batch]:
    """The demo inventory: one batch in each manual or timed stage."""
    return [
        Batch(
            id="B-1001",
            quantity=120,
            stage=Stage.READY,
            stage_entered_at=now - timedelta(hours=60),
        ),
        Batch(
            id="B-1002",
            quantity=84,
            stage=Stage.PROVING,
            stage_entered_at=now - timedelta(hours=20),
        ),
        Batch(
            id="B-1003",
            quantity=48,
            stage=Stage.DEFROSTING,
            stage_entered_at=now - timedelta(hours=1.2),
        ),
        Batch(id="B-1004", quantity=140, stage=Stage.FROZEN),
    ]


def batches_to_dicts(
    batches: Iterable[Batch],
) -> list[dict[str, str | int | None]]:
    """Convert batches into dictionaries suitable for DataFrame or CSV use."""
    return [
        {
            "id": batch.id,
            "quantity": batch.quantity,
            "stage": batch.stage.value,
            "stage_entered_at": (
                batch.stage_entered_at.isoformat()
                if batch.stage_entered_at is not None
                else None
            ),
        }
        for batch in batches
    ]


def batches_to_dataframe(
    batches: Iterable[Batch],
    *,
    library: str = "pandas",
):
    """Convert batches into a pandas or polars DataFrame."""
    return _to_dataframe(batches_to_dicts(batches), BATCH_FIELDS, library=library)


def proving_board_to_dataframe(
    summary: InventorySummary,
    *,
    library: str = "pandas",
):
    data = [
        {
            "batch_id": entry.batch_id,
            "quantity": entry.quantity,
            "stage": entry.stage.value,
            "elapsed_hours": entry.elapsed_hours,
            "bucket": entry.bucket.label,
            "badge": entry.badge.value,
            "age_label": entry.age_label,
        }
        for entry in summary.proving_board
    ]
    return _to_dataframe(data, BOARD_FIELDS, library=library)


def batches_from_dataframe(
    df,
    *,
    id_field: str = "id",
    quantity_field: str = "quantity",
    stage_field: str = "stage",
    stage_entered_at_field: str = "stage_entered_at",
) -> list[Batch]:
    """Build batches from a pandas or polars DataFrame."""
    records = _rows_from_dataframe(df)
    fieldnames = list(df.columns)
    _validate_required_columns(
        fieldnames,
        required_fields=[id_field, quantity_field, stage_field],
        context="batch DataFrame",
    )
    batches: list[Batch] = []
    for record in records:
        entered = record.get(stage_entered_at_field)
        batches.append(
            Batch(
                id=str(record[id_field]),
                quantity=int(record[quantity_field]),
                stage=Stage.parse(str(record[stage_field])),
                stage_entered_at=parse_timestamp(entered),
            )
        )
    return batches


def write_batches_to_csv(path: str, batches: Iterable[Batch]) -> None:
    with open(path, "w", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=BATCH_FIELDS)
        writer.writeheader()
        for entry in batches_to_dicts(batches):
            if entry["stage_entered_at"] is None:
                entry["stage_entered_at"] = ""
            writer.writerow(entry)


def iter_seed_batches_from_csv(
    path: str,
    *,
    id_field: str = "id",
    quantity_field: str = "quantity",
    stage_field: str = "stage",
    stage_entered_at_field: str = "stage_entered_at",
) -> Iterator[Batch]:
    with open(path, newline="") as handle:
        reader = csv.DictReader(handle)
        _validate_required_columns(
            reader.fieldnames,
            required_fields=[id_field, quantity_field, stage_field],
            context="seed batch CSV",
        )
        for row in reader:
            stage = Stage.parse(row[stage_field])
            entered = parse_timestamp(row.get(stage_entered_at_field, ""))
            if stage in (Stage.PROVING, Stage.READY) and entered is None:
                warnings.warn(
                    f"Batch {row[id_field]!r} is {stage.value} without a "
                    f"{stage_entered_at_field}; its age counts as zero.",
                    stacklevel=2,
                )
            yield Batch(
                id=row[id_field],
                quantity=int(row[quantity_field]),
                stage=stage,
                stage_entered_at=entered,
            )


def plan_to_dict(plan: DemandPlan) -> dict[str, int]:
    return asdict(plan)


def _to_dataframe(data: list[dict[str, object]], columns: list[str], *, library: str):
    if library == "pandas":
        try:
            import pandas as pd  # type: ignore
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(
                "pandas is required for DataFrame export (library='pandas')."
            ) from exc
        return pd.DataFrame(data, columns=columns)
    if library == "polars":
        try:
            import polars as pl  # type: ignore
        except ModuleNotFoundError as exc:
            raise ModuleNotFoundError(
                "polars is required for DataFrame export (library='polars')."
            ) from exc
        return pl.DataFrame(data, schema=columns)
    raise ValueError("library must be 'pandas' or 'polars'.")


def _validate_required_columns(
    fieldnames: Iterable[str] | None,
    *,
    required_fields: Iterable[str],
    context: str,
) -> None:
    if not fieldnames:
        warnings.warn(f"Missing header row for {context}.", stacklevel=2)
        raise ValueError(f"{context} is missing a header row.")
    field_set = set(fieldnames)
    missing_required = [field for field in required_fields if field not in field_set]
    if missing_required:
        missing_display = ", ".join(missing_required)
        warnings.warn(
            f"Missing required columns for {context}: {missing_display}.",
            stacklevel=2,
        )
        raise ValueError(
            f"{context} is missing required columns: {missing_display}."
        )


def _rows_from_dataframe(df) -> list[dict[str, object]]:
    if hasattr(df, "to_dicts"):
        return df.to_dicts()  # type: ignore[no-any-return]
    if hasattr(df, "to_dict"):
        return df.to_dict(orient="records")  # type: ignore[no-any-return]
    raise TypeError("df must be a pandas or polars DataFrame.")

"""Plotting helpers for the proving board and planning simulations."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

import matplotlib.pyplot as plt
import pandas as pd

from .batches import Batch, Stage
from .config import DEFAULT_CONFIG, ProvingConfig
from .inventory import ProvingInventory
from .simulation import PlanningSimulationResult
from .transitions import AGE_BUCKETS, age_bucket, elapsed_hours

_STAGE_COLORS = {
    Stage.FROZEN: "tab:blue",
    Stage.DEFROSTING: "tab:cyan",
    Stage.PROVING: "tab:orange",
    Stage.READY: "tab:green",
    Stage.EXPIRED: "tab:red",
}


def _board_frame(batches: Iterable[Batch], now: datetime) -> pd.DataFrame:
    records = [
        {
            "bucket": age_bucket(elapsed_hours(batch, now)).label,
            "stage": batch.stage.value,
            "quantity": batch.quantity,
        }
        for batch in batches
        if batch.stage in (Stage.PROVING, Stage.READY)
        and batch.stage_entered_at is not None
        and elapsed_hours(batch, now) >= 0
    ]
    labels = [bucket.label for bucket in AGE_BUCKETS]
    columns = [Stage.PROVING.value, Stage.READY.value]
    if not records:
        return pd.DataFrame(0, index=labels, columns=columns)
    frame = pd.DataFrame(records).pivot_table(
        index="bucket",
        columns="stage",
        values="quantity",
        aggfunc="sum",
        fill_value=0,
    )
    return frame.reindex(index=labels, columns=columns, fill_value=0)


def plot_proving_board(
    source: ProvingInventory | Iterable[Batch],
    *,
    now: datetime,
    config: ProvingConfig | None = None,
    ax: plt.Axes | None = None,
    title: str | None = None,
) -> plt.Axes:
    """Stacked bars of proving and ready units per age bucket."""
    if isinstance(source, ProvingInventory):
        batches = source.snapshot()
        config = config or source.config
    else:
        batches = tuple(source)
    config = config or DEFAULT_CONFIG
    frame = _board_frame(batches, now)
    if ax is None:
        _, ax = plt.subplots(figsize=(8, 4))
    bottom = pd.Series(0, index=frame.index, dtype=float)
    for stage in (Stage.PROVING, Stage.READY):
        values = frame[stage.value].astype(float)
        ax.bar(
            frame.index,
            values,
            bottom=bottom,
            color=_STAGE_COLORS[stage],
            label=stage.value.capitalize(),
        )
        bottom = bottom + values
    ax.axhline(
        config.tray_capacity,
        color="grey",
        linestyle=":",
        linewidth=1,
        label="One tray",
    )
    ax.set_xlabel("Time since proving started")
    ax.set_ylabel("Units")
    ax.set_title(title or "Proving Board")
    ax.legend()
    return ax


def plot_planning_simulation(
    result: PlanningSimulationResult,
    *,
    ax: plt.Axes | None = None,
    title: str | None = None,
) -> plt.Axes:
    """Units per stage over the simulated periods, with unmet demand as bars."""
    frame = result.to_dataframe()
    if ax is None:
        _, ax = plt.subplots(figsize=(10, 4))
    if frame.empty:
        return ax
    for stage in Stage:
        column = f"{stage.value}_units"
        ax.plot(
            frame["now"],
            frame[column],
            color=_STAGE_COLORS[stage],
            label=stage.value.capitalize(),
        )
    unmet = frame.loc[frame["units_unfulfilled"] > 0]
    if not unmet.empty:
        ax.bar(
            unmet["now"],
            unmet["units_unfulfilled"],
            color="tab:red",
            alpha=0.35,
            width=0.03,
            label="Unfulfilled",
        )
    ax.set_xlabel("Time")
    ax.set_ylabel("Units")
    ax.set_title(title or "Planning Simulation")
    ax.legend()
    return ax

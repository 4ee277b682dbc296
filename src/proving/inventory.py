"""Thread-safe facade over the store, transition, allocation and planning engines."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
import logging
import math
import threading
from typing import Any

from . import allocation, planning, transitions
from .allocation import ConsumeResult, ReleaseResult
from .batches import (
    Batch,
    BatchStore,
    IdGenerator,
    SequentialIdGenerator,
    Stage,
    parse_timestamp,
)
from .config import DEFAULT_CONFIG, ProvingConfig
from .planning import DemandPlan, PlanInputs
from .transitions import AgeBadge, AgeBucket, StageTransition

logger = logging.getLogger(__name__)

SeedBatch = Batch | Mapping[str, Any]


@dataclass(frozen=True)
class ProvingBoardEntry:
    batch_id: str
    quantity: int
    stage: Stage
    elapsed_hours: float
    bucket: AgeBucket
    badge: AgeBadge
    age_label: str


@dataclass(frozen=True)
class InventorySummary:
    units_by_stage: Mapping[Stage, int]
    trays_ready: int
    frozen_boxes: int
    expired_batches: int
    ageing_fast: int
    ready_units_by_bucket: Mapping[AgeBucket, int]
    proving_board: tuple[ProvingBoardEntry, ...]


def _coerce_seed(seed: SeedBatch) -> Batch:
    if isinstance(seed, Batch):
        return seed
    return Batch(
        id=str(seed["id"]),
        quantity=seed["quantity"],
        stage=seed["stage"],
        stage_entered_at=parse_timestamp(seed.get("stage_entered_at")),
    )


class ProvingInventory:
    """Single-writer inventory of dough batches.

    Every public method holds one lock for its whole read-compute-write cycle,
    so calls from several threads are serialized. The inventory never reads a
    clock; each time-dependent call takes ``now`` explicitly.
    """

    def __init__(
        self,
        config: ProvingConfig | None = None,
        *,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self.config = config or DEFAULT_CONFIG
        self._id_generator = id_generator or SequentialIdGenerator()
        self._store = BatchStore(id_generator=self._id_generator)
        self._lock = threading.Lock()

    def initialize(self, seed_batches: Iterable[SeedBatch]) -> None:
        """Replace the current contents with ``seed_batches``.

        Zero-quantity seeds are dropped and seed ids must be unique.
        """
        batches = [_coerce_seed(seed) for seed in seed_batches]
        seen: set[str] = set()
        for batch in batches:
            if batch.id in seen:
                raise ValueError(f"Duplicate seed batch id {batch.id!r}.")
            seen.add(batch.id)
        kept = []
        for batch in batches:
            if batch.quantity == 0:
                logger.debug("Dropping empty seed batch %s", batch.id)
                continue
            kept.append(batch)
        with self._lock:
            self._store = BatchStore(kept, id_generator=self._id_generator)
            logger.info("Initialized inventory with %d batches", len(self._store))

    def tick(self, now: datetime) -> list[StageTransition]:
        with self._lock:
            return transitions.advance_stages(self._store, now, self.config)

    def snapshot(self) -> tuple[Batch, ...]:
        with self._lock:
            return self._store.batches()

    def get(self, batch_id: str) -> Batch | None:
        with self._lock:
            return self._store.get(batch_id)

    def release_from_frozen(self, trays: int, *, now: datetime) -> ReleaseResult:
        with self._lock:
            return allocation.release_from_frozen(
                self._store, trays, now=now, config=self.config
            )

    def consume_ready(self, trays: int) -> ConsumeResult:
        with self._lock:
            return allocation.consume_ready(self._store, trays, config=self.config)

    def advance_defrost_to_prove(self, batch_id: str, *, now: datetime) -> None:
        with self._lock:
            allocation.advance_defrost_to_prove(self._store, batch_id, now=now)

    def discard_expired(self) -> list[str]:
        with self._lock:
            return allocation.discard_expired(self._store)

    def is_defrost_complete(self, batch_id: str, now: datetime) -> bool:
        with self._lock:
            batch = self._store.live(batch_id)
            if batch is None:
                return False
            return transitions.is_defrost_complete(batch, now, self.config)

    def compute_plan(
        self,
        forecast_lunch: float,
        forecast_dinner: float,
        safety_pct: float,
        min_tray_buffer: int,
        now: datetime,
    ) -> DemandPlan:
        with self._lock:
            return planning.compute_plan(
                self._store.live_batches(),
                forecast_lunch=forecast_lunch,
                forecast_dinner=forecast_dinner,
                safety_pct=safety_pct,
                min_tray_buffer=min_tray_buffer,
                now=now,
                config=self.config,
            )

    def planning_cycle(self, now: datetime, inputs: PlanInputs) -> DemandPlan:
        """Advance stages to ``now`` and plan from the result in one step."""
        with self._lock:
            transitions.advance_stages(self._store, now, self.config)
            return planning.compute_plan_for(
                self._store.live_batches(), inputs, now=now, config=self.config
            )

    def summary(self, now: datetime) -> InventorySummary:
        with self._lock:
            batches = self._store.batches()
        config = self.config
        units_by_stage = {stage: 0 for stage in Stage}
        for batch in batches:
            units_by_stage[batch.stage] += batch.quantity

        ready = [batch for batch in batches if batch.stage == Stage.READY]
        proving = [batch for batch in batches if batch.stage == Stage.PROVING]
        ageing_fast = sum(
            1
            for batch in proving
            if transitions.elapsed_hours(batch, now) > config.warn_hours
        )
        board: list[ProvingBoardEntry] = []
        for batch in proving + ready:
            if batch.stage_entered_at is None:
                continue
            hours = transitions.elapsed_hours(batch, now)
            if hours < 0:
                continue
            board.append(
                ProvingBoardEntry(
                    batch_id=batch.id,
                    quantity=batch.quantity,
                    stage=batch.stage,
                    elapsed_hours=hours,
                    bucket=transitions.age_bucket(hours),
                    badge=transitions.age_badge(hours, config),
                    age_label=transitions.format_age(hours),
                )
            )
        return InventorySummary(
            units_by_stage=units_by_stage,
            trays_ready=planning.trays_ready(batches, config),
            frozen_boxes=math.ceil(units_by_stage[Stage.FROZEN] / config.box_size),
            expired_batches=sum(1 for batch in batches if batch.stage == Stage.EXPIRED),
            ageing_fast=ageing_fast,
            ready_units_by_bucket=transitions.quantity_by_bucket(ready, now),
            proving_board=tuple(board),
        )

"""FIFO release from the freezer and consumption from the ready pool."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
import numbers

from .batches import BatchStore, Stage
from .config import DEFAULT_CONFIG, ProvingConfig
from .errors import (
    BatchNotFoundError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransitionError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReleaseResult:
    units_requested: int = 0
    units_from_stock: int = 0
    units_granted_from_shortfall: int = 0
    restock_units: int = 0
    created_ids: tuple[str, ...] = ()
    purged_ids: tuple[str, ...] = ()

    @property
    def units_released(self) -> int:
        return self.units_from_stock + self.units_granted_from_shortfall


@dataclass(frozen=True)
class ConsumeResult:
    units_requested: int = 0
    units_consumed: int = 0
    units_unfulfilled: int = 0
    purged_ids: tuple[str, ...] = ()


def validate_trays(trays: object) -> int:
    if isinstance(trays, bool) or not isinstance(trays, numbers.Integral):
        raise InvalidQuantityError(f"Tray count must be an integer, got {trays!r}.")
    return int(trays)


def release_from_frozen(
    store: BatchStore,
    trays: int,
    *,
    now: datetime,
    config: ProvingConfig = DEFAULT_CONFIG,
) -> ReleaseResult:
    """Move ``trays`` worth of units from frozen stock into defrosting.

    Frozen batches are drained in store order and each draw becomes its own
    defrosting batch. When the freezer runs dry the unmet units are still
    released, and a frozen restock batch of ``box_size - unmet`` units is
    recorded; with ``strict_frozen_stock`` the release is refused instead.
    """
    trays = validate_trays(trays)
    if trays <= 0:
        logger.debug("Ignoring release of %d trays", trays)
        return ReleaseResult()

    units_needed = trays * config.tray_capacity
    frozen = store.live_in_stage(Stage.FROZEN)
    if config.strict_frozen_stock:
        available = sum(batch.quantity for batch in frozen)
        if available < units_needed:
            raise InsufficientStockError(units_needed, available)

    remaining = units_needed
    created: list[str] = []
    for batch in frozen:
        if remaining <= 0:
            break
        take = min(remaining, batch.quantity)
        store.decrement(batch.id, take)
        created.append(
            store.create(take, Stage.DEFROSTING, stage_entered_at=now).id
        )
        remaining -= take

    units_from_stock = units_needed - remaining
    restock_units = 0
    if remaining > 0:
        restock_units = max(0, config.box_size - remaining)
        created.append(store.create(restock_units, Stage.FROZEN).id)
        created.append(
            store.create(remaining, Stage.DEFROSTING, stage_entered_at=now).id
        )
        logger.warning(
            "Frozen stock short by %d units; released anyway and recorded a "
            "restock of %d units",
            remaining,
            restock_units,
        )

    purged = store.remove_empty()
    logger.info(
        "Released %d trays (%d units) from the freezer", trays, units_needed
    )
    return ReleaseResult(
        units_requested=units_needed,
        units_from_stock=units_from_stock,
        units_granted_from_shortfall=remaining,
        restock_units=restock_units,
        created_ids=tuple(batch_id for batch_id in created if batch_id not in purged),
        purged_ids=tuple(purged),
    )


def consume_ready(
    store: BatchStore,
    trays: int,
    *,
    config: ProvingConfig = DEFAULT_CONFIG,
) -> ConsumeResult:
    """Take ``trays`` worth of units from ready batches, oldest first.

    Demand the ready pool cannot cover is dropped and reported as unfulfilled.
    """
    trays = validate_trays(trays)
    if trays <= 0:
        logger.debug("Ignoring consumption of %d trays", trays)
        return ConsumeResult()

    units_needed = trays * config.tray_capacity
    remaining = units_needed
    for batch in store.live_in_stage(Stage.READY):
        if remaining <= 0:
            break
        take = min(remaining, batch.quantity)
        store.decrement(batch.id, take)
        remaining -= take

    purged = store.remove_empty()
    if remaining:
        logger.info(
            "Ready pool covered %d of %d units", units_needed - remaining, units_needed
        )
    return ConsumeResult(
        units_requested=units_needed,
        units_consumed=units_needed - remaining,
        units_unfulfilled=remaining,
        purged_ids=tuple(purged),
    )


def advance_defrost_to_prove(
    store: BatchStore, batch_id: str, *, now: datetime
) -> None:
    """Move a defrosting batch into proving, restarting its clock at ``now``.

    Whether the defrost time has elapsed is not checked here; callers gate the
    move with ``transitions.is_defrost_complete``.
    """
    batch = store.live(batch_id)
    if batch is None:
        raise BatchNotFoundError(batch_id)
    if batch.stage != Stage.DEFROSTING:
        raise InvalidTransitionError(
            f"Batch {batch_id!r} is {batch.stage.value}, not defrosting."
        )
    batch.stage = Stage.PROVING
    batch.stage_entered_at = now
    logger.info("Batch %s moved to proving", batch_id)


def discard_expired(store: BatchStore) -> list[str]:
    expired = [batch.id for batch in store.live_in_stage(Stage.EXPIRED)]
    removed = store.remove(expired)
    if removed:
        logger.info("Discarded %d expired batches", len(removed))
    return removed

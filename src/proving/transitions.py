"""Time-driven stage transitions and age classification."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime
import enum
import logging

from .batches import Batch, BatchStore, Stage
from .config import DEFAULT_CONFIG, ProvingConfig

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


class AgeBucket(enum.Enum):
    H0_24 = "0-24h"
    H24_48 = "24-48h"
    H48_72 = "48-72h"
    H72_96 = "72-96h"
    H96_PLUS = "96h+"

    @property
    def label(self) -> str:
        return self.value


AGE_BUCKETS: tuple[AgeBucket, ...] = tuple(AgeBucket)
_BUCKET_UPPER_BOUNDS = (
    (24.0, AgeBucket.H0_24),
    (48.0, AgeBucket.H24_48),
    (72.0, AgeBucket.H48_72),
    (96.0, AgeBucket.H72_96),
)


class AgeBadge(enum.Enum):
    PROVING = "Proving"
    READY = "Ready"
    OLD = "Old"
    EXPIRED = "Expired"


@dataclass(frozen=True)
class StageTransition:
    batch_id: str
    from_stage: Stage
    to_stage: Stage


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / SECONDS_PER_HOUR


def elapsed_hours(batch: Batch, now: datetime) -> float:
    """Hours since the batch entered its timed stage; 0 when never timed."""
    if batch.stage_entered_at is None:
        return 0.0
    return hours_between(batch.stage_entered_at, now)


def age_bucket(hours: float) -> AgeBucket:
    for upper, bucket in _BUCKET_UPPER_BOUNDS:
        if hours < upper:
            return bucket
    return AgeBucket.H96_PLUS


def age_badge(hours: float, config: ProvingConfig = DEFAULT_CONFIG) -> AgeBadge:
    if hours >= config.expire_hours:
        return AgeBadge.EXPIRED
    if hours >= config.warn_hours:
        return AgeBadge.OLD
    if hours >= config.min_prove_hours:
        return AgeBadge.READY
    return AgeBadge.PROVING


def format_age(hours: float) -> str:
    if hours < 1:
        return f"{int(hours * 60)}m"
    return f"{int(hours)}h"


def next_stage(
    batch: Batch, now: datetime, config: ProvingConfig = DEFAULT_CONFIG
) -> Stage:
    """The stage a batch should be in at ``now``; manual stages never move."""
    if batch.stage not in (Stage.PROVING, Stage.READY):
        return batch.stage
    hours = elapsed_hours(batch, now)
    if hours >= config.expire_hours:
        return Stage.EXPIRED
    if batch.stage == Stage.PROVING and hours >= config.min_prove_hours:
        return Stage.READY
    return batch.stage


def advance_stages(
    store: BatchStore, now: datetime, config: ProvingConfig = DEFAULT_CONFIG
) -> list[StageTransition]:
    """Move proving and ready batches forward according to elapsed time.

    Running this twice with the same ``now`` changes nothing the second time.
    """
    transitions: list[StageTransition] = []
    for batch in store.live_batches():
        target = next_stage(batch, now, config)
        if target == batch.stage:
            continue
        transitions.append(StageTransition(batch.id, batch.stage, target))
        batch.stage = target
    for transition in transitions:
        logger.debug(
            "Batch %s moved %s -> %s",
            transition.batch_id,
            transition.from_stage.value,
            transition.to_stage.value,
        )
    return transitions


def is_defrost_complete(
    batch: Batch, now: datetime, config: ProvingConfig = DEFAULT_CONFIG
) -> bool:
    if batch.stage != Stage.DEFROSTING:
        return False
    return elapsed_hours(batch, now) >= config.defrost_hours


def defrost_remaining_hours(
    batch: Batch, now: datetime, config: ProvingConfig = DEFAULT_CONFIG
) -> float:
    if batch.stage != Stage.DEFROSTING:
        return 0.0
    return max(0.0, config.defrost_hours - elapsed_hours(batch, now))


def quantity_by_bucket(
    batches: Iterable[Batch], now: datetime
) -> dict[AgeBucket, int]:
    totals = {bucket: 0 for bucket in AGE_BUCKETS}
    for batch in batches:
        totals[age_bucket(elapsed_hours(batch, now))] += batch.quantity
    return totals

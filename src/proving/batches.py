"""Batch records and the ordered store that owns them."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, replace
from datetime import datetime
import enum
import itertools
import logging
import uuid

from .errors import NegativeQuantityError

logger = logging.getLogger(__name__)

IdGenerator = Callable[[], str]


class Stage(enum.Enum):
    FROZEN = "frozen"
    DEFROSTING = "defrosting"
    PROVING = "proving"
    READY = "ready"
    EXPIRED = "expired"

    @classmethod
    def parse(cls, value: "Stage | str") -> "Stage":
        if isinstance(value, Stage):
            return value
        normalized = str(value).strip().lower()
        for stage in cls:
            if stage.value == normalized:
                return stage
        raise ValueError(
            "stage must be one of: "
            f"{', '.join(stage.value for stage in cls)}; got {value!r}."
        )


def parse_timestamp(value: object) -> datetime | None:
    """Accept datetimes, pandas timestamps or ISO-8601 strings; blanks are None."""
    if value is None or str(value).strip() in ("", "NaT", "nan", "None"):
        return None
    if hasattr(value, "to_pydatetime"):
        return value.to_pydatetime()  # type: ignore[no-any-return]
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).strip())


@dataclass
class Batch:
    """A quantity of units sharing one stage and one stage-entry timestamp."""

    id: str
    quantity: int
    stage: Stage
    stage_entered_at: datetime | None = None

    def __post_init__(self) -> None:
        self.stage = Stage.parse(self.stage)
        self.stage_entered_at = parse_timestamp(self.stage_entered_at)
        if isinstance(self.quantity, bool) or not isinstance(self.quantity, int):
            raise ValueError(
                f"Batch {self.id!r} quantity must be an integer, got {self.quantity!r}."
            )
        if self.quantity < 0:
            raise ValueError(f"Batch {self.id!r} quantity cannot be negative.")
        if self.stage == Stage.FROZEN:
            self.stage_entered_at = None


class SequentialIdGenerator:
    """Monotonic ids such as ``B-0001``, ``B-0002`` for reproducible runs."""

    def __init__(self, prefix: str = "B-", start: int = 1, width: int = 4) -> None:
        if start < 0:
            raise ValueError("Id counter start cannot be negative.")
        self.prefix = prefix
        self.width = width
        self._counter = itertools.count(start)

    def __call__(self) -> str:
        return f"{self.prefix}{next(self._counter):0{self.width}d}"


class UuidIdGenerator:
    def __init__(self, prefix: str = "B-") -> None:
        self.prefix = prefix

    def __call__(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex[:12].upper()}"


class BatchStore:
    """Insertion-ordered collection of batches keyed by id.

    Ids are unique over the lifetime of the store: an id that was ever held by
    a batch, including one that has since been purged, is never handed out or
    accepted again for a different batch.
    """

    def __init__(
        self,
        batches: Iterable[Batch] = (),
        *,
        id_generator: IdGenerator | None = None,
    ) -> None:
        self._batches: dict[str, Batch] = {}
        self._used_ids: set[str] = set()
        self._id_generator = id_generator or SequentialIdGenerator()
        for batch in batches:
            self.add(batch)

    def __len__(self) -> int:
        return len(self._batches)

    def __contains__(self, batch_id: object) -> bool:
        return batch_id in self._batches

    def batches(self) -> tuple[Batch, ...]:
        """Copies of all batches in insertion order."""
        return tuple(replace(batch) for batch in self._batches.values())

    def get(self, batch_id: str) -> Batch | None:
        batch = self._batches.get(batch_id)
        return replace(batch) if batch is not None else None

    def new_id(self) -> str:
        while True:
            candidate = self._id_generator()
            if candidate not in self._used_ids:
                return candidate
            logger.debug("Skipping already used batch id %s", candidate)

    def add(self, batch: Batch) -> Batch:
        if batch.id in self._used_ids:
            raise ValueError(f"Batch id {batch.id!r} is already in use.")
        return self._store(batch)

    def upsert(self, batch: Batch) -> Batch:
        """Insert a batch or replace the live batch with the same id in place.

        A batch upserted with zero units is purged straight away.
        """
        if batch.id in self._used_ids and batch.id not in self._batches:
            raise ValueError(f"Batch id {batch.id!r} was purged and cannot be reused.")
        stored = self._store(batch)
        if stored.quantity == 0:
            self.remove([stored.id])
        return stored

    def create(
        self,
        quantity: int,
        stage: Stage,
        stage_entered_at: datetime | None = None,
    ) -> Batch:
        batch = Batch(
            id=self.new_id(),
            quantity=quantity,
            stage=stage,
            stage_entered_at=stage_entered_at,
        )
        return self._store(batch)

    def _store(self, batch: Batch) -> Batch:
        stored = replace(batch)
        self._batches[stored.id] = stored
        self._used_ids.add(stored.id)
        return replace(stored)

    def live(self, batch_id: str) -> Batch | None:
        """The stored batch object itself, for the engines that mutate it."""
        return self._batches.get(batch_id)

    def live_in_stage(self, stage: Stage) -> list[Batch]:
        return [batch for batch in self._batches.values() if batch.stage == stage]

    def live_batches(self) -> list[Batch]:
        return list(self._batches.values())

    def decrement(self, batch_id: str, units: int) -> int:
        batch = self._batches[batch_id]
        remaining = batch.quantity - units
        if remaining < 0:
            raise NegativeQuantityError(
                f"Batch {batch_id!r} would drop to {remaining} units."
            )
        batch.quantity = remaining
        return remaining

    def remove_empty(self) -> list[str]:
        empty = [batch_id for batch_id, batch in self._batches.items() if batch.quantity == 0]
        for batch_id in empty:
            del self._batches[batch_id]
        if empty:
            logger.debug("Purged empty batches: %s", ", ".join(empty))
        return empty

    def remove(self, batch_ids: Iterable[str]) -> list[str]:
        removed: list[str] = []
        for batch_id in batch_ids:
            if self._batches.pop(batch_id, None) is not None:
                removed.append(batch_id)
        return removed

    def total_quantity(self, stage: Stage | None = None) -> int:
        return sum(
            batch.quantity
            for batch in self._batches.values()
            if stage is None or batch.stage == stage
        )

    def by_stage(self, stage: Stage) -> tuple[Batch, ...]:
        return tuple(replace(batch) for batch in self.live_in_stage(stage))


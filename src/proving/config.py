"""Configuration for tray sizes, stage timings and stock policy."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields
import json
from pathlib import Path
from typing import Any


@dataclass(frozen=True)
class ProvingConfig:
    """Constants shared by the transition, allocation and planning engines.

    Hours are measured from the moment a batch enters its current timed stage.
    ``Ready`` batches keep their proving start, so ``min_prove_hours``,
    ``warn_hours`` and ``expire_hours`` all count from the start of proving.
    """

    tray_capacity: int = 12
    box_size: int = 70
    defrost_hours: float = 2.0
    min_prove_hours: float = 48.0
    warn_hours: float = 84.0
    expire_hours: float = 120.0
    strict_frozen_stock: bool = False

    def __post_init__(self) -> None:
        if self.tray_capacity <= 0:
            raise ValueError("Tray capacity must be positive.")
        if self.box_size <= 0:
            raise ValueError("Box size must be positive.")
        if self.defrost_hours < 0:
            raise ValueError("Defrost hours cannot be negative.")
        if self.min_prove_hours < 0:
            raise ValueError("Minimum prove hours cannot be negative.")
        if not self.min_prove_hours <= self.warn_hours <= self.expire_hours:
            raise ValueError(
                "Hour thresholds must satisfy "
                "min_prove_hours <= warn_hours <= expire_hours."
            )

    @property
    def lead_time_hours(self) -> float:
        return self.defrost_hours + self.min_prove_hours

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ProvingConfig":
        known = {item.name for item in fields(cls)}
        unknown = sorted(key for key in data if key not in known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}.")
        return cls(**dict(data))

    def to_dict(self) -> dict[str, Any]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


DEFAULT_CONFIG = ProvingConfig()


def load_config(config_path: str | Path) -> ProvingConfig:
    """Load a ``ProvingConfig`` from a JSON object of overrides."""
    final_path = Path(config_path)
    with open(final_path) as f:
        data = json.load(f)
    if not isinstance(data, dict):
        raise TypeError(f"Expected dict from {final_path}, got {type(data)}")
    return ProvingConfig.from_mapping(data)

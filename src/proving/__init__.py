"""Dough proving inventory and tray planning library."""

from importlib.metadata import PackageNotFoundError, version as _dist_version

try:
    from ._version import version as __version__
except ModuleNotFoundError:
    try:
        __version__ = _dist_version("dough-proving")
    except PackageNotFoundError:
        __version__ = "0.0.0"

from .allocation import (
    ConsumeResult,
    ReleaseResult,
    advance_defrost_to_prove,
    consume_ready,
    discard_expired,
    release_from_frozen,
)
from .batches import (
    Batch,
    BatchStore,
    SequentialIdGenerator,
    Stage,
    UuidIdGenerator,
)
from .config import DEFAULT_CONFIG, ProvingConfig, load_config
from .errors import (
    BatchNotFoundError,
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransitionError,
    NegativeQuantityError,
    ProvingError,
)
from .inventory import InventorySummary, ProvingBoardEntry, ProvingInventory
from .io import (
    batches_from_dataframe,
    batches_to_dataframe,
    batches_to_dicts,
    default_seed_batches,
    iter_seed_batches_from_csv,
    plan_to_dict,
    proving_board_to_dataframe,
    write_batches_to_csv,
)
from .planning import (
    DemandPlan,
    PlanInputs,
    compute_plan,
    inbound_ready_within,
    tray_demand,
    trays_ready,
)
from .simulation import (
    PlanningSimulationResult,
    PlanningSnapshot,
    PlanningSummary,
    simulate_planning,
)
from .transitions import (
    AgeBadge,
    AgeBucket,
    StageTransition,
    advance_stages,
    age_badge,
    age_bucket,
    defrost_remaining_hours,
    elapsed_hours,
    format_age,
    is_defrost_complete,
)
try:
    from .plotting import plot_planning_simulation, plot_proving_board
    _HAS_PLOTTING = True
except ModuleNotFoundError:
    plot_planning_simulation = None
    plot_proving_board = None
    _HAS_PLOTTING = False

__all__ = [
    "__version__",
    "AgeBadge",
    "AgeBucket",
    "Batch",
    "BatchNotFoundError",
    "BatchStore",
    "ConsumeResult",
    "DEFAULT_CONFIG",
    "DemandPlan",
    "InsufficientStockError",
    "InvalidQuantityError",
    "InvalidTransitionError",
    "InventorySummary",
    "NegativeQuantityError",
    "PlanInputs",
    "PlanningSimulationResult",
    "PlanningSnapshot",
    "PlanningSummary",
    "ProvingBoardEntry",
    "ProvingConfig",
    "ProvingError",
    "ProvingInventory",
    "ReleaseResult",
    "SequentialIdGenerator",
    "Stage",
    "StageTransition",
    "UuidIdGenerator",
    "advance_defrost_to_prove",
    "advance_stages",
    "age_badge",
    "age_bucket",
    "batches_from_dataframe",
    "batches_to_dataframe",
    "batches_to_dicts",
    "compute_plan",
    "consume_ready",
    "default_seed_batches",
    "defrost_remaining_hours",
    "discard_expired",
    "elapsed_hours",
    "format_age",
    "inbound_ready_within",
    "is_defrost_complete",
    "iter_seed_batches_from_csv",
    "load_config",
    "plan_to_dict",
    "proving_board_to_dataframe",
    "release_from_frozen",
    "simulate_planning",
    "tray_demand",
    "trays_ready",
    "write_batches_to_csv",
]

if _HAS_PLOTTING:
    __all__.extend(["plot_planning_simulation", "plot_proving_board"])

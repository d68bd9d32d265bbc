"""High-level entrypoints for the transportation problem solver library."""

from .cycles import ClosedLoopFinder
from .data import (
    EMPTY,
    EPSILON,
    AllocationMatrix,
    Cell,
    CostModel,
    CycleDelta,
    Empty,
    Epsilon,
    EventKind,
    Flow,
    Penalties,
    Phase,
    SolverOptions,
    StepRecord,
    TraceCallback,
    TraceEvent,
    TransportProblem,
    TransportResult,
    build_problem,
)
from .engine import TransportSolver
from .exceptions import (
    DegenerateBasisError,
    ImbalanceError,
    InvalidProblemError,
    IterationLimitError,
    NoCycleError,
    ShapeError,
    SolverConfigurationError,
    TransportSolverError,
)
from .initial import DegeneracyResolver, InitialSolutionBuilder
from .penalties import compute_penalties, select_cell
from .solver import load_problem, save_result, solve_problem, solve_transportation
from .stepping_stone import SteppingStoneOptimizer
from .utils import ValidationResult, count_basic_cells, total_cost, validate_allocation

__version__ = "0.1.0"

__all__ = [
    # Main API
    "build_problem",
    "load_problem",
    "solve_transportation",
    "solve_problem",
    "save_result",
    "TransportSolver",
    # Configuration
    "SolverOptions",
    # Data model
    "TransportProblem",
    "TransportResult",
    "CostModel",
    "AllocationMatrix",
    "Cell",
    "Empty",
    "Epsilon",
    "Flow",
    "EMPTY",
    "EPSILON",
    # Trace
    "StepRecord",
    "Phase",
    "Penalties",
    "CycleDelta",
    "TraceEvent",
    "TraceCallback",
    "EventKind",
    # Algorithm components
    "compute_penalties",
    "select_cell",
    "InitialSolutionBuilder",
    "DegeneracyResolver",
    "ClosedLoopFinder",
    "SteppingStoneOptimizer",
    # Utilities
    "total_cost",
    "count_basic_cells",
    "validate_allocation",
    "ValidationResult",
    # Exceptions
    "TransportSolverError",
    "InvalidProblemError",
    "ShapeError",
    "ImbalanceError",
    "DegenerateBasisError",
    "NoCycleError",
    "IterationLimitError",
    "SolverConfigurationError",
    # Version
    "__version__",
]

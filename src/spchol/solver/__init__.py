from .base import SparseCholesky
from .errors import SolverConfigError, SparseCholeskyFatalError
from .factory import (
    available_sparse_linear_algebra_libraries,
    backend_description,
    create_sparse_cholesky,
    declared_storage_type,
)
from .options import LinearSolverOptions, load_linear_solver_options
from .refined import RefinedSparseCholesky
from .refiner import IterativeRefiner
from .residual import ResidualMetrics, compute_residual_metrics
from .types import (
    LinearSolverOutcome,
    LinearSolverTerminationType,
    OrderingType,
    Precision,
    SparseLinearAlgebraLibraryType,
)

__all__ = [
    "IterativeRefiner",
    "LinearSolverOptions",
    "LinearSolverOutcome",
    "LinearSolverTerminationType",
    "OrderingType",
    "Precision",
    "RefinedSparseCholesky",
    "ResidualMetrics",
    "SolverConfigError",
    "SparseCholesky",
    "SparseCholeskyFatalError",
    "SparseLinearAlgebraLibraryType",
    "available_sparse_linear_algebra_libraries",
    "backend_description",
    "compute_residual_metrics",
    "create_sparse_cholesky",
    "declared_storage_type",
    "load_linear_solver_options",
]

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from spchol.sparse import StorageType

from .backends import (
    FloatLapackCholesky,
    FloatSciPySparseCholesky,
    FloatSuiteSparseCholesky,
    FloatTorchCholesky,
    LapackCholesky,
    SciPySparseCholesky,
    SuiteSparseCholesky,
    TorchCholesky,
    lapack,
    scipy_sparse,
    suitesparse,
    torch_dense,
)
from .backends.base import BackendSparseCholesky
from .base import SparseCholesky
from .errors import SparseCholeskyFatalError
from .options import LinearSolverOptions
from .refined import RefinedSparseCholesky
from .refiner import IterativeRefiner
from .types import OrderingType, SparseLinearAlgebraLibraryType

_BACKEND_UNAVAILABLE = "E_CFG_BACKEND_UNAVAILABLE"
_BACKEND_UNKNOWN = "E_CFG_BACKEND_UNKNOWN"


@dataclass(frozen=True, slots=True)
class _BackendFamily:
    library: SparseLinearAlgebraLibraryType
    description: str
    is_available: Callable[[], bool]
    double_precision: type[BackendSparseCholesky]
    single_precision: type[BackendSparseCholesky]

    @property
    def storage_type(self) -> StorageType:
        return self.double_precision.declared_storage_type


_BACKEND_FAMILIES: dict[SparseLinearAlgebraLibraryType, _BackendFamily] = {
    SparseLinearAlgebraLibraryType.SUITE_SPARSE: _BackendFamily(
        library=SparseLinearAlgebraLibraryType.SUITE_SPARSE,
        description="SuiteSparse (CHOLMOD via scikit-sparse)",
        is_available=suitesparse.is_available,
        double_precision=SuiteSparseCholesky,
        single_precision=FloatSuiteSparseCholesky,
    ),
    SparseLinearAlgebraLibraryType.SCIPY_SPARSE: _BackendFamily(
        library=SparseLinearAlgebraLibraryType.SCIPY_SPARSE,
        description="SciPy sparse SuperLU",
        is_available=scipy_sparse.is_available,
        double_precision=SciPySparseCholesky,
        single_precision=FloatSciPySparseCholesky,
    ),
    SparseLinearAlgebraLibraryType.LAPACK: _BackendFamily(
        library=SparseLinearAlgebraLibraryType.LAPACK,
        description="LAPACK dense Cholesky",
        is_available=lapack.is_available,
        double_precision=LapackCholesky,
        single_precision=FloatLapackCholesky,
    ),
    SparseLinearAlgebraLibraryType.TORCH: _BackendFamily(
        library=SparseLinearAlgebraLibraryType.TORCH,
        description="PyTorch dense Cholesky",
        is_available=torch_dense.is_available,
        double_precision=TorchCholesky,
        single_precision=FloatTorchCholesky,
    ),
}


def create_sparse_cholesky(options: LinearSolverOptions) -> SparseCholesky:
    """Build the strategy requested by ``options``.

    Raises ``SparseCholeskyFatalError`` when the requested library is unknown or
    was not installed; no other backend is substituted.
    """
    ordering_type = (
        OrderingType.FILL_REDUCING if options.use_postordering else OrderingType.NATURAL
    )
    library = options.sparse_linear_algebra_library_type
    family = _resolve_family(library)
    if not family.is_available():
        raise SparseCholeskyFatalError(
            _BACKEND_UNAVAILABLE,
            f"spchol was installed without support for {family.description}",
            library=family.library.value,
        )

    strategy_type = (
        family.single_precision if options.use_mixed_precision_solves else family.double_precision
    )
    sparse_cholesky: SparseCholesky = strategy_type(ordering_type)

    if options.max_num_refinement_iterations > 0:
        iterative_refiner = IterativeRefiner(options.max_num_refinement_iterations)
        sparse_cholesky = RefinedSparseCholesky(sparse_cholesky, iterative_refiner)
    return sparse_cholesky


def available_sparse_linear_algebra_libraries() -> tuple[SparseLinearAlgebraLibraryType, ...]:
    return tuple(library for library, family in _BACKEND_FAMILIES.items() if family.is_available())


def declared_storage_type(library: SparseLinearAlgebraLibraryType | str) -> StorageType:
    return _resolve_family(library).storage_type


def backend_description(library: SparseLinearAlgebraLibraryType | str) -> str:
    return _resolve_family(library).description


def _resolve_family(library: SparseLinearAlgebraLibraryType | str) -> _BackendFamily:
    supported_values = {member.value for member in SparseLinearAlgebraLibraryType}
    if isinstance(library, str) and library in supported_values:
        return _BACKEND_FAMILIES[SparseLinearAlgebraLibraryType(library)]
    raise SparseCholeskyFatalError(
        _BACKEND_UNKNOWN,
        f"unknown sparse linear algebra library type: {library!s}",
        library=str(library),
    )

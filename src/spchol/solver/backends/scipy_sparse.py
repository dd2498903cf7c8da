from __future__ import annotations

from typing import cast

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csc_matrix  # type: ignore[import-untyped]
from scipy.sparse.linalg import SuperLU  # type: ignore[import-untyped]
from scipy.sparse.linalg import splu as _scipy_splu  # type: ignore[import-untyped]

from spchol.solver.types import (
    SUCCESS,
    LinearSolverOutcome,
    OrderingType,
    Precision,
    failure,
    fatal_error,
)
from spchol.sparse import StorageType

from .base import BackendSparseCholesky

_PERMC_SPECS: dict[OrderingType, str] = {
    OrderingType.FILL_REDUCING: "MMD_AT_PLUS_A",
    OrderingType.NATURAL: "NATURAL",
}


def is_available() -> bool:
    return True


class SciPySparseCholesky(BackendSparseCholesky):
    """SuperLU restricted to symmetric diagonal pivoting.

    With ``diag_pivot_thresh=0`` and ``SymmetricMode`` the LU pivots are the
    ``D`` of an ``LDL^T`` factorization, so the matrix is positive definite
    exactly when every pivot is positive.
    """

    backend_id = "scipy_sparse"
    declared_storage_type = StorageType.UPPER_TRIANGULAR

    def _factorize_matrix(self, full: csc_matrix) -> tuple[object | None, LinearSolverOutcome]:
        if not np.all(full.diagonal() > 0.0):
            return (None, failure("matrix is not positive definite: non-positive diagonal entry"))
        try:
            lu = _scipy_splu(
                full.astype(self.dtype),
                permc_spec=_PERMC_SPECS[self.ordering_type],
                diag_pivot_thresh=0.0,
                options={"SymmetricMode": True},
            )
        except RuntimeError as exc:
            # SuperLU reports exactly singular factors as RuntimeError.
            return (None, failure(f"SuperLU factorization failed: {exc}"))
        except ValueError as exc:
            return (None, fatal_error(f"SuperLU rejected the matrix: {exc}"))

        if not np.array_equal(lu.perm_r, lu.perm_c):
            return (None, failure("matrix is not positive definite: off-diagonal pivot chosen"))
        pivots = np.asarray(lu.U.diagonal(), dtype=np.float64)
        if not np.all(pivots > 0.0):
            return (None, failure("matrix is not positive definite: non-positive pivot"))
        return (lu, SUCCESS)

    def _solve_factor(self, factor: object, rhs: NDArray[np.float64]) -> NDArray[np.floating]:
        lu = cast(SuperLU, factor)
        return np.asarray(lu.solve(rhs.astype(self.dtype)))


class FloatSciPySparseCholesky(SciPySparseCholesky):
    backend_id = "scipy_sparse_float"
    precision = Precision.SINGLE

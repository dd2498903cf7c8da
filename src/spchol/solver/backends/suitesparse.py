from __future__ import annotations

from typing import Any

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csc_matrix  # type: ignore[import-untyped]

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

try:
    from sksparse import cholmod as _cholmod  # type: ignore[import-untyped]
except ImportError:  # pragma: no cover - optional native dependency
    _cholmod = None

_ORDERING_METHODS: dict[OrderingType, str] = {
    OrderingType.FILL_REDUCING: "amd",
    OrderingType.NATURAL: "natural",
}


def is_available() -> bool:
    return _cholmod is not None


class SuiteSparseCholesky(BackendSparseCholesky):
    backend_id = "suite_sparse"
    declared_storage_type = StorageType.LOWER_TRIANGULAR

    def __init__(self, ordering_type: OrderingType) -> None:
        if not is_available():
            raise RuntimeError("scikit-sparse (CHOLMOD) is not installed")
        super().__init__(ordering_type)

    def _factorize_matrix(self, full: csc_matrix) -> tuple[object | None, LinearSolverOutcome]:
        matrix = csc_matrix(self._round(full.astype(np.float64)))
        try:
            factor = _cholmod.cholesky(
                matrix,
                ordering_method=_ORDERING_METHODS[self.ordering_type],
            )
        except _cholmod.CholmodNotPositiveDefiniteError as exc:
            return (None, failure(f"CHOLMOD factorization failed: {exc}"))
        except _cholmod.CholmodError as exc:
            return (None, fatal_error(f"CHOLMOD error: {exc}"))
        return (factor, SUCCESS)

    def _solve_factor(self, factor: Any, rhs: NDArray[np.float64]) -> NDArray[np.floating]:
        return self._round(np.asarray(factor.solve_A(self._round(rhs)), dtype=np.float64))

    def _round(self, value: Any) -> Any:
        # CHOLMOD computes in double; single precision rounds data through float32.
        if self.precision is Precision.DOUBLE:
            return value
        return value.astype(np.float32).astype(np.float64)


class FloatSuiteSparseCholesky(SuiteSparseCholesky):
    backend_id = "suite_sparse_float"
    precision = Precision.SINGLE

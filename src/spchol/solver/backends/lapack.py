from __future__ import annotations

from dataclasses import dataclass
from typing import cast

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import LinAlgError, cho_factor, cho_solve  # type: ignore[import-untyped]
from scipy.sparse import csc_matrix  # type: ignore[import-untyped]

from spchol.solver.types import SUCCESS, LinearSolverOutcome, Precision, failure
from spchol.sparse import StorageType

from .base import (
    BackendSparseCholesky,
    bandwidth_reducing_permutation,
    permuted_dense,
    permuted_solve,
)


@dataclass(frozen=True, slots=True)
class _DenseCholeskyFactor:
    factor: NDArray[np.floating]
    permutation: NDArray[np.intp] | None


def is_available() -> bool:
    return True


class LapackCholesky(BackendSparseCholesky):
    """Dense LAPACK ``potrf``/``potrs`` on the densified matrix."""

    backend_id = "lapack"
    declared_storage_type = StorageType.FULL

    def _factorize_matrix(self, full: csc_matrix) -> tuple[object | None, LinearSolverOutcome]:
        permutation = bandwidth_reducing_permutation(full, self.ordering_type)
        dense = permuted_dense(full, permutation, self.dtype)
        try:
            factor, _ = cho_factor(dense, lower=True, check_finite=False)
        except LinAlgError as exc:
            return (None, failure(f"LAPACK potrf failed: {exc}"))
        return (_DenseCholeskyFactor(factor=factor, permutation=permutation), SUCCESS)

    def _solve_factor(self, factor: object, rhs: NDArray[np.float64]) -> NDArray[np.floating]:
        dense_factor = cast(_DenseCholeskyFactor, factor)
        return permuted_solve(
            dense_factor.permutation,
            rhs,
            lambda vector: cho_solve(
                (dense_factor.factor, True),
                vector.astype(self.dtype),
                check_finite=False,
            ),
        )


class FloatLapackCholesky(LapackCholesky):
    backend_id = "lapack_float"
    precision = Precision.SINGLE

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csc_matrix  # type: ignore[import-untyped]
from scipy.sparse.csgraph import reverse_cuthill_mckee  # type: ignore[import-untyped]

from spchol.solver.base import SparseCholesky
from spchol.solver.types import (
    SUCCESS,
    LinearSolverOutcome,
    OrderingType,
    Precision,
    failure,
    fatal_error,
)
from spchol.sparse import CompressedRowSparseMatrix, StorageType

_PRECISION_DTYPES: dict[Precision, type[np.floating]] = {
    Precision.DOUBLE: np.float64,
    Precision.SINGLE: np.float32,
}


class BackendSparseCholesky(SparseCholesky):
    """Shared bookkeeping for strategies that wrap one native factorization.

    Subclasses provide ``_factorize_matrix`` and ``_solve_factor``; this class
    validates inputs, owns the cached factor and enforces that ``solve`` only
    runs against a successful factorization.
    """

    backend_id: ClassVar[str] = "unknown"
    precision: ClassVar[Precision] = Precision.DOUBLE
    declared_storage_type: ClassVar[StorageType] = StorageType.FULL

    def __init__(self, ordering_type: OrderingType) -> None:
        self._ordering_type = OrderingType(ordering_type)
        self._factor: object | None = None
        self._num_cols = 0

    @property
    def ordering_type(self) -> OrderingType:
        return self._ordering_type

    @property
    def dtype(self) -> type[np.floating]:
        return _PRECISION_DTYPES[self.precision]

    @property
    def is_factorized(self) -> bool:
        return self._factor is not None

    def storage_type(self) -> StorageType:
        return self.declared_storage_type

    def factorize(self, lhs: CompressedRowSparseMatrix) -> LinearSolverOutcome:
        self._factor = None
        self._num_cols = 0
        if not isinstance(lhs, CompressedRowSparseMatrix):
            raise TypeError("lhs must be a CompressedRowSparseMatrix")
        if lhs.storage_type is not self.declared_storage_type:
            return fatal_error(
                f"{self.backend_id} requires {self.declared_storage_type} storage, "
                f"got {lhs.storage_type}"
            )

        full = lhs.to_full()
        if not np.isfinite(full.data).all():
            return failure("matrix contains non-finite values")
        factor, outcome = self._factorize_matrix(full)
        if outcome.success:
            self._factor = factor
            self._num_cols = lhs.num_cols
        return outcome

    def solve(
        self,
        rhs: NDArray[np.float64],
        solution: NDArray[np.float64],
    ) -> LinearSolverOutcome:
        if self._factor is None:
            raise RuntimeError(f"{self.backend_id}: solve requires a successful factorize")
        vector = np.asarray(rhs, dtype=np.float64)
        if vector.shape != (self._num_cols,):
            return fatal_error(
                f"rhs must be a vector of length {self._num_cols}, got shape {vector.shape}"
            )
        if not isinstance(solution, np.ndarray) or solution.shape != (self._num_cols,):
            return fatal_error(f"solution buffer must be a vector of length {self._num_cols}")

        raw_x = np.asarray(self._solve_factor(self._factor, vector), dtype=np.float64)
        x = raw_x.reshape(-1)
        if x.shape[0] != self._num_cols:
            return fatal_error("backend solution payload had unexpected shape")
        if not np.isfinite(x).all():
            return failure("backend returned non-finite solution values")
        solution[:] = x
        return SUCCESS

    def _factorize_matrix(self, full: csc_matrix) -> tuple[object | None, LinearSolverOutcome]:
        raise NotImplementedError

    def _solve_factor(self, factor: object, rhs: NDArray[np.float64]) -> NDArray[np.floating]:
        raise NotImplementedError


def bandwidth_reducing_permutation(
    full: csc_matrix,
    ordering_type: OrderingType,
) -> NDArray[np.intp] | None:
    if ordering_type is OrderingType.NATURAL:
        return None
    return np.asarray(reverse_cuthill_mckee(full.tocsr(), symmetric_mode=True), dtype=np.intp)


def permuted_dense(
    full: csc_matrix,
    permutation: NDArray[np.intp] | None,
    dtype: type[np.floating],
) -> NDArray[np.floating]:
    # Row and column i of the result are row and column permutation[i] of full.
    matrix = full if permutation is None else full[permutation, :][:, permutation]
    return np.asarray(matrix.toarray(), dtype=dtype)


def permuted_solve(
    permutation: NDArray[np.intp] | None,
    rhs: NDArray[np.float64],
    solve_permuted: Callable[[NDArray[np.float64]], NDArray[np.floating]],
) -> NDArray[np.float64]:
    if permutation is None:
        return np.asarray(solve_permuted(rhs), dtype=np.float64)
    permuted_x = np.asarray(solve_permuted(rhs[permutation]), dtype=np.float64).reshape(-1)
    x = np.empty_like(permuted_x)
    x[permutation] = permuted_x
    return x

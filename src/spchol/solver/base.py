from __future__ import annotations

from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray

from spchol.sparse import CompressedRowSparseMatrix, StorageType

from .types import LinearSolverOutcome


@runtime_checkable
class SparseCholesky(Protocol):
    """Factorize a sparse symmetric positive definite matrix and solve against it.

    Implementations are stateful: ``factorize`` caches whatever ``solve`` needs,
    so one instance must not be shared between threads.
    """

    def storage_type(self) -> StorageType: ...

    def factorize(self, lhs: CompressedRowSparseMatrix) -> LinearSolverOutcome: ...

    def solve(
        self,
        rhs: NDArray[np.float64],
        solution: NDArray[np.float64],
    ) -> LinearSolverOutcome: ...

    def factor_and_solve(
        self,
        lhs: CompressedRowSparseMatrix,
        rhs: NDArray[np.float64],
        solution: NDArray[np.float64],
    ) -> LinearSolverOutcome:
        outcome = self.factorize(lhs)
        if outcome.success:
            outcome = self.solve(rhs, solution)
        return outcome

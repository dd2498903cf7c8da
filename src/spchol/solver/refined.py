from __future__ import annotations

import weakref

import numpy as np
from numpy.typing import NDArray

from spchol.sparse import CompressedRowSparseMatrix, StorageType

from .base import SparseCholesky
from .refiner import IterativeRefiner
from .types import SUCCESS, LinearSolverOutcome


class RefinedSparseCholesky(SparseCholesky):
    """Wrap a strategy so every successful solve is followed by iterative refinement.

    Only a weak reference to the factorized matrix is kept; the caller must keep
    it alive between ``factorize`` and ``solve``.
    """

    def __init__(
        self,
        sparse_cholesky: SparseCholesky,
        iterative_refiner: IterativeRefiner,
    ) -> None:
        self._sparse_cholesky = sparse_cholesky
        self._iterative_refiner = iterative_refiner
        self._lhs: weakref.ReferenceType[CompressedRowSparseMatrix] | None = None

    @property
    def sparse_cholesky(self) -> SparseCholesky:
        return self._sparse_cholesky

    @property
    def iterative_refiner(self) -> IterativeRefiner:
        return self._iterative_refiner

    def storage_type(self) -> StorageType:
        return self._sparse_cholesky.storage_type()

    def factorize(self, lhs: CompressedRowSparseMatrix) -> LinearSolverOutcome:
        # Retained even when factorization fails; solve must not follow a failure.
        self._lhs = weakref.ref(lhs)
        return self._sparse_cholesky.factorize(lhs)

    def solve(
        self,
        rhs: NDArray[np.float64],
        solution: NDArray[np.float64],
    ) -> LinearSolverOutcome:
        if self._lhs is None:
            raise RuntimeError("solve requires a prior factorize")
        lhs = self._lhs()
        if lhs is None:
            raise RuntimeError("the factorized matrix no longer exists")

        outcome = self._sparse_cholesky.solve(rhs, solution)
        if not outcome.success:
            return outcome

        self._iterative_refiner.refine(lhs, rhs, self._sparse_cholesky, solution)
        return SUCCESS

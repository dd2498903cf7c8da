from __future__ import annotations

import numpy as np
from numpy.typing import NDArray

from spchol.sparse import CompressedRowSparseMatrix

from .base import SparseCholesky


class IterativeRefiner:
    """Classical iterative refinement against an existing factorization.

    Each iteration computes the residual ``r = b - A x`` in double precision,
    solves ``A c = r`` with the supplied strategy and updates ``x += c``.
    """

    def __init__(self, max_num_iterations: int) -> None:
        if isinstance(max_num_iterations, bool) or not isinstance(max_num_iterations, int):
            raise TypeError("max_num_iterations must be an int")
        if max_num_iterations <= 0:
            raise ValueError("max_num_iterations must be > 0")
        self._max_num_iterations = max_num_iterations

    @property
    def max_num_iterations(self) -> int:
        return self._max_num_iterations

    def refine(
        self,
        lhs: CompressedRowSparseMatrix,
        rhs: NDArray[np.float64],
        sparse_cholesky: SparseCholesky,
        solution: NDArray[np.float64],
    ) -> None:
        vector = np.asarray(rhs, dtype=np.float64)
        correction = np.zeros(lhs.num_cols, dtype=np.float64)
        for _ in range(self._max_num_iterations):
            residual = vector - lhs.right_multiply(solution)
            outcome = sparse_cholesky.solve(residual, correction)
            if not outcome.success:
                break
            solution += correction

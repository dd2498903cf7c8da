from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from spchol.sparse import CompressedRowSparseMatrix

EPSILON = 1e-30


@dataclass(frozen=True, slots=True)
class ResidualMetrics:
    res_l2: float
    res_linf: float
    res_rel: float


def compute_residual_metrics(
    lhs: CompressedRowSparseMatrix,
    rhs: NDArray[np.float64],
    x: NDArray[np.float64],
    *,
    epsilon: float = EPSILON,
) -> ResidualMetrics:
    vector = np.asarray(rhs, dtype=np.float64)
    solution = np.asarray(x, dtype=np.float64)
    residual = vector - lhs.right_multiply(solution)
    res_linf = _vector_inf_norm(residual)
    denominator = (_matrix_inf_norm(lhs) * _vector_inf_norm(solution)) + _vector_inf_norm(vector)
    return ResidualMetrics(
        res_l2=_vector_l2_norm(residual),
        res_linf=res_linf,
        res_rel=res_linf / (denominator + epsilon),
    )


def _vector_l2_norm(vector: NDArray[np.float64]) -> float:
    if vector.size == 0:
        return 0.0
    return float(np.linalg.norm(vector, ord=2))


def _vector_inf_norm(vector: NDArray[np.float64]) -> float:
    if vector.size == 0:
        return 0.0
    return float(np.max(np.abs(vector)))


def _matrix_inf_norm(lhs: CompressedRowSparseMatrix) -> float:
    row_abs_sums = np.asarray(abs(lhs.to_full()).sum(axis=1), dtype=np.float64).reshape(-1)
    if row_abs_sums.size == 0:
        return 0.0
    return float(np.max(row_abs_sums))

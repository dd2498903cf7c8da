from __future__ import annotations

from dataclasses import dataclass
from typing import Any, cast

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csc_matrix  # type: ignore[import-untyped]

from spchol.solver.types import SUCCESS, LinearSolverOutcome, OrderingType, Precision, failure
from spchol.sparse import StorageType

from .base import (
    BackendSparseCholesky,
    bandwidth_reducing_permutation,
    permuted_dense,
    permuted_solve,
)

try:
    import torch  # type: ignore[import-untyped]
except ImportError:  # pragma: no cover - optional native dependency
    torch = None


@dataclass(frozen=True, slots=True)
class _TorchCholeskyFactor:
    factor: Any
    permutation: NDArray[np.intp] | None


def is_available() -> bool:
    return torch is not None


class TorchCholesky(BackendSparseCholesky):
    backend_id = "torch"
    declared_storage_type = StorageType.LOWER_TRIANGULAR

    def __init__(self, ordering_type: OrderingType) -> None:
        if not is_available():
            raise RuntimeError("torch is not installed")
        super().__init__(ordering_type)

    def _factorize_matrix(self, full: csc_matrix) -> tuple[object | None, LinearSolverOutcome]:
        permutation = bandwidth_reducing_permutation(full, self.ordering_type)
        dense = torch.from_numpy(permuted_dense(full, permutation, self.dtype))
        factor, info = torch.linalg.cholesky_ex(dense)
        order = int(info)
        if order != 0:
            return (
                None,
                failure(f"leading minor of order {order} is not positive definite"),
            )
        return (_TorchCholeskyFactor(factor=factor, permutation=permutation), SUCCESS)

    def _solve_factor(self, factor: object, rhs: NDArray[np.float64]) -> NDArray[np.floating]:
        torch_factor = cast(_TorchCholeskyFactor, factor)

        def solve_permuted(vector: NDArray[np.float64]) -> NDArray[np.floating]:
            column = torch.from_numpy(np.ascontiguousarray(vector, dtype=self.dtype)).unsqueeze(-1)
            return torch.cholesky_solve(column, torch_factor.factor).squeeze(-1).numpy()

        return permuted_solve(torch_factor.permutation, rhs, solve_permuted)


class FloatTorchCholesky(TorchCholesky):
    backend_id = "torch_float"
    precision = Precision.SINGLE

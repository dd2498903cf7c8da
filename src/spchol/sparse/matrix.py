from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any, TypeAlias, cast

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import (  # type: ignore[import-untyped]
    csc_matrix,
    csr_matrix,
    diags,
    isspmatrix,
    tril,
    triu,
)

SparseRealMatrix: TypeAlias = Any


class StorageType(StrEnum):
    FULL = "full"
    UPPER_TRIANGULAR = "upper_triangular"
    LOWER_TRIANGULAR = "lower_triangular"


@dataclass(frozen=True, slots=True, weakref_slot=True, eq=False)
class CompressedRowSparseMatrix:
    """Square CSR matrix tagged with the convention its entries are stored in.

    A triangular tag means only that triangle (diagonal included) is stored and
    the matrix is understood to be symmetric.
    """

    matrix: csr_matrix
    storage_type: StorageType

    def __post_init__(self) -> None:
        if not isspmatrix(self.matrix):
            raise TypeError("matrix must be a SciPy sparse matrix")
        if self.matrix.shape[0] != self.matrix.shape[1]:
            raise ValueError("matrix must be square")
        storage_type = StorageType(self.storage_type)
        matrix = csr_matrix(self.matrix, dtype=np.float64)
        if storage_type is StorageType.UPPER_TRIANGULAR and tril(matrix, k=-1).count_nonzero():
            raise ValueError("upper_triangular storage holds entries below the diagonal")
        if storage_type is StorageType.LOWER_TRIANGULAR and triu(matrix, k=1).count_nonzero():
            raise ValueError("lower_triangular storage holds entries above the diagonal")
        object.__setattr__(self, "matrix", matrix)
        object.__setattr__(self, "storage_type", storage_type)

    @classmethod
    def from_full(
        cls,
        matrix: SparseRealMatrix,
        storage_type: StorageType,
    ) -> CompressedRowSparseMatrix:
        if not isspmatrix(matrix):
            raise TypeError("matrix must be a SciPy sparse matrix")
        resolved = StorageType(storage_type)
        if resolved is StorageType.UPPER_TRIANGULAR:
            stored = triu(matrix, format="csr")
        elif resolved is StorageType.LOWER_TRIANGULAR:
            stored = tril(matrix, format="csr")
        else:
            stored = csr_matrix(matrix)
        return cls(matrix=stored, storage_type=resolved)

    @property
    def num_rows(self) -> int:
        return int(self.matrix.shape[0])

    @property
    def num_cols(self) -> int:
        return int(self.matrix.shape[1])

    @property
    def nnz(self) -> int:
        return int(self.matrix.nnz)

    def to_full(self) -> csc_matrix:
        if self.storage_type is StorageType.FULL:
            return self.matrix.tocsc()
        stored = self.matrix.tocsc()
        diagonal = diags(stored.diagonal(), offsets=0, shape=stored.shape, format="csc")
        return cast(csc_matrix, (stored + stored.T - diagonal).tocsc())

    def right_multiply(self, x: NDArray[np.float64]) -> NDArray[np.float64]:
        vector = np.asarray(x, dtype=np.float64)
        if vector.shape != (self.num_cols,):
            raise ValueError("vector length must match matrix dimension")
        product = np.asarray(self.matrix @ vector, dtype=np.float64)
        if self.storage_type is StorageType.FULL:
            return product
        # y = T x + T^T x - diag(T) x
        transposed = np.asarray(self.matrix.T @ vector, dtype=np.float64)
        return product + transposed - self.matrix.diagonal() * vector

from .matrix import CompressedRowSparseMatrix, SparseRealMatrix, StorageType

__all__ = [
    "CompressedRowSparseMatrix",
    "SparseRealMatrix",
    "StorageType",
]

from .base import BackendSparseCholesky
from .lapack import FloatLapackCholesky, LapackCholesky
from .scipy_sparse import FloatSciPySparseCholesky, SciPySparseCholesky
from .suitesparse import FloatSuiteSparseCholesky, SuiteSparseCholesky
from .torch_dense import FloatTorchCholesky, TorchCholesky

__all__ = [
    "BackendSparseCholesky",
    "FloatLapackCholesky",
    "FloatSciPySparseCholesky",
    "FloatSuiteSparseCholesky",
    "FloatTorchCholesky",
    "LapackCholesky",
    "SciPySparseCholesky",
    "SuiteSparseCholesky",
    "TorchCholesky",
]

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class LinearSolverTerminationType(StrEnum):
    SUCCESS = "success"
    FAILURE = "failure"
    FATAL_ERROR = "fatal_error"


class OrderingType(StrEnum):
    FILL_REDUCING = "fill_reducing"
    NATURAL = "natural"


class SparseLinearAlgebraLibraryType(StrEnum):
    SUITE_SPARSE = "suite_sparse"
    SCIPY_SPARSE = "scipy_sparse"
    LAPACK = "lapack"
    TORCH = "torch"


class Precision(StrEnum):
    DOUBLE = "double"
    SINGLE = "single"


@dataclass(frozen=True, slots=True)
class LinearSolverOutcome:
    termination_type: LinearSolverTerminationType
    message: str | None = None

    def __post_init__(self) -> None:
        termination_type = LinearSolverTerminationType(self.termination_type)
        if termination_type is not LinearSolverTerminationType.SUCCESS and not self.message:
            raise ValueError("non-success outcomes must carry a message")
        object.__setattr__(self, "termination_type", termination_type)

    @property
    def success(self) -> bool:
        return self.termination_type is LinearSolverTerminationType.SUCCESS


SUCCESS = LinearSolverOutcome(LinearSolverTerminationType.SUCCESS)


def failure(message: str) -> LinearSolverOutcome:
    return LinearSolverOutcome(LinearSolverTerminationType.FAILURE, message)


def fatal_error(message: str) -> LinearSolverOutcome:
    return LinearSolverOutcome(LinearSolverTerminationType.FATAL_ERROR, message)

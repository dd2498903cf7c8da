from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .models import Severity, SolverStage


@dataclass(frozen=True, slots=True)
class DiagnosticCatalogEntry:
    code: str
    severity: Severity
    solver_stage: SolverStage
    suggested_action: str

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("diagnostic catalog code must be non-empty")
        if not self.suggested_action:
            raise ValueError(
                f"diagnostic catalog entry '{self.code}' suggested_action must be non-empty"
            )


def _entry(
    code: str,
    severity: Severity,
    solver_stage: SolverStage,
    suggested_action: str,
) -> DiagnosticCatalogEntry:
    return DiagnosticCatalogEntry(
        code=code,
        severity=severity,
        solver_stage=solver_stage,
        suggested_action=suggested_action,
    )


def _build_catalog(
    entries: tuple[DiagnosticCatalogEntry, ...],
) -> Mapping[str, DiagnosticCatalogEntry]:
    catalog: dict[str, DiagnosticCatalogEntry] = {}
    for entry in entries:
        if entry.code in catalog:
            raise ValueError(f"duplicate diagnostic catalog code: {entry.code}")
        catalog[entry.code] = entry
    return MappingProxyType(catalog)


_CATALOG_ENTRIES: tuple[DiagnosticCatalogEntry, ...] = (
    _entry(
        "E_CFG_BACKEND_UNAVAILABLE",
        Severity.ERROR,
        SolverStage.CONFIGURE,
        "install the optional dependency for this backend or select an available backend",
    ),
    _entry(
        "E_CFG_BACKEND_UNKNOWN",
        Severity.ERROR,
        SolverStage.CONFIGURE,
        "set sparse_linear_algebra_library_type to a supported backend name",
    ),
    _entry(
        "E_CFG_OPTIONS_INVALID",
        Severity.ERROR,
        SolverStage.CONFIGURE,
        "fix the linear solver options and retry",
    ),
    _entry(
        "E_CLI_INPUT_INVALID",
        Severity.ERROR,
        SolverStage.CONFIGURE,
        "provide a readable square Matrix Market file and a matching right-hand side",
    ),
    _entry(
        "E_NUM_FACTORIZATION_FAILED",
        Severity.ERROR,
        SolverStage.FACTORIZE,
        "check that the matrix is symmetric positive definite or regularize it",
    ),
    _entry(
        "E_NUM_FACTORIZATION_FATAL",
        Severity.ERROR,
        SolverStage.FACTORIZE,
        "supply the matrix in the storage convention reported by the strategy",
    ),
    _entry(
        "E_NUM_SOLVE_FAILED",
        Severity.ERROR,
        SolverStage.SOLVE,
        "inspect the right-hand side and matrix conditioning",
    ),
    _entry(
        "E_NUM_SOLVE_FATAL",
        Severity.ERROR,
        SolverStage.SOLVE,
        "pass right-hand side and solution vectors matching the matrix dimension",
    ),
)

CANONICAL_DIAGNOSTIC_CATALOG: Mapping[str, DiagnosticCatalogEntry] = _build_catalog(
    _CATALOG_ENTRIES
)
REQUIRED_CATALOG_FIELDS: tuple[str, ...] = ("code", "severity", "solver_stage", "suggested_action")

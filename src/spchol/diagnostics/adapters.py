from __future__ import annotations

from typing import TypeVar

from spchol.solver.errors import SolverConfigError, SparseCholeskyFatalError
from spchol.solver.types import LinearSolverOutcome, LinearSolverTerminationType

from .catalog import CANONICAL_DIAGNOSTIC_CATALOG
from .models import DiagnosticEvent, Severity, SolverStage

_OUTCOME_CODES: dict[tuple[SolverStage, LinearSolverTerminationType], str] = {
    (SolverStage.FACTORIZE, LinearSolverTerminationType.FAILURE): "E_NUM_FACTORIZATION_FAILED",
    (SolverStage.FACTORIZE, LinearSolverTerminationType.FATAL_ERROR): "E_NUM_FACTORIZATION_FATAL",
    (SolverStage.SOLVE, LinearSolverTerminationType.FAILURE): "E_NUM_SOLVE_FAILED",
    (SolverStage.SOLVE, LinearSolverTerminationType.FATAL_ERROR): "E_NUM_SOLVE_FATAL",
}


def build_diagnostic_event(
    *,
    code: str,
    message: str,
    backend: str | None = None,
    witness: object | None = None,
    severity: Severity | None = None,
    solver_stage: SolverStage | None = None,
    suggested_action: str | None = None,
) -> DiagnosticEvent:
    if not code:
        raise ValueError("diagnostic code must be non-empty")
    if not message:
        raise ValueError("diagnostic message must be non-empty")

    catalog_entry = CANONICAL_DIAGNOSTIC_CATALOG.get(code)
    resolved_severity = (
        severity
        if severity is not None
        else _require_catalog_field(
            code=code,
            field_name="severity",
            value=(None if catalog_entry is None else catalog_entry.severity),
        )
    )
    resolved_stage = (
        solver_stage
        if solver_stage is not None
        else _require_catalog_field(
            code=code,
            field_name="solver_stage",
            value=(None if catalog_entry is None else catalog_entry.solver_stage),
        )
    )
    resolved_action = (
        suggested_action
        if suggested_action is not None
        else _require_catalog_field(
            code=code,
            field_name="suggested_action",
            value=(None if catalog_entry is None else catalog_entry.suggested_action),
        )
    )

    return DiagnosticEvent(
        code=code,
        severity=resolved_severity,
        message=message,
        suggested_action=resolved_action,
        solver_stage=resolved_stage,
        backend=backend,
        witness=witness,
    )


def diagnostic_from_outcome(
    outcome: LinearSolverOutcome,
    *,
    stage: SolverStage,
    backend: str | None = None,
) -> DiagnosticEvent | None:
    if outcome.success:
        return None
    code = _OUTCOME_CODES.get((stage, outcome.termination_type))
    if code is None:
        raise ValueError(f"no diagnostic mapping for {outcome.termination_type} at stage {stage}")
    return build_diagnostic_event(
        code=code,
        message=outcome.message or str(outcome.termination_type),
        backend=backend,
        witness={"termination_type": outcome.termination_type.value},
    )


def diagnostic_from_config_error(
    exc: SolverConfigError | SparseCholeskyFatalError,
) -> DiagnosticEvent:
    if isinstance(exc, SparseCholeskyFatalError):
        return build_diagnostic_event(
            code=exc.error_code,
            message=exc.message,
            backend=exc.library,
        )
    return build_diagnostic_event(
        code="E_CFG_OPTIONS_INVALID",
        message=exc.message,
        witness={"config_error_code": exc.code},
    )


T = TypeVar("T")


def _require_catalog_field(*, code: str, field_name: str, value: T | None) -> T:
    if value is None:
        raise ValueError(
            f"diagnostic code '{code}' is not in canonical catalog; "
            f"explicit {field_name} is required"
        )
    return value

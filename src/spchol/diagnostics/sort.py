from __future__ import annotations

import json
from collections.abc import Iterable

from .models import DiagnosticEvent, Severity, SolverStage

_SEVERITY_RANK: dict[Severity, int] = {
    Severity.ERROR: 0,
}

_STAGE_RANK: dict[SolverStage, int] = {
    SolverStage.CONFIGURE: 0,
    SolverStage.FACTORIZE: 1,
    SolverStage.SOLVE: 2,
}


def canonical_witness_json(witness: object | None) -> str:
    if witness is None:
        return ""
    return json.dumps(witness, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def diagnostic_sort_key(event: DiagnosticEvent) -> tuple[int, int, str, str, str, str]:
    return (
        _SEVERITY_RANK[event.severity],
        _STAGE_RANK[event.solver_stage],
        event.code,
        event.backend or "",
        event.message,
        canonical_witness_json(event.witness),
    )


def sort_diagnostics(events: Iterable[DiagnosticEvent]) -> list[DiagnosticEvent]:
    return sorted(events, key=diagnostic_sort_key)

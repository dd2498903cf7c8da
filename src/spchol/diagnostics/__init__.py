from .adapters import build_diagnostic_event, diagnostic_from_config_error, diagnostic_from_outcome
from .catalog import CANONICAL_DIAGNOSTIC_CATALOG, REQUIRED_CATALOG_FIELDS
from .models import DiagnosticEvent, Severity, SolverStage
from .sort import canonical_witness_json, diagnostic_sort_key, sort_diagnostics

__all__ = [
    "CANONICAL_DIAGNOSTIC_CATALOG",
    "DiagnosticEvent",
    "REQUIRED_CATALOG_FIELDS",
    "Severity",
    "SolverStage",
    "build_diagnostic_event",
    "canonical_witness_json",
    "diagnostic_from_config_error",
    "diagnostic_from_outcome",
    "diagnostic_sort_key",
    "sort_diagnostics",
]

from __future__ import annotations

import dataclasses
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Literal

import numpy as np
import typer
from numpy.typing import NDArray
from scipy.io import mmread  # type: ignore[import-untyped]
from scipy.sparse import csr_matrix, tril, triu  # type: ignore[import-untyped]

from spchol.diagnostics import (
    DiagnosticEvent,
    SolverStage,
    build_diagnostic_event,
    diagnostic_from_config_error,
    diagnostic_from_outcome,
    sort_diagnostics,
)
from spchol.solver import (
    LinearSolverOptions,
    LinearSolverOutcome,
    LinearSolverTerminationType,
    ResidualMetrics,
    SolverConfigError,
    SparseCholeskyFatalError,
    SparseLinearAlgebraLibraryType,
    available_sparse_linear_algebra_libraries,
    backend_description,
    compute_residual_metrics,
    create_sparse_cholesky,
    declared_storage_type,
    load_linear_solver_options,
)
from spchol.sparse import CompressedRowSparseMatrix, StorageType

app = typer.Typer(help="Sparse Cholesky solver CLI")

_CLI_INPUT_INVALID = "E_CLI_INPUT_INVALID"
_SYMMETRY_RTOL = 1e-12
_EXIT_CODES: dict[LinearSolverTerminationType, int] = {
    LinearSolverTerminationType.SUCCESS: 0,
    LinearSolverTerminationType.FAILURE: 1,
    LinearSolverTerminationType.FATAL_ERROR: 2,
}
_FORMAT_OPTION = typer.Option(
    "text",
    "--format",
    help="Output format: text|json",
    show_default=True,
)


class _InputError(ValueError):
    pass


@app.command()
def backends(format: Literal["text", "json"] = _FORMAT_OPTION) -> None:
    """List backend families and whether they are usable."""
    available = set(available_sparse_linear_algebra_libraries())
    rows = [
        {
            "backend": library.value,
            "available": library in available,
            "storage_type": declared_storage_type(library).value,
            "description": backend_description(library),
        }
        for library in SparseLinearAlgebraLibraryType
    ]
    if format == "json":
        typer.echo(json.dumps({"backends": rows}, ensure_ascii=True, separators=(",", ":")))
        return
    for row in rows:
        typer.echo(
            f"{row['backend']}"
            f" available={'yes' if row['available'] else 'no'}"
            f" storage={row['storage_type']}"
            f" description={row['description']}"
        )


@app.command()
def solve(  # noqa: PLR0913
    matrix_path: Path = typer.Argument(..., help="Matrix Market file holding A"),
    rhs_path: Path | None = typer.Option(None, "--rhs", help="Whitespace separated b"),
    config_path: Path | None = typer.Option(None, "--config", help="YAML linear solver options"),
    backend: str | None = typer.Option(None, "--backend", help="Backend family name"),
    postordering: bool | None = typer.Option(None, "--postordering/--no-postordering"),
    mixed_precision: bool | None = typer.Option(
        None, "--mixed-precision/--no-mixed-precision"
    ),
    refinement_iterations: int | None = typer.Option(None, "--refinement-iterations"),
    format: Literal["text", "json"] = _FORMAT_OPTION,
) -> None:
    """Factorize A and solve A x = b."""
    try:
        options = _resolve_options(
            config_path=config_path,
            backend=backend,
            postordering=postordering,
            mixed_precision=mixed_precision,
            refinement_iterations=refinement_iterations,
        )
        sparse_cholesky = create_sparse_cholesky(options)
    except (SolverConfigError, SparseCholeskyFatalError) as exc:
        _emit_failure((diagnostic_from_config_error(exc),), format)
        raise typer.Exit(code=2) from exc

    backend_name = str(options.sparse_linear_algebra_library_type)
    try:
        full = _load_full_matrix(matrix_path)
        rhs = _load_rhs(rhs_path, full)
    except _InputError as exc:
        event = build_diagnostic_event(
            code=_CLI_INPUT_INVALID,
            message=str(exc),
            witness={
                "matrix": str(matrix_path),
                "rhs": None if rhs_path is None else str(rhs_path),
            },
        )
        _emit_failure((event,), format)
        raise typer.Exit(code=2) from exc

    lhs = CompressedRowSparseMatrix.from_full(full, sparse_cholesky.storage_type())
    solution = np.zeros(lhs.num_cols, dtype=np.float64)
    stage = SolverStage.FACTORIZE
    outcome = sparse_cholesky.factorize(lhs)
    if outcome.success:
        stage = SolverStage.SOLVE
        outcome = sparse_cholesky.solve(rhs, solution)

    diagnostic = diagnostic_from_outcome(outcome, stage=stage, backend=backend_name)
    diagnostics = () if diagnostic is None else (diagnostic,)
    residual = compute_residual_metrics(lhs, rhs, solution) if outcome.success else None
    _emit_solve_output(
        backend=backend_name,
        options=options,
        outcome=outcome,
        residual=residual,
        solution=solution if outcome.success else None,
        diagnostics=diagnostics,
        output_format=format,
    )
    raise typer.Exit(code=_EXIT_CODES[outcome.termination_type])


def _resolve_options(
    *,
    config_path: Path | None,
    backend: str | None,
    postordering: bool | None,
    mixed_precision: bool | None,
    refinement_iterations: int | None,
) -> LinearSolverOptions:
    options = (
        load_linear_solver_options(config_path)
        if config_path is not None
        else LinearSolverOptions()
    )
    overrides: dict[str, object] = {}
    if backend is not None:
        overrides["sparse_linear_algebra_library_type"] = backend
    if postordering is not None:
        overrides["use_postordering"] = postordering
    if mixed_precision is not None:
        overrides["use_mixed_precision_solves"] = mixed_precision
    if refinement_iterations is not None:
        overrides["max_num_refinement_iterations"] = refinement_iterations
    if not overrides:
        return options
    return dataclasses.replace(options, **overrides)  # type: ignore[arg-type]


def _load_full_matrix(path: Path) -> csr_matrix:
    try:
        raw = mmread(str(path))
    except (OSError, ValueError) as exc:
        raise _InputError(f"unable to read Matrix Market file '{path}': {exc}") from exc
    matrix = csr_matrix(raw, dtype=np.float64)
    if matrix.shape[0] != matrix.shape[1]:
        raise _InputError(f"matrix must be square, got shape {matrix.shape}")

    # A file holding a single triangle is read as that triangle of a symmetric matrix.
    has_lower = tril(matrix, k=-1).count_nonzero() > 0
    has_upper = triu(matrix, k=1).count_nonzero() > 0
    if has_lower and not has_upper:
        return csr_matrix(
            CompressedRowSparseMatrix(matrix, StorageType.LOWER_TRIANGULAR).to_full()
        )
    if has_upper and not has_lower:
        return csr_matrix(
            CompressedRowSparseMatrix(matrix, StorageType.UPPER_TRIANGULAR).to_full()
        )

    # Both triangles stored: they must agree to within rounding.
    if matrix.nnz:
        asymmetry = float(abs(matrix - matrix.T).max())
        scale = float(abs(matrix).max())
        if asymmetry > _SYMMETRY_RTOL * scale:
            raise _InputError(f"matrix must be symmetric, max |A - A^T| = {asymmetry:.3e}")
    return matrix


def _load_rhs(path: Path | None, full: csr_matrix) -> NDArray[np.float64]:
    size = int(full.shape[0])
    if path is None:
        return np.asarray(full @ np.ones(size, dtype=np.float64), dtype=np.float64)
    try:
        rhs = np.loadtxt(path, dtype=np.float64, ndmin=1)
    except (OSError, ValueError) as exc:
        raise _InputError(f"unable to read right-hand side '{path}': {exc}") from exc
    rhs = rhs.reshape(-1)
    if rhs.shape[0] != size:
        raise _InputError(f"right-hand side has {rhs.shape[0]} entries, expected {size}")
    return rhs


def _emit_failure(diagnostics: Sequence[DiagnosticEvent], output_format: str) -> None:
    if output_format == "json":
        payload = {
            "status": LinearSolverTerminationType.FATAL_ERROR.value,
            "diagnostics": [
                event.model_dump(mode="json", exclude_none=True)
                for event in sort_diagnostics(diagnostics)
            ],
        }
        typer.echo(json.dumps(payload, ensure_ascii=True, separators=(",", ":")))
        return
    _print_diagnostics(diagnostics)


def _emit_solve_output(  # noqa: PLR0913
    *,
    backend: str,
    options: LinearSolverOptions,
    outcome: LinearSolverOutcome,
    residual: ResidualMetrics | None,
    solution: NDArray[np.float64] | None,
    diagnostics: Sequence[DiagnosticEvent],
    output_format: str,
) -> None:
    if output_format == "json":
        payload: dict[str, object] = {
            "status": outcome.termination_type.value,
            "backend": backend,
            "options": {
                "use_postordering": options.use_postordering,
                "use_mixed_precision_solves": options.use_mixed_precision_solves,
                "max_num_refinement_iterations": options.max_num_refinement_iterations,
            },
            "residual": None if residual is None else dataclasses.asdict(residual),
            "solution": None if solution is None else [float(value) for value in solution],
            "diagnostics": [
                event.model_dump(mode="json", exclude_none=True)
                for event in sort_diagnostics(diagnostics)
            ],
        }
        typer.echo(json.dumps(payload, ensure_ascii=True, separators=(",", ":")))
        return

    typer.echo(
        f"status={outcome.termination_type}"
        f" backend={backend}"
        f" mixed_precision={options.use_mixed_precision_solves}"
        f" refinement_iterations={options.max_num_refinement_iterations}"
    )
    _print_diagnostics(diagnostics)
    if residual is not None:
        typer.echo(
            "RESIDUAL"
            f" l2={_format_float(residual.res_l2)}"
            f" linf={_format_float(residual.res_linf)}"
            f" rel={_format_float(residual.res_rel)}"
        )
    if solution is not None:
        for index, value in enumerate(solution):
            typer.echo(f"x[{index}]={_format_float(value)}")


def _print_diagnostics(diagnostics: Sequence[DiagnosticEvent]) -> None:
    for event in sort_diagnostics(diagnostics):
        typer.echo(
            "DIAG"
            f" severity={event.severity}"
            f" stage={event.solver_stage}"
            f" code={event.code}"
            f" message={event.message}"
        )


def _format_float(value: float) -> str:
    return f"{float(value):.12g}"


def main() -> None:
    app()

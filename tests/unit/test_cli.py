from __future__ import annotations

import json
from pathlib import Path

import numpy as np
import pytest
import yaml  # type: ignore[import-untyped]
from scipy.io import mmwrite  # type: ignore[import-untyped]
from scipy.sparse import coo_matrix, csr_matrix, triu  # type: ignore[import-untyped]
from typer.testing import CliRunner

from spchol.cli.main import app
from spchol.solver.backends import suitesparse

pytestmark = pytest.mark.unit

runner = CliRunner()
EXIT_FAILURE = 1
EXIT_FATAL = 2

_FULL = np.asarray(
    [
        [4.0, 1.0, 0.0],
        [1.0, 3.0, 1.0],
        [0.0, 1.0, 2.0],
    ],
    dtype=np.float64,
)


def _write_matrix(tmp_path: Path, matrix: np.ndarray, name: str = "a.mtx") -> Path:
    path = tmp_path / name
    mmwrite(str(path), coo_matrix(matrix))
    return path


def _write_rhs(tmp_path: Path, values: list[float]) -> Path:
    path = tmp_path / "b.txt"
    path.write_text("\n".join(repr(value) for value in values) + "\n", encoding="utf-8")
    return path


def test_cli_help_smoke() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "backends" in result.stdout
    assert "solve" in result.stdout


def test_backends_lists_every_family() -> None:
    result = runner.invoke(app, ["backends", "--format", "json"])

    assert result.exit_code == 0
    rows = json.loads(result.stdout)["backends"]
    assert [row["backend"] for row in rows] == ["suite_sparse", "scipy_sparse", "lapack", "torch"]
    by_name = {row["backend"]: row for row in rows}
    assert by_name["scipy_sparse"]["available"] is True
    assert by_name["lapack"]["storage_type"] == "full"


def test_backends_text_reports_unavailable_family(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(suitesparse, "_cholmod", None)

    result = runner.invoke(app, ["backends"])

    assert result.exit_code == 0
    assert "suite_sparse available=no storage=lower_triangular" in result.stdout
    assert "lapack available=yes storage=full" in result.stdout


def test_solve_text_output(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, _FULL)
    rhs_path = _write_rhs(tmp_path, [6.0, 10.0, 8.0])

    result = runner.invoke(app, ["solve", str(matrix_path), "--rhs", str(rhs_path)])

    assert result.exit_code == 0, result.stdout
    lines = result.stdout.splitlines()
    assert lines[0].startswith("status=success backend=scipy_sparse")
    assert any(line.startswith("RESIDUAL l2=") for line in lines)
    assert lines[-3:] == ["x[0]=1", "x[1]=2", "x[2]=3"]


def test_solve_json_with_overrides_and_default_rhs(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, _FULL)

    result = runner.invoke(
        app,
        [
            "solve",
            str(matrix_path),
            "--backend",
            "lapack",
            "--postordering",
            "--mixed-precision",
            "--refinement-iterations",
            "4",
            "--format",
            "json",
        ],
    )

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["status"] == "success"
    assert payload["backend"] == "lapack"
    assert payload["options"] == {
        "use_postordering": True,
        "use_mixed_precision_solves": True,
        "max_num_refinement_iterations": 4,
    }
    assert payload["diagnostics"] == []
    np.testing.assert_allclose(payload["solution"], np.ones(3), rtol=0.0, atol=1e-12)
    assert payload["residual"]["res_rel"] < 1e-12


def test_solve_reads_single_triangle_files_as_symmetric(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, triu(csr_matrix(_FULL)).toarray())
    rhs_path = _write_rhs(tmp_path, [6.0, 10.0, 8.0])

    result = runner.invoke(
        app,
        ["solve", str(matrix_path), "--rhs", str(rhs_path), "--format", "json"],
    )

    assert result.exit_code == 0, result.stdout
    solution = json.loads(result.stdout)["solution"]
    np.testing.assert_allclose(solution, [1.0, 2.0, 3.0], rtol=0.0, atol=1e-10)


def test_solve_uses_yaml_config(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, _FULL)
    config_path = tmp_path / "options.yaml"
    config_path.write_text(
        yaml.safe_dump(
            {
                "linear_solver": {
                    "sparse_linear_algebra_library_type": "lapack",
                    "max_num_refinement_iterations": 2,
                }
            }
        ),
        encoding="utf-8",
    )

    result = runner.invoke(
        app,
        ["solve", str(matrix_path), "--config", str(config_path), "--format", "json"],
    )

    assert result.exit_code == 0, result.stdout
    payload = json.loads(result.stdout)
    assert payload["backend"] == "lapack"
    assert payload["options"]["max_num_refinement_iterations"] == 2


def test_indefinite_matrix_exits_with_failure(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, np.asarray([[1.0, 2.0], [2.0, 1.0]]))

    result = runner.invoke(app, ["solve", str(matrix_path), "--format", "json"])

    assert result.exit_code == EXIT_FAILURE
    payload = json.loads(result.stdout)
    assert payload["status"] == "failure"
    assert payload["solution"] is None
    assert [event["code"] for event in payload["diagnostics"]] == ["E_NUM_FACTORIZATION_FAILED"]
    assert payload["diagnostics"][0]["solver_stage"] == "factorize"


def test_indefinite_matrix_text_output_has_diag_line(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, np.asarray([[1.0, 2.0], [2.0, 1.0]]))

    result = runner.invoke(app, ["solve", str(matrix_path), "--backend", "lapack"])

    assert result.exit_code == EXIT_FAILURE
    assert "DIAG severity=error stage=factorize code=E_NUM_FACTORIZATION_FAILED" in result.stdout
    assert "x[0]=" not in result.stdout


def test_unavailable_backend_is_fatal(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(suitesparse, "_cholmod", None)
    matrix_path = _write_matrix(tmp_path, _FULL)

    result = runner.invoke(
        app,
        ["solve", str(matrix_path), "--backend", "suite_sparse", "--format", "json"],
    )

    assert result.exit_code == EXIT_FATAL
    payload = json.loads(result.stdout)
    assert payload["status"] == "fatal_error"
    assert payload["diagnostics"][0]["code"] == "E_CFG_BACKEND_UNAVAILABLE"
    assert payload["diagnostics"][0]["backend"] == "suite_sparse"


def test_unknown_backend_is_fatal(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, _FULL)

    result = runner.invoke(app, ["solve", str(matrix_path), "--backend", "eigen"])

    assert result.exit_code == EXIT_FATAL
    assert "code=E_CFG_BACKEND_UNKNOWN" in result.stdout


def test_invalid_options_are_fatal(tmp_path: Path) -> None:
    matrix_path = _write_matrix(tmp_path, _FULL)

    result = runner.invoke(
        app,
        ["solve", str(matrix_path), "--refinement-iterations", "-1", "--format", "json"],
    )

    assert result.exit_code == EXIT_FATAL
    payload = json.loads(result.stdout)
    assert payload["diagnostics"][0]["code"] == "E_CFG_OPTIONS_INVALID"


@pytest.mark.parametrize(
    ("matrix", "rhs", "fragment"),
    [
        (np.ones((2, 3)), None, "square"),
        (_FULL, [1.0, 2.0], "expected 3"),
        (np.asarray([[4.0, 1.0], [2.0, 3.0]]), None, "must be symmetric"),
    ],
)
def test_bad_inputs_are_fatal(
    tmp_path: Path,
    matrix: np.ndarray,
    rhs: list[float] | None,
    fragment: str,
) -> None:
    args = ["solve", str(_write_matrix(tmp_path, matrix))]
    if rhs is not None:
        args.extend(["--rhs", str(_write_rhs(tmp_path, rhs))])

    result = runner.invoke(app, args)

    assert result.exit_code == EXIT_FATAL
    assert "code=E_CLI_INPUT_INVALID" in result.stdout
    assert fragment in result.stdout


def test_asymmetric_matrix_reports_input_diagnostic_in_json(tmp_path: Path) -> None:
    asymmetric = _FULL.copy()
    asymmetric[2, 1] = 1.5
    matrix_path = _write_matrix(tmp_path, asymmetric)

    result = runner.invoke(app, ["solve", str(matrix_path), "--format", "json"])

    assert result.exit_code == EXIT_FATAL
    diagnostic = json.loads(result.stdout)["diagnostics"][0]
    assert diagnostic["code"] == "E_CLI_INPUT_INVALID"
    assert "5.000e-01" in diagnostic["message"]


def test_rounding_level_asymmetry_is_accepted(tmp_path: Path) -> None:
    nearly_symmetric = _FULL.copy()
    nearly_symmetric[1, 0] += 4e-16
    matrix_path = _write_matrix(tmp_path, nearly_symmetric)

    result = runner.invoke(app, ["solve", str(matrix_path)])

    assert result.exit_code == 0, result.stdout


def test_missing_matrix_file_is_fatal(tmp_path: Path) -> None:
    result = runner.invoke(app, ["solve", str(tmp_path / "missing.mtx")])

    assert result.exit_code == EXIT_FATAL
    assert "code=E_CLI_INPUT_INVALID" in result.stdout

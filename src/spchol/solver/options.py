from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import cast

import yaml  # type: ignore[import-untyped]

from .errors import SolverConfigError
from .types import SparseLinearAlgebraLibraryType

_OPTIONS_SECTION = "linear_solver"


@dataclass(frozen=True, slots=True)
class LinearSolverOptions:
    sparse_linear_algebra_library_type: SparseLinearAlgebraLibraryType | str = (
        SparseLinearAlgebraLibraryType.SCIPY_SPARSE
    )
    use_postordering: bool = False
    use_mixed_precision_solves: bool = False
    max_num_refinement_iterations: int = 0

    def __post_init__(self) -> None:
        for name in ("use_postordering", "use_mixed_precision_solves"):
            if not isinstance(getattr(self, name), bool):
                raise SolverConfigError("E_SOLVER_CONFIG_INVALID", f"{name} must be a bool")
        iterations = self.max_num_refinement_iterations
        if isinstance(iterations, bool) or not isinstance(iterations, int):
            raise SolverConfigError(
                "E_SOLVER_CONFIG_INVALID", "max_num_refinement_iterations must be an int"
            )
        if iterations < 0:
            raise SolverConfigError(
                "E_SOLVER_CONFIG_INVALID", "max_num_refinement_iterations must be >= 0"
            )


def load_linear_solver_options(path: str | Path) -> LinearSolverOptions:
    target = Path(path)
    raw = _read_yaml_file(target)
    section = _require_mapping(raw, _OPTIONS_SECTION)

    known = {field.name for field in fields(LinearSolverOptions)}
    unknown = sorted(key for key in section if key not in known)
    if unknown:
        raise SolverConfigError(
            "E_SOLVER_CONFIG_INVALID",
            f"unknown linear_solver keys: {', '.join(unknown)}",
        )

    defaults = LinearSolverOptions()
    return LinearSolverOptions(
        sparse_linear_algebra_library_type=_optional_library_type(
            section,
            "sparse_linear_algebra_library_type",
            SparseLinearAlgebraLibraryType(defaults.sparse_linear_algebra_library_type),
        ),
        use_postordering=_optional_bool(section, "use_postordering", defaults.use_postordering),
        use_mixed_precision_solves=_optional_bool(
            section, "use_mixed_precision_solves", defaults.use_mixed_precision_solves
        ),
        max_num_refinement_iterations=_optional_int(
            section, "max_num_refinement_iterations", defaults.max_num_refinement_iterations
        ),
    )


def _read_yaml_file(path: Path) -> dict[str, object]:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SolverConfigError(
            "E_SOLVER_CONFIG_READ_FAILED",
            f"unable to read linear solver options '{path}': {exc}",
        ) from exc
    try:
        payload = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise SolverConfigError(
            "E_SOLVER_CONFIG_PARSE_FAILED",
            f"unable to parse linear solver options '{path}': {exc}",
        ) from exc
    if not isinstance(payload, dict):
        raise SolverConfigError(
            "E_SOLVER_CONFIG_INVALID", "linear solver options root must be a mapping"
        )
    return cast(dict[str, object], payload)


def _require_mapping(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if isinstance(value, dict):
        return cast(dict[str, object], value)
    raise SolverConfigError(
        "E_SOLVER_CONFIG_INVALID", f"missing or invalid mapping for key '{key}'"
    )


def _optional_bool(data: dict[str, object], key: str, default: bool) -> bool:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, bool):
        return value
    raise SolverConfigError("E_SOLVER_CONFIG_INVALID", f"invalid bool for key '{key}'")


def _optional_int(data: dict[str, object], key: str, default: int) -> int:
    if key not in data:
        return default
    value = data[key]
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    raise SolverConfigError("E_SOLVER_CONFIG_INVALID", f"invalid int for key '{key}'")


def _optional_library_type(
    data: dict[str, object],
    key: str,
    default: SparseLinearAlgebraLibraryType,
) -> SparseLinearAlgebraLibraryType:
    if key not in data:
        return default
    value = data[key]
    supported_values = tuple(member.value for member in SparseLinearAlgebraLibraryType)
    if isinstance(value, str) and value in supported_values:
        return SparseLinearAlgebraLibraryType(value)
    supported = ", ".join(supported_values)
    raise SolverConfigError(
        "E_SOLVER_CONFIG_INVALID",
        f"invalid value for key '{key}': {value!r}; expected one of {supported}",
    )

from __future__ import annotations

from dataclasses import dataclass
from functools import cache
from pathlib import Path
from typing import cast

import numpy as np
import yaml  # type: ignore[import-untyped]

DEFAULT_SOLVER_DEFAULTS_PATH = Path(__file__).resolve().parent / "solver_defaults.yaml"
EXPECTED_SCHEMA_ID = "algloop_solver_defaults_v1"


class SolverConfigError(ValueError):
    def __init__(self, code: str, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


@dataclass(frozen=True, slots=True)
class NonlinearDefaults:
    initial_factor: float
    xtol: float
    epsfcn: float
    max_function_evaluations_per_unknown: int
    analytic_jacobian_max_function_evaluations: int


@dataclass(frozen=True, slots=True)
class RetryLadderDefaults:
    factor_divisor: float
    start_point_offset: float
    extrapolation_scale_up: float
    extrapolation_scale_down: float
    diag_floor: float


@dataclass(frozen=True, slots=True)
class SolverDefaults:
    nonlinear: NonlinearDefaults
    retry_ladder: RetryLadderDefaults
    discrete_tolerance: float
    ill_conditioned_warn_max: float
    singular_pivot_ratio: float
    artifact_path: str


def load_solver_defaults(path: str | Path | None = None) -> SolverDefaults:
    selected_path = Path(path) if path is not None else DEFAULT_SOLVER_DEFAULTS_PATH
    return _load_solver_defaults_cached(str(selected_path.resolve()))


@cache
def _load_solver_defaults_cached(path: str) -> SolverDefaults:
    target = Path(path)
    raw = _read_yaml_file(target)
    schema = _require_string(raw, "schema")
    if schema != EXPECTED_SCHEMA_ID:
        raise _invalid(
            f"unsupported solver defaults schema '{schema}'; expected '{EXPECTED_SCHEMA_ID}'"
        )

    nonlinear_block = _require_mapping(raw, "nonlinear")
    nonlinear = NonlinearDefaults(
        initial_factor=_require_float(nonlinear_block, "initial_factor", positive=True),
        xtol=_require_float(nonlinear_block, "xtol", positive=True),
        epsfcn=_require_float(nonlinear_block, "epsfcn", positive=True),
        max_function_evaluations_per_unknown=_require_positive_int(
            nonlinear_block, "max_function_evaluations_per_unknown"
        ),
        analytic_jacobian_max_function_evaluations=_require_positive_int(
            nonlinear_block, "analytic_jacobian_max_function_evaluations"
        ),
    )

    ladder_block = _require_mapping(raw, "retry_ladder")
    retry_ladder = RetryLadderDefaults(
        factor_divisor=_require_float(ladder_block, "factor_divisor", positive=True),
        start_point_offset=_require_float(ladder_block, "start_point_offset"),
        extrapolation_scale_up=_require_float(ladder_block, "extrapolation_scale_up"),
        extrapolation_scale_down=_require_float(ladder_block, "extrapolation_scale_down"),
        diag_floor=_require_float(ladder_block, "diag_floor", positive=True),
    )
    if retry_ladder.factor_divisor <= 1.0:
        raise _invalid("retry_ladder factor_divisor must be > 1")

    mixed_block = _require_mapping(raw, "mixed")
    linear_block = _require_mapping(raw, "linear")
    ill_conditioned_warn_max = _require_float(linear_block, "ill_conditioned_warn_max")
    singular_pivot_ratio = _require_float(linear_block, "singular_pivot_ratio", positive=True)
    if singular_pivot_ratio > ill_conditioned_warn_max:
        raise _invalid("linear singular_pivot_ratio must be <= ill_conditioned_warn_max")
    return SolverDefaults(
        nonlinear=nonlinear,
        retry_ladder=retry_ladder,
        discrete_tolerance=_require_float(mixed_block, "discrete_tolerance", positive=True),
        ill_conditioned_warn_max=ill_conditioned_warn_max,
        singular_pivot_ratio=singular_pivot_ratio,
        artifact_path=str(target),
    )


def _read_yaml_file(path: Path) -> dict[str, object]:
    try:
        raw_text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SolverConfigError(
            "E_SOLVER_CONFIG_READ_FAILED",
            f"unable to read solver defaults artifact '{path}': {exc}",
        ) from exc
    try:
        payload = yaml.safe_load(raw_text)
    except yaml.YAMLError as exc:
        raise SolverConfigError(
            "E_SOLVER_CONFIG_PARSE_FAILED",
            f"invalid solver defaults yaml in '{path}': {exc}",
        ) from exc
    if not isinstance(payload, dict):
        raise _invalid("solver defaults artifact root must be a mapping")
    return cast(dict[str, object], payload)


def _invalid(message: str) -> SolverConfigError:
    return SolverConfigError("E_SOLVER_CONFIG_INVALID", message)


def _require_mapping(data: dict[str, object], key: str) -> dict[str, object]:
    value = data.get(key)
    if not isinstance(value, dict):
        raise _invalid(f"missing or invalid mapping for key '{key}'")
    return cast(dict[str, object], value)


def _require_string(data: dict[str, object], key: str) -> str:
    value = data.get(key)
    if not isinstance(value, str) or not value:
        raise _invalid(f"missing or invalid string for key '{key}'")
    return value


def _require_float(data: dict[str, object], key: str, *, positive: bool = False) -> float:
    value = data.get(key)
    # YAML booleans are ints in Python; reject them explicitly.
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise _invalid(f"missing or invalid numeric value for key '{key}'")
    numeric = float(value)
    if not np.isfinite(numeric):
        raise _invalid(f"value for key '{key}' must be finite")
    if positive and numeric <= 0.0:
        raise _invalid(f"value for key '{key}' must be > 0")
    return numeric


def _require_positive_int(data: dict[str, object], key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise _invalid(f"missing or invalid integer for key '{key}'")
    if value <= 0:
        raise _invalid(f"value for key '{key}' must be > 0")
    return value

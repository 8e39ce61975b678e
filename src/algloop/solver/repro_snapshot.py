from __future__ import annotations

from collections.abc import Mapping, Sequence

from .config import SolverDefaults, load_solver_defaults
from .ladder import DERIVATIVE_FREE_TIERS, EXHAUSTED_TIER
from .nonlinear import NonlinearSolveResult
from .status import ResultStatus

_SCHEMA_ID = "solver_repro_snapshot_v1"


def build_solver_config_snapshot(
    *,
    defaults: SolverDefaults | None = None,
    results: Sequence[NonlinearSolveResult] = (),
) -> Mapping[str, object]:
    solver_defaults = defaults if defaults is not None else load_solver_defaults()

    tier_counts = {str(tier.tier): 0 for tier in DERIVATIVE_FREE_TIERS}
    status_counts = {status.value: 0 for status in ResultStatus}
    total_kernel_calls = 0
    max_kernel_calls_per_solve = 0
    solves_with_retry = 0
    solves_exhausted = 0

    for result in results:
        status_counts[result.status.value] += 1
        total_kernel_calls += result.kernel_calls
        max_kernel_calls_per_solve = max(max_kernel_calls_per_solve, result.kernel_calls)
        if result.retry_tiers_used:
            solves_with_retry += 1
        for tier in result.retry_tiers_used:
            tier_counts[str(tier)] = tier_counts.get(str(tier), 0) + 1
        if result.failure_code == "E_NLS_NO_PROGRESS":
            solves_exhausted += 1

    nonlinear = solver_defaults.nonlinear
    ladder = solver_defaults.retry_ladder
    return {
        "schema": _SCHEMA_ID,
        "defaults_source": solver_defaults.artifact_path,
        "nonlinear": {
            "initial_factor": nonlinear.initial_factor,
            "xtol": nonlinear.xtol,
            "epsfcn": nonlinear.epsfcn,
            "max_function_evaluations_per_unknown": (
                nonlinear.max_function_evaluations_per_unknown
            ),
            "analytic_jacobian_max_function_evaluations": (
                nonlinear.analytic_jacobian_max_function_evaluations
            ),
        },
        "retry_ladder": {
            "tiers": [
                {"tier": tier.tier, "counter": tier.counter, "limit": tier.limit}
                for tier in DERIVATIVE_FREE_TIERS
            ],
            "exhausted_tier": EXHAUSTED_TIER,
            "factor_divisor": ladder.factor_divisor,
            "start_point_offset": ladder.start_point_offset,
            "extrapolation_scale_up": ladder.extrapolation_scale_up,
            "extrapolation_scale_down": ladder.extrapolation_scale_down,
            "diag_floor": ladder.diag_floor,
        },
        "mixed": {"discrete_tolerance": solver_defaults.discrete_tolerance},
        "linear": {
            "ill_conditioned_warn_max": solver_defaults.ill_conditioned_warn_max,
            "singular_pivot_ratio": solver_defaults.singular_pivot_ratio,
        },
        "solve_summary": {
            "total_solves": len(results),
            "status_counts": status_counts,
            "tier_counts": tier_counts,
            "total_kernel_calls": total_kernel_calls,
            "max_kernel_calls_per_solve": max_kernel_calls_per_solve,
            "solves_with_retry": solves_with_retry,
            "solves_exhausted": solves_exhausted,
        },
    }

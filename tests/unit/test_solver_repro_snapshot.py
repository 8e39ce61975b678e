from __future__ import annotations

import json

import numpy as np
import pytest

from algloop.solver import (
    NonlinearSolveResult,
    ResultStatus,
    build_solver_config_snapshot,
    load_solver_defaults,
)

pytestmark = pytest.mark.unit


def _result(status: ResultStatus, tiers: tuple[int, ...]) -> NonlinearSolveResult:
    return NonlinearSolveResult(
        status=status,
        x=np.zeros(1),
        fvec=np.zeros(1),
        system_id="nls_1",
        function_evaluations=10,
        jacobian_evaluations=0,
        kernel_calls=len(tiers) + 1,
        retry_tiers_used=tiers,
        attempt_trace=(),
        failure_code="E_NLS_NO_PROGRESS" if status is ResultStatus.NO_PROGRESS else None,
        failure_message=None,
        diagnostics=(),
    )


def test_snapshot_records_effective_defaults() -> None:
    snapshot = build_solver_config_snapshot()

    assert snapshot["schema"] == "solver_repro_snapshot_v1"
    assert snapshot["defaults_source"] == load_solver_defaults().artifact_path
    ladder = snapshot["retry_ladder"]
    assert isinstance(ladder, dict)
    assert ladder["exhausted_tier"] == 9
    assert ladder["factor_divisor"] == 10.0
    assert [row["tier"] for row in ladder["tiers"]] == list(range(1, 9))
    json.dumps(snapshot, sort_keys=True)


def test_snapshot_summarizes_solves() -> None:
    snapshot = build_solver_config_snapshot(
        results=(
            _result(ResultStatus.SUCCESS, ()),
            _result(ResultStatus.SUCCESS, (1, 1, 2)),
            _result(ResultStatus.NO_PROGRESS, (1, 1, 1, 2, 2)),
        )
    )

    summary = snapshot["solve_summary"]
    assert isinstance(summary, dict)
    assert summary["total_solves"] == 3
    assert summary["status_counts"]["success"] == 2
    assert summary["status_counts"]["no_progress"] == 1
    assert summary["tier_counts"]["1"] == 5
    assert summary["tier_counts"]["2"] == 3
    assert summary["tier_counts"]["8"] == 0
    assert summary["total_kernel_calls"] == 1 + 4 + 6
    assert summary["max_kernel_calls_per_solve"] == 6
    assert summary["solves_with_retry"] == 2
    assert summary["solves_exhausted"] == 1

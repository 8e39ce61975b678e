from __future__ import annotations

import numpy as np
import pytest

from algloop.solver import (
    ANALYTIC_JACOBIAN_TIERS,
    AUTO_SCALE_MODE,
    DERIVATIVE_FREE_TIERS,
    USER_SCALE_MODE,
    SolveWorkspace,
    load_solver_defaults,
)
from algloop.solver.ladder import LadderInputs, select_retry_tier

pytestmark = pytest.mark.unit


def _inputs() -> LadderInputs:
    return LadderInputs(
        extrapolated_guess=np.asarray([2.0, -0.001]),
        previous_solution=np.asarray([7.0, 8.0]),
        constants=load_solver_defaults().retry_ladder,
    )


def _workspace() -> SolveWorkspace:
    workspace = SolveWorkspace.create(2, 100.0)
    workspace.prepare([1.0, 1.0], [4.0, 9.0])
    return workspace


def test_tier_table_matches_counter_limits() -> None:
    table = [(tier.tier, tier.counter, tier.limit) for tier in DERIVATIVE_FREE_TIERS]

    assert table == [
        (1, "retries", 3),
        (2, "retries", 5),
        (3, "retries", 7),
        (4, "retries", 9),
        (5, "retries2", 1),
        (6, "retries3", 1),
        (7, "retries3", 2),
        (8, "retries3", 3),
    ]
    assert ANALYTIC_JACOBIAN_TIERS == DERIVATIVE_FREE_TIERS[:2]


@pytest.mark.parametrize(
    ("counters", "expected_tier"),
    [
        ((0, 0, 0), 1),
        ((2, 0, 0), 1),
        ((3, 0, 0), 2),
        ((5, 0, 0), 3),
        ((7, 0, 0), 4),
        ((9, 0, 0), 5),
        ((9, 1, 0), 6),
        ((9, 1, 1), 7),
        ((9, 1, 2), 8),
        ((9, 1, 3), None),
    ],
)
def test_select_retry_tier_picks_first_admitting_tier(
    counters: tuple[int, int, int], expected_tier: int | None
) -> None:
    workspace = _workspace()
    workspace.retries, workspace.retries2, workspace.retries3 = counters

    tier = select_retry_tier(DERIVATIVE_FREE_TIERS, workspace)

    assert (tier.tier if tier is not None else None) == expected_tier


def test_analytic_tiers_stop_after_start_point_offsets() -> None:
    workspace = _workspace()
    workspace.retries = 5

    assert select_retry_tier(ANALYTIC_JACOBIAN_TIERS, workspace) is None


def test_tier_one_divides_factor_and_counts() -> None:
    workspace = _workspace()

    message = DERIVATIVE_FREE_TIERS[0].apply(workspace, _inputs())

    assert workspace.factor == 10.0
    assert workspace.retries == 1
    assert message == "iteration making no progress: decrease factor to 10"


def test_tier_two_offsets_every_unknown() -> None:
    workspace = _workspace()

    DERIVATIVE_FREE_TIERS[1].apply(workspace, _inputs())

    np.testing.assert_allclose(workspace.x, [1.1, 1.1])


def test_tiers_three_and_four_scale_extrapolated_guess() -> None:
    workspace = _workspace()

    DERIVATIVE_FREE_TIERS[2].apply(workspace, _inputs())
    np.testing.assert_allclose(workspace.x, [2.02, -0.00101])

    DERIVATIVE_FREE_TIERS[3].apply(workspace, _inputs())
    np.testing.assert_allclose(workspace.x, [1.98, -0.00099])
    assert workspace.retries == 2


def test_tier_five_restarts_from_previous_solution() -> None:
    workspace = _workspace()
    workspace.factor = 0.1
    workspace.retries = 9

    DERIVATIVE_FREE_TIERS[4].apply(workspace, _inputs())

    np.testing.assert_array_equal(workspace.x, [7.0, 8.0])
    assert workspace.factor == 100.0
    assert workspace.counters() == (0, 1, 0)


def test_tier_six_restores_saved_scaling_in_user_mode() -> None:
    workspace = _workspace()
    workspace.diag[...] = 1.0
    workspace.retries, workspace.retries2 = 9, 1

    DERIVATIVE_FREE_TIERS[5].apply(workspace, _inputs())

    np.testing.assert_array_equal(workspace.diag, [4.0, 9.0])
    assert workspace.mode == USER_SCALE_MODE
    assert workspace.counters() == (0, 0, 1)


def test_tier_seven_scales_from_guess_magnitudes_with_floor() -> None:
    workspace = _workspace()
    workspace.mode = USER_SCALE_MODE

    DERIVATIVE_FREE_TIERS[6].apply(workspace, _inputs())

    np.testing.assert_array_equal(workspace.x, [2.0, -0.001])
    np.testing.assert_array_equal(workspace.diag, [2.0, 1e-2])
    assert workspace.mode == AUTO_SCALE_MODE
    assert workspace.retries3 == 1


def test_tier_eight_removes_scaling() -> None:
    workspace = _workspace()

    DERIVATIVE_FREE_TIERS[7].apply(workspace, _inputs())

    np.testing.assert_array_equal(workspace.diag, [1.0, 1.0])
    np.testing.assert_array_equal(workspace.x, [2.0, -0.001])
    assert workspace.mode == USER_SCALE_MODE
    assert workspace.factor == 100.0

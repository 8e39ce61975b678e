from __future__ import annotations

import numpy as np
import pytest
from hypothesis import given
from hypothesis import strategies as st
from numpy.typing import NDArray

from algloop.solver import (
    DenseMatrix,
    DiscreteAssignment,
    EquationSystemSpec,
    EvaluationMode,
    LinearKernelResult,
    NonlinearSolveResult,
    ResultStatus,
    RootFindOptions,
    RootFindResult,
    build_candidate_table,
    extrapolate,
    resolve_mixed_system,
    solve_linear_system,
    solve_nonlinear_system,
)

pytestmark = pytest.mark.property

_FINITE = st.floats(min_value=-1e6, max_value=1e6, allow_nan=False, allow_infinity=False)
_TIME = st.floats(min_value=-1e3, max_value=1e3, allow_nan=False, allow_infinity=False)


@given(value=_FINITE, old1=_FINITE, old2=_FINITE, time=_TIME, stamp=_TIME)
def test_equal_sample_times_never_move_value(
    value: float, old1: float, old2: float, time: float, stamp: float
) -> None:
    assert extrapolate(value, old1, old2, time=time, time1=stamp, time2=stamp) == value


@given(
    slope=st.floats(min_value=-100.0, max_value=100.0, allow_nan=False),
    offset=st.floats(min_value=-100.0, max_value=100.0, allow_nan=False),
    time1=st.floats(min_value=1.0, max_value=10.0),
    step=st.floats(min_value=0.1, max_value=5.0),
    ahead=st.floats(min_value=0.0, max_value=5.0),
)
def test_samples_on_a_line_extrapolate_along_it(
    slope: float, offset: float, time1: float, step: float, ahead: float
) -> None:
    time2 = time1 - step
    time = time1 + ahead
    old1 = slope * time1 + offset
    old2 = slope * time2 + offset

    predicted = extrapolate(0.0, old1, old2, time=time, time1=time1, time2=time2)

    assert predicted == pytest.approx(slope * time + offset, rel=1e-9, abs=1e-6)


@st.composite
def _dominant_systems(draw: st.DrawFn) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    size = draw(st.integers(min_value=1, max_value=6))
    entries = st.floats(min_value=-1.0, max_value=1.0, allow_nan=False)
    dense = np.asarray(
        draw(st.lists(entries, min_size=size * size, max_size=size * size)), dtype=np.float64
    ).reshape(size, size)
    dense += np.diag(np.abs(dense).sum(axis=1) + 1.0)
    rhs = np.asarray(
        draw(st.lists(_FINITE, min_size=size, max_size=size)), dtype=np.float64
    )
    return dense, rhs


@given(system=_dominant_systems())
def test_linear_solve_residual_on_dominant_matrices(
    system: tuple[NDArray[np.float64], NDArray[np.float64]],
) -> None:
    dense, rhs = system

    result = solve_linear_system(DenseMatrix(dense.copy()), rhs.copy(), system_id="lin_prop")

    assert result.status is ResultStatus.SUCCESS
    assert result.x is not None
    scale = max(1.0, float(np.max(np.abs(rhs))))
    assert np.max(np.abs(dense @ result.x - rhs)) <= 1e-9 * scale


class _OutcomeKernel:
    def __init__(self, outcomes: list[ResultStatus]) -> None:
        self._outcomes = outcomes
        self.calls = 0

    def lu_solve(self, A: DenseMatrix, b: NDArray[np.float64]) -> LinearKernelResult:
        raise AssertionError("not used")

    def root_find(
        self, evaluate: object, x0: NDArray[np.float64], options: RootFindOptions
    ) -> RootFindResult:
        status = (
            self._outcomes[self.calls]
            if self.calls < len(self._outcomes)
            else ResultStatus.NO_PROGRESS
        )
        self.calls += 1
        return RootFindResult(
            status=status,
            info=0,
            x=x0.copy(),
            fvec=np.zeros_like(x0),
            function_evaluations=1,
            jacobian_evaluations=0,
            message=status.value,
        )

    root_find_with_jacobian = root_find


def _identity_residual(x: NDArray[np.float64], mode: EvaluationMode) -> NDArray[np.float64]:
    return x


@given(
    outcomes=st.lists(
        st.sampled_from([ResultStatus.NO_PROGRESS, ResultStatus.SUCCESS, ResultStatus.FATAL]),
        max_size=90,
    ),
    analytic=st.booleans(),
)
def test_ladder_always_terminates_within_bound(
    outcomes: list[ResultStatus], analytic: bool
) -> None:
    kernel = _OutcomeKernel(outcomes)
    spec = EquationSystemSpec(
        system_id="nls_prop",
        size=2,
        absolute_tolerance=1e-12,
        max_function_evaluations=100,
        has_analytic_jacobian=analytic,
    )

    result = solve_nonlinear_system(spec, _identity_residual, x0=np.ones(2), kernel=kernel)

    assert kernel.calls == result.kernel_calls <= (6 if analytic else 80)
    assert len(result.retry_tiers_used) == result.kernel_calls - 1
    first_terminal = next(
        (index for index, status in enumerate(outcomes) if status is not ResultStatus.NO_PROGRESS),
        None,
    )
    if first_terminal is not None and first_terminal < result.kernel_calls:
        assert result.status is outcomes[first_terminal]
    else:
        assert result.status is ResultStatus.NO_PROGRESS


@given(
    consistent=st.lists(st.booleans(), min_size=1, max_size=8),
)
def test_mixed_resolver_accepts_first_consistent_row(consistent: list[bool]) -> None:
    table = build_candidate_table(
        [[bool(index & 1), bool(index & 2), bool(index & 4)] for index in range(len(consistent))],
        3,
    )
    index_of = {row: index for index, row in enumerate(table)}
    solved: list[int] = []

    def _solve(assignment: DiscreteAssignment) -> NonlinearSolveResult:
        solved.append(index_of[assignment])
        return NonlinearSolveResult(
            status=ResultStatus.SUCCESS,
            x=np.zeros(1),
            fvec=np.zeros(1),
            system_id="cont_prop",
            function_evaluations=1,
            jacobian_evaluations=0,
            kernel_calls=1,
            retry_tiers_used=(),
            attempt_trace=(),
            failure_code=None,
            failure_message=None,
            diagnostics=(),
        )

    def _implied(x: NDArray[np.float64], assignment: DiscreteAssignment) -> list[bool]:
        if consistent[index_of[assignment]]:
            return list(assignment)
        return [not value for value in assignment]

    result = resolve_mixed_system("mixed_prop", table, _solve, _implied)

    if any(consistent):
        expected = consistent.index(True)
        assert result.status is ResultStatus.SUCCESS
        assert result.candidate_index == expected
        assert solved == list(range(expected + 1))
    else:
        assert result.status is ResultStatus.NO_PROGRESS
        assert solved == list(range(len(consistent)))

from __future__ import annotations

import numpy as np
import pytest

from algloop.solver import (
    AUTO_SCALE_MODE,
    EquationSystemSpec,
    SolveWorkspace,
    build_system_spec,
    load_solver_defaults,
)

pytestmark = pytest.mark.unit


def test_build_system_spec_scales_evaluation_budget_with_size() -> None:
    spec = build_system_spec("nls_1", 3)

    assert spec.max_function_evaluations == 30000
    assert spec.absolute_tolerance == 1e-12
    assert not spec.has_analytic_jacobian


def test_build_system_spec_uses_fixed_budget_for_analytic_jacobian() -> None:
    spec = build_system_spec("nls_2", 3, has_analytic_jacobian=True)

    assert spec.max_function_evaluations == 8000
    assert spec.has_analytic_jacobian


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"system_id": ""}, "system_id"),
        ({"size": 0}, "size"),
        ({"absolute_tolerance": 0.0}, "absolute_tolerance"),
        ({"absolute_tolerance": float("nan")}, "absolute_tolerance"),
        ({"max_function_evaluations": 0}, "max_function_evaluations"),
    ],
)
def test_system_spec_validation(kwargs: dict[str, object], message: str) -> None:
    values: dict[str, object] = {
        "system_id": "nls_0",
        "size": 2,
        "absolute_tolerance": 1e-12,
        "max_function_evaluations": 100,
    }
    values.update(kwargs)

    with pytest.raises(ValueError, match=message):
        EquationSystemSpec(**values)  # type: ignore[arg-type]


def test_prepare_resets_every_field_a_solve_reads() -> None:
    workspace = SolveWorkspace.create(2, load_solver_defaults().nonlinear.initial_factor)
    workspace.factor = 0.001
    workspace.mode = 2
    workspace.retries = 4
    workspace.retries2 = 1
    workspace.retries3 = 2
    workspace.fvec[...] = 9.0

    workspace.prepare([1.0, -1.0], [2.0, 5.0])

    np.testing.assert_array_equal(workspace.x, [1.0, -1.0])
    np.testing.assert_array_equal(workspace.fvec, [0.0, 0.0])
    np.testing.assert_array_equal(workspace.diag, [2.0, 5.0])
    np.testing.assert_array_equal(workspace.diag_save, [2.0, 5.0])
    assert workspace.factor == 100.0
    assert workspace.mode == AUTO_SCALE_MODE
    assert workspace.counters() == (0, 0, 0)


def test_prepare_defaults_scale_to_ones_and_copies_inputs() -> None:
    workspace = SolveWorkspace.create(2, 100.0)
    start = np.asarray([3.0, 4.0])

    workspace.prepare(start)
    workspace.x[0] = 0.0

    assert start[0] == 3.0
    np.testing.assert_array_equal(workspace.diag, [1.0, 1.0])
    assert workspace.diag_save is not workspace.diag


@pytest.mark.parametrize(
    ("x0", "scale", "message"),
    [
        ([1.0], None, "x0 must have length 2"),
        ([1.0, np.inf], None, "x0 must be finite"),
        ([1.0, 1.0], [1.0, -1.0], "scale entries must be > 0"),
        ([1.0, 1.0], [1.0], "scale must have length 2"),
    ],
)
def test_prepare_rejects_malformed_vectors(
    x0: list[float], scale: list[float] | None, message: str
) -> None:
    workspace = SolveWorkspace.create(2, 100.0)

    with pytest.raises(ValueError, match=message):
        workspace.prepare(x0, scale)


def test_create_validates_size_and_factor() -> None:
    with pytest.raises(ValueError, match="size"):
        SolveWorkspace.create(0, 100.0)
    with pytest.raises(ValueError, match="initial_factor"):
        SolveWorkspace.create(1, 0.0)

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from algloop.diagnostics import (
    DiagnosticEvent,
    DiagnosticRecorder,
    Severity,
    format_matrix,
    format_vector,
)

from .config import SolverDefaults, load_solver_defaults
from .kernel import MinpackKernel, NumericalKernel
from .matrix import DenseMatrix
from .status import ResultStatus


@dataclass(frozen=True, slots=True)
class LinearSolveResult:
    status: ResultStatus
    x: NDArray[np.float64] | None
    system_id: str
    pivot_index: int | None
    illegal_argument: int | None
    cond_ind: float
    failure_code: str | None
    failure_message: str | None
    diagnostics: tuple[DiagnosticEvent, ...]


def solve_linear_system(  # noqa: PLR0913
    A: DenseMatrix,
    b: NDArray[np.float64],
    *,
    system_id: str,
    kernel: NumericalKernel | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
    time: float | None = None,
) -> LinearSolveResult:
    if not isinstance(A, DenseMatrix):
        raise TypeError("matrix A must be a DenseMatrix")

    numerical_kernel = kernel if kernel is not None else MinpackKernel()
    recorder = diagnostics if diagnostics is not None else DiagnosticRecorder()
    solver_defaults = defaults if defaults is not None else load_solver_defaults()
    mark = recorder.mark()

    if recorder.enabled(Severity.DEBUG):
        recorder.record(
            "D_LIN_SYSTEM_STATE",
            f"linear system {system_id}: A = {format_matrix(A.storage)}, "
            f"b = {format_vector(b)}",
            severity=Severity.DEBUG,
            system_id=system_id,
            time=time,
        )

    # A is factorized in place; b only receives the solution on success.
    kernel_result = numerical_kernel.lu_solve(A, b)

    if kernel_result.info < 0:
        argument = -kernel_result.info
        message = (
            f"error solving linear system {system_id}{_at_time(time)}: "
            f"argument {argument} illegal ({kernel_result.message})"
        )
        recorder.record(
            "E_LIN_ARGUMENT_ILLEGAL",
            message,
            severity=Severity.ERROR,
            system_id=system_id,
            time=time,
            witness={"argument_index": argument},
        )
        return LinearSolveResult(
            status=ResultStatus.IMPROPER_INPUT,
            x=None,
            system_id=system_id,
            pivot_index=None,
            illegal_argument=argument,
            cond_ind=float("nan"),
            failure_code="E_LIN_ARGUMENT_ILLEGAL",
            failure_message=message,
            diagnostics=recorder.close(mark),
        )

    cond_ind = _pivot_ratio(kernel_result.pivot_magnitudes)
    solution = kernel_result.x
    # dgesv only flags exactly zero pivots; rounding residue counts as zero too.
    numerically_singular = (
        np.isfinite(cond_ind) and cond_ind <= solver_defaults.singular_pivot_ratio
    )
    if (
        kernel_result.info > 0
        or numerically_singular
        or solution is None
        or not np.isfinite(solution).all()
    ):
        pivot_index = kernel_result.info if kernel_result.info > 0 else None
        if pivot_index is None and numerically_singular:
            pivot_index = _smallest_pivot(kernel_result.pivot_magnitudes)
        message = f"error solving linear system {system_id}{_at_time(time)}, system is singular"
        recorder.record(
            "E_LIN_SINGULAR",
            message,
            severity=Severity.ERROR,
            system_id=system_id,
            time=time,
            witness={"pivot_index": pivot_index, "kernel_message": kernel_result.message},
        )
        return LinearSolveResult(
            status=ResultStatus.SINGULAR,
            x=None,
            system_id=system_id,
            pivot_index=pivot_index,
            illegal_argument=None,
            cond_ind=cond_ind,
            failure_code="E_LIN_SINGULAR",
            failure_message=message,
            diagnostics=recorder.close(mark),
        )

    if np.isfinite(cond_ind) and cond_ind <= solver_defaults.ill_conditioned_warn_max:
        recorder.record(
            "W_LIN_ILL_CONDITIONED",
            f"linear system {system_id} pivot ratio {cond_ind:.3e} is <= "
            f"{solver_defaults.ill_conditioned_warn_max:.1e}",
            severity=Severity.WARNING,
            system_id=system_id,
            time=time,
        )

    if isinstance(b, np.ndarray) and b.dtype == np.float64 and b.shape == solution.shape:
        b[...] = solution
        x = b
    else:
        x = solution
    return LinearSolveResult(
        status=ResultStatus.SUCCESS,
        x=x,
        system_id=system_id,
        pivot_index=None,
        illegal_argument=None,
        cond_ind=cond_ind,
        failure_code=None,
        failure_message=None,
        diagnostics=recorder.close(mark),
    )


def _pivot_ratio(magnitudes: NDArray[np.float64] | None) -> float:
    if magnitudes is None:
        return float("nan")
    if magnitudes.size == 0:
        return 1.0
    if not np.isfinite(magnitudes).all():
        return float("nan")
    max_mag = float(np.max(magnitudes))
    if max_mag <= 0.0:
        return 0.0
    return float(np.min(magnitudes)) / max_mag


def _smallest_pivot(magnitudes: NDArray[np.float64] | None) -> int | None:
    if magnitudes is None or magnitudes.size == 0:
        return None
    return int(np.argmin(magnitudes)) + 1


def _at_time(time: float | None) -> str:
    return "" if time is None else f" at time {time:g}"

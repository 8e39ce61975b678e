from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from algloop.diagnostics import DiagnosticEvent, DiagnosticRecorder, Severity

from .config import SolverDefaults, load_solver_defaults
from .nonlinear import NonlinearSolveResult
from .status import ResultStatus

type DiscreteAssignment = tuple[bool, ...]
type DiscreteCandidateTable = tuple[DiscreteAssignment, ...]
type ContinuousSolveFn = Callable[[DiscreteAssignment], NonlinearSolveResult]
type ImpliedDiscreteFn = Callable[
    [NDArray[np.float64], DiscreteAssignment], Sequence[float | bool] | NDArray[np.float64]
]


@dataclass(frozen=True, slots=True)
class MixedResolutionResult:
    status: ResultStatus
    x: NDArray[np.float64] | None
    assignment: DiscreteAssignment | None
    candidate_index: int
    candidates_tried: int
    solve_result: NonlinearSolveResult | None
    failure_code: str | None
    failure_message: str | None
    diagnostics: tuple[DiagnosticEvent, ...]


def build_candidate_table(
    rows: Sequence[Sequence[bool | int]],
    size: int,
) -> DiscreteCandidateTable:
    if size < 1:
        raise ValueError("discrete assignment size must be >= 1")
    if not rows:
        raise ValueError("candidate table must contain at least one row")
    table: list[DiscreteAssignment] = []
    for index, row in enumerate(rows):
        if len(row) != size:
            raise ValueError(f"candidate row {index} must have length {size}")
        for value in row:
            if isinstance(value, bool):
                continue
            if value not in (0, 1):
                raise ValueError(f"candidate row {index} must hold booleans or 0/1")
        table.append(tuple(bool(value) for value in row))
    return tuple(table)


def candidate_table_from_flat(values: Sequence[bool | int], size: int) -> DiscreteCandidateTable:
    if size < 1 or len(values) % size != 0:
        raise ValueError("flat candidate buffer length must be a multiple of size")
    rows = [values[start : start + size] for start in range(0, len(values), size)]
    return build_candidate_table(rows, size)


def resolve_mixed_system(  # noqa: PLR0913
    system_id: str,
    candidates: DiscreteCandidateTable,
    solve_continuous: ContinuousSolveFn,
    implied_discrete: ImpliedDiscreteFn,
    *,
    tolerance: float | None = None,
    previous_assignment: DiscreteAssignment | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
    time: float | None = None,
) -> MixedResolutionResult:
    if not candidates:
        raise ValueError("candidate table must contain at least one row")
    size = len(candidates[0])
    if any(len(row) != size for row in candidates):
        raise ValueError("candidate rows must share one length")
    solver_defaults = defaults if defaults is not None else load_solver_defaults()
    discrete_tolerance = (
        tolerance if tolerance is not None else solver_defaults.discrete_tolerance
    )
    recorder = diagnostics if diagnostics is not None else DiagnosticRecorder()
    mark = recorder.mark()

    index = 0
    last_solve: NonlinearSolveResult | None = None
    try:
        while index < len(candidates):
            assignment = candidates[index]
            solve_result = solve_continuous(assignment)
            last_solve = solve_result
            if solve_result.status.is_failure:
                message = (
                    f"mixed system {system_id}{_at_time(time)}: continuous solve failed for "
                    f"candidate {index} with status {solve_result.status.value}"
                )
                recorder.record(
                    "E_MIXED_SUBSOLVE_FAILED",
                    message,
                    severity=Severity.ERROR,
                    system_id=system_id,
                    time=time,
                    candidate_index=index,
                    witness={"subsolve_failure_code": solve_result.failure_code},
                )
                return MixedResolutionResult(
                    status=solve_result.status,
                    x=None,
                    assignment=None,
                    candidate_index=index,
                    candidates_tried=index + 1,
                    solve_result=solve_result,
                    failure_code="E_MIXED_SUBSOLVE_FAILED",
                    failure_message=message,
                    diagnostics=recorder.close(mark),
                )

            implied = np.asarray(
                implied_discrete(solve_result.x.copy(), assignment), dtype=np.float64
            )
            if implied.shape != (size,):
                raise ValueError(
                    f"implied discrete values for mixed system {system_id} must have length {size}"
                )
            assumed = np.asarray(assignment, dtype=np.float64)
            if bool(np.all(np.abs(assumed - implied) <= discrete_tolerance)):
                recorder.record(
                    "I_MIXED_RESOLVED",
                    f"mixed system {system_id} resolved with candidate {index}",
                    severity=Severity.INFO,
                    system_id=system_id,
                    time=time,
                    candidate_index=index,
                )
                _record_discrete_state(recorder, system_id, assignment, previous_assignment, time)
                return MixedResolutionResult(
                    status=ResultStatus.SUCCESS,
                    x=solve_result.x.copy(),
                    assignment=assignment,
                    candidate_index=index,
                    candidates_tried=index + 1,
                    solve_result=solve_result,
                    failure_code=None,
                    failure_message=None,
                    diagnostics=recorder.close(mark),
                )
            index += 1
    except Exception:
        recorder.close(mark)
        raise

    message = (
        f"mixed system {system_id}{_at_time(time)}: none of {len(candidates)} "
        "discrete candidates is consistent with its continuous solution"
    )
    recorder.record(
        "E_MIXED_NO_CONSISTENT_CANDIDATE",
        message,
        severity=Severity.ERROR,
        system_id=system_id,
        time=time,
    )
    return MixedResolutionResult(
        status=ResultStatus.NO_PROGRESS,
        x=None,
        assignment=None,
        candidate_index=len(candidates),
        candidates_tried=len(candidates),
        solve_result=last_solve,
        failure_code="E_MIXED_NO_CONSISTENT_CANDIDATE",
        failure_message=message,
        diagnostics=recorder.close(mark),
    )


def _record_discrete_state(
    recorder: DiagnosticRecorder,
    system_id: str,
    assignment: DiscreteAssignment,
    previous_assignment: DiscreteAssignment | None,
    time: float | None,
) -> None:
    if not recorder.enabled(Severity.DEBUG):
        return
    for position, value in enumerate(assignment):
        text = f"discrete[{position}] = {int(value)}"
        if previous_assignment is not None and position < len(previous_assignment):
            text += f"  pre(discrete[{position}]) = {int(previous_assignment[position])}"
        recorder.record(
            "D_MIXED_DISCRETE_STATE",
            text,
            severity=Severity.DEBUG,
            system_id=system_id,
            time=time,
            variable_index=position,
        )


def _at_time(time: float | None) -> str:
    return "" if time is None else f" at time {time:g}"

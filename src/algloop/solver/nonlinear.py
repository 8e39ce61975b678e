from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from algloop.diagnostics import (
    DiagnosticEvent,
    DiagnosticRecorder,
    Severity,
    format_variable_rows,
)

from .config import SolverDefaults, load_solver_defaults
from .extrapolate import SolveHistory
from .kernel import MinpackKernel, NumericalKernel, ResidualCallback, RootFindOptions
from .ladder import (
    ANALYTIC_JACOBIAN_TIERS,
    DERIVATIVE_FREE_TIERS,
    EXHAUSTED_TIER,
    INITIAL_ATTEMPT_TIER,
    LadderInputs,
    RetryTier,
    select_retry_tier,
)
from .status import ResultStatus
from .workspace import AUTO_SCALE_MODE, EquationSystemSpec, SolveWorkspace

_FAILURE_CODES: dict[ResultStatus, str] = {
    ResultStatus.IMPROPER_INPUT: "E_NLS_IMPROPER_INPUT",
    ResultStatus.EXCEEDED_EVALUATIONS: "E_NLS_EXCEEDED_EVALUATIONS",
    ResultStatus.NO_PROGRESS: "E_NLS_NO_PROGRESS",
    ResultStatus.SINGULAR: "E_NLS_FATAL",
    ResultStatus.FATAL: "E_NLS_FATAL",
}


@dataclass(frozen=True, slots=True)
class AttemptTraceRecord:
    attempt_index: int
    tier: int
    outcome: ResultStatus
    kernel_info: int
    factor: float
    mode: int
    function_evaluations: int
    residual_inf_norm: float
    retries: int
    retries2: int
    retries3: int


@dataclass(frozen=True, slots=True)
class NonlinearSolveResult:
    status: ResultStatus
    x: NDArray[np.float64]
    fvec: NDArray[np.float64]
    system_id: str
    function_evaluations: int
    jacobian_evaluations: int
    kernel_calls: int
    retry_tiers_used: tuple[int, ...]
    attempt_trace: tuple[AttemptTraceRecord, ...]
    failure_code: str | None
    failure_message: str | None
    diagnostics: tuple[DiagnosticEvent, ...]

    @property
    def iterations_used(self) -> int:
        return self.function_evaluations

    @property
    def succeeded(self) -> bool:
        return self.status is ResultStatus.SUCCESS


def solve_nonlinear_system(  # noqa: PLR0913
    spec: EquationSystemSpec,
    evaluate: ResidualCallback,
    *,
    x0: ArrayLike,
    extrapolated_guess: ArrayLike | None = None,
    previous_solution: ArrayLike | None = None,
    scale: ArrayLike | None = None,
    kernel: NumericalKernel | None = None,
    workspace: SolveWorkspace | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
    time: float | None = None,
) -> NonlinearSolveResult:
    tiers = ANALYTIC_JACOBIAN_TIERS if spec.has_analytic_jacobian else DERIVATIVE_FREE_TIERS
    return _run_solve(
        spec,
        evaluate,
        tiers=tiers,
        x0=x0,
        extrapolated_guess=extrapolated_guess,
        previous_solution=previous_solution,
        scale=scale,
        kernel=kernel,
        workspace=workspace,
        diagnostics=diagnostics,
        defaults=defaults,
        time=time,
    )


def solve_derivative_free(  # noqa: PLR0913
    spec: EquationSystemSpec,
    evaluate: ResidualCallback,
    *,
    x0: ArrayLike,
    extrapolated_guess: ArrayLike | None = None,
    previous_solution: ArrayLike | None = None,
    scale: ArrayLike | None = None,
    kernel: NumericalKernel | None = None,
    workspace: SolveWorkspace | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
    time: float | None = None,
) -> NonlinearSolveResult:
    if spec.has_analytic_jacobian:
        raise ValueError(f"system {spec.system_id} declares an analytic Jacobian")
    return solve_nonlinear_system(
        spec,
        evaluate,
        x0=x0,
        extrapolated_guess=extrapolated_guess,
        previous_solution=previous_solution,
        scale=scale,
        kernel=kernel,
        workspace=workspace,
        diagnostics=diagnostics,
        defaults=defaults,
        time=time,
    )


def solve_with_analytic_jacobian(  # noqa: PLR0913
    spec: EquationSystemSpec,
    evaluate: ResidualCallback,
    *,
    x0: ArrayLike,
    extrapolated_guess: ArrayLike | None = None,
    previous_solution: ArrayLike | None = None,
    scale: ArrayLike | None = None,
    kernel: NumericalKernel | None = None,
    workspace: SolveWorkspace | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
    time: float | None = None,
) -> NonlinearSolveResult:
    if not spec.has_analytic_jacobian:
        raise ValueError(f"system {spec.system_id} does not declare an analytic Jacobian")
    return solve_nonlinear_system(
        spec,
        evaluate,
        x0=x0,
        extrapolated_guess=extrapolated_guess,
        previous_solution=previous_solution,
        scale=scale,
        kernel=kernel,
        workspace=workspace,
        diagnostics=diagnostics,
        defaults=defaults,
        time=time,
    )


def solve_from_history(  # noqa: PLR0913
    spec: EquationSystemSpec,
    evaluate: ResidualCallback,
    history: SolveHistory,
    *,
    scale: ArrayLike | None = None,
    kernel: NumericalKernel | None = None,
    workspace: SolveWorkspace | None = None,
    diagnostics: DiagnosticRecorder | None = None,
    defaults: SolverDefaults | None = None,
) -> NonlinearSolveResult:
    guess = history.extrapolated_guess()
    return solve_nonlinear_system(
        spec,
        evaluate,
        x0=guess,
        extrapolated_guess=guess,
        previous_solution=history.previous_solution,
        scale=scale,
        kernel=kernel,
        workspace=workspace,
        diagnostics=diagnostics,
        defaults=defaults,
        time=history.current_time,
    )


def _run_solve(  # noqa: PLR0913, PLR0915
    spec: EquationSystemSpec,
    evaluate: ResidualCallback,
    *,
    tiers: tuple[RetryTier, ...],
    x0: ArrayLike,
    extrapolated_guess: ArrayLike | None,
    previous_solution: ArrayLike | None,
    scale: ArrayLike | None,
    kernel: NumericalKernel | None,
    workspace: SolveWorkspace | None,
    diagnostics: DiagnosticRecorder | None,
    defaults: SolverDefaults | None,
    time: float | None,
) -> NonlinearSolveResult:
    solver_defaults = defaults if defaults is not None else load_solver_defaults()
    numerical_kernel = kernel if kernel is not None else MinpackKernel()
    recorder = diagnostics if diagnostics is not None else DiagnosticRecorder()
    mark = recorder.mark()
    system_id = spec.system_id

    recorder.record(
        "I_NLS_START",
        f"start solving nonlinear system {system_id}{_at_time(time)}",
        severity=Severity.INFO,
        system_id=system_id,
        time=time,
    )

    ws = (
        workspace
        if workspace is not None
        else SolveWorkspace.create(spec.size, solver_defaults.nonlinear.initial_factor)
    )
    try:
        if ws.size != spec.size:
            raise ValueError(f"workspace size {ws.size} does not match system size {spec.size}")
        ws.prepare(x0, scale)
        guess = _seed_vector(extrapolated_guess, ws.x, spec.size, "extrapolated_guess")
        previous = _seed_vector(previous_solution, ws.x, spec.size, "previous_solution")
    except ValueError as exc:
        return _improper_input_result(spec, recorder, mark, str(exc), time)

    ladder_inputs = LadderInputs(
        extrapolated_guess=guess,
        previous_solution=previous,
        constants=solver_defaults.retry_ladder,
    )
    root_find = (
        numerical_kernel.root_find_with_jacobian
        if spec.has_analytic_jacobian
        else numerical_kernel.root_find
    )

    trace: list[AttemptTraceRecord] = []
    tiers_used: list[int] = []
    function_evaluations = 0
    jacobian_evaluations = 0
    pending_tier = INITIAL_ATTEMPT_TIER
    kernel_info = 0

    while True:
        options = RootFindOptions(
            xtol=spec.absolute_tolerance,
            max_function_evaluations=spec.max_function_evaluations,
            epsfcn=solver_defaults.nonlinear.epsfcn,
            factor=ws.factor,
            mode=ws.mode,
            diag=ws.diag.copy(),
        )
        outcome = root_find(evaluate, ws.x.copy(), options)
        kernel_info = outcome.info
        function_evaluations += outcome.function_evaluations
        jacobian_evaluations += outcome.jacobian_evaluations
        if outcome.x.shape == ws.x.shape:
            ws.x[...] = outcome.x
        if outcome.fvec.shape == ws.fvec.shape:
            ws.fvec[...] = outcome.fvec
        trace.append(
            AttemptTraceRecord(
                attempt_index=len(trace),
                tier=pending_tier,
                outcome=outcome.status,
                kernel_info=outcome.info,
                factor=options.factor,
                mode=options.mode,
                function_evaluations=outcome.function_evaluations,
                residual_inf_norm=_inf_norm(ws.fvec),
                retries=ws.retries,
                retries2=ws.retries2,
                retries3=ws.retries3,
            )
        )

        if outcome.status is ResultStatus.SUCCESS:
            break
        if outcome.status is ResultStatus.IMPROPER_INPUT:
            return _improper_input_result(
                spec,
                recorder,
                mark,
                outcome.message,
                time,
                workspace=ws,
                trace=tuple(trace),
                tiers_used=tuple(tiers_used),
                function_evaluations=function_evaluations,
                jacobian_evaluations=jacobian_evaluations,
            )
        if outcome.status is not ResultStatus.NO_PROGRESS:
            return _failure_result(
                spec,
                recorder,
                mark,
                status=outcome.status,
                message=(
                    f"nonlinear system {system_id} failed{_at_time(time)}: {outcome.message}"
                ),
                time=time,
                workspace=ws,
                trace=tuple(trace),
                tiers_used=tuple(tiers_used),
                function_evaluations=function_evaluations,
                jacobian_evaluations=jacobian_evaluations,
            )

        tier = select_retry_tier(tiers, ws)
        if tier is None:
            return _failure_result(
                spec,
                recorder,
                mark,
                status=ResultStatus.NO_PROGRESS,
                message=(
                    f"nonlinear system {system_id} failed{_at_time(time)}: "
                    f"no progress after {len(trace)} attempts"
                ),
                time=time,
                workspace=ws,
                trace=tuple(trace),
                tiers_used=tuple(tiers_used),
                function_evaluations=function_evaluations,
                jacobian_evaluations=jacobian_evaluations,
            )
        retry_message = tier.apply(ws, ladder_inputs)
        tiers_used.append(tier.tier)
        pending_tier = tier.tier
        recorder.record(
            "I_NLS_RETRY",
            f"system {system_id}: {retry_message}",
            severity=Severity.INFO,
            system_id=system_id,
            time=time,
            retry_tier=tier.tier,
        )

    restarts = sum(1 for tier in tiers_used if tier >= 5)
    recorder.record(
        "I_NLS_SOLVED",
        f"system {system_id} solved with {len(tiers_used) - restarts} retries and "
        f"{restarts} restarts; info = {kernel_info}, nfunc = {function_evaluations}",
        severity=Severity.INFO,
        system_id=system_id,
        time=time,
    )
    _record_variable_state(recorder, ws, system_id, time)
    return NonlinearSolveResult(
        status=ResultStatus.SUCCESS,
        x=ws.x.copy(),
        fvec=ws.fvec.copy(),
        system_id=system_id,
        function_evaluations=function_evaluations,
        jacobian_evaluations=jacobian_evaluations,
        kernel_calls=len(trace),
        retry_tiers_used=tuple(tiers_used),
        attempt_trace=tuple(trace),
        failure_code=None,
        failure_message=None,
        diagnostics=recorder.close(mark),
    )


def _failure_result(  # noqa: PLR0913
    spec: EquationSystemSpec,
    recorder: DiagnosticRecorder,
    mark: int,
    *,
    status: ResultStatus,
    message: str,
    time: float | None,
    workspace: SolveWorkspace,
    trace: tuple[AttemptTraceRecord, ...],
    tiers_used: tuple[int, ...],
    function_evaluations: int,
    jacobian_evaluations: int,
) -> NonlinearSolveResult:
    code = _FAILURE_CODES[status]
    recorder.record(
        code,
        message,
        severity=Severity.ERROR,
        system_id=spec.system_id,
        time=time,
        retry_tier=EXHAUSTED_TIER if status is ResultStatus.NO_PROGRESS else None,
    )
    _record_variable_state(recorder, workspace, spec.system_id, time)
    return NonlinearSolveResult(
        status=status,
        x=workspace.x.copy(),
        fvec=workspace.fvec.copy(),
        system_id=spec.system_id,
        function_evaluations=function_evaluations,
        jacobian_evaluations=jacobian_evaluations,
        kernel_calls=len(trace),
        retry_tiers_used=tiers_used,
        attempt_trace=trace,
        failure_code=code,
        failure_message=message,
        diagnostics=recorder.close(mark),
    )


def _improper_input_result(  # noqa: PLR0913
    spec: EquationSystemSpec,
    recorder: DiagnosticRecorder,
    mark: int,
    reason: str,
    time: float | None,
    *,
    workspace: SolveWorkspace | None = None,
    trace: tuple[AttemptTraceRecord, ...] = (),
    tiers_used: tuple[int, ...] = (),
    function_evaluations: int = 0,
    jacobian_evaluations: int = 0,
) -> NonlinearSolveResult:
    code = _FAILURE_CODES[ResultStatus.IMPROPER_INPUT]
    message = f"improper input for nonlinear system {spec.system_id}{_at_time(time)}: {reason}"
    recorder.record(
        code,
        message,
        severity=Severity.ERROR,
        system_id=spec.system_id,
        time=time,
    )
    if workspace is not None and workspace.size == spec.size:
        x = workspace.x.copy()
        fvec = workspace.fvec.copy()
    else:
        x = np.full(spec.size, np.nan, dtype=np.float64)
        fvec = np.full(spec.size, np.nan, dtype=np.float64)
    return NonlinearSolveResult(
        status=ResultStatus.IMPROPER_INPUT,
        x=x,
        fvec=fvec,
        system_id=spec.system_id,
        function_evaluations=function_evaluations,
        jacobian_evaluations=jacobian_evaluations,
        kernel_calls=len(trace),
        retry_tiers_used=tiers_used,
        attempt_trace=trace,
        failure_code=code,
        failure_message=message,
        diagnostics=recorder.close(mark),
    )


def _record_variable_state(
    recorder: DiagnosticRecorder,
    workspace: SolveWorkspace,
    system_id: str,
    time: float | None,
) -> None:
    if not recorder.enabled(Severity.DEBUG):
        return
    # In mode 1 MINPACK scales internally and diag only holds the requested scale.
    scale_label = "requested-scale" if workspace.mode == AUTO_SCALE_MODE else "scale-factor"
    rows = format_variable_rows(
        workspace.diag, workspace.fvec, workspace.x, scale_label=scale_label
    )
    for index, row in enumerate(rows):
        recorder.record(
            "D_NLS_VARIABLE_STATE",
            row,
            severity=Severity.DEBUG,
            system_id=system_id,
            time=time,
            variable_index=index,
        )


def _seed_vector(
    values: ArrayLike | None,
    fallback: NDArray[np.float64],
    size: int,
    name: str,
) -> NDArray[np.float64]:
    if values is None:
        return fallback.copy()
    vector = np.array(values, dtype=np.float64).reshape(-1)
    if vector.shape[0] != size:
        raise ValueError(f"{name} must have length {size}")
    if not np.isfinite(vector).all():
        raise ValueError(f"{name} must be finite")
    return vector


def _inf_norm(vector: NDArray[np.float64]) -> float:
    if vector.size == 0:
        return 0.0
    return float(np.max(np.abs(vector)))


def _at_time(time: float | None) -> str:
    return "" if time is None else f" at time {time:g}"

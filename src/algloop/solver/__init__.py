from .config import (
    DEFAULT_SOLVER_DEFAULTS_PATH,
    NonlinearDefaults,
    RetryLadderDefaults,
    SolverConfigError,
    SolverDefaults,
    load_solver_defaults,
)
from .extrapolate import SolveHistory, TimeSample, extrapolate, extrapolate_samples
from .kernel import (
    LinearKernelResult,
    MinpackKernel,
    NumericalKernel,
    ResidualCallback,
    RootFindOptions,
    RootFindResult,
)
from .ladder import (
    ANALYTIC_JACOBIAN_TIERS,
    DERIVATIVE_FREE_TIERS,
    EXHAUSTED_TIER,
    INITIAL_ATTEMPT_TIER,
    RetryTier,
)
from .linear import LinearSolveResult, solve_linear_system
from .matrix import DenseMatrix
from .mixed import (
    DiscreteAssignment,
    DiscreteCandidateTable,
    MixedResolutionResult,
    build_candidate_table,
    candidate_table_from_flat,
    resolve_mixed_system,
)
from .nonlinear import (
    AttemptTraceRecord,
    NonlinearSolveResult,
    solve_derivative_free,
    solve_from_history,
    solve_nonlinear_system,
    solve_with_analytic_jacobian,
)
from .repro_snapshot import build_solver_config_snapshot
from .status import EvaluationMode, ResultStatus, status_from_minpack_info
from .workspace import (
    AUTO_SCALE_MODE,
    USER_SCALE_MODE,
    EquationSystemSpec,
    SolveWorkspace,
    build_system_spec,
)

__all__ = [
    "ANALYTIC_JACOBIAN_TIERS",
    "AUTO_SCALE_MODE",
    "DEFAULT_SOLVER_DEFAULTS_PATH",
    "DERIVATIVE_FREE_TIERS",
    "EXHAUSTED_TIER",
    "INITIAL_ATTEMPT_TIER",
    "USER_SCALE_MODE",
    "AttemptTraceRecord",
    "DenseMatrix",
    "DiscreteAssignment",
    "DiscreteCandidateTable",
    "EquationSystemSpec",
    "EvaluationMode",
    "LinearKernelResult",
    "LinearSolveResult",
    "MinpackKernel",
    "MixedResolutionResult",
    "NonlinearDefaults",
    "NonlinearSolveResult",
    "NumericalKernel",
    "ResidualCallback",
    "ResultStatus",
    "RetryLadderDefaults",
    "RetryTier",
    "RootFindOptions",
    "RootFindResult",
    "SolveHistory",
    "SolveWorkspace",
    "SolverConfigError",
    "SolverDefaults",
    "TimeSample",
    "build_candidate_table",
    "build_solver_config_snapshot",
    "build_system_spec",
    "candidate_table_from_flat",
    "extrapolate",
    "extrapolate_samples",
    "load_solver_defaults",
    "resolve_mixed_system",
    "solve_derivative_free",
    "solve_from_history",
    "solve_linear_system",
    "solve_nonlinear_system",
    "solve_with_analytic_jacobian",
    "status_from_minpack_info",
]

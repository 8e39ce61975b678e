from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import numpy as np
from numpy.typing import NDArray
from scipy.linalg import lapack  # type: ignore[import-untyped]
from scipy.optimize import root  # type: ignore[import-untyped]

from .matrix import DenseMatrix
from .status import EvaluationMode, ResultStatus, status_from_minpack_info

type ResidualCallback = Callable[[NDArray[np.float64], EvaluationMode], NDArray[np.float64]]

# Argument positions in the LAPACK dgesv calling sequence.
DGESV_ARG_N = 1
DGESV_ARG_A = 3
DGESV_ARG_B = 6


@dataclass(frozen=True, slots=True)
class RootFindOptions:
    xtol: float
    max_function_evaluations: int
    epsfcn: float
    factor: float
    mode: int
    diag: NDArray[np.float64] | None = None


@dataclass(frozen=True, slots=True)
class RootFindResult:
    status: ResultStatus
    info: int
    x: NDArray[np.float64]
    fvec: NDArray[np.float64]
    function_evaluations: int
    jacobian_evaluations: int
    message: str


@dataclass(frozen=True, slots=True)
class LinearKernelResult:
    info: int
    x: NDArray[np.float64] | None
    pivot_magnitudes: NDArray[np.float64] | None
    message: str


@runtime_checkable
class NumericalKernel(Protocol):
    def lu_solve(self, A: DenseMatrix, b: NDArray[np.float64]) -> LinearKernelResult: ...

    def root_find(
        self,
        evaluate: ResidualCallback,
        x0: NDArray[np.float64],
        options: RootFindOptions,
    ) -> RootFindResult: ...

    def root_find_with_jacobian(
        self,
        evaluate: ResidualCallback,
        x0: NDArray[np.float64],
        options: RootFindOptions,
    ) -> RootFindResult: ...


@dataclass(frozen=True, slots=True)
class MinpackKernel:
    kernel_id: str = "scipy_minpack_lapack"

    def lu_solve(self, A: DenseMatrix, b: NDArray[np.float64]) -> LinearKernelResult:
        vector = np.asarray(b, dtype=np.float64)
        n_rows, n_cols = A.shape
        if n_rows == 0:
            return _illegal_argument(DGESV_ARG_N, "system size must be >= 1")
        if n_rows != n_cols or not np.isfinite(A.storage).all():
            return _illegal_argument(DGESV_ARG_A, "matrix must be square and finite")
        if vector.ndim != 1 or vector.shape[0] != n_rows or not np.isfinite(vector).all():
            return _illegal_argument(
                DGESV_ARG_B, "rhs vector must be finite and match the matrix dimension"
            )

        storage = A.storage
        try:
            lu, _piv, x, info = lapack.dgesv(storage, vector, overwrite_a=1, overwrite_b=0)
        except ValueError as exc:  # pragma: no cover - inputs are validated above
            return _illegal_argument(DGESV_ARG_A, str(exc))
        if lu is not storage:
            storage[...] = lu
        info = int(info)
        if info < 0:
            return _illegal_argument(-info, f"dgesv reported illegal argument {-info}")
        pivots = np.abs(np.diagonal(lu)).astype(np.float64)
        if info > 0:
            return LinearKernelResult(
                info=info,
                x=None,
                pivot_magnitudes=pivots,
                message=f"U({info},{info}) is exactly zero",
            )
        return LinearKernelResult(
            info=0,
            x=np.asarray(x, dtype=np.float64).reshape(-1),
            pivot_magnitudes=pivots,
            message="solved",
        )

    def root_find(
        self,
        evaluate: ResidualCallback,
        x0: NDArray[np.float64],
        options: RootFindOptions,
    ) -> RootFindResult:
        return self._hybr(evaluate, x0, options, with_jacobian=False)

    def root_find_with_jacobian(
        self,
        evaluate: ResidualCallback,
        x0: NDArray[np.float64],
        options: RootFindOptions,
    ) -> RootFindResult:
        return self._hybr(evaluate, x0, options, with_jacobian=True)

    def _hybr(
        self,
        evaluate: ResidualCallback,
        x0: NDArray[np.float64],
        options: RootFindOptions,
        *,
        with_jacobian: bool,
    ) -> RootFindResult:
        start = np.array(x0, dtype=np.float64, copy=True)
        size = int(start.shape[0])

        def _residual(x: NDArray[np.float64]) -> NDArray[np.float64]:
            return np.asarray(
                evaluate(np.array(x, dtype=np.float64), EvaluationMode.RESIDUAL),
                dtype=np.float64,
            ).reshape(-1)

        def _jacobian(x: NDArray[np.float64]) -> NDArray[np.float64]:
            return np.asarray(
                evaluate(np.array(x, dtype=np.float64), EvaluationMode.JACOBIAN),
                dtype=np.float64,
            ).reshape((size, size))

        hybr_options: dict[str, object] = {
            "xtol": options.xtol,
            "maxfev": options.max_function_evaluations,
            "factor": options.factor,
        }
        if not with_jacobian:
            hybr_options["eps"] = options.epsfcn
        # hybrd/hybrj run in mode 2 only when a diag vector is supplied.
        if options.mode == 2 and options.diag is not None:
            hybr_options["diag"] = np.array(options.diag, dtype=np.float64, copy=True)

        try:
            solution = root(
                _residual,
                start,
                jac=_jacobian if with_jacobian else None,
                method="hybr",
                options=hybr_options,
            )
        except Exception as exc:  # noqa: BLE001 - mapped onto the status taxonomy
            return RootFindResult(
                status=_classify_kernel_exception(exc),
                info=0,
                x=start,
                fvec=np.full(size, np.nan, dtype=np.float64),
                function_evaluations=0,
                jacobian_evaluations=0,
                message=f"{type(exc).__name__}: {exc}",
            )

        info = int(solution.status)
        x = np.asarray(solution.x, dtype=np.float64).reshape(-1)
        fvec = np.asarray(solution.fun, dtype=np.float64).reshape(-1)
        status = status_from_minpack_info(info)
        message = str(solution.message)
        if status is not ResultStatus.IMPROPER_INPUT and not (
            np.isfinite(x).all() and np.isfinite(fvec).all()
        ):
            status = ResultStatus.FATAL
            message = "iteration produced non-finite values"
        return RootFindResult(
            status=status,
            info=info,
            x=x,
            fvec=fvec,
            function_evaluations=int(getattr(solution, "nfev", 0)),
            jacobian_evaluations=int(getattr(solution, "njev", 0)),
            message=message,
        )


def _illegal_argument(argument_index: int, message: str) -> LinearKernelResult:
    return LinearKernelResult(
        info=-argument_index,
        x=None,
        pivot_magnitudes=None,
        message=message,
    )


def _classify_kernel_exception(exc: Exception) -> ResultStatus:
    if isinstance(exc, TypeError | ValueError):
        return ResultStatus.IMPROPER_INPUT
    return ResultStatus.FATAL

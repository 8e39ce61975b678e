from __future__ import annotations

from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from .config import SolverDefaults, load_solver_defaults

AUTO_SCALE_MODE = 1
USER_SCALE_MODE = 2


@dataclass(frozen=True, slots=True)
class EquationSystemSpec:
    system_id: str
    size: int
    absolute_tolerance: float
    max_function_evaluations: int
    has_analytic_jacobian: bool = False

    def __post_init__(self) -> None:
        if not self.system_id:
            raise ValueError("system_id must be non-empty")
        if self.size < 1:
            raise ValueError("size must be >= 1")
        if not np.isfinite(self.absolute_tolerance) or self.absolute_tolerance <= 0.0:
            raise ValueError("absolute_tolerance must be finite and > 0")
        if self.max_function_evaluations < 1:
            raise ValueError("max_function_evaluations must be >= 1")


def build_system_spec(
    system_id: str,
    size: int,
    *,
    has_analytic_jacobian: bool = False,
    defaults: SolverDefaults | None = None,
) -> EquationSystemSpec:
    solver_defaults = defaults if defaults is not None else load_solver_defaults()
    nonlinear = solver_defaults.nonlinear
    max_evaluations = (
        nonlinear.analytic_jacobian_max_function_evaluations
        if has_analytic_jacobian
        else size * nonlinear.max_function_evaluations_per_unknown
    )
    return EquationSystemSpec(
        system_id=system_id,
        size=size,
        absolute_tolerance=nonlinear.xtol,
        max_function_evaluations=max_evaluations,
        has_analytic_jacobian=has_analytic_jacobian,
    )


@dataclass(slots=True)
class SolveWorkspace:
    size: int
    initial_factor: float
    x: NDArray[np.float64]
    fvec: NDArray[np.float64]
    diag: NDArray[np.float64]
    diag_save: NDArray[np.float64]
    factor: float
    mode: int = AUTO_SCALE_MODE
    retries: int = 0
    retries2: int = 0
    retries3: int = 0

    @classmethod
    def create(cls, size: int, initial_factor: float) -> SolveWorkspace:
        if size < 1:
            raise ValueError("workspace size must be >= 1")
        if not np.isfinite(initial_factor) or initial_factor <= 0.0:
            raise ValueError("initial_factor must be finite and > 0")
        return cls(
            size=size,
            initial_factor=initial_factor,
            x=np.zeros(size, dtype=np.float64),
            fvec=np.zeros(size, dtype=np.float64),
            diag=np.ones(size, dtype=np.float64),
            diag_save=np.ones(size, dtype=np.float64),
            factor=initial_factor,
        )

    def prepare(self, x0: ArrayLike, scale: ArrayLike | None = None) -> None:
        start = self._vector(x0, "x0")
        self.x[...] = start
        self.fvec[...] = 0.0
        if scale is None:
            self.diag[...] = 1.0
        else:
            diag = self._vector(scale, "scale")
            if not (diag > 0.0).all():
                raise ValueError("scale entries must be > 0")
            self.diag[...] = diag
        self.diag_save[...] = self.diag
        self.factor = self.initial_factor
        self.mode = AUTO_SCALE_MODE
        self.retries = 0
        self.retries2 = 0
        self.retries3 = 0

    def reset_factor(self) -> None:
        self.factor = self.initial_factor

    def counters(self) -> tuple[int, int, int]:
        return (self.retries, self.retries2, self.retries3)

    def _vector(self, values: ArrayLike, name: str) -> NDArray[np.float64]:
        vector = np.asarray(values, dtype=np.float64).reshape(-1)
        if vector.shape[0] != self.size:
            raise ValueError(f"{name} must have length {self.size}")
        if not np.isfinite(vector).all():
            raise ValueError(f"{name} must be finite")
        return vector

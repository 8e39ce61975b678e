from __future__ import annotations

from dataclasses import dataclass
from typing import overload

import numpy as np
from numpy.typing import ArrayLike, NDArray


@dataclass(frozen=True, slots=True)
class TimeSample:
    time: float
    values: NDArray[np.float64]

    def __post_init__(self) -> None:
        if not np.isfinite(self.time):
            raise ValueError("sample time must be finite")
        object.__setattr__(
            self, "values", np.asarray(self.values, dtype=np.float64).reshape(-1).copy()
        )


@overload
def extrapolate(
    value: float, old1: float, old2: float, *, time: float, time1: float, time2: float
) -> float: ...


@overload
def extrapolate(
    value: ArrayLike, old1: ArrayLike, old2: ArrayLike, *, time: float, time1: float, time2: float
) -> NDArray[np.float64]: ...


def extrapolate(
    value: ArrayLike,
    old1: ArrayLike,
    old2: ArrayLike,
    *,
    time: float,
    time1: float,
    time2: float,
) -> float | NDArray[np.float64]:
    scalar = np.ndim(value) == 0 and np.ndim(old1) == 0 and np.ndim(old2) == 0
    # Equal time stamps give no slope to follow.
    if time1 == time2:
        if scalar:
            return float(value)  # type: ignore[arg-type]
        return np.array(value, dtype=np.float64, copy=True)

    latest = np.asarray(old1, dtype=np.float64)
    earlier = np.asarray(old2, dtype=np.float64)
    span = time1 - time2
    predicted = (latest - earlier) / span * time + (time1 * earlier - time2 * latest) / span
    if scalar:
        return float(predicted)
    return np.asarray(predicted, dtype=np.float64)


def extrapolate_samples(
    current: ArrayLike,
    time: float,
    latest: TimeSample,
    earlier: TimeSample,
) -> NDArray[np.float64]:
    values = np.asarray(current, dtype=np.float64).reshape(-1)
    if latest.values.shape != values.shape or earlier.values.shape != values.shape:
        raise ValueError("sample values must match the current value vector")
    return np.asarray(
        extrapolate(
            values,
            latest.values,
            earlier.values,
            time=time,
            time1=latest.time,
            time2=earlier.time,
        ),
        dtype=np.float64,
    )


@dataclass(frozen=True, slots=True)
class SolveHistory:
    """Caller-owned record carried between solves of one equation system."""

    current_time: float
    latest: TimeSample
    earlier: TimeSample
    previous_solution: NDArray[np.float64]

    def __post_init__(self) -> None:
        object.__setattr__(
            self,
            "previous_solution",
            np.asarray(self.previous_solution, dtype=np.float64).reshape(-1).copy(),
        )

    @classmethod
    def start(cls, time: float, initial: ArrayLike) -> SolveHistory:
        sample = TimeSample(time=time, values=np.asarray(initial, dtype=np.float64))
        return cls(
            current_time=time,
            latest=sample,
            earlier=sample,
            previous_solution=sample.values,
        )

    def extrapolated_guess(self, current: ArrayLike | None = None) -> NDArray[np.float64]:
        values = self.previous_solution if current is None else current
        return extrapolate_samples(values, self.current_time, self.latest, self.earlier)

    def advance(self, solution: ArrayLike, *, next_time: float) -> SolveHistory:
        accepted = np.asarray(solution, dtype=np.float64).reshape(-1)
        return SolveHistory(
            current_time=next_time,
            latest=TimeSample(time=self.current_time, values=accepted),
            earlier=self.latest,
            previous_solution=accepted,
        )

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike


def format_vector(values: ArrayLike) -> str:
    vector = np.asarray(values, dtype=np.float64).reshape(-1)
    return "{" + ",".join(_format_entry(value) for value in vector) + "}"


def format_matrix(values: ArrayLike) -> str:
    matrix = np.asarray(values, dtype=np.float64)
    if matrix.ndim != 2:
        raise ValueError("matrix must be rank-2")
    rows = [",".join(_format_entry(value) for value in row) for row in matrix]
    return "{{" + "},{".join(rows) + "}}"


def format_variable_rows(
    scale: Sequence[float] | np.ndarray,
    residual: Sequence[float] | np.ndarray,
    x: Sequence[float] | np.ndarray,
    *,
    scale_label: str = "scale-factor",
) -> tuple[str, ...]:
    return tuple(
        f"{index}. {scale_label}[{index}] = {float(s):f}\t"
        f"residual[{index}] = {float(f):f}\tx[{index}] = {float(v):f}"
        for index, (s, f, v) in enumerate(zip(scale, residual, x, strict=True))
    )


def _format_entry(value: float) -> str:
    return f"{float(value):2.3f}"

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
from numpy.typing import ArrayLike, NDArray


class DenseMatrix:
    __slots__ = ("_data",)

    def __init__(self, data: NDArray[np.float64]) -> None:
        array = np.asarray(data, dtype=np.float64)
        if array.ndim != 2:
            raise ValueError("dense matrix data must be rank-2")
        self._data = np.asfortranarray(array)

    @classmethod
    def zeros(cls, n_rows: int, n_cols: int | None = None) -> DenseMatrix:
        if n_rows < 0 or (n_cols is not None and n_cols < 0):
            raise ValueError("matrix dimensions must be >= 0")
        cols = n_rows if n_cols is None else n_cols
        return cls(np.zeros((n_rows, cols), dtype=np.float64, order="F"))

    @classmethod
    def identity(cls, size: int) -> DenseMatrix:
        if size < 0:
            raise ValueError("matrix dimensions must be >= 0")
        return cls(np.eye(size, dtype=np.float64))

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[float]] | ArrayLike) -> DenseMatrix:
        return cls(np.array(rows, dtype=np.float64))

    @classmethod
    def from_column_major(cls, buffer: ArrayLike, n_rows: int) -> DenseMatrix:
        flat = np.asarray(buffer, dtype=np.float64).reshape(-1)
        if n_rows <= 0 or flat.size % n_rows != 0:
            raise ValueError("column-major buffer length must be a multiple of n_rows")
        return cls(flat.reshape((n_rows, flat.size // n_rows), order="F"))

    @property
    def shape(self) -> tuple[int, int]:
        return (int(self._data.shape[0]), int(self._data.shape[1]))

    @property
    def is_square(self) -> bool:
        return self._data.shape[0] == self._data.shape[1]

    def get(self, row: int, col: int) -> float:
        self._check_index(row, col)
        return float(self._data[row, col])

    def set(self, row: int, col: int, value: float) -> None:
        self._check_index(row, col)
        self._data[row, col] = value

    def column_major(self) -> NDArray[np.float64]:
        return self._data.reshape(-1, order="F").copy()

    def to_array(self) -> NDArray[np.float64]:
        return np.array(self._data, dtype=np.float64)

    def copy(self) -> DenseMatrix:
        return DenseMatrix(self._data.copy(order="F"))

    @property
    def storage(self) -> NDArray[np.float64]:
        return self._data

    def _check_index(self, row: int, col: int) -> None:
        n_rows, n_cols = self.shape
        if not 0 <= row < n_rows:
            raise IndexError(f"row index {row} out of range for {n_rows} rows")
        if not 0 <= col < n_cols:
            raise IndexError(f"column index {col} out of range for {n_cols} columns")

    def __repr__(self) -> str:
        return f"DenseMatrix(shape={self.shape})"

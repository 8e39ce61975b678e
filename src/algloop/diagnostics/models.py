from __future__ import annotations

from enum import StrEnum
from typing import cast

import numpy as np
from pydantic import BaseModel, ConfigDict, Field, field_validator


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    DEBUG = "debug"


class DiagnosticCategory(StrEnum):
    LINEAR_SYSTEM = "linear_system"
    NONLINEAR_SYSTEM = "nonlinear_system"
    RETRY_LADDER = "retry_ladder"
    MIXED_SYSTEM = "mixed_system"


def _normalize_json(value: object) -> object:
    if isinstance(value, np.generic | np.ndarray):
        # Solver witnesses often carry numpy scalars and vectors.
        return _normalize_json(value.tolist())
    if value is None or isinstance(value, bool | int | float | str):
        return value
    if isinstance(value, list | tuple):
        return [_normalize_json(item) for item in value]
    if not isinstance(value, dict):
        raise ValueError("witness must be JSON-serializable")
    items = cast(dict[object, object], value)
    if any(not isinstance(key, str) for key in items):
        raise ValueError("witness object keys must be strings")
    return {key: _normalize_json(items[key]) for key in sorted(cast(dict[str, object], items))}


class DiagnosticEvent(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str = Field(min_length=1)
    severity: Severity
    message: str = Field(min_length=1)
    suggested_action: str = Field(min_length=1)
    category: DiagnosticCategory
    system_id: str = Field(min_length=1)

    time: float | None = None
    candidate_index: int | None = Field(default=None, ge=0)
    retry_tier: int | None = Field(default=None, ge=0)
    variable_index: int | None = Field(default=None, ge=0)

    witness: object | None = None

    @field_validator("witness", mode="before")
    @classmethod
    def _validate_and_normalize_witness(cls, witness: object) -> object:
        if witness is None:
            return None
        return _normalize_json(witness)

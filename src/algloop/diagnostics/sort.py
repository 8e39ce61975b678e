from __future__ import annotations

import json
from collections.abc import Iterable

from .models import DiagnosticCategory, DiagnosticEvent, Severity

_SEVERITY_RANK: dict[Severity, int] = {
    Severity.ERROR: 0,
    Severity.WARNING: 1,
    Severity.INFO: 2,
    Severity.DEBUG: 3,
}

_CATEGORY_RANK: dict[DiagnosticCategory, int] = {
    DiagnosticCategory.LINEAR_SYSTEM: 0,
    DiagnosticCategory.NONLINEAR_SYSTEM: 1,
    DiagnosticCategory.RETRY_LADDER: 2,
    DiagnosticCategory.MIXED_SYSTEM: 3,
}


def canonical_witness_json(witness: object | None) -> str:
    if witness is None:
        return ""
    return json.dumps(witness, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def _optional_index_sort_key(value: int | None) -> tuple[int, int]:
    if value is None:
        return (1, 0)
    return (0, value)


def diagnostic_sort_key(
    event: DiagnosticEvent,
) -> tuple[int, int, str, str, tuple[int, int], tuple[int, int], tuple[int, int], str, str]:
    return (
        _SEVERITY_RANK[event.severity],
        _CATEGORY_RANK[event.category],
        event.code,
        event.system_id,
        _optional_index_sort_key(event.candidate_index),
        _optional_index_sort_key(event.retry_tier),
        _optional_index_sort_key(event.variable_index),
        event.message,
        canonical_witness_json(event.witness),
    )


def sort_diagnostics(events: Iterable[DiagnosticEvent]) -> list[DiagnosticEvent]:
    return sorted(events, key=diagnostic_sort_key)

from __future__ import annotations

from .catalog import CANONICAL_DIAGNOSTIC_CATALOG, DiagnosticCatalogEntry
from .models import DiagnosticCategory, DiagnosticEvent, Severity


def build_diagnostic_event(  # noqa: PLR0913
    *,
    code: str,
    message: str,
    system_id: str,
    time: float | None = None,
    candidate_index: int | None = None,
    retry_tier: int | None = None,
    variable_index: int | None = None,
    witness: object | None = None,
    severity: Severity | None = None,
    category: DiagnosticCategory | None = None,
    suggested_action: str | None = None,
) -> DiagnosticEvent:
    for name, value in (("code", code), ("message", message), ("system_id", system_id)):
        if not value:
            raise ValueError(f"diagnostic {name} must be non-empty")

    if severity is None or category is None or suggested_action is None:
        entry = _catalog_entry(code)
        severity = entry.severity if severity is None else severity
        category = entry.category if category is None else category
        suggested_action = entry.suggested_action if suggested_action is None else suggested_action
    if not suggested_action:
        raise ValueError("diagnostic suggested_action must be non-empty")

    return DiagnosticEvent(
        code=code,
        severity=severity,
        message=message,
        suggested_action=suggested_action,
        category=category,
        system_id=system_id,
        time=time,
        candidate_index=candidate_index,
        retry_tier=retry_tier,
        variable_index=variable_index,
        witness=witness,
    )


def _catalog_entry(code: str) -> DiagnosticCatalogEntry:
    entry = CANONICAL_DIAGNOSTIC_CATALOG.get(code)
    if entry is None:
        raise ValueError(
            f"diagnostic code '{code}' is not in the catalog; explicit severity, "
            "category and suggested_action are required"
        )
    return entry

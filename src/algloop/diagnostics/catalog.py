from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from .models import DiagnosticCategory, Severity


@dataclass(frozen=True, slots=True)
class DiagnosticCatalogEntry:
    code: str
    severity: Severity
    category: DiagnosticCategory
    suggested_action: str

    def __post_init__(self) -> None:
        if not self.code:
            raise ValueError("diagnostic catalog code must be non-empty")
        if not self.suggested_action:
            raise ValueError(
                f"diagnostic catalog entry '{self.code}' suggested_action must be non-empty"
            )


def _entry(
    code: str,
    severity: Severity,
    category: DiagnosticCategory,
    suggested_action: str,
) -> DiagnosticCatalogEntry:
    return DiagnosticCatalogEntry(
        code=code,
        severity=severity,
        category=category,
        suggested_action=suggested_action,
    )


def _build_catalog(
    entries: tuple[DiagnosticCatalogEntry, ...],
) -> Mapping[str, DiagnosticCatalogEntry]:
    catalog: dict[str, DiagnosticCatalogEntry] = {}
    for entry in entries:
        if entry.code in catalog:
            raise ValueError(f"duplicate diagnostic catalog code: {entry.code}")
        catalog[entry.code] = entry
    return MappingProxyType(catalog)


_CATALOG_ENTRIES: tuple[DiagnosticCatalogEntry, ...] = (
    _entry(
        "E_LIN_SINGULAR",
        Severity.ERROR,
        DiagnosticCategory.LINEAR_SYSTEM,
        "remove redundant equations or reduce the step size before retrying",
    ),
    _entry(
        "E_LIN_ARGUMENT_ILLEGAL",
        Severity.ERROR,
        DiagnosticCategory.LINEAR_SYSTEM,
        "pass a square finite matrix and a right-hand side of matching length",
    ),
    _entry(
        "W_LIN_ILL_CONDITIONED",
        Severity.WARNING,
        DiagnosticCategory.LINEAR_SYSTEM,
        "inspect the pivot magnitudes and scaling of the linear system",
    ),
    _entry(
        "D_LIN_SYSTEM_STATE",
        Severity.DEBUG,
        DiagnosticCategory.LINEAR_SYSTEM,
        "compare the printed matrix and right-hand side with the model equations",
    ),
    _entry(
        "I_NLS_START",
        Severity.INFO,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "no action required",
    ),
    _entry(
        "I_NLS_SOLVED",
        Severity.INFO,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "no action required",
    ),
    _entry(
        "D_NLS_VARIABLE_STATE",
        Severity.DEBUG,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "compare scale factors, residuals and iterates per variable",
    ),
    _entry(
        "I_NLS_RETRY",
        Severity.INFO,
        DiagnosticCategory.RETRY_LADDER,
        "no action required; the solver is applying a recovery strategy",
    ),
    _entry(
        "E_NLS_IMPROPER_INPUT",
        Severity.ERROR,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "check system size, tolerance and evaluation budget of the equation system",
    ),
    _entry(
        "E_NLS_EXCEEDED_EVALUATIONS",
        Severity.ERROR,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "raise the function-evaluation budget or improve the initial guess",
    ),
    _entry(
        "E_NLS_NO_PROGRESS",
        Severity.ERROR,
        DiagnosticCategory.RETRY_LADDER,
        "provide better start values or nominal scaling for the iteration variables",
    ),
    _entry(
        "E_NLS_FATAL",
        Severity.ERROR,
        DiagnosticCategory.NONLINEAR_SYSTEM,
        "inspect the residual function for non-finite values or exceptions",
    ),
    _entry(
        "E_MIXED_SUBSOLVE_FAILED",
        Severity.ERROR,
        DiagnosticCategory.MIXED_SYSTEM,
        "inspect the continuous subsystem failure reported for this candidate",
    ),
    _entry(
        "E_MIXED_NO_CONSISTENT_CANDIDATE",
        Severity.ERROR,
        DiagnosticCategory.MIXED_SYSTEM,
        "check the discrete candidate table covers a consistent assignment",
    ),
    _entry(
        "I_MIXED_RESOLVED",
        Severity.INFO,
        DiagnosticCategory.MIXED_SYSTEM,
        "no action required",
    ),
    _entry(
        "D_MIXED_DISCRETE_STATE",
        Severity.DEBUG,
        DiagnosticCategory.MIXED_SYSTEM,
        "compare the accepted discrete values with their previous values",
    ),
)


CANONICAL_DIAGNOSTIC_CATALOG: Mapping[str, DiagnosticCatalogEntry] = _build_catalog(
    _CATALOG_ENTRIES
)

REQUIRED_CATALOG_FIELDS: tuple[str, ...] = ("code", "severity", "category", "suggested_action")

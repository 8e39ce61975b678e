from .adapters import build_diagnostic_event
from .catalog import CANONICAL_DIAGNOSTIC_CATALOG, REQUIRED_CATALOG_FIELDS
from .format import format_matrix, format_variable_rows, format_vector
from .models import DiagnosticCategory, DiagnosticEvent, Severity
from .sinks import (
    LOGGER_NAME,
    CollectingDiagnosticSink,
    DiagnosticOptions,
    DiagnosticRecorder,
    DiagnosticSink,
    LoggingDiagnosticSink,
)
from .sort import canonical_witness_json, diagnostic_sort_key, sort_diagnostics

__all__ = [
    "CANONICAL_DIAGNOSTIC_CATALOG",
    "LOGGER_NAME",
    "REQUIRED_CATALOG_FIELDS",
    "CollectingDiagnosticSink",
    "DiagnosticCategory",
    "DiagnosticEvent",
    "DiagnosticOptions",
    "DiagnosticRecorder",
    "DiagnosticSink",
    "LoggingDiagnosticSink",
    "Severity",
    "build_diagnostic_event",
    "canonical_witness_json",
    "diagnostic_sort_key",
    "format_matrix",
    "format_variable_rows",
    "format_vector",
    "sort_diagnostics",
]

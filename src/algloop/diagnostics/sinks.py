from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from .adapters import build_diagnostic_event
from .models import DiagnosticEvent, Severity

LOGGER_NAME = "algloop"

_SEVERITY_TO_LOG_LEVEL: dict[Severity, int] = {
    Severity.ERROR: logging.ERROR,
    Severity.WARNING: logging.WARNING,
    Severity.INFO: logging.INFO,
    Severity.DEBUG: logging.DEBUG,
}


@runtime_checkable
class DiagnosticSink(Protocol):
    def emit(self, event: DiagnosticEvent) -> None: ...


@dataclass(slots=True)
class CollectingDiagnosticSink:
    events: list[DiagnosticEvent] = field(default_factory=list)

    def emit(self, event: DiagnosticEvent) -> None:
        self.events.append(event)


class LoggingDiagnosticSink:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger if logger is not None else logging.getLogger(LOGGER_NAME)

    def emit(self, event: DiagnosticEvent) -> None:
        level = _SEVERITY_TO_LOG_LEVEL[event.severity]
        if not self._logger.isEnabledFor(level):
            return
        self._logger.log(
            level,
            "[%s] %s (%s): %s",
            event.code,
            event.system_id,
            event.category.value,
            event.message,
        )


@dataclass(frozen=True, slots=True)
class DiagnosticOptions:
    verbose: bool = False
    debug: bool = False

    def allows(self, severity: Severity) -> bool:
        if severity in (Severity.ERROR, Severity.WARNING):
            return True
        if severity == Severity.INFO:
            return self.verbose or self.debug
        return self.debug


class DiagnosticRecorder:
    """Verbosity gate in front of an optional sink.

    Each solve opens a scope with ``mark`` and collects its events with
    ``close``. The buffer is dropped once the outermost scope closes.
    """

    def __init__(
        self,
        options: DiagnosticOptions | None = None,
        sink: DiagnosticSink | None = None,
    ) -> None:
        self.options = options if options is not None else DiagnosticOptions()
        self._sink = sink
        self._events: list[DiagnosticEvent] = []
        self._open_scopes = 0

    def enabled(self, severity: Severity) -> bool:
        return self.options.allows(severity)

    def record(  # noqa: PLR0913
        self,
        code: str,
        message: str,
        *,
        severity: Severity,
        system_id: str,
        time: float | None = None,
        candidate_index: int | None = None,
        retry_tier: int | None = None,
        variable_index: int | None = None,
        witness: object | None = None,
    ) -> DiagnosticEvent | None:
        if not self.options.allows(severity):
            return None
        event = build_diagnostic_event(
            code=code,
            message=message,
            system_id=system_id,
            time=time,
            candidate_index=candidate_index,
            retry_tier=retry_tier,
            variable_index=variable_index,
            witness=witness,
            severity=severity,
        )
        self._events.append(event)
        if self._sink is not None:
            self._sink.emit(event)
        return event

    def mark(self) -> int:
        self._open_scopes += 1
        return len(self._events)

    def close(self, mark: int) -> tuple[DiagnosticEvent, ...]:
        events = self.events_since(mark)
        self._open_scopes = max(0, self._open_scopes - 1)
        if self._open_scopes == 0:
            self._events.clear()
        return events

    def events_since(self, mark: int) -> tuple[DiagnosticEvent, ...]:
        return tuple(self._events[mark:])

    @property
    def events(self) -> tuple[DiagnosticEvent, ...]:
        return tuple(self._events)

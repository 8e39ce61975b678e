from __future__ import annotations

import numpy as np
import pytest
from pydantic import ValidationError

from algloop.diagnostics import (
    CANONICAL_DIAGNOSTIC_CATALOG,
    REQUIRED_CATALOG_FIELDS,
    DiagnosticCategory,
    DiagnosticEvent,
    Severity,
    build_diagnostic_event,
)

pytestmark = pytest.mark.unit


def _base_event(**overrides: object) -> DiagnosticEvent:
    payload: dict[str, object] = {
        "code": "E_NLS_NO_PROGRESS",
        "severity": Severity.ERROR,
        "message": "no progress",
        "suggested_action": "provide better start values",
        "category": DiagnosticCategory.RETRY_LADDER,
        "system_id": "nls_1",
    }
    payload.update(overrides)
    return DiagnosticEvent(**payload)


def test_witness_validation_and_normalization() -> None:
    event = _base_event(witness={"z": 1, "a": {"y": 2, "x": (3, 4)}})
    assert event.witness == {"a": {"x": [3, 4], "y": 2}, "z": 1}

    with pytest.raises(ValidationError):
        _base_event(witness={"bad": object()})
    with pytest.raises(ValidationError):
        _base_event(witness={1: "non-string key"})


def test_numpy_witness_values_become_plain_json() -> None:
    event = _base_event(witness={"x": np.asarray([1.0, 2.0]), "tier": np.int64(3)})

    assert event.witness == {"tier": 3, "x": [1.0, 2.0]}
    assert type(event.witness["tier"]) is int  # type: ignore[index]


def test_models_are_immutable_and_closed() -> None:
    event = _base_event()

    with pytest.raises(ValidationError):
        event.message = "changed"
    with pytest.raises(ValidationError):
        _base_event(unexpected="field")


@pytest.mark.parametrize(
    "overrides",
    [
        {"system_id": ""},
        {"candidate_index": -1},
        {"retry_tier": -1},
        {"variable_index": -2},
        {"message": ""},
    ],
)
def test_field_constraints(overrides: dict[str, object]) -> None:
    with pytest.raises(ValidationError):
        _base_event(**overrides)


def test_catalog_entries_carry_required_fields() -> None:
    for code, entry in CANONICAL_DIAGNOSTIC_CATALOG.items():
        assert entry.code == code
        for field_name in REQUIRED_CATALOG_FIELDS:
            assert getattr(entry, field_name)
        assert code[0] == entry.severity.value[0].upper()


def test_builder_fills_catalog_fields() -> None:
    event = build_diagnostic_event(
        code="I_NLS_RETRY",
        message="retrying",
        system_id="nls_2",
        retry_tier=3,
    )

    assert event.severity is Severity.INFO
    assert event.category is DiagnosticCategory.RETRY_LADDER
    assert event.suggested_action == CANONICAL_DIAGNOSTIC_CATALOG["I_NLS_RETRY"].suggested_action
    assert event.retry_tier == 3


def test_builder_requires_explicit_fields_for_unknown_codes() -> None:
    with pytest.raises(ValueError, match="not in the catalog"):
        build_diagnostic_event(code="E_UNKNOWN", message="x", system_id="s")

    event = build_diagnostic_event(
        code="E_UNKNOWN",
        message="x",
        system_id="s",
        severity=Severity.WARNING,
        category=DiagnosticCategory.MIXED_SYSTEM,
        suggested_action="look closer",
    )
    assert event.severity is Severity.WARNING


def test_builder_rejects_empty_identity() -> None:
    with pytest.raises(ValueError, match="system_id"):
        build_diagnostic_event(code="I_NLS_START", message="x", system_id="")

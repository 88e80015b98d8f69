# tests/core/traceability/test_step_log.py
"""
Testes do Step Log (rastreabilidade de uma reconciliação).

Este módulo valida o registro ordenado do que cada Step fez durante
uma reconciliação.

Os testes asseguram que:
- a criação do Step Log não emite eventos implicitamente
- started → finished registra status, duração, métricas e warnings
- falhas e skips são registrados explicitamente
- a ordem do Event Log reflete a ordem das chamadas
- o Step Log sobrevive a um round-trip via dict

Decisões arquiteturais:
    - UTC é o timezone canônico; timestamps naive são assumidos UTC
"""

from datetime import datetime, timedelta, timezone

import pytest

try:
    from dataflow_reconciler.core.traceability.step_log import (
        StepLog,
        add_event,
        create_step_log,
        step_failed,
        step_finished,
        step_skipped,
        step_started,
    )
except Exception as e:  # noqa: BLE001
    StepLog = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


T0 = datetime(2026, 1, 16, 12, 0, 0, tzinfo=timezone.utc)


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing Step Log. Implement:
- src/dataflow_reconciler/core/traceability/step_log.py
Import error: {_IMPORT_ERR}
""")


def test_create_emits_no_events():
    _require_imports()

    log = create_step_log(run_id="r1", pipeline="words", started_at=T0)

    assert log.events == []
    assert log.run == {"run_id": "r1", "pipeline": "words", "started_at": T0.isoformat()}


def test_started_then_finished_records_duration_and_result():
    _require_imports()
    log = create_step_log(run_id="r1", pipeline="words", started_at=T0)

    step_started(log, step_id="teardown", kind="teardown", ts=T0)
    step_finished(
        log,
        step_id="teardown",
        ts=T0 + timedelta(milliseconds=1500),
        result={"status": "noop", "summary": "absent", "metrics": {"poll_attempts": 0}, "warnings": ["w"]},
    )

    step = log.steps["teardown"]
    assert step["status"] == "noop"
    assert step["duration_ms"] == 1500
    assert step["metrics"] == {"poll_attempts": 0}
    assert step["warnings"] == ["w"]
    assert step["artifacts"] == {}
    assert log.event_types() == ["step_started", "step_finished"]


def test_failed_and_skipped_steps():
    _require_imports()
    log = create_step_log(run_id="r1", pipeline="words", started_at=T0)
    error = {"type": "CONFLICT_ERROR", "message": "exists", "details": {}, "hint": None}

    step_started(log, step_id="definition.create", kind="definition", ts=T0)
    step_failed(log, step_id="definition.create", ts=T0, error=error)
    step_skipped(log, step_id="deployment.deploy", kind="deployment", ts=T0, reason="upstream failed")

    assert log.statuses() == ["failed", "skipped"]
    assert log.steps["definition.create"]["error"] == error
    assert log.steps["deployment.deploy"]["reason"] == "upstream failed"
    assert log.event_types(step_id="deployment.deploy") == ["step_skipped"]


def test_naive_timestamps_are_assumed_utc():
    _require_imports()
    log = create_step_log(run_id="r1", pipeline="words", started_at=datetime(2026, 1, 16, 12, 0, 0))

    add_event(log, event_type="preflight_failed", ts=datetime(2026, 1, 16, 12, 0, 1), payload={"x": 1})

    assert log.run["started_at"].endswith("+00:00")
    assert log.events[0]["timestamp"].endswith("+00:00")
    assert "step_id" not in log.events[0]


def test_round_trip_via_dict():
    _require_imports()
    log = create_step_log(run_id="r1", pipeline="words", started_at=T0)
    step_started(log, step_id="teardown", kind="teardown", ts=T0)
    step_finished(log, step_id="teardown", ts=T0, result={"status": "success"})

    restored = StepLog.from_dict(log.to_dict())

    assert restored == log
    assert restored.step_ids() == ["teardown"]

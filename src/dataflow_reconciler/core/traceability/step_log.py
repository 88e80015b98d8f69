# src/dataflow_reconciler/core/traceability/step_log.py
"""
Step Log v1 — rastreabilidade de uma reconciliação.

Este módulo define o registro ordenado do que cada Step da reconciliação
fez: quando começou, quando terminou, com qual status e com quais
métricas, warnings e artefatos (ex.: fingerprint do payload de deploy).

O Step Log consolida:
    - metadados da execução (run_id, pipeline, started_at)
    - estado incremental de cada Step, na ordem do plano
    - Event Log ordenado de eventos explícitos

Princípios fundamentais:
    - Nenhum evento é emitido implicitamente
    - A ordem do Event Log reflete a ordem real de execução
    - O Step Log é serializável e reconstruível (round-trip)

Decisões arquiteturais:
    - UTC é o timezone canônico para todos os timestamps
    - O Step Log vive em memória e é devolvido no ReconciliationResult;
      nada é persistido em disco (cada execução parte do zero)

Invariantes:
    - `events` é sempre uma lista ordenada
    - `steps` preserva a ordem de registro dos Steps

Limites explícitos:
    - Não executa Steps
    - Não decide políticas de execução (fail-fast, skip)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _ensure_tzaware_utc(dt: datetime) -> datetime:
    """Normaliza um timestamp para timezone-aware em UTC (naive é assumido UTC)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _iso(dt: datetime) -> str:
    return _ensure_tzaware_utc(dt).isoformat()


def _ms_between(start: datetime, end: datetime) -> int:
    s = _ensure_tzaware_utc(start)
    e = _ensure_tzaware_utc(end)
    return max(0, int((e - s).total_seconds() * 1000))


@dataclass
class StepLog:
    """
    Registro de uma reconciliação.

    Campos principais:
        - run: metadados da execução (run_id, pipeline, started_at)
        - steps: estado de cada Step indexado por step_id
        - events: Event Log ordenado
    """

    run: Dict[str, Any]
    steps: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    events: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "run": dict(self.run),
            "steps": {k: dict(v) for k, v in self.steps.items()},
            "events": [dict(e) for e in self.events],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StepLog":
        return cls(
            run=dict(data.get("run", {})),
            steps={k: dict(v) for k, v in (data.get("steps", {}) or {}).items()},
            events=[dict(e) for e in (data.get("events", []) or [])],
        )

    def step_ids(self) -> List[str]:
        return list(self.steps)

    def statuses(self) -> List[str]:
        """Status de cada Step na ordem de registro (útil para asserts e diagnóstico)."""
        return [s.get("status", "") for s in self.steps.values()]

    def event_types(self, step_id: Optional[str] = None) -> List[str]:
        return [
            e["event_type"] for e in self.events
            if step_id is None or e.get("step_id") == step_id
        ]


def create_step_log(*, run_id: str, pipeline: str, started_at: datetime) -> StepLog:
    """
    Cria o Step Log inicial de uma reconciliação.

    ⚠️ Importante: esta função **não emite eventos implicitamente**.
    """
    return StepLog(
        run={
            "run_id": run_id,
            "pipeline": pipeline,
            "started_at": _iso(started_at),
        },
    )


def add_event(
    log: StepLog,
    *,
    event_type: str,
    ts: datetime,
    step_id: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
) -> None:
    """Adiciona um evento explícito ao Event Log, preservando a ordem de chamada."""
    ev: Dict[str, Any] = {"event_type": event_type, "timestamp": _iso(ts)}
    if step_id is not None:
        ev["step_id"] = step_id
    if payload is not None:
        ev["payload"] = payload
    log.events.append(ev)


def step_started(log: StepLog, *, step_id: str, kind: str, ts: datetime) -> None:
    log.steps.setdefault(step_id, {})
    log.steps[step_id].update(
        {
            "step_id": step_id,
            "kind": kind,
            "status": "running",
            "started_at": _iso(ts),
        }
    )
    add_event(log, event_type="step_started", ts=ts, step_id=step_id, payload={"kind": kind})


def step_finished(log: StepLog, *, step_id: str, ts: datetime, result: Dict[str, Any]) -> None:
    """
    Registra a conclusão de um Step (status `success` ou `noop`).

    Args:
        result (Dict[str, Any]): status, summary, metrics, warnings e artifacts.
    """
    s = log.steps.setdefault(step_id, {"step_id": step_id})
    started_iso = s.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    status = result.get("status", "success")
    s.update(
        {
            "status": status,
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "summary": result.get("summary"),
            "metrics": result.get("metrics", {}) or {},
            "warnings": result.get("warnings", []) or [],
            "artifacts": result.get("artifacts", {}) or {},
        }
    )
    add_event(
        log,
        event_type="step_finished",
        ts=ts,
        step_id=step_id,
        payload={"status": status, "duration_ms": s["duration_ms"]},
    )


def step_failed(log: StepLog, *, step_id: str, ts: datetime, error: Dict[str, Any]) -> None:
    """Registra a falha de um Step com o ReconcilerErrorPayload serializado."""
    s = log.steps.setdefault(step_id, {"step_id": step_id})
    started_iso = s.get("started_at")
    started_dt = datetime.fromisoformat(started_iso) if started_iso else ts
    s.update(
        {
            "status": "failed",
            "finished_at": _iso(ts),
            "duration_ms": _ms_between(started_dt, ts),
            "error": error,
        }
    )
    add_event(log, event_type="step_failed", ts=ts, step_id=step_id, payload={"error": error})


def step_skipped(log: StepLog, *, step_id: str, kind: str, ts: datetime, reason: str) -> None:
    log.steps[step_id] = {
        "step_id": step_id,
        "kind": kind,
        "status": "skipped",
        "reason": reason,
    }
    add_event(log, event_type="step_skipped", ts=ts, step_id=step_id, payload={"reason": reason})

# src/dataflow_reconciler/core/pipeline/context.py
"""
Contexto de execução de uma reconciliação.

Este módulo define o `ReconcileContext`, a estrutura canônica passada a
todos os Steps durante uma reconciliação.

O contexto é o único meio permitido de:
    - acesso ao pipeline desejado e às propriedades efetivas
    - acesso ao control plane (DataflowApi)
    - espera por convergência com as políticas configuradas
    - registro de logs estruturados e warnings por Step

Princípios fundamentais:
    - Isolamento por execução (cada reconciliação tem seu próprio contexto)
    - Ausência de estado global compartilhado
    - `clock` e `sleep` injetáveis para testes determinísticos

Invariantes:
    - Logs sempre incluem `run_id` e `step_id`
    - Warnings são agrupados por `step_id`
    - Avisos do control plane chegam aos warnings do Step que os recebeu

Limites explícitos:
    - Não executa Steps
    - Não decide políticas de execução
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Tuple

from dataflow_reconciler.core.controlplane.api import DataflowApi
from dataflow_reconciler.core.convergence.poller import PollPolicy, PollResult, wait_for
from dataflow_reconciler.core.properties.model import PropertySet

from .topology import PipelineSpec


@dataclass(frozen=True)
class ConvergencePolicies:
    """Políticas de polling por uso: remoção de componentes, teardown e prontidão."""

    unregister: PollPolicy = PollPolicy(interval=1.0, timeout=60.0)
    teardown: PollPolicy = PollPolicy(interval=2.0, timeout=30.0)
    readiness: PollPolicy = PollPolicy(interval=5.0, timeout=150.0)


@dataclass
class ReconcileContext:
    """
    Contexto compartilhado de uma reconciliação.

    Consolida:
        - identidade da execução (run_id, created_at)
        - pipeline desejado e PropertySet efetivo
        - DataflowApi e políticas de convergência
        - logs estruturados e warnings por Step
    """
    run_id: str
    created_at: datetime
    pipeline: PipelineSpec
    properties: PropertySet
    api: DataflowApi
    policies: ConvergencePolicies = field(default_factory=ConvergencePolicies)
    wait_for_ready: bool = False
    bundle_keys: Tuple[str, ...] = ()
    clock: Callable[[], float] = time.monotonic
    sleep: Callable[[float], None] = time.sleep
    meta: Dict[str, Any] = field(default_factory=dict)

    events: List[Dict[str, Any]] = field(default_factory=list, init=False)
    warnings: Dict[str, List[str]] = field(default_factory=dict, init=False)

    # -----------------------------
    # Convergência
    # -----------------------------
    def wait(self, predicate: Callable[[], bool], policy: PollPolicy, *, description: str) -> PollResult:
        return wait_for(predicate, policy, description=description, clock=self.clock, sleep=self.sleep)

    # -----------------------------
    # Logging & warnings
    # -----------------------------
    def log(self, *, step_id: str, level: str, message: str, **extra: Any) -> None:
        event = {
            "run_id": self.run_id,
            "step_id": step_id,
            "level": level,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        event.update(extra)
        self.events.append(event)

    def add_warning(self, *, step_id: str, message: str) -> None:
        if step_id not in self.warnings:
            self.warnings[step_id] = []
        self.warnings[step_id].append(message)

    def collect_control_plane_warnings(self, *, step_id: str) -> List[str]:
        """Move os avisos recebidos do control plane para os warnings de `step_id`."""
        collected = self.api.drain_warnings()
        for message in collected:
            self.add_warning(step_id=step_id, message=message)
        return collected

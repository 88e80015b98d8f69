"""Steps canônicos: components.unregister e components.register (v1).

components.unregister:
- Remove o registro de cada componente referenciado pelo pipeline
  (ausência tolerada).
- Aguarda, para cada componente, até que ele deixe de ser resolvível.
  O control plane confirma a remoção antes de refleti-la nas leituras;
  registrar uma nova versão enquanto a antiga ainda é visível produz
  binding não determinístico, por isso o timeout é fatal
  (ConvergenceTimeoutError).

components.register:
- Registra cada componente com seu localizador de artefato.
- Componente já registrado com o mesmo localizador → mantido (NOOP).
- "Already registered" com outro localizador → conflito brando: vira
  warning e entra em `payload.conflicts`, sem abortar o plano.
- Qualquer outra rejeição (localizador malformado, validação) →
  ControlPlaneError (falha dura).

Payload mínimo (register):
payload:
  registered: [name]
  unchanged: [name]
  conflicts: [{component, type, uri, message}]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from dataflow_reconciler.core.controlplane.api import RegistrationOutcome
from dataflow_reconciler.core.pipeline.context import ReconcileContext
from dataflow_reconciler.core.pipeline.step import Step
from dataflow_reconciler.core.pipeline.types import PipelineState, StepKind, StepResult, StepStatus


logger = logging.getLogger(__name__)


@dataclass
class UnregisterComponentsStep(Step):
    """Remoção dos registros de componentes com confirmação por polling."""

    id: str = "components.unregister"
    kind: StepKind = StepKind.COMPONENTS
    state: PipelineState = PipelineState.COMPONENTS_UNREGISTERING
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = ["teardown"]

    def run(self, ctx: ReconcileContext) -> StepResult:
        api = ctx.api
        removed: List[str] = []

        for comp in ctx.pipeline.components:
            if api.unregister_component(comp.kind.value, comp.name):
                removed.append(comp.name)

        attempts = 0
        for comp in ctx.pipeline.components:
            poll = ctx.wait(
                lambda c=comp: api.lookup_component(c.kind.value, c.name) is None,
                ctx.policies.unregister,
                description=f"componente '{comp.name}' deixar de ser resolvível",
            )
            attempts += poll.attempts

        if removed:
            logger.info("componentes removidos: %s", ", ".join(removed))
            ctx.log(step_id=self.id, level="info", message="componentes removidos", components=removed)

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS if removed else StepStatus.NOOP,
            summary=f"{len(removed)} component(s) unregistered",
            metrics={"unregistered": len(removed), "poll_attempts": attempts},
            payload={"unregistered": removed},
        )


@dataclass
class RegisterComponentsStep(Step):
    """Registro dos componentes com classificação de conflito brando vs. falha dura."""

    id: str = "components.register"
    kind: StepKind = StepKind.COMPONENTS
    state: PipelineState = PipelineState.COMPONENTS_REGISTERING
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = ["components.unregister"]

    def run(self, ctx: ReconcileContext) -> StepResult:
        api = ctx.api
        registered: List[str] = []
        unchanged: List[str] = []
        conflicts: List[Dict[str, Any]] = []

        for comp in ctx.pipeline.components:
            existing = api.lookup_component(comp.kind.value, comp.name)
            if existing is not None and existing.attributes.get("uri") == comp.uri:
                unchanged.append(comp.name)
                continue

            outcome = api.register_component(comp.kind.value, comp.name, comp.uri)
            if outcome == RegistrationOutcome.CONFLICT:
                message = (
                    f"componente '{comp.name}' já registrado com outra referência; "
                    f"mantido o registro existente"
                )
                conflicts.append(
                    {"component": comp.name, "type": comp.kind.value, "uri": comp.uri, "message": message}
                )
                ctx.add_warning(step_id=self.id, message=message)
                logger.warning("conflito brando ao registrar %s (%s)", comp.name, comp.uri)
                continue

            registered.append(comp.name)
            ctx.log(step_id=self.id, level="info", message="componente registrado",
                    component=comp.name, uri=comp.uri)

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS if registered else StepStatus.NOOP,
            summary=(
                f"{len(registered)} registered, {len(unchanged)} unchanged, "
                f"{len(conflicts)} conflict(s)"
            ),
            metrics={
                "registered": len(registered),
                "unchanged": len(unchanged),
                "conflicts": len(conflicts),
            },
            warnings=[c["message"] for c in conflicts],
            payload={"registered": registered, "unchanged": unchanged, "conflicts": conflicts},
        )

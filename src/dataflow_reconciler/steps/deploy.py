"""Step canônico: deployment.deploy (v1).

Responsabilidades:
- Compilar o PropertySet efetivo no payload de deployment.
- Submeter o payload achatado (`app.<c>.<k>` / `deployer.<c>.<k>`).
- Opcionalmente (`wait_for_ready`), aguardar o estado `deployed`.

Regras:
- Critério de sucesso é uma resposta sem erro, não o estado running.
- Pipeline já `deployed` ou `deploying` → NOOP.
- Durante a espera por prontidão, o estado `failed` aborta imediatamente
  com ControlPlaneError.

Artifacts:
- payload_sha256: fingerprint do payload compilado (rastreabilidade)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from dataflow_reconciler.core.exceptions import ControlPlaneError
from dataflow_reconciler.core.pipeline.context import ReconcileContext
from dataflow_reconciler.core.pipeline.step import Step
from dataflow_reconciler.core.pipeline.types import (
    PipelineState,
    ResourceState,
    StepKind,
    StepResult,
    StepStatus,
)
from dataflow_reconciler.core.properties.compiler import (
    compile_properties,
    payload_fingerprint,
    to_deployment_properties,
)


logger = logging.getLogger(__name__)


@dataclass
class DeployStep(Step):
    """Deploy do pipeline com o payload compilado."""

    id: str = "deployment.deploy"
    kind: StepKind = StepKind.DEPLOYMENT
    state: PipelineState = PipelineState.DEPLOYING
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = ["definition.create"]

    def run(self, ctx: ReconcileContext) -> StepResult:
        name = ctx.pipeline.name
        api = ctx.api

        payload = compile_properties(ctx.properties, bundle_keys=ctx.bundle_keys)
        artifacts = {"payload_sha256": payload_fingerprint(payload)}
        flat = to_deployment_properties(payload)

        current = api.deployment_state(name)
        if current in (ResourceState.DEPLOYED, ResourceState.DEPLOYING):
            return StepResult(
                step_id=self.id,
                kind=self.kind,
                status=StepStatus.NOOP,
                summary=f"pipeline '{name}' already {current.value}",
                artifacts=artifacts,
                payload={"state": current.value},
            )

        api.deploy(name, flat)
        logger.info("deploy de %s submetido com %d propriedades", name, len(flat))
        ctx.log(step_id=self.id, level="info", message="deploy submetido",
                pipeline=name, properties=len(flat))

        metrics: Dict[str, Any] = {"properties": len(flat)}
        final_state = ResourceState.DEPLOYING
        if ctx.wait_for_ready:
            poll = ctx.wait(
                lambda: _is_ready(api, name),
                ctx.policies.readiness,
                description=f"pipeline '{name}' ficar deployed",
            )
            metrics["readiness_poll_attempts"] = poll.attempts
            final_state = ResourceState.DEPLOYED

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS,
            summary=f"pipeline '{name}' deployment submitted",
            metrics=metrics,
            artifacts=artifacts,
            payload={"state": final_state.value, "properties": flat},
        )


def _is_ready(api, name: str) -> bool:
    state = api.deployment_state(name)
    if state == ResourceState.FAILED:
        raise ControlPlaneError(
            f"Deployment do pipeline '{name}' falhou no control plane",
            details={"pipeline": name, "state": state.value},
            hint="Inspecione os logs dos componentes no control plane antes de reexecutar.",
        )
    return state == ResourceState.DEPLOYED

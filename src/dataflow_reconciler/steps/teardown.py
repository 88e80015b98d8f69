"""Step canônico: teardown (v1).

Responsabilidades:
- Remover o deployment do pipeline (undeploy).
- Remover a definição do pipeline.
- Quando algo foi removido, aguardar até a definição deixar de ser resolvível.

Princípios:
- Ausência é sucesso: remover o que não existe é NOOP, não erro.
- O teardown sempre precede a criação no plano canônico; é ele que
  permite reexecutar a reconciliação a partir de qualquer estado parcial.

Payload mínimo:
payload:
  undeployed: bool
  definition_deleted: bool

Limites explícitos (v1):
- NÃO remove registros de componentes (ver components.unregister).
- NÃO faz rollback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from dataflow_reconciler.core.pipeline.context import ReconcileContext
from dataflow_reconciler.core.pipeline.step import Step
from dataflow_reconciler.core.pipeline.types import PipelineState, StepKind, StepResult, StepStatus


logger = logging.getLogger(__name__)


@dataclass
class TeardownStep(Step):
    """Undeploy + remoção da definição, tolerando ausência."""

    id: str = "teardown"
    kind: StepKind = StepKind.TEARDOWN
    state: PipelineState = PipelineState.TEARING_DOWN
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = []

    def run(self, ctx: ReconcileContext) -> StepResult:
        name = ctx.pipeline.name
        api = ctx.api

        undeployed = api.undeploy(name)
        deleted = api.delete_definition(name)
        payload = {"undeployed": undeployed, "definition_deleted": deleted}

        if not (undeployed or deleted):
            ctx.log(step_id=self.id, level="info", message="pipeline ausente; nada a remover", pipeline=name)
            return StepResult(
                step_id=self.id,
                kind=self.kind,
                status=StepStatus.NOOP,
                summary=f"pipeline '{name}' already absent",
                payload=payload,
            )

        poll = ctx.wait(
            lambda: api.lookup_definition(name) is None,
            ctx.policies.teardown,
            description=f"definição '{name}' deixar de ser resolvível",
        )
        logger.info("pipeline %s removido (undeployed=%s, deleted=%s)", name, undeployed, deleted)
        ctx.log(step_id=self.id, level="info", message="pipeline removido", pipeline=name, **payload)

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS,
            summary=f"pipeline '{name}' torn down",
            metrics={"poll_attempts": poll.attempts, "poll_elapsed_s": round(poll.elapsed, 3)},
            payload=payload,
        )

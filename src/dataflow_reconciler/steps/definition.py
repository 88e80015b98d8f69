"""Step canônico: definition.create (v1).

Responsabilidades:
- Submeter a cadeia ordenada de componentes como uma única definição
  (`src | proc | sink`) com o nome do pipeline, sem deploy.

Regras:
- Definição existente com a mesma cadeia → NOOP.
- Definição existente com cadeia diferente → ConflictError; o caminho
  de recuperação é o teardown (que sempre precede este Step no plano).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from dataflow_reconciler.core.exceptions import ConflictError
from dataflow_reconciler.core.pipeline.context import ReconcileContext
from dataflow_reconciler.core.pipeline.step import Step
from dataflow_reconciler.core.pipeline.topology import DEFINITION_SEPARATOR
from dataflow_reconciler.core.pipeline.types import PipelineState, StepKind, StepResult, StepStatus


def normalize_dsl(dsl: str) -> str:
    return DEFINITION_SEPARATOR.join(part.strip() for part in (dsl or "").split("|"))


@dataclass
class CreateDefinitionStep(Step):
    """Criação idempotente da definição do pipeline."""

    id: str = "definition.create"
    kind: StepKind = StepKind.DEFINITION
    state: PipelineState = PipelineState.DEFINITION_CREATING
    depends_on: List[str] = None  # type: ignore[assignment]

    def __post_init__(self) -> None:
        if self.depends_on is None:
            self.depends_on = ["components.register"]

    def run(self, ctx: ReconcileContext) -> StepResult:
        name = ctx.pipeline.name
        desired = ctx.pipeline.definition

        existing = ctx.api.lookup_definition(name)
        if existing is not None:
            current = existing.attributes.get("dsl") or ""
            if normalize_dsl(current) == normalize_dsl(desired):
                return StepResult(
                    step_id=self.id,
                    kind=self.kind,
                    status=StepStatus.NOOP,
                    summary=f"definition '{name}' already present",
                    payload={"definition": desired},
                )
            raise ConflictError(
                f"Definição '{name}' já existe com outra cadeia de componentes",
                details={"pipeline": name, "existing": current, "desired": desired},
            )

        ctx.api.create_definition(name, desired, ctx.pipeline.description)
        ctx.log(step_id=self.id, level="info", message="definição criada", pipeline=name, definition=desired)

        return StepResult(
            step_id=self.id,
            kind=self.kind,
            status=StepStatus.SUCCESS,
            summary=f"definition '{name}' created",
            payload={"definition": desired},
        )

# src/dataflow_reconciler/core/pipeline/step.py
"""
Contrato canônico de Step da reconciliação.

Um Step é a menor unidade executável de uma reconciliação: leva um
aspecto do pipeline remoto (definição, componentes, deployment) ao
estado desejado.

Responsabilidades de um Step:
    - verificar se o alvo já está no estado desejado (NOOP)
    - caso contrário, alterar o estado remoto e confirmar (SUCCESS)
    - produzir um StepResult imutável

Princípios fundamentais:
    - Steps não conhecem o Reconciler nem o planner
    - Steps assumem que sua pré-condição pode já estar satisfeita
      (reexecução é o caminho de recuperação)
    - Conformidade é garantida por duck typing (@runtime_checkable)

Limites explícitos:
    - Não registra eventos no Step Log diretamente
    - Não decide políticas de execução (fail-fast, skip)
"""

from __future__ import annotations

from typing import List, Protocol, runtime_checkable

from .context import ReconcileContext
from .types import PipelineState, StepKind, StepResult


@runtime_checkable
class Step(Protocol):
    """
    Contrato de um Step.

    Atributos obrigatórios:
        - id: identificador único e estável do Step
        - kind: classificação semântica (`StepKind`)
        - state: PipelineState assumido enquanto o Step executa
        - depends_on: `step_id`s que devem executar antes

    Invariantes:
        - `run` é executado no máximo uma vez por reconciliação
        - O retorno de `run` é sempre um `StepResult`
    """
    id: str
    kind: StepKind
    state: PipelineState
    depends_on: List[str]

    def run(self, ctx: ReconcileContext) -> StepResult:
        """Executa o Step uma única vez usando exclusivamente o ReconcileContext."""
        ...

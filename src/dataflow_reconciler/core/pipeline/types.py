# src/dataflow_reconciler/core/pipeline/types.py
"""
Tipos canônicos da reconciliação de pipelines.

Este módulo define as estruturas e enums que padronizam a comunicação
entre Steps, Reconciler, client do control plane e step log.

Componentes principais:
    - StepStatus    → estados finais de um Step (SUCCESS, NOOP, SKIPPED, FAILED)
    - StepKind      → classificação semântica do Step
    - StepResult    → resultado imutável produzido por um Step
    - PipelineState → máquina de estados da reconciliação
    - ResourceKind / ResourceState / Resource → visão de um recurso remoto

Princípios fundamentais:
    - Tipos são estáveis e serializáveis (enums com valores textuais)
    - Nenhuma lógica de execução vive neste módulo

Invariantes:
    - StepResult é imutável
    - Valores textuais dos enums são canônicos e usados no step log

Limites explícitos:
    - Não executa Steps
    - Não conversa com o control plane
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List


class StepKind(str, Enum):
    """
    Tipos semânticos de Steps da reconciliação.

    O tipo é puramente informativo: o Reconciler não decide execução
    com base no `kind`, apenas o registra no step log.
    """
    TEARDOWN = "teardown"
    COMPONENTS = "components"
    DEFINITION = "definition"
    DEPLOYMENT = "deployment"


class StepStatus(str, Enum):
    """
    Estados finais possíveis da execução de um Step.

    Estados definidos:
        - SUCCESS: o Step alterou estado remoto
        - NOOP: o alvo já estava no estado desejado; nada foi alterado
        - SKIPPED: não executado porque um Step anterior falhou
        - FAILED: execução interrompida por erro

    Invariantes:
        - O status final de um Step é exatamente um dos valores definidos
        - Estados transitórios (ex.: running) não pertencem a este enum
    """
    SUCCESS = "success"
    NOOP = "noop"
    SKIPPED = "skipped"
    FAILED = "failed"


class PipelineState(str, Enum):
    """
    Estados da reconciliação de um pipeline.

    Sequência nominal:
        not_present → tearing_down → components_unregistering →
        components_registering → definition_creating → deploying → deployed

    `failed` é terminal e acompanhado de (failed_step, cause).
    """
    NOT_PRESENT = "not_present"
    TEARING_DOWN = "tearing_down"
    COMPONENTS_UNREGISTERING = "components_unregistering"
    COMPONENTS_REGISTERING = "components_registering"
    DEFINITION_CREATING = "definition_creating"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


class ResourceKind(str, Enum):
    COMPONENT = "component"
    DEFINITION = "definition"
    DEPLOYMENT = "deployment"


class ResourceState(str, Enum):
    """Estado observado de um recurso no control plane."""
    ABSENT = "absent"
    PRESENT = "present"
    DEPLOYING = "deploying"
    DEPLOYED = "deployed"
    FAILED = "failed"


@dataclass(frozen=True)
class Resource:
    name: str
    kind: ResourceKind
    state: ResourceState
    attributes: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class StepResult:
    """
    Resultado imutável da execução de um Step.

    Campos:
        - step_id: identificador único do Step
        - kind: tipo semântico do Step
        - status: estado final da execução do Step
        - summary: resumo textual da execução
        - metrics: contadores produzidos pelo Step (ex.: registered=3)
        - warnings: avisos não fatais (ex.: conflito brando de registro)
        - artifacts: referências leves (ex.: fingerprint do payload)
        - payload: dados adicionais; em falhas contém `payload["error"]`

    Invariantes:
        - Uma instância de StepResult nunca é alterada após criada
        - `step_id`, `kind` e `status` estão sempre presentes
    """
    step_id: str
    kind: StepKind
    status: StepStatus
    summary: str
    metrics: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)
    artifacts: Dict[str, str] = field(default_factory=dict)
    payload: Dict[str, Any] = field(default_factory=dict)

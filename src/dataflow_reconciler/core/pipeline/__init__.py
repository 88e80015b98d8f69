# src/dataflow_reconciler/core/pipeline/__init__.py
"""
# Pipeline Core — Dataflow Reconciler

Este pacote define os **contratos canônicos** e as **estruturas fundamentais**
de uma reconciliação.

Uma reconciliação é modelada como uma **sequência linear de Steps**, onde:
- cada Step declara identidade, tipo semântico, estado e dependências
- a execução é coordenada exclusivamente pelo Reconciler
- o estado compartilhado é mediado pelo `ReconcileContext`

## Componentes

- **types**
  - `StepStatus`: estados finais de execução (success, noop, skipped, failed)
  - `StepKind`: classificação semântica de Steps
  - `StepResult`: resultado imutável da execução de um Step
  - `PipelineState` / `ResourceState`: estados do pipeline e dos recursos remotos

- **topology**
  - `PipelineSpec` / `ComponentSpec`: pipeline desejado e sua validação

- **step**
  - `Step` (Protocol): contrato mínimo que todo Step deve satisfazer

- **context**
  - `ReconcileContext`: contexto de execução (control plane, políticas, logs, warnings)

## Princípios Fundamentais

- Steps **não conhecem** o Reconciler nem o planner
- Steps **assumem** que sua pré-condição pode já estar satisfeita
- Nenhuma decisão implícita ou silenciosa
"""

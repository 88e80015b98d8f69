# src/dataflow_reconciler/__init__.py
"""
Dataflow Reconciler — reconciliação de pipelines num control plane REST.

Este pacote raiz define o namespace público do Dataflow Reconciler, que
leva um pipeline linear (source → processor(s) → sink) hospedado num
control plane estilo Spring Cloud Data Flow de qualquer estado ao estado
desejado, por meio de uma sequência de Steps idempotentes.

Princípios centrais:
    - Cada Step é idempotente; reexecutar é o caminho de recuperação
    - Falhas de transporte são absorvidas por retry com backoff
    - Atrasos de consistência eventual são absorvidos por polling explícito
    - Propriedades de deployment são um modelo imutável, compilado num
      payload, nunca manipulado como texto

Arquitetura em alto nível:
    - core.config       → settings (YAML/JSON) e exceções de configuração
    - core.properties   → modelo de propriedades e compilador de payload
    - core.controlplane → client HTTP resiliente e semântica de recursos
    - core.convergence  → poller de consistência eventual
    - core.pipeline     → tipos, contexto e protocolo de Step
    - core.engine       → planner e Reconciler
    - core.traceability → Step Log
    - steps             → Steps canônicos do plano

Limites explícitos:
    - Não provisiona cluster nem instala charts
    - Não obtém tokens OAuth
    - Não implementa o control plane nem executa o processamento de dados
"""

from .core.config.loader import Settings, load_settings
from .core.engine.reconciler import (
    ReconciliationResult,
    Reconciler,
    build_reconciler,
    reconcile_from_settings,
)
from .core.properties.model import PropertySet, parse_properties, render_properties

__all__ = [
    "PropertySet",
    "ReconciliationResult",
    "Reconciler",
    "Settings",
    "build_reconciler",
    "load_settings",
    "parse_properties",
    "reconcile_from_settings",
    "render_properties",
]

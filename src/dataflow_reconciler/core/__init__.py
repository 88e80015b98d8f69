# src/dataflow_reconciler/core/__init__.py
"""
Core do Dataflow Reconciler.

Este pacote reúne as responsabilidades essenciais para levar um pipeline
hospedado num control plane REST (estilo Spring Cloud Data Flow) de
qualquer estado ao estado desejado.

Componentes principais:
    - config       → settings (YAML/JSON), merge e exceções de configuração
    - properties   → modelo de propriedades e compilador de payload
    - controlplane → client HTTP resiliente e semântica de recursos
    - convergence  → poller de consistência eventual
    - pipeline     → tipos, contexto e protocolo de Step
    - engine       → planejamento e execução da reconciliação
    - traceability → Step Log em memória

Princípios fundamentais:
    - Nenhuma decisão silenciosa: todo comportamento é explícito e testado
    - Cada Step é idempotente; reexecutar é o caminho de recuperação
"""

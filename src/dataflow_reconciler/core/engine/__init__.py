# src/dataflow_reconciler/core/engine/__init__.py
"""
Engine do Dataflow Reconciler.

Este pacote contém a implementação responsável por **planejar** e
**executar** a reconciliação de um pipeline.

Componentes principais:
    - planner    → validação estrutural e ordenação determinística dos Steps
    - reconciler → pre-flight, execução fail-fast do plano e operações
                   status / destroy / scale

Invariantes:
    - Steps só são executados após seus predecessores concluírem com
      SUCCESS ou NOOP
    - Cada Step é executado no máximo uma vez por reconciliação
    - O resultado reflete explicitamente o estado de cada Step
"""

# tests/test_smoke.py
"""
Testes de sanidade estrutural (smoke tests) do Dataflow Reconciler.

Este módulo contém testes mínimos cujo único objetivo é garantir que:
- o pacote é importável a partir do layout `src/`
- o namespace público expõe os pontos de entrada documentados
- a descoberta e execução de testes ocorre sem erros

Invariantes:
    - Estes testes devem sempre passar em um setup correto
    - Não fazem chamadas remotas nem acessam filesystem

Limites explícitos:
    - Não testar lógica de reconciliação
    - Não acumular asserts funcionais
"""


def test_smoke():
    """
    Smoke test mínimo do repositório.

    Garante que o pacote raiz importa sem falhas estruturais e que os
    pontos de entrada públicos continuam exportados.
    """
    import dataflow_reconciler

    for name in ("Reconciler", "PropertySet", "load_settings", "build_reconciler", "reconcile_from_settings"):
        assert name in dataflow_reconciler.__all__
        assert hasattr(dataflow_reconciler, name)

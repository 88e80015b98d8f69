# src/dataflow_reconciler/core/config/__init__.py

"""
Camada de configuração do Dataflow Reconciler.

Este pacote contém as estruturas e utilitários responsáveis por carregar,
mesclar e validar estruturalmente os settings de uma reconciliação.

Responsabilidades do pacote:
    - Carregamento do arquivo de settings (YAML ou JSON)
    - Resolução da seção `default` + seção do ambiente via deep-merge
    - Overrides por variáveis de ambiente (SCDF_URL, SCDF_TOKEN)
    - Exceções canônicas de configuração (`ConfigError` e subclasses)

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Erros de configuração são fatais e ocorrem antes de qualquer chamada remota
    - A mesma entrada sempre produz os mesmos settings

Limites explícitos:
    - Não conversa com o control plane
    - Não executa reconciliação
"""

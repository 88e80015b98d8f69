# src/dataflow_reconciler/core/config/errors.py
"""
Exceções canônicas da camada de configuração do Dataflow Reconciler.

Este módulo define a hierarquia oficial de exceções utilizadas durante
o carregamento de settings, o parsing de propriedades de deployment e a
validação do pipeline desejado.

As exceções aqui definidas representam **erros de configuração**: são
sempre detectadas antes de qualquer chamada ao control plane.

Princípios fundamentais:
    - Exceções são tipadas e semânticas
    - Erros de configuração são tratados como falhas fatais
    - Mensagens de erro são claras e direcionadas ao operador

Invariantes:
    - Todas as exceções deste módulo herdam de `ConfigError`
    - Nenhuma exceção representa erro de transporte ou de convergência

Limites explícitos:
    - Não executa reconciliação
    - Não realiza fallback ou recovery
"""

from __future__ import annotations

from dataclasses import dataclass

from dataflow_reconciler.core.exceptions import ConfigError

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "InvalidConfigRootTypeError",
    "InvalidPipelineSpecError",
    "MalformedPropertyError",
    "MissingRequiredPropertyError",
    "SettingsNotFoundError",
    "UnsupportedConfigFormatError",
]


@dataclass(eq=False)
class SettingsNotFoundError(ConfigError):
    """
    Exceção levantada quando o arquivo de settings não é encontrado.

    Decisões arquiteturais:
        - O arquivo de settings é obrigatório
        - Nenhum default implícito é inventado na ausência do arquivo
    """


@dataclass(eq=False)
class UnsupportedConfigFormatError(ConfigError):
    """
    Exceção levantada quando o formato do arquivo de settings não é suportado.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)
    """


@dataclass(eq=False)
class InvalidConfigRootTypeError(ConfigError):
    """
    Exceção levantada quando o conteúdo raiz (ou uma seção obrigatória)
    não é um dicionário.
    """


@dataclass(eq=False)
class ConfigTypeConflictError(ConfigError):
    """
    Exceção levantada quando o merge entre seções encontra uma chave que é
    mapa de um lado e escalar/lista do outro.

    Exemplo de conflito:
        - default:    {"dataflow": {"retry": {"max_attempts": 3}}}
        - production: {"dataflow": {"retry": 5}}

    Invariantes:
        - Nenhum merge parcial é produzido em caso de conflito
    """


@dataclass(eq=False)
class MalformedPropertyError(ConfigError):
    """
    Exceção levantada quando uma propriedade de deployment não pode ser
    interpretada: par sem `=`, aspas não terminadas, namespace desconhecido
    ou bundle de variáveis de ambiente com entrada inválida.
    """


@dataclass(eq=False)
class MissingRequiredPropertyError(ConfigError):
    """
    Exceção levantada quando uma propriedade declarada como obrigatória
    não está presente no PropertySet efetivo.
    """


@dataclass(eq=False)
class InvalidPipelineSpecError(ConfigError):
    """
    Exceção levantada quando a cadeia de componentes do pipeline é inválida
    (ordem source → processor(s) → sink violada, nomes duplicados,
    localizador de artefato ausente ou malformado).
    """

"""
Dataflow Reconciler — Canonical Exceptions (v1)

Este módulo define as exceções tipadas do reconciliador.

Objetivo:
- Permitir que Steps, client e poller levantem exceções semânticas tipadas
- Facilitar o mapeamento determinístico para ReconcilerErrorPayload
- Distinguir claramente falha de configuração, transporte, conflito e convergência

Taxonomia (v1):
- ConfigError              → propriedade ausente/malformada; fatal antes de qualquer chamada remota
- TransportError           → falha de rede/5xx após esgotar o RetryPolicy
- ControlPlaneError        → rejeição terminal do control plane (payload inválido, validação)
- ConflictError            → recurso remoto existe em estado incompatível
- ConvergenceTimeoutError  → predicado do poller nunca ficou verdadeiro dentro do timeout

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`.
- Mensagem curta e humana; orientação ao operador vai em `hint`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class ReconcilerException(Exception):
    """Base class para exceções internas do reconciliador.

    Importante:
    - Sempre carregar dados estruturados em `details`
    - Não embedar stack trace em payloads de erro
    - Mensagem deve ser curta e humana
    """

    message: str
    details: Dict[str, Any] = field(default_factory=dict)
    hint: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:  # pragma: no cover
        return self.message


# ---------------------------------------------------------------------------
# Configuração
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ConfigError(ReconcilerException):
    """Propriedade ausente ou malformada; aborta antes de qualquer chamada remota."""


# ---------------------------------------------------------------------------
# Control plane
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class TransportError(ReconcilerException):
    """Falha de rede ou 5xx persistente após esgotar as tentativas do RetryPolicy."""


@dataclass(eq=False)
class ControlPlaneError(ReconcilerException):
    """Rejeição terminal do control plane (erro estruturado ou 4xx)."""


@dataclass(eq=False)
class ConflictError(ControlPlaneError):
    """Recurso remoto existe em estado incompatível; exige Teardown antes de reexecutar."""


# ---------------------------------------------------------------------------
# Convergência
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ConvergenceTimeoutError(ReconcilerException):
    """Predicado de convergência não se tornou verdadeiro dentro do timeout."""


# ---------------------------------------------------------------------------
# Reconciliação
# ---------------------------------------------------------------------------

@dataclass(eq=False)
class ReconciliationFailedError(ReconcilerException):
    """Falha de uma reconciliação, com o Step que falhou e a causa original anexados."""

    step: Optional[str] = None
    cause: Optional[BaseException] = None

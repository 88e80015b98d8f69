"""
Dataflow Reconciler — Canonical Error Structures (v1)

Este módulo define o padrão canônico de erros reportados pelo reconciliador.
Erros são artefatos do step log e fazem parte do contrato operacional,
devendo ser:

- explícitos
- serializáveis
- rastreáveis
- acionáveis

Nenhum erro é engolido para "continuar mesmo assim".
"""

from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Optional

from .exceptions import (
    ConfigError,
    ConflictError,
    ControlPlaneError,
    ConvergenceTimeoutError,
    ReconcilerException,
    TransportError,
)


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ReconcilerErrorPayload:
    """
    Payload canônico de erro do reconciliador.

    Campos:
    - type: código estável do erro (não é texto livre)
    - message: mensagem curta, humana e objetiva
    - details: dados estruturados relevantes para diagnóstico
    - hint: ação sugerida ao operador
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Retorna representação serializável do erro."""
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo canônico de tipos de erro (v1)
# ---------------------------------------------------------------------------

CONFIG_ERROR = "CONFIG_ERROR"
TRANSPORT_ERROR = "TRANSPORT_ERROR"
CONTROL_PLANE_ERROR = "CONTROL_PLANE_ERROR"
CONFLICT_ERROR = "CONFLICT_ERROR"
CONVERGENCE_TIMEOUT = "CONVERGENCE_TIMEOUT"
STEP_EXECUTION_ERROR = "STEP_EXECUTION_ERROR"

# Ordem importa: subclasses antes das bases.
_TYPE_BY_EXCEPTION = (
    (ConfigError, CONFIG_ERROR),
    (TransportError, TRANSPORT_ERROR),
    (ConflictError, CONFLICT_ERROR),
    (ControlPlaneError, CONTROL_PLANE_ERROR),
    (ConvergenceTimeoutError, CONVERGENCE_TIMEOUT),
)

_DEFAULT_HINTS = {
    CONFIG_ERROR: "Corrija a configuração do pipeline antes de reexecutar; nenhuma chamada remota foi feita.",
    TRANSPORT_ERROR: "Verifique conectividade e saúde do control plane e reexecute a reconciliação.",
    CONTROL_PLANE_ERROR: "O control plane rejeitou a requisição; revise o payload enviado.",
    CONFLICT_ERROR: "Execute o Teardown do pipeline antes de recriá-lo.",
    CONVERGENCE_TIMEOUT: "Investigue atraso de propagação no control plane e reexecute a reconciliação.",
    STEP_EXECUTION_ERROR: "Verifique o log técnico; nenhum fallback é aplicado automaticamente.",
}


def error_type_for(exc: BaseException) -> str:
    """Retorna o código estável correspondente a uma exceção."""
    for exc_class, code in _TYPE_BY_EXCEPTION:
        if isinstance(exc, exc_class):
            return code
    return STEP_EXECUTION_ERROR


def exception_to_error(exc: BaseException, *, step: Optional[str] = None) -> ReconcilerErrorPayload:
    """Converte exceções em ReconcilerErrorPayload (serializável, acionável).

    Regras:
    - ReconcilerException: já vem com message/details/hint.
    - Outras exceções: encapsular como STEP_EXECUTION_ERROR sem expor stack trace.
    """
    code = error_type_for(exc)

    if isinstance(exc, ReconcilerException):
        details = dict(exc.details or {})
        hint = exc.hint or _DEFAULT_HINTS[code]
        message = exc.message or "Erro de reconciliação"
    else:
        details = {"exception_class": exc.__class__.__name__}
        hint = _DEFAULT_HINTS[STEP_EXECUTION_ERROR]
        message = str(exc) or "Erro inesperado durante a reconciliação"

    if step is not None:
        details.setdefault("step", step)

    return ReconcilerErrorPayload(type=code, message=message, details=details, hint=hint)

"""
Acesso ao control plane do Dataflow Reconciler.

Este pacote reúne o client HTTP resiliente (retry + detecção de erros
estruturados) e a camada que traduz endpoints em resultados de domínio.
"""

from .api import DataflowApi, RegistrationOutcome
from .client import ControlPlaneClient, Request, Response, extract_errors, extract_warnings
from .retry import RetryPolicy

__all__ = [
    "ControlPlaneClient",
    "DataflowApi",
    "RegistrationOutcome",
    "Request",
    "Response",
    "RetryPolicy",
    "extract_errors",
    "extract_warnings",
]

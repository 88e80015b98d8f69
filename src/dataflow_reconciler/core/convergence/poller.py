# src/dataflow_reconciler/core/convergence/poller.py
"""
Convergence Poller — espera explícita por consistência eventual.

O control plane confirma remoções antes de refleti-las nas leituras
(ex.: um componente removido continua resolvível por alguns segundos).
Este módulo reavalia um predicado até que ele se torne verdadeiro ou
até que o tempo limite se esgote.

Algoritmo (v1):
    1. avalia o predicado imediatamente
    2. se falso e `elapsed < timeout`, dorme `min(interval, restante)`
    3. repete; com `elapsed >= timeout` levanta ConvergenceTimeoutError

Invariantes:
    - Tempo total de espera <= timeout + uma avaliação do predicado
    - Exceções do predicado propagam sem alteração
    - Uma única política serve a todos os usos; o predicado é passado
      por chamada

Limites explícitos:
    - Não faz retry de transporte (ver core.controlplane.client)
    - Não decide o que é convergência; apenas avalia o predicado
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from dataflow_reconciler.core.exceptions import ConfigError, ConvergenceTimeoutError


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PollPolicy:
    interval: float = 1.0
    timeout: float = 60.0

    def __post_init__(self) -> None:
        if isinstance(self.interval, bool) or not isinstance(self.interval, (int, float)) or self.interval <= 0:
            raise ConfigError(
                f"PollPolicy.interval deve ser > 0, recebido: {self.interval!r}",
                details={"interval": self.interval},
            )
        if isinstance(self.timeout, bool) or not isinstance(self.timeout, (int, float)) or self.timeout < 0:
            raise ConfigError(
                f"PollPolicy.timeout deve ser >= 0, recebido: {self.timeout!r}",
                details={"timeout": self.timeout},
            )

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]], *, default: "PollPolicy") -> "PollPolicy":
        data = dict(data or {})
        return cls(
            interval=data.get("interval", default.interval),
            timeout=data.get("timeout", default.timeout),
        )


@dataclass(frozen=True)
class PollResult:
    attempts: int
    elapsed: float


def wait_for(
    predicate: Callable[[], bool],
    policy: PollPolicy,
    *,
    description: str = "condition",
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> PollResult:
    """
    Aguarda até `predicate()` retornar True.

    Args:
        predicate: Avaliação sem argumentos; exceções propagam.
        policy: Intervalo e tempo limite.
        description: Texto usado em logs e na mensagem de timeout.

    Returns:
        PollResult: Número de avaliações e tempo decorrido (segundos).

    Raises:
        ConvergenceTimeoutError: Se o predicado não ficar verdadeiro a tempo.
    """
    start = clock()
    attempts = 0

    while True:
        attempts += 1
        if predicate():
            elapsed = clock() - start
            logger.debug("%s convergiu após %d tentativa(s) em %.2fs", description, attempts, elapsed)
            return PollResult(attempts=attempts, elapsed=elapsed)

        elapsed = clock() - start
        remaining = policy.timeout - elapsed
        if remaining <= 0:
            break

        logger.info(
            "aguardando %s (tentativa %d, %.1fs de %.1fs)",
            description, attempts, elapsed, policy.timeout,
        )
        sleep(min(policy.interval, remaining))

    raise ConvergenceTimeoutError(
        f"Tempo limite esgotado aguardando {description} ({policy.timeout:g}s)",
        details={
            "description": description,
            "attempts": attempts,
            "elapsed": round(elapsed, 3),
            "timeout": policy.timeout,
            "interval": policy.interval,
        },
    )

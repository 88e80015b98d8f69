# src/dataflow_reconciler/core/controlplane/retry.py
"""
Política de retry do client do control plane.

Falhas de transporte (erro de rede, 5xx) são tentadas novamente até
`max_attempts` tentativas no total, com atraso exponencial entre elas:

    delay(attempt) = base_delay * multiplier ** (attempt - 1)

Invariantes:
    - max_attempts >= 1
    - base_delay >= 0 e multiplier >= 1 (atrasos nunca diminuem)
    - Valores inválidos falham na construção (ConfigError)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional

from dataflow_reconciler.core.exceptions import ConfigError


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 3
    base_delay: float = 1.0
    multiplier: float = 2.0

    def __post_init__(self) -> None:
        if isinstance(self.max_attempts, bool) or not isinstance(self.max_attempts, int) or self.max_attempts < 1:
            raise ConfigError(
                f"RetryPolicy.max_attempts deve ser inteiro >= 1, recebido: {self.max_attempts!r}",
                details={"max_attempts": self.max_attempts},
            )
        if self.base_delay < 0:
            raise ConfigError(
                f"RetryPolicy.base_delay deve ser >= 0, recebido: {self.base_delay!r}",
                details={"base_delay": self.base_delay},
            )
        if self.multiplier < 1:
            raise ConfigError(
                f"RetryPolicy.multiplier deve ser >= 1, recebido: {self.multiplier!r}",
                details={"multiplier": self.multiplier},
            )

    def delay_for(self, attempt: int) -> float:
        """Atraso aplicado após a tentativa `attempt` (1-based) falhar."""
        return float(self.base_delay) * float(self.multiplier) ** (attempt - 1)

    def delays(self) -> Iterator[float]:
        """Atrasos entre tentativas consecutivas (max_attempts - 1 valores)."""
        for attempt in range(1, self.max_attempts):
            yield self.delay_for(attempt)

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "RetryPolicy":
        data = dict(data or {})
        kwargs: Dict[str, Any] = {}
        if "max_attempts" in data:
            kwargs["max_attempts"] = data["max_attempts"]
        for name in ("base_delay", "multiplier"):
            if name in data:
                kwargs[name] = as_float(data[name], field_name=f"retry.{name}")
        return cls(**kwargs)


def as_float(value: Any, *, field_name: str) -> float:
    """Converte valores numéricos vindos de YAML/JSON; bool e texto não numérico são rejeitados."""
    if isinstance(value, bool):
        raise ConfigError(f"'{field_name}' deve ser numérico, recebido: {value!r}", details={"field": field_name})
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(
            f"'{field_name}' deve ser numérico, recebido: {value!r}",
            details={"field": field_name},
        ) from exc

# src/dataflow_reconciler/core/controlplane/client.py
"""
Resilient Control-Plane Client.

Este módulo executa requisições HTTP contra a API REST do control plane,
absorvendo falhas transitórias de transporte e detectando corpos de erro
estruturados.

Política (v1):
    - Erro de rede (ConnectionError, Timeout) e HTTP 5xx sem corpo de erro
      estruturado → retry conforme RetryPolicy; esgotadas as tentativas →
      TransportError com a última mensagem recebida
    - Resposta com corpo de erro estruturado → terminal, devolvida
      imediatamente, qualquer que seja o status HTTP (inclusive 200 e 5xx);
      reenviar um POST rejeitado não muda o resultado
    - Demais respostas → devolvidas cruas; a interpretação de negócio
      pertence à camada de recursos (core.controlplane.api)

Formatos de erro estruturado reconhecidos:
    - {"_embedded": {"errors": [{"logref": ..., "message": ...}]}}
    - [{"logref": ..., "message": ...}, ...]
    - {"logref": ..., "message": ...}

Avisos:
    - `_embedded.warnings[].message` de qualquer resposta vira
      `Response.warnings`, é logado e fica acumulado no client até
      `drain_warnings()`

Decisões arquiteturais:
    - A sessão HTTP (requests.Session) é injetável para testes
    - O provedor de credencial é um callable opaco, invocado por requisição
    - `sleep` e `clock` são injetáveis; nenhum teste precisa dormir
    - Toda tentativa é registrada via `logging` com número e duração

Limites explícitos:
    - Não obtém tokens OAuth (responsabilidade externa)
    - Não interpreta "not found" nem conflitos (ver api.py)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from dataflow_reconciler.core.exceptions import TransportError

from .retry import RetryPolicy


logger = logging.getLogger(__name__)

TokenProvider = Callable[[], Optional[str]]

DEFAULT_TIMEOUT = 30.0

_NOT_FOUND_MARKERS = ("not found", "could not be found", "does not exist", "no such")


@dataclass(frozen=True)
class Request:
    method: str
    path: str
    params: Optional[Dict[str, Any]] = None
    form: Optional[Dict[str, str]] = None
    json_body: Any = None


@dataclass(frozen=True)
class ErrorEntry:
    message: str
    logref: Optional[str] = None


def extract_errors(body: Any) -> Tuple[ErrorEntry, ...]:
    """Extrai entradas de erro estruturado de um corpo JSON; `()` se não houver."""
    items: Any = None
    if isinstance(body, dict):
        embedded = body.get("_embedded")
        if isinstance(embedded, dict) and isinstance(embedded.get("errors"), list):
            items = embedded["errors"]
        elif "logref" in body and "message" in body:
            items = [body]
    elif isinstance(body, list) and body and all(isinstance(i, dict) and "message" in i for i in body):
        items = body

    if not items:
        return ()

    entries = []
    for item in items:
        if not isinstance(item, dict):
            continue
        logref = item.get("logref")
        entries.append(
            ErrorEntry(
                message=str(item.get("message") or ""),
                logref=str(logref) if logref is not None else None,
            )
        )
    return tuple(entries)


def extract_warnings(body: Any) -> Tuple[str, ...]:
    """Mensagens de `_embedded.warnings[]`; `()` se não houver."""
    if not isinstance(body, dict):
        return ()
    embedded = body.get("_embedded")
    if not isinstance(embedded, dict) or not isinstance(embedded.get("warnings"), list):
        return ()
    return tuple(
        str(item["message"])
        for item in embedded["warnings"]
        if isinstance(item, dict) and item.get("message")
    )


@dataclass(frozen=True)
class Response:
    """Resposta crua do control plane, já com erros estruturados extraídos."""

    status_code: int
    text: str = ""
    body: Any = None
    errors: Tuple[ErrorEntry, ...] = field(default_factory=tuple)
    warnings: Tuple[str, ...] = field(default_factory=tuple)
    attempts: int = 1
    elapsed_ms: int = 0

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300 and not self.errors

    @property
    def error_logrefs(self) -> Tuple[str, ...]:
        return tuple(e.logref for e in self.errors if e.logref)

    @property
    def error_message(self) -> str:
        if self.errors:
            return "; ".join(e.message for e in self.errors if e.message)
        return self.text.strip()

    @property
    def is_not_found(self) -> bool:
        if self.status_code == 404:
            return True
        for entry in self.errors:
            text = f"{entry.logref or ''} {entry.message}".lower()
            if any(marker in text for marker in _NOT_FOUND_MARKERS) or "nosuch" in text:
                return True
        return False


def _parse_body(raw: requests.Response) -> Any:
    if not raw.content:
        return None
    try:
        return raw.json()
    except ValueError:
        return None


class ControlPlaneClient:
    """Executa `Request`s contra o control plane com retry e detecção de erro estruturado."""

    def __init__(
        self,
        base_url: str,
        *,
        session: Optional[requests.Session] = None,
        retry: Optional[RetryPolicy] = None,
        token_provider: Optional[TokenProvider] = None,
        timeout: float = DEFAULT_TIMEOUT,
        verify_tls: bool = True,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session if session is not None else requests.Session()
        self.retry = retry or RetryPolicy()
        self.token_provider = token_provider
        self.timeout = timeout
        self.verify_tls = verify_tls
        self._sleep = sleep
        self._clock = clock
        self._warnings: List[str] = []

    def drain_warnings(self) -> List[str]:
        """Devolve e esvazia os avisos acumulados desde a última chamada."""
        drained, self._warnings = self._warnings, []
        return drained

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.token_provider is not None:
            token = self.token_provider()
            if token:
                headers["Authorization"] = f"Bearer {token}"
        return headers

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def execute(self, request: Request) -> Response:
        """
        Executa a requisição aplicando o RetryPolicy.

        Raises:
            TransportError: Falha de rede ou 5xx persistente após `max_attempts`.
        """
        method = request.method.upper()
        url = self._url(request.path)
        max_attempts = self.retry.max_attempts
        last_status: Optional[int] = None
        last_message = ""
        last_cause: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            started = self._clock()
            try:
                raw = self.session.request(
                    method,
                    url,
                    params=request.params,
                    data=request.form,
                    json=request.json_body,
                    headers=self._headers(),
                    timeout=self.timeout,
                    verify=self.verify_tls,
                )
            except (requests.ConnectionError, requests.Timeout) as exc:
                elapsed_ms = int((self._clock() - started) * 1000)
                logger.warning(
                    "%s %s tentativa %d/%d falhou após %d ms: %s",
                    method, request.path, attempt, max_attempts, elapsed_ms, exc,
                )
                last_status, last_message, last_cause = None, "", exc
            except requests.RequestException as exc:
                raise TransportError(
                    f"Requisição inválida para o control plane: {method} {request.path}",
                    details={"method": method, "path": request.path, "attempts": attempt, "cause": str(exc)},
                ) from exc
            else:
                elapsed_ms = int((self._clock() - started) * 1000)
                body = _parse_body(raw)
                response = Response(
                    status_code=raw.status_code,
                    text=raw.text or "",
                    body=body,
                    errors=extract_errors(body),
                    warnings=extract_warnings(body),
                    attempts=attempt,
                    elapsed_ms=elapsed_ms,
                )
                for message in response.warnings:
                    logger.warning("aviso do control plane em %s %s: %s", method, request.path, message)
                    self._warnings.append(message)
                # corpo de erro estruturado é terminal em qualquer status
                if raw.status_code < 500 or response.errors:
                    logger.debug(
                        "%s %s tentativa %d/%d -> %d (%d ms)",
                        method, request.path, attempt, max_attempts, raw.status_code, elapsed_ms,
                    )
                    return response
                logger.warning(
                    "%s %s tentativa %d/%d -> %d (%d ms)",
                    method, request.path, attempt, max_attempts, raw.status_code, elapsed_ms,
                )
                last_status, last_message, last_cause = raw.status_code, response.error_message, None

            if attempt < max_attempts:
                self._sleep(self.retry.delay_for(attempt))

        details: Dict[str, Any] = {
            "method": method,
            "path": request.path,
            "attempts": max_attempts,
            "last_status": last_status,
        }
        if last_message:
            details["last_message"] = last_message
        if last_cause is not None:
            details["cause"] = f"{last_cause.__class__.__name__}: {last_cause}"
        raise TransportError(
            f"Control plane indisponível após {max_attempts} tentativa(s): {method} {request.path}",
            details=details,
        )

    # -----------------------------
    # Atalhos
    # -----------------------------
    def get(self, path: str, **params: Any) -> Response:
        return self.execute(Request("GET", path, params=params or None))

    def delete(self, path: str) -> Response:
        return self.execute(Request("DELETE", path))

    def post_form(self, path: str, form: Dict[str, str]) -> Response:
        return self.execute(Request("POST", path, form=form))

    def post_json(self, path: str, body: Any) -> Response:
        return self.execute(Request("POST", path, json_body=body))

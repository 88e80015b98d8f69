# src/dataflow_reconciler/core/controlplane/api.py
"""
Semântica de recursos do control plane.

Este módulo traduz endpoints REST do control plane em resultados de
domínio consumidos pelos Steps:

    GET    /apps/{type}/{name}                                  → lookup_component
    POST   /apps/{type}/{name}            (form: uri)           → register_component
    DELETE /apps/{type}/{name}                                  → unregister_component
    GET    /streams/definitions/{name}                          → lookup_definition
    POST   /streams/definitions           (form)                → create_definition
    DELETE /streams/definitions/{name}                          → delete_definition
    POST   /streams/deployments/{name}    (json)                → deploy
    DELETE /streams/deployments/{name}                          → undeploy
    GET    /streams/deployments/{name}                          → deployment_state
    POST   /streams/deployments/scale/{name}/{app}/instances/{n}→ scale
    GET    /about                                               → about

Decisões arquiteturais:
    - "Not found" é um resultado distinto (None / False), nunca uma exceção,
      para que remoções sejam idempotentes
    - "Already registered" no registro é um conflito brando
      (RegistrationOutcome.CONFLICT), decidido pelo Step
    - Qualquer outra resposta de erro vira ControlPlaneError (terminal)

Limites explícitos:
    - Não faz retry (ver client.py)
    - Não faz polling (ver core.convergence)
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from dataflow_reconciler.core.exceptions import ConflictError, ControlPlaneError
from dataflow_reconciler.core.pipeline.types import Resource, ResourceKind, ResourceState

from .client import ControlPlaneClient, Response


logger = logging.getLogger(__name__)


class RegistrationOutcome(str, Enum):
    REGISTERED = "registered"
    CONFLICT = "conflict"


_STATE_BY_STATUS = {
    "undeployed": ResourceState.PRESENT,
    "deploying": ResourceState.DEPLOYING,
    "partial": ResourceState.DEPLOYING,
    "deployed": ResourceState.DEPLOYED,
    "failed": ResourceState.FAILED,
    "incomplete": ResourceState.FAILED,
    "error": ResourceState.FAILED,
}

_ALREADY_REGISTERED_MARKERS = ("already registered", "already exists", "already been created")


def state_from_status(status: Optional[str]) -> ResourceState:
    """Mapeia o status textual do control plane para ResourceState."""
    normalized = (status or "").strip().lower()
    if normalized in _STATE_BY_STATUS:
        return _STATE_BY_STATUS[normalized]
    logger.warning("Status desconhecido do control plane %r; tratado como 'present'", status)
    return ResourceState.PRESENT


def _mentions(response: Response, markers: tuple) -> bool:
    text = response.error_message.lower()
    return any(m in text for m in markers)


def _rejected(response: Response, action: str, **details: Any) -> ControlPlaneError:
    payload: Dict[str, Any] = {
        "action": action,
        "status_code": response.status_code,
        "errors": [e.message for e in response.errors],
        "logrefs": list(response.error_logrefs),
    }
    payload.update(details)
    return ControlPlaneError(
        f"Control plane rejeitou '{action}': {response.error_message or response.status_code}",
        details=payload,
    )


class DataflowApi:
    """Operações de recurso sobre um ControlPlaneClient."""

    def __init__(self, client: ControlPlaneClient):
        self.client = client

    def drain_warnings(self) -> List[str]:
        """Avisos (`_embedded.warnings`) recebidos desde a última drenagem."""
        return self.client.drain_warnings()

    # -----------------------------
    # Componentes (apps registrados)
    # -----------------------------
    def lookup_component(self, kind: str, name: str) -> Optional[Resource]:
        response = self.client.get(f"/apps/{kind}/{name}")
        if response.is_not_found:
            return None
        if not response.ok:
            raise _rejected(response, "lookup_component", component=name, type=kind)
        body = response.body if isinstance(response.body, dict) else {}
        return Resource(
            name=name,
            kind=ResourceKind.COMPONENT,
            state=ResourceState.PRESENT,
            attributes={"type": kind, "uri": body.get("uri")},
        )

    def register_component(self, kind: str, name: str, uri: str) -> RegistrationOutcome:
        response = self.client.post_form(f"/apps/{kind}/{name}", {"uri": uri})
        if response.ok:
            return RegistrationOutcome.REGISTERED
        if _mentions(response, _ALREADY_REGISTERED_MARKERS):
            return RegistrationOutcome.CONFLICT
        raise _rejected(response, "register_component", component=name, type=kind, uri=uri)

    def unregister_component(self, kind: str, name: str) -> bool:
        """Remove o registro; retorna False quando o componente já não existia."""
        response = self.client.delete(f"/apps/{kind}/{name}")
        if response.is_not_found:
            return False
        if not response.ok:
            raise _rejected(response, "unregister_component", component=name, type=kind)
        return True

    # -----------------------------
    # Definições de pipeline
    # -----------------------------
    def lookup_definition(self, name: str) -> Optional[Resource]:
        response = self.client.get(f"/streams/definitions/{name}")
        if response.is_not_found:
            return None
        if not response.ok:
            raise _rejected(response, "lookup_definition", pipeline=name)
        body = response.body if isinstance(response.body, dict) else {}
        status = body.get("status")
        return Resource(
            name=name,
            kind=ResourceKind.DEFINITION,
            state=state_from_status(status),
            attributes={"dsl": body.get("dslText") or body.get("originalDslText"), "status": status},
        )

    def create_definition(self, name: str, dsl: str, description: str = "") -> None:
        response = self.client.post_form(
            "/streams/definitions",
            {"name": name, "definition": dsl, "description": description, "deploy": "false"},
        )
        if response.ok:
            return
        if _mentions(response, _ALREADY_REGISTERED_MARKERS):
            raise ConflictError(
                f"Definição '{name}' já existe no control plane",
                details={"pipeline": name, "errors": [e.message for e in response.errors]},
            )
        raise _rejected(response, "create_definition", pipeline=name, definition=dsl)

    def delete_definition(self, name: str) -> bool:
        response = self.client.delete(f"/streams/definitions/{name}")
        if response.is_not_found:
            return False
        if not response.ok:
            raise _rejected(response, "delete_definition", pipeline=name)
        return True

    # -----------------------------
    # Deployments
    # -----------------------------
    def deploy(self, name: str, properties: Mapping[str, str]) -> None:
        response = self.client.post_json(f"/streams/deployments/{name}", dict(properties))
        if not response.ok:
            raise _rejected(response, "deploy", pipeline=name)

    def undeploy(self, name: str) -> bool:
        response = self.client.delete(f"/streams/deployments/{name}")
        if response.is_not_found:
            return False
        if not response.ok:
            raise _rejected(response, "undeploy", pipeline=name)
        return True

    def deployment_state(self, name: str) -> ResourceState:
        response = self.client.get(f"/streams/deployments/{name}")
        if response.is_not_found:
            return ResourceState.ABSENT
        if not response.ok:
            raise _rejected(response, "deployment_state", pipeline=name)
        body = response.body if isinstance(response.body, dict) else {}
        return state_from_status(body.get("status") or body.get("state"))

    def scale(self, name: str, app: str, count: int) -> None:
        response = self.client.post_json(f"/streams/deployments/scale/{name}/{app}/instances/{count}", {})
        if not response.ok:
            raise _rejected(response, "scale", pipeline=name, component=app, count=count)

    # -----------------------------
    # Diagnóstico
    # -----------------------------
    def about(self) -> Dict[str, Any]:
        response = self.client.get("/about")
        if not response.ok:
            raise _rejected(response, "about")
        return response.body if isinstance(response.body, dict) else {}

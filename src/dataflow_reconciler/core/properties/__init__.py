"""
Propriedades de deployment do Dataflow Reconciler.

Este pacote reúne o modelo imutável de propriedades com escopo por
componente e o compilador que produz o payload aceito pelo control plane.
"""

from .compiler import (
    CompiledPayload,
    compile_properties,
    encode_payload,
    normalize_env_bundle,
    payload_fingerprint,
    to_deployment_properties,
)
from .model import (
    Property,
    PropertySet,
    WILDCARD_SCOPE,
    merge,
    parse_properties,
    render_properties,
)

__all__ = [
    "CompiledPayload",
    "Property",
    "PropertySet",
    "WILDCARD_SCOPE",
    "compile_properties",
    "encode_payload",
    "merge",
    "normalize_env_bundle",
    "parse_properties",
    "payload_fingerprint",
    "render_properties",
    "to_deployment_properties",
]

# src/dataflow_reconciler/core/properties/compiler.py
"""
Configuration Compiler — PropertySet → payload aceito pelo control plane.

Este módulo transforma o conjunto efetivo de propriedades de um pipeline
no payload de deployment enviado ao control plane.

Etapas de compilação (v1):
    1. particionar propriedades por escopo (componente ou `*`)
    2. normalizar bundles de variáveis de ambiente: entradas `NOME=valor`
       separadas por `;` ou `|` são reescritas com o separador `,`
       esperado pelo deployer; esta etapa ocorre ANTES do escape genérico
    3. escapar cada valor para o wire (trim e normalização de quebras de linha)
    4. omitir escopos vazios

Exemplo:
    deployer.textProc.kubernetes.environmentVariables=S3_ENDPOINT=http://minio:9000;S3_ACCESS_KEY=minio
    →
    {"textProc": {"deployer.kubernetes.environmentVariables":
                  "S3_ENDPOINT=http://minio:9000,S3_ACCESS_KEY=minio"}}

Princípios fundamentais:
    - Função pura: a mesma entrada produz sempre o mesmo payload
    - Nenhuma chamada remota
    - Erros de formato falham antes do envio (MalformedPropertyError)

Invariantes:
    - (scope, key) duplicado → último valor vence, mesmo sem `merge` prévio
    - Entrada vazia → payload vazio (`{}`)
    - Escopos sem chaves nunca aparecem no payload

Limites explícitos:
    - Não valida existência dos componentes referenciados
    - Não executa o deployment (ver steps.deploy)
"""

from __future__ import annotations

import hashlib
import json
from typing import Dict, Iterable, List, Sequence

from dataflow_reconciler.core.config.errors import MalformedPropertyError

from .model import Property, flat_name


CompiledPayload = Dict[str, Dict[str, str]]

TARGET_SEPARATOR = ","
SECONDARY_DELIMITERS = (";", "|")
ENV_BUNDLE_SUFFIXES = (
    "kubernetes.environmentVariables",
    "cloudfoundry.environmentVariables",
)


def is_env_bundle_key(key: str, extra_keys: Sequence[str] = ()) -> bool:
    if key in extra_keys:
        return True
    return any(key == s or key.endswith("." + s) for s in ENV_BUNDLE_SUFFIXES)


def _split_entries(raw: str, *, scope: str, key: str) -> List[str]:
    entries: List[str] = []
    buf: List[str] = []
    in_quote = False
    for ch in raw:
        # aspas só delimitam quando abrem o valor logo após o primeiro `=`
        opens_value = "".join(buf).strip().endswith("=") and buf.count("=") == 1
        if ch == "'" and (in_quote or opens_value):
            in_quote = not in_quote
            buf.append(ch)
        elif not in_quote and (ch == TARGET_SEPARATOR or ch in SECONDARY_DELIMITERS):
            entries.append("".join(buf))
            buf = []
        else:
            buf.append(ch)
    if in_quote:
        raise MalformedPropertyError(
            f"Aspas simples não terminadas no bundle de variáveis de ambiente de '{scope}'",
            details={"scope": scope, "key": key},
        )
    entries.append("".join(buf))
    return [e.strip() for e in entries if e.strip()]


def normalize_env_bundle(raw: str, *, scope: str = "*", key: str = "") -> str:
    """
    Reescreve um bundle de variáveis de ambiente com o separador `,`.

    Regras:
        - `;`, `|` e `,` separam entradas (fora de aspas simples)
        - aspas simples só delimitam um valor quando o abrem logo após `=`;
          apóstrofos no meio do valor (ex.: `it's`) são literais
        - cada entrada deve ter a forma `NOME=valor` com NOME não vazio
        - valores contendo `,` são envolvidos em aspas simples
        - entradas vazias (ex.: `;` final) são descartadas

    Raises:
        MalformedPropertyError: Entrada sem `=` ou com nome vazio
            ou valor entre aspas sem aspas de fechamento.
    """
    normalized: List[str] = []
    for entry in _split_entries(raw, scope=scope, key=key):
        name, sep, value = entry.partition("=")
        name = name.strip()
        if not sep or not name:
            raise MalformedPropertyError(
                f"Entrada inválida no bundle de variáveis de ambiente de '{scope}': {entry!r}",
                details={"scope": scope, "key": key, "entry": entry},
                hint="Use entradas no formato NOME=valor separadas por ';'.",
            )
        value = value.strip()
        if TARGET_SEPARATOR in value and not (value.startswith("'") and value.endswith("'")):
            value = f"'{value}'"
        normalized.append(f"{name}={value}")
    return TARGET_SEPARATOR.join(normalized)


def escape_value(value: str) -> str:
    """Escape genérico de wire: trim e normalização de `\\r\\n`/`\\r` para `\\n`."""
    return value.replace("\r\n", "\n").replace("\r", "\n").strip()


def compile_properties(
    properties: Iterable[Property],
    *,
    bundle_keys: Sequence[str] = (),
) -> CompiledPayload:
    """
    Compila propriedades no payload aninhado `{scope: {key: value}}`.

    Args:
        properties (Iterable[Property]): Normalmente um PropertySet já mesclado.
        bundle_keys (Sequence[str]): Chaves adicionais tratadas como bundle de
            variáveis de ambiente.

    Returns:
        CompiledPayload: Payload pronto para `to_deployment_properties`.

    Raises:
        MalformedPropertyError: Bundle de variáveis de ambiente malformado.
    """
    payload: CompiledPayload = {}
    for prop in properties:
        value = prop.value
        if is_env_bundle_key(prop.key, bundle_keys):
            value = normalize_env_bundle(value, scope=prop.scope, key=prop.key)
        payload.setdefault(prop.scope, {})[prop.key] = escape_value(value)
    return {scope: keys for scope, keys in payload.items() if keys}


def to_deployment_properties(payload: CompiledPayload) -> Dict[str, str]:
    """Achata o payload na forma `app.<scope>.<key>` / `deployer.<scope>.<key>`."""
    return {
        flat_name(scope, key): value
        for scope, keys in payload.items()
        for key, value in keys.items()
    }


def encode_payload(payload: CompiledPayload) -> str:
    """Serialização canônica em JSON (chaves ordenadas, sem espaços)."""
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def payload_fingerprint(payload: CompiledPayload) -> str:
    return hashlib.sha256(encode_payload(payload).encode("utf-8")).hexdigest()

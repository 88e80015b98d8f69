# src/dataflow_reconciler/core/config/loader.py
"""
Loader canônico de settings do Dataflow Reconciler.

Este módulo é responsável por carregar, validar estruturalmente e resolver
os settings efetivos de uma reconciliação: onde está o control plane,
como autenticar, quais políticas de retry/polling usar e qual pipeline
deve existir.

Os settings são resolvidos a partir de um único arquivo com seções:
    - `default`   → valores base (obrigatória, salvo arquivo plano)
    - `<ambiente>` → overrides do ambiente escolhido (ex.: `production`)

Precedência (da menor para a maior):
    1. seção `default`
    2. seção do ambiente
    3. variáveis de ambiente `SCDF_URL` / `SCDF_TOKEN`
    4. overrides explícitos passados a `load_settings`

Para `deployment_properties` a mesma precedência é aplicada por
(scope, key) via `core.properties.model.merge`.

Princípios fundamentais:
    - Configuração é declarativa e explícita
    - Erros estruturais são tratados como falhas fatais (ConfigError)
    - A mesma entrada sempre produz os mesmos settings

Invariantes:
    - O arquivo de settings é obrigatório
    - Nenhuma seção de entrada é mutada
    - `dataflow.url` é sempre http(s)

Limites explícitos:
    - Não conversa com o control plane
    - Não obtém tokens OAuth (apenas lê um token já emitido)
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import yaml  # PyYAML

from dataflow_reconciler.core.controlplane.retry import RetryPolicy, as_float
from dataflow_reconciler.core.convergence.poller import PollPolicy
from dataflow_reconciler.core.pipeline.context import ConvergencePolicies
from dataflow_reconciler.core.pipeline.topology import PipelineSpec
from dataflow_reconciler.core.properties.model import PropertySet, merge, parse_properties

from .errors import (
    ConfigError,
    InvalidConfigRootTypeError,
    SettingsNotFoundError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


DEFAULT_SECTION = "default"
ENV_URL = "SCDF_URL"
ENV_TOKEN = "SCDF_TOKEN"

PropertyOverrides = Union[PropertySet, Mapping[str, Any], str]


@dataclass(frozen=True)
class DataflowSettings:
    """Conexão com o control plane e políticas de resiliência."""

    url: str
    token: Optional[str] = None
    token_file: Optional[str] = None
    timeout_seconds: float = 30.0
    verify_tls: bool = True
    retry: RetryPolicy = field(default_factory=RetryPolicy)
    policies: ConvergencePolicies = field(default_factory=ConvergencePolicies)

    def token_provider(self) -> Optional[Callable[[], Optional[str]]]:
        """
        Provedor de credencial usado pelo client.

        Um token explícito tem precedência; um `token_file` é relido a cada
        requisição para acompanhar renovações feitas por processo externo.
        """
        if self.token:
            token = self.token
            return lambda: token
        if self.token_file:
            return _file_token_provider(Path(self.token_file))
        return None


@dataclass(frozen=True)
class PipelineSettings:
    spec: PipelineSpec
    properties: PropertySet
    wait_for_ready: bool = False
    bundle_keys: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Settings:
    environment: str
    dataflow: DataflowSettings
    pipeline: Optional[PipelineSettings] = None
    raw: Dict[str, Any] = field(default_factory=dict)


def _file_token_provider(path: Path) -> Callable[[], Optional[str]]:
    def provide() -> Optional[str]:
        if not path.exists():
            raise ConfigError(
                f"Arquivo de token não encontrado: {path}",
                details={"token_file": str(path)},
                hint="Gere o token antes da reconciliação ou defina SCDF_TOKEN.",
            )
        return path.read_text(encoding="utf-8").strip() or None

    return provide


def _load_file(path: Path) -> Dict[str, Any]:
    """
    Carrega um arquivo de settings e valida sua estrutura básica.

    Formatos suportados (v1):
        - YAML (.yaml, .yml)
        - JSON (.json)

    Decisões arquiteturais:
        - O arquivo deve existir no momento do carregamento
        - O conteúdo raiz deve ser um dicionário (`dict`)
        - Arquivos vazios são interpretados como dicionários vazios

    Raises:
        SettingsNotFoundError: Se o arquivo não existir.
        UnsupportedConfigFormatError: Se o formato do arquivo não for suportado.
        InvalidConfigRootTypeError: Se o conteúdo raiz não for um dicionário.
    """
    if not path.exists():
        raise SettingsNotFoundError(
            f"Arquivo de settings não encontrado: {path}",
            details={"path": str(path)},
        )

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)

    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)

    else:
        raise UnsupportedConfigFormatError(
            f"Formato não suportado: {path.suffix}",
            details={"path": str(path)},
        )

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Settings root deve ser dict, recebido: {type(data).__name__}",
            details={"path": str(path)},
        )

    return data


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise InvalidConfigRootTypeError(
            f"Seção '{name}' deve ser dict, recebido: {type(section).__name__}",
            details={"section": name},
        )
    return section


def _split_properties(section: Dict[str, Any]) -> Tuple[Dict[str, Any], PropertySet]:
    """Separa `pipeline.deployment_properties` do restante da seção."""
    section = dict(section)
    pipeline = section.get("pipeline")
    if not isinstance(pipeline, dict) or "deployment_properties" not in pipeline:
        return section, PropertySet()
    pipeline = dict(pipeline)
    raw = pipeline.pop("deployment_properties") or {}
    section["pipeline"] = pipeline
    if isinstance(raw, str):
        return section, parse_properties(raw)
    if not isinstance(raw, dict):
        raise InvalidConfigRootTypeError(
            f"'pipeline.deployment_properties' deve ser dict ou texto, recebido: {type(raw).__name__}",
            details={"field": "pipeline.deployment_properties"},
        )
    return section, PropertySet.from_mapping(raw)


def _as_property_set(overrides: Optional[PropertyOverrides]) -> PropertySet:
    if overrides is None:
        return PropertySet()
    if isinstance(overrides, PropertySet):
        return overrides
    if isinstance(overrides, str):
        return parse_properties(overrides)
    return PropertySet.from_mapping(overrides)


def _as_bool(value: Any, *, field_name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return value.strip().lower() == "true"
    raise ConfigError(f"'{field_name}' deve ser booleano, recebido: {value!r}", details={"field": field_name})


def _policies(poll: Mapping[str, Any]) -> ConvergencePolicies:
    defaults = ConvergencePolicies()
    return ConvergencePolicies(
        unregister=PollPolicy.from_mapping(poll.get("unregister"), default=defaults.unregister),
        teardown=PollPolicy.from_mapping(poll.get("teardown"), default=defaults.teardown),
        readiness=PollPolicy.from_mapping(poll.get("readiness"), default=defaults.readiness),
    )


def _dataflow_settings(section: Mapping[str, Any], environ: Mapping[str, str]) -> DataflowSettings:
    url = str(environ.get(ENV_URL) or section.get("url") or "").strip()
    if not url.startswith(("http://", "https://")):
        raise ConfigError(
            f"'dataflow.url' deve ser uma URL http(s), recebido: {url!r}",
            details={"field": "dataflow.url"},
            hint=f"Defina 'dataflow.url' no arquivo de settings ou a variável {ENV_URL}.",
        )

    poll = section.get("poll") or {}
    if not isinstance(poll, dict):
        raise InvalidConfigRootTypeError("'dataflow.poll' deve ser dict", details={"field": "dataflow.poll"})

    token_file = section.get("token_file")
    return DataflowSettings(
        url=url.rstrip("/"),
        token=environ.get(ENV_TOKEN) or section.get("token") or None,
        token_file=str(token_file) if token_file else None,
        timeout_seconds=as_float(section.get("timeout_seconds", 30.0), field_name="dataflow.timeout_seconds"),
        verify_tls=_as_bool(section.get("verify_tls", True), field_name="dataflow.verify_tls"),
        retry=RetryPolicy.from_mapping(section.get("retry")),
        policies=_policies(poll),
    )


def _pipeline_settings(section: Mapping[str, Any], properties: PropertySet) -> PipelineSettings:
    components = section.get("components") or []
    if not isinstance(components, list):
        raise InvalidConfigRootTypeError(
            "'pipeline.components' deve ser uma lista",
            details={"field": "pipeline.components"},
        )
    spec = PipelineSpec.build(
        str(section.get("name") or ""),
        components,
        description=str(section.get("description") or ""),
        required_properties=[str(p) for p in (section.get("required_properties") or [])],
    )
    return PipelineSettings(
        spec=spec,
        properties=properties,
        wait_for_ready=_as_bool(section.get("wait_for_ready", False), field_name="pipeline.wait_for_ready"),
        bundle_keys=tuple(str(k) for k in (section.get("bundle_keys") or [])),
    )


def load_settings(
    path: Union[str, Path],
    *,
    environment: str = DEFAULT_SECTION,
    environ: Optional[Mapping[str, str]] = None,
    overrides: Optional[PropertyOverrides] = None,
) -> Settings:
    """
    Carrega e resolve os settings efetivos.

    Args:
        path: Arquivo de settings (YAML ou JSON).
        environment: Seção de ambiente aplicada sobre `default`.
        environ: Variáveis de ambiente (default: `os.environ`).
        overrides: Propriedades de deployment com precedência máxima.

    Returns:
        Settings: Settings efetivos, já validados estruturalmente.

    Raises:
        SettingsNotFoundError: Se o arquivo não existir.
        ConfigTypeConflictError: Se o merge encontrar conflito estrutural.
        ConfigError: Ambiente não declarado, URL inválida ou política inválida.
    """
    environ = os.environ if environ is None else environ
    data = _load_file(Path(path))

    if DEFAULT_SECTION not in data and environment not in data and "dataflow" in data:
        base_raw: Dict[str, Any] = data
        env_raw: Dict[str, Any] = {}
    else:
        if environment != DEFAULT_SECTION and environment not in data:
            raise ConfigError(
                f"Ambiente '{environment}' não declarado no arquivo de settings",
                details={"environment": environment, "available": sorted(data)},
            )
        base_raw = _section(data, DEFAULT_SECTION)
        env_raw = _section(data, environment) if environment != DEFAULT_SECTION else {}

    base, base_props = _split_properties(base_raw)
    env, env_props = _split_properties(env_raw)
    effective = deep_merge(base, env)

    dataflow_raw = effective.get("dataflow") or {}
    if not isinstance(dataflow_raw, dict):
        raise InvalidConfigRootTypeError("'dataflow' deve ser dict", details={"field": "dataflow"})

    pipeline: Optional[PipelineSettings] = None
    pipeline_raw = effective.get("pipeline")
    if pipeline_raw is not None:
        if not isinstance(pipeline_raw, dict):
            raise InvalidConfigRootTypeError("'pipeline' deve ser dict", details={"field": "pipeline"})
        properties = merge([base_props, env_props, _as_property_set(overrides)])
        pipeline = _pipeline_settings(pipeline_raw, properties)

    return Settings(
        environment=environment,
        dataflow=_dataflow_settings(dataflow_raw, environ),
        pipeline=pipeline,
        raw=effective,
    )

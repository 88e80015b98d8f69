# tests/core/config/test_loader.py
"""
Testes do carregador de settings (load_settings).

Este módulo valida o comportamento do loader responsável por:
- carregar o arquivo de settings (YAML ou JSON)
- aplicar a seção do ambiente sobre `default`
- aplicar SCDF_URL / SCDF_TOKEN e overrides explícitos
- construir políticas de retry/polling e o pipeline desejado

Os testes asseguram que:
- o arquivo de settings é obrigatório
- formatos não suportados e raízes inválidas são rejeitados
- a precedência default < ambiente < overrides vale para
  `deployment_properties` por (scope, key)
- ambiente não declarado e URL inválida são ConfigError

Decisões arquiteturais:
    - Erros estruturais são tratados como falhas fatais
    - `environ` é injetado; nenhum teste depende de `os.environ`

Limites explícitos:
    - Não conversa com o control plane
"""

from pathlib import Path

import pytest

try:
    from dataflow_reconciler.core.config.errors import (
        ConfigError,
        InvalidConfigRootTypeError,
        InvalidPipelineSpecError,
        SettingsNotFoundError,
        UnsupportedConfigFormatError,
    )
    from dataflow_reconciler.core.config.loader import load_settings
    from dataflow_reconciler.core.controlplane.retry import RetryPolicy
    from dataflow_reconciler.core.convergence.poller import PollPolicy
except Exception as e:  # noqa: BLE001
    load_settings = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing settings loader. Implement:
- src/dataflow_reconciler/core/config/loader.py (load_settings)
- src/dataflow_reconciler/core/config/errors.py (exceções tipadas)
Import error: {_IMPORT_ERR}
""")


SETTINGS_YAML = """\
default:
  dataflow:
    url: http://dataflow.local:9393/
    retry:
      max_attempts: 4
      base_delay: 0.5
    poll:
      readiness:
        interval: 2
        timeout: 30
  pipeline:
    name: words
    wait_for_ready: false
    components:
      - {name: httpSrc, type: source, uri: "docker:acme/http-source:1.0"}
      - {name: textProc, type: processor, uri: "docker:acme/text-processor:1.0"}
      - {name: logSink, type: sink, uri: "docker:acme/log-sink:1.0"}
    required_properties:
      - deployer.textProc.kubernetes.environmentVariables
    deployment_properties:
      deployer.textProc.memory: 512M
      app.textProc.mode: batch
      deployer.textProc.kubernetes.environmentVariables: "S3_ENDPOINT=http://minio:9000;S3_ACCESS_KEY=minio"
production:
  dataflow:
    url: https://dataflow.prod:9393
    verify_tls: true
  pipeline:
    wait_for_ready: true
    deployment_properties:
      deployer.textProc.memory: 1024M
"""


def _write(tmp_path: Path, name: str, content: str) -> Path:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")
    return path


def test_missing_file_raises(tmp_path):
    _require_imports()

    with pytest.raises(SettingsNotFoundError):
        load_settings(tmp_path / "missing.yaml", environ={})


def test_unsupported_format_raises(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.toml", "x = 1")

    with pytest.raises(UnsupportedConfigFormatError):
        load_settings(path, environ={})


def test_non_mapping_root_raises(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", "- a\n- b\n")

    with pytest.raises(InvalidConfigRootTypeError):
        load_settings(path, environ={})


def test_default_section_is_resolved(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", SETTINGS_YAML)

    settings = load_settings(path, environ={})

    assert settings.environment == "default"
    assert settings.dataflow.url == "http://dataflow.local:9393"
    assert settings.dataflow.retry == RetryPolicy(max_attempts=4, base_delay=0.5, multiplier=2.0)
    assert settings.dataflow.policies.readiness == PollPolicy(interval=2, timeout=30)
    assert settings.pipeline.spec.definition == "httpSrc | textProc | logSink"
    assert settings.pipeline.wait_for_ready is False
    assert settings.pipeline.properties.get("textProc", "deployer.memory") == "512M"


def test_environment_overrides_default_per_property(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", SETTINGS_YAML)

    settings = load_settings(path, environment="production", environ={})
    props = settings.pipeline.properties

    assert settings.dataflow.url == "https://dataflow.prod:9393"
    assert settings.pipeline.wait_for_ready is True
    assert props.get("textProc", "deployer.memory") == "1024M"
    assert props.get("textProc", "mode") == "batch"
    assert settings.pipeline.spec.name == "words"


def test_explicit_overrides_have_highest_precedence(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", SETTINGS_YAML)

    settings = load_settings(
        path,
        environment="production",
        environ={},
        overrides="deployer.textProc.memory=2048M, app.textProc.mode=stream",
    )

    assert settings.pipeline.properties.get("textProc", "deployer.memory") == "2048M"
    assert settings.pipeline.properties.get("textProc", "mode") == "stream"


def test_environment_variables_override_url_and_token(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", SETTINGS_YAML)

    settings = load_settings(path, environ={"SCDF_URL": "https://other:443", "SCDF_TOKEN": "abc"})

    assert settings.dataflow.url == "https://other:443"
    assert settings.dataflow.token_provider()() == "abc"


def test_token_file_is_read_on_every_call(tmp_path):
    _require_imports()
    token_file = _write(tmp_path, "token", "first\n")
    path = _write(
        tmp_path,
        "settings.json",
        '{"dataflow": {"url": "http://df:9393", "token_file": "%s"}}' % token_file.as_posix(),
    )

    provider = load_settings(path, environ={}).dataflow.token_provider()
    assert provider() == "first"

    token_file.write_text("second", encoding="utf-8")
    assert provider() == "second"


def test_flat_file_without_sections_is_default(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.json", '{"dataflow": {"url": "http://df:9393"}}')

    settings = load_settings(path, environ={})

    assert settings.dataflow.url == "http://df:9393"
    assert settings.pipeline is None
    assert settings.dataflow.token_provider() is None


def test_undeclared_environment_is_config_error(tmp_path):
    _require_imports()
    path = _write(tmp_path, "settings.yaml", SETTINGS_YAML)

    with pytest.raises(ConfigError) as exc_info:
        load_settings(path, environment="staging", environ={})

    assert exc_info.value.details["available"] == ["default", "production"]


@pytest.mark.parametrize("url", ["", "dataflow.local:9393", "ftp://dataflow"])
def test_invalid_url_is_config_error(tmp_path, url):
    _require_imports()
    path = _write(tmp_path, "settings.json", '{"dataflow": {"url": "%s"}}' % url)

    with pytest.raises(ConfigError):
        load_settings(path, environ={})


def test_invalid_component_type_is_pipeline_error(tmp_path):
    _require_imports()
    path = _write(
        tmp_path,
        "settings.yaml",
        "dataflow: {url: 'http://df'}\n"
        "pipeline:\n"
        "  name: words\n"
        "  components:\n"
        "    - {name: a, type: spout, uri: 'docker:a'}\n",
    )

    with pytest.raises(InvalidPipelineSpecError):
        load_settings(path, environ={})

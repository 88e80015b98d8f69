"""
E2E — reconciliação completa a partir de um arquivo de settings.

Valida o fluxo de ponta a ponta:
- settings YAML com seções `default` e `production`
- propriedades de deployment em forma de mapa (default) e de texto (production)
- build_reconciler + reconcile_from_settings sobre o control plane em memória
- reexecução converge para o mesmo estado remoto
- Step Log serializável em JSON (round-trip)
- propriedade obrigatória ausente no ambiente `default` falha no pre-flight

Requisitos:
- pytest -q (control plane falso em memória, sem rede)
"""

from __future__ import annotations

import json
from pathlib import Path

from dataflow_reconciler import build_reconciler, load_settings, reconcile_from_settings
from dataflow_reconciler.core.pipeline.types import PipelineState, StepStatus
from dataflow_reconciler.core.traceability.step_log import StepLog

from tests.fixtures.fake_dataflow import FakeClock, FakeDataflow


SETTINGS = """\
default:
  dataflow:
    url: http://dataflow.test
    retry: {max_attempts: 3, base_delay: 0.5}
    poll:
      unregister: {interval: 1.0, timeout: 10.0}
      teardown: {interval: 1.0, timeout: 10.0}
  pipeline:
    name: words
    components:
      - {name: httpSrc, type: source, uri: "docker:acme/http-source:1.0"}
      - {name: textProc, type: processor, uri: "docker:acme/text-processor:1.0"}
      - {name: logSink, type: sink, uri: "docker:acme/log-sink:1.0"}
    required_properties:
      - deployer.textProc.kubernetes.environmentVariables
    deployment_properties:
      deployer.*.memory: 1024M

production:
  dataflow:
    token: prod-token
  pipeline:
    deployment_properties: |
      # credenciais do object storage
      app.textProc.spring.profiles.active=prod
      deployer.textProc.kubernetes.environmentVariables=S3_ENDPOINT=http://minio:9000;S3_ACCESS_KEY=minio
"""


def _write_settings(tmp_path: Path) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(SETTINGS, encoding="utf-8")
    return path


def test_reconcile_e2e(tmp_path: Path) -> None:
    path = _write_settings(tmp_path)
    dataflow = FakeDataflow(deregistration_lag=1)
    clock = FakeClock()

    settings = load_settings(path, environment="production", environ={})
    reconciler = build_reconciler(settings, session=dataflow, clock=clock, sleep=clock.sleep)

    first = reconcile_from_settings(settings, reconciler)
    assert first.succeeded
    assert first.final_state == PipelineState.DEPLOYED
    assert dataflow.deployed_properties["words"] == {
        "app.textProc.spring.profiles.active": "prod",
        "deployer.textProc.kubernetes.environmentVariables": "S3_ENDPOINT=http://minio:9000,S3_ACCESS_KEY=minio",
        "deployer.*.memory": "1024M",
    }
    assert all(h.get("Authorization") == "Bearer prod-token" for h in dataflow.headers)

    second = reconcile_from_settings(settings, reconciler)
    assert second.final_state == PipelineState.DEPLOYED
    assert second.statuses()["components.unregister"] == StepStatus.SUCCESS
    assert dataflow.definitions["words"]["dslText"] == "httpSrc | textProc | logSink"
    assert (
        first.steps["deployment.deploy"].artifacts["payload_sha256"]
        == second.steps["deployment.deploy"].artifacts["payload_sha256"]
    )

    raw = json.loads(json.dumps(second.step_log.to_dict()))
    restored = StepLog.from_dict(raw)
    assert restored.step_ids() == second.step_order
    assert restored.statuses() == [s.value for s in second.statuses().values()]


def test_reconcile_e2e_missing_credentials(tmp_path: Path) -> None:
    path = _write_settings(tmp_path)
    dataflow = FakeDataflow()
    clock = FakeClock()

    settings = load_settings(path, environ={})
    result = reconcile_from_settings(
        settings,
        build_reconciler(settings, session=dataflow, clock=clock, sleep=clock.sleep),
    )

    assert result.final_state == PipelineState.FAILED
    assert result.failed_step == "preflight"
    assert result.error.details["missing"] == ["deployer.textProc.kubernetes.environmentVariables"]
    assert dataflow.calls == []

# tests/conftest.py
"""
Fixtures compartilhados para testes do Dataflow Reconciler.

Este módulo define fixtures reutilizáveis que fornecem:
- um control plane em memória (FakeDataflow) no lugar da sessão HTTP
- um relógio falso, para que retry e polling nunca durmam de verdade
- client, DataflowApi e Reconciler já ligados ao control plane falso
- um pipeline de exemplo (source → processor → sink) e suas propriedades

Decisões arquiteturais:
    - Nenhuma fixture abre conexão de rede
    - Tempo é sempre simulado (FakeClock)
    - Imports do core são realizados de forma lazy para
      melhorar a clareza de erros durante falhas

Invariantes:
    - Cada teste recebe um control plane vazio e isolado
    - Políticas de convergência são curtas e determinísticas

Limites explícitos:
    - Não substitui testes contra um control plane real
    - Não contém lógica de domínio
"""

from datetime import datetime, timezone

import pytest

from tests.fixtures.fake_dataflow import FakeClock, FakeDataflow


FIXED_NOW = datetime(2026, 1, 16, 0, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_dataflow() -> FakeDataflow:
    """
    Control plane em memória, vazio, sem atraso de remoção.

    Testes que precisam de consistência eventual ajustam
    `fake_dataflow.deregistration_lag` antes de reconciliar.
    """
    return FakeDataflow()


@pytest.fixture
def retry_policy():
    from dataflow_reconciler.core.controlplane.retry import RetryPolicy

    return RetryPolicy(max_attempts=3, base_delay=0.5, multiplier=2.0)


@pytest.fixture
def client(fake_dataflow, fake_clock, retry_policy):
    from dataflow_reconciler.core.controlplane.client import ControlPlaneClient

    return ControlPlaneClient(
        FakeDataflow.base_url,
        session=fake_dataflow,
        retry=retry_policy,
        token_provider=lambda: "test-token",
        sleep=fake_clock.sleep,
        clock=fake_clock,
    )


@pytest.fixture
def api(client):
    from dataflow_reconciler.core.controlplane.api import DataflowApi

    return DataflowApi(client)


@pytest.fixture
def policies():
    """Políticas curtas: poucos ciclos de polling bastam para convergir ou esgotar."""
    from dataflow_reconciler.core.convergence.poller import PollPolicy
    from dataflow_reconciler.core.pipeline.context import ConvergencePolicies

    return ConvergencePolicies(
        unregister=PollPolicy(interval=1.0, timeout=10.0),
        teardown=PollPolicy(interval=1.0, timeout=10.0),
        readiness=PollPolicy(interval=1.0, timeout=10.0),
    )


@pytest.fixture
def reconciler(api, policies, fake_clock):
    """
    Reconciler determinístico ligado ao control plane falso.

    `run_id` e `now` são fixos; `clock`/`sleep` vêm do FakeClock.
    """
    from dataflow_reconciler.core.engine.reconciler import Reconciler

    return Reconciler(
        api,
        policies=policies,
        clock=fake_clock,
        sleep=fake_clock.sleep,
        now=lambda: FIXED_NOW,
        run_id_factory=lambda: "run-test-001",
    )


@pytest.fixture
def components() -> list:
    """Cadeia mínima válida: source → processor → sink."""
    return [
        {"name": "httpSrc", "type": "source", "uri": "docker:acme/http-source:1.0"},
        {"name": "textProc", "type": "processor", "uri": "docker:acme/text-processor:1.0"},
        {"name": "logSink", "type": "sink", "uri": "docker:acme/log-sink:1.0"},
    ]


@pytest.fixture
def properties():
    """Propriedades típicas, incluindo um bundle de variáveis de ambiente separado por `;`."""
    from dataflow_reconciler.core.properties.model import PropertySet

    return PropertySet.from_mapping(
        {
            "app.textProc.spring.profiles.active": "prod",
            "deployer.textProc.kubernetes.environmentVariables":
                "S3_ENDPOINT=http://minio:9000;S3_ACCESS_KEY=minio",
            "deployer.*.memory": "1024M",
        }
    )


@pytest.fixture
def ctx_factory(api, policies, fake_clock, components, properties):
    """
    Factory de ReconcileContext para testes de Steps isolados.

    Returns:
        Callable[..., ReconcileContext]: aceita overrides de campos do contexto.
    """
    from dataflow_reconciler.core.pipeline.context import ReconcileContext
    from dataflow_reconciler.core.pipeline.topology import PipelineSpec

    def _make(**overrides):
        fields = {
            "run_id": "run-test-001",
            "created_at": FIXED_NOW,
            "pipeline": PipelineSpec.build("words", components),
            "properties": properties,
            "api": api,
            "policies": policies,
            "clock": fake_clock,
            "sleep": fake_clock.sleep,
            "meta": {"source": "pytest"},
        }
        fields.update(overrides)
        return ReconcileContext(**fields)

    return _make


@pytest.fixture
def DummyStep():
    """
    Fixture factory que fornece uma implementação mínima e duck-typed de um Step.

    O Step retornado registra um artefato no contexto e conclui com o
    status informado (SUCCESS por padrão) ou levanta `raises`, quando dado.

    Decisões arquiteturais:
        - Duck typing em vez de herança do Protocol
        - Nenhuma chamada ao control plane

    Returns:
        type: Classe _DummyStep que pode ser instanciada pelos testes.
    """
    from dataflow_reconciler.core.pipeline.types import (
        PipelineState,
        StepKind,
        StepResult,
        StepStatus,
    )

    class _DummyStep:
        def __init__(
            self,
            step_id: str = "dummy",
            kind: StepKind = StepKind.DEFINITION,
            depends_on=None,
            status: StepStatus = StepStatus.SUCCESS,
            raises: Exception = None,
        ):
            self.id = step_id
            self.kind = kind
            self.state = PipelineState.DEFINITION_CREATING
            self.depends_on = depends_on or []
            self.status = status
            self.raises = raises
            self.calls = 0

        def run(self, ctx):
            self.calls += 1
            if self.raises is not None:
                raise self.raises
            return StepResult(
                step_id=self.id,
                kind=self.kind,
                status=self.status,
                summary="dummy ok",
                artifacts={"ok": f"{self.id}.ok"},
            )

    return _DummyStep

# src/dataflow_reconciler/core/engine/reconciler.py
"""
Lifecycle Reconciler — leva um pipeline remoto ao estado desejado.

Fluxo de uma reconciliação:
    1. pre-flight (sem nenhuma chamada remota):
         - forma da cadeia de componentes (PipelineSpec.validate)
         - propriedades obrigatórias presentes
         - propriedades compiláveis
       Qualquer violação → ConfigError; resultado `failed` no passo `preflight`
    2. plano canônico, executado em sequência estrita:
         teardown → components.unregister → components.register →
         definition.create → deployment.deploy
    3. fail-fast: o primeiro Step que falha aborta o plano; os restantes são
       registrados como `skipped` e nunca executados

Decisões arquiteturais:
    - O plano é construído a cada execução; nenhum estado é persistido
    - Não há rollback: reexecutar é o caminho de recuperação, seguro porque
      todo Step é idempotente
    - Exceções dos Steps viram ReconcilerErrorPayload em `payload["error"]`;
      `raise_for_failure()` devolve a causa original ao chamador
    - StepResult é frozen; enriquecimento usa `dataclasses.replace`

Limites explícitos:
    - Single-thread; uma reconciliação por pipeline por vez é premissa operacional
    - Não obtém credenciais nem provisiona cluster
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import requests

from dataflow_reconciler.core.config.errors import MissingRequiredPropertyError
from dataflow_reconciler.core.config.loader import Settings
from dataflow_reconciler.core.controlplane.api import DataflowApi
from dataflow_reconciler.core.controlplane.client import ControlPlaneClient
from dataflow_reconciler.core.errors import ReconcilerErrorPayload, exception_to_error
from dataflow_reconciler.core.exceptions import ConfigError, ReconciliationFailedError
from dataflow_reconciler.core.pipeline.context import ConvergencePolicies, ReconcileContext
from dataflow_reconciler.core.pipeline.step import Step
from dataflow_reconciler.core.pipeline.topology import ComponentSpec, PipelineSpec
from dataflow_reconciler.core.pipeline.types import (
    PipelineState,
    ResourceState,
    StepResult,
    StepStatus,
)
from dataflow_reconciler.core.properties.compiler import (
    CompiledPayload,
    compile_properties,
    payload_fingerprint,
)
from dataflow_reconciler.core.properties.model import (
    WILDCARD_SCOPE,
    PropertySet,
    split_flat_name,
)
from dataflow_reconciler.core.traceability.step_log import (
    StepLog,
    add_event,
    create_step_log,
    step_failed,
    step_finished,
    step_skipped,
    step_started,
)
from dataflow_reconciler.steps import (
    CreateDefinitionStep,
    DeployStep,
    RegisterComponentsStep,
    TeardownStep,
    UnregisterComponentsStep,
)

from .planner import plan_execution


logger = logging.getLogger(__name__)

PREFLIGHT_STEP = "preflight"


def default_steps() -> List[Step]:
    """Plano canônico completo, na ordem de declaração."""
    return [
        TeardownStep(),
        UnregisterComponentsStep(),
        RegisterComponentsStep(),
        CreateDefinitionStep(),
        DeployStep(),
    ]


def teardown_steps() -> List[Step]:
    return [TeardownStep()]


@dataclass(frozen=True)
class ReconciliationResult:
    """
    Resultado agregado de uma reconciliação.

    Campos:
        - pipeline: nome do pipeline
        - final_state: `deployed` (ou `not_present` para destroy) em caso de
          sucesso; `failed` caso contrário
        - steps: StepResult por step_id, na ordem do plano
        - step_log: Step Log da execução
        - failed_step / error: Step que falhou e erro serializável
    """

    pipeline: str
    final_state: PipelineState
    steps: Dict[str, StepResult] = field(default_factory=dict)
    step_log: Optional[StepLog] = None
    failed_step: Optional[str] = None
    error: Optional[ReconcilerErrorPayload] = None
    cause: Optional[BaseException] = field(default=None, compare=False, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.final_state != PipelineState.FAILED

    @property
    def step_order(self) -> List[str]:
        return list(self.steps)

    def statuses(self) -> Dict[str, StepStatus]:
        return {sid: r.status for sid, r in self.steps.items()}

    def raise_for_failure(self) -> None:
        """
        Raises:
            ReconciliationFailedError: Se a reconciliação falhou; carrega o
                step que falhou e a exceção original em `cause`.
        """
        if self.succeeded:
            return
        message = self.error.message if self.error is not None else "reconciliação falhou"
        raise ReconciliationFailedError(
            f"Reconciliação de '{self.pipeline}' falhou no step '{self.failed_step}': {message}",
            details=self.error.to_dict() if self.error is not None else {},
            hint=self.error.hint if self.error is not None else None,
            step=self.failed_step,
            cause=self.cause,
        ) from self.cause


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Reconciler:
    """Executa o plano de reconciliação contra um DataflowApi."""

    def __init__(
        self,
        api: DataflowApi,
        *,
        policies: Optional[ConvergencePolicies] = None,
        wait_for_ready: bool = False,
        bundle_keys: Sequence[str] = (),
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        now: Callable[[], datetime] = _utcnow,
        run_id_factory: Callable[[], str] = lambda: uuid.uuid4().hex,
        steps_factory: Callable[[], List[Step]] = default_steps,
    ):
        self.api = api
        self.policies = policies or ConvergencePolicies()
        self.wait_for_ready = wait_for_ready
        self.bundle_keys = tuple(bundle_keys)
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self._run_id_factory = run_id_factory
        self._steps_factory = steps_factory

    # ------------------------------------------------------------------
    # Pre-flight
    # ------------------------------------------------------------------
    def preflight(self, pipeline: PipelineSpec, properties: PropertySet) -> CompiledPayload:
        """
        Valida o pipeline desejado sem nenhuma chamada remota.

        Returns:
            CompiledPayload: Payload compilado (descartado; o Step de deploy recompila).

        Raises:
            ConfigError: Cadeia inválida, propriedade obrigatória ausente ou
                propriedades não compiláveis.
        """
        pipeline.validate()

        missing = []
        for name in pipeline.required_properties:
            scope, key = split_flat_name(name)
            value = properties.get(scope, key)
            if value is None:
                value = properties.get(WILDCARD_SCOPE, key)
            if value is None or not value.strip():
                missing.append(name)
        if missing:
            raise MissingRequiredPropertyError(
                f"Propriedades obrigatórias ausentes: {', '.join(missing)}",
                details={"pipeline": pipeline.name, "missing": missing},
                hint="Declare as propriedades em 'pipeline.deployment_properties' ou via overrides.",
            )

        known = {c.name for c in pipeline.components} | {WILDCARD_SCOPE}
        for scope in properties.scopes():
            if scope not in known:
                logger.warning("propriedades com escopo %r não correspondem a nenhum componente de %s", scope, pipeline.name)

        return compile_properties(properties, bundle_keys=self.bundle_keys)

    # ------------------------------------------------------------------
    # Operações
    # ------------------------------------------------------------------
    def reconcile(
        self,
        pipeline_name: str,
        components: Sequence[Union[ComponentSpec, Dict[str, Any]]],
        properties: Optional[PropertySet] = None,
        *,
        description: str = "",
        required_properties: Sequence[str] = (),
    ) -> ReconciliationResult:
        """Reconcilia `pipeline_name` com a cadeia `components` e as propriedades dadas."""
        try:
            spec = PipelineSpec.build(
                pipeline_name,
                components,
                description=description,
                required_properties=required_properties,
            )
        except ConfigError as exc:
            return self._preflight_failure(pipeline_name, exc)
        return self.reconcile_pipeline(spec, properties or PropertySet())

    def reconcile_pipeline(self, pipeline: PipelineSpec, properties: PropertySet) -> ReconciliationResult:
        try:
            compiled = self.preflight(pipeline, properties)
        except ConfigError as exc:
            return self._preflight_failure(pipeline.name, exc)

        ctx = self._context(pipeline, properties)
        ctx.meta["payload_sha256"] = payload_fingerprint(compiled)
        return self._execute(ctx, self._steps_factory(), success_state=PipelineState.DEPLOYED)

    def destroy(self, pipeline_name: str) -> ReconciliationResult:
        """Executa apenas o teardown (undeploy + remoção da definição)."""
        ctx = self._context(PipelineSpec(name=pipeline_name, components=()), PropertySet())
        return self._execute(ctx, teardown_steps(), success_state=PipelineState.NOT_PRESENT)

    def status(self, pipeline_name: str) -> ResourceState:
        """Estado atual do pipeline no control plane (somente leitura)."""
        definition = self.api.lookup_definition(pipeline_name)
        if definition is None:
            return ResourceState.ABSENT
        return definition.state

    def scale(self, pipeline_name: str, component: str, count: int) -> None:
        if isinstance(count, bool) or not isinstance(count, int) or count < 0:
            raise ConfigError(
                f"Número de instâncias inválido para '{component}': {count!r}",
                details={"pipeline": pipeline_name, "component": component, "count": count},
            )
        logger.info("escalando %s/%s para %d instância(s)", pipeline_name, component, count)
        self.api.scale(pipeline_name, component, count)

    # ------------------------------------------------------------------
    # Execução
    # ------------------------------------------------------------------
    def _context(self, pipeline: PipelineSpec, properties: PropertySet) -> ReconcileContext:
        return ReconcileContext(
            run_id=self._run_id_factory(),
            created_at=self._now(),
            pipeline=pipeline,
            properties=properties,
            api=self.api,
            policies=self.policies,
            wait_for_ready=self.wait_for_ready,
            bundle_keys=self.bundle_keys,
            clock=self._clock,
            sleep=self._sleep,
        )

    def _preflight_failure(self, pipeline_name: str, exc: ConfigError) -> ReconciliationResult:
        error = exception_to_error(exc, step=PREFLIGHT_STEP)
        log = create_step_log(run_id=self._run_id_factory(), pipeline=pipeline_name, started_at=self._now())
        add_event(log, event_type="preflight_failed", ts=self._now(), payload={"error": error.to_dict()})
        logger.error("preflight falhou para %s: %s", pipeline_name, exc.message)

        results: Dict[str, StepResult] = {}
        for step in plan_execution(self._steps_factory()):
            results[step.id] = self._skipped(step, log, reason=f"preflight failed: {exc.message}")

        return ReconciliationResult(
            pipeline=pipeline_name,
            final_state=PipelineState.FAILED,
            steps=results,
            step_log=log,
            failed_step=PREFLIGHT_STEP,
            error=error,
            cause=exc,
        )

    def _skipped(self, step: Step, log: StepLog, *, reason: str) -> StepResult:
        step_skipped(log, step_id=step.id, kind=step.kind.value, ts=self._now(), reason=reason)
        return StepResult(
            step_id=step.id,
            kind=step.kind,
            status=StepStatus.SKIPPED,
            summary=reason,
        )

    def _enrich(self, ctx: ReconcileContext, result: StepResult) -> StepResult:
        """Nova instância com os warnings do contexto mesclados (sem duplicatas)."""
        merged: List[str] = []
        for msg in list(result.warnings) + list(ctx.warnings.get(result.step_id, [])):
            if msg not in merged:
                merged.append(msg)
        return replace(result, warnings=merged)

    def _execute(
        self,
        ctx: ReconcileContext,
        steps: Sequence[Step],
        *,
        success_state: PipelineState,
    ) -> ReconciliationResult:
        ordered = plan_execution(steps)
        name = ctx.pipeline.name
        log = create_step_log(run_id=ctx.run_id, pipeline=name, started_at=ctx.created_at)
        if "payload_sha256" in ctx.meta:
            log.run["payload_sha256"] = ctx.meta["payload_sha256"]

        results: Dict[str, StepResult] = {}
        failed_step: Optional[str] = None
        error: Optional[ReconcilerErrorPayload] = None
        cause: Optional[BaseException] = None

        # avisos de operações anteriores não pertencem a este plano
        ctx.api.drain_warnings()

        for step in ordered:
            sid = step.id

            if failed_step is not None:
                results[sid] = self._skipped(step, log, reason=f"skipped after failure of '{failed_step}'")
                continue

            logger.info("reconciliando %s: %s (%s)", name, sid, step.state.value)
            step_started(log, step_id=sid, kind=step.kind.value, ts=self._now())

            try:
                result = step.run(ctx)
                if not isinstance(result, StepResult):
                    raise TypeError("Step.run(ctx) must return StepResult")
            except Exception as exc:
                error = exception_to_error(exc, step=sid)
                ctx.collect_control_plane_warnings(step_id=sid)
                failed_step, cause = sid, exc
                logger.error("reconciliando %s: step %s falhou: %s", name, sid, error.message)
                step_failed(log, step_id=sid, ts=self._now(), error=error.to_dict())
                results[sid] = StepResult(
                    step_id=sid,
                    kind=step.kind,
                    status=StepStatus.FAILED,
                    summary=error.message,
                    warnings=list(ctx.warnings.get(sid, [])),
                    payload={"error": error.to_dict()},
                )
                continue

            ctx.collect_control_plane_warnings(step_id=sid)
            result = self._enrich(ctx, result)
            results[sid] = result
            step_finished(
                log,
                step_id=sid,
                ts=self._now(),
                result={
                    "status": result.status.value,
                    "summary": result.summary,
                    "metrics": result.metrics,
                    "warnings": result.warnings,
                    "artifacts": result.artifacts,
                },
            )
            logger.info("reconciliando %s: %s -> %s", name, sid, result.status.value)

        final_state = PipelineState.FAILED if failed_step is not None else success_state
        return ReconciliationResult(
            pipeline=name,
            final_state=final_state,
            steps=results,
            step_log=log,
            failed_step=failed_step,
            error=error,
            cause=cause,
        )


def build_reconciler(
    settings: Settings,
    *,
    session: Optional[requests.Session] = None,
    clock: Callable[[], float] = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> Reconciler:
    """Monta sessão, client, DataflowApi e políticas a partir dos settings."""
    df = settings.dataflow
    client = ControlPlaneClient(
        df.url,
        session=session,
        retry=df.retry,
        token_provider=df.token_provider(),
        timeout=df.timeout_seconds,
        verify_tls=df.verify_tls,
        sleep=sleep,
        clock=clock,
    )
    pipeline = settings.pipeline
    return Reconciler(
        DataflowApi(client),
        policies=df.policies,
        wait_for_ready=pipeline.wait_for_ready if pipeline is not None else False,
        bundle_keys=pipeline.bundle_keys if pipeline is not None else (),
        clock=clock,
        sleep=sleep,
    )


def reconcile_from_settings(settings: Settings, reconciler: Optional[Reconciler] = None) -> ReconciliationResult:
    """Reconcilia o pipeline declarado na seção `pipeline` dos settings."""
    if settings.pipeline is None:
        raise ConfigError(
            "Settings sem seção 'pipeline'",
            details={"environment": settings.environment},
        )
    reconciler = reconciler or build_reconciler(settings)
    return reconciler.reconcile_pipeline(settings.pipeline.spec, settings.pipeline.properties)

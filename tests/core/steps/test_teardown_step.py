# tests/core/steps/test_teardown_step.py
"""
Testes do Step canônico teardown.

Os testes asseguram que:
- pipeline ausente → NOOP, sem polling
- pipeline presente → undeploy + remoção da definição + confirmação
  por polling → SUCCESS
"""

import pytest

try:
    from dataflow_reconciler.core.pipeline.types import StepStatus
    from dataflow_reconciler.steps import TeardownStep
except Exception as e:  # noqa: BLE001
    TeardownStep = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing TeardownStep. Implement:
- src/dataflow_reconciler/steps/teardown.py
Import error: {_IMPORT_ERR}
""")


def test_absent_pipeline_is_noop(ctx_factory, fake_dataflow):
    _require_imports()
    ctx = ctx_factory()

    result = TeardownStep().run(ctx)

    assert result.status == StepStatus.NOOP
    assert result.payload == {"undeployed": False, "definition_deleted": False}
    assert fake_dataflow.calls_to("GET") == []
    assert ctx.events[0]["message"] == "pipeline ausente; nada a remover"


def test_deployed_pipeline_is_torn_down(ctx_factory, fake_dataflow):
    _require_imports()
    fake_dataflow.seed_definition("words", "httpSrc | textProc | logSink", status="deployed")

    result = TeardownStep().run(ctx_factory())

    assert result.status == StepStatus.SUCCESS
    assert result.payload == {"undeployed": True, "definition_deleted": True}
    assert result.metrics["poll_attempts"] == 1
    assert "words" not in fake_dataflow.definitions
    assert [m for m, _ in fake_dataflow.calls] == ["DELETE", "DELETE", "GET"]

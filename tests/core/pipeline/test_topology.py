# tests/core/pipeline/test_topology.py
"""
Testes da descrição do pipeline desejado (PipelineSpec / ComponentSpec).

Os testes asseguram que:
- a definição textual é a junção dos nomes com ` | `
- a cadeia source → processor(s) → sink é validada
- nomes duplicados, nomes inválidos e localizadores ausentes ou com
  esquema desconhecido são rejeitados com InvalidPipelineSpecError
"""

import pytest

try:
    from dataflow_reconciler.core.config.errors import InvalidPipelineSpecError
    from dataflow_reconciler.core.pipeline.topology import ComponentKind, ComponentSpec, PipelineSpec
except Exception as e:  # noqa: BLE001
    InvalidPipelineSpecError = None
    PipelineSpec = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing topology. Implement:
- src/dataflow_reconciler/core/pipeline/topology.py (PipelineSpec, ComponentSpec)
Import error: {_IMPORT_ERR}
""")


def _spec(*components, name="words"):
    return PipelineSpec.build(name, list(components))


def _c(name, kind, uri=None):
    return {"name": name, "type": kind, "uri": uri or f"docker:acme/{name}:1.0"}


def test_definition_joins_component_names(components):
    _require_imports()

    spec = PipelineSpec.build("words", components)
    spec.validate()

    assert spec.definition == "httpSrc | textProc | logSink"
    assert spec.components[1].kind == ComponentKind.PROCESSOR
    assert spec.to_dict()["components"][0] == {
        "name": "httpSrc", "type": "source", "uri": "docker:acme/http-source:1.0",
    }


def test_source_and_sink_only_is_valid():
    _require_imports()

    _spec(_c("src", "source"), _c("sink", "sink")).validate()


def test_kind_alias_and_component_spec_instances():
    _require_imports()

    spec = PipelineSpec.build(
        "words",
        [ComponentSpec("src", ComponentKind.SOURCE, "maven://io:src:1.0"), {"name": "sink", "kind": "SINK", "uri": "file:/x.jar"}],
    )
    spec.validate()

    assert spec.components[1].kind == ComponentKind.SINK


@pytest.mark.parametrize(
    "components",
    [
        [],
        [("src", "source")],
        [("proc", "processor"), ("sink", "sink")],
        [("src", "source"), ("sink", "sink"), ("proc", "processor")],
        [("src", "source"), ("src", "processor"), ("sink", "sink")],
        [("bad name", "source"), ("sink", "sink")],
        [("a.b", "source"), ("sink", "sink")],
    ],
)
def test_invalid_chain_is_rejected(components):
    _require_imports()

    spec = _spec(*[_c(n, k) for n, k in components])
    with pytest.raises(InvalidPipelineSpecError):
        spec.validate()


@pytest.mark.parametrize("uri", ["", "s3://bucket/app.jar", "acme/app:1.0"])
def test_invalid_artifact_locator_is_rejected(uri):
    _require_imports()

    spec = PipelineSpec.build("words", [{"name": "src", "type": "source", "uri": uri}, _c("sink", "sink")])
    with pytest.raises(InvalidPipelineSpecError):
        spec.validate()


@pytest.mark.parametrize("name", ["", "my words"])
def test_invalid_pipeline_name_is_rejected(name):
    _require_imports()

    with pytest.raises(InvalidPipelineSpecError):
        _spec(_c("src", "source"), _c("sink", "sink"), name=name).validate()


def test_unknown_component_type_fails_at_build():
    _require_imports()

    with pytest.raises(InvalidPipelineSpecError):
        _spec(_c("src", "spout"), _c("sink", "sink"))

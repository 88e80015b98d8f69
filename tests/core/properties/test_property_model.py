# tests/core/properties/test_property_model.py
"""
Testes do modelo de propriedades (Property / PropertySet / merge).

Este módulo valida a representação canônica das propriedades de
deployment com escopo por componente.

Os testes asseguram que:
- nomes planos `app.<scope>.<key>` e `deployer.<scope>.<key>` são
  convertidos nos dois sentidos sem perda
- cada (scope, key) é único dentro de um PropertySet
- `merge` aplica precedência crescente (último vence)
- entradas malformadas falham com MalformedPropertyError

Invariantes:
    - PropertySet é imutável; `with_property` devolve nova instância
    - Igualdade não depende da ordem de inserção

Limites explícitos:
    - Não valida a forma textual (ver test_property_text_format.py)
    - Não valida compilação (ver test_compiler.py)
"""

import pytest

try:
    from dataflow_reconciler.core.config.errors import MalformedPropertyError
    from dataflow_reconciler.core.properties.model import (
        Property,
        PropertySet,
        flat_name,
        merge,
        split_flat_name,
    )
except Exception as e:  # noqa: BLE001
    MalformedPropertyError = None
    Property = None
    PropertySet = None
    flat_name = None
    merge = None
    split_flat_name = None
    _IMPORT_ERR = e
else:
    _IMPORT_ERR = None


def _require_imports():
    if _IMPORT_ERR is not None:
        pytest.fail(f"""Missing property model. Implement:
- src/dataflow_reconciler/core/properties/model.py (Property, PropertySet, merge)
Import error: {_IMPORT_ERR}
""")


def test_split_flat_name_app_and_deployer_namespaces():
    _require_imports()

    assert split_flat_name("app.textProc.spring.profiles.active") == ("textProc", "spring.profiles.active")
    assert split_flat_name("deployer.textProc.count") == ("textProc", "deployer.count")
    assert split_flat_name("deployer.*.memory") == ("*", "deployer.memory")


def test_flat_name_is_inverse_of_split():
    _require_imports()

    for name in ("app.src.server.port", "deployer.sink.kubernetes.limits.cpu", "app.*.logging.level"):
        assert flat_name(*split_flat_name(name)) == name


@pytest.mark.parametrize("name", ["textProc.key", "app.textProc", "app..key", "other.textProc.key"])
def test_split_flat_name_rejects_malformed_names(name):
    _require_imports()

    with pytest.raises(MalformedPropertyError):
        split_flat_name(name)


def test_property_rejects_dotted_scope_and_forbidden_key_chars():
    """
    Escopo não pode conter `.` (ambiguidade com o nome plano) e a chave
    não pode conter separadores da forma textual.
    """
    _require_imports()

    with pytest.raises(MalformedPropertyError):
        Property("text.proc", "key", "v")
    with pytest.raises(MalformedPropertyError):
        Property("textProc", "bad key", "v")
    with pytest.raises(MalformedPropertyError):
        Property("textProc", "a=b", "v")


def test_later_write_overrides_and_keeps_position():
    _require_imports()

    ps = PropertySet.of(("src", "a", "1"), ("sink", "b", "2"), ("src", "a", "3"))

    assert len(ps) == 2
    assert ps.get("src", "a") == "3"
    assert [p.flat_name for p in ps] == ["app.src.a", "app.sink.b"]


def test_values_are_stringified_from_yaml_scalars():
    _require_imports()

    ps = PropertySet.from_mapping({"deployer.src.count": 2, "app.src.enabled": True, "app.src.ratio": 0.5})

    assert ps.get("src", "deployer.count") == "2"
    assert ps.get("src", "enabled") == "true"
    assert ps.get("src", "ratio") == "0.5"


def test_non_scalar_value_is_rejected():
    _require_imports()

    with pytest.raises(MalformedPropertyError):
        PropertySet.from_mapping({"app.src.list": [1, 2]})


def test_merge_applies_increasing_precedence():
    """
    Precedência: defaults < ambiente < overrides explícitos.
    """
    _require_imports()

    defaults = PropertySet.of(("textProc", "deployer.memory", "512M"), ("textProc", "mode", "batch"))
    environment = PropertySet.of(("textProc", "deployer.memory", "1024M"))
    overrides = PropertySet.of(("textProc", "mode", "stream"))

    merged = merge([defaults, environment, overrides])

    assert merged.get("textProc", "deployer.memory") == "1024M"
    assert merged.get("textProc", "mode") == "stream"
    assert defaults.get("textProc", "deployer.memory") == "512M"


def test_equality_ignores_insertion_order_and_with_property_is_immutable():
    _require_imports()

    a = PropertySet.of(("src", "a", "1"), ("sink", "b", "2"))
    b = PropertySet.of(("sink", "b", "2"), ("src", "a", "1"))
    c = a.with_property("src", "c", "3")

    assert a == b
    assert hash(a) == hash(b)
    assert ("src", "c") not in a
    assert c.get("src", "c") == "3"


def test_scopes_and_for_scope():
    _require_imports()

    ps = PropertySet.of(("src", "a", "1"), ("*", "deployer.memory", "1G"), ("src", "b", "2"))

    assert ps.scopes() == ["src", "*"]
    assert ps.for_scope("src") == {"a": "1", "b": "2"}
    assert ps.to_flat_dict() == {"app.src.a": "1", "deployer.*.memory": "1G", "app.src.b": "2"}

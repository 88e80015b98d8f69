# src/dataflow_reconciler/core/properties/model.py
"""
Property Model — propriedades de deployment com escopo por componente.

Este módulo define a representação canônica das propriedades de
deployment/runtime de um pipeline: pares chave/valor associados a um
componente (escopo) ou a todos os componentes (`*`).

A forma textual consumida pelo control plane é plana:

    app.<scope>.<key>=<value>
    deployer.<scope>.<key>=<value>

Internamente, o namespace `app` é implícito e o namespace `deployer` é
preservado como prefixo da chave (`deployer.count`), o que torna a
conversão nos dois sentidos exata.

Componentes principais:
    - Property            → tripla imutável (scope, key, value)
    - PropertySet         → mapa imutável (scope, key) → value com ordem de inserção
    - merge               → resolução de precedência entre fontes
    - parse_properties    → tokenizer da forma textual plana
    - render_properties   → serializer inverso do tokenizer

Princípios fundamentais:
    - Nenhum estado global: o PropertySet é passado por valor
    - Fontes posteriores sobrescrevem fontes anteriores
    - Entrada malformada falha explicitamente (MalformedPropertyError)

Invariantes:
    - Dentro de um PropertySet, cada (scope, key) é único
    - Uma chave sobrescrita mantém sua posição original de inserção
    - parse_properties(render_properties(P)) == P

Limites explícitos:
    - Não compila payloads (ver core.properties.compiler)
    - Não carrega arquivos (ver core.config.loader)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from dataflow_reconciler.core.config.errors import MalformedPropertyError


WILDCARD_SCOPE = "*"
APP_NAMESPACE = "app"
DEPLOYER_NAMESPACE = "deployer"
DEPLOYER_KEY_PREFIX = DEPLOYER_NAMESPACE + "."

_FORBIDDEN_NAME_CHARS = set(",= \t\r\n\"")

_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "r": "\r", "t": "\t"}
_REVERSE_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}


def _validate_name(kind: str, name: str, *, allow_dots: bool) -> None:
    if not isinstance(name, str) or not name:
        raise MalformedPropertyError(f"{kind} de propriedade deve ser string não vazia")
    if not allow_dots and "." in name:
        raise MalformedPropertyError(
            f"{kind} de propriedade não pode conter '.': {name!r}",
            details={kind.lower(): name},
        )
    bad = sorted(set(name) & _FORBIDDEN_NAME_CHARS)
    if bad:
        raise MalformedPropertyError(
            f"{kind} de propriedade contém caracteres inválidos: {name!r}",
            details={kind.lower(): name, "invalid_chars": bad},
        )
    if name.startswith(".") or name.endswith(".") or ".." in name:
        raise MalformedPropertyError(
            f"{kind} de propriedade com segmento vazio: {name!r}",
            details={kind.lower(): name},
        )


def stringify_value(value: Any) -> str:
    """Converte escalares YAML/JSON no valor textual de uma propriedade."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    if isinstance(value, (str, int, float)):
        return str(value)
    raise MalformedPropertyError(
        f"Valor de propriedade deve ser escalar, recebido: {type(value).__name__}",
        details={"value_type": type(value).__name__},
    )


@dataclass(frozen=True)
class Property:
    """Propriedade de deployment associada a um componente (ou `*`)."""

    scope: str
    key: str
    value: str

    def __post_init__(self) -> None:
        _validate_name("Scope", self.scope, allow_dots=False)
        _validate_name("Key", self.key, allow_dots=True)
        if not isinstance(self.value, str):
            raise MalformedPropertyError(
                f"Valor da propriedade '{self.flat_name}' deve ser str",
                details={"property": self.flat_name},
            )

    @property
    def flat_name(self) -> str:
        return flat_name(self.scope, self.key)


def flat_name(scope: str, key: str) -> str:
    """Nome plano aceito pelo control plane para (scope, key)."""
    if key.startswith(DEPLOYER_KEY_PREFIX):
        return f"{DEPLOYER_NAMESPACE}.{scope}.{key[len(DEPLOYER_KEY_PREFIX):]}"
    return f"{APP_NAMESPACE}.{scope}.{key}"


def split_flat_name(name: str) -> Tuple[str, str]:
    """
    Separa um nome plano em (scope, key).

    Exemplos:
        - app.textProc.spring.profiles.active → ("textProc", "spring.profiles.active")
        - deployer.textProc.count             → ("textProc", "deployer.count")

    Raises:
        MalformedPropertyError: Se o namespace for desconhecido ou faltar segmento.
    """
    parts = name.strip().split(".", 2)
    if len(parts) != 3 or not all(parts):
        raise MalformedPropertyError(
            f"Nome de propriedade inválido (esperado <namespace>.<scope>.<key>): {name!r}",
            details={"name": name},
        )
    namespace, scope, key = parts
    if namespace == APP_NAMESPACE:
        return scope, key
    if namespace == DEPLOYER_NAMESPACE:
        return scope, DEPLOYER_KEY_PREFIX + key
    raise MalformedPropertyError(
        f"Namespace de propriedade desconhecido '{namespace}' em {name!r}",
        details={"name": name, "namespace": namespace},
        hint="Use os prefixos 'app.<componente>.' ou 'deployer.<componente>.'.",
    )


class PropertySet:
    """
    Mapa imutável (scope, key) → value.

    A ordem de inserção é irrelevante para lookup e igualdade, mas é
    preservada na iteração para saída diagnóstica. Escritas posteriores
    sobrescrevem o valor mantendo a posição original da chave.
    """

    __slots__ = ("_values",)

    def __init__(self, properties: Iterable[Property] = ()):
        values: Dict[Tuple[str, str], str] = {}
        for prop in properties:
            if not isinstance(prop, Property):
                raise TypeError(f"PropertySet aceita apenas Property, recebido: {type(prop).__name__}")
            values[(prop.scope, prop.key)] = prop.value
        self._values = values

    # -----------------------------
    # Construtores
    # -----------------------------
    @classmethod
    def from_mapping(cls, mapping: Optional[Mapping[str, Any]]) -> "PropertySet":
        """Constrói a partir de um mapa `{nome_plano: valor}` (ex.: `deployment_properties`)."""
        props: List[Property] = []
        for name, value in (mapping or {}).items():
            scope, key = split_flat_name(str(name))
            props.append(Property(scope, key, stringify_value(value)))
        return cls(props)

    @classmethod
    def of(cls, *triples: Tuple[str, str, Any]) -> "PropertySet":
        return cls(Property(s, k, stringify_value(v)) for s, k, v in triples)

    # -----------------------------
    # Consulta
    # -----------------------------
    def get(self, scope: str, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._values.get((scope, key), default)

    def scopes(self) -> List[str]:
        seen: Dict[str, None] = {}
        for scope, _ in self._values:
            seen.setdefault(scope, None)
        return list(seen)

    def for_scope(self, scope: str) -> Dict[str, str]:
        return {k: v for (s, k), v in self._values.items() if s == scope}

    def with_property(self, scope: str, key: str, value: Any) -> "PropertySet":
        return PropertySet(list(self) + [Property(scope, key, stringify_value(value))])

    def to_flat_dict(self) -> Dict[str, str]:
        return {flat_name(s, k): v for (s, k), v in self._values.items()}

    def __iter__(self) -> Iterator[Property]:
        for (scope, key), value in self._values.items():
            yield Property(scope, key, value)

    def __len__(self) -> int:
        return len(self._values)

    def __contains__(self, item: object) -> bool:
        return item in self._values

    def __bool__(self) -> bool:
        return bool(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PropertySet):
            return NotImplemented
        return self._values == other._values

    def __hash__(self) -> int:
        return hash(frozenset(self._values.items()))

    def __repr__(self) -> str:
        return f"PropertySet({self.to_flat_dict()!r})"


def merge(sources: Iterable[PropertySet]) -> PropertySet:
    """
    Combina fontes de propriedades em ordem de precedência crescente.

    A precedência usada pelo reconciliador é:
        defaults < configuração do ambiente < overrides explícitos

    Args:
        sources (Iterable[PropertySet]): Fontes, da menor para a maior precedência.

    Returns:
        PropertySet: Novo conjunto com o último valor de cada (scope, key).
    """
    return PropertySet(prop for source in sources for prop in source)


# ---------------------------------------------------------------------------
# Tokenizer / serializer da forma textual plana
# ---------------------------------------------------------------------------

def _read_quoted(text: str, i: int, key: str) -> Tuple[str, int]:
    buf: List[str] = []
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\":
            if i + 1 >= n:
                break
            nxt = text[i + 1]
            buf.append(_ESCAPES.get(nxt, "\\" + nxt))
            i += 2
            continue
        if ch == '"':
            return "".join(buf), i + 1
        buf.append(ch)
        i += 1
    raise MalformedPropertyError(
        f"Aspas não terminadas no valor da propriedade '{key}'",
        details={"key": key},
    )


def _tokenize(text: str) -> List[Tuple[str, str]]:
    pairs: List[Tuple[str, str]] = []
    i, n = 0, len(text)

    while i < n:
        ch = text[i]
        if ch in ", \t\r\n":
            i += 1
            continue
        if ch == "#":
            end = text.find("\n", i)
            i = n if end == -1 else end + 1
            continue

        start = i
        while i < n and text[i] not in "=,\n":
            i += 1
        key = text[start:i].strip()
        if i >= n or text[i] != "=":
            raise MalformedPropertyError(
                f"Par chave/valor não terminado: {key!r}",
                details={"fragment": key, "offset": start},
            )
        if not key:
            raise MalformedPropertyError("Chave vazia antes de '='", details={"offset": start})
        i += 1

        while i < n and text[i] in " \t":
            i += 1

        if i < n and text[i] == '"':
            value, i = _read_quoted(text, i + 1, key)
            while i < n and text[i] in " \t\r":
                i += 1
            if i < n and text[i] not in ",\n":
                raise MalformedPropertyError(
                    f"Conteúdo inesperado após valor entre aspas da propriedade '{key}'",
                    details={"key": key, "offset": i},
                )
        else:
            start = i
            while i < n and text[i] not in ",\n":
                i += 1
            value = text[start:i].strip()

        pairs.append((key, value))

    return pairs


def parse_properties(text: str) -> PropertySet:
    """
    Interpreta a forma textual plana de propriedades de deployment.

    Gramática (v1):
        - pares `nome=valor` separados por `,` ou quebra de linha
        - linhas iniciadas por `#` são comentários
        - valores entre aspas duplas aceitam `\\"`, `\\\\`, `\\n`, `\\r`, `\\t`
        - valores sem aspas terminam no próximo `,` ou quebra de linha

    Raises:
        MalformedPropertyError: Par sem `=`, aspas não terminadas ou namespace desconhecido.
    """
    props: List[Property] = []
    for name, value in _tokenize(text or ""):
        scope, key = split_flat_name(name)
        props.append(Property(scope, key, value))
    return PropertySet(props)


def _needs_quotes(value: str) -> bool:
    if value != value.strip():
        return True
    return value.startswith('"') or any(c in value for c in ',\n\r\t"')


def _quote(value: str) -> str:
    return '"' + "".join(_REVERSE_ESCAPES.get(c, c) for c in value) + '"'


def render_properties(properties: PropertySet, *, separator: str = ",") -> str:
    """Serializa um PropertySet na forma textual plana aceita por `parse_properties`."""
    rendered = []
    for prop in properties:
        value = _quote(prop.value) if _needs_quotes(prop.value) else prop.value
        rendered.append(f"{prop.flat_name}={value}")
    return separator.join(rendered)

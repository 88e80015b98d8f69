# src/dataflow_reconciler/core/pipeline/topology.py
"""
Descrição declarativa do pipeline desejado.

Um pipeline é uma cadeia linear de componentes:

    source → processor(s) → sink

Cada componente é identificado pelo nome (único no pipeline), pelo tipo
e por um localizador de artefato (`docker:`, `maven://`, `http(s)://`,
`file:`). A definição textual enviada ao control plane é a junção dos
nomes com ` | `.

Invariantes (verificados por `validate()`):
    - Pelo menos 2 componentes
    - O primeiro é source, o último é sink, os intermediários são processors
    - Nomes únicos e sem espaços ou `|`
    - Localizador de artefato não vazio com esquema conhecido

Limites explícitos:
    - Não conversa com o control plane
    - Não valida se o artefato existe de fato
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Mapping, Sequence, Tuple

from dataflow_reconciler.core.config.errors import InvalidPipelineSpecError


ARTIFACT_SCHEMES = ("docker:", "maven://", "http://", "https://", "file:")
DEFINITION_SEPARATOR = " | "


class ComponentKind(str, Enum):
    SOURCE = "source"
    PROCESSOR = "processor"
    SINK = "sink"


@dataclass(frozen=True)
class ComponentSpec:
    name: str
    kind: ComponentKind
    uri: str

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "ComponentSpec":
        if not isinstance(data, Mapping):
            raise InvalidPipelineSpecError(
                f"Componente deve ser um mapa com name/type/uri, recebido: {type(data).__name__}"
            )
        name = str(data.get("name") or "").strip()
        raw_kind = str(data.get("type") or data.get("kind") or "").strip().lower()
        try:
            kind = ComponentKind(raw_kind)
        except ValueError as exc:
            raise InvalidPipelineSpecError(
                f"Tipo de componente inválido para '{name}': {raw_kind!r}",
                details={"component": name, "type": raw_kind},
                hint="Tipos suportados: source, processor, sink.",
            ) from exc
        return cls(name=name, kind=kind, uri=str(data.get("uri") or "").strip())


@dataclass(frozen=True)
class PipelineSpec:
    """Pipeline desejado: nome, cadeia de componentes e descrição opcional."""

    name: str
    components: Tuple[ComponentSpec, ...]
    description: str = ""
    required_properties: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def definition(self) -> str:
        return DEFINITION_SEPARATOR.join(c.name for c in self.components)

    @classmethod
    def build(
        cls,
        name: str,
        components: Sequence[Any],
        *,
        description: str = "",
        required_properties: Sequence[str] = (),
    ) -> "PipelineSpec":
        parsed = tuple(
            c if isinstance(c, ComponentSpec) else ComponentSpec.from_mapping(c)
            for c in components
        )
        return cls(
            name=name,
            components=parsed,
            description=description,
            required_properties=tuple(required_properties),
        )

    def validate(self) -> None:
        """
        Verifica a forma da cadeia de componentes.

        Raises:
            InvalidPipelineSpecError: Na primeira violação encontrada.
        """
        if not isinstance(self.name, str) or not self.name.strip() or " " in self.name:
            raise InvalidPipelineSpecError(
                f"Nome de pipeline inválido: {self.name!r}",
                details={"pipeline": self.name},
            )

        if len(self.components) < 2:
            raise InvalidPipelineSpecError(
                f"Pipeline '{self.name}' precisa de pelo menos 2 componentes (source e sink)",
                details={"pipeline": self.name, "components": len(self.components)},
            )

        seen: Dict[str, int] = {}
        last = len(self.components) - 1
        for index, comp in enumerate(self.components):
            if not comp.name or any(ch in comp.name for ch in " |."):
                raise InvalidPipelineSpecError(
                    f"Nome de componente inválido na posição {index}: {comp.name!r}",
                    details={"pipeline": self.name, "position": index},
                )
            if comp.name in seen:
                raise InvalidPipelineSpecError(
                    f"Componente '{comp.name}' declarado mais de uma vez",
                    details={"pipeline": self.name, "component": comp.name,
                             "positions": [seen[comp.name], index]},
                )
            seen[comp.name] = index

            expected = _expected_kind(index, last)
            if comp.kind != expected:
                raise InvalidPipelineSpecError(
                    f"Componente '{comp.name}' na posição {index} deve ser {expected.value}, "
                    f"declarado como {comp.kind.value}",
                    details={"pipeline": self.name, "component": comp.name,
                             "expected": expected.value, "declared": comp.kind.value},
                )

            if not comp.uri:
                raise InvalidPipelineSpecError(
                    f"Componente '{comp.name}' sem localizador de artefato",
                    details={"pipeline": self.name, "component": comp.name},
                )
            if not comp.uri.startswith(ARTIFACT_SCHEMES):
                raise InvalidPipelineSpecError(
                    f"Localizador de artefato com esquema desconhecido para '{comp.name}': {comp.uri}",
                    details={"pipeline": self.name, "component": comp.name, "uri": comp.uri},
                    hint="Esquemas aceitos: " + ", ".join(ARTIFACT_SCHEMES),
                )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "definition": self.definition,
            "components": [
                {"name": c.name, "type": c.kind.value, "uri": c.uri} for c in self.components
            ],
        }


def _expected_kind(index: int, last: int) -> ComponentKind:
    if index == 0:
        return ComponentKind.SOURCE
    if index == last:
        return ComponentKind.SINK
    return ComponentKind.PROCESSOR

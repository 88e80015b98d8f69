# src/dataflow_reconciler/core/config/merge.py
"""
Deep-merge de seções de settings.

Este módulo implementa a política de merge usada para resolver os settings
efetivos a partir da seção `default` e da seção do ambiente escolhido
(ex.: `production`) de um mesmo arquivo.

Política de merge (v1):
    - dict + dict → merge recursivo por chave
    - list        → sobrescrita total
    - escalar     → sobrescrita direta, mesmo entre tipos escalares diferentes
                    (YAML tipa `1024M` como str e `2` como int; ambos viram
                    valores de propriedade)
    - dict vs não-dict → erro estrutural explícito

Invariantes:
    - Nenhum input é mutado
    - Chaves não sobrescritas são preservadas
    - Conflitos estruturais interrompem o merge

Limites explícitos:
    - Não carrega arquivos
    - Não interpreta propriedades de deployment (ver core.properties)
"""

from copy import deepcopy
from typing import Any, Dict

from .errors import ConfigTypeConflictError


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, _path: str = "") -> Dict[str, Any]:
    """
    Realiza um deep-merge determinístico entre duas seções de settings.

    Args:
        base (Dict[str, Any]): Seção base (ex.: `default`).
        override (Dict[str, Any]): Seção de ambiente com precedência.

    Returns:
        Dict[str, Any]: Novo dicionário resultante do merge.

    Raises:
        ConfigTypeConflictError: Se uma chave for mapa de um lado e não-mapa do outro.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts em '{_path or '<root>'}', recebido: "
            f"{type(base).__name__} vs {type(override).__name__}",
            details={"path": _path or "<root>"},
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        path = f"{_path}.{key}" if _path else str(key)

        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]
        base_is_map = isinstance(base_value, dict)
        override_is_map = isinstance(override_value, dict)

        if base_is_map and override_is_map:
            result[key] = deep_merge(base_value, override_value, _path=path)
            continue

        if base_is_map != override_is_map:
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{path}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}",
                details={"path": path},
            )

        # list ou escalar -> sobrescrita total
        result[key] = deepcopy(override_value)

    return result

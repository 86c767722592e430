"""
Deep-merge de configuração.

Política de merge (v1):
    - dict + dict                     → merge recursivo por chave
    - lista de mapas com chave `id`   → merge por `id` (entradas novas são anexadas)
    - demais listas                   → sobrescrita total
    - escalar                         → sobrescrita direta
    - conflito de tipos               → `ConfigTypeConflictError`

O merge por `id` existe para as tabelas de referência inline: um override
local pode ajustar um único limite ou um único parâmetro do dicionário sem
copiar a lista inteira.

Invariantes:
    - Nenhum input é mutado
    - A mesma entrada sempre produz a mesma saída
"""

from copy import deepcopy
from typing import Any, Dict, List

from .errors import ConfigTypeConflictError


def _is_keyed_list(value: Any) -> bool:
    return (
        isinstance(value, list)
        and bool(value)
        and all(isinstance(item, dict) and "id" in item for item in value)
    )


def _merge_keyed_lists(base: List[Dict[str, Any]], override: List[Dict[str, Any]], *, path: str) -> List[Dict[str, Any]]:
    merged: List[Dict[str, Any]] = [deepcopy(item) for item in base]
    index = {item["id"]: pos for pos, item in enumerate(merged)}

    for item in override:
        key = item["id"]
        if key in index:
            pos = index[key]
            merged[pos] = deep_merge(merged[pos], item, _path=f"{path}[{key}]")
        else:
            index[key] = len(merged)
            merged.append(deepcopy(item))

    return merged


def deep_merge(base: Dict[str, Any], override: Dict[str, Any], *, _path: str = "") -> Dict[str, Any]:
    """
    Combina `base` com `override`, retornando um novo dicionário.

    Args:
        base: configuração base (ex.: defaults empacotados).
        override: overrides explícitos (ex.: config local).

    Returns:
        Nova configuração resultante.

    Raises:
        ConfigTypeConflictError: se uma chave tiver tipos incompatíveis.
    """
    if not isinstance(base, dict) or not isinstance(override, dict):
        raise ConfigTypeConflictError(
            f"Deep-merge requer dicts, recebido: "
            f"{type(base).__name__} vs {type(override).__name__}"
        )

    result: Dict[str, Any] = deepcopy(base)

    for key, override_value in override.items():
        where = f"{_path}.{key}" if _path else str(key)

        if key not in result:
            result[key] = deepcopy(override_value)
            continue

        base_value = result[key]

        if isinstance(base_value, dict) and isinstance(override_value, dict):
            result[key] = deep_merge(base_value, override_value, _path=where)
            continue

        if _is_keyed_list(base_value) and _is_keyed_list(override_value):
            result[key] = _merge_keyed_lists(base_value, override_value, path=where)
            continue

        if isinstance(override_value, list) and isinstance(base_value, list):
            result[key] = deepcopy(override_value)
            continue

        # None no override desliga explicitamente um valor (ex.: reference.path)
        if override_value is None or base_value is None:
            result[key] = deepcopy(override_value)
            continue

        # int -> float é alargamento seguro para limites numéricos
        if isinstance(base_value, float) and type(override_value) is int:
            result[key] = float(override_value)
            continue

        if type(base_value) is not type(override_value):
            raise ConfigTypeConflictError(
                f"Conflito de tipo na chave '{where}': "
                f"{type(base_value).__name__} vs {type(override_value).__name__}"
            )

        result[key] = deepcopy(override_value)

    return result

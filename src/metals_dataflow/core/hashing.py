"""
Hashing canônico para rastreabilidade.

Três identidades entram no Manifest de uma run:
    - a configuração efetiva (`compute_config_hash`)
    - as tabelas de referência (`compute_reference_hash`)
    - cada arquivo de entrada lido (`sha256_file`)

Política (v1):
    - JSON canônico (chaves ordenadas, separadores compactos, UTF-8)
    - SHA-256 em hexadecimal (64 caracteres)
    - Nenhuma informação de runtime participa do hash
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from typing import Any, Dict, Tuple


def _canonical_json(data: Any) -> str:
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def compute_config_hash(config: Dict[str, Any]) -> str:
    """
    Hash determinístico da configuração efetiva.

    Configurações estruturalmente equivalentes (mesmo conteúdo, ordem de
    chaves diferente) produzem o mesmo hash.

    Raises:
        TypeError: se `config` não for um dicionário.
    """
    if not isinstance(config, dict):
        raise TypeError(f"Config para hashing deve ser dict, recebido: {type(config).__name__}")
    return hashlib.sha256(_canonical_json(config).encode("utf-8")).hexdigest()


def compute_reference_hash(raw_reference: Dict[str, Any]) -> str:
    """Hash das tabelas de referência na forma bruta (antes da validação)."""
    if not isinstance(raw_reference, dict):
        raise TypeError(
            f"Reference para hashing deve ser dict, recebido: {type(raw_reference).__name__}"
        )
    return hashlib.sha256(_canonical_json(raw_reference).encode("utf-8")).hexdigest()


def sha256_file(path: Path) -> Tuple[str, int]:
    """Retorna (sha256, bytes) de um arquivo lido em blocos."""
    h = hashlib.sha256()
    size = 0
    with path.open("rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
            size += len(chunk)
    return h.hexdigest(), size

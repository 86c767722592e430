"""Loader canônico das tabelas de referência (YAML/JSON).

Notas:
- YAML é preferencial, JSON é alternativo.
- O formato é inferido pela extensão do arquivo.
- O loader devolve o mapeamento bruto; a validação fica em `schema`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .errors import (
    ReferenceFileNotFoundError,
    ReferenceParseError,
    ReferencePathMissingError,
    UnsupportedReferenceFormatError,
)


def load_reference(*, path: Optional[Union[str, Path]]) -> Dict[str, Any]:
    """Carrega tabelas de referência a partir de YAML/JSON.

    Args:
        path: caminho para o arquivo de referência.

    Raises:
        ReferencePathMissingError: se path estiver ausente.
        ReferenceFileNotFoundError: se arquivo não existir.
        UnsupportedReferenceFormatError: se extensão não suportada.
        ReferenceParseError: se parsing falhar.
    """
    if path is None or not str(path).strip():
        raise ReferencePathMissingError("config must define reference.path or reference.tables")

    p = Path(path)
    if not p.exists():
        raise ReferenceFileNotFoundError(f"reference file not found: {p}")

    suffix = p.suffix.lower()
    if suffix not in {".yml", ".yaml", ".json"}:
        raise UnsupportedReferenceFormatError(f"unsupported reference format: {suffix}")

    raw = p.read_text(encoding="utf-8")
    try:
        if suffix == ".json":
            data = json.loads(raw)
        else:
            data = yaml.safe_load(raw)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ReferenceParseError(str(e) or "failed to parse reference tables") from e

    if data is None:
        raise ReferenceParseError("reference file is empty")

    if not isinstance(data, dict):
        raise ReferenceParseError("reference root must be a mapping/dict")

    return data

"""
Loader de configuração.

A configuração efetiva de uma run é resolvida a partir de:
    - um arquivo de defaults (obrigatório; por padrão o empacotado em
      `metals_dataflow/resources/config.defaults.yaml`)
    - um arquivo local de overrides (opcional)

Responsabilidades:
    - Ler YAML ou JSON
    - Validar o tipo raiz (dict)
    - Resolver overrides via `deep_merge`

Limites explícitos:
    - Não valida semântica de seções ou tabelas de referência
    - Não persiste configuração nem hash
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml  # PyYAML

from .errors import (
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .merge import deep_merge


PathLike = Union[str, Path]

RESOURCES_DIR = Path(__file__).resolve().parents[2] / "resources"
DEFAULT_CONFIG_PATH = RESOURCES_DIR / "config.defaults.yaml"
DEFAULT_REFERENCE_PATH = RESOURCES_DIR / "reference.v1.yaml"


def read_mapping_file(path: Path) -> Dict[str, Any]:
    """
    Lê um arquivo YAML/JSON cuja raiz deve ser um dicionário.

    Arquivos vazios são interpretados como dicionários vazios.

    Raises:
        DefaultsNotFoundError: se o arquivo não existir.
        UnsupportedConfigFormatError: se a extensão não for suportada.
        InvalidConfigRootTypeError: se a raiz não for um dicionário.
    """
    if not path.exists():
        raise DefaultsNotFoundError(f"Arquivo de configuração não encontrado: {path}")

    suffix = path.suffix.lower()

    if suffix in {".yaml", ".yml"}:
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    elif suffix == ".json":
        with path.open("r", encoding="utf-8") as f:
            data = json.load(f)
    else:
        raise UnsupportedConfigFormatError(f"Formato não suportado: {path.suffix}")

    if data is None:
        data = {}

    if not isinstance(data, dict):
        raise InvalidConfigRootTypeError(
            f"Config root deve ser dict, recebido: {type(data).__name__}"
        )

    return data


def _anchor_relative_paths(config: Dict[str, Any], base_dir: Path) -> Dict[str, Any]:
    """
    Resolve `sections.*.path` e `reference.path` relativos ao diretório do
    arquivo que os declarou, para que a run não dependa do cwd.
    """
    sections = config.get("sections")
    if isinstance(sections, dict):
        for section_cfg in sections.values():
            if isinstance(section_cfg, dict) and isinstance(section_cfg.get("path"), str):
                p = Path(section_cfg["path"]).expanduser()
                if not p.is_absolute():
                    section_cfg["path"] = str(base_dir / p)

    reference = config.get("reference")
    if isinstance(reference, dict) and isinstance(reference.get("path"), str):
        p = Path(reference["path"]).expanduser()
        if not p.is_absolute():
            reference["path"] = str(base_dir / p)

    return config


def load_config(
    *,
    defaults_path: Optional[PathLike] = None,
    local_path: Optional[PathLike] = None,
) -> Dict[str, Any]:
    """
    Carrega e resolve a configuração efetiva.

    Política de resolução:
        - defaults obrigatórios (empacotados quando `defaults_path` é None)
        - local opcional; quando o arquivo existe, tem prioridade sobre defaults
        - caminhos relativos são ancorados no diretório de cada arquivo

    Args:
        defaults_path: caminho do arquivo base.
        local_path: caminho opcional de overrides locais.

    Returns:
        Configuração final resolvida (dict puro).

    Raises:
        DefaultsNotFoundError, UnsupportedConfigFormatError,
        InvalidConfigRootTypeError, ConfigTypeConflictError.
    """
    defaults_file = Path(defaults_path) if defaults_path is not None else DEFAULT_CONFIG_PATH
    effective = _anchor_relative_paths(read_mapping_file(defaults_file), defaults_file.resolve().parent)

    if local_path is not None:
        local_file = Path(local_path)
        if local_file.exists():
            local = _anchor_relative_paths(read_mapping_file(local_file), local_file.resolve().parent)
            effective = deep_merge(effective, local)

    return effective

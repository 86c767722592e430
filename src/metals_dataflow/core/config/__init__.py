"""
Camada de configuração.

Responsabilidades:
    - Carregamento de defaults (empacotados ou informados) + overrides locais
    - Deep-merge determinístico (com merge por `id` em listas de mapas)
    - Erros estruturais tipados

A configuração não contém lógica de domínio: limites, conversões e
breakpoints vivem nas tabelas de referência (`core.reference`).
"""

from .errors import (
    ConfigError,
    ConfigTypeConflictError,
    DefaultsNotFoundError,
    InvalidConfigRootTypeError,
    UnsupportedConfigFormatError,
)
from .loader import DEFAULT_CONFIG_PATH, DEFAULT_REFERENCE_PATH, load_config, read_mapping_file
from .merge import deep_merge

__all__ = [
    "ConfigError",
    "ConfigTypeConflictError",
    "DefaultsNotFoundError",
    "InvalidConfigRootTypeError",
    "UnsupportedConfigFormatError",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_REFERENCE_PATH",
    "load_config",
    "read_mapping_file",
    "deep_merge",
]

"""
Tabelas de referência (dicionário de parâmetros, conversões, limites, breakpoints).

API pública:
    - load_reference           → leitura YAML/JSON com erros tipados
    - build_reference_tables   → validação estrutural + `ReferenceTables`
"""

from .errors import (
    ReferenceTablesError,
    ReferenceFileNotFoundError,
    ReferenceParseError,
    ReferencePathMissingError,
    ReferenceValidationError,
    UnsupportedReferenceFormatError,
)
from .loader import load_reference
from .schema import build_reference_tables

__all__ = [
    "ReferenceTablesError",
    "ReferenceFileNotFoundError",
    "ReferenceParseError",
    "ReferencePathMissingError",
    "ReferenceValidationError",
    "UnsupportedReferenceFormatError",
    "load_reference",
    "build_reference_tables",
]

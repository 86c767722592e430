"""Erros canônicos das tabelas de referência.

As tabelas de referência (dicionário de parâmetros, conversões de unidade,
limites regulatórios e breakpoints) são a entrada semântica crítica da
classificação. Falhas de carregamento/validação devem produzir erros
explícitos e estáveis.
"""


class ReferenceTablesError(Exception):
    """Erro base das tabelas de referência."""


class ReferencePathMissingError(ReferenceTablesError):
    """Config não possui `reference.path` nem `reference.tables`."""


class ReferenceFileNotFoundError(ReferenceTablesError):
    """Arquivo de referência não existe no caminho informado."""


class UnsupportedReferenceFormatError(ReferenceTablesError):
    """Formato não suportado (v1: YAML/JSON)."""


class ReferenceParseError(ReferenceTablesError):
    """Falha ao parsear YAML/JSON."""


class ReferenceValidationError(ReferenceTablesError):
    """Tabelas estruturalmente inválidas; a mensagem traz o caminho ofensor."""

    def __init__(self, message: str, *, location: str = "<root>") -> None:
        super().__init__(f"{location}: {message}")
        self.location = location
        self.reason = message

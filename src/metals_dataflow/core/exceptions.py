"""
Exceções tipadas (v1).

Permitem que funções de domínio e Steps levantem falhas semânticas que o
Engine mapeia deterministicamente para `DataflowErrorPayload`, sem recorrer
a ValueError/RuntimeError genéricos em guardrails críticos.

Regras:
- Exceções carregam apenas dados estruturados (serializáveis) em `details`
- Mensagem curta e humana; o código estável vem de `code`
"""

from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional

from . import errors


class DataflowException(Exception):
    """Base das exceções internas do pipeline."""

    code: ClassVar[str] = errors.ENGINE_EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        hint: Optional[str] = None,
        decision_required: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.hint = hint
        self.decision_required = decision_required

    def __str__(self) -> str:
        return self.message

    def to_payload(self) -> errors.DataflowErrorPayload:
        return errors.error_from_exception(self)


# ---------------------------------------------------------------------------
# Entradas
# ---------------------------------------------------------------------------

class MalformedTableError(DataflowException):
    """Tabela sem eixo de parâmetros (ou de estações) identificável."""

    code = errors.MALFORMED_TABLE

    @classmethod
    def build(
        cls,
        *,
        path: Optional[str],
        expected_shape: str,
        reason: str,
        section: Optional[str] = None,
    ) -> "MalformedTableError":
        payload = errors.malformed_table(
            path=path, expected_shape=expected_shape, reason=reason, section=section
        )
        return cls(payload.message, details=payload.details, hint=payload.hint)


class SourceNotFoundError(DataflowException):
    """Arquivo de entrada da seção não existe."""

    code = errors.SOURCE_NOT_FOUND


class UnsupportedSourceFormatError(DataflowException):
    """Extensão de arquivo de entrada não suportada."""

    code = errors.UNSUPPORTED_SOURCE_FORMAT


# ---------------------------------------------------------------------------
# Artefatos / Engine
# ---------------------------------------------------------------------------

class ArtifactNotFoundError(DataflowException):
    """Artefato obrigatório ausente no RunContext."""

    code = errors.ARTIFACT_NOT_FOUND

    @classmethod
    def build(cls, *, key: str, required_by: Optional[str] = None) -> "ArtifactNotFoundError":
        payload = errors.artifact_not_found(expected_artifact=key, required_by=required_by)
        return cls(payload.message, details=payload.details, hint=payload.hint)


class EngineConfigurationError(DataflowException):
    """Configuração inválida ou inconsistente para execução."""

    code = errors.ENGINE_CONFIGURATION_ERROR

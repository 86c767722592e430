"""
Estruturas canônicas de erro (v1).

Erros são artefatos do pipeline: aparecem no `StepResult.payload["error"]`,
no Manifest e em qualquer camada de apresentação que consuma a run. Por
isso são:

- explícitos (código estável, não texto livre)
- serializáveis
- acionáveis (hint indicando onde corrigir)

Nenhum fallback silencioso é aplicado.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional


# ---------------------------------------------------------------------------
# Payload canônico
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class DataflowErrorPayload:
    """
    Payload canônico de erro.

    Campos:
    - type: código estável do erro
    - message: mensagem curta e humana
    - details: dados estruturados para diagnóstico (arquivo, seção, formato esperado)
    - hint: ação sugerida ao operador
    - decision_required: indica que a run depende de uma decisão humana explícita
    """

    type: str
    message: str
    details: Dict[str, Any]
    hint: Optional[str] = None
    decision_required: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Catálogo de tipos de erro (v1)
# ---------------------------------------------------------------------------

# Entradas
MALFORMED_TABLE = "MALFORMED_TABLE"
SOURCE_NOT_FOUND = "SOURCE_NOT_FOUND"
UNSUPPORTED_SOURCE_FORMAT = "UNSUPPORTED_SOURCE_FORMAT"

# Tabelas de referência
REFERENCE_INVALID = "REFERENCE_INVALID"

# Artefatos entre Steps
ARTIFACT_NOT_FOUND = "ARTIFACT_NOT_FOUND"

# Engine / Execução
ENGINE_EXECUTION_ERROR = "ENGINE_EXECUTION_ERROR"
ENGINE_CONFIGURATION_ERROR = "ENGINE_CONFIGURATION_ERROR"


# ---------------------------------------------------------------------------
# Helpers de fábrica
# ---------------------------------------------------------------------------

def malformed_table(
    *,
    path: Optional[str],
    expected_shape: str,
    reason: str,
    section: Optional[str] = None,
    hint: str = "Declare parameter_column/station_column na seção da configuração ou corrija o layout do arquivo.",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=MALFORMED_TABLE,
        message=f"Malformed input table {path or '<memory>'}: {reason}",
        details={
            "path": path,
            "section": section,
            "expected_shape": expected_shape,
            "reason": reason,
        },
        hint=hint,
        decision_required=False,
    )


def source_not_found(
    *,
    path: Optional[str],
    section: Optional[str] = None,
    hint: str = "Verifique `sections.<nome>.path` na configuração.",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=SOURCE_NOT_FOUND,
        message=f"Input file not found: {path}",
        details={"path": path, "section": section},
        hint=hint,
    )


def unsupported_source_format(
    *,
    path: Optional[str],
    suffix: str,
    supported: List[str],
    section: Optional[str] = None,
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=UNSUPPORTED_SOURCE_FORMAT,
        message=f"Unsupported input format '{suffix}' for {path}",
        details={"path": path, "suffix": suffix, "supported": supported, "section": section},
        hint="Converta o arquivo para CSV (UTF-8) ou XLSX.",
    )


def reference_invalid(
    *,
    location: str,
    reason: str,
    hint: str = "Corrija as tabelas de referência (dicionário, conversões, limites ou breakpoints).",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=REFERENCE_INVALID,
        message=f"Invalid reference tables at {location}: {reason}",
        details={"location": location, "reason": reason},
        hint=hint,
    )


def artifact_not_found(
    *,
    expected_artifact: str,
    required_by: Optional[str] = None,
    hint: str = "Garanta que o Step produtor rodou com sucesso antes deste Step.",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=ARTIFACT_NOT_FOUND,
        message=f"Required artifact not found: {expected_artifact}",
        details={"expected_artifact": expected_artifact, "required_by": required_by},
        hint=hint,
    )


def engine_execution_error(
    *,
    step: Optional[str] = None,
    exc_type: Optional[str] = None,
    exc_message: Optional[str] = None,
    hint: str = "Verifique os eventos da run para diagnosticar a falha. Nenhum fallback é aplicado automaticamente.",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=ENGINE_EXECUTION_ERROR,
        message=exc_message or "Unexpected failure during pipeline execution",
        details={"step": step, "exc_type": exc_type, "exc_message": exc_message},
        hint=hint,
    )


def engine_configuration_error(
    *,
    message: str = "Invalid configuration for pipeline execution",
    details: Optional[Dict[str, Any]] = None,
    hint: str = "Revise a configuração de steps/sections antes de reexecutar.",
) -> DataflowErrorPayload:
    return DataflowErrorPayload(
        type=ENGINE_CONFIGURATION_ERROR,
        message=message,
        details=details or {},
        hint=hint,
    )


def error_from_exception(exc: BaseException, *, step: Optional[str] = None) -> DataflowErrorPayload:
    """
    Converte uma exceção em payload serializável.

    - DataflowException: carrega seu próprio código, details e hint
    - Demais exceções: encapsuladas como ENGINE_EXECUTION_ERROR, sem stack trace
    """
    from .exceptions import DataflowException

    if isinstance(exc, DataflowException):
        return DataflowErrorPayload(
            type=exc.code,
            message=str(exc) or "Execution error",
            details=dict(exc.details or {}),
            hint=exc.hint,
            decision_required=bool(exc.decision_required),
        )

    return engine_execution_error(
        step=step,
        exc_type=exc.__class__.__name__,
        exc_message=str(exc) or None,
    )

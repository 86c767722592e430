"""
Schema canônico: Reference Tables v1.

Formato bruto (YAML/JSON):

    version: "1"
    parameters:        [{id, element, unit, aliases}]
    conversions:       [{id, parameter?, from_unit, to_unit, factor}]
    standards:         [{id, parameter, matrix, limit, unit, source}]
    breakpoints:       {<matrix>|default: {safe, moderate, high}}
    source_priority:   [<source>, ...]

`build_reference_tables` valida a estrutura e materializa um
`ReferenceTables` imutável. Esta implementação evita dependências externas
(ex.: Pydantic), como o restante do core.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Optional, Tuple

from metals_dataflow.domain.labels import canonical_unit, normalize_label
from metals_dataflow.domain.types import (
    DEFAULT_MATRIX_KEY,
    MATRICES,
    BreakpointTable,
    ParameterEntry,
    ReferenceStandard,
    ReferenceTables,
    UnitConversion,
)

from .errors import ReferenceValidationError


def _is_non_empty_str(x: Any) -> bool:
    return isinstance(x, str) and bool(x.strip())


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool) and math.isfinite(x)


def _expect(cond: bool, msg: str, location: str) -> None:
    if not cond:
        raise ReferenceValidationError(msg, location=location)


def _as_list(data: Dict[str, Any], key: str, *, required: bool) -> List[Any]:
    value = data.get(key)
    if value is None:
        _expect(not required, f"{key} is required", key)
        return []
    _expect(isinstance(value, list), f"{key} must be a list", key)
    return value


def _build_parameters(items: List[Any]) -> Tuple[Dict[str, ParameterEntry], Dict[str, str]]:
    _expect(bool(items), "at least one parameter is required", "parameters")

    parameters: Dict[str, ParameterEntry] = {}
    aliases: Dict[str, str] = {}

    for i, item in enumerate(items):
        where = f"parameters[{i}]"
        _expect(isinstance(item, dict), "entry must be a mapping", where)
        pid = item.get("id")
        _expect(_is_non_empty_str(pid), "id is required", f"{where}.id")
        _expect(pid not in parameters, f"duplicate parameter id: {pid}", f"{where}.id")

        raw_aliases = item.get("aliases") or []
        _expect(isinstance(raw_aliases, list), "aliases must be a list", f"{where}.aliases")
        for j, alias in enumerate(raw_aliases):
            _expect(_is_non_empty_str(alias), "alias must be a non-empty string", f"{where}.aliases[{j}]")

        unit = item.get("unit")
        _expect(unit is None or _is_non_empty_str(unit), "unit must be a string", f"{where}.unit")

        # o id canônico é sempre alias de si mesmo
        for alias in [pid, *raw_aliases]:
            key = normalize_label(alias)
            owner = aliases.get(key)
            _expect(
                owner is None or owner == pid,
                f"alias '{alias}' already claimed by parameter '{owner}'",
                f"{where}.aliases",
            )
            aliases[key] = pid

        parameters[pid] = ParameterEntry(
            id=pid,
            element=item.get("element"),
            unit=canonical_unit(unit),
            aliases=tuple(str(a) for a in raw_aliases),
        )

    return parameters, aliases


def _scopes_overlap(a: Optional[str], b: Optional[str]) -> bool:
    return a is None or b is None or a == b


def _build_conversions(items: List[Any], parameters: Dict[str, ParameterEntry]) -> Tuple[UnitConversion, ...]:
    conversions: List[UnitConversion] = []
    seen: Dict[Tuple[Optional[str], str], str] = {}

    for i, item in enumerate(items):
        where = f"conversions[{i}]"
        _expect(isinstance(item, dict), "entry must be a mapping", where)

        from_unit = canonical_unit(item.get("from_unit"))
        to_unit = canonical_unit(item.get("to_unit"))
        _expect(from_unit is not None, "from_unit is required", f"{where}.from_unit")
        _expect(to_unit is not None, "to_unit is required", f"{where}.to_unit")
        _expect(from_unit != to_unit, "from_unit and to_unit must differ", where)

        factor = item.get("factor")
        _expect(_is_number(factor) and factor > 0, "factor must be a positive number", f"{where}.factor")

        parameter = item.get("parameter")
        if parameter is not None:
            _expect(parameter in parameters, f"unknown parameter: {parameter}", f"{where}.parameter")

        scope = (parameter, from_unit)
        _expect(scope not in seen, f"duplicate conversion for {from_unit} (parameter={parameter})", where)
        seen[scope] = where

        conversions.append(
            UnitConversion(
                from_unit=from_unit,
                to_unit=to_unit,
                factor=float(factor),
                parameter=parameter,
                id=item.get("id"),
            )
        )

    for a in conversions:
        for b in conversions:
            if a.to_unit == b.from_unit and _scopes_overlap(a.parameter, b.parameter):
                raise ReferenceValidationError(
                    f"conversion chain {a.from_unit} -> {a.to_unit} -> {b.to_unit} is not allowed",
                    location="conversions",
                )

    return tuple(conversions)


def _build_standards(
    items: List[Any], parameters: Dict[str, ParameterEntry]
) -> Tuple[Tuple[ReferenceStandard, ...], Tuple[Tuple[str, str], ...]]:
    standards: List[ReferenceStandard] = []
    no_guideline: List[Tuple[str, str]] = []

    for i, item in enumerate(items):
        where = f"standards[{i}]"
        _expect(isinstance(item, dict), "entry must be a mapping", where)

        parameter = item.get("parameter")
        _expect(parameter in parameters, f"unknown parameter: {parameter}", f"{where}.parameter")

        matrix = item.get("matrix")
        _expect(matrix in MATRICES, f"matrix must be one of {list(MATRICES)}", f"{where}.matrix")

        limit = item.get("limit")
        if limit is None:
            no_guideline.append((parameter, matrix))
            continue
        _expect(
            _is_number(limit) and limit > 0,
            "limit must be a positive number (use null for no guideline)",
            f"{where}.limit",
        )

        unit = canonical_unit(item.get("unit"))
        _expect(unit is not None, "unit is required", f"{where}.unit")
        source = item.get("source")
        _expect(_is_non_empty_str(source), "source is required", f"{where}.source")

        standards.append(
            ReferenceStandard(
                parameter_id=parameter,
                matrix=matrix,
                limit_value=float(limit),
                unit=unit,
                source=source,
                id=item.get("id"),
            )
        )

    return tuple(standards), tuple(no_guideline)


def _build_breakpoints(raw: Any) -> Dict[str, BreakpointTable]:
    if raw is None:
        raw = {}
    _expect(isinstance(raw, dict), "breakpoints must be a mapping", "breakpoints")

    tables: Dict[str, BreakpointTable] = {}
    allowed = set(MATRICES) | {DEFAULT_MATRIX_KEY}
    for matrix, entry in raw.items():
        where = f"breakpoints.{matrix}"
        _expect(matrix in allowed, f"unknown matrix: {matrix}", where)
        _expect(isinstance(entry, dict), "entry must be a mapping", where)
        for key in ("safe", "moderate", "high"):
            _expect(_is_number(entry.get(key)), f"{key} must be a number", f"{where}.{key}")
        try:
            tables[matrix] = BreakpointTable(
                safe=float(entry["safe"]),
                moderate=float(entry["moderate"]),
                high=float(entry["high"]),
            )
        except ValueError as e:
            raise ReferenceValidationError(str(e), location=where) from e

    tables.setdefault(DEFAULT_MATRIX_KEY, BreakpointTable())
    return tables


def build_reference_tables(data: Any) -> ReferenceTables:
    """Valida e materializa as tabelas de referência v1."""
    _expect(isinstance(data, dict), "reference tables must be a mapping/dict", "<root>")

    version = data.get("version")
    _expect(
        _is_non_empty_str(version) or _is_number(version),
        "version is required",
        "version",
    )

    parameters, aliases = _build_parameters(_as_list(data, "parameters", required=True))
    conversions = _build_conversions(_as_list(data, "conversions", required=False), parameters)
    standards, no_guideline = _build_standards(_as_list(data, "standards", required=False), parameters)
    breakpoints = _build_breakpoints(data.get("breakpoints"))

    priority = _as_list(data, "source_priority", required=False)
    for i, source in enumerate(priority):
        _expect(_is_non_empty_str(source), "source must be a non-empty string", f"source_priority[{i}]")

    return ReferenceTables(
        version=str(version),
        parameters=parameters,
        aliases=aliases,
        conversions=conversions,
        standards=standards,
        breakpoints=breakpoints,
        source_priority=tuple(priority),
        no_guideline=no_guideline,
    )

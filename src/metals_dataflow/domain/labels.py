"""
Normalização textual de rótulos de parâmetros e de unidades.

Os arquivos de origem trazem rótulos em espanhol, com acentos, símbolos
químicos e unidades embutidas (`Pb (mg/l)`, `Mean Pb [µg/dl] Children`).
As funções deste módulo produzem chaves estáveis para consulta ao
dicionário de parâmetros e grafias canônicas de unidades.

Todas as funções são puras e idempotentes.
"""

from __future__ import annotations

import re
import unicodedata
from typing import Optional, Tuple

_BRACKET_RE = re.compile(r"[\(\[]\s*([^\)\]]*?)\s*[\)\]]")
_SPACES_RE = re.compile(r"\s+")

_BARE_UNITS = {"ppm", "ppb", "%"}

_NUMERATORS = {
    "ug": "µg",
    "mcg": "µg",
    "mg": "mg",
    "ng": "ng",
    "g": "g",
}

_DENOMINATORS = {
    "l": "L",
    "dl": "dL",
    "ml": "mL",
    "kg": "kg",
    "g": "g",
}


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def normalize_label(label: object) -> str:
    """
    Chave de consulta para um rótulo de parâmetro.

    NFKC, acentos removidos, `_` tratado como espaço, espaços colapsados,
    casefold. `"Plomo  Total"`, `"plomo_total"` e `"Plómo total"` produzem a
    mesma chave.
    """
    text = unicodedata.normalize("NFKC", str(label))
    text = _strip_accents(text).replace("_", " ")
    return _SPACES_RE.sub(" ", text).strip().casefold()


def _looks_like_unit(token: str) -> bool:
    t = token.strip().casefold()
    return "/" in t or t in _BARE_UNITS


def split_label_unit(label: object) -> Tuple[str, Optional[str]]:
    """
    Separa a unidade entre parênteses/colchetes do rótulo.

    Apenas conteúdo com cara de unidade (contém `/` ou é ppm/ppb/%) é
    removido: `Lead (total)` permanece intacto.

    >>> split_label_unit("Mean Pb [µg/dl] Children")
    ('Mean Pb Children', 'µg/dl')
    """
    text = str(label)
    for match in _BRACKET_RE.finditer(text):
        token = match.group(1)
        if _looks_like_unit(token):
            base = text[: match.start()] + " " + text[match.end():]
            return _SPACES_RE.sub(" ", base).strip(), token.strip()
    return text.strip(), None


def canonical_unit(unit: Optional[object]) -> Optional[str]:
    """
    Grafia canônica de uma unidade.

    `ug/l`, `μg/L` e `µg/l` viram `µg/L`; `mg/dl` vira `mg/dL`. Unidades
    desconhecidas são devolvidas apenas sem espaços. Vazio vira None.
    """
    if unit is None:
        return None
    raw = unicodedata.normalize("NFKC", str(unit)).strip().replace(" ", "")
    if not raw:
        return None

    # NFKC converte o sinal de micro (U+00B5) na letra grega mu (U+03BC)
    low = raw.casefold().replace("μ", "u")
    num, sep, den = low.partition("/")

    if sep:
        if num in _NUMERATORS and den in _DENOMINATORS:
            return f"{_NUMERATORS[num]}/{_DENOMINATORS[den]}"
        return raw
    if low in _BARE_UNITS:
        return low
    return raw

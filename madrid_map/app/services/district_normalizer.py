# app/services/district_normalizer.py
import re
import unicodedata
from functools import lru_cache
from typing import Any, Dict, Mapping, Optional, Sequence, Tuple

from madrid_map.app.schemas.feature import UNKNOWN, Position

MADRID_DISTRICTS: Tuple[str, ...] = (
    "Centro",
    "Arganzuela",
    "Retiro",
    "Salamanca",
    "Chamartín",
    "Tetuán",
    "Chamberí",
    "Fuencarral-El Pardo",
    "Moncloa-Aravaca",
    "Latina",
    "Carabanchel",
    "Usera",
    "Puente de Vallecas",
    "Moratalaz",
    "Ciudad Lineal",
    "Hortaleza",
    "Villaverde",
    "Villa de Vallecas",
    "Vicálvaro",
    "San Blas-Canillejas",
    "Barajas",
)

# Keys are in cleaned form (see clean_name).
DISTRICT_ALIASES: Dict[str, str] = {
    "moncloa": "Moncloa-Aravaca",
    "aravaca": "Moncloa-Aravaca",
    "moncloa aravaca": "Moncloa-Aravaca",
    "chamberi": "Chamberí",
    "chamartin": "Chamartín",
    "tetuan": "Tetuán",
    "vicalvaro": "Vicálvaro",
    "san blas": "San Blas-Canillejas",
    "canillejas": "San Blas-Canillejas",
    "san blas canillejas": "San Blas-Canillejas",
    "fuencarral": "Fuencarral-El Pardo",
    "el pardo": "Fuencarral-El Pardo",
    "fuencarral el pardo": "Fuencarral-El Pardo",
    "puente vallecas": "Puente de Vallecas",
    "pte de vallecas": "Puente de Vallecas",
    "pte vallecas": "Puente de Vallecas",
    "villa vallecas": "Villa de Vallecas",
    "c lineal": "Ciudad Lineal",
    "cdad lineal": "Ciudad Lineal",
}

_SEPARATORS = re.compile(r"[\s\-_.]+")


def clean_name(value: str) -> str:
    """Lowercase, drop diacritics, and collapse hyphens, dots and whitespace to single spaces."""
    s = unicodedata.normalize("NFD", value)
    s = "".join(c for c in s if unicodedata.category(c) != "Mn")
    s = _SEPARATORS.sub(" ", s.lower())
    return s.strip()


class DistrictNormalizer:
    """Maps free-text district names onto a closed vocabulary.

    Resolution order: exact alias match, then containment against the
    vocabulary in its declared order (first hit wins), then "Unknown". When a
    boundary source is attached, :meth:`resolve` can also place a point.
    """

    def __init__(
        self,
        vocabulary: Sequence[str] = MADRID_DISTRICTS,
        aliases: Optional[Mapping[str, str]] = None,
        boundaries: Any = None,
    ) -> None:
        self.vocabulary: Tuple[str, ...] = tuple(vocabulary)
        self._cleaned: Tuple[Tuple[str, str], ...] = tuple((clean_name(d), d) for d in self.vocabulary)
        table: Dict[str, str] = {cleaned: name for cleaned, name in self._cleaned}
        for alias, canonical in (DISTRICT_ALIASES if aliases is None else aliases).items():
            if canonical in self.vocabulary:
                table[clean_name(alias)] = canonical
        self.aliases = table
        self.boundaries = boundaries

    def normalize(self, name: Any) -> str:
        if not isinstance(name, str):
            return UNKNOWN
        cleaned = clean_name(name)
        if not cleaned:
            return UNKNOWN

        hit = self.aliases.get(cleaned)
        if hit is not None:
            return hit

        for canonical_clean, canonical in self._cleaned:
            if cleaned in canonical_clean or canonical_clean in cleaned:
                return canonical
        return UNKNOWN

    def resolve(self, name: Any, position: Optional[Position] = None) -> str:
        district = self.normalize(name)
        if district != UNKNOWN or self.boundaries is None or position is None:
            return district
        located = self.boundaries.locate(position[0], position[1])
        return located if located in self.vocabulary else UNKNOWN


@lru_cache(maxsize=1)
def default_normalizer() -> DistrictNormalizer:
    return DistrictNormalizer()


def normalize_district(name: Any) -> str:
    return default_normalizer().normalize(name)

"""Domain lookup tables loaded from YAML.

The tables (unit conversions, address and class/type abbreviations,
production lead-ins, wine/spirit regions, historical country names) are data,
not logic, and live in ``ttb_verify/data/lookup_tables.yaml``. Point
``LOOKUP_TABLES_PATH`` at a different file to customize them.
``class_type_abbreviations`` is optional.
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Tuple
import logging

import yaml

from ..config import get_settings

logger = logging.getLogger(__name__)


REQUIRED_TABLES = (
    "ml_conversions",
    "street_abbreviations",
    "state_abbreviations",
    "address_lead_ins",
    "country_lead_ins",
    "ttb_regions",
    "region_countries",
    "historical_countries",
)


@dataclass(frozen=True)
class LookupTables:
    """Parsed, lowercased lookup tables."""
    ml_conversions: Dict[str, float]
    address_abbreviations: Dict[str, str]
    class_type_abbreviations: Dict[str, str]
    address_lead_ins: Tuple[str, ...]
    country_lead_ins: Tuple[str, ...]
    ttb_regions: frozenset
    region_countries: Dict[str, str]
    historical_countries: Dict[str, str]

    @property
    def units_longest_first(self) -> List[Tuple[str, float]]:
        """Volume units sorted longest name first to avoid partial overlaps."""
        return sorted(self.ml_conversions.items(), key=lambda item: len(item[0]), reverse=True)


def _lower_keys(table: dict) -> Dict[str, str]:
    return {str(k).lower().strip(): str(v).strip() for k, v in table.items()}


def load_lookup_tables(path: Path) -> LookupTables:
    """
    Load and validate the lookup table file.

    Raises:
        FileNotFoundError: if the file does not exist
        ValueError: if a required table is missing
    """
    with open(path, encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    missing = [name for name in REQUIRED_TABLES if name not in raw]
    if missing:
        raise ValueError(f"Lookup table file {path} is missing tables: {', '.join(missing)}")

    # States take precedence for ambiguous abbreviations
    abbreviations = _lower_keys(raw["street_abbreviations"])
    abbreviations.update(_lower_keys(raw["state_abbreviations"]))

    tables = LookupTables(
        ml_conversions={str(k).lower().strip(): float(v) for k, v in raw["ml_conversions"].items()},
        address_abbreviations=abbreviations,
        class_type_abbreviations=_lower_keys(raw.get("class_type_abbreviations") or {}),
        address_lead_ins=tuple(str(p).lower() for p in raw["address_lead_ins"]),
        country_lead_ins=tuple(str(p).lower() for p in raw["country_lead_ins"]),
        ttb_regions=frozenset(str(r).lower().strip() for r in raw["ttb_regions"]),
        region_countries={k: v.lower() for k, v in _lower_keys(raw["region_countries"]).items()},
        historical_countries={k: v.upper() for k, v in _lower_keys(raw["historical_countries"]).items()},
    )

    logger.info(
        f"Loaded lookup tables from {path}: {len(tables.ml_conversions)} units, "
        f"{len(tables.address_abbreviations)} abbreviations, "
        f"{len(tables.region_countries)} regions"
    )
    return tables


@lru_cache
def _cached_tables(path: str) -> LookupTables:
    return load_lookup_tables(Path(path))


def get_lookup_tables() -> LookupTables:
    """Get the lookup tables for the configured path (cached per path)."""
    return _cached_tables(str(get_settings().lookup_tables_path))

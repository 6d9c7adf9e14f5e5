"""
Batch normalization of property data exported from spreadsheets.

Two jobs are supported:

* unit details: a tab-separated export (available, zone, condominium, unit, floor,
  type, bedrooms, bathrooms) is matched against stored properties by condominium and
  unit number, and the parsed details are written back.
* zones: condominium names are mapped to their zone using a mapping table.

Both jobs can run as a dry run that reports what would change without writing.
"""

import json
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Mapping, NamedTuple, Optional, Tuple, Union

from rapidfuzz import fuzz, process
from sqlalchemy.ext.asyncio import AsyncSession

from homesapp.config import settings
from homesapp.models.property import Property, PropertyType
from homesapp.repositories.property import PropertyRepository
from homesapp.utils.text import normalize_name
import logging

logger = logging.getLogger(__name__)

EXPECTED_COLUMNS = 8

# Condominium -> zone, as maintained by the listings team
DEFAULT_ZONE_MAPPING: Dict[str, str] = {
    "Aldea Tulum": "Aldea Tulum",
    "Aldea Tulum F2": "Aldea Tulum",
    "Aldea Tulum F3": "Aldea Tulum",
    "Mistiq Tulum": "Kukulkan",
    "Cacao": "La Veleta",
    "Paramar Viva": "Aldea Zama",
    "Quinto Sol": "Aldea Zama",
    "Ik Zama": "Aldea Zama",
    "Adora": "Kukulkan",
    "Mun Townhouse": "Mun Tulum",
    "Homes": "Villas Tulum",
    "Noil Residences": "Region 15",
    "Villa Tuunich": "Holistika",
    "Selva Norte": "Selva Norte",
    "Amira Central": "Aldea Zama",
    "Maria Tulum": "Centro",
    "Kaatal Oox": "La Veleta",
    "Villa Penelopa": "La Veleta",
    "Zona Nove": "La Veleta",
    "Casa Lili": "Riviera Tulum",
    "Seremonia": "La Veleta",
    "Palalma Tierra": "La Veleta",
    "Asana": "La Veleta",
    "Aldea Savia": "Region 12",
    "Mistiq Temple I": "Region 15",
    "Mistiq Temple II": "Region 15",
    "Vientos Tulum": "Aldea Zama",
    "Xun Kari": "Yax-Kin",
    "Casa Tigrillo": "Tumben Kaa",
    "Aldea Ka An": "Riviera Tulum",
    "Solemn": "Region 15",
    "Selva Tulum": "La Veleta",
    "Areia": "Region 15",
    "Naia Tulum": "Kukulkan",
    "Ka An Tulum": "Tumben Kaa",
    "Eve Residences": "Aldea Zama",
    "Cuatro Cielos Tulum": "La Veleta",
    "Arba I": "Aldea Zama",
    "Arba II": "Aldea Zama",
    "Tuk Tulum": "Centro",
    "Tao": "Aldea Zama",
    "Tao TSE": "Bahía Príncipe",
    "Kayum": "Selva Norte",
    "Zama 120": "Aldea Zama",
    "Central Park": "La Veleta",
    "Recinto": "Region 8",
    "Luna Residence": "Aldea Zama",
    "Chaac": "Kukulkan",
    "Alma de Flores": "Aldea Zama",
    "Acinte by Endémico": "La Veleta",
    "Casa Olivia": "Macario Gómez",
    "Nook": "Region 8",
    "Zama Tower": "Aldea Zama",
    "Edificio Jabali": "Tumben Kaa",
    "Playazul": "Playa del Carmen",
    "Edena by TAO": "Av. Cobá",
    "Gardens by Coba": "Av. Cobá",
}


# Cell parsers

def parse_floor(value: str) -> Optional[str]:
    """
    >>> parse_floor("Planta Baja"), parse_floor("PH"), parse_floor("Sin disponibilidad")
    ('planta_baja', 'penthouse', None)
    """
    normalized = normalize_name(value)
    if "planta baja" in normalized or normalized == "pb":
        return "planta_baja"
    if "primer" in normalized:
        return "primer_piso"
    if "segundo" in normalized:
        return "segundo_piso"
    if "tercer" in normalized:
        return "tercer_piso"
    if "penthouse" in normalized or "ph" in normalized:
        return "penthouse"
    return None


def parse_typology(kind: str, bedrooms: str) -> Optional[str]:
    normalized = normalize_name(kind)
    if normalized == "studio" or "estudio" in normalized:
        return "estudio"
    if normalized == "loft":
        return "loft_normal"

    beds = parse_bedrooms(bedrooms)
    if beds is None:
        return None
    if beds == 1:
        return "1_recamara"
    if beds == 2:
        return "2_recamaras"
    if beds >= 3:
        return "3_recamaras"
    return None


def parse_property_type(kind: str) -> Optional[PropertyType]:
    normalized = normalize_name(kind)
    if normalized == "studio" or "estudio" in normalized:
        return PropertyType.STUDIO
    if normalized in ("departamento", "depa"):
        return PropertyType.APARTMENT
    if normalized == "casa":
        return PropertyType.HOUSE
    if normalized == "loft":
        return PropertyType.LOFT
    if normalized == "villa":
        return PropertyType.VILLA
    if "penthouse" in normalized or normalized == "ph":
        return PropertyType.PENTHOUSE
    if "local" in normalized or "comercial" in normalized:
        return PropertyType.COMMERCIAL
    if normalized in ("terreno", "lote"):
        return PropertyType.LAND
    return None


def parse_availability(value: str) -> Optional[bool]:
    normalized = normalize_name(value)
    if normalized == "disponible":
        return True
    if normalized == "no disponible" or "baja" in normalized:
        return False
    return None


def parse_bedrooms(value: str) -> Optional[int]:
    """Leading integer of the cell, like ``"2 rec"`` -> 2."""
    text = (value or "").strip()
    digits = ""
    for char in text.lstrip("+-"):
        if not char.isdigit():
            break
        digits += char
    if not digits:
        return None
    return -int(digits) if text.startswith("-") else int(digits)


def parse_bathrooms(value: str) -> Optional[Decimal]:
    """
    Bathrooms with ``,`` decimals and the ``½`` sign.

    >>> parse_bathrooms("2½"), parse_bathrooms("1,5"), parse_bathrooms("n/a")
    (Decimal('2.5'), Decimal('1.5'), None)
    """
    text = (value or "").replace(",", ".").replace("½", ".5").replace("\r", "").strip()
    number = ""
    for char in text:
        if char.isdigit() or (char == "." and "." not in number):
            number += char
        else:
            break
    if not number or number == ".":
        return None
    try:
        return Decimal(number)
    except InvalidOperation:
        return None


# Rows

class UnitRow(NamedTuple):
    line_number: int
    available: str
    zone: str
    condominium: str
    unit: str
    floor: str
    kind: str
    bedrooms: str
    bathrooms: str


def parse_units_tsv(content: str) -> List[UnitRow]:
    """
    Rows of a tab-separated unit export. The header row is skipped, as are rows with
    fewer than eight columns and rows without condominium or unit.
    """
    rows = []
    lines = [line for line in content.split("\n") if line.strip()]
    for line_number, line in enumerate(lines[1:], start=2):
        cols = [col.replace("\r", "") for col in line.split("\t")]
        if len(cols) < EXPECTED_COLUMNS:
            continue
        row = UnitRow(line_number, *[col.strip() for col in cols[:EXPECTED_COLUMNS]])
        if not row.condominium or not row.unit:
            continue
        rows.append(row)
    return rows


def unit_changes(row: UnitRow, prop: Optional[Property] = None) -> Dict[str, Any]:
    """Parsed values of a row, limited to those that differ from the stored property."""
    parsed = {
        "property_type": parse_property_type(row.kind),
        "typology": parse_typology(row.kind, row.bedrooms),
        "floor": parse_floor(row.floor),
        "bedrooms": parse_bedrooms(row.bedrooms),
        "bathrooms": parse_bathrooms(row.bathrooms),
        "active": parse_availability(row.available),
    }
    values = {key: value for key, value in parsed.items() if value is not None}
    if prop is None:
        return values
    return {key: value for key, value in values.items() if getattr(prop, key) != value}


# Matching

class CondoMatcher:
    """
    Resolve a condominium name from an export to a known one: exact normalized match,
    then ignoring spaces, then substring containment either way, then fuzzy ratio.
    """

    def __init__(self, names, score_cutoff: Optional[int] = None):
        self.score_cutoff = settings.import_match_score_cutoff if score_cutoff is None else score_cutoff
        self.by_key: Dict[str, str] = {}
        self.by_compact: Dict[str, str] = {}
        for name in names:
            key = normalize_name(name)
            if not key:
                continue
            self.by_key.setdefault(key, key)
            self.by_compact.setdefault(key.replace(" ", ""), key)

    def match(self, name: str) -> Optional[str]:
        key = normalize_name(name)
        if not key:
            return None
        if key in self.by_key:
            return key

        compact = key.replace(" ", "")
        if compact in self.by_compact:
            return self.by_compact[compact]

        for known in self.by_key:
            if known in key or key in known:
                return known

        best = process.extractOne(key, list(self.by_key), scorer=fuzz.WRatio, score_cutoff=self.score_cutoff)
        if best:
            logger.debug(f"Fuzzy matched condominium '{name}' -> '{best[0]}' (score {best[1]:.0f})")
            return best[0]
        return None


def match_unit(units: Mapping[str, Property], unit_number: str) -> Optional[Property]:
    """Exact normalized unit number first, then containment either way."""
    key = normalize_name(unit_number)
    if key in units:
        return units[key]
    for stored, prop in units.items():
        if stored and key and (stored in key or key in stored):
            return prop
    return None


# Jobs

@dataclass
class ImportSummary:
    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    not_found: int = 0
    errors: int = 0
    dry_run: bool = False
    missing: List[str] = field(default_factory=list)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "processed": self.processed,
            "updated": self.updated,
            "unchanged": self.unchanged,
            "not_found": self.not_found,
            "errors": self.errors,
            "dry_run": self.dry_run,
        }


@dataclass
class ZoneSummary:
    updated: int = 0
    already_correct: int = 0
    dry_run: bool = False
    unmapped: List[str] = field(default_factory=list)


def load_zone_mapping(path: Union[str, Path]) -> Dict[str, str]:
    """
    Read a JSON object of condominium name -> zone.

    Raises:
        ValueError: If the file does not hold such an object
    """
    with open(path, encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict) or not all(isinstance(k, str) and isinstance(v, str) for k, v in data.items()):
        raise ValueError(f"{path} must contain a JSON object mapping condominium names to zones")
    return data


def zone_for(condo_name: str, mapping: Mapping[str, str]) -> Optional[str]:
    """Zone of a condominium: exact name first, then case-insensitive."""
    if condo_name in mapping:
        return mapping[condo_name]
    wanted = condo_name.lower().strip()
    for name, zone in mapping.items():
        if name.lower().strip() == wanted:
            return zone
    return None


class UnitImporter:
    """Apply a unit details export to stored properties."""

    def __init__(self, db_session: AsyncSession, score_cutoff: Optional[int] = None):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)
        self.score_cutoff = score_cutoff

    async def _load_units(self) -> Tuple[Dict[str, Dict[str, Property]], CondoMatcher]:
        """Stored properties indexed by normalized condominium and unit."""
        properties = await self.property_repo.get_all_for_import()

        units_by_condo: Dict[str, Dict[str, Property]] = {}
        for prop in properties:
            condo_key = normalize_name(prop.condo_name)
            units_by_condo.setdefault(condo_key, {})[normalize_name(prop.unit_number)] = prop
        matcher = CondoMatcher((p.condo_name for p in properties), score_cutoff=self.score_cutoff)
        logger.info(f"Loaded {len(properties)} properties in {len(units_by_condo)} condominiums")
        return units_by_condo, matcher

    async def run(self, content: str, dry_run: bool = False) -> ImportSummary:
        summary = ImportSummary(dry_run=dry_run)
        units_by_condo, matcher = await self._load_units()

        for row in parse_units_tsv(content):
            summary.processed += 1

            condo_key = matcher.match(row.condominium)
            prop = match_unit(units_by_condo.get(condo_key, {}), row.unit) if condo_key else None
            if prop is None:
                summary.not_found += 1
                summary.missing.append(f"{row.condominium} / {row.unit}")
                continue

            changes = unit_changes(row, prop)
            if not changes:
                summary.unchanged += 1
                continue

            if dry_run:
                logger.info(f"[dry-run] line {row.line_number}: {prop.display_title} <- {changes}")
                summary.updated += 1
                continue

            label = prop.display_title
            try:
                await self.property_repo.update(prop.id, changes)
                summary.updated += 1
            except Exception as e:
                summary.errors += 1
                logger.error(f"Line {row.line_number}: failed to update {label}: {e}")
                # The rollback expired every loaded property
                units_by_condo, matcher = await self._load_units()

        logger.info(f"Unit import finished: {summary.as_dict()}")
        return summary


class ZoneUpdater:
    """Set each property's zone from its condominium name."""

    def __init__(self, db_session: AsyncSession):
        self.db = db_session
        self.property_repo = PropertyRepository(db_session)

    async def run(self, mapping: Optional[Mapping[str, str]] = None, dry_run: bool = False) -> ZoneSummary:
        mapping = DEFAULT_ZONE_MAPPING if mapping is None else mapping
        summary = ZoneSummary(dry_run=dry_run)
        unmapped = set()

        for prop in await self.property_repo.get_all_for_import():
            zone = zone_for(prop.condo_name, mapping)
            if zone is None:
                unmapped.add(prop.condo_name)
                continue
            if prop.zone == zone:
                summary.already_correct += 1
                continue

            if not dry_run:
                await self.property_repo.update(prop.id, {"zone": zone})
            summary.updated += 1
            logger.info(f"{'[dry-run] ' if dry_run else ''}{prop.display_title} -> zone '{zone}'")

        summary.unmapped = sorted(unmapped)
        logger.info(
            f"Zone update finished: updated={summary.updated} already_correct={summary.already_correct} "
            f"unmapped={len(summary.unmapped)}"
        )
        return summary

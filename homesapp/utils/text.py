"""
Text normalization helpers shared by slugs, lead duplicate detection and the import tools.
"""

import re
import unicodedata
from typing import Optional

_COMBINING_MARKS = re.compile("[\u0300-\u036f]")

# Key produced for a lead with no name and no phone; it never counts as a duplicate
EMPTY_DUPLICATE_KEY = "||"


def strip_accents(value: str) -> str:
    return _COMBINING_MARKS.sub("", unicodedata.normalize("NFD", value))


def generate_slug(text: str) -> str:
    """
    Build a URL slug: lower-cased, accents removed, only letters, digits and dashes.

    >>> generate_slug("Aldea Zamá  Torre_2")
    'aldea-zama-torre2'
    """
    slug = strip_accents((text or "").lower())
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"[\s_]+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-").strip()


def generate_property_slug(condo_name: str, unit_number: str) -> str:
    return f"{generate_slug(condo_name)}-{generate_slug(unit_number)}"


def normalize_name(name: Optional[str]) -> str:
    """Lower-case, remove accents and collapse whitespace."""
    if not name:
        return ""
    return re.sub(r"\s+", " ", strip_accents(name.lower()).strip())


def last4_digits(phone: Optional[str]) -> str:
    """Last four digits of a phone number in any format, or all digits when shorter."""
    if not phone:
        return ""
    digits = re.sub(r"\D", "", phone)
    return digits[-4:]


def duplicate_key(first_name: Optional[str], last_name: Optional[str], phone: Optional[str]) -> str:
    return f"{normalize_name(first_name)}|{normalize_name(last_name)}|{last4_digits(phone)}"


def duplicate_keys_match(key1: str, key2: str) -> bool:
    return key1 == key2 and key1 != EMPTY_DUPLICATE_KEY

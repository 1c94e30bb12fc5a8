"""
Closed code sets written to the silver layer.

Every enum carries an explicit NOT_AVAILABLE member so that unmapped source
codes resolve to "N/A" instead of leaking raw values into silver.
"""
from enum import Enum
from typing import Any, Optional

import pandas as pd

NOT_AVAILABLE = "N/A"


def normalize_code(value: Any) -> Optional[str]:
    """Trim and upper-case a raw code; None for nulls."""
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    return str(value).strip().upper()


class MaritalStatus(Enum):
    SINGLE = "Single"
    MARRIED = "Married"
    NOT_AVAILABLE = NOT_AVAILABLE

    @classmethod
    def from_code(cls, value: Any) -> "MaritalStatus":
        return {
            "S": cls.SINGLE,
            "M": cls.MARRIED,
        }.get(normalize_code(value), cls.NOT_AVAILABLE)


class Gender(Enum):
    FEMALE = "Female"
    MALE = "Male"
    NOT_AVAILABLE = NOT_AVAILABLE

    @classmethod
    def from_code(cls, value: Any) -> "Gender":
        """Map a single-letter CRM gender code (F/M)."""
        return {
            "F": cls.FEMALE,
            "M": cls.MALE,
        }.get(normalize_code(value), cls.NOT_AVAILABLE)

    @classmethod
    def from_text(cls, value: Any) -> "Gender":
        """Map an ERP gender value, which may be a code or a full word."""
        return {
            "F": cls.FEMALE,
            "FEMALE": cls.FEMALE,
            "M": cls.MALE,
            "MALE": cls.MALE,
        }.get(normalize_code(value), cls.NOT_AVAILABLE)


class ProductLine(Enum):
    MOUNTAIN = "Mountain"
    ROAD = "Road"
    OTHER_SALES = "Other Sales"
    TOURING = "Touring"
    NOT_AVAILABLE = NOT_AVAILABLE

    @classmethod
    def from_code(cls, value: Any) -> "ProductLine":
        return {
            "M": cls.MOUNTAIN,
            "R": cls.ROAD,
            "S": cls.OTHER_SALES,
            "T": cls.TOURING,
        }.get(normalize_code(value), cls.NOT_AVAILABLE)


class Country(Enum):
    """
    Country names with a known source code.

    Unknown countries are passed through trimmed, so this enum is not
    exhaustive: standardize_country() returns a plain string.
    """

    GERMANY = "Germany"
    UNITED_STATES = "United States"
    NOT_AVAILABLE = NOT_AVAILABLE


def standardize_country(value: Any) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return Country.NOT_AVAILABLE.value
    trimmed = str(value).strip()
    # DE is matched case-sensitively, US/USA are not
    if trimmed == "DE":
        return Country.GERMANY.value
    if trimmed.upper() in ("US", "USA"):
        return Country.UNITED_STATES.value
    if trimmed == "":
        return Country.NOT_AVAILABLE.value
    return trimmed

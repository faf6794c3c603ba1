"""Household member as seen by the safety checks."""
from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

from medsafety.services.text_normalizer import (
    clean_text,
    normalize_terms,
    parse_list_field,
)

_DATE_FORMATS = ("%Y-%m-%d", "%d.%m.%Y", "%d/%m/%Y", "%Y/%m/%d")


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = clean_text(value)
    if text is None:
        return None
    # ISO timestamps: keep the date part
    text = text.split("T", 1)[0].strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_metric(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = clean_text(value)
        if text is None:
            return None
        match = re.search(r"\d+(?:[.,]\d+)?", text)
        if not match:
            return None
        number = float(match.group(0).replace(",", "."))
    return number if number > 0 else None


def _unique(items: list[str]) -> list[str]:
    """Drop case-insensitive repeats, keeping the first spelling."""
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.lower()
        if key not in seen:
            seen.add(key)
            out.append(item)
    return out


class Person(BaseModel):
    """
    One household member.

    Built from raw records whose keys may be camelCase or snake_case.
    Unusable characteristics (bad dates, non-positive weights) become
    ``None`` and the checks that need them are skipped.
    """

    id: Optional[str] = None
    name: str
    allergy_terms: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("allergy_terms", "allergyTerms", "allergies"),
        description="Lower-cased allergy terms, placeholders removed",
    )
    birth_date: Optional[date] = Field(
        default=None,
        validation_alias=AliasChoices("birth_date", "birthDate", "birthdate"),
    )
    weight_kg: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("weight_kg", "weightKg", "weight"),
    )
    height_cm: Optional[float] = Field(
        default=None,
        validation_alias=AliasChoices("height_cm", "heightCm", "height"),
    )
    chronic_diseases: list[str] = Field(default_factory=list)
    medical_conditions: list[str] = Field(default_factory=list)
    organ_conditions: list[str] = Field(default_factory=list)

    model_config = {
        "frozen": True,
        "populate_by_name": True,
        "alias_generator": to_camel,
    }

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_text(v)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator("allergy_terms", mode="before")
    @classmethod
    def _normalize_allergies(cls, v: Any) -> list[str]:
        return normalize_terms(parse_list_field(v))

    @field_validator("birth_date", mode="before")
    @classmethod
    def _coerce_birth_date(cls, v: Any) -> Optional[date]:
        return _parse_date(v)

    @field_validator("weight_kg", "height_cm", mode="before")
    @classmethod
    def _coerce_metric(cls, v: Any) -> Optional[float]:
        return _parse_metric(v)

    @field_validator("chronic_diseases", "medical_conditions", "organ_conditions", mode="before")
    @classmethod
    def _normalize_conditions(cls, v: Any) -> list[str]:
        return _unique(parse_list_field(v))

    @property
    def all_conditions(self) -> list[str]:
        """Medical, chronic and organ conditions in one list."""
        return [*self.medical_conditions, *self.chronic_diseases, *self.organ_conditions]

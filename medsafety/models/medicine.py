"""Medicine record and the structured interaction data attached to it."""
from __future__ import annotations

import logging
from typing import Any, Optional, TypeVar

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel

from medsafety.models.findings import Severity
from medsafety.services.pseudo_json import try_parse
from medsafety.services.text_normalizer import (
    clean_text,
    is_placeholder,
    parse_list_field,
)

logger = logging.getLogger(__name__)

_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "alias_generator": to_camel,
}


def _structured(value: Any) -> Any:
    """Parse JSON / pseudo-JSON text; other values pass through."""
    if isinstance(value, str):
        return try_parse(value)
    return value


def _records(value: Any, text_key: str) -> list[dict]:
    """
    Coerce a raw detail field into a list of dicts.

    Bare strings become ``{text_key: <string>}``; placeholders and
    unparseable text yield nothing.
    """
    parsed = value
    if isinstance(value, str):
        if is_placeholder(value):
            return []
        parsed = try_parse(value)
        if parsed is None:
            return [{text_key: item} for item in parse_list_field(value)]
    if isinstance(parsed, dict):
        parsed = [parsed]
    if not isinstance(parsed, (list, tuple)):
        return []

    records: list[dict] = []
    for item in parsed:
        if isinstance(item, BaseModel):
            records.append(item.model_dump())
        elif isinstance(item, dict):
            records.append(item)
        elif isinstance(item, str) and not is_placeholder(item):
            records.append({text_key: item.strip()})
    return records


DetailT = TypeVar("DetailT", bound="_Detail")


def _validated(records: list[dict], model: type[DetailT]) -> list[DetailT]:
    """Validate each record on its own; malformed records are dropped."""
    out: list[DetailT] = []
    for record in records:
        try:
            out.append(model.model_validate(record))
        except ValidationError as exc:
            logger.debug("Dropped malformed %s record %r: %s", model.__name__, record, exc)
    return out


def _text(v: Any) -> Optional[str]:
    """Cleaned text for string values only; anything else is absent."""
    return clean_text(v) if isinstance(v, str) else None


class _Detail(BaseModel):
    """Base for the nested records: text fields cleaned, severity coerced."""

    model_config = _CONFIG

    @field_validator("severity", mode="before", check_fields=False)
    @classmethod
    def _coerce_severity(cls, v: Any) -> Severity:
        return Severity.coerce(v)


class ForbiddenFood(_Detail):
    food: str
    reason: Optional[str] = None
    severity: Severity = Severity.MEDIUM
    consequences: Optional[str] = None

    @field_validator("food", "reason", "consequences", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> Optional[str]:
        return _text(v)


class FoodInteraction(_Detail):
    food_category: str = ""
    foods: list[str] = Field(default_factory=list)
    interaction: Optional[str] = None
    severity: Severity = Severity.MEDIUM
    recommendation: Optional[str] = None

    @field_validator("food_category", mode="before")
    @classmethod
    def _clean_category(cls, v: Any) -> str:
        return _text(v) or ""

    @field_validator("foods", mode="before")
    @classmethod
    def _normalize_foods(cls, v: Any) -> list[str]:
        return parse_list_field(v)

    @field_validator("interaction", "recommendation", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> Optional[str]:
        return _text(v)


class DangerousInteraction(_Detail):
    medicine_name: str
    severity: Severity = Severity.HIGH
    description: Optional[str] = None

    @field_validator("medicine_name", "description", mode="before")
    @classmethod
    def _clean(cls, v: Any) -> Optional[str]:
        return _text(v)


class Medicine(BaseModel):
    """
    One medicine, either the one being checked or an inventory entry.

    Every list field accepts JSON text, pseudo-JSON, ``[a, b]``, delimited
    text, placeholders or Python lists.  Single-value text fields holding a
    placeholder become ``None``.
    """

    id: Optional[str] = None
    name: str
    active_ingredients: list[str] = Field(default_factory=list)
    inactive_ingredients: list[str] = Field(default_factory=list)
    incompatible_medicines: list[str] = Field(default_factory=list)
    compatible_medicines: list[str] = Field(default_factory=list)
    forbidden_foods: list[str] = Field(default_factory=list)

    alcohol_interaction: Optional[str] = None
    caffeine_interaction: Optional[str] = None
    grapefruit_interaction: Optional[str] = None
    dairy_interaction: Optional[str] = None
    iron_rich_foods_interaction: Optional[str] = None

    standard_dose: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("standard_dose", "standardDose", "dose"),
    )
    storage_conditions: Optional[str] = None

    forbidden_foods_detailed: list[ForbiddenFood] = Field(default_factory=list)
    food_interactions: list[FoodInteraction] = Field(default_factory=list)
    dangerous_interactions: list[DangerousInteraction] = Field(default_factory=list)
    contraindications_by_condition: dict[str, str] = Field(
        default_factory=dict,
        validation_alias=AliasChoices(
            "contraindications_by_condition",
            "contraindicationsByCondition",
            "contraindications",
        ),
    )

    model_config = _CONFIG

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_text(cls, v: Any) -> Optional[str]:
        return None if v is None else clean_text(v)

    @field_validator("name", mode="before")
    @classmethod
    def _strip_name(cls, v: Any) -> str:
        return "" if v is None else str(v).strip()

    @field_validator(
        "active_ingredients",
        "inactive_ingredients",
        "incompatible_medicines",
        "compatible_medicines",
        "forbidden_foods",
        mode="before",
    )
    @classmethod
    def _normalize_lists(cls, v: Any) -> list[str]:
        return parse_list_field(v)

    @field_validator(
        "alcohol_interaction",
        "caffeine_interaction",
        "grapefruit_interaction",
        "dairy_interaction",
        "iron_rich_foods_interaction",
        "standard_dose",
        "storage_conditions",
        mode="before",
    )
    @classmethod
    def _clean_text_fields(cls, v: Any) -> Optional[str]:
        return clean_text(v)

    @field_validator("forbidden_foods_detailed", mode="before")
    @classmethod
    def _forbidden_food_records(cls, v: Any) -> list[ForbiddenFood]:
        return _validated(_records(v, "food"), ForbiddenFood)

    @field_validator("food_interactions", mode="before")
    @classmethod
    def _food_interaction_records(cls, v: Any) -> list[FoodInteraction]:
        return _validated(_records(v, "foodCategory"), FoodInteraction)

    @field_validator("dangerous_interactions", mode="before")
    @classmethod
    def _dangerous_interaction_records(cls, v: Any) -> list[DangerousInteraction]:
        return _validated(_records(v, "medicineName"), DangerousInteraction)

    @field_validator("contraindications_by_condition", mode="before")
    @classmethod
    def _contraindication_map(cls, v: Any) -> dict[str, str]:
        parsed = _structured(v)
        if not isinstance(parsed, dict):
            return {}
        out: dict[str, str] = {}
        for key, text in parsed.items():
            cleaned = clean_text(text) if isinstance(text, str) else None
            if cleaned is not None:
                out[str(key)] = cleaned
        return out

    @property
    def ingredients(self) -> list[str]:
        """Active then inactive ingredients."""
        return [*self.active_ingredients, *self.inactive_ingredients]

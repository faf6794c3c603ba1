"""Severity scale and the result records produced by the safety checks."""
from __future__ import annotations

from enum import Enum
from typing import Any, Iterable, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """
    Clinical severity of a finding.

    The scale is totally ordered:
    ``CRITICAL > HIGH > MEDIUM > LOW > NONE``.
    """

    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _RANK[self]

    @classmethod
    def coerce(cls, value: Any, default: Optional["Severity"] = None) -> "Severity":
        """
        Map data-supplied severity text onto the scale.

        Unknown or missing values fall back to *default* (``MEDIUM`` when
        not given).
        """
        fallback = default if default is not None else cls.MEDIUM
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return fallback
        key = value.strip().lower()
        return _ALIASES.get(key, fallback)


_RANK = {
    Severity.NONE: 0,
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}

_ALIASES = {
    "critical": Severity.CRITICAL,
    "критический": Severity.CRITICAL,
    "критично": Severity.CRITICAL,
    "severe": Severity.HIGH,
    "high": Severity.HIGH,
    "высокий": Severity.HIGH,
    "medium": Severity.MEDIUM,
    "moderate": Severity.MEDIUM,
    "средний": Severity.MEDIUM,
    "low": Severity.LOW,
    "mild": Severity.LOW,
    "низкий": Severity.LOW,
    "none": Severity.NONE,
}


def max_severity(severities: Iterable[Severity]) -> Severity:
    """Highest severity in *severities*; ``NONE`` for an empty iterable."""
    return max(severities, key=lambda s: s.rank, default=Severity.NONE)


class FindingKind(str, Enum):
    DRUG = "drug"
    FOOD = "food"
    CONTRAINDICATION = "contraindication"


# ---------------------------------------------------------------------------
# Matches and findings
# ---------------------------------------------------------------------------

class AllergyMatch(BaseModel):
    substance: str = Field(description="Matched substance, display-cased")
    person_name: str
    severity: Severity

    model_config = {"frozen": True}


class FoodAllergyMatch(BaseModel):
    food: str = Field(description="Matched food, display-cased")
    person_name: str
    severity: Severity
    reason: str = "allergy"

    model_config = {"frozen": True}


class InteractionFinding(BaseModel):
    counterpart: str = Field(description="Other medicine, food or condition involved")
    reason: str
    severity: Severity
    kind: FindingKind = FindingKind.DRUG

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Per-check results
# ---------------------------------------------------------------------------

class AllergyCheckResult(BaseModel):
    has_allergies: bool = False
    severity: Severity = Severity.NONE
    matches: list[AllergyMatch] = Field(default_factory=list)
    all_ingredients: list[str] = Field(
        default_factory=list,
        description="Active then inactive ingredients, display-cased",
    )

    model_config = {"frozen": True}


class DrugInteractionResult(BaseModel):
    incompatible: list[InteractionFinding] = Field(default_factory=list)
    warnings: list[InteractionFinding] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def severity(self) -> Severity:
        if self.incompatible:
            return Severity.CRITICAL
        return max_severity(w.severity for w in self.warnings)

    @property
    def findings(self) -> list[InteractionFinding]:
        return [*self.incompatible, *self.warnings]


class FoodInteractionResult(BaseModel):
    matches: list[FoodAllergyMatch] = Field(default_factory=list)
    warnings: list[InteractionFinding] = Field(default_factory=list)
    severity: Severity = Severity.NONE

    model_config = {"frozen": True}


class ContraindicationResult(BaseModel):
    findings: list[InteractionFinding] = Field(default_factory=list)
    severity: Severity = Severity.NONE

    model_config = {"frozen": True}


class DosageResult(BaseModel):
    recommended_dose: str
    adjustment_factor: float = 1.0
    explanations: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class SafetyReport(BaseModel):
    """
    Aggregated outcome of every check run for one medicine.

    ``findings`` keeps drug, food and contraindication findings in that
    order; the same counterpart may appear under more than one kind.
    """

    medicine_name: Optional[str] = None
    allergy_matches: list[AllergyMatch] = Field(default_factory=list)
    food_allergy_matches: list[FoodAllergyMatch] = Field(default_factory=list)
    findings: list[InteractionFinding] = Field(default_factory=list)
    overall_severity: Severity = Severity.NONE
    all_ingredients: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}

    @property
    def is_safe(self) -> bool:
        return self.overall_severity in (Severity.NONE, Severity.LOW)

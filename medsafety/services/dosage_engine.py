"""Per-person dose adjustment of a medicine's standard dose.

Factors are applied in a fixed order, each one logging an explanation:

  1. age        <6 ×0.3, 6–8 ×0.5, 9–11 ×0.7, ≥65 ×0.8
  2. BMI        <18.5 ×0.9, >30 warning only
  3. liver      ×0.7   (critical warning)
  4. kidney     ×0.75  (critical warning)
  5. diabetes   warning only
  6. pregnancy  ×0.8   (critical warning)

When the cumulative factor is not 1.0 the first ``(number, unit)`` pair of
the dose text is scaled in place.  Dose text without a recognisable pair is
returned unchanged with a warning carrying the adjustment percentage.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import date
from typing import Optional

from medsafety.models.findings import DosageResult
from medsafety.models.person import Person
from medsafety.services.text_normalizer import clean_text

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Compiled regex patterns
# ---------------------------------------------------------------------------

# First number + unit in free dose text, e.g. "400 mg", "0,5 г", "2 tablets".
# Units must end at a word boundary: "2 glasses" has no unit.
# Comma-grouped thousands ("1,000 mg") win over a decimal comma ("2,5 мл").
_DOSE_RE = re.compile(
    r"(?P<value>[1-9]\d{0,2}(?:,\d{3})+|\d+(?:[.,]\d+)?)\s*"
    r"(?P<unit>mcg|мкг|mg|мг|ml|мл|g|г|"
    r"tablets?|таблет\w*|табл\w*|capsules?|капсул\w*|капс\w*)"
    r"(?!\w)",
    re.IGNORECASE,
)

_GROUPED_RE = re.compile(r"[1-9]\d{0,2}(?:,\d{3})+")

# ---------------------------------------------------------------------------
# Factor tables
# ---------------------------------------------------------------------------

# (upper age bound, exclusive; factor)
PEDIATRIC_BANDS: tuple[tuple[int, float], ...] = ((6, 0.3), (9, 0.5), (12, 0.7))
ELDERLY_AGE = 65
ELDERLY_FACTOR = 0.8

UNDERWEIGHT_BMI = 18.5
UNDERWEIGHT_FACTOR = 0.9
OBESE_BMI = 30.0

LIVER_FACTOR = 0.7
KIDNEY_FACTOR = 0.75
PREGNANCY_FACTOR = 0.8

LIVER_KEYWORDS = ("liver", "hepatitis", "hepatic", "печень", "печен", "гепатит")
KIDNEY_KEYWORDS = ("kidney", "renal", "почки", "почк", "почечн")
DIABETES_KEYWORDS = ("diabetes", "диабет")
PREGNANCY_KEYWORDS = ("pregnan", "беремен")

NO_DOSE_TEXT = "consult a physician"
NO_DOSE_EXPLANATION = "no standard dose provided"
NO_DOSE_WARNING = "clinical consultation required"


# ---------------------------------------------------------------------------
# Person characteristics
# ---------------------------------------------------------------------------

def _round1(value: float) -> float:
    """Round half up to one decimal."""
    return math.floor(value * 10 + 0.5) / 10


def calculate_age(birth_date: Optional[date], today: Optional[date] = None) -> Optional[int]:
    """Whole years elapsed since *birth_date*; ``None`` if unknown or in the future."""
    if birth_date is None:
        return None
    today = today or date.today()
    age = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age if age >= 0 else None


def calculate_bmi(weight_kg: Optional[float], height_cm: Optional[float]) -> Optional[float]:
    """Body-mass index rounded to one decimal; ``None`` if either metric is missing."""
    if not weight_kg or not height_cm:
        return None
    height_m = height_cm / 100
    return _round1(weight_kg / (height_m * height_m))


def _mentions(conditions: list[str], keywords: tuple[str, ...]) -> bool:
    return any(k in c.lower() for c in conditions for k in keywords)


# ---------------------------------------------------------------------------
# Dose text
# ---------------------------------------------------------------------------

def _format_number(value: float, decimal_comma: bool) -> str:
    text = str(int(value)) if value.is_integer() else f"{value:.1f}"
    return text.replace(".", ",") if decimal_comma else text


def scale_dose_text(dose: str, factor: float) -> Optional[str]:
    """
    Scale the first ``(number, unit)`` pair in *dose* by *factor*.

    Returns the rebuilt text, or ``None`` when no pair is found.

        scale_dose_text("400 mg every 8 hours", 0.3) -> "120 mg every 8 hours"
    """
    match = _DOSE_RE.search(dose)
    if not match:
        return None
    raw_value = match.group("value")
    if _GROUPED_RE.fullmatch(raw_value):
        value = float(raw_value.replace(",", ""))
        decimal_comma = False
    else:
        value = float(raw_value.replace(",", "."))
        decimal_comma = "," in raw_value
    scaled = _format_number(_round1(value * factor), decimal_comma=decimal_comma)
    rebuilt = f"{scaled} {match.group('unit')}"
    return dose[:match.start()] + rebuilt + dose[match.end():]


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def calculate_dosage(
    standard_dose: Optional[str],
    person: Person,
    *,
    today: Optional[date] = None,
) -> DosageResult:
    """
    Recommend a dose of *standard_dose* for *person*.

    Parameters
    ----------
    standard_dose:
        Free dose text, e.g. ``"400 mg"`` or ``"1 tablet twice a day"``.
    person:
        The person who will take the medicine.
    today:
        Reference date for the age computation; defaults to the current date.

    Returns
    -------
    DosageResult
        ``adjustment_factor`` is the product of the applied factors and is
        never greater than 1.0.
    """
    if person is None:
        raise ValueError("person must not be None")
    if not isinstance(person, Person):
        raise TypeError(f"expected Person, got {type(person).__name__}")

    dose = clean_text(standard_dose)
    if dose is None:
        return DosageResult(
            recommended_dose=NO_DOSE_TEXT,
            explanations=[NO_DOSE_EXPLANATION],
            warnings=[NO_DOSE_WARNING],
        )

    factor = 1.0
    explanations: list[str] = []
    warnings: list[str] = []

    # 1 – age
    age = calculate_age(person.birth_date, today)
    if age is not None:
        if age < PEDIATRIC_BANDS[-1][0]:
            child_factor = next(f for bound, f in PEDIATRIC_BANDS if age < bound)
            factor *= child_factor
            explanations.append(f"Age {age}: dose reduced to {round(child_factor * 100)}%")
            warnings.append("Pediatric dose: consult a pediatrician before use")
        elif age >= ELDERLY_AGE:
            factor *= ELDERLY_FACTOR
            explanations.append(f"Age {age}: dose reduced to {round(ELDERLY_FACTOR * 100)}%")
            warnings.append("Elderly patient: dose adjustment may be required")
        else:
            explanations.append(f"Age {age}: standard dose")

    # 2 – body-mass index
    bmi = calculate_bmi(person.weight_kg, person.height_cm)
    if bmi is not None:
        if bmi < UNDERWEIGHT_BMI:
            factor *= UNDERWEIGHT_FACTOR
            explanations.append(
                f"BMI {bmi} (underweight): dose reduced to {round(UNDERWEIGHT_FACTOR * 100)}%"
            )
        elif bmi > OBESE_BMI:
            explanations.append(f"BMI {bmi} (obesity): dose adjustment may be required")
            warnings.append("Obesity: some medicines require dose adjustment")
        else:
            explanations.append(f"BMI {bmi} (normal weight): standard dose")

    conditions = person.all_conditions

    # 3 – liver
    if _mentions(conditions, LIVER_KEYWORDS):
        factor *= LIVER_FACTOR
        explanations.append(f"Liver condition: dose reduced to {round(LIVER_FACTOR * 100)}%")
        warnings.append("Critical: liver condition requires a reduced dose, consult a physician")

    # 4 – kidney
    if _mentions(conditions, KIDNEY_KEYWORDS):
        factor *= KIDNEY_FACTOR
        explanations.append(f"Kidney condition: dose reduced to {round(KIDNEY_FACTOR * 100)}%")
        warnings.append("Critical: kidney condition requires a reduced dose, consult a physician")

    # 5 – diabetes
    if _mentions(conditions, DIABETES_KEYWORDS):
        explanations.append("Diabetes: extra caution required")
        warnings.append("Diabetes: some medicines require extra caution")

    # 6 – pregnancy
    if _mentions(conditions, PREGNANCY_KEYWORDS):
        factor *= PREGNANCY_FACTOR
        explanations.append(f"Pregnancy: dose reduced to {round(PREGNANCY_FACTOR * 100)}%")
        warnings.append(
            "Critical: many medicines are contraindicated or need a reduced dose "
            "during pregnancy, consult a physician"
        )

    recommended = dose
    adjusted = not math.isclose(factor, 1.0)
    if adjusted:
        percent = round(factor * 100)
        scaled = scale_dose_text(dose, factor)
        if scaled is not None:
            recommended = scaled
            explanations.append(f"Adjusted dose: {scaled} (factor {percent}%)")
        else:
            warnings.append(
                f"Dose could not be recalculated: ~{percent}% adjustment recommended, "
                "consult a physician"
            )
        if not warnings:
            warnings.append(
                "Dose adjusted to personal characteristics; "
                "contact a physician if side effects appear"
            )

    logger.debug(
        "calculate_dosage: person=%r dose=%r factor=%.4f recommended=%r",
        person.name, dose, factor, recommended,
    )
    return DosageResult(
        recommended_dose=recommended,
        adjustment_factor=round(factor, 4),
        explanations=explanations,
        warnings=warnings,
    )

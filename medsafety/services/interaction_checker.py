"""Drug-drug, drug-food and drug-condition interaction checks.

Three independent checks, each returning its own result record:

    check_drug_interactions(medicine, inventory)  -> DrugInteractionResult
    check_food_interactions(medicine, people)     -> FoodInteractionResult
    check_contraindications(medicine, person)     -> ContraindicationResult

Names are compared lower-cased, in both containment directions, so that
"Warfarin" in a list matches an inventory entry called "Warfarin 5 mg".
"""
from __future__ import annotations

import logging
from typing import Iterable, Optional

from medsafety.models.findings import (
    ContraindicationResult,
    DrugInteractionResult,
    FindingKind,
    FoodAllergyMatch,
    FoodInteractionResult,
    InteractionFinding,
    Severity,
    max_severity,
)
from medsafety.models.medicine import Medicine
from medsafety.models.person import Person
from medsafety.services.substance_matcher import check_food_allergies
from medsafety.services.text_normalizer import display_case

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Fixed tiers for the single-value food interaction fields
# ---------------------------------------------------------------------------

# (Medicine attribute, counterpart label, severity), in reporting order
NAMED_FOOD_INTERACTIONS: tuple[tuple[str, str, Severity], ...] = (
    ("grapefruit_interaction", "Grapefruit", Severity.HIGH),
    ("dairy_interaction", "Dairy products", Severity.MEDIUM),
    ("iron_rich_foods_interaction", "Iron-rich foods", Severity.MEDIUM),
    ("alcohol_interaction", "Alcohol", Severity.HIGH),
    ("caffeine_interaction", "Caffeine", Severity.MEDIUM),
)

# ---------------------------------------------------------------------------
# Condition keywords for contraindications
# ---------------------------------------------------------------------------

# Condition key -> (display label, keywords found in a person's conditions)
CONDITION_KEYWORDS: dict[str, tuple[str, tuple[str, ...]]] = {
    "pregnancy": ("Pregnancy", ("pregnan", "беремен")),
    "hypertension": (
        "Hypertension",
        ("hypertension", "high blood pressure", "гипертони", "высокое давление", "повышенное давление"),
    ),
    "asthma": ("Asthma", ("asthma", "астма")),
    "diabetes": ("Diabetes", ("diabetes", "диабет")),
    "kidney_disease": ("Kidney disease", ("kidney", "renal", "почк", "почечн")),
    "liver_disease": ("Liver disease", ("liver", "hepat", "печен", "печён")),
    "heart_disease": ("Heart disease", ("heart", "cardiac", "сердц", "сердеч")),
}

# Evaluated in this order; the first tier whose word appears wins
_FORBIDDING_WORDS = (
    "запрещено", "противопоказано", "нельзя",
    "forbidden", "contraindicated", "not allowed", "prohibited",
)
# Negated allowing words read as forbidding: "unsafe" contains "safe"
_NEGATED_ALLOWING_WORDS = ("небезопасно", "не разрешено", "unsafe", "not safe", "not permitted")
_CAUTION_WORDS = ("осторожно", "с осторожностью", "caution", "careful")
_ALLOWING_WORDS = ("разрешено", "можно", "allowed", "safe", "permitted")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def names_match(a: Optional[str], b: Optional[str]) -> bool:
    """Bidirectional containment on lower-cased names; empty never matches."""
    x = (a or "").strip().lower()
    y = (b or "").strip().lower()
    if not x or not y:
        return False
    return x in y or y in x


def _is_same_medicine(a: Medicine, b: Medicine) -> bool:
    if a.id is not None and b.id is not None:
        return a.id == b.id
    return a.name.strip().lower() == b.name.strip().lower()


def _require_medicine(medicine: Medicine) -> Medicine:
    if medicine is None:
        raise ValueError("medicine must not be None")
    if not isinstance(medicine, Medicine):
        raise TypeError(f"expected Medicine, got {type(medicine).__name__}")
    return medicine


def _condition_key(key: str) -> str:
    """``kidneyDisease`` / ``kidney_disease`` -> ``kidneydisease``."""
    return key.replace("_", "").replace("-", "").replace(" ", "").lower()


# ---------------------------------------------------------------------------
# Drug-drug
# ---------------------------------------------------------------------------

def check_drug_interactions(medicine: Medicine, inventory: Iterable[Medicine]) -> DrugInteractionResult:
    """
    Check *medicine* against the medicines already in the household.

    Both directions are evaluated:

    (a) names in ``medicine.incompatible_medicines`` against each inventory
        entry's name
    (b) each inventory entry's ``incompatible_medicines`` against
        ``medicine.name``

    An inventory entry that is the checked medicine itself (same id, or
    same name when ids are missing) is skipped.  Each conflicting entry is
    reported once, as CRITICAL.  ``dangerous_interactions`` of *medicine*
    are matched by name as well: critical ones are reported as
    incompatible, the rest as warnings with their own severity.
    """
    _require_medicine(medicine)
    if inventory is None:
        raise ValueError("inventory must be an iterable of Medicine, not None")

    others: list[Medicine] = []
    for entry in inventory:
        if not isinstance(entry, Medicine):
            raise TypeError(f"expected Medicine, got {type(entry).__name__}")
        if not _is_same_medicine(medicine, entry):
            others.append(entry)

    incompatible: list[InteractionFinding] = []
    warnings: list[InteractionFinding] = []
    reported: set[int] = set()

    for idx, other in enumerate(others):
        # 1 – our incompatibility list names the inventory entry
        if any(names_match(name, other.name) for name in medicine.incompatible_medicines):
            reason = f"Incompatible with {other.name}"
        # 2 – the inventory entry lists us as incompatible
        elif any(names_match(name, medicine.name) for name in other.incompatible_medicines):
            reason = f"{other.name} is incompatible with {medicine.name}"
        else:
            continue
        reported.add(idx)
        incompatible.append(InteractionFinding(
            counterpart=other.name,
            reason=reason,
            severity=Severity.CRITICAL,
            kind=FindingKind.DRUG,
        ))

    # 3 – structured dangerous-interaction data
    for danger in medicine.dangerous_interactions:
        for idx, other in enumerate(others):
            if not names_match(danger.medicine_name, other.name):
                continue
            reason = danger.description or f"Dangerous interaction with {other.name}"
            if danger.severity is Severity.CRITICAL:
                if idx in reported:
                    continue
                reported.add(idx)
                incompatible.append(InteractionFinding(
                    counterpart=other.name,
                    reason=reason,
                    severity=Severity.CRITICAL,
                    kind=FindingKind.DRUG,
                ))
            else:
                warnings.append(InteractionFinding(
                    counterpart=other.name,
                    reason=reason,
                    severity=danger.severity,
                    kind=FindingKind.DRUG,
                ))

    logger.debug(
        "check_drug_interactions: medicine=%r inventory=%d incompatible=%d warnings=%d",
        medicine.name, len(others), len(incompatible), len(warnings),
    )
    return DrugInteractionResult(incompatible=incompatible, warnings=warnings)


# ---------------------------------------------------------------------------
# Drug-food
# ---------------------------------------------------------------------------

def _food_names(medicine: Medicine) -> list[str]:
    foods = list(medicine.forbidden_foods)
    foods.extend(f.food for f in medicine.forbidden_foods_detailed)
    for category in medicine.food_interactions:
        foods.extend(category.foods)
    return foods


def _food_warnings(medicine: Medicine) -> list[InteractionFinding]:
    warnings: list[InteractionFinding] = []

    for item in medicine.forbidden_foods_detailed:
        warnings.append(InteractionFinding(
            counterpart=display_case(item.food),
            reason=item.reason or item.consequences or "Not to be combined with this medicine",
            severity=item.severity,
            kind=FindingKind.FOOD,
        ))

    for category in medicine.food_interactions:
        reason = category.interaction or category.recommendation or category.food_category
        counterparts = category.foods or ([category.food_category] if category.food_category else [])
        for food in counterparts:
            warnings.append(InteractionFinding(
                counterpart=display_case(food),
                reason=reason or "Interacts with this medicine",
                severity=category.severity,
                kind=FindingKind.FOOD,
            ))

    for attr, label, severity in NAMED_FOOD_INTERACTIONS:
        text = getattr(medicine, attr)
        if text is None:
            continue
        warnings.append(InteractionFinding(
            counterpart=label,
            reason=text,
            severity=severity,
            kind=FindingKind.FOOD,
        ))
    return warnings


def _food_severity(matches: list[FoodAllergyMatch], warnings: list[InteractionFinding]) -> Severity:
    if any(m.severity is Severity.CRITICAL for m in matches) or any(
        w.severity is Severity.CRITICAL for w in warnings
    ):
        return Severity.CRITICAL
    if any(m.severity is Severity.MEDIUM for m in matches) or any(
        w.severity is Severity.HIGH for w in warnings
    ):
        return Severity.MEDIUM
    if matches or warnings:
        return Severity.LOW
    return Severity.NONE


def check_food_interactions(medicine: Medicine, people: Iterable[Person]) -> FoodInteractionResult:
    """
    Check the foods associated with *medicine*.

    Every forbidden or interacting food is matched against the household's
    allergies.  Each detailed forbidden food, each food of an interaction
    category and each filled-in named interaction (grapefruit, dairy,
    iron-rich foods, alcohol, caffeine) produces a warning.

    Overall severity: CRITICAL if any critical match or warning; MEDIUM if
    any medium match or high warning; LOW if anything at all; else NONE.
    """
    _require_medicine(medicine)
    matches = check_food_allergies(_food_names(medicine), people)
    warnings = _food_warnings(medicine)
    severity = _food_severity(matches, warnings)

    logger.debug(
        "check_food_interactions: medicine=%r matches=%d warnings=%d severity=%s",
        medicine.name, len(matches), len(warnings), severity.value,
    )
    return FoodInteractionResult(matches=matches, warnings=warnings, severity=severity)


# ---------------------------------------------------------------------------
# Drug-condition
# ---------------------------------------------------------------------------

def person_condition_keys(person: Person) -> list[str]:
    """Condition keys (``pregnancy``, ``kidney_disease``, ...) that apply to *person*."""
    keys: list[str] = []
    for condition in person.all_conditions:
        lowered = condition.lower()
        for key, (_, keywords) in CONDITION_KEYWORDS.items():
            if key not in keys and any(k in lowered for k in keywords):
                keys.append(key)
    return keys


def classify_contraindication(text: str) -> Optional[Severity]:
    """
    Severity of a contraindication note.

    Forbidding wording (including negated allowing wording such as
    "unsafe") is CRITICAL, caution wording HIGH, allowing wording yields
    ``None`` (no finding) and anything else MEDIUM.
    """
    lowered = text.lower()
    if any(w in lowered for w in _FORBIDDING_WORDS + _NEGATED_ALLOWING_WORDS):
        return Severity.CRITICAL
    if any(w in lowered for w in _CAUTION_WORDS):
        return Severity.HIGH
    if any(w in lowered for w in _ALLOWING_WORDS):
        return None
    return Severity.MEDIUM


def check_contraindications(medicine: Medicine, person: Person) -> ContraindicationResult:
    """Match *person*'s conditions against the medicine's per-condition notes."""
    _require_medicine(medicine)
    if person is None:
        raise ValueError("person must not be None")
    if not isinstance(person, Person):
        raise TypeError(f"expected Person, got {type(person).__name__}")

    if not medicine.contraindications_by_condition:
        return ContraindicationResult()

    notes = {_condition_key(k): v for k, v in medicine.contraindications_by_condition.items()}
    findings: list[InteractionFinding] = []
    for key in person_condition_keys(person):
        text = notes.get(_condition_key(key))
        if not text:
            continue
        severity = classify_contraindication(text)
        if severity is None:
            continue
        label = CONDITION_KEYWORDS[key][0]
        findings.append(InteractionFinding(
            counterpart=label,
            reason=f"{person.name}: {text}",
            severity=severity,
            kind=FindingKind.CONTRAINDICATION,
        ))

    return ContraindicationResult(
        findings=findings,
        severity=max_severity(f.severity for f in findings),
    )

"""Aggregation of the individual checks into one safety report."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, Optional

from medsafety.models.findings import (
    AllergyCheckResult,
    ContraindicationResult,
    DrugInteractionResult,
    FoodInteractionResult,
    InteractionFinding,
    SafetyReport,
    max_severity,
)
from medsafety.models.medicine import Medicine
from medsafety.models.person import Person
from medsafety.services.interaction_checker import (
    check_contraindications,
    check_drug_interactions,
    check_food_interactions,
)
from medsafety.services.substance_matcher import check_allergies

logger = logging.getLogger(__name__)


def assemble(
    allergy: AllergyCheckResult,
    drug: DrugInteractionResult,
    food: FoodInteractionResult,
    contraindications: Optional[Iterable[ContraindicationResult]] = None,
    *,
    medicine_name: Optional[str] = None,
) -> SafetyReport:
    """
    Combine check results into a :class:`SafetyReport`.

    Findings are concatenated in the order drug incompatibilities, drug
    warnings, food warnings, contraindications.  Nothing is deduplicated
    across categories.  The overall severity is the highest severity among
    all inputs.
    """
    contraindications = list(contraindications or ())

    findings: list[InteractionFinding] = [*drug.incompatible, *drug.warnings, *food.warnings]
    for result in contraindications:
        findings.extend(result.findings)

    overall = max_severity([
        allergy.severity,
        drug.severity,
        food.severity,
        *(r.severity for r in contraindications),
    ])
    return SafetyReport(
        medicine_name=medicine_name,
        allergy_matches=allergy.matches,
        food_allergy_matches=food.matches,
        findings=findings,
        overall_severity=overall,
        all_ingredients=allergy.all_ingredients,
    )


def _household(
    medicine: Medicine,
    people: Iterable[Person],
    inventory: Iterable[Medicine],
) -> tuple[list[Person], list[Medicine]]:
    if medicine is None:
        raise ValueError("medicine must not be None")
    if people is None:
        raise ValueError("people must not be None")
    if inventory is None:
        raise ValueError("inventory must not be None")
    return list(people), list(inventory)


def check_medicine_safety(
    medicine: Medicine,
    people: Iterable[Person],
    inventory: Iterable[Medicine] = (),
    *,
    dedupe_allergies: Optional[bool] = None,
) -> SafetyReport:
    """Run every check for *medicine* against the household and assemble the report."""
    people, inventory = _household(medicine, people, inventory)

    allergy = check_allergies(medicine, people, dedupe=dedupe_allergies)
    drug = check_drug_interactions(medicine, inventory)
    food = check_food_interactions(medicine, people)
    contraindications = [check_contraindications(medicine, p) for p in people]

    report = assemble(allergy, drug, food, contraindications, medicine_name=medicine.name)
    logger.info(
        "Safety check %r: severity=%s allergies=%d findings=%d",
        medicine.name, report.overall_severity.value,
        len(report.allergy_matches), len(report.findings),
    )
    return report


async def check_medicine_safety_async(
    medicine: Medicine,
    people: Iterable[Person],
    inventory: Iterable[Medicine] = (),
    *,
    dedupe_allergies: Optional[bool] = None,
) -> SafetyReport:
    """
    Concurrent variant of :func:`check_medicine_safety`.

    The independent checks run in worker threads and are joined with
    ``asyncio.gather`` before assembly.
    """
    people, inventory = _household(medicine, people, inventory)

    allergy, drug, food, *contraindications = await asyncio.gather(
        asyncio.to_thread(check_allergies, medicine, people, dedupe=dedupe_allergies),
        asyncio.to_thread(check_drug_interactions, medicine, inventory),
        asyncio.to_thread(check_food_interactions, medicine, people),
        *(asyncio.to_thread(check_contraindications, medicine, p) for p in people),
    )
    return assemble(allergy, drug, food, contraindications, medicine_name=medicine.name)

"""Allergy matching of medicine ingredients and foods against a household.

Matching rule, applied to trimmed lower-cased text on both sides:
  - exact equality                       -> CRITICAL
  - either string contains the other     -> MEDIUM
  - anything else                        -> no match

Matching is lexical: "penicillin" does not match "amoxicillin" since
neither string contains the other.
"""
from __future__ import annotations

import logging
import re
from typing import Iterable, Optional

from medsafety.core import config
from medsafety.models.findings import (
    AllergyCheckResult,
    AllergyMatch,
    FoodAllergyMatch,
    Severity,
    max_severity,
)
from medsafety.models.medicine import Medicine
from medsafety.models.person import Person
from medsafety.services.text_normalizer import display_case

logger = logging.getLogger(__name__)

# Word boundaries for free text typed by the user
_WORD_SPLIT_RE = re.compile(r"[\s,\-.]+")
_MIN_WORD_LEN = 2


def match_substance(substance: str, term: str) -> Optional[Severity]:
    """
    Compare one substance with one allergy term.

    Returns ``Severity.CRITICAL`` for an exact match, ``Severity.MEDIUM`` for
    a containment match in either direction, ``None`` otherwise.  Empty
    inputs never match.
    """
    a = (substance or "").strip().lower()
    b = (term or "").strip().lower()
    if not a or not b:
        return None
    if a == b:
        return Severity.CRITICAL
    if a in b or b in a:
        return Severity.MEDIUM
    return None


def _require_people(people: Iterable[Person]) -> list[Person]:
    if people is None:
        raise ValueError("people must be an iterable of Person, not None")
    people = list(people)
    for person in people:
        if not isinstance(person, Person):
            raise TypeError(f"expected Person, got {type(person).__name__}")
    return people


def _collapse(matches: list, key) -> list:
    """Keep one match per key: the most severe, at its first position."""
    best: dict = {}
    order: list = []
    for match in matches:
        k = key(match)
        if k not in best:
            order.append(k)
            best[k] = match
        elif match.severity.rank > best[k].severity.rank:
            best[k] = match
    return [best[k] for k in order]


def check_allergies(
    medicine: Medicine,
    people: Iterable[Person],
    *,
    dedupe: Optional[bool] = None,
) -> AllergyCheckResult:
    """
    Check every ingredient of *medicine* against every person's allergies.

    Parameters
    ----------
    medicine:
        Medicine whose active and inactive ingredients are checked.
    people:
        Household members.
    dedupe:
        Collapse repeated (substance, person) pairs to the most severe one.
        ``None`` uses ``MEDSAFETY_DEDUPE_ALLERGY_MATCHES``.

    Returns
    -------
    AllergyCheckResult
        ``severity`` is CRITICAL if any match is critical, MEDIUM if any
        match exists, NONE otherwise.
    """
    if medicine is None:
        raise ValueError("medicine must not be None")
    people = _require_people(people)
    if dedupe is None:
        dedupe = config.DEDUPE_ALLERGY_MATCHES

    substances = [i.strip().lower() for i in medicine.ingredients if i.strip()]

    matches: list[AllergyMatch] = []
    for substance in substances:
        for person in people:
            for term in person.allergy_terms:
                severity = match_substance(substance, term)
                if severity is None:
                    continue
                matches.append(AllergyMatch(
                    substance=display_case(substance),
                    person_name=person.name,
                    severity=severity,
                ))

    if dedupe:
        matches = _collapse(matches, key=lambda m: (m.substance.lower(), m.person_name))

    logger.debug(
        "check_allergies: medicine=%r substances=%d people=%d matches=%d",
        medicine.name, len(substances), len(people), len(matches),
    )
    return AllergyCheckResult(
        has_allergies=bool(matches),
        severity=max_severity(m.severity for m in matches),
        matches=matches,
        all_ingredients=[display_case(s) for s in substances],
    )


def check_food_allergies(foods: Iterable[str], people: Iterable[Person]) -> list[FoodAllergyMatch]:
    """
    Check food names against every person's allergies.

    One match per (food, person), keeping the most severe.
    """
    people = _require_people(people)
    matches: list[FoodAllergyMatch] = []
    for food in foods or ():
        name = (food or "").strip().lower()
        if not name:
            continue
        for person in people:
            for term in person.allergy_terms:
                severity = match_substance(name, term)
                if severity is None:
                    continue
                matches.append(FoodAllergyMatch(
                    food=display_case(name),
                    person_name=person.name,
                    severity=severity,
                ))
    return _collapse(matches, key=lambda m: (m.food.lower(), m.person_name))


def check_text_allergies(text: str, people: Iterable[Person]) -> list[AllergyMatch]:
    """
    Quick allergy check of free text as the user types it.

    The text is split into words; every word of at least two characters is
    matched against each person's allergy terms.  The allergy term, not the
    word, is reported as the substance.
    """
    people = _require_people(people)
    if not text or len(text.strip()) < _MIN_WORD_LEN:
        return []

    words = [w for w in _WORD_SPLIT_RE.split(text.lower()) if len(w) >= _MIN_WORD_LEN]
    matches: list[AllergyMatch] = []
    for word in words:
        for person in people:
            for term in person.allergy_terms:
                severity = match_substance(word, term)
                if severity is None:
                    continue
                matches.append(AllergyMatch(
                    substance=display_case(term),
                    person_name=person.name,
                    severity=severity,
                ))
    return _collapse(matches, key=lambda m: (m.substance.lower(), m.person_name))

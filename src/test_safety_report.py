"""Tests for the safety report assembler and the check orchestrators."""
import asyncio
import unittest

from medsafety.models.findings import (
    AllergyCheckResult,
    ContraindicationResult,
    DrugInteractionResult,
    FindingKind,
    FoodInteractionResult,
    InteractionFinding,
    Severity,
)
from medsafety.models.medicine import Medicine
from medsafety.models.person import Person
from medsafety.services.safety_report import (
    assemble,
    check_medicine_safety,
    check_medicine_safety_async,
)


def _finding(name, severity, kind=FindingKind.DRUG):
    return InteractionFinding(counterpart=name, reason="r", severity=severity, kind=kind)


class AssembleTests(unittest.TestCase):
    def test_empty_inputs(self):
        report = assemble(AllergyCheckResult(), DrugInteractionResult(), FoodInteractionResult())
        self.assertEqual(report.overall_severity, Severity.NONE)
        self.assertEqual(report.findings, [])
        self.assertTrue(report.is_safe)

    def test_overall_is_maximum(self):
        report = assemble(
            AllergyCheckResult(severity=Severity.MEDIUM),
            DrugInteractionResult(warnings=[_finding("Lisinopril", Severity.HIGH)]),
            FoodInteractionResult(severity=Severity.LOW),
        )
        self.assertEqual(report.overall_severity, Severity.HIGH)
        self.assertFalse(report.is_safe)

    def test_findings_concatenated_in_order(self):
        drug = DrugInteractionResult(
            incompatible=[_finding("Warfarin", Severity.CRITICAL)],
            warnings=[_finding("Lisinopril", Severity.MEDIUM)],
        )
        food = FoodInteractionResult(
            warnings=[_finding("Alcohol", Severity.HIGH, FindingKind.FOOD)],
            severity=Severity.MEDIUM,
        )
        contra = ContraindicationResult(
            findings=[_finding("Pregnancy", Severity.CRITICAL, FindingKind.CONTRAINDICATION)],
            severity=Severity.CRITICAL,
        )
        report = assemble(AllergyCheckResult(), drug, food, [contra], medicine_name="Aspirin")
        self.assertEqual(
            [f.counterpart for f in report.findings],
            ["Warfarin", "Lisinopril", "Alcohol", "Pregnancy"],
        )
        self.assertEqual(report.medicine_name, "Aspirin")
        self.assertEqual(report.overall_severity, Severity.CRITICAL)

    def test_same_counterpart_kept_across_kinds(self):
        drug = DrugInteractionResult(warnings=[_finding("Alcohol", Severity.LOW)])
        food = FoodInteractionResult(warnings=[_finding("Alcohol", Severity.HIGH, FindingKind.FOOD)])
        report = assemble(AllergyCheckResult(), drug, food)
        self.assertEqual(len(report.findings), 2)


class CheckMedicineSafetyTests(unittest.TestCase):
    def setUp(self):
        self.medicine = Medicine(
            name="Nurofen",
            activeIngredients="Ibuprofen",
            incompatibleMedicines="[Aspirin]",
            alcoholInteraction="Avoid alcohol",
        )
        self.people = [
            Person(name="Anna", allergies="Ibuprofen"),
            Person(name="Ben", allergies="—"),
        ]
        self.inventory = [Medicine(name="Aspirin 100 mg"), Medicine(name="Nurofen")]

    def test_full_report(self):
        report = check_medicine_safety(self.medicine, self.people, self.inventory)
        self.assertEqual(report.overall_severity, Severity.CRITICAL)
        self.assertEqual(len(report.allergy_matches), 1)
        self.assertEqual(report.allergy_matches[0].person_name, "Anna")
        self.assertEqual(
            [(f.counterpart, f.kind) for f in report.findings],
            [("Aspirin 100 mg", FindingKind.DRUG), ("Alcohol", FindingKind.FOOD)],
        )
        self.assertEqual(report.all_ingredients, ["Ibuprofen"])

    def test_async_matches_sync(self):
        sync_report = check_medicine_safety(self.medicine, self.people, self.inventory)
        async_report = asyncio.run(
            check_medicine_safety_async(self.medicine, self.people, self.inventory)
        )
        self.assertEqual(async_report, sync_report)

    def test_none_medicine_raises(self):
        with self.assertRaises(ValueError):
            check_medicine_safety(None, self.people)

    def test_none_people_or_inventory_raises(self):
        with self.assertRaises(ValueError):
            check_medicine_safety(self.medicine, None)
        with self.assertRaises(ValueError):
            check_medicine_safety(self.medicine, self.people, None)

    def test_async_none_people_or_inventory_raises(self):
        with self.assertRaises(ValueError):
            asyncio.run(check_medicine_safety_async(self.medicine, None))
        with self.assertRaises(ValueError):
            asyncio.run(check_medicine_safety_async(self.medicine, self.people, None))


if __name__ == "__main__":
    unittest.main()

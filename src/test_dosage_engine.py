"""Tests for the per-person dose adjustment engine."""
import unittest
from datetime import date

from medsafety.models.person import Person
from medsafety.services.dosage_engine import (
    calculate_age,
    calculate_bmi,
    calculate_dosage,
    scale_dose_text,
)

TODAY = date(2025, 6, 1)


def _person(**kwargs):
    kwargs.setdefault("name", "Test")
    return Person(**kwargs)


class AgeAndBmiTests(unittest.TestCase):
    def test_age_before_birthday(self):
        self.assertEqual(calculate_age(date(2000, 6, 2), TODAY), 24)

    def test_age_on_birthday(self):
        self.assertEqual(calculate_age(date(2000, 6, 1), TODAY), 25)

    def test_future_birth_date_ignored(self):
        self.assertIsNone(calculate_age(date(2030, 1, 1), TODAY))
        self.assertIsNone(calculate_age(None, TODAY))

    def test_bmi_rounded_to_one_decimal(self):
        self.assertEqual(calculate_bmi(70, 175), 22.9)

    def test_bmi_missing_metric(self):
        self.assertIsNone(calculate_bmi(70, None))
        self.assertIsNone(calculate_bmi(None, 175))


class ScaleDoseTextTests(unittest.TestCase):
    def test_keeps_surrounding_text(self):
        self.assertEqual(scale_dose_text("400 mg every 8 hours", 0.3), "120 mg every 8 hours")

    def test_decimal_comma(self):
        self.assertEqual(scale_dose_text("2,4 мл", 0.5), "1,2 мл")

    def test_thousands_separator(self):
        self.assertEqual(scale_dose_text("1,000 mg", 0.3), "300 mg")
        self.assertEqual(scale_dose_text("1,500,000 IU or 2,000 mg", 0.5), "1,500,000 IU or 1000 mg")

    def test_leading_zero_is_a_decimal_comma(self):
        self.assertEqual(scale_dose_text("0,500 g", 0.5), "0,3 g")

    def test_no_unit(self):
        self.assertIsNone(scale_dose_text("as needed", 0.5))
        self.assertIsNone(scale_dose_text("2 glasses of water", 0.5))


class CalculateDosageTests(unittest.TestCase):
    # ------------------------------------------------------------------
    # No dose
    # ------------------------------------------------------------------
    def test_placeholder_dose_short_circuits(self):
        for dose in ("—", None, "  ", "not visible on packaging"):
            with self.subTest(dose=dose):
                result = calculate_dosage(dose, _person(), today=TODAY)
                self.assertEqual(result.recommended_dose, "consult a physician")
                self.assertEqual(result.explanations, ["no standard dose provided"])
                self.assertEqual(result.warnings, ["clinical consultation required"])

    # ------------------------------------------------------------------
    # Age
    # ------------------------------------------------------------------
    def test_young_child(self):
        result = calculate_dosage("400 mg", _person(birthDate="2020-01-01"), today=TODAY)
        self.assertEqual(result.adjustment_factor, 0.3)
        self.assertEqual(result.recommended_dose, "120 mg")
        self.assertTrue(any("pediatrician" in w for w in result.warnings))

    def test_young_child_with_grouped_dose(self):
        result = calculate_dosage("1,000 mg", _person(birthDate="2020-01-01"), today=TODAY)
        self.assertEqual(result.recommended_dose, "300 mg")

    def test_unparseable_dose_warns_with_percentage(self):
        result = calculate_dosage("as needed", _person(birthDate="2018-01-01"), today=TODAY)
        self.assertEqual(result.recommended_dose, "as needed")
        self.assertEqual(result.adjustment_factor, 0.5)
        self.assertTrue(any("~50% adjustment recommended" in w for w in result.warnings))

    def test_older_child(self):
        result = calculate_dosage("50 mcg", _person(birthDate="2015-01-01"), today=TODAY)
        self.assertEqual(result.adjustment_factor, 0.7)
        self.assertEqual(result.recommended_dose, "35 mcg")

    def test_adult_without_data_is_unchanged(self):
        result = calculate_dosage("400 mg", _person(), today=TODAY)
        self.assertEqual(result.recommended_dose, "400 mg")
        self.assertEqual(result.adjustment_factor, 1.0)
        self.assertEqual(result.warnings, [])

    def test_adult_explanation(self):
        result = calculate_dosage("400 mg", _person(birthDate="1990-01-01"), today=TODAY)
        self.assertEqual(result.explanations, ["Age 35: standard dose"])

    # ------------------------------------------------------------------
    # Body-mass index
    # ------------------------------------------------------------------
    def test_underweight_gets_general_warning(self):
        person = _person(birthDate="1995-01-01", weight=45, height=170)
        result = calculate_dosage("500 mg", person, today=TODAY)
        self.assertEqual(result.adjustment_factor, 0.9)
        self.assertEqual(result.recommended_dose, "450 mg")
        self.assertEqual(len(result.warnings), 1)
        self.assertIn("side effects", result.warnings[0])

    def test_obesity_warning_only(self):
        person = _person(birthDate="1995-01-01", weight=110, height=170)
        result = calculate_dosage("500 mg", person, today=TODAY)
        self.assertEqual(result.adjustment_factor, 1.0)
        self.assertEqual(result.recommended_dose, "500 mg")
        self.assertTrue(any("Obesity" in w for w in result.warnings))

    # ------------------------------------------------------------------
    # Conditions
    # ------------------------------------------------------------------
    def test_elderly_with_kidney_disease(self):
        person = _person(birthDate="1955-01-01", organConditions="chronic kidney disease")
        result = calculate_dosage("1000 mg", person, today=TODAY)
        self.assertEqual(result.adjustment_factor, 0.6)
        self.assertEqual(result.recommended_dose, "600 mg")
        self.assertTrue(any(w.startswith("Critical:") for w in result.warnings))

    def test_liver_condition(self):
        result = calculate_dosage("10 mg", _person(organConditions="hepatitis B"), today=TODAY)
        self.assertEqual(result.recommended_dose, "7 mg")
        self.assertTrue(any(w.startswith("Critical:") for w in result.warnings))

    def test_pregnancy(self):
        result = calculate_dosage("2 tablets", _person(medicalConditions="pregnancy"), today=TODAY)
        self.assertEqual(result.adjustment_factor, 0.8)
        self.assertEqual(result.recommended_dose, "1.6 tablets")

    def test_diabetes_warning_only(self):
        result = calculate_dosage("500 mg", _person(chronicDiseases="Type 2 diabetes"), today=TODAY)
        self.assertEqual(result.adjustment_factor, 1.0)
        self.assertEqual(result.recommended_dose, "500 mg")
        self.assertTrue(any("Diabetes" in w for w in result.warnings))

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------
    def test_factor_never_exceeds_one(self):
        people = [
            _person(),
            _person(birthDate="2022-01-01"),
            _person(birthDate="1940-01-01", weight=40, height=180),
            _person(birthDate="1985-01-01", weight=120, height=160),
            _person(organConditions="liver, kidney", medicalConditions="pregnancy"),
        ]
        for person in people:
            with self.subTest(person=person):
                result = calculate_dosage("100 mg", person, today=TODAY)
                self.assertGreater(result.adjustment_factor, 0)
                self.assertLessEqual(result.adjustment_factor, 1.0)

    def test_none_person_raises(self):
        with self.assertRaises(ValueError):
            calculate_dosage("400 mg", None)


if __name__ == "__main__":
    unittest.main()

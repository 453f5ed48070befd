# -*- coding: utf-8 -*-

from __future__ import annotations

import unittest

import support  # noqa: F401

from healthlog.journal.decoder import Decoded, DecodeFailed, decode_response

DAL_CHAWAL = (
    '{"meals": [{"time": "noon", "items": ["dal", "chawal"], "quantity": "1 plate", "calories": 450}],'
    ' "medicines": [], "bodyStats": {"waterIntakeLiters": 2}, "tests": [], "notes": ""}'
)


class TestDecodeResponse(unittest.TestCase):
    def _decoded(self, text: str) -> Decoded:
        result = decode_response(text)
        self.assertIsInstance(result, Decoded, msg=getattr(result, "reason", ""))
        assert isinstance(result, Decoded)
        return result

    def test_plain_json_object(self) -> None:
        parsed = self._decoded(DAL_CHAWAL).parsed
        self.assertEqual(len(parsed.meals), 1)
        self.assertEqual(parsed.meals[0].items, ["dal", "chawal"])
        self.assertEqual(parsed.meals[0].calories, 450.0)
        self.assertIsNotNone(parsed.body_stats)
        assert parsed.body_stats is not None
        self.assertEqual(parsed.body_stats.water_intake_liters, 2.0)
        self.assertEqual(parsed.medicines, [])
        self.assertEqual(parsed.tests, [])

    def test_markdown_fences_are_stripped(self) -> None:
        parsed = self._decoded(f"```json\n{DAL_CHAWAL}\n```").parsed
        self.assertEqual(parsed.meals[0].time, "noon")

    def test_object_wrapped_in_prose(self) -> None:
        text = f"Sure! Here is the parsed entry:\n{DAL_CHAWAL}\nLet me know if you need more."
        parsed = self._decoded(text).parsed
        self.assertEqual(parsed.meals[0].quantity, "1 plate")

    def test_trailing_commas_and_smart_quotes(self) -> None:
        text = '{“meals”: [{"time": "night", "items": ["rice",],},], "medicines": [],}'
        parsed = self._decoded(text).parsed
        self.assertEqual(parsed.meals[0].items, ["rice"])

    def test_numbers_given_as_strings(self) -> None:
        text = (
            '{"meals": [{"items": "kahwa", "calories": "120 kcal"}],'
            ' "bodyStats": {"waterIntakeLiters": "2.5 liters", "steps": "8,000"},'
            ' "tests": [{"testName": "HbA1c", "resultValue": "6.1", "unit": "%"}]}'
        )
        parsed = self._decoded(text).parsed
        self.assertEqual(parsed.meals[0].items, ["kahwa"])
        self.assertEqual(parsed.meals[0].calories, 120.0)
        assert parsed.body_stats is not None
        self.assertEqual(parsed.body_stats.water_intake_liters, 2.5)
        self.assertEqual(parsed.body_stats.steps, 8000.0)
        self.assertEqual(parsed.tests[0].test_name, "HbA1c")
        self.assertEqual(parsed.tests[0].result_value, 6.1)

    def test_missing_sections_default_to_empty(self) -> None:
        parsed = self._decoded('{"meals": null}').parsed
        self.assertEqual(parsed.meals, [])
        self.assertEqual(parsed.medicines, [])
        self.assertEqual(parsed.tests, [])
        self.assertIsNone(parsed.body_stats)

    def test_body_stats_given_as_list_or_text(self) -> None:
        meal = '"meals": [{"items": ["poha"]}]'
        for body_stats in ("[]", '""', "0", '"none"'):
            with self.subTest(body_stats=body_stats):
                parsed = self._decoded(f'{{{meal}, "bodyStats": {body_stats}}}').parsed
                self.assertEqual(parsed.meals[0].items, ["poha"])
                self.assertIsNone(parsed.body_stats)

        parsed = self._decoded(f'{{{meal}, "bodyStats": [{{"weightKg": 71}}]}}').parsed
        assert parsed.body_stats is not None
        self.assertEqual(parsed.body_stats.weight_kg, 71.0)

    def test_reference_range_given_as_text(self) -> None:
        text = (
            '{"meals": [{"items": ["idli"]}], "tests": ['
            '{"testName": "HbA1c", "resultValue": 6.1, "referenceRange": "4-5.6 %"},'
            ' {"testName": "LDL", "resultValue": 130, "referenceRange": "<100 mg/dL"},'
            ' {"testName": "TSH", "resultValue": 2, "referenceRange": "normal"}]}'
        )
        parsed = self._decoded(text).parsed
        self.assertEqual(parsed.meals[0].items, ["idli"])
        hba1c, ldl, tsh = parsed.tests
        assert hba1c.reference_range is not None and ldl.reference_range is not None
        self.assertEqual(hba1c.reference_range.min, 4.0)
        self.assertEqual(hba1c.reference_range.max, 5.6)
        self.assertEqual(hba1c.reference_range.unit, "%")
        self.assertIsNone(ldl.reference_range.min)
        self.assertEqual(ldl.reference_range.max, 100.0)
        self.assertEqual(ldl.reference_range.unit, "mg/dL")
        self.assertIsNone(tsh.reference_range)

    def test_out_of_range_values_are_left_for_record_models(self) -> None:
        parsed = self._decoded('{"meals": [{"time": "afternoon", "items": ["tea"], "calories": -40}]}').parsed
        self.assertEqual(parsed.meals[0].time, "afternoon")
        self.assertEqual(parsed.meals[0].calories, -40.0)

    def test_empty_text(self) -> None:
        for text in ("", "   \n", None):
            with self.subTest(text=text):
                result = decode_response(text)
                self.assertIsInstance(result, DecodeFailed)
                assert isinstance(result, DecodeFailed)
                self.assertEqual(result.reason, "AI response was empty")

    def test_prose_without_json(self) -> None:
        text = "I am sorry, I could not understand this journal entry."
        result = decode_response(text)
        self.assertIsInstance(result, DecodeFailed)
        assert isinstance(result, DecodeFailed)
        self.assertTrue(result.reason.startswith("Failed to parse AI response as JSON"))
        self.assertEqual(result.raw_text, text)

    def test_top_level_array_is_rejected(self) -> None:
        result = decode_response("[1, 2, 3]")
        self.assertIsInstance(result, DecodeFailed)
        assert isinstance(result, DecodeFailed)
        self.assertIn("expected a JSON object", result.reason)

    def test_wrong_structure(self) -> None:
        result = decode_response('{"meals": 42}')
        self.assertIsInstance(result, DecodeFailed)
        assert isinstance(result, DecodeFailed)
        self.assertTrue(result.reason.startswith("AI response did not match the expected structure"))
        self.assertIn("meals", result.reason)


if __name__ == "__main__":
    unittest.main()

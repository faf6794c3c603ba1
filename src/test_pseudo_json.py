"""Tests for the JSON / pseudo-JSON parser."""
import unittest

from medsafety.services.pseudo_json import (
    convert_pseudo_json,
    dump_pseudo_json,
    try_parse,
)


class TryParseTests(unittest.TestCase):
    # ------------------------------------------------------------------
    # Genuine JSON
    # ------------------------------------------------------------------
    def test_plain_json_object(self):
        self.assertEqual(try_parse('{"a": 1}'), {"a": 1})

    def test_json_array(self):
        self.assertEqual(try_parse('["x", "y"]'), ["x", "y"])

    def test_code_fenced_json(self):
        text = '```json\n{"a": [1, 2]}\n```'
        self.assertEqual(try_parse(text), {"a": [1, 2]})

    def test_json_embedded_in_prose(self):
        text = 'Here is the result: {"name": "Aspirin"} hope it helps'
        self.assertEqual(try_parse(text), {"name": "Aspirin"})

    def test_scalars_are_not_structured(self):
        self.assertIsNone(try_parse("42"))
        self.assertIsNone(try_parse('"text"'))

    def test_garbage_and_empty(self):
        self.assertIsNone(try_parse("plain text"))
        self.assertIsNone(try_parse(""))
        self.assertIsNone(try_parse(None))

    def test_deeply_nested_brackets_are_not_structured(self):
        self.assertIsNone(try_parse("[" * 100000))
        self.assertIsNone(try_parse("{" * 100000))

    def test_deeply_nested_pseudo_json_gives_up(self):
        text = "{a=" + "[" * 3000 + "x" + "]" * 3000 + "}"
        self.assertIsNone(try_parse(text))

    # ------------------------------------------------------------------
    # Pseudo-JSON
    # ------------------------------------------------------------------
    def test_pseudo_json_with_array(self):
        self.assertEqual(
            try_parse("{mild=Nausea, severe=[Rash, Fever]}"),
            {"mild": "Nausea", "severe": ["Rash", "Fever"]},
        )

    def test_empty_value_becomes_empty_string(self):
        self.assertEqual(try_parse("{a=, b=x}"), {"a": "", "b": "x"})

    def test_segment_without_equals_is_dropped(self):
        self.assertEqual(try_parse("{a=1, junk, b=2}"), {"a": "1", "b": "2"})

    def test_nested_record_and_json_literal(self):
        self.assertEqual(
            try_parse("{outer={inner=x, other=y}, list=[1, 2]}"),
            {"outer": {"inner": "x", "other": "y"}, "list": [1, 2]},
        )

    def test_quotes_in_value_are_escaped(self):
        self.assertEqual(try_parse('{note=say "hi"}'), {"note": 'say "hi"'})

    def test_splits_on_first_equals_only(self):
        self.assertEqual(try_parse("{formula=a=b}"), {"formula": "a=b"})


class ConvertPseudoJsonTests(unittest.TestCase):
    def test_not_brace_delimited(self):
        self.assertIsNone(convert_pseudo_json("a=1, b=2"))

    def test_without_equals(self):
        self.assertIsNone(convert_pseudo_json("{just text}"))

    def test_output_is_json_text(self):
        self.assertEqual(convert_pseudo_json("{a=1}"), '{"a": "1"}')

    def test_too_deep_to_convert(self):
        text = "{a=" + "[" * 3000 + "x" + "]" * 3000 + "}"
        self.assertIsNone(convert_pseudo_json(text))


class DumpPseudoJsonTests(unittest.TestCase):
    def test_dump_format(self):
        record = {"mild": "Nausea", "severe": ["Rash", "Fever"]}
        self.assertEqual(dump_pseudo_json(record), "{mild=Nausea, severe=[Rash, Fever]}")

    def test_dump_then_parse_restores_record(self):
        record = {"mild": "Nausea", "severe": ["Rash", "Fever"], "note": ""}
        self.assertEqual(try_parse(dump_pseudo_json(record)), record)


if __name__ == "__main__":
    unittest.main()

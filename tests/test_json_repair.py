"""Tests for lenient JSON parsing of generator output."""

import pytest

from taleloop.errors import MalformedOutputError
from taleloop.utils.json_repair import extract_json_block, parse_json_lenient, repair_json


class TestExtractJsonBlock:
    def test_markdown_fence(self):
        text = 'Here you go:\n```json\n{"response": "ok"}\n```\nEnjoy.'
        assert extract_json_block(text) == '{"response": "ok"}'

    def test_bare_fence(self):
        assert extract_json_block('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_object(self):
        assert extract_json_block('Sure! {"a": {"b": 2}} Hope that helps') == '{"a": {"b": 2}}'

    def test_unterminated_object(self):
        assert extract_json_block('Result: {"a": [1, 2') == '{"a": [1, 2'

    def test_no_object(self):
        assert extract_json_block("  just words  ") == "just words"

    def test_empty(self):
        assert extract_json_block("") == ""


class TestRepairJson:
    def test_trailing_commas(self):
        assert repair_json('{"a": [1, 2,], "b": 3,}') == '{"a": [1, 2], "b": 3}'

    def test_closes_brackets_before_braces(self):
        assert repair_json('{"a": {"b": [1, 2') == '{"a": {"b": [1, 2]}}'


class TestParseJsonLenient:
    def test_valid_json_untouched(self):
        assert parse_json_lenient('{"response": "The door opens."}') == {"response": "The door opens."}

    def test_fenced_with_trailing_comma(self):
        text = '```json\n{"response": "A draft.", "actionType": "LOOK",}\n```'
        assert parse_json_lenient(text) == {"response": "A draft.", "actionType": "LOOK"}

    def test_truncated_output(self):
        assert parse_json_lenient('{"response": "Cut off", "tags": ["a"') == {
            "response": "Cut off", "tags": ["a"]}

    def test_unrepairable(self):
        with pytest.raises(MalformedOutputError) as excinfo:
            parse_json_lenient("The model refused to answer.")
        assert excinfo.value.raw == "The model refused to answer."

    def test_malformed_is_a_value_error(self):
        with pytest.raises(ValueError):
            parse_json_lenient('{"response": oops}')

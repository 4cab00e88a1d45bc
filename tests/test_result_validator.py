"""
Tests for ResultValidator and JSON extraction from model replies
"""

import pytest

from cartllm_core.result_validator import DEFAULT_EXPLANATION, ResultValidator, extract_json_object

from conftest import candidate, reply


@pytest.fixture
def original_map():
    return {
        0: candidate("Subtotal $40.00", "div.sub"),
        1: candidate("Tax $3.00", "div.tax"),
        2: candidate("Grand Total $43.00", "div.grand"),
    }


@pytest.fixture
def validator():
    return ResultValidator()


class TestExtractJsonObject:

    def test_plain(self):
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_surrounded_by_prose(self):
        text = 'Sure! Here it is: {"index": 2, "amount": 43} Hope that helps.'
        assert extract_json_object(text) == '{"index": 2, "amount": 43}'

    def test_nested_and_braces_in_strings(self):
        text = 'x {"explanation": "uses {braces} and \\"quotes\\"", "inner": {"k": 1}} y {"second": 2}'
        assert extract_json_object(text) == '{"explanation": "uses {braces} and \\"quotes\\"", "inner": {"k": 1}}'

    def test_none_when_missing(self):
        assert extract_json_object("no json here") is None
        assert extract_json_object('{"unterminated": 1') is None


class TestParse:

    def test_valid_reply(self, validator, original_map):
        result = validator.parse(reply(2, 43.0, 0.9, "Grand Total $43.00", "final total"), original_map)
        assert result.amount == 43.0
        assert result.confidence == 0.9
        assert result.explanation == "final total"
        assert result.index == 2
        assert result.text == "Grand Total $43.00"
        assert result.selectors == [original_map[2].selector]

    def test_fenced_reply(self, validator, original_map):
        raw = "```json\n" + reply(2, 43.0) + "\n```"
        assert validator.parse(raw, original_map).amount == 43.0

    def test_prose_wrapped_reply(self, validator, original_map):
        raw = "The final total is below.\n" + reply(2, 43.0) + "\nLet me know."
        assert validator.parse(raw, original_map).index == 2

    @pytest.mark.parametrize("raw", ["", None, "I could not find a total.", "[1, 2, 3]", "{not json}"])
    def test_unusable_text(self, validator, original_map, raw):
        assert validator.parse(raw, original_map) is None

    def test_unknown_index(self, validator, original_map):
        assert validator.parse(reply(7, 43.0), original_map) is None
        assert validator.parse(reply(-1, 43.0), original_map) is None

    def test_missing_fields(self, validator, original_map):
        assert validator.parse('{"index": 2}', original_map) is None
        assert validator.parse('{"amount": 43.0}', original_map) is None

    def test_zero_is_a_valid_amount(self, validator, original_map):
        result = validator.parse(reply(0, 0), original_map)
        assert result.amount == 0.0
        assert result.has_amount

    def test_string_index(self, validator, original_map):
        assert validator.parse('{"index": "2", "amount": 43}', original_map).index == 2

    def test_boolean_index_rejected(self, validator, original_map):
        assert validator.parse('{"index": true, "amount": 43}', original_map) is None

    def test_currency_string_amount(self, validator, original_map):
        assert validator.parse('{"index": 2, "amount": "$43.00"}', original_map).amount == 43.0
        assert validator.parse('{"index": 2, "amount": "1,043.50 USD"}', original_map).amount == 1043.5

    @pytest.mark.parametrize("amount", ['"forty-three"', "true", "[43]", "NaN", "Infinity"])
    def test_non_numeric_amount(self, validator, original_map, amount):
        raw = '{"index": 2, "amount": %s, "confidence": 0.9}' % amount
        assert validator.parse(raw, original_map) is None

    def test_null_amount(self, validator, original_map):
        result = validator.parse('{"index": 1, "amount": null, "confidence": 0.2}', original_map)
        assert result is not None
        assert result.amount is None
        assert not result.has_amount
        assert result.confidence == 0.2

    def test_confidence_defaults(self, validator, original_map):
        assert validator.parse('{"index": 2, "amount": 43}', original_map).confidence == 0.5
        assert validator.parse('{"index": 2, "amount": 43, "confidence": "high"}', original_map).confidence == 0.5

    def test_confidence_clamped(self, validator, original_map):
        assert validator.parse(reply(2, 43, confidence=7), original_map).confidence == 1.0
        assert validator.parse(reply(2, 43, confidence=-0.3), original_map).confidence == 0.0
        assert validator.parse(reply(2, 43, confidence=0), original_map).confidence == 0.0

    def test_default_explanation(self, validator, original_map):
        result = validator.parse('{"index": 2, "amount": 43}', original_map)
        assert result.explanation == DEFAULT_EXPLANATION

    def test_to_dict(self, validator, original_map):
        data = validator.parse(reply(2, 43.0), original_map).to_dict()
        assert data["amount"] == 43.0
        assert data["selectors"] == [{"selector": "div.grand", "id": None, "class_name": None, "tag_name": "div"}]

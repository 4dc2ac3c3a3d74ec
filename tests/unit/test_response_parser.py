# Copyright (C) 2025 VerifyNews Contributors
#
# This file is part of VerifyNews Engine.

"""Unit tests for parsing free-form model output into verdicts."""

import pytest

from verifynews_core.llm.errors import ParseError
from verifynews_core.llm.response_parser import (
    extract_json_object,
    map_ranked_ids,
    parse_provider_response,
    parse_ranking_response,
    parse_title_response,
)
from verifynews_core.schema.verdict import Veracity


@pytest.mark.unit
def test_fenced_json_with_prose_is_parsed():
    text = 'Here is my analysis:\n```json\n{"veracity": "false", "confidence": 95, "explanation": "No.", "sources": []}\n```\nThanks!'
    result = parse_provider_response(text)
    assert result.veracity == Veracity.FALSE
    assert result.confidence == 95
    assert result.sources == []


@pytest.mark.unit
def test_truncated_object_is_repaired():
    assert extract_json_object('{"veracity": "true", "confidence": 80') == {"veracity": "true", "confidence": 80}
    assert extract_json_object('{"veracity": "true", "confidence": 80,') == {"veracity": "true", "confidence": 80}
    assert extract_json_object('{"a": [1, 2,], "b": 1,}') == {"a": [1, 2], "b": 1}


@pytest.mark.unit
def test_unrecoverable_text_raises_parse_error():
    with pytest.raises(ParseError):
        extract_json_object("I cannot verify this claim.")
    with pytest.raises(ParseError):
        extract_json_object('{"veracity": "true", "sources": [{"name": ')


@pytest.mark.unit
def test_missing_veracity_is_a_schema_failure():
    with pytest.raises(ParseError, match="veracity"):
        parse_provider_response('{"confidence": 50}')


@pytest.mark.unit
def test_sanitizes_confidence_veracity_and_sources():
    text = """{
      "veracity": "mostly true",
      "confidence": 150,
      "explanation": null,
      "correctedInfo": "It is rock.",
      "sources": ["https://www.nasa.gov/moon", "NASA website", {"name": "", "url": "https://esa.int/x"}, {"name": "Bad", "url": "/relative"}]
    }"""
    result = parse_provider_response(text)
    assert result.veracity == Veracity.UNVERIFIED
    assert result.confidence == 100
    assert result.explanation == ""
    assert result.corrected_info == "It is rock."
    assert [(s.name, s.url) for s in result.sources] == [
        ("www.nasa.gov", "https://www.nasa.gov/moon"),
        ("esa.int", "https://esa.int/x"),
    ]


@pytest.mark.unit
def test_negative_and_nan_confidence_clamp_to_zero():
    assert parse_provider_response('{"veracity": "false", "confidence": -4}').confidence == 0
    assert parse_provider_response('{"veracity": "false", "confidence": "n/a"}').confidence == 0


def test_title_quotes_are_stripped():
    assert parse_title_response('  "Moon Cheese Claim Debunked"\n') == "Moon Cheese Claim Debunked"


def test_ranking_maps_ids_and_drops_unknown():
    results = ["a", "b", "c", "d"]
    assert parse_ranking_response('{"rankedIds": [2, 0, 9, 2, "1"]}', results) == ["c", "a", "b"]
    assert map_ranked_ids([None, -1, 3], results) == ["d"]
    with pytest.raises(ParseError):
        parse_ranking_response('{"ids": [1]}', results)

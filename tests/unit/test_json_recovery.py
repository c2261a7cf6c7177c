"""Tests for JSON recovery from provider output."""

import pytest

from content_engine.exceptions import ExtractionParseError
from content_engine.extraction.json_recovery import JsonResponseParser


@pytest.fixture
def parser():
    return JsonResponseParser()


def test_plain_json(parser):
    assert parser.parse('{"stakeholders": []}') == {"stakeholders": []}


def test_fenced_json(parser):
    response = '```json\n{"workstreams": [{"name": "Payments"}]}\n```'
    assert parser.parse(response) == {"workstreams": [{"name": "Payments"}]}


def test_prose_around_object(parser):
    response = 'Sure! Here you go: {"summary": "ok", "releases": []} Hope that helps.'
    assert parser.parse(response) == {"summary": "ok", "releases": []}


def test_nested_braces_use_outermost_span(parser):
    response = 'Result -> {"a": {"b": 1}} <- done'
    assert parser.parse(response) == {"a": {"b": 1}}


@pytest.mark.parametrize("response", ["", "   ", "no json here", "{not valid json}", "[1, 2, 3]"])
def test_unrecoverable_raises(parser, response):
    with pytest.raises(ExtractionParseError):
        parser.parse(response)

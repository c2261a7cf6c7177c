"""Tests for the entity extraction orchestrator."""

import pytest
from fakes import FakeProvider, extraction_response

from content_engine.exceptions import ContentInvalidError
from content_engine.extraction.orchestrator import EntityExtractor
from content_engine.generation.gateway import CompletionGateway
from content_engine.models.domain import ContentItem, Exemplar, Feedback, GeneratedOutput

CONTENT = "Sarah Chen needs the Payments review done before release 2.4 ships."


def _extractor(responses, counters, job_store, settings):
    provider = FakeProvider(responses=responses)
    gateway = CompletionGateway([provider], counters, job_store, settings)
    return EntityExtractor(gateway, settings), provider


async def test_extracts_entities_from_prose_wrapped_json(counters, job_store, settings):
    response = extraction_response(
        stakeholders=[{"name": "Sarah Chen", "confidence": 0.9}],
        workstreams=[{"name": "Payments", "confidence": 0.8}],
        releases=[{"version": "2.4"}],
        action_items=[{"text": "Review Payments", "priority": "URGENT", "assignee": "Sarah Chen"}],
        summary="Payments review before 2.4",
    )
    extractor, provider = _extractor([response], counters, job_store, settings)

    bundle = await extractor.extract(CONTENT, "brain_dump", user_id=1)

    assert [s.name for s in bundle.stakeholders] == ["Sarah Chen"]
    assert bundle.workstreams[0].confidence == 0.8
    assert bundle.releases[0].name == "2.4"
    assert bundle.action_items[0].priority == "medium"
    assert bundle.summary == "Payments review before 2.4"
    assert CONTENT in provider.prompts[0]


async def test_unparseable_response_yields_empty_bundle(counters, job_store, settings):
    extractor, _ = _extractor(["I could not find anything, sorry."], counters, job_store, settings)
    bundle = await extractor.extract(CONTENT, "email")
    assert bundle.is_empty()


async def test_malformed_items_are_dropped(counters, job_store, settings):
    response = extraction_response(
        action_items=[{"text": "Ship it"}, {"assignee": "nobody"}, "not an object"],
        stakeholders="not a list",
    )
    extractor, _ = _extractor([response], counters, job_store, settings)
    bundle = await extractor.extract(CONTENT, "slack")
    assert [a.text for a in bundle.action_items] == ["Ship it"]
    assert bundle.stakeholders == []


@pytest.mark.parametrize(
    "content,content_type",
    [
        ("short", "brain_dump"),
        ("   padded   ", "brain_dump"),
        (CONTENT, "fax"),
        ("x" * 50001, "document"),
    ],
)
async def test_invalid_content_never_reaches_provider(content, content_type, counters, job_store, settings):
    extractor, provider = _extractor(["{}"], counters, job_store, settings)
    with pytest.raises(ContentInvalidError):
        await extractor.extract(content, content_type)
    assert provider.prompts == []


async def test_exemplars_are_prepended(counters, job_store, settings):
    extractor, provider = _extractor(["{}"], counters, job_store, settings)
    exemplar = Exemplar(
        input=ContentItem(user_id=1, content="Earlier note about Payments", content_type="brain_dump", id=1),
        output=GeneratedOutput(input_id=1, content='{"workstreams": ["Payments"]}', output_type="entity_extraction", id=1),
        feedback=Feedback(
            output_id=1, user_id=1, kind="inline", action="accept",
            signal_type="explicit", confidence=1.0, id=1,
        ),
        similarity=0.92,
    )
    await extractor.extract(CONTENT, "brain_dump", exemplars=[exemplar])
    prompt = provider.prompts[0]
    assert "EXAMPLE 1:" in prompt
    assert "Earlier note about Payments" in prompt
    assert prompt.index("EXAMPLE 1:") < prompt.index(CONTENT)


async def test_extract_with_metadata_reports_provider(counters, job_store, settings):
    extractor, _ = _extractor(["{}"], counters, job_store, settings)
    _, call = await extractor.extract_with_metadata(CONTENT, "document")
    assert call["provider"] == "fake"
    assert call["model"] == "fake-model"

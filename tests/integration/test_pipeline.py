"""End-to-end tests for the content pipeline wired through build_engine."""

import json

import pytest
from fakes import FailingProvider, FakeEmbedder, FakeProvider, extraction_response

from content_engine.engine import build_engine
from content_engine.exceptions import (
    ConfigurationError,
    ContentInvalidError,
    NotFoundError,
    ProviderError,
)
from content_engine.models.domain import Release, Stakeholder, Workstream

NOTES = (
    "Sarah Chen confirmed the Payments workstream is on track for Spring Launch 2.4. "
    "Marcus Webb from Finance joins next week and will own the reconciliation report."
)

RESPONSE = extraction_response(
    stakeholders=[
        {"name": "Sarah Chen", "email": "sarah@example.com", "confidence": 0.95},
        {"name": "Marcus Webb", "email": "marcus@example.com", "department": "Finance", "confidence": 0.85},
    ],
    workstreams=[{"name": "Payments", "confidence": 0.9}],
    releases=[{"name": "Spring Launch", "version": "2.4", "confidence": 0.8}],
    action_items=[
        {"text": "Own the reconciliation report", "assignee": "Marcus Webb", "priority": "high", "confidence": 0.7}
    ],
    summary="Payments is on track for 2.4.",
)


@pytest.fixture
def provider():
    return FakeProvider([RESPONSE])


@pytest.fixture
async def engine(settings, provider):
    engine = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    yield engine
    engine.close()


async def _seed(engine):
    store = engine.domain_store
    await store.create_stakeholder(Stakeholder(user_id=1, name="Sarah Chen", email="sarah@example.com"))
    await store.create_workstream(Workstream(user_id=1, name="Payments"))
    await store.create_release(Release(user_id=1, name="Spring Launch", version="2.4"))


async def test_process_links_known_and_new_entities(engine):
    await _seed(engine)
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)

    assert result.match_results.summary() == {"exact": 3, "fuzzy": 0, "new": 1}
    [task] = result.confirmation_tasks
    assert task.task_type == "confirm_new_entity"
    assert task.entity.name == "Marcus Webb"
    assert task.confidence == 1.0

    stakeholders = await engine.domain_store.list_stakeholders(1)
    assert [s.name for s in stakeholders] == ["Sarah Chen", "Marcus Webb"]
    marcus = stakeholders[1]
    assert marcus.department == "Finance"

    links = await engine.domain_store.list_associations(result.content_item.id)
    assert len(links) == 4
    [action] = await engine.domain_store.list_action_items(result.content_item.id)
    assert action.assignee_stakeholder_id == marcus.id
    assert action.priority == "high"


async def test_process_stores_output_and_embeddings(engine):
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    output = result.output

    assert output.output_type == "entity_extraction"
    assert output.version == 1
    assert output.ai_model == "fake-model"
    assert output.metadata["provider"] == "fake"
    assert output.metadata["exemplar_ids"] == []
    assert output.quality_score == pytest.approx(0.84)
    assert json.loads(output.content)["summary"] == "Payments is on track for 2.4."

    assert await engine.content_store.get_embedding(result.content_item.id, "input") is not None
    assert await engine.content_store.get_embedding(output.id, "output") is not None
    assert engine.vector_store.size == 2

    job = await engine.job_store.get(output.metadata["job_id"])
    assert job.status == "completed"
    assert set(result.timings) >= {"validate", "store_input", "extract", "match", "persist"}


async def test_accepted_output_becomes_exemplar(engine, provider):
    first = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    await engine.feedback.capture_inline(
        {"output_id": first.output.id, "user_id": 1, "action": "accept", "confidence": 1.0}
    )

    second = await engine.pipeline.process(NOTES + " Follow-up tomorrow.", "meeting_notes", user_id=1)
    assert second.exemplars_used == 1
    assert second.output.metadata["exemplar_ids"] == [first.output.id]
    assert "EXAMPLE 1:" in provider.prompts[-1]


async def test_rejected_output_is_not_an_exemplar(engine):
    first = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    await engine.feedback.capture_inline(
        {"output_id": first.output.id, "user_id": 1, "action": "reject", "rejection_reason": "wrong"}
    )
    second = await engine.pipeline.process(NOTES + " Again.", "meeting_notes", user_id=1)
    assert second.exemplars_used == 0


async def test_invalid_content_stores_nothing(engine):
    with pytest.raises(ContentInvalidError):
        await engine.pipeline.process("too short", "meeting_notes", user_id=1)
    with pytest.raises(ContentInvalidError):
        await engine.pipeline.process(NOTES, "fax", user_id=1)
    assert await engine.content_store.count_inputs() == 0


async def test_unparseable_response_yields_empty_output(settings):
    engine = await build_engine(
        settings, providers=[FakeProvider(["I could not find anything useful."])], embedder=FakeEmbedder()
    )
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    assert result.entities.is_empty()
    assert result.output.quality_score is None
    assert result.confirmation_tasks == []


async def test_provider_failure_propagates(settings):
    engine = await build_engine(settings, providers=[FailingProvider()], embedder=FakeEmbedder())
    with pytest.raises(ProviderError):
        await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    assert await engine.content_store.count_inputs() == 1


async def test_process_batch_reports_failures(engine):
    result = await engine.pipeline.process_batch([NOTES, "short", NOTES], "email", user_id=1)
    assert result.total_processed == 3
    assert result.success_count == 2
    assert [f.index for f in result.failed] == [1]
    assert result.failed[0].error_type == "ContentInvalidError"
    assert [s["index"] for s in result.successful] == [0, 2]


async def test_regenerate_stores_next_version(engine, provider):
    first = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    regenerated = await engine.pipeline.regenerate(first.output.id)

    assert regenerated.version == 2
    assert regenerated.parent_output_id == first.output.id
    versions = await engine.content_store.list_outputs(first.content_item.id)
    assert [o.version for o in versions] == [1, 2]
    assert len(provider.prompts) == 2


async def test_works_without_embeddings(settings, provider):
    engine = await build_engine(settings, providers=[provider])
    assert engine.embeddings is None
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    assert result.exemplars_used == 0
    assert engine.vector_store.size == 0


async def test_index_is_rebuilt_from_stored_embeddings(settings, provider):
    engine = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)

    # No close(), so the index is not on disk and must come from the table.
    reopened = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    assert reopened.vector_store.size == 2


async def test_unknown_counter_backend(settings):
    settings.counter_backend = "redis"
    with pytest.raises(ConfigurationError):
        await build_engine(settings, providers=[FakeProvider()])


async def test_generate_summary_stores_typed_output(settings):
    provider = FakeProvider([RESPONSE, "  Payments ships in 2.4; Marcus owns reconciliation.  "])
    engine = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)

    output = await engine.pipeline.generate(result.content_item.id, "summary")

    assert output.output_type == "summary"
    assert output.content == "Payments ships in 2.4; Marcus owns reconciliation."
    assert output.version == 1
    assert output.metadata["provider"] == "fake"
    assert output.metadata["exemplar_ids"] == []
    assert "concise summary of the following meeting notes" in provider.prompts[-1]
    assert NOTES in provider.prompts[-1]

    job = await engine.job_store.get(output.metadata["job_id"])
    assert job.method == "generate_summary"
    assert job.status == "completed"
    assert await engine.content_store.get_embedding(output.id, "output") is not None


async def test_generate_uses_accepted_outputs_of_the_same_type(settings):
    provider = FakeProvider([RESPONSE, "- [ ] Confirm Payments scope", RESPONSE, "- [ ] Book launch review"])
    engine = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    first = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    checklist = await engine.pipeline.generate(first.content_item.id, "checklist")
    await engine.feedback.capture_inline({"output_id": checklist.id, "user_id": 1, "action": "accept"})

    second = await engine.pipeline.process(NOTES + " Follow-up tomorrow.", "meeting_notes", user_id=1)

    generated = await engine.pipeline.generate(second.content_item.id, "checklist")
    assert generated.metadata["exemplar_ids"] == [checklist.id]
    prompt = provider.prompts[-1]
    assert "EXAMPLE 1:" in prompt
    assert "- [ ] Confirm Payments scope" in prompt
    assert "markdown checkbox" in prompt


async def test_generate_report_uses_audience_guidance(engine, provider):
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    await engine.pipeline.generate(result.content_item.id, "report", audience="executive")
    assert "release notes for a executive audience" in provider.prompts[-1]
    assert "strategic value" in provider.prompts[-1]


async def test_generate_rejects_unknown_types_and_inputs(engine):
    result = await engine.pipeline.process(NOTES, "meeting_notes", user_id=1)
    for output_type in ("entity_extraction", "poem"):
        with pytest.raises(ContentInvalidError):
            await engine.pipeline.generate(result.content_item.id, output_type)
    with pytest.raises(NotFoundError):
        await engine.pipeline.generate(9999, "summary")

"""Integration tests for the SQLite content, domain and job stores."""

import pytest
from fakes import add_exemplar

from content_engine.exceptions import PersistenceError
from content_engine.models.domain import (
    ActionItemRecord,
    ContentItem,
    Embedding,
    EntityAssociation,
    GeneratedOutput,
    Release,
    Stakeholder,
    Workstream,
)


async def test_save_and_get_input(content_store):
    item = await content_store.save_input(
        ContentItem(user_id=1, content="Hello world", content_type="email", metadata={"subject": "hi"})
    )
    retrieved = await content_store.get_input(item.id)
    assert retrieved.content == "Hello world"
    assert retrieved.metadata == {"subject": "hi"}
    assert await content_store.count_inputs() == 1
    assert await content_store.get_input(999) is None


async def test_output_versions(content_store):
    item = await content_store.save_input(ContentItem(user_id=1, content="text", content_type="email"))
    first = await content_store.save_output(
        GeneratedOutput(input_id=item.id, content="v1", output_type="summary")
    )
    await content_store.save_output(
        GeneratedOutput(input_id=item.id, content="v2", output_type="summary", version=2, parent_output_id=first.id)
    )
    outputs = await content_store.list_outputs(item.id)
    assert [o.version for o in outputs] == [1, 2]
    assert outputs[1].parent_output_id == first.id


async def test_feedback_increments_output_count(content_store):
    _, output, feedback = await add_exemplar(content_store, "some input")
    stored = await content_store.get_output(output.id)
    assert stored.feedback_count == 1
    assert (await content_store.get_feedback(feedback.id)).action == "accept"


async def test_embedding_upsert_replaces(content_store):
    first = await content_store.upsert_embedding(
        Embedding(owner_id=1, owner_kind="input", vector=[1.0, 0.0], model="m1", dimensions=2)
    )
    second = await content_store.upsert_embedding(
        Embedding(owner_id=1, owner_kind="input", vector=[0.0, 1.0], model="m2", dimensions=2)
    )
    assert first.id == second.id
    stored = await content_store.get_embedding(1, "input")
    assert stored.vector == [0.0, 1.0]
    assert stored.model == "m2"
    assert len(await content_store.list_embeddings("input")) == 1
    assert await content_store.get_embedding(1, "output") is None


async def test_find_exemplars_filters(content_store):
    a, _, _ = await add_exemplar(content_store, "a", metadata={"context": "standup"})
    b, _, _ = await add_exemplar(content_store, "b", action="reject", output_type="summary")
    c, _, _ = await add_exemplar(content_store, "c", confidence=0.5, quality_score=0.2)
    ids = [a.id, b.id, c.id]

    assert len(await content_store.find_exemplars(ids)) == 3
    assert [r[0].id for r in await content_store.find_exemplars(ids, action="reject")] == [b.id]
    assert [r[0].id for r in await content_store.find_exemplars(ids, output_type="summary")] == [b.id]
    assert {r[0].id for r in await content_store.find_exemplars(ids, min_confidence=0.9)} == {a.id, b.id}
    assert {r[0].id for r in await content_store.find_exemplars(ids, min_quality_score=0.5)} == {a.id, b.id}
    assert [r[0].id for r in await content_store.find_exemplars(ids, context="standup")] == [a.id]
    assert await content_store.find_exemplars([]) == []


async def test_domain_records_are_user_scoped(domain_store):
    await domain_store.create_stakeholder(Stakeholder(user_id=1, name="Sarah Chen", email="sarah@example.com"))
    await domain_store.create_stakeholder(Stakeholder(user_id=2, name="Other Person"))
    assert [s.name for s in await domain_store.list_stakeholders(1)] == ["Sarah Chen"]
    assert await domain_store.find_stakeholder(2, "Sarah Chen", None) is None


async def test_find_by_identity(domain_store):
    sarah = await domain_store.create_stakeholder(
        Stakeholder(user_id=1, name="Sarah Chen", email="sarah@example.com")
    )
    await domain_store.create_workstream(Workstream(user_id=1, name="Payments"))
    await domain_store.create_release(Release(user_id=1, name="Spring", version="2.4"))

    assert (await domain_store.find_stakeholder(1, None, "SARAH@example.com")).id == sarah.id
    assert (await domain_store.find_stakeholder(1, "sarah chen", None)).id == sarah.id
    assert await domain_store.find_stakeholder(1, "Sarah Chen", "other@example.com") is None
    assert (await domain_store.find_workstream(1, " payments ")).name == "Payments"
    assert (await domain_store.find_release(1, None, "2.4")).name == "Spring"
    assert (await domain_store.get_record("stakeholder", 1, sarah.id)).name == "Sarah Chen"
    assert await domain_store.get_record("stakeholder", 2, sarah.id) is None


async def test_attach_keeps_highest_confidence(domain_store):
    ws = await domain_store.create_workstream(Workstream(user_id=1, name="Payments"))
    await domain_store.attach(EntityAssociation(content_id=1, entity_type="workstream", entity_id=ws.id, confidence=0.7))
    await domain_store.attach(EntityAssociation(content_id=1, entity_type="workstream", entity_id=ws.id, confidence=0.9))
    await domain_store.attach(EntityAssociation(content_id=1, entity_type="workstream", entity_id=ws.id, confidence=0.4))
    links = await domain_store.list_associations(1)
    assert len(links) == 1
    assert links[0].confidence == 0.9


async def test_transaction_rolls_back(domain_store):
    with pytest.raises(RuntimeError):
        async with domain_store.transaction() as db:
            await domain_store.create_workstream(Workstream(user_id=1, name="Temp"), db=db)
            raise RuntimeError("abort")
    assert await domain_store.list_workstreams(1) == []


async def test_failed_write_raises_persistence_error(domain_store):
    with pytest.raises(PersistenceError):
        await domain_store.add_action_item(ActionItemRecord(content_id=1, user_id=1, text=None))

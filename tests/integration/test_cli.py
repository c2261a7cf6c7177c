"""Tests for the command-line entrypoint."""

from pathlib import Path

import pytest
from fakes import FakeEmbedder, FakeProvider, extraction_response

from content_engine.engine import build_engine
from content_engine.exceptions import ValidationError
from content_engine.main import build_parser, run


@pytest.fixture
async def engine(settings):
    provider = FakeProvider([extraction_response(workstreams=[{"name": "Payments", "confidence": 0.9}])])
    engine = await build_engine(settings, providers=[provider], embedder=FakeEmbedder())
    yield engine
    engine.close()


def test_parser_rejects_unknown_action():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["feedback", "--output", "1", "--user", "1", "--action", "love"])


async def test_process_then_feedback_then_usage(engine, tmp_dir):
    notes = Path(tmp_dir) / "notes.txt"
    notes.write_text("The Payments workstream needs a review before Friday.", encoding="utf-8")
    parser = build_parser()

    processed = await run(parser.parse_args(["process", str(notes), "--type", "document", "--user", "1"]), engine)
    assert processed["matches"] == {"exact": 0, "fuzzy": 0, "new": 1}
    item = await engine.content_store.get_input(processed["content_id"])
    assert item.source == "file"
    assert item.metadata == {"filename": "notes.txt"}

    recorded = await run(
        parser.parse_args(
            ["feedback", "--output", str(processed["output_id"]), "--user", "1", "--action", "accept"]
        ),
        engine,
    )
    assert recorded["confidence"] == 1.0

    usage = await run(parser.parse_args(["usage"]), engine)
    assert usage["total_requests"] == 1


async def test_feedback_validation_errors_surface(engine, stored_output):
    args = build_parser().parse_args(
        ["feedback", "--output", str(stored_output.id), "--user", "1", "--action", "edit"]
    )
    with pytest.raises(ValidationError) as exc_info:
        await run(args, engine)
    assert "corrected_content" in exc_info.value.errors


async def test_similar_lists_exemplars(engine, tmp_dir):
    parser = build_parser()
    paths = []
    for name, text in (("a.txt", "Payments review is due on Friday."), ("b.txt", "Payments review due Friday.")):
        path = Path(tmp_dir) / name
        path.write_text(text, encoding="utf-8")
        paths.append(path)

    first = await run(parser.parse_args(["process", str(paths[0]), "--user", "1"]), engine)
    await engine.feedback.capture_inline({"output_id": first["output_id"], "user_id": 1, "action": "accept"})
    second = await run(parser.parse_args(["process", str(paths[1]), "--user", "1"]), engine)

    results = await run(parser.parse_args(["similar", str(second["content_id"])]), engine)
    assert [r["input_id"] for r in results] == [first["content_id"]]
    assert results[0]["combined_score"] is None

    personalised = await run(parser.parse_args(["similar", str(second["content_id"]), "--user", "1"]), engine)
    assert personalised[0]["combined_score"] is not None


async def test_generate_command(engine, tmp_dir):
    notes = Path(tmp_dir) / "notes.txt"
    notes.write_text("The Payments workstream needs a review before Friday.", encoding="utf-8")
    parser = build_parser()
    processed = await run(parser.parse_args(["process", str(notes), "--user", "1"]), engine)

    generated = await run(
        parser.parse_args(["generate", str(processed["content_id"]), "--type", "action_items"]), engine
    )
    assert generated["output_type"] == "action_items"
    assert generated["exemplar_ids"] == []
    [stored] = [o for o in await engine.content_store.list_outputs(processed["content_id"])
                if o.output_type == "action_items"]
    assert stored.id == generated["output_id"]


def test_parser_rejects_extraction_as_generated_type():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["generate", "1", "--type", "entity_extraction"])

"""Tests for few-shot prompt assembly."""

from content_engine.models.domain import ContentItem, Exemplar, Feedback, GeneratedOutput
from content_engine.models.schemas import RagPromptConfig
from content_engine.retrieval.rag_prompt import build_rag_prompt


def _exemplar(i, action="accept", metadata=None):
    return Exemplar(
        input=ContentItem(user_id=1, content=f"input {i}", content_type="brain_dump", id=i),
        output=GeneratedOutput(input_id=i, content=f"output {i}", output_type="summary", id=i),
        feedback=Feedback(
            output_id=i, user_id=1, kind="inline", action=action,
            signal_type="explicit", confidence=0.9, metadata=metadata or {}, id=i,
        ),
        similarity=0.9,
    )


def test_default_template():
    prompt = build_rag_prompt("new note", [_exemplar(1)])
    assert "EXAMPLE 1:" in prompt
    assert "Input: input 1" in prompt
    assert "AI Output: output 1" in prompt
    assert "User Feedback: accept (confidence: 0.9)" in prompt
    assert "Input: new note" in prompt
    assert "User Corrections" not in prompt


def test_max_examples_limits_rendering():
    prompt = build_rag_prompt("new", [_exemplar(i) for i in range(1, 6)])
    assert "EXAMPLE 3:" in prompt
    assert "EXAMPLE 4:" not in prompt

    prompt = build_rag_prompt("new", [_exemplar(i) for i in range(1, 6)], RagPromptConfig(max_examples=1))
    assert "EXAMPLE 2:" not in prompt


def test_corrections_and_metadata():
    exemplar = _exemplar(
        1, action="edit", metadata={"corrected_content": "better", "edit_reason": "tone", "context": "standup"}
    )
    prompt = build_rag_prompt("new", [exemplar], RagPromptConfig(include_metadata=True))
    assert "User Corrections: better" in prompt
    assert "Edit Reason: tone" in prompt
    assert '"context": "standup"' in prompt


def test_custom_template():
    config = RagPromptConfig(template="custom", custom_template="Use {example_count} examples for: {input}")
    assert build_rag_prompt("the note", [_exemplar(1), _exemplar(2)], config) == (
        "Use 2 examples for: the note"
    )


def test_custom_without_template_falls_back():
    prompt = build_rag_prompt("the note", [_exemplar(1)], RagPromptConfig(template="custom"))
    assert "EXAMPLE 1:" in prompt

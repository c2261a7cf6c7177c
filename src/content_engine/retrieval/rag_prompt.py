"""Few-shot prompt assembly from retrieved exemplars."""

from __future__ import annotations

import json

from content_engine.generation.prompt_templates import EXEMPLAR_CLOSING, EXEMPLAR_PREAMBLE
from content_engine.models.domain import Exemplar
from content_engine.models.schemas import RagPromptConfig


def format_exemplar_block(
    exemplars: list[Exemplar], max_examples: int = 3, include_metadata: bool = False
) -> str:
    """Render the preamble plus one numbered section per exemplar."""
    lines = [EXEMPLAR_PREAMBLE, ""]
    for i, exemplar in enumerate(exemplars[:max_examples], 1):
        feedback = exemplar.feedback
        lines.append(f"EXAMPLE {i}:")
        lines.append(f"Input: {exemplar.input.content}")
        lines.append(f"AI Output: {exemplar.output.content}")
        lines.append(f"User Feedback: {feedback.action} (confidence: {feedback.confidence})")
        metadata = feedback.metadata or {}
        if metadata.get("corrected_content"):
            lines.append(f"User Corrections: {metadata['corrected_content']}")
        if metadata.get("edit_reason"):
            lines.append(f"Edit Reason: {metadata['edit_reason']}")
        if include_metadata and metadata:
            lines.append(f"Context: {json.dumps(metadata, sort_keys=True)}")
        lines.append("")
    return "\n".join(lines)


def build_rag_prompt(
    current_input: str,
    exemplars: list[Exemplar],
    config: RagPromptConfig | None = None,
) -> str:
    config = config or RagPromptConfig()
    selected = exemplars[: config.max_examples]

    if config.template == "custom" and config.custom_template:
        return config.custom_template.replace("{input}", current_input).replace(
            "{example_count}", str(len(selected))
        )

    block = format_exemplar_block(selected, config.max_examples, config.include_metadata)
    return block + "\n" + EXEMPLAR_CLOSING.format(input=current_input) + "\n"

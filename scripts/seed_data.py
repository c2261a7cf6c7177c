"""Seed the system with sample records, inputs, outputs and feedback for development."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from content_engine.config.settings import Settings
from content_engine.embeddings.hashing_embedder import HashingEmbedder
from content_engine.embeddings.service import EmbeddingService
from content_engine.models.domain import (
    ContentItem,
    Feedback,
    GeneratedOutput,
    Release,
    Stakeholder,
    Workstream,
)
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.storage.sqlite_domain_store import SQLiteDomainStore
from content_engine.vectorstore.faiss_store import FAISSVectorStore

USER_ID = 1

STAKEHOLDERS = [
    Stakeholder(user_id=USER_ID, name="Sarah Chen", email="sarah.chen@example.com",
                title="Engineering Manager", department="Payments"),
    Stakeholder(user_id=USER_ID, name="Marcus Webb", email="marcus@example.com", title="Product Lead"),
]
WORKSTREAMS = [
    Workstream(user_id=USER_ID, name="Payments", description="Checkout and billing"),
    Workstream(user_id=USER_ID, name="Mobile App", description="iOS and Android clients"),
]
RELEASES = [Release(user_id=USER_ID, name="Spring Launch", version="2.4", target_date="2025-04-15")]

SAMPLES = [
    {
        "content": "Sarah Chen needs the Payments API review done before the 2.4 release on Friday.",
        "entities": {
            "stakeholders": [{"name": "Sarah Chen", "confidence": 0.9}],
            "workstreams": [{"name": "Payments", "confidence": 0.9}],
            "releases": [{"version": "2.4", "confidence": 0.8}],
            "action_items": [{"text": "Review Payments API", "assignee": "Sarah Chen",
                              "priority": "high", "confidence": 0.85}],
        },
        "feedback": ("accept", 1.0),
    },
    {
        "content": "Marcus wants the mobile app onboarding copy updated and QA signed off.",
        "entities": {
            "stakeholders": [{"name": "Marcus Webb", "confidence": 0.8}],
            "workstreams": [{"name": "Mobile App", "confidence": 0.85}],
            "action_items": [{"text": "Update onboarding copy", "assignee": "Marcus Webb",
                              "confidence": 0.8}],
        },
        "feedback": ("edit", 0.7),
    },
    {
        "content": "Sync with Sarah about the payments retry logic and the checkout error budget.",
        "entities": {
            "stakeholders": [{"name": "Sarah Chen", "confidence": 0.9}],
            "workstreams": [{"name": "Payments", "confidence": 0.8}],
        },
        "feedback": ("accept", 0.9),
    },
]


async def main():
    settings = Settings()

    # Ensure data directories exist
    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)

    content_store = SQLiteContentStore(settings.sqlite_db_path)
    await content_store.initialize()
    domain_store = SQLiteDomainStore(settings.sqlite_db_path)
    await domain_store.initialize()

    for record in STAKEHOLDERS:
        await domain_store.create_stakeholder(record)
    for record in WORKSTREAMS:
        await domain_store.create_workstream(record)
    for record in RELEASES:
        await domain_store.create_release(record)
    print(f"Seeded {len(STAKEHOLDERS)} stakeholders, {len(WORKSTREAMS)} workstreams, "
          f"{len(RELEASES)} releases")

    vector_store = FAISSVectorStore(
        dimensions=settings.embedding_dimensions,
        index_path=settings.faiss_index_path,
    )
    embeddings = EmbeddingService(
        HashingEmbedder(settings.embedding_dimensions), content_store, vector_store, settings
    )

    for sample in SAMPLES:
        item = await content_store.save_input(
            ContentItem(user_id=USER_ID, content=sample["content"], content_type="brain_dump",
                        source="seed")
        )
        output = await content_store.save_output(
            GeneratedOutput(
                input_id=item.id,
                content=json.dumps(sample["entities"]),
                output_type="entity_extraction",
                ai_model="seed",
                quality_score=0.85,
            )
        )
        action, confidence = sample["feedback"]
        metadata = {"corrected_content": sample["content"]} if action == "edit" else {}
        await content_store.add_feedback(
            Feedback(output_id=output.id, user_id=USER_ID, kind="inline", action=action,
                     signal_type="explicit", confidence=confidence, metadata=metadata)
        )
        await embeddings.embed_input(item.id)
        await embeddings.embed_output(output.id)
        print(f"Seeded input {item.id} -> output {output.id} ({action})")

    vector_store.save()
    print(f"\nTotal inputs: {await content_store.count_inputs()}")
    print(f"Vector index size: {vector_store.size}")


if __name__ == "__main__":
    asyncio.run(main())

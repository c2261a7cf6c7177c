"""Rebuild the FAISS index from the embeddings table."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import numpy as np

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from content_engine.config.settings import Settings
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.vectorstore.faiss_store import FAISSVectorStore


async def main():
    settings = Settings()

    content_store = SQLiteContentStore(settings.sqlite_db_path)
    await content_store.initialize()

    embeddings = await content_store.list_embeddings()
    usable = [e for e in embeddings if e.dimensions == settings.embedding_dimensions]
    print(f"Found {len(embeddings)} embeddings ({len(usable)} with {settings.embedding_dimensions} dims)")

    vector_store = FAISSVectorStore(dimensions=settings.embedding_dimensions)
    if usable:
        vector_store.add(
            [e.key for e in usable],
            np.array([e.vector for e in usable], dtype=np.float32),
        )
    vector_store.save(settings.faiss_index_path)
    print(f"FAISS index built: {vector_store.size} vectors")

    print("Done!")


if __name__ == "__main__":
    asyncio.run(main())

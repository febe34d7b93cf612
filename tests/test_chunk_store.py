from __future__ import annotations

import math
import uuid

import chromadb
import pytest

from outreach.chunkstore import ChunkStore, InMemoryChunkStore, build_chunk_store
from outreach.chunkstore.chroma_store import ChromaChunkStore
from outreach.config import Settings
from outreach.errors import StoreUnavailable
from outreach.models import DocumentType

PYTHON_TEXT = "Built Python services for payment reconciliation at Acme with Postgres and Kafka."
GARDEN_TEXT = "Volunteered at the community garden planting tulips every spring weekend."


@pytest.fixture(params=["memory", "chroma"])
def chunk_store(request) -> ChunkStore:
    if request.param == "memory":
        return InMemoryChunkStore()
    client = chromadb.EphemeralClient()
    return ChromaChunkStore(client=client, collection_name=f"test-{uuid.uuid4().hex}")


@pytest.fixture
def populated(chunk_store, make_chunk) -> ChunkStore:
    chunk_store.insert_many(
        [
            make_chunk(PYTHON_TEXT, chunk_id="c-python", chunk_type="experience", chunk_index=0),
            make_chunk(GARDEN_TEXT, chunk_id="c-garden", chunk_type="achievements", chunk_index=1),
            make_chunk(
                "Acme values remote-first collaboration and written culture.",
                chunk_id="c-company",
                document_id="doc-2",
                document_type=DocumentType.COMPANY_RESEARCH,
                chunk_type="culture",
                title="Acme research",
                created_at="2024-02-01T00:00:00Z",
            ),
            make_chunk(PYTHON_TEXT, chunk_id="c-other-owner", owner_id="owner-2", document_id="doc-9"),
        ]
    )
    return chunk_store


def test_query_returns_best_match_first(populated: ChunkStore, embedder) -> None:
    results = populated.query_similar(embedder.embed(PYTHON_TEXT), "owner-1", threshold=0.0, limit=5)

    assert results[0].chunk_id == "c-python"
    assert math.isclose(results[0].similarity, 1.0, abs_tol=1e-4)
    assert [item.similarity for item in results] == sorted((item.similarity for item in results), reverse=True)
    assert results[0].document_title == "Resume"
    assert results[0].document_type == "resume"
    assert results[0].chunk_type == "experience"


def test_query_is_scoped_to_owner(populated: ChunkStore, embedder) -> None:
    results = populated.query_similar(embedder.embed(PYTHON_TEXT), "owner-1", limit=10)

    assert "c-other-owner" not in {item.chunk_id for item in results}
    assert populated.query_similar(embedder.embed(PYTHON_TEXT), "owner-3") == []


def test_query_respects_document_type_threshold_and_limit(populated: ChunkStore, embedder) -> None:
    vector = embedder.embed(PYTHON_TEXT)

    company = populated.query_similar(vector, "owner-1", DocumentType.COMPANY_RESEARCH, threshold=0.0, limit=10)
    strict = populated.query_similar(vector, "owner-1", threshold=0.9, limit=10)
    capped = populated.query_similar(vector, "owner-1", threshold=0.0, limit=1)

    assert {item.document_type for item in company} == {"company_research"}
    assert [item.chunk_id for item in strict] == ["c-python"]
    assert all(item.similarity >= 0.9 for item in strict)
    assert len(capped) == 1


def test_list_all_returns_newest_first_with_full_similarity(populated: ChunkStore) -> None:
    results = populated.list_all("owner-1")

    assert [item.chunk_id for item in results] == ["c-company", "c-python", "c-garden"]
    assert all(item.similarity == 1.0 for item in results)
    assert len(populated.list_all("owner-1", DocumentType.RESUME, limit=1)) == 1


def test_list_documents_counts_chunks(populated: ChunkStore) -> None:
    documents = populated.list_documents("owner-1")

    assert [(item.id, item.chunk_count) for item in documents] == [("doc-2", 1), ("doc-1", 2)]
    assert documents[0].title == "Acme research"
    assert [item.id for item in populated.list_documents("owner-1", "resume")] == ["doc-1"]


def test_delete_document_cascades_to_chunks(populated: ChunkStore, embedder) -> None:
    assert populated.delete_document("owner-1", "doc-1") == 2
    assert populated.delete_document("owner-1", "doc-1") == 0
    assert populated.delete_document("owner-1", "doc-9") == 0

    remaining = populated.list_all("owner-1")
    assert [item.chunk_id for item in remaining] == ["c-company"]
    assert populated.count() == 2


def test_created_at_is_exposed_in_metadata(populated: ChunkStore) -> None:
    results = {item.chunk_id: item for item in populated.list_all("owner-1")}

    assert results["c-company"].metadata["created_at"] == "2024-02-01T00:00:00Z"
    assert results["c-python"].metadata["section"] == "experience"


def test_memory_store_rejects_mismatched_dimensions(make_chunk) -> None:
    store = InMemoryChunkStore()
    store.insert(make_chunk(PYTHON_TEXT, chunk_id="c-1"))

    with pytest.raises(ValueError):
        store.query_similar([1.0, 0.0], "owner-1")


def test_memory_store_zero_vector_scores_zero(make_chunk) -> None:
    store = InMemoryChunkStore()
    store.insert(make_chunk(PYTHON_TEXT, chunk_id="c-1"))

    results = store.query_similar([0.0] * 384, "owner-1", threshold=0.0)

    assert [item.similarity for item in results] == [0.0]


def test_build_chunk_store_rejects_unknown_backend() -> None:
    assert isinstance(build_chunk_store(Settings(chunk_store="memory")), InMemoryChunkStore)
    with pytest.raises(StoreUnavailable):
        build_chunk_store(Settings(chunk_store="redis"))


def test_chroma_store_persists_to_directory(tmp_path, make_chunk) -> None:
    settings = Settings(chunk_store="chroma", chroma_persist_dir=str(tmp_path / "db"), chroma_collection="persisted")
    store = build_chunk_store(settings)
    store.insert(make_chunk(PYTHON_TEXT, chunk_id="c-1"))

    assert isinstance(store, ChromaChunkStore)
    assert store.count() == 1
    assert (tmp_path / "db").exists()

"""Tests for the vector index providers."""

import asyncio

import pytest

from tutorrag.core.exceptions import IndexUnreadyError, ProviderError
from tutorrag.core.models import EmbeddingVector, VectorMatch
from tutorrag.core.retry_config import RETRY_CONFIG_NONE
from tutorrag.query.retriever import Retriever, build_context_block
from tutorrag.store.memory import InMemoryVectorIndex, cosine_similarity

TEXTS = [
    "the deadline is friday",
    "lunch is served at noon",
    "parking is in lot b",
]


class FailingIndex(InMemoryVectorIndex):
    """Writes half of the ``fail_on``-th upsert batch, then drops the connection."""

    def __init__(self, fail_on: int, **kwargs):
        super().__init__(**kwargs)
        self.fail_on = fail_on
        self.batches = 0

    def _upsert_sync(self, namespace, batch):
        self.batches += 1
        if self.batches == self.fail_on:
            super()._upsert_sync(namespace, batch[:1])
            raise ConnectionError("connection reset")
        super()._upsert_sync(namespace, batch)


class TestCosineSimilarity:
    def test_identical(self):
        assert cosine_similarity([1.0, 2.0], [1.0, 2.0]) == pytest.approx(1.0)

    def test_orthogonal(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_zero_vector(self):
        assert cosine_similarity([0.0, 0.0], [1.0, 1.0]) == 0.0


class TestInMemoryVectorIndex:
    """Test suite for the namespace and upsert contract."""

    async def test_query_before_ingestion_is_unready(self, memory_index, vectorize):
        with pytest.raises(IndexUnreadyError) as exc_info:
            await memory_index.query("mychannel", vectorize("anything"))
        assert exc_info.value.tenant_id == "mychannel"

    async def test_ensure_namespace_idempotent(self, memory_index, make_records):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))
        await memory_index.ensure_namespace("mychannel")
        assert len(memory_index.records("mychannel")) == 3

    async def test_namespace_name(self, memory_index):
        assert memory_index.namespace("mychannel") == "tutor-chatbot-mychannel"
        assert not await memory_index.namespace_exists("mychannel")
        await memory_index.ensure_namespace("mychannel")
        assert await memory_index.namespace_exists("mychannel")

    async def test_top_match_and_order(self, memory_index, make_records, vectorize):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))

        matches = await memory_index.query("mychannel", vectorize("deadline friday"), top_k=3)

        assert matches[0].text == "the deadline is friday"
        assert matches[0].url == "https://youtu.be/v0"
        scores = [m.score for m in matches]
        assert scores == sorted(scores, reverse=True)

    async def test_top_k_limits_results(self, memory_index, make_records, vectorize):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))
        assert len(await memory_index.query("mychannel", vectorize("is"), top_k=1)) == 1

    async def test_upsert_overwrites_by_id(self, memory_index, make_records):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))
        await memory_index.upsert("mychannel", make_records(["replaced text"]))

        stored = memory_index.records("mychannel")
        assert len(stored) == 3
        assert stored["c0"].metadata_text == "replaced text"

    async def test_tenants_are_isolated(self, memory_index, make_records):
        for tenant in ("alpha", "beta"):
            await memory_index.ensure_namespace(tenant)
        await memory_index.upsert("alpha", make_records(TEXTS))
        assert memory_index.records("beta") == {}

    async def test_wrong_dimension_rejected(self, memory_index):
        await memory_index.ensure_namespace("mychannel")
        bad = EmbeddingVector(chunk_ref="x", vector=[1.0], metadata_text="t", source_video_id="v")
        with pytest.raises(ProviderError):
            await memory_index.upsert("mychannel", [bad])
        assert memory_index.records("mychannel") == {}

    async def test_clear_keeps_namespace(self, memory_index, make_records):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))
        await memory_index.clear("mychannel")
        assert memory_index.records("mychannel") == {}
        assert await memory_index.namespace_exists("mychannel")

    async def test_delete(self, memory_index, make_records):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))
        await memory_index.delete("mychannel", ["c1"])
        assert set(memory_index.records("mychannel")) == {"c0", "c2"}


class TestUpsertRollback:
    """A failed or cancelled upsert leaves no partial writes behind."""

    async def test_failed_batch_rolls_back(self, make_records):
        index = FailingIndex(fail_on=2, retry_config=RETRY_CONFIG_NONE, batch_size=2)
        await index.ensure_namespace("mychannel")

        with pytest.raises(ProviderError) as exc_info:
            await index.upsert("mychannel", make_records([*TEXTS, "fourth text"]))

        assert exc_info.value.retryable
        assert index.records("mychannel") == {}

    async def test_rollback_spares_other_vectors(self, make_records):
        index = FailingIndex(fail_on=2, retry_config=RETRY_CONFIG_NONE, batch_size=10)
        await index.ensure_namespace("mychannel")
        kept, *_ = make_records(["kept"])
        await index.upsert("mychannel", [kept])

        failing = [
            record.model_copy(update={"chunk_ref": f"new{i}"})
            for i, record in enumerate(make_records(TEXTS))
        ]
        with pytest.raises(ProviderError):
            await index.upsert("mychannel", failing)

        assert set(index.records("mychannel")) == {"c0"}

    async def test_failed_reingest_restores_previous_records(self, make_records):
        index = FailingIndex(fail_on=4, retry_config=RETRY_CONFIG_NONE, batch_size=2)
        await index.ensure_namespace("mychannel")
        original = make_records([*TEXTS, "fourth text"])
        await index.upsert("mychannel", original)

        reingest = make_records(["new zero", "new one", "new two", "new three", "new four"])
        with pytest.raises(ProviderError):
            await index.upsert("mychannel", reingest)

        stored = index.records("mychannel")
        assert set(stored) == {"c0", "c1", "c2", "c3"}
        assert {ref: r.metadata_text for ref, r in stored.items()} == {
            record.chunk_ref: record.metadata_text for record in original
        }
        assert stored["c0"].vector == original[0].vector

    async def test_repeated_new_id_is_deleted_on_rollback(self, make_records):
        index = FailingIndex(fail_on=2, retry_config=RETRY_CONFIG_NONE, batch_size=1)
        await index.ensure_namespace("mychannel")
        first, second = make_records(["one", "two"])
        repeated = second.model_copy(update={"chunk_ref": first.chunk_ref})

        with pytest.raises(ProviderError):
            await index.upsert("mychannel", [first, repeated])

        assert index.records("mychannel") == {}

    async def test_cancelled_upsert_rolls_back(self, make_records):
        index = InMemoryVectorIndex(retry_config=RETRY_CONFIG_NONE, batch_size=1)
        await index.ensure_namespace("mychannel")
        first_batch_written = asyncio.Event()
        original_call = index._call

        async def slow_call(operation, func, *args):
            result = await original_call(operation, func, *args)
            if operation == "upsert":
                first_batch_written.set()
                await asyncio.sleep(10)
            return result

        index._call = slow_call
        task = asyncio.create_task(index.upsert("mychannel", make_records(TEXTS)))
        await first_batch_written.wait()
        assert len(index.records("mychannel")) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert index.records("mychannel") == {}


class TestRetriever:
    """Test suite for retrieval and context assembly."""

    async def test_retrieve_top_one(self, memory_index, make_records, embedder):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert("mychannel", make_records(TEXTS))

        matches = await Retriever(embedder, memory_index, top_k=1).retrieve(
            "mychannel", "deadline is Friday"
        )

        assert len(matches) == 1
        assert matches[0].text == "the deadline is friday"

    async def test_default_top_k_is_ten(self, memory_index, make_records, embedder):
        await memory_index.ensure_namespace("mychannel")
        await memory_index.upsert(
            "mychannel", make_records([f"text number {i}" for i in range(15)])
        )
        matches = await Retriever(embedder, memory_index).retrieve("mychannel", "text")
        assert len(matches) == 10

    async def test_unready_namespace_propagates(self, memory_index, embedder):
        with pytest.raises(IndexUnreadyError):
            await Retriever(embedder, memory_index).retrieve("nobody", "question")

    def test_context_block_separator_and_headers(self, make_records):
        matches = [
            VectorMatch.from_metadata(r.chunk_ref, 1.0, r.to_metadata())
            for r in make_records(TEXTS[:2])
        ]
        first, second = build_context_block(matches).split("\n\n---\n\n")
        assert first.startswith("Title: Video 0\nURL: https://youtu.be/v0")
        assert first.endswith("the deadline is friday")
        assert second.endswith("lunch is served at noon")

    def test_empty_context_block(self):
        assert build_context_block([]) == ""

"""Integration tests for TutorRAGPipeline.ask."""

import pytest

import tutorrag.pipeline as pipeline_module
from tutorrag.core.exceptions import (
    GenerationError,
    IndexUnreadyError,
    InvalidRequestError,
    QueryError,
    StateError,
)
from tutorrag.core.models import RollingContext
from tutorrag.query.prompts import REWRITE_PROMPT

CITED = (
    '{"title": "Lecture 1", "startTime": "0:00", "endTime": "0:30", '
    '"videoUrl": "https://www.youtube.com/watch?v=vid1", "answer": "Friday at noon."}'
)


@pytest.fixture
async def ingested(pipeline):
    await pipeline.ingest("@MyChannel", max_videos=3)
    return pipeline


def calls_by_kind(generator):
    """Split generator calls into rewrite, answer and extraction calls."""
    kinds = []
    for call in generator.generate.call_args_list:
        system_prompt = call.args[0]
        if call.kwargs.get("json_output"):
            kinds.append("structure")
        elif system_prompt == REWRITE_PROMPT:
            kinds.append("rewrite")
        else:
            kinds.append("generate")
    return kinds


class TestAsk:
    """Test suite for query resolution."""

    async def test_answer_from_indexed_channel(self, ingested, mock_generator):
        result = await ingested.ask("@MyChannel", "When is the deadline?")

        assert result.answer.answer == "The deadline is Friday."
        assert result.raw_answer == "The deadline is Friday."
        assert result.rewritten_query == "When is the deadline?"
        assert result.sources[0].source_video_id == "vid1"
        assert len(result.sources) <= 10

    async def test_stage_order(self, ingested, mock_generator):
        mock_generator.generate.reset_mock()
        await ingested.ask("@MyChannel", "When is the deadline?")
        assert calls_by_kind(mock_generator) == ["rewrite", "generate", "structure"]

    async def test_context_block_reaches_generator(self, ingested, mock_generator):
        await ingested.ask("@MyChannel", "When is the deadline?")

        answer_call = mock_generator.generate.call_args_list[1]
        system_prompt = answer_call.args[0]
        assert "deadline" in system_prompt
        assert "\n\n---\n\n" in system_prompt
        assert "URL: https://www.youtube.com/watch?v=vid1" in system_prompt

    async def test_cited_answer(self, ingested, mock_generator):
        async def generate(system_prompt, turns, *, json_output=False):
            if json_output:
                return f"Here you go: {CITED}"
            return "Friday at noon (Lecture 1, 0:00-0:30)."

        mock_generator.generate.side_effect = generate

        result = await ingested.ask("@MyChannel", "When is the deadline?")

        assert result.answer.to_response() == {
            "answer": "Friday at noon.",
            "title": "Lecture 1",
            "startTime": "0:00",
            "endTime": "0:30",
            "videoUrl": "https://www.youtube.com/watch?v=vid1",
        }

    async def test_same_tenant_for_url_identifier(self, ingested):
        result = await ingested.ask("https://www.youtube.com/@MyChannel", "deadline?")
        assert result.sources


class TestAskContext:
    """Test suite for the rolling conversation context."""

    async def test_exchange_recorded(self, ingested):
        context = RollingContext()
        await ingested.ask("@MyChannel", "When is the deadline?", context)

        assert [(t.role, t.text) for t in context.turns] == [
            ("user", "When is the deadline?"),
            ("model", "The deadline is Friday."),
        ]

    async def test_follow_up_rewrite_sees_previous_exchange(self, ingested, mock_generator):
        context = RollingContext()
        await ingested.ask("@MyChannel", "When is the deadline?", context)
        mock_generator.generate.reset_mock()

        await ingested.ask("@MyChannel", "and where?", context)

        rewrite_turns = mock_generator.generate.call_args_list[0].args[1]
        assert [t.text for t in rewrite_turns] == [
            "When is the deadline?",
            "The deadline is Friday.",
            "and where?",
        ]
        assert context.turns[0].text == "and where?"

    async def test_context_untouched_on_failure(self, ingested, mock_generator):
        context = RollingContext()
        mock_generator.generate.side_effect = GenerationError("down", provider="gemini_generation")

        with pytest.raises(QueryError):
            await ingested.ask("@MyChannel", "When is the deadline?", context)

        assert context.is_empty()


class TestAskFailures:
    """Test suite for query failure states."""

    async def test_not_ingested(self, pipeline, mock_generator):
        with pytest.raises(IndexUnreadyError) as exc_info:
            await pipeline.ask("@NeverIngested", "anything?")
        assert exc_info.value.tenant_id == "neveringested"

    async def test_blank_question(self, ingested, mock_generator):
        mock_generator.generate.reset_mock()
        with pytest.raises(InvalidRequestError):
            await ingested.ask("@MyChannel", "   ")
        mock_generator.generate.assert_not_called()

    async def test_rewrite_failure(self, ingested, mock_generator):
        mock_generator.generate.side_effect = GenerationError("down", provider="gemini_generation")

        with pytest.raises(QueryError) as exc_info:
            await ingested.ask("@MyChannel", "When is the deadline?")

        assert exc_info.value.stage == "rewrite"
        assert exc_info.value.tenant_id == "mychannel"
        assert isinstance(exc_info.value.__cause__, GenerationError)

    async def test_embed_failure(self, ingested, embedder, mocker):
        mocker.patch.object(embedder, "embed_one", side_effect=ConnectionError("reset"))

        with pytest.raises(QueryError) as exc_info:
            await ingested.ask("@MyChannel", "When is the deadline?")

        assert exc_info.value.stage == "embed_query"

    async def test_generation_failure(self, ingested, mock_generator):
        async def generate(system_prompt, turns, *, json_output=False):
            if system_prompt == REWRITE_PROMPT:
                return turns[-1].text
            raise GenerationError("safety block", provider="gemini_generation")

        mock_generator.generate.side_effect = generate

        with pytest.raises(QueryError) as exc_info:
            await ingested.ask("@MyChannel", "When is the deadline?")

        assert exc_info.value.stage == "generate"

    async def test_structure_failure(self, ingested, mock_generator):
        async def generate(system_prompt, turns, *, json_output=False):
            if json_output:
                raise GenerationError("down", provider="gemini_generation")
            return turns[-1].text

        mock_generator.generate.side_effect = generate

        with pytest.raises(QueryError) as exc_info:
            await ingested.ask("@MyChannel", "When is the deadline?")

        assert exc_info.value.stage == "structure"

    async def test_malformed_extraction_is_not_a_failure(self, ingested, mock_generator):
        async def generate(system_prompt, turns, *, json_output=False):
            if json_output:
                return "{not json"
            if system_prompt == REWRITE_PROMPT:
                return turns[-1].text
            return "Friday."

        mock_generator.generate.side_effect = generate

        result = await ingested.ask("@MyChannel", "When is the deadline?")
        assert result.answer.to_response() == {"answer": "Friday."}


class TestEmbeddingModelCheck:
    async def test_mismatch_logged(self, ingested, mocker):
        await ingested._tenant_store.upsert("mychannel", {"embedding_model": "older-model"})
        logger = mocker.patch.object(pipeline_module, "logger")

        await ingested.ask("@MyChannel", "When is the deadline?")

        logger.bind.return_value.warning.assert_any_call(
            "embedding_model_mismatch",
            indexed_with="older-model",
            querying_with="text-embedding-004",
        )

    async def test_unreadable_tenant_record_only_warns(self, ingested, mocker):
        mocker.patch.object(
            ingested._tenant_store, "get", side_effect=StateError("database is locked")
        )
        logger = mocker.patch.object(pipeline_module, "logger")

        result = await ingested.ask("@MyChannel", "When is the deadline?")

        assert result.answer.answer == "The deadline is Friday."
        logger.bind.return_value.warning.assert_any_call(
            "embedding_model_check_failed", error="database is locked"
        )

"""Tests for the query rewriter and answer generator."""

from unittest.mock import AsyncMock

import pytest

from tutorrag.core.exceptions import InvalidRequestError
from tutorrag.core.models import RollingContext
from tutorrag.query.answerer import AnswerGenerator
from tutorrag.query.prompts import REWRITE_PROMPT
from tutorrag.query.rewriter import QueryRewriter


@pytest.fixture
def generator() -> AsyncMock:
    mock = AsyncMock()
    mock.generate = AsyncMock(return_value="When is the assignment deadline?")
    return mock


class TestQueryRewriter:
    """Test suite for QueryRewriter."""

    async def test_rewrite_without_context(self, generator):
        rewritten = await QueryRewriter(generator).rewrite("when is it due?")

        assert rewritten == "When is the assignment deadline?"
        system_prompt, turns = generator.generate.call_args.args
        assert system_prompt == REWRITE_PROMPT
        assert [(t.role, t.text) for t in turns] == [("user", "when is it due?")]

    async def test_only_previous_exchange_is_sent(self, generator):
        context = RollingContext()
        context.record("old question", "old answer")
        context.record("What is the assignment?", "Essay on recursion.")

        await QueryRewriter(generator).rewrite("when is it due?", context)

        _, turns = generator.generate.call_args.args
        assert [t.text for t in turns] == [
            "What is the assignment?",
            "Essay on recursion.",
            "when is it due?",
        ]

    async def test_context_not_mutated(self, generator):
        context = RollingContext()
        context.record("q", "a")
        await QueryRewriter(generator).rewrite("follow up", context)
        assert len(context.turns) == 2

    async def test_blank_rewrite_falls_back_to_question(self, generator):
        generator.generate.return_value = "   "
        assert await QueryRewriter(generator).rewrite(" due date? ") == "due date?"

    async def test_blank_question_rejected(self, generator):
        with pytest.raises(InvalidRequestError):
            await QueryRewriter(generator).rewrite("  ")
        generator.generate.assert_not_called()


class TestAnswerGenerator:
    """Test suite for AnswerGenerator."""

    async def test_context_block_in_system_prompt(self, generator):
        generator.generate.return_value = "Friday."
        answer = await AnswerGenerator(generator).answer("deadline?", "The deadline is Friday.")

        assert answer == "Friday."
        system_prompt, turns = generator.generate.call_args.args
        assert "The deadline is Friday." in system_prompt
        assert turns[-1].text == "deadline?"

    def test_empty_context_placeholder(self, generator):
        assert "(no matching passages)" in AnswerGenerator(generator).system_prompt("")

    async def test_rolling_context_prepended(self, generator):
        context = RollingContext()
        context.record("q1", "a1")
        await AnswerGenerator(generator).answer("q2", "ctx", context)
        _, turns = generator.generate.call_args.args
        assert [t.role for t in turns] == ["user", "model", "user"]

"""Rewriting follow-up questions into standalone search queries."""

from __future__ import annotations

from tutorrag.core.exceptions import InvalidRequestError
from tutorrag.core.logging_config import get_logger
from tutorrag.core.models import ConversationTurn, RollingContext
from tutorrag.core.protocols import GenerationProvider
from tutorrag.query.prompts import REWRITE_PROMPT

logger = get_logger(__name__)


class QueryRewriter:
    """Turn a question plus the previous exchange into a self-contained query."""

    def __init__(self, generator: GenerationProvider, prompt: str = REWRITE_PROMPT) -> None:
        self._generator = generator
        self._prompt = prompt

    async def rewrite(self, question: str, context: RollingContext | None = None) -> str:
        """Rewrite ``question`` for retrieval.

        Only the immediately preceding exchange of ``context`` is sent. A blank
        model reply falls back to the question as asked.

        Raises:
            InvalidRequestError: If the question is blank.
        """
        question = question.strip()
        if not question:
            raise InvalidRequestError("Question must not be empty", field="question")

        turns = context.last_exchange() if context else []
        turns.append(ConversationTurn(role="user", text=question))

        rewritten = (await self._generator.generate(self._prompt, turns)).strip()
        if not rewritten:
            logger.warning("rewrite_empty_fallback", question_length=len(question))
            return question

        logger.debug("query_rewritten", original=question, rewritten=rewritten)
        return rewritten

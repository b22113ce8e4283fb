"""Grounded answer generation."""

from __future__ import annotations

from tutorrag.core.models import ConversationTurn, RollingContext
from tutorrag.core.protocols import GenerationProvider
from tutorrag.query.prompts import ANSWER_PROMPT


class AnswerGenerator:
    """Answers a standalone question under the tutor contract."""

    def __init__(self, generator: GenerationProvider, prompt: str = ANSWER_PROMPT) -> None:
        self._generator = generator
        self._prompt = prompt

    def system_prompt(self, context_block: str) -> str:
        return self._prompt.format(context=context_block or "(no matching passages)")

    async def answer(
        self,
        question: str,
        context_block: str,
        rolling: RollingContext | None = None,
    ) -> str:
        turns = rolling.last_exchange() if rolling else []
        turns.append(ConversationTurn(role="user", text=question))
        return await self._generator.generate(self.system_prompt(context_block), turns)
